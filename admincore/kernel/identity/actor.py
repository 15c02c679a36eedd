"""
Authenticated actor.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    """
    An authenticated user attempting administrative actions.

    Immutable for the session lifetime; a new Actor is built on
    re-authentication. The role is kept as a raw string so that roles
    unknown to the capability table still produce an actor (with no
    capabilities) instead of an error.
    """

    id: str
    role: str
