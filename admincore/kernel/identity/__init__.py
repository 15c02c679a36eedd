"""
Identity Core - actors and their bearer tokens.
"""

from admincore.kernel.identity.actor import Actor
from admincore.kernel.identity.jwt import (
    AccessTokenPayload,
    JWTManager,
    create_access_token,
    verify_access_token,
)

__all__ = [
    "Actor",
    "AccessTokenPayload",
    "JWTManager",
    "create_access_token",
    "verify_access_token",
]
