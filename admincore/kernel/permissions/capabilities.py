"""
Capability model - static role to capability-token table.

The table is fixed at deploy time. Changing what a role may do means
shipping a new table, never mutating this one at runtime.
"""

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping

# Universal wildcard: satisfies any required-capability check
ALL = "all"

CapabilitySet = FrozenSet[str]

EMPTY_CAPABILITIES: CapabilitySet = frozenset()


class Role(str, Enum):
    """Roles an actor may carry."""
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    MODERATOR = "moderator"
    EDITOR = "editor"
    USER = "user"


ROLE_CAPABILITIES: Mapping[str, CapabilitySet] = MappingProxyType({
    Role.ADMIN.value: frozenset({ALL}),
    # Not issued by the identity provider today; kept so a super_admin
    # token resolves like admin instead of to nothing.
    Role.SUPER_ADMIN.value: frozenset({ALL}),
    Role.MODERATOR.value: frozenset({"users", "polls", "civic-tools", "messenger", "analytics"}),
    Role.EDITOR.value: frozenset({"polls", "civic-tools", "content"}),
    Role.USER.value: EMPTY_CAPABILITIES,
})
