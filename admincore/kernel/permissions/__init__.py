"""
Permission Core - role table and capability checks.
"""

from admincore.kernel.permissions.capabilities import (
    ALL,
    EMPTY_CAPABILITIES,
    ROLE_CAPABILITIES,
    CapabilitySet,
    Role,
)
from admincore.kernel.permissions.permission_service import (
    PermissionResolver,
    is_allowed,
    resolve,
)

__all__ = [
    "ALL",
    "EMPTY_CAPABILITIES",
    "ROLE_CAPABILITIES",
    "CapabilitySet",
    "Role",
    "PermissionResolver",
    "is_allowed",
    "resolve",
]
