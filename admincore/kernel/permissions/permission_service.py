"""
Permission resolver for capability-based access control.
"""

from typing import Mapping, Optional, Union

from admincore.kernel.permissions.capabilities import (
    ALL,
    EMPTY_CAPABILITIES,
    ROLE_CAPABILITIES,
    CapabilitySet,
    Role,
)


class PermissionResolver:
    """
    Resolve roles to capability sets and answer allow/deny questions.

    Pure with respect to its inputs: the role table is captured once and
    every call is deterministic. Nothing here raises for unknown input.
    """
    
    def __init__(self, table: Optional[Mapping[str, CapabilitySet]] = None):
        source = ROLE_CAPABILITIES if table is None else table
        # Freeze a private copy so callers cannot mutate the table afterwards
        self._table = {str(role): frozenset(caps) for role, caps in source.items()}
    
    def resolve(self, role: Union[Role, str, None]) -> CapabilitySet:
        """
        Capability set for a role.
        
        Args:
            role: Role enum member or raw role string (possibly unknown)
            
        Returns:
            The role's capability set; empty for unknown roles
        """
        if role is None:
            return EMPTY_CAPABILITIES
        key = role.value if isinstance(role, Role) else str(role)
        return self._table.get(key, EMPTY_CAPABILITIES)
    
    @staticmethod
    def is_allowed(capabilities: CapabilitySet, required_capability: Optional[str]) -> bool:
        """
        True iff the required capability, or the "all" wildcard, is held.
        
        A required capability of None marks an open module (the dashboard).
        """
        if required_capability is None:
            return True
        return ALL in capabilities or required_capability in capabilities


_default_resolver = PermissionResolver()


def resolve(role: Union[Role, str, None]) -> CapabilitySet:
    """Resolve a role against the deployed table."""
    return _default_resolver.resolve(role)


def is_allowed(capabilities: CapabilitySet, required_capability: Optional[str]) -> bool:
    """Check a capability against a resolved set."""
    return PermissionResolver.is_allowed(capabilities, required_capability)
