"""
Capability object handed to a module once access is granted.

This is the only way a module may consult permissions or write audit
entries; modules never see the registry or the raw capability set.
"""

from typing import Any, Callable, Dict, Optional

from admincore.kernel.permissions.capabilities import EMPTY_CAPABILITIES, CapabilitySet
from admincore.kernel.permissions.permission_service import PermissionResolver

ActivitySink = Callable[[str, str, str, Dict[str, Any]], Any]

PROBE_ACTOR_ID = "system:probe"


class ModuleContext:
    """Bound to one actor and one module for the lifetime of a render."""

    __slots__ = ("_actor_id", "_module_id", "_capabilities", "_activity_sink")

    def __init__(
        self,
        actor_id: str,
        module_id: str,
        capabilities: CapabilitySet,
        activity_sink: Optional[ActivitySink] = None,
    ):
        self._actor_id = actor_id
        self._module_id = module_id
        self._capabilities = frozenset(capabilities)
        self._activity_sink = activity_sink

    @classmethod
    def probe(cls, module_id: str) -> "ModuleContext":
        """Context used by reconciliation checks: no capabilities, no audit."""
        return cls(PROBE_ACTOR_ID, module_id, EMPTY_CAPABILITIES, None)

    @property
    def module_id(self) -> str:
        return self._module_id

    @property
    def actor_id(self) -> str:
        return self._actor_id

    def is_allowed(self, capability: str) -> bool:
        return PermissionResolver.is_allowed(self._capabilities, capability)

    def log_activity(self, action: str, detail: Optional[Dict[str, Any]] = None) -> None:
        """Record a completed module action in the audit trail."""
        if self._activity_sink is None:
            return
        self._activity_sink(self._actor_id, self._module_id, action, dict(detail or {}))
