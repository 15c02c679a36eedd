"""
Module router - navigation state machine gated by the permission resolver.

States: IDLE -> NAVIGATING -> ACTIVE(module) | DENIED(module).
Invariant: active_module_id only ever names a module that exists in the
registry and that the session's capability set allows.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional

import httpx

from admincore.errors import AdminCoreError, ModuleNotFound, PermissionDenied
from admincore.kernel.events.audit_logger import AuditLogger
from admincore.kernel.events.audit_types import MAX_FIELD_LENGTH
from admincore.kernel.identity.actor import Actor
from admincore.kernel.models.audit_log import AuditAction
from admincore.kernel.permissions.capabilities import CapabilitySet
from admincore.kernel.permissions.permission_service import PermissionResolver
from admincore.kernel.registry.descriptors import ModuleDescriptor, ModuleStatus
from admincore.kernel.registry.module_registry import ModuleRegistry
from admincore.logging_config import get_logger

logger = get_logger(__name__)


class NavigationPhase(str, Enum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    ACTIVE = "active"
    DENIED = "denied"


class NavigationOutcome(str, Enum):
    NAVIGATED = "navigated"      # Moved to a new module
    REFRESHED = "refreshed"      # Already active; locator re-issued
    DENIED = "denied"            # Exists but capability missing
    NOT_FOUND = "not_found"      # Unknown id


@dataclass(frozen=True)
class NavigationState:
    phase: NavigationPhase = NavigationPhase.IDLE
    active_module_id: Optional[str] = None
    denied_module_id: Optional[str] = None
    external_locator: Optional[str] = None


@dataclass(frozen=True)
class NavigationResult:
    outcome: NavigationOutcome
    state: NavigationState
    error: Optional[AdminCoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_locator(base: str, module_id: str, param: str = "module") -> str:
    """Shareable locator for a module, keeping any other query parameters."""
    return str(httpx.URL(base).copy_merge_params({param: module_id}))


def module_from_locator(locator: Optional[str], param: str = "module") -> Optional[str]:
    """Module id named by a locator, or None when absent/unparseable."""
    if not locator:
        return None
    try:
        value = httpx.URL(locator).params.get(param)
    except httpx.InvalidURL:
        return None
    value = (value or "").strip()
    return value or None


class ModuleRouter:
    """
    Holds the navigation state of one console session.

    Every transition goes through navigate(); the actor and capability set
    are passed in explicitly and never read from ambient state.
    """

    def __init__(
        self,
        actor: Actor,
        capabilities: CapabilitySet,
        registry: ModuleRegistry,
        audit: AuditLogger,
        default_module_id: str = "dashboard",
        locator_param: str = "module",
        base_path: str = "/admin",
    ):
        self.actor = actor
        self.capabilities = capabilities
        self.registry = registry
        self.audit = audit
        self.default_module_id = default_module_id
        self.locator_param = locator_param
        self.base_path = base_path
        self._state = NavigationState()

    @property
    def state(self) -> NavigationState:
        return self._state

    def can_access(self, descriptor: ModuleDescriptor) -> bool:
        return PermissionResolver.is_allowed(self.capabilities, descriptor.required_capability)

    def visible_modules(self, query: Optional[str] = None) -> List[ModuleDescriptor]:
        """
        Menu entries for this session, in manifest order.

        Only modules the actor may open and that reconciliation last saw
        as active. `query` filters case-insensitively on id and display name.
        """
        needle = (query or "").strip().lower()
        visible = []
        for descriptor in self.registry.list():
            if descriptor.status != ModuleStatus.ACTIVE or not self.can_access(descriptor):
                continue
            if needle and needle not in descriptor.id.lower() and needle not in descriptor.display_name.lower():
                continue
            visible.append(descriptor)
        return visible

    def navigate(self, target_id: str) -> NavigationResult:
        """
        Attempt to make `target_id` the active module.

        Unknown ids leave the state untouched; denied ids move to DENIED
        without changing the active module. Both write a "denied" entry.
        """
        previous = self._state
        self._state = replace(previous, phase=NavigationPhase.NAVIGATING)

        try:
            descriptor = self.registry.get(target_id)
        except ModuleNotFound as e:
            self._state = previous
            self._record_denied(target_id, {"reason": "unknown module"})
            return NavigationResult(NavigationOutcome.NOT_FOUND, previous, e)

        if not self.can_access(descriptor):
            self._state = replace(
                previous,
                phase=NavigationPhase.DENIED,
                denied_module_id=descriptor.id,
            )
            self._record_denied(
                descriptor.id,
                {"reason": "missing capability", "required_capability": descriptor.required_capability},
            )
            return NavigationResult(
                NavigationOutcome.DENIED,
                self._state,
                PermissionDenied(descriptor.id, descriptor.required_capability),
            )

        locator = build_locator(self.base_path, descriptor.id, self.locator_param)
        already_active = previous.active_module_id == descriptor.id
        self._state = NavigationState(
            phase=NavigationPhase.ACTIVE,
            active_module_id=descriptor.id,
            denied_module_id=None,
            external_locator=locator,
        )

        action = AuditAction.LOCATOR_UPDATED if already_active else AuditAction.NAVIGATED
        detail = {"locator": locator}
        if not already_active and previous.active_module_id:
            detail["from_module_id"] = previous.active_module_id
        self.audit.record(self.actor.id, descriptor.id, action.value, detail)

        outcome = NavigationOutcome.REFRESHED if already_active else NavigationOutcome.NAVIGATED
        return NavigationResult(outcome, self._state)

    def navigate_to_locator(self, locator: Optional[str]) -> NavigationResult:
        """Follow an inbound locator change (back/forward, pasted link)."""
        target = module_from_locator(locator, self.locator_param) or self.default_module_id
        return self.navigate(target)

    def mount(self, locator: Optional[str] = None) -> NavigationResult:
        """
        Pick the initial module at shell start-up.

        Order: the locator's module if it exists and is allowed, else the
        default module, else the first visible module. Never raises.
        """
        requested = module_from_locator(locator, self.locator_param)
        if requested and requested != self.default_module_id:
            result = self.navigate(requested)
            if result.ok:
                return result
            logger.info(
                "Deep link rejected at mount; falling back to default",
                extra={"requested_module_id": requested[:MAX_FIELD_LENGTH], "outcome": result.outcome.value},
            )

        result = self.navigate(self.default_module_id)
        if result.ok:
            return result

        for descriptor in self.visible_modules():
            fallback = self.navigate(descriptor.id)
            if fallback.ok:
                return fallback

        logger.warning(
            "No module available to mount",
            extra={"role": self.actor.role},
        )
        return result

    def _record_denied(self, module_id: str, detail: dict) -> None:
        logger.warning(
            "Navigation denied",
            extra={"module_id": module_id[:MAX_FIELD_LENGTH], "reason": detail.get("reason")},
        )
        self.audit.record(self.actor.id, module_id[:MAX_FIELD_LENGTH], AuditAction.DENIED.value, detail)
