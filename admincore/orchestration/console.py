"""
Console shell facade.

Wires the registry, module catalog, audit logger, reconciliation engine
and stats aggregator together, and hands out one ConsoleSession per
signed-in actor.
"""

import inspect
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admincore.config import Settings
from admincore.engines.stats.aggregator import PartialResult, StatsAggregator, StatsSource
from admincore.engines.stats.dashboard import build_dashboard_sources
from admincore.errors import PermissionDenied
from admincore.kernel.events.audit_logger import AuditLogger
from admincore.kernel.events.sinks import SqlAuditSink
from admincore.kernel.identity.actor import Actor
from admincore.kernel.models.audit_log import AuditAction
from admincore.kernel.permissions.capabilities import ALL, CapabilitySet
from admincore.kernel.permissions.permission_service import PermissionResolver
from admincore.kernel.registry.descriptors import ModuleDescriptor, ModuleStatus
from admincore.kernel.registry.manifest import load_manifest
from admincore.kernel.registry.module_registry import ModuleRegistry
from admincore.logging_config import get_logger
from admincore.orchestration.navigation import ModuleRouter, NavigationResult, NavigationState
from admincore.orchestration.reconciliation import (
    ReconciliationEngine,
    ReconciliationReport,
    ReconciliationScheduler,
    SqlReportStore,
)
from admincore.plugins.builtin import build_default_catalog
from admincore.plugins.catalog import ModuleCatalog
from admincore.plugins.context import ModuleContext

logger = get_logger(__name__)

# Pseudo module ids used in audit entries for console-level actions
CONSOLE_MODULE_ID = "console"
RECONCILE_MODULE_ID = "reconciliation"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ViewKind(str, Enum):
    READY = "ready"
    DENIED = "denied"
    UNAVAILABLE = "unavailable"
    EMPTY = "empty"


@dataclass(frozen=True)
class ModuleView:
    """What the presentation layer should show in the content area."""

    kind: ViewKind
    module_id: Optional[str] = None
    content: Any = None
    reason: Optional[str] = None


class ConsoleSession:
    """
    One actor's browsing session.

    The capability set is resolved once when the session opens and never
    re-read; re-authentication opens a new session. A session bound to a
    token expires with it.
    """

    def __init__(
        self,
        session_id: str,
        actor: Actor,
        capabilities: CapabilitySet,
        router: ModuleRouter,
        catalog: ModuleCatalog,
        audit: AuditLogger,
        expires_at: Optional[datetime] = None,
    ):
        self.session_id = session_id
        self.actor = actor
        self.capabilities = capabilities
        self.router = router
        self.catalog = catalog
        self.audit = audit
        self.expires_at = expires_at

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    @property
    def state(self) -> NavigationState:
        return self.router.state

    @property
    def registry(self) -> ModuleRegistry:
        return self.router.registry

    def navigate(self, module_id: str) -> NavigationResult:
        return self.router.navigate(module_id)

    def navigate_to_locator(self, locator: Optional[str]) -> NavigationResult:
        return self.router.navigate_to_locator(locator)

    def visible_modules(self, query: Optional[str] = None) -> List[ModuleDescriptor]:
        return self.router.visible_modules(query)

    def context_for(self, module_id: str) -> ModuleContext:
        return ModuleContext(
            actor_id=self.actor.id,
            module_id=module_id,
            capabilities=self.capabilities,
            activity_sink=self.audit.record,
        )

    async def render_active(self) -> ModuleView:
        """
        Instantiate the active module for this actor.

        Never raises: a denied target yields the access-denied view and a
        module that fails to build yields the unavailable view.
        """
        state = self.state
        if state.denied_module_id is not None:
            return ModuleView(ViewKind.DENIED, state.denied_module_id, reason="access denied")

        module_id = state.active_module_id
        if module_id is None:
            return ModuleView(ViewKind.EMPTY, reason="no active module")

        descriptor = self.registry.get(module_id)
        if descriptor.status != ModuleStatus.ACTIVE:
            return ModuleView(ViewKind.UNAVAILABLE, module_id, reason=f"module is {descriptor.status.value}")

        handle = self.catalog.get(module_id)
        if handle is None:
            return ModuleView(ViewKind.UNAVAILABLE, module_id, reason="absent from build")

        try:
            content = handle.instantiate(self.context_for(module_id))
            if inspect.isawaitable(content):
                content = await content
        except Exception as e:
            logger.warning(
                "Module failed to render",
                extra={"module_id": module_id, "error": str(e), "error_type": type(e).__name__},
            )
            return ModuleView(ViewKind.UNAVAILABLE, module_id, reason="module failed to load")

        return ModuleView(ViewKind.READY, module_id, content=content)

    def log_activity(self, module_id: str, action: str, detail: Optional[Dict[str, Any]] = None) -> None:
        """
        Report a completed action on behalf of a module.

        Only the active module may report; anything else is PermissionDenied.
        """
        if self.state.active_module_id != module_id:
            raise PermissionDenied(module_id)
        self.context_for(module_id).log_activity(action, detail)


class AdminConsole:
    """
    Usage:
        console = AdminConsole.from_settings(settings, async_session_maker)
        await console.start()
        session = console.open_session(actor, locator="/admin?module=polls-system")
        ...
        await console.stop()
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        catalog: ModuleCatalog,
        audit: AuditLogger,
        engine: ReconciliationEngine,
        resolver: Optional[PermissionResolver] = None,
        reconcile_interval: float = 30.0,
        stats_sources: Optional[Callable[[], List[StatsSource]]] = None,
        stats_timeout: float = 3.0,
        default_module_id: str = "dashboard",
        locator_param: str = "module",
        base_path: str = "/admin",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.registry = registry
        self.catalog = catalog
        self.audit = audit
        self.engine = engine
        self.resolver = resolver or PermissionResolver()
        self.scheduler = ReconciliationScheduler(engine, interval=reconcile_interval)
        self.stats = StatsAggregator(default_timeout=stats_timeout)
        self._stats_sources = stats_sources or (lambda: [])
        self.default_module_id = default_module_id
        self.locator_param = locator_param
        self.base_path = base_path
        self.clock = clock
        self._sessions: Dict[str, ConsoleSession] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_maker: async_sessionmaker[AsyncSession],
        catalog: Optional[ModuleCatalog] = None,
    ) -> "AdminConsole":
        """
        Build the stock console. Raises ManifestError on a corrupt or
        duplicate-id manifest.
        """
        entries = load_manifest(settings.module_manifest_path)
        registry = ModuleRegistry.from_manifest(entries)
        if catalog is None:
            catalog = build_default_catalog(entries)

        audit = AuditLogger(
            SqlAuditSink(session_maker),
            capacity=settings.audit_buffer_capacity,
            retry_interval=settings.audit_retry_interval_seconds,
        )
        engine = ReconciliationEngine(
            registry,
            catalog,
            store=SqlReportStore(session_maker),
            check_timeout=settings.reconcile_check_timeout_seconds,
            history_size=settings.reconcile_history_size,
        )

        def stats_sources() -> List[StatsSource]:
            return build_dashboard_sources(
                session_maker,
                registry,
                count_tables=settings.dashboard_count_tables,
                pending_table=settings.pending_approvals_table,
            )

        return cls(
            registry,
            catalog,
            audit,
            engine,
            reconcile_interval=settings.reconcile_interval_seconds,
            stats_sources=stats_sources,
            stats_timeout=settings.stats_source_timeout_seconds,
            default_module_id=settings.default_module_id,
            locator_param=settings.locator_param,
        )

    # -- lifecycle -------------------------------------------------------

    async def start(self) -> ReconciliationReport:
        """Start the audit flusher, run the first reconciliation, then start the timer."""
        self.audit.start()
        report = await self.engine.reconcile()
        self.scheduler.start()
        logger.info(
            "Admin console started",
            extra={"module_count": len(self.registry), "conflicts": len(report.conflicts)},
        )
        return report

    async def stop(self) -> None:
        await self.scheduler.stop()
        await self.audit.stop()
        self._sessions.clear()
        logger.info("Admin console stopped")

    # -- sessions --------------------------------------------------------

    def open_session(
        self,
        actor: Actor,
        locator: Optional[str] = None,
        session_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> ConsoleSession:
        """
        Resolve the actor's capabilities and mount a router.

        An actor whose role grants no capability cannot open the console.
        A session with expires_at is dropped once that moment passes.

        Raises:
            PermissionDenied: empty capability set
        """
        self._prune_expired()
        capabilities = self.resolver.resolve(actor.role)
        if not capabilities:
            logger.warning("Console access denied", extra={"role": actor.role})
            self.audit.record(
                actor.id,
                CONSOLE_MODULE_ID,
                AuditAction.DENIED.value,
                {"reason": "no capabilities", "role": actor.role},
            )
            raise PermissionDenied(CONSOLE_MODULE_ID)

        router = ModuleRouter(
            actor,
            capabilities,
            self.registry,
            self.audit,
            default_module_id=self.default_module_id,
            locator_param=self.locator_param,
            base_path=self.base_path,
        )
        session = ConsoleSession(
            session_id or uuid.uuid4().hex,
            actor,
            capabilities,
            router,
            self.catalog,
            self.audit,
            expires_at=expires_at,
        )
        router.mount(locator)
        self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> Optional[ConsoleSession]:
        self._prune_expired()
        return self._sessions.get(session_id)

    def close_session(self, session_id: str) -> bool:
        """Sign out. Returns False when no such session is open."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        self.audit.record(session.actor.id, CONSOLE_MODULE_ID, AuditAction.SIGNED_OUT.value)
        return True

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def _prune_expired(self) -> None:
        now = self.clock()
        expired = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
        for sid in expired:
            session = self._sessions.pop(sid)
            logger.debug("Console session expired", extra={"actor_id": session.actor.id})

    # -- operator actions ------------------------------------------------

    async def force_reconcile(self, actor: Actor) -> ReconciliationReport:
        """
        Operator trigger. Joins an in-flight pass if one is running.

        Raises:
            PermissionDenied: actor lacks the "all" capability
        """
        capabilities = self.resolver.resolve(actor.role)
        if not PermissionResolver.is_allowed(capabilities, ALL):
            self.audit.record(
                actor.id,
                RECONCILE_MODULE_ID,
                AuditAction.DENIED.value,
                {"reason": "missing capability", "required_capability": ALL},
            )
            raise PermissionDenied(RECONCILE_MODULE_ID, ALL)

        report = await self.engine.reconcile()
        self.audit.record(
            actor.id,
            RECONCILE_MODULE_ID,
            AuditAction.FORCE_RECONCILE.value,
            {"run_at": report.run_at, "conflicts": len(report.conflicts)},
        )
        return report

    async def collect_stats(self, session: ConsoleSession) -> PartialResult:
        """
        Dashboard figures for a session that may open the default module.

        Raises:
            PermissionDenied: the session cannot access the default module
        """
        descriptor = self.registry.get(self.default_module_id)
        if not session.router.can_access(descriptor):
            raise PermissionDenied(descriptor.id, descriptor.required_capability)
        return await self.stats.collect(self._stats_sources())
