"""
Reconciliation engine ("auto-sync").

Compares the modules the registry declares with the modules compiled
into the running shell and records drift. The timer and the operator
trigger share one reconcile() entry point; a call made while a pass is
in flight joins that pass instead of starting another one.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, List, Optional, Tuple

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admincore.errors import ModuleInstantiationFailure
from admincore.kernel.models.reconciliation_log import ReconciliationLog
from admincore.kernel.registry.descriptors import ModuleDescriptor, ModuleStatus
from admincore.kernel.registry.module_registry import ModuleRegistry
from admincore.logging_config import get_logger
from admincore.plugins.catalog import ModuleCatalog

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ModuleConflict:
    """A module whose declared status differs from what the pass observed."""

    module_id: str
    declared_status: ModuleStatus
    observed_status: ModuleStatus
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "module_id": self.module_id,
            "declared_status": self.declared_status.value,
            "observed_status": self.observed_status.value,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ModuleConflict":
        return cls(
            module_id=data["module_id"],
            declared_status=ModuleStatus(data["declared_status"]),
            observed_status=ModuleStatus(data["observed_status"]),
            reason=data.get("reason"),
        )


@dataclass(frozen=True)
class ReconciliationReport:
    run_at: datetime
    conflicts: Tuple[ModuleConflict, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "run_at": self.run_at.isoformat(),
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


class ReportStore(ABC):
    """Append-only destination for reconciliation reports."""

    @abstractmethod
    async def save(self, report: ReconciliationReport) -> None:
        pass

    @abstractmethod
    async def recent(self, limit: int = 20) -> List[ReconciliationReport]:
        """Most recent reports, newest first."""
        pass


class SqlReportStore(ReportStore):
    """Reports in the reconciliation_reports table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def save(self, report: ReconciliationReport) -> None:
        async with self.session_maker() as session:
            session.add(
                ReconciliationLog(
                    run_at=report.run_at,
                    conflicts_json=[c.to_dict() for c in report.conflicts],
                )
            )
            await session.commit()

    async def recent(self, limit: int = 20) -> List[ReconciliationReport]:
        query = (
            select(ReconciliationLog)
            .order_by(desc(ReconciliationLog.run_at), desc(ReconciliationLog.id))
            .limit(limit)
        )
        async with self.session_maker() as session:
            result = await session.execute(query)
            rows = list(result.scalars().all())

        reports = []
        for row in rows:
            run_at = row.run_at
            if run_at.tzinfo is None:
                run_at = run_at.replace(tzinfo=timezone.utc)
            reports.append(
                ReconciliationReport(
                    run_at=run_at,
                    conflicts=tuple(ModuleConflict.from_dict(c) for c in row.conflicts_json or []),
                )
            )
        return reports


class ReconciliationEngine:
    """
    The only writer of descriptor status.

    Usage:
        engine = ReconciliationEngine(registry, catalog, store=SqlReportStore(session_maker))
        report = await engine.reconcile()
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        catalog: ModuleCatalog,
        store: Optional[ReportStore] = None,
        check_timeout: float = 5.0,
        history_size: int = 20,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.registry = registry
        self.catalog = catalog
        self.store = store
        self.check_timeout = check_timeout
        self.clock = clock
        self._history: Deque[ReconciliationReport] = deque(maxlen=history_size)
        self._inflight: Optional[asyncio.Task] = None
        self.passes = 0

    @property
    def history(self) -> List[ReconciliationReport]:
        """Most recent in-memory reports, newest first."""
        return list(reversed(self._history))

    @property
    def last_report(self) -> Optional[ReconciliationReport]:
        return self._history[-1] if self._history else None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def reconcile(self) -> ReconciliationReport:
        """
        Run a pass, or join the one already running.

        The pass runs as its own task; cancelling a caller does not cancel
        the pass.
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._run_pass(), name="reconciliation-pass")
        return await asyncio.shield(self._inflight)

    async def drain(self) -> None:
        """Wait for an in-flight pass, if any, to finish."""
        if self.in_flight:
            try:
                await asyncio.shield(self._inflight)
            except Exception:
                logger.exception("In-flight reconciliation failed during drain")

    async def _run_pass(self) -> ReconciliationReport:
        started = time.perf_counter()
        self.passes += 1
        run_at = self.clock()
        descriptors = self.registry.list()

        observations = await asyncio.gather(*(self._observe(d) for d in descriptors))
        observed: Dict[str, Tuple[ModuleStatus, Optional[str]]] = {
            d.id: obs for d, obs in zip(descriptors, observations)
        }
        self._apply_dependencies(descriptors, observed)

        conflicts: List[ModuleConflict] = []
        for descriptor in descriptors:
            status, reason = observed[descriptor.id]
            if status != descriptor.status:
                conflicts.append(
                    ModuleConflict(
                        module_id=descriptor.id,
                        declared_status=descriptor.status,
                        observed_status=status,
                        reason=reason,
                    )
                )
            self.registry.update_status(descriptor.id, status, run_at)

        report = ReconciliationReport(run_at=run_at, conflicts=tuple(conflicts))
        self._history.append(report)

        if self.store is not None:
            try:
                await self.store.save(report)
            except Exception as e:
                logger.warning(
                    "Could not persist reconciliation report",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )

        logger.info(
            "Reconciliation finished",
            extra={
                "modules_checked": len(descriptors),
                "conflicts": len(conflicts),
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        return report

    async def _observe(self, descriptor: ModuleDescriptor) -> Tuple[ModuleStatus, Optional[str]]:
        """Observed status of one module. Never raises."""
        handle = self.catalog.get(descriptor.id)
        if handle is None:
            return ModuleStatus.INACTIVE, "absent from build"

        try:
            await asyncio.wait_for(handle.probe(), timeout=self.check_timeout)
        except asyncio.TimeoutError:
            failure = ModuleInstantiationFailure(
                descriptor.id, f"probe timed out after {self.check_timeout}s"
            )
        except Exception as e:
            failure = ModuleInstantiationFailure(descriptor.id, f"{type(e).__name__}: {e}")
        else:
            return ModuleStatus.ACTIVE, None

        logger.warning(
            "Module failed instantiation check",
            extra={"module_id": descriptor.id, "reason": failure.reason},
        )
        return ModuleStatus.BROKEN, failure.reason

    @staticmethod
    def _apply_dependencies(
        descriptors: List[ModuleDescriptor],
        observed: Dict[str, Tuple[ModuleStatus, Optional[str]]],
    ) -> None:
        """A present module whose dependency is not active is broken. Iterates to a fixpoint."""
        changed = True
        while changed:
            changed = False
            for descriptor in descriptors:
                status, _ = observed[descriptor.id]
                if status != ModuleStatus.ACTIVE:
                    continue
                for dependency in descriptor.dependencies:
                    dep_status = observed.get(dependency, (None, None))[0]
                    if dep_status != ModuleStatus.ACTIVE:
                        observed[descriptor.id] = (
                            ModuleStatus.BROKEN,
                            f"dependency {dependency!r} unavailable",
                        )
                        changed = True
                        break


class ReconciliationScheduler:
    """Runs engine.reconcile() every `interval` seconds until stopped."""

    def __init__(self, engine: ReconciliationEngine, interval: float = 30.0):
        self.engine = engine
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="reconciliation-timer")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        # A pass that was already running finishes; it is never cut short
        await self.engine.drain()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.engine.reconcile()
            except Exception:
                logger.exception("Scheduled reconciliation failed")
