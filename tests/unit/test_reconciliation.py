"""Unit tests for the reconciliation engine and its scheduler."""

import asyncio
import time

import pytest

from admincore.kernel.registry import ModuleRegistry, ModuleStatus
from admincore.orchestration.reconciliation import (
    ReconciliationEngine,
    ReconciliationScheduler,
    ReportStore,
)
from admincore.plugins import CallableModule, ModuleCatalog


def _view(context):
    return {"module_id": context.module_id}


def _catalog(*ids, **overrides) -> ModuleCatalog:
    handles = [overrides.get(i) or CallableModule(i, _view) for i in ids]
    return ModuleCatalog(handles)


class RecordingStore(ReportStore):
    def __init__(self, fail: bool = False):
        self.saved = []
        self.fail = fail

    async def save(self, report):
        if self.fail:
            raise RuntimeError("store offline")
        self.saved.append(report)

    async def recent(self, limit=20):
        return list(reversed(self.saved))[:limit]


@pytest.fixture
def legacy_registry() -> ModuleRegistry:
    return ModuleRegistry.from_manifest([
        {"id": "dashboard", "display_name": "Dashboard"},
        {"id": "legacy", "display_name": "Legacy", "required_capability": "content"},
    ])


class TestReconcile:
    @pytest.mark.asyncio
    async def test_missing_module_becomes_inactive(self, legacy_registry):
        engine = ReconciliationEngine(legacy_registry, _catalog("dashboard"))

        report = await engine.reconcile()

        assert legacy_registry.get("legacy").status == ModuleStatus.INACTIVE
        assert len(report.conflicts) == 1
        conflict = report.conflicts[0]
        assert conflict.module_id == "legacy"
        assert conflict.declared_status == ModuleStatus.ACTIVE
        assert conflict.observed_status == ModuleStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_in_sync_has_no_conflicts_but_stamps_sync_time(self, legacy_registry):
        engine = ReconciliationEngine(legacy_registry, _catalog("dashboard", "legacy"))

        report = await engine.reconcile()

        assert report.conflicts == ()
        for descriptor in legacy_registry.list():
            assert descriptor.last_synced_at == report.run_at

    @pytest.mark.asyncio
    async def test_failing_module_is_broken_and_others_still_checked(self, legacy_registry):
        def explode(context):
            raise RuntimeError("missing config")

        catalog = _catalog("dashboard", "legacy", legacy=CallableModule("legacy", explode))
        engine = ReconciliationEngine(legacy_registry, catalog)

        report = await engine.reconcile()

        assert legacy_registry.get("legacy").status == ModuleStatus.BROKEN
        assert legacy_registry.get("dashboard").status == ModuleStatus.ACTIVE
        assert "missing config" in report.conflicts[0].reason

    @pytest.mark.asyncio
    async def test_slow_probe_times_out_as_broken(self, legacy_registry):
        async def hang():
            await asyncio.sleep(10)

        slow = CallableModule("legacy", _view, probe=hang)
        engine = ReconciliationEngine(
            legacy_registry,
            _catalog("dashboard", "legacy", legacy=slow),
            check_timeout=0.05,
        )

        report = await engine.reconcile()

        assert legacy_registry.get("legacy").status == ModuleStatus.BROKEN
        assert "timed out" in report.conflicts[0].reason

    @pytest.mark.asyncio
    async def test_blocking_factory_times_out_without_stalling_pass(self, legacy_registry):
        def blocking(context):
            time.sleep(0.5)
            return {}

        engine = ReconciliationEngine(
            legacy_registry,
            _catalog("dashboard", "legacy", legacy=CallableModule("legacy", blocking)),
            check_timeout=0.05,
        )

        started = time.monotonic()
        report = await engine.reconcile()
        elapsed = time.monotonic() - started

        assert elapsed < 0.4
        assert legacy_registry.get("legacy").status == ModuleStatus.BROKEN
        assert legacy_registry.get("dashboard").status == ModuleStatus.ACTIVE
        assert "timed out" in report.conflicts[0].reason

    @pytest.mark.asyncio
    async def test_recovery_reported_as_conflict(self, legacy_registry):
        engine = ReconciliationEngine(legacy_registry, _catalog("dashboard"))
        await engine.reconcile()

        engine.catalog = _catalog("dashboard", "legacy")
        report = await engine.reconcile()

        assert legacy_registry.get("legacy").status == ModuleStatus.ACTIVE
        assert report.conflicts[0].declared_status == ModuleStatus.INACTIVE
        assert report.conflicts[0].observed_status == ModuleStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_module_with_missing_dependency_is_broken(self):
        registry = ModuleRegistry.from_manifest([
            {"id": "company-directory", "display_name": "Companies"},
            {"id": "billionaire-tracker", "display_name": "Billionaires",
             "dependencies": ["company-directory"]},
            {"id": "fan-page", "display_name": "Fan Page", "dependencies": ["billionaire-tracker"]},
        ])
        engine = ReconciliationEngine(registry, _catalog("billionaire-tracker", "fan-page"))

        await engine.reconcile()

        assert registry.get("company-directory").status == ModuleStatus.INACTIVE
        assert registry.get("billionaire-tracker").status == ModuleStatus.BROKEN
        assert registry.get("fan-page").status == ModuleStatus.BROKEN

    @pytest.mark.asyncio
    async def test_default_manifest_in_sync_with_stock_catalog(self, default_registry):
        from admincore.kernel.registry import DEFAULT_MANIFEST, parse_manifest
        from admincore.plugins import build_default_catalog

        engine = ReconciliationEngine(default_registry, build_default_catalog(parse_manifest(DEFAULT_MANIFEST)))
        report = await engine.reconcile()
        assert report.conflicts == ()


class TestCoalescing:
    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_pass(self, legacy_registry):
        gate = asyncio.Event()

        async def wait_for_gate():
            await gate.wait()

        gated = CallableModule("legacy", _view, probe=wait_for_gate)
        engine = ReconciliationEngine(legacy_registry, _catalog("dashboard", "legacy", legacy=gated))

        first = asyncio.create_task(engine.reconcile())
        second = asyncio.create_task(engine.reconcile())
        await asyncio.sleep(0.01)
        assert engine.in_flight
        gate.set()
        report_a, report_b = await asyncio.gather(first, second)

        assert engine.passes == 1
        assert report_a is report_b

    @pytest.mark.asyncio
    async def test_sequential_calls_run_separate_passes(self, legacy_registry):
        engine = ReconciliationEngine(legacy_registry, _catalog("dashboard", "legacy"))
        first = await engine.reconcile()
        second = await engine.reconcile()
        assert engine.passes == 2
        assert first is not second

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_pass(self, legacy_registry):
        gate = asyncio.Event()

        async def wait_for_gate():
            await gate.wait()

        gated = CallableModule("legacy", _view, probe=wait_for_gate)
        engine = ReconciliationEngine(legacy_registry, _catalog("dashboard", "legacy", legacy=gated))

        caller = asyncio.create_task(engine.reconcile())
        await asyncio.sleep(0.01)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        assert engine.in_flight
        gate.set()
        await engine.drain()
        assert engine.last_report is not None
        assert engine.passes == 1


class TestHistoryAndStore:
    @pytest.mark.asyncio
    async def test_history_is_bounded(self, legacy_registry):
        engine = ReconciliationEngine(legacy_registry, _catalog("dashboard"), history_size=2)
        reports = [await engine.reconcile() for _ in range(3)]
        assert engine.history == [reports[2], reports[1]]

    @pytest.mark.asyncio
    async def test_reports_persisted(self, legacy_registry):
        store = RecordingStore()
        engine = ReconciliationEngine(legacy_registry, _catalog("dashboard"), store=store)
        report = await engine.reconcile()
        assert store.saved == [report]

    @pytest.mark.asyncio
    async def test_store_failure_does_not_fail_pass(self, legacy_registry):
        engine = ReconciliationEngine(legacy_registry, _catalog("dashboard"), store=RecordingStore(fail=True))
        report = await engine.reconcile()
        assert len(report.conflicts) == 1
        assert engine.last_report is report


class TestScheduler:
    @pytest.mark.asyncio
    async def test_runs_on_interval_until_stopped(self, legacy_registry):
        engine = ReconciliationEngine(legacy_registry, _catalog("dashboard", "legacy"))
        scheduler = ReconciliationScheduler(engine, interval=0.01)

        scheduler.start()
        for _ in range(100):
            if engine.passes >= 2:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()

        assert engine.passes >= 2
        assert not scheduler.running
        passes = engine.passes
        await asyncio.sleep(0.05)
        assert engine.passes == passes
