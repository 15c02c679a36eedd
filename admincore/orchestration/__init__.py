"""
Orchestration layer - navigation, reconciliation and the console facade.
"""

from admincore.orchestration.console import AdminConsole, ConsoleSession, ModuleView, ViewKind
from admincore.orchestration.navigation import (
    ModuleRouter,
    NavigationOutcome,
    NavigationPhase,
    NavigationResult,
    NavigationState,
    build_locator,
    module_from_locator,
)
from admincore.orchestration.reconciliation import (
    ModuleConflict,
    ReconciliationEngine,
    ReconciliationReport,
    ReconciliationScheduler,
    ReportStore,
    SqlReportStore,
)

__all__ = [
    "AdminConsole",
    "ConsoleSession",
    "ModuleView",
    "ViewKind",
    "ModuleRouter",
    "NavigationOutcome",
    "NavigationPhase",
    "NavigationResult",
    "NavigationState",
    "build_locator",
    "module_from_locator",
    "ModuleConflict",
    "ReconciliationEngine",
    "ReconciliationReport",
    "ReconciliationScheduler",
    "ReportStore",
    "SqlReportStore",
]
