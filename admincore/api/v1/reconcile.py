"""
Reconciliation endpoints.
"""

from fastapi import APIRouter, Query

from admincore.api.deps import Console, CurrentSession
from admincore.schemas.reconciliation import ReconciliationReportResponse, ReportListResponse

router = APIRouter()


@router.post("", response_model=ReconciliationReportResponse)
async def force_reconcile(session: CurrentSession, console: Console):
    """
    Operator trigger; requires the "all" capability.

    Joins the in-flight pass when one is already running.
    """
    report = await console.force_reconcile(session.actor)
    return ReconciliationReportResponse.model_validate(report)


@router.get("/reports", response_model=ReportListResponse)
async def recent_reports(
    _: CurrentSession,
    console: Console,
    limit: int = Query(20, ge=1, le=200),
    persisted: bool = Query(False, description="Read from the report store instead of memory"),
):
    """Most recent reports, newest first."""
    engine = console.engine
    if persisted and engine.store is not None:
        reports = await engine.store.recent(limit)
        source = "store"
    else:
        reports = engine.history[:limit]
        source = "memory"
    return ReportListResponse(
        items=[ReconciliationReportResponse.model_validate(r) for r in reports],
        source=source,
    )
