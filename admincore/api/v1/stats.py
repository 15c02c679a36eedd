"""
Dashboard stats endpoint.
"""

from fastapi import APIRouter

from admincore.api.deps import Console, CurrentSession
from admincore.schemas.stats import StatsResponse

router = APIRouter()


@router.get("", response_model=StatsResponse)
async def dashboard_stats(session: CurrentSession, console: Console):
    """Best-effort dashboard figures; `degraded` is set when any source failed."""
    result = await console.collect_stats(session)
    return StatsResponse(values=result.values, degraded=result.degraded, failures=result.failures)
