"""
Module menu and module activity endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Query, status

from admincore.api.deps import CurrentSession
from admincore.schemas.common import SuccessResponse
from admincore.schemas.modules import ActivityRequest, ModuleListResponse, ModuleResponse

router = APIRouter()


@router.get("", response_model=ModuleListResponse)
async def list_modules(
    session: CurrentSession,
    q: Optional[str] = Query(None, max_length=100, description="Filter on id or display name"),
):
    """Modules the caller may open that are currently active, in menu order."""
    modules = session.visible_modules(q)
    return ModuleListResponse(
        items=[ModuleResponse.model_validate(d) for d in modules],
        total=len(modules),
        query=q,
    )


@router.post(
    "/{module_id}/activity",
    response_model=SuccessResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def report_activity(module_id: str, data: ActivityRequest, session: CurrentSession):
    """
    Record a completed action for the active module.

    Only the session's active module may report activity.
    """
    session.log_activity(module_id, data.action, data.detail)
    return SuccessResponse(message="Activity recorded")
