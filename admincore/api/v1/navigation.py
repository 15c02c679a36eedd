"""
Navigation endpoints.

Denied and unknown targets answer 403/404 and still carry the session's
navigation state, which the router left unchanged apart from the DENIED
phase marker.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from admincore.api.deps import CurrentSession
from admincore.orchestration.navigation import NavigationOutcome, NavigationResult
from admincore.schemas.navigation import (
    LocatorRequest,
    ModuleViewResponse,
    NavigateRequest,
    NavigationResponse,
    NavigationStateResponse,
)

router = APIRouter()

_ERROR_STATUS = {
    NavigationOutcome.DENIED: status.HTTP_403_FORBIDDEN,
    NavigationOutcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


async def _respond(session, result: NavigationResult):
    response = NavigationResponse(
        outcome=result.outcome,
        state=NavigationStateResponse.model_validate(result.state),
        detail=str(result.error) if result.error else None,
    )
    if result.ok:
        response.view = ModuleViewResponse.model_validate(await session.render_active())
        return response
    return JSONResponse(
        status_code=_ERROR_STATUS.get(result.outcome, status.HTTP_400_BAD_REQUEST),
        content=response.model_dump(mode="json"),
    )


@router.get("", response_model=NavigationResponse)
async def get_navigation(session: CurrentSession):
    """Current navigation state and the view for the content area."""
    return NavigationResponse(
        state=NavigationStateResponse.model_validate(session.state),
        view=ModuleViewResponse.model_validate(await session.render_active()),
    )


@router.post("", response_model=NavigationResponse)
async def navigate(data: NavigateRequest, session: CurrentSession):
    """
    Navigate to a module.

    Re-navigating to the active module re-issues its locator.
    """
    return await _respond(session, session.navigate(data.module_id))


@router.post("/locator", response_model=NavigationResponse)
async def follow_locator(data: LocatorRequest, session: CurrentSession):
    """Follow an external locator change (back/forward or a pasted link)."""
    return await _respond(session, session.navigate_to_locator(data.locator))
