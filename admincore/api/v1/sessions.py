"""
Console session endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from admincore.api.deps import Console, CurrentSession, TokenPayload

router = APIRouter()


class SessionResponse(BaseModel):
    session_id: str
    actor_id: str
    role: str
    capabilities: List[str]
    active_module_id: Optional[str] = None


@router.get("", response_model=SessionResponse)
async def get_session(session: CurrentSession):
    """The caller's console session, opened on first use."""
    return SessionResponse(
        session_id=session.session_id,
        actor_id=session.actor.id,
        role=session.actor.role,
        capabilities=sorted(session.capabilities),
        active_module_id=session.state.active_module_id,
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(payload: TokenPayload, console: Console):
    """Close the session bound to this token."""
    console.close_session(payload.jti)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
