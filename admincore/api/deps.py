"""
FastAPI dependencies for authentication, console sessions and authorization.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from admincore.errors import PermissionDenied
from admincore.kernel.identity.jwt import AccessTokenPayload, verify_access_token
from admincore.kernel.models.audit_log import AuditAction
from admincore.kernel.permissions.capabilities import ALL
from admincore.kernel.permissions.permission_service import PermissionResolver
from admincore.logging_config import actor_id_var
from admincore.orchestration.console import CONSOLE_MODULE_ID, AdminConsole, ConsoleSession

# Security scheme
security = HTTPBearer(auto_error=False)

# Optional header carrying the shell's current locator when a session is first opened
LOCATOR_HEADER = "X-Console-Locator"


def get_console(request: Request) -> AdminConsole:
    """The console built by the application lifespan."""
    console = getattr(request.app.state, "console", None)
    if console is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Console not started",
        )
    return console


Console = Annotated[AdminConsole, Depends(get_console)]


async def get_token_payload(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AccessTokenPayload:
    """Verified bearer token or 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    actor_id_var.set(payload.sub)
    return payload


TokenPayload = Annotated[AccessTokenPayload, Depends(get_token_payload)]


async def get_console_session(
    request: Request,
    payload: TokenPayload,
    console: Console,
) -> ConsoleSession:
    """
    The navigation session bound to this token, opened on first use.

    Sessions are keyed by the token id, so re-authenticating (a new token)
    starts a fresh session with a freshly resolved capability set. The
    session expires with the token.
    """
    session = console.get_session(payload.jti)
    if session is not None:
        return session

    try:
        return console.open_session(
            payload.to_actor(),
            locator=request.headers.get(LOCATOR_HEADER),
            session_id=payload.jti,
            expires_at=payload.exp,
        )
    except PermissionDenied:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Console access requires an administrative role",
        )


CurrentSession = Annotated[ConsoleSession, Depends(get_console_session)]


async def require_all(session: CurrentSession) -> ConsoleSession:
    """Session whose capability set holds the "all" wildcard, or 403."""
    if not PermissionResolver.is_allowed(session.capabilities, ALL):
        session.audit.record(
            session.actor.id,
            CONSOLE_MODULE_ID,
            AuditAction.DENIED.value,
            {"reason": "missing capability", "required_capability": ALL},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Requires the 'all' capability",
        )
    return session


AdminSession = Annotated[ConsoleSession, Depends(require_all)]
