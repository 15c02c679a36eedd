"""
Audit trail endpoints.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from admincore.api.deps import AdminSession, Console
from admincore.kernel.events.audit_types import AuditFilter
from admincore.schemas.audit import AuditEntryResponse, AuditListResponse

router = APIRouter()


@router.get("", response_model=AuditListResponse)
async def query_audit(
    _: AdminSession,
    console: Console,
    actor_id: Optional[str] = None,
    module_id: Optional[str] = None,
    action: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=1000),
    newest_first: bool = False,
):
    """
    Audit entries, including ones not yet flushed.

    Oldest first by default; newest_first=true returns the most recent
    entries first, so limit keeps the latest activity.
    """
    audit_filter = AuditFilter(
        actor_id=actor_id,
        module_id=module_id,
        action=action,
        since=since,
        until=until,
        limit=limit,
        newest_first=newest_first,
    )
    items = [
        AuditEntryResponse.model_validate(entry)
        async for entry in console.audit.query(audit_filter)
    ]
    return AuditListResponse(
        items=items,
        count=len(items),
        pending=console.audit.pending,
        dropped=console.audit.dropped,
    )
