"""
Audit trail schemas.
"""

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    actor_id: str
    module_id: str
    action: str
    detail: Dict[str, Any] = {}
    timestamp: datetime


class AuditListResponse(BaseModel):
    items: List[AuditEntryResponse]
    count: int
    pending: int = 0
    dropped: int = 0
