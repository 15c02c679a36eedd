"""
Reconciliation report schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from admincore.kernel.registry.descriptors import ModuleStatus


class ConflictResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    module_id: str
    declared_status: ModuleStatus
    observed_status: ModuleStatus
    reason: Optional[str] = None


class ReconciliationReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    run_at: datetime
    conflicts: List[ConflictResponse] = []


class ReportListResponse(BaseModel):
    items: List[ReconciliationReportResponse]
    source: str = "memory"
