"""
Pydantic schemas for API request/response validation.
"""

from admincore.schemas.audit import AuditEntryResponse, AuditListResponse
from admincore.schemas.common import HealthResponse, SuccessResponse
from admincore.schemas.modules import ActivityRequest, ModuleListResponse, ModuleResponse
from admincore.schemas.navigation import (
    LocatorRequest,
    ModuleViewResponse,
    NavigateRequest,
    NavigationResponse,
    NavigationStateResponse,
)
from admincore.schemas.reconciliation import (
    ConflictResponse,
    ReconciliationReportResponse,
    ReportListResponse,
)
from admincore.schemas.stats import StatsResponse

__all__ = [
    "AuditEntryResponse",
    "AuditListResponse",
    "HealthResponse",
    "SuccessResponse",
    "ActivityRequest",
    "ModuleListResponse",
    "ModuleResponse",
    "LocatorRequest",
    "ModuleViewResponse",
    "NavigateRequest",
    "NavigationResponse",
    "NavigationStateResponse",
    "ConflictResponse",
    "ReconciliationReportResponse",
    "ReportListResponse",
    "StatsResponse",
]
