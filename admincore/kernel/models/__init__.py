"""
Kernel Data Models

SQLAlchemy models for the two append-only stores: audit entries and
reconciliation reports. Module descriptors live in memory in the registry.
"""

from admincore.kernel.models.base import Base
from admincore.kernel.models.audit_log import AuditAction, AuditLog
from admincore.kernel.models.reconciliation_log import ReconciliationLog

__all__ = [
    "Base",
    "AuditAction",
    "AuditLog",
    "ReconciliationLog",
]
