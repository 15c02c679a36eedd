"""
Audit trail infrastructure.

Append-only audit entries, a bounded retrying buffer, and the sinks
entries are flushed to.
"""

from admincore.kernel.events.audit_logger import AuditLogger
from admincore.kernel.events.audit_types import AuditEntry, AuditFilter
from admincore.kernel.events.sinks import AuditSink, SqlAuditSink

__all__ = [
    "AuditLogger",
    "AuditEntry",
    "AuditFilter",
    "AuditSink",
    "SqlAuditSink",
]
