"""
Append-only audit trail of administrative actions.

Rows are inserted by the audit logger's sink and never updated or deleted.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from admincore.kernel.models.base import Base


class AuditAction(str, Enum):
    """Actions written by the core itself. Modules may log free-form actions."""

    NAVIGATED = "navigated"
    LOCATOR_UPDATED = "locator_updated"
    DENIED = "denied"
    FORCE_RECONCILE = "force_reconcile"
    SIGNED_OUT = "signed_out"


class AuditLog(Base):
    """
    Persisted audit entry.

    Schema: (id, actor_id, module_id, action, detail_json, created_at).
    """

    __tablename__ = "audit_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    module_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    detail_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    # Set from the entry's own timestamp, not the insert time, so buffered
    # retries keep the moment the action happened.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_audit_entries_actor_time", "actor_id", "created_at"),
        Index("ix_audit_entries_module_time", "module_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.actor_id}@{self.module_id}>"
