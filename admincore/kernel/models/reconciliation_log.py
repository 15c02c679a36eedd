"""
Persisted reconciliation reports, one row per auto-sync pass.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from admincore.kernel.models.base import Base


class ReconciliationLog(Base):
    """Schema: (id, run_at, conflicts_json). Append-only."""

    __tablename__ = "reconciliation_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    conflicts_json: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<ReconciliationLog {self.run_at.isoformat()} conflicts={len(self.conflicts_json)}>"
