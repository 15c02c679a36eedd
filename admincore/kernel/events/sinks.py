"""
Audit sinks - where buffered audit entries end up.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Sequence

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admincore.errors import AuditSinkUnavailable
from admincore.kernel.events.audit_types import AuditEntry, AuditFilter
from admincore.kernel.models.audit_log import AuditLog


class AuditSink(ABC):
    """Append-only destination for audit entries."""

    @abstractmethod
    async def write(self, entries: Sequence[AuditEntry]) -> None:
        """
        Persist a batch atomically.

        Raises:
            AuditSinkUnavailable: when the batch could not be stored
        """

    @abstractmethod
    def query(self, audit_filter: AuditFilter) -> AsyncIterator[AuditEntry]:
        """Stream persisted entries matching the filter, oldest first unless newest_first."""


class SqlAuditSink(AuditSink):
    """
    Audit sink backed by the audit_entries table.

    Usage:
        sink = SqlAuditSink(async_session_maker)
        await sink.write([AuditEntry(actor_id="a1", module_id="polls-system", action="navigated")])
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def write(self, entries: Sequence[AuditEntry]) -> None:
        if not entries:
            return
        rows = [
            AuditLog(
                actor_id=entry.actor_id,
                module_id=entry.module_id,
                action=entry.action,
                detail_json=dict(entry.detail),
                created_at=entry.timestamp,
            )
            for entry in entries
        ]
        try:
            async with self.session_maker() as session:
                session.add_all(rows)
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise AuditSinkUnavailable(f"Audit store rejected batch of {len(rows)}: {e}") from e

    async def query(self, audit_filter: AuditFilter) -> AsyncIterator[AuditEntry]:
        conditions = []
        if audit_filter.actor_id is not None:
            conditions.append(AuditLog.actor_id == audit_filter.actor_id)
        if audit_filter.module_id is not None:
            conditions.append(AuditLog.module_id == audit_filter.module_id)
        if audit_filter.action is not None:
            conditions.append(AuditLog.action == audit_filter.action)
        if audit_filter.since is not None:
            conditions.append(AuditLog.created_at >= audit_filter.since)
        if audit_filter.until is not None:
            conditions.append(AuditLog.created_at <= audit_filter.until)

        stmt = select(AuditLog)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        if audit_filter.newest_first:
            stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        else:
            stmt = stmt.order_by(AuditLog.created_at, AuditLog.id)
        if audit_filter.limit is not None:
            stmt = stmt.limit(audit_filter.limit)

        async with self.session_maker() as session:
            result = await session.stream_scalars(stmt)
            async for row in result:
                yield self._to_entry(row)

    @staticmethod
    def _to_entry(row: AuditLog) -> AuditEntry:
        # SQLite drops tzinfo on the way back; AuditEntry restores UTC
        return AuditEntry(
            actor_id=row.actor_id,
            module_id=row.module_id,
            action=row.action,
            detail=row.detail_json or {},
            timestamp=row.created_at,
        )
