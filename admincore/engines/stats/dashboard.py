"""
Dashboard figures, each one an independent StatsSource.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Mapping, Optional

from sqlalchemy import column, func, select, table
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admincore.engines.stats.aggregator import StatsSource
from admincore.kernel.models.audit_log import AuditLog
from admincore.kernel.registry.descriptors import ModuleStatus
from admincore.kernel.registry.module_registry import ModuleRegistry


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def table_count_source(
    session_maker: async_sessionmaker[AsyncSession],
    field: str,
    table_name: str,
    status: Optional[str] = None,
    timeout: Optional[float] = None,
) -> StatsSource:
    """Row count of an arbitrary table, optionally restricted to one status value."""

    async def count() -> int:
        target = table(table_name, column("status"))
        query = select(func.count()).select_from(target)
        if status is not None:
            query = query.where(target.c.status == status)
        async with session_maker() as session:
            result = await session.execute(query)
            return int(result.scalar_one())

    return StatsSource(field=field, query=count, default=0, timeout=timeout)


def audit_volume_source(
    session_maker: async_sessionmaker[AsyncSession],
    window: timedelta = timedelta(hours=24),
    field: str = "audit_entries_24h",
    clock: Callable[[], datetime] = _utcnow,
) -> StatsSource:
    """Audit entries persisted within the trailing window."""

    async def count() -> int:
        since = clock() - window
        query = select(func.count(AuditLog.id)).where(AuditLog.created_at >= since)
        async with session_maker() as session:
            result = await session.execute(query)
            return int(result.scalar_one())

    return StatsSource(field=field, query=count, default=0)


def system_health_source(registry: ModuleRegistry, field: str = "system_health") -> StatsSource:
    """Percentage of declared modules reconciliation last observed as active."""

    async def health() -> int:
        descriptors = registry.list()
        if not descriptors:
            return 0
        active = sum(1 for d in descriptors if d.status == ModuleStatus.ACTIVE)
        return round(100 * active / len(descriptors))

    return StatsSource(field=field, query=health, default=0)


def build_dashboard_sources(
    session_maker: async_sessionmaker[AsyncSession],
    registry: ModuleRegistry,
    count_tables: Mapping[str, str],
    pending_table: Optional[str] = None,
) -> List[StatsSource]:
    """
    The dashboard's figures.

    count_tables maps a result field to the table it counts, e.g.
    {"total_polls": "polls"}. pending_table, when set, is counted for rows
    with status = 'pending' under "pending_approvals".
    """
    sources = [
        table_count_source(session_maker, field, table_name)
        for field, table_name in count_tables.items()
    ]
    if pending_table:
        sources.append(
            table_count_source(session_maker, "pending_approvals", pending_table, status="pending")
        )
    sources.append(audit_volume_source(session_maker))
    sources.append(system_health_source(registry))
    return sources
