"""
Stats Engine - partial-failure-tolerant dashboard figures.

Components:
1. StatsAggregator - concurrent fan-out with per-source timeouts
2. Dashboard sources - table counts, pending approvals, audit volume, module health
"""

from admincore.engines.stats.aggregator import PartialResult, StatsAggregator, StatsSource, collect
from admincore.engines.stats.dashboard import (
    audit_volume_source,
    build_dashboard_sources,
    system_health_source,
    table_count_source,
)

__all__ = [
    "PartialResult",
    "StatsAggregator",
    "StatsSource",
    "collect",
    "audit_volume_source",
    "build_dashboard_sources",
    "system_health_source",
    "table_count_source",
]
