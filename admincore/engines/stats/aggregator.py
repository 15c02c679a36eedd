"""
Stats aggregator - best-effort fan-out over independent count queries.

Every source runs concurrently under its own timeout. A failing source
contributes its default value and marks the result degraded; collect()
itself never raises.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from admincore.errors import StatsSourceFailure
from admincore.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StatsSource:
    """One independent figure: a field name and the coroutine that computes it."""

    field: str
    query: Callable[[], Awaitable[Any]]
    default: Any = 0
    timeout: Optional[float] = None


class PartialResult(BaseModel):
    """Aggregated figures; `degraded` is set when any source fell back to its default."""

    values: Dict[str, Any] = Field(default_factory=dict)
    degraded: bool = False
    failures: Dict[str, str] = Field(default_factory=dict)


class StatsAggregator:
    """
    Usage:
        aggregator = StatsAggregator(default_timeout=3.0)
        result = await aggregator.collect(sources)
        if result.degraded:
            ...
    """

    def __init__(self, default_timeout: float = 3.0):
        self.default_timeout = default_timeout

    async def collect(self, sources: Iterable[StatsSource]) -> PartialResult:
        sources = list(sources)
        outcomes = await asyncio.gather(
            *(self._run(source) for source in sources),
            return_exceptions=True,
        )

        values: Dict[str, Any] = {}
        failures: Dict[str, str] = {}
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, BaseException):
                reason = outcome.reason if isinstance(outcome, StatsSourceFailure) else repr(outcome)
                values[source.field] = source.default
                failures[source.field] = reason
                continue
            values[source.field] = outcome

        if failures:
            logger.warning(
                "Stats collected with %d failed source(s)",
                len(failures),
                extra={"failed_fields": sorted(failures)},
            )
        return PartialResult(values=values, degraded=bool(failures), failures=failures)

    async def _run(self, source: StatsSource) -> Any:
        timeout = source.timeout if source.timeout is not None else self.default_timeout
        try:
            return await asyncio.wait_for(source.query(), timeout=timeout)
        except asyncio.TimeoutError:
            raise StatsSourceFailure(source.field, f"timed out after {timeout}s") from None
        except Exception as e:
            raise StatsSourceFailure(source.field, f"{type(e).__name__}: {e}") from e


async def collect(sources: List[StatsSource], default_timeout: float = 3.0) -> PartialResult:
    """Run one fan-out with a throwaway aggregator."""
    return await StatsAggregator(default_timeout).collect(sources)
