"""
Audit logger - buffered, append-only recorder of administrative actions.

append() never blocks and never raises. Entries wait in a bounded
in-memory buffer until the background flusher hands them to the sink.
When the sink is down the buffer keeps growing up to its capacity; past
that the OLDEST entry is dropped, counted, and reported as a warning.
"""

import asyncio
from collections import deque
from typing import Any, AsyncIterator, Deque, Dict, List, Optional

from admincore.kernel.events.audit_types import AuditEntry, AuditFilter
from admincore.kernel.events.sinks import AuditSink
from admincore.logging_config import get_logger

logger = get_logger(__name__)


class AuditLogger:
    """
    Usage:
        audit = AuditLogger(SqlAuditSink(session_maker), capacity=1000)
        audit.start()
        audit.record(actor.id, "polls-system", "navigated", {"locator": "/admin?module=polls-system"})
        ...
        await audit.stop()
    """

    def __init__(
        self,
        sink: AuditSink,
        capacity: int = 1000,
        retry_interval: float = 5.0,
        batch_size: int = 200,
    ):
        if capacity < 1:
            raise ValueError("audit buffer capacity must be at least 1")
        self.sink = sink
        self.capacity = capacity
        self.retry_interval = retry_interval
        self.batch_size = batch_size

        self._buffer: Deque[AuditEntry] = deque()
        self._in_flight: List[AuditEntry] = []
        self._flushing = False
        self._wakeup: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

        self.dropped = 0
        self.sink_failures = 0

    # -- write side ------------------------------------------------------

    def append(self, entry: AuditEntry) -> None:
        """Queue an entry for the sink. Fire-and-forget."""
        self._buffer.append(entry)
        self._enforce_capacity()
        if self._wakeup is not None:
            self._wakeup.set()

    def record(
        self,
        actor_id: str,
        module_id: str,
        action: str,
        detail: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        """Build and append an entry in one call."""
        entry = AuditEntry(
            actor_id=actor_id,
            module_id=module_id,
            action=action,
            detail=detail or {},
        )
        self.append(entry)
        return entry

    @property
    def pending(self) -> int:
        """Entries not yet confirmed by the sink."""
        return len(self._buffer) + len(self._in_flight)

    def pending_entries(self) -> List[AuditEntry]:
        """Snapshot of unconfirmed entries, oldest first."""
        return list(self._in_flight) + list(self._buffer)

    async def flush(self) -> int:
        """
        Drain the buffer into the sink.

        Returns the number of entries the sink accepted. A sink failure puts
        the batch back at the head of the buffer and stops this drain; the
        background flusher retries after retry_interval.
        """
        if self._flushing:
            return 0
        self._flushing = True
        written = 0
        try:
            while self._buffer:
                batch = [self._buffer.popleft() for _ in range(min(self.batch_size, len(self._buffer)))]
                self._in_flight = batch
                try:
                    await self.sink.write(batch)
                except asyncio.CancelledError:
                    self._in_flight = []
                    self._requeue(batch)
                    raise
                except Exception as e:
                    # Any sink error counts as unavailability; the entries go back
                    self._in_flight = []
                    self._requeue(batch)
                    self.sink_failures += 1
                    logger.warning(
                        "Audit sink unavailable; %d entries buffered",
                        len(self._buffer),
                        extra={
                            "error": str(e),
                            "error_type": type(e).__name__,
                            "dropped_total": self.dropped,
                        },
                    )
                    break
                self._in_flight = []
                written += len(batch)
        finally:
            self._flushing = False
        return written

    # -- read side -------------------------------------------------------

    async def query(self, audit_filter: Optional[AuditFilter] = None) -> AsyncIterator[AuditEntry]:
        """
        Lazily yield matching entries, oldest first.

        Persisted entries come from the sink; entries still waiting in the
        buffer follow them so a query right after an action sees it. With
        newest_first the order reverses and buffered entries lead.
        """
        audit_filter = audit_filter or AuditFilter()
        if audit_filter.newest_first:
            async for entry in self._query_newest_first(audit_filter):
                yield entry
            return

        remaining = audit_filter.limit
        unflushed = self.pending_entries()
        # An unflushed entry may reach the sink while we stream from it
        horizon = min((e.timestamp for e in unflushed), default=None)
        seen = set()

        async for entry in self.sink.query(audit_filter):
            if remaining is not None and remaining <= 0:
                return
            if horizon is not None and entry.timestamp >= horizon:
                seen.add(_entry_key(entry))
            yield entry
            if remaining is not None:
                remaining -= 1

        for entry in unflushed:
            if remaining is not None and remaining <= 0:
                return
            if _entry_key(entry) in seen:
                continue
            if audit_filter.matches(entry):
                yield entry
                if remaining is not None:
                    remaining -= 1

    async def _query_newest_first(self, audit_filter: AuditFilter) -> AsyncIterator[AuditEntry]:
        remaining = audit_filter.limit
        unflushed = [e for e in reversed(self.pending_entries()) if audit_filter.matches(e)]
        seen = set()

        for entry in unflushed:
            if remaining is not None and remaining <= 0:
                return
            seen.add(_entry_key(entry))
            yield entry
            if remaining is not None:
                remaining -= 1

        sink_filter = audit_filter
        if audit_filter.limit is not None:
            # Entries flushed mid-query are skipped below, so ask for enough to cover them
            sink_filter = audit_filter.model_copy(update={"limit": audit_filter.limit + len(unflushed)})
        async for entry in self.sink.query(sink_filter):
            if remaining is not None and remaining <= 0:
                return
            if _entry_key(entry) in seen:
                continue
            yield entry
            if remaining is not None:
                remaining -= 1

    # -- background flusher ----------------------------------------------

    def start(self) -> None:
        """Start the background flusher on the running loop."""
        if self._task is not None and not self._task.done():
            return
        self._wakeup = asyncio.Event()
        if self._buffer:
            self._wakeup.set()
        self._task = asyncio.create_task(self._run(), name="audit-flusher")

    async def stop(self) -> None:
        """Stop the flusher and make a final attempt to drain the buffer."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._wakeup = None
        await self.flush()
        if self._buffer:
            logger.warning(
                "Audit logger stopped with %d unflushed entries",
                len(self._buffer),
                extra={"dropped_total": self.dropped},
            )

    async def _run(self) -> None:
        assert self._wakeup is not None
        while True:
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.retry_interval)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()
            failures_before = self.sink_failures
            await self.flush()
            if self.sink_failures != failures_before:
                await asyncio.sleep(self.retry_interval)

    # -- internals -------------------------------------------------------

    def _requeue(self, batch: List[AuditEntry]) -> None:
        self._buffer.extendleft(reversed(batch))
        self._enforce_capacity()

    def _enforce_capacity(self) -> None:
        overflow = len(self._buffer) + len(self._in_flight) - self.capacity
        while overflow > 0 and self._buffer:
            dropped = self._buffer.popleft()
            self.dropped += 1
            overflow -= 1
            logger.warning(
                "Audit buffer full; dropped oldest entry",
                extra={
                    "dropped_action": dropped.action,
                    "dropped_module_id": dropped.module_id,
                    "dropped_total": self.dropped,
                },
            )


def _entry_key(entry: AuditEntry) -> tuple:
    return (entry.actor_id, entry.module_id, entry.action, entry.timestamp)
