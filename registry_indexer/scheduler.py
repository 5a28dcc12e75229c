"""
Scheduler: drives the Sync Engine in catch-up or follow mode.

The scheduler owns the sync cursor (the next block to apply). It starts at
`max(from_block, stored watermark)` and only advances after a range commits.

- `catch_up()` reads the chain head once, applies `[cursor, head]` and returns.
- `follow()` repeats that every `poll_interval` seconds until `stop()` is
  called. A failed cycle is logged and retried on the next tick.

Large windows are split into consecutive ranges of at most `max_block_range`
blocks (0 disables splitting), each committing its own watermark. An
`asyncio.Lock` keeps at most one cycle in flight.
"""

from __future__ import annotations

import asyncio
from typing import Iterator, List, Optional, Tuple

from registry_indexer.chain.rpc import EventSource
from registry_indexer.infrastructure.store import Store
from registry_indexer.sync_engine import RangeReport, SyncEngine
from registry_indexer.utils.logging import get_logger
from registry_indexer.utils.profiler import profile_block

log = get_logger(__name__)


def block_windows(start: int, head: int, max_block_range: int) -> Iterator[Tuple[int, int]]:
    """
    Split the inclusive range `[start, head]` into consecutive windows.

    Example
    -------
        list(block_windows(0, 4500, 2000))
        # [(0, 1999), (2000, 3999), (4000, 4500)]
    """
    if head < start:
        return
    if max_block_range <= 0:
        yield start, head
        return
    lo = start
    while lo <= head:
        hi = min(lo + max_block_range - 1, head)
        yield lo, hi
        lo = hi + 1


class Scheduler:
    """
    Parameters
    ----------
    engine : SyncEngine
        Applies individual ranges.
    source : EventSource
        Used to read the chain head.
    store : Store
        Used to read the stored watermark on first run.
    from_block : int
        Lowest block ever indexed.
    poll_interval : float
        Seconds between follow-mode cycles.
    max_block_range : int
        Largest range handed to `apply_range`; 0 for unbounded.
    """

    def __init__(
        self,
        engine: SyncEngine,
        source: EventSource,
        store: Store,
        from_block: int = 0,
        poll_interval: float = 4.0,
        max_block_range: int = 2000,
    ) -> None:
        self._engine = engine
        self._source = source
        self._store = store
        self._from_block = from_block
        self._poll_interval = poll_interval
        self._max_block_range = max_block_range

        self._cursor: Optional[int] = None
        self._stop = asyncio.Event()
        self._lock = asyncio.Lock()
        self.last_error: Optional[BaseException] = None

    @property
    def cursor(self) -> Optional[int]:
        """Next block to apply; None until the first cycle resolved it."""
        return self._cursor

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def resolve_start(self) -> int:
        watermark = await self._store.get_watermark()
        return max(self._from_block, watermark or 0)

    async def run_cycle(self) -> List[RangeReport]:
        """
        Apply everything between the cursor and the current head once.

        Returns the reports of the ranges applied; empty when the head has not
        reached the cursor. Errors propagate; the cursor then stays at the
        first unapplied block.
        """
        async with self._lock:
            if self._cursor is None:
                self._cursor = await self.resolve_start()
            head = await self._source.get_block_number()
            if head < self._cursor:
                log.debug("Head behind cursor", extra={"head": head, "cursor": self._cursor})
                return []

            reports: List[RangeReport] = []
            start = self._cursor
            with profile_block("sync_cycle") as stats:
                for lo, hi in block_windows(start, head, self._max_block_range):
                    reports.append(await self._engine.apply_range(lo, hi))
                    self._cursor = hi + 1

            log.info(
                "Sync cycle complete",
                extra={
                    "from_block": start,
                    "to_block": head,
                    "ranges": len(reports),
                    "events": sum(r.total_events for r in reports),
                    **stats.as_log_extra(),
                },
            )
            return reports

    async def catch_up(self) -> List[RangeReport]:
        """Sync from the cursor to the current head once."""
        return await self.run_cycle()

    async def follow(self) -> None:
        """Follow the chain head until `stop()` is called."""
        log.info("Following chain head", extra={"poll_interval": self._poll_interval})
        while not self._stop.is_set():
            try:
                await self.run_cycle()
                self.last_error = None
            except Exception as exc:
                self.last_error = exc
                log.exception("Sync cycle failed; retrying next tick", extra={"cursor": self._cursor})
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                pass
        log.info("Follow loop stopped", extra={"cursor": self._cursor})

    def stop(self) -> None:
        self._stop.set()


__all__ = ["Scheduler", "block_windows"]
