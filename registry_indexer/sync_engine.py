"""
Sync Engine: applies one block range of registry logs to the Store.

For each bound contract, in order (identity, reputation, validation, job
board), `apply_range` fetches the logs of `[from_block, to_block]`, decodes
them, sorts them by `(block_number, log_index)` and applies every event inside
one transaction per contract. The watermark is written last, after every
contract committed. A fetch or decode failure raises `SyncError` and leaves
the watermark where it was; since every mutation is idempotent, retrying the
same range later is safe.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import httpx

from registry_indexer.chain.rpc import EventSource, RawLog
from registry_indexer.decoders import ContractBinding
from registry_indexer.domain.events import DomainEvent
from registry_indexer.errors import IndexerError, SyncError
from registry_indexer.infrastructure.store import Store
from registry_indexer.mutations import apply_event
from registry_indexer.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class RangeReport:
    """What one `apply_range` call applied."""

    from_block: int
    to_block: int
    events: Dict[str, int] = field(default_factory=dict)
    skipped_logs: int = 0

    @property
    def total_events(self) -> int:
        return sum(self.events.values())

    def as_log_extra(self) -> dict:
        return {
            "from_block": self.from_block,
            "to_block": self.to_block,
            "events": dict(self.events),
            "skipped_logs": self.skipped_logs,
        }


class SyncEngine:
    """
    Parameters
    ----------
    source : EventSource
        Where logs come from.
    store : Store
        Where mutations and the watermark go.
    bindings : Sequence[ContractBinding]
        Decoder and address per contract, in apply order.
    """

    def __init__(self, source: EventSource, store: Store, bindings: Sequence[ContractBinding]) -> None:
        self._source = source
        self._store = store
        self._bindings = list(bindings)

    async def _decode(self, binding: ContractBinding, logs: Sequence[RawLog], report: RangeReport) -> List[DomainEvent]:
        decoded: List[DomainEvent] = []
        for raw in sorted(logs, key=lambda entry: (entry.block_number, entry.log_index)):
            event = await binding.decoder.decode(raw)
            if event is None:
                report.skipped_logs += 1
                continue
            decoded.append(event)
        return decoded

    async def apply_range(self, from_block: int, to_block: int) -> RangeReport:
        """
        Apply every registry event emitted in the inclusive range.

        Raises
        ------
        ValueError
            If the range is empty or negative.
        SyncError
            If fetching or decoding any contract's logs failed. Contracts
            already committed in this call stay committed; the watermark does
            not move.
        """
        if from_block < 0 or to_block < from_block:
            raise ValueError(f"Invalid block range [{from_block}, {to_block}]")

        report = RangeReport(from_block=from_block, to_block=to_block)
        for binding in self._bindings:
            family = binding.decoder.family.value
            try:
                logs = await self._source.get_logs(binding.address, from_block, to_block)
                events = await self._decode(binding, logs, report)
            except (IndexerError, httpx.HTTPError) as exc:
                log.error(
                    "Range aborted",
                    extra={"family": family, "from_block": from_block, "to_block": to_block, "reason": str(exc)},
                )
                raise SyncError(family, from_block, to_block, str(exc)) from exc

            async with self._store.writer() as writer:
                for event in events:
                    await apply_event(writer, event)
            report.events[family] = len(events)
            log.debug("Contract logs applied", extra={"family": family, "events": len(events)})

        async with self._store.writer() as writer:
            await writer.set_watermark(to_block)

        log.info("Range applied", extra=report.as_log_extra())
        return report


__all__ = ["RangeReport", "SyncEngine"]
