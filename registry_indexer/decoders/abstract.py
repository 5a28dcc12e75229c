"""
Decoder interfaces for the registry contracts.

A decoder turns raw logs of one contract family into typed domain events.
Concrete decoders list the event declarations they understand and implement
`_build` to map decoded ABI values onto the event dataclasses. Logs whose
topic0 is not one of those declarations decode to None and are skipped, as
do well-formed logs whose values the read model cannot hold.
"""

from __future__ import annotations

import abc
from typing import Any, ClassVar, Dict, Mapping, Optional, Protocol, Tuple, runtime_checkable

from registry_indexer.chain.abi import EventAbi, decode_log
from registry_indexer.chain.rpc import RawLog
from registry_indexer.domain.events import ContractFamily, DomainEvent, LogPosition
from registry_indexer.utils.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class ContractDecoder(Protocol):
    """
    Common interface all contract decoders implement.

    Attributes
    ----------
    family : ContractFamily
        Which registry the decoder understands.
    """

    family: ContractFamily

    async def decode(self, raw: RawLog) -> Optional[DomainEvent]:
        """
        Decode one log.

        Returns
        -------
        DomainEvent | None
            The typed event, or None when the topic is unknown or the log is skipped.

        Raises
        ------
        AbiDecodeError
            When the topic is known but the payload is malformed.
        """
        ...


class AbstractContractDecoder(abc.ABC):
    """
    Topic lookup and ABI decoding shared by the concrete decoders.

    Subclasses set `family` and `declarations` and implement `_build`.
    """

    family: ClassVar[ContractFamily]
    declarations: ClassVar[Tuple[str, ...]]

    def __init__(self) -> None:
        abis = (EventAbi.parse(declaration) for declaration in self.declarations)
        self._by_topic: Dict[str, EventAbi] = {abi.topic: abi for abi in abis}

    @property
    def events(self) -> Mapping[str, EventAbi]:
        """Known events keyed by topic0."""
        return self._by_topic

    async def decode(self, raw: RawLog) -> Optional[DomainEvent]:
        abi = self._by_topic.get(raw.topic0 or "")
        if abi is None:
            log.debug(
                "Skipping log with unknown topic",
                extra={"family": self.family.value, "topic0": raw.topic0, "block": raw.block_number},
            )
            return None
        values = decode_log(abi, raw.topics, raw.data)
        position = LogPosition(
            block_number=raw.block_number,
            log_index=raw.log_index,
            transaction_hash=raw.transaction_hash,
        )
        return await self._build(abi.name, values, position)

    @abc.abstractmethod
    async def _build(
        self, name: str, values: Dict[str, Any], position: LogPosition
    ) -> Optional[DomainEvent]:  # pragma: no cover - interface only
        """Construct the typed event for a decoded log, or None to skip it."""
        raise NotImplementedError


__all__ = ["AbstractContractDecoder", "ContractDecoder"]
