"""
Identity registry decoder.

`Registered` needs one extra read: the agent's wallet is not part of the log,
so it is fetched with an `agentWallet(agentId)` view call pinned to the block
the agent was registered in.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from registry_indexer.chain.abi import decode_word, encode_uint256_call, hex_to_bytes
from registry_indexer.chain.rpc import EventSource
from registry_indexer.decoders.abstract import AbstractContractDecoder
from registry_indexer.domain.events import (
    AgentURIUpdated,
    ContractFamily,
    IdentityEvent,
    LogPosition,
    Registered,
)
from registry_indexer.errors import AbiDecodeError

AGENT_WALLET_SIGNATURE = "agentWallet(uint256)"
_ZERO_ADDRESS = "0x" + "0" * 40


class IdentityDecoder(AbstractContractDecoder):
    family = ContractFamily.IDENTITY
    declarations = (
        "Registered(uint256 indexed agentId,address indexed owner,string agentURI)",
        "AgentURIUpdated(uint256 indexed agentId,string agentURI)",
    )

    def __init__(self, source: EventSource, registry_address: str) -> None:
        super().__init__()
        self._source = source
        self._registry = registry_address

    async def agent_wallet(self, agent_id: int, block_number: Optional[int]) -> Optional[str]:
        """
        Resolve the wallet bound to `agent_id`. Returns None when unset.
        """
        result = await self._source.call(
            self._registry, encode_uint256_call(AGENT_WALLET_SIGNATURE, agent_id), block_number
        )
        payload = hex_to_bytes(result)
        if not payload:
            return None
        if len(payload) < 32:
            raise AbiDecodeError(f"agentWallet({agent_id}) returned {len(payload)} bytes")
        wallet = decode_word("address", payload[:32])
        return None if wallet == _ZERO_ADDRESS else wallet

    async def _build(self, name: str, values: Dict[str, Any], position: LogPosition) -> IdentityEvent:
        if name == "Registered":
            wallet = await self.agent_wallet(values["agentId"], position.block_number)
            return Registered(
                position=position,
                agent_id=values["agentId"],
                owner=values["owner"],
                agent_uri=values["agentURI"],
                agent_wallet=wallet,
            )
        if name == "AgentURIUpdated":
            return AgentURIUpdated(position=position, agent_id=values["agentId"], agent_uri=values["agentURI"])
        raise AbiDecodeError(f"No identity event named {name!r}")


__all__ = ["AGENT_WALLET_SIGNATURE", "IdentityDecoder"]
