"""
Reputation registry decoder: feedback submissions and revocations.
"""

from __future__ import annotations

from typing import Any, Dict

from registry_indexer.decoders.abstract import AbstractContractDecoder
from registry_indexer.domain.events import (
    ContractFamily,
    FeedbackRevoked,
    LogPosition,
    NewFeedback,
    ReputationEvent,
)
from registry_indexer.errors import AbiDecodeError


class ReputationDecoder(AbstractContractDecoder):
    family = ContractFamily.REPUTATION
    declarations = (
        "NewFeedback(uint256 indexed agentId,address indexed author,int256 value,uint8 valueDecimals,"
        "bytes32 indexed feedbackHash,string tag1,string tag2,string endpoint,string feedbackURI)",
        "FeedbackRevoked(bytes32 indexed feedbackHash,address indexed author)",
    )

    async def _build(self, name: str, values: Dict[str, Any], position: LogPosition) -> ReputationEvent:
        if name == "NewFeedback":
            return NewFeedback(
                position=position,
                agent_id=values["agentId"],
                author=values["author"],
                value=values["value"],
                value_decimals=values["valueDecimals"],
                feedback_hash=values["feedbackHash"],
                tag1=values["tag1"],
                tag2=values["tag2"],
                endpoint=values["endpoint"],
                feedback_uri=values["feedbackURI"],
            )
        if name == "FeedbackRevoked":
            return FeedbackRevoked(
                position=position, feedback_hash=values["feedbackHash"], author=values["author"]
            )
        raise AbiDecodeError(f"No reputation event named {name!r}")


__all__ = ["ReputationDecoder"]
