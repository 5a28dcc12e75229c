"""
Validation registry decoder: validation requests and validator responses.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from registry_indexer.decoders.abstract import AbstractContractDecoder
from registry_indexer.domain.events import (
    ContractFamily,
    LogPosition,
    RequestAppended,
    ResponseAppended,
    ValidationEvent,
)
from registry_indexer.errors import AbiDecodeError
from registry_indexer.utils.logging import get_logger

log = get_logger(__name__)

MAX_RESPONSE_SCORE = 100


class ValidationDecoder(AbstractContractDecoder):
    family = ContractFamily.VALIDATION
    declarations = (
        "RequestAppended(bytes32 indexed requestHash,uint256 indexed agentId,address indexed validator,"
        "string requestURI)",
        "ResponseAppended(bytes32 indexed requestHash,bytes32 indexed responseHash,uint256 response0to100,"
        "string responseURI,string tag)",
    )

    async def _build(self, name: str, values: Dict[str, Any], position: LogPosition) -> Optional[ValidationEvent]:
        if name == "RequestAppended":
            return RequestAppended(
                position=position,
                request_hash=values["requestHash"],
                agent_id=values["agentId"],
                validator=values["validator"],
                request_uri=values["requestURI"],
            )
        if name == "ResponseAppended":
            score = values["response0to100"]
            if score > MAX_RESPONSE_SCORE:
                log.warning(
                    "Skipping validation response with out-of-range score",
                    extra={
                        "score": score,
                        "request_hash": values["requestHash"],
                        "block": position.block_number,
                        "log_index": position.log_index,
                    },
                )
                return None
            return ResponseAppended(
                position=position,
                request_hash=values["requestHash"],
                response_hash=values["responseHash"],
                score=score,
                response_uri=values["responseURI"],
                tag=values["tag"],
            )
        raise AbiDecodeError(f"No validation event named {name!r}")


__all__ = ["MAX_RESPONSE_SCORE", "ValidationDecoder"]
