"""
Event Source: the JSON-RPC surface the sync engine reads the chain through.

`EventSource` is the protocol the engine depends on (chain head, logs for one
address over a block range, one view call). `JsonRpcEventSource` implements it
over HTTP with httpx. Transport failures and 5xx answers are retried a few
times with exponential backoff; anything still failing propagates so the
current range aborts without advancing the watermark.
"""

from __future__ import annotations

import itertools
from typing import Any, List, Optional, Protocol, Sequence, runtime_checkable

import httpx
from pydantic import BaseModel, Field, field_validator
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from registry_indexer.errors import RpcError
from registry_indexer.utils.logging import get_logger

log = get_logger(__name__)


class RawLog(BaseModel):
    """One entry of an `eth_getLogs` result."""

    address: str
    topics: List[str] = Field(default_factory=list)
    data: str = "0x"
    block_number: int = Field(..., alias="blockNumber")
    log_index: int = Field(0, alias="logIndex")
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("block_number", "log_index", mode="before")
    @classmethod
    def _parse_quantity(cls, value: Any) -> Any:
        if isinstance(value, str):
            return int(value, 16)
        return value

    @field_validator("address", "topics", "data", "transaction_hash", mode="before")
    @classmethod
    def _lowercase_hex(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        if isinstance(value, list):
            return [item.lower() if isinstance(item, str) else item for item in value]
        return value

    @property
    def topic0(self) -> Optional[str]:
        return self.topics[0] if self.topics else None


@runtime_checkable
class EventSource(Protocol):
    """
    Read-only chain access needed by the decoders and the sync engine.
    """

    async def get_block_number(self) -> int:
        """Current chain head height."""
        ...

    async def get_logs(self, address: str, from_block: int, to_block: int) -> Sequence[RawLog]:
        """All logs emitted by `address` in the inclusive block range."""
        ...

    async def call(self, to: str, data: str, block_number: Optional[int] = None) -> str:
        """`eth_call` returning the raw 0x-hex result; latest block when `block_number` is None."""
        ...


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500 or exc.response.status_code == 429
    return False


class JsonRpcEventSource:
    """
    `EventSource` over a JSON-RPC HTTP endpoint.

    Parameters
    ----------
    rpc_url : str
        Endpoint URL.
    timeout : float
        Per-request timeout in seconds.
    client : httpx.AsyncClient | None
        Shared client; one is created (and owned) when omitted.
    attempts : int
        Total attempts per request for transient failures.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        attempts: int = 3,
    ) -> None:
        self.rpc_url = rpc_url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._attempts = attempts
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "JsonRpcEventSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _request(self, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    log.warning(
                        "Retrying JSON-RPC request",
                        extra={"method": method, "attempt": attempt.retry_state.attempt_number},
                    )
                response = await self._client.post(self.rpc_url, json=payload)
                response.raise_for_status()
        body = response.json()
        if body.get("error"):
            error = body["error"]
            raise RpcError(method, error.get("code"), error.get("message", ""), error.get("data"))
        return body.get("result")

    async def get_block_number(self) -> int:
        return int(await self._request("eth_blockNumber", []), 16)

    async def get_logs(self, address: str, from_block: int, to_block: int) -> List[RawLog]:
        result = await self._request(
            "eth_getLogs",
            [{"address": address, "fromBlock": hex(from_block), "toBlock": hex(to_block)}],
        )
        return [RawLog.model_validate(entry) for entry in result or []]

    async def call(self, to: str, data: str, block_number: Optional[int] = None) -> str:
        block = hex(block_number) if block_number is not None else "latest"
        result = await self._request("eth_call", [{"to": to, "data": data}, block])
        return result or "0x"


__all__ = ["EventSource", "JsonRpcEventSource", "RawLog"]
