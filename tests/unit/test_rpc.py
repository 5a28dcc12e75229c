from __future__ import annotations

import json

import httpx
import pytest

from registry_indexer.chain.rpc import JsonRpcEventSource, RawLog
from registry_indexer.errors import RpcError

RPC_URL = "http://rpc.test"


def _source(handler, attempts: int = 3) -> JsonRpcEventSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return JsonRpcEventSource(RPC_URL, client=client, attempts=attempts)


def test_raw_log_parses_hex_quantities_and_lowercases():
    raw = RawLog.model_validate(
        {
            "address": "0xABCDEF0000000000000000000000000000000001",
            "topics": ["0xAA"],
            "data": "0x",
            "blockNumber": "0x1a",
            "logIndex": "0x3",
            "transactionHash": "0xFF",
            "removed": False,
        }
    )
    assert raw.block_number == 26
    assert raw.log_index == 3
    assert raw.address == "0xabcdef0000000000000000000000000000000001"
    assert raw.topic0 == "0xaa"
    assert raw.transaction_hash == "0xff"


@pytest.mark.asyncio
async def test_get_block_number_and_logs():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        if body["method"] == "eth_blockNumber":
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x10"})
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": body["id"],
                "result": [{"address": "0x01", "topics": [], "data": "0x", "blockNumber": "0x5", "logIndex": "0x0"}],
            },
        )

    async with _source(handler) as source:
        assert await source.get_block_number() == 16
        logs = await source.get_logs("0x01", 4, 16)

    assert [entry.block_number for entry in logs] == [5]
    assert seen[1]["params"] == [{"address": "0x01", "fromBlock": "0x4", "toBlock": "0x10"}]


@pytest.mark.asyncio
async def test_call_pins_block_and_defaults_empty_result():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body["params"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": None})

    async with _source(handler) as source:
        assert await source.call("0x01", "0xabcdef", block_number=255) == "0x"
        await source.call("0x01", "0xabcdef")

    assert seen[0][1] == "0xff"
    assert seen[1][1] == "latest"


@pytest.mark.asyncio
async def test_error_object_raises_rpc_error():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32005, "message": "limit exceeded"}}
        )

    async with _source(handler) as source:
        with pytest.raises(RpcError) as excinfo:
            await source.get_logs("0x01", 0, 10)

    assert excinfo.value.code == -32005
    assert "limit exceeded" in str(excinfo.value)


@pytest.mark.asyncio
async def test_transient_server_error_is_retried():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503)
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x2"})

    async with _source(handler, attempts=2) as source:
        assert await source.get_block_number() == 2
    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(400)

    async with _source(handler) as source:
        with pytest.raises(httpx.HTTPStatusError):
            await source.get_block_number()
    assert calls["count"] == 1
