"""Tests for the JSON-RPC log provider."""

import json

import httpx
import pytest

from burnwatch.core.recovery.errors import RateLimitError, RpcError
from burnwatch.providers.rpc import (
    BURN_TOPICS,
    DEAD_ADDRESS,
    TRANSFER_TOPIC,
    JsonRpcProvider,
    address_topic,
    hex_to_int,
    topic_address,
)


def _provider(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return JsonRpcProvider("https://rpc.test", name="bsc-rpc", client=client)


def _result(value):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": value})

    return handler


class TestTopicHelpers:
    def test_address_topic_round_trip(self):
        topic = address_topic(DEAD_ADDRESS)

        assert len(topic) == 66
        assert topic_address(topic) == DEAD_ADDRESS.lower()

    def test_burn_topics_are_padded_sinks(self):
        assert BURN_TOPICS[0].endswith("dead")
        assert BURN_TOPICS[1] == "0x" + "0" * 64

    @pytest.mark.parametrize("value,expected", [(None, 0), ("0x", 0), ("0x10", 16), ("0xff", 255)])
    def test_hex_to_int(self, value, expected):
        assert hex_to_int(value) == expected


class TestJsonRpcCalls:
    @pytest.mark.asyncio
    async def test_block_number_parses_hex(self):
        provider = _provider(_result("0x2a"))

        assert await provider.block_number() == 42
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_get_logs_sends_hex_range_and_topics(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            seen.update(body)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": [{"logIndex": "0x0"}]})

        provider = _provider(handler)
        topics = [TRANSFER_TOPIC, None, BURN_TOPICS]

        logs = await provider.get_logs("0xabc", 16, 31, topics)

        assert logs == [{"logIndex": "0x0"}]
        assert seen["method"] == "eth_getLogs"
        assert seen["params"][0] == {
            "address": "0xabc",
            "fromBlock": "0x10",
            "toBlock": "0x1f",
            "topics": topics,
        }
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_null_logs_result_is_empty_list(self):
        provider = _provider(_result(None))

        assert await provider.get_logs("0xabc", 1, 2, []) == []
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_block_timestamp(self):
        provider = _provider(_result({"number": "0x1", "timestamp": "0x64"}))

        assert await provider.get_block_timestamp(1) == 100
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_missing_block_raises(self):
        provider = _provider(_result(None))

        with pytest.raises(RpcError):
            await provider.get_block_timestamp(1)
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_token_decimals_uses_eth_call(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            seen.update(body)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x12"})

        provider = _provider(handler)

        assert await provider.token_decimals("0xabc") == 18
        assert seen["method"] == "eth_call"
        assert seen["params"] == [{"to": "0xabc", "data": "0x313ce567"}, "latest"]
        await provider.aclose()


class TestJsonRpcErrors:
    @pytest.mark.asyncio
    async def test_http_429_is_rate_limit(self):
        provider = _provider(lambda request: httpx.Response(429, headers={"retry-after": "3"}))

        with pytest.raises(RateLimitError) as exc:
            await provider.block_number()

        assert exc.value.retry_after == 3.0
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_limit_exceeded_code_is_rate_limit(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "slow down"}})

        provider = _provider(handler)

        with pytest.raises(RateLimitError):
            await provider.get_logs("0xabc", 1, 2, [])
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_other_json_errors_keep_code(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "execution reverted"}}
            )

        provider = _provider(handler)

        with pytest.raises(RpcError) as exc:
            await provider.block_number()

        assert not isinstance(exc.value, RateLimitError)
        assert exc.value.code == -32000
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_server_error_status(self):
        provider = _provider(lambda request: httpx.Response(503))

        with pytest.raises(RpcError):
            await provider.block_number()
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = _provider(handler)

        with pytest.raises(RpcError):
            await provider.block_number()
        await provider.aclose()

    @pytest.mark.asyncio
    async def test_health_check_reports_error(self):
        provider = _provider(lambda request: httpx.Response(500))

        health = await provider.health_check()

        assert health["status"] == "error"
        await provider.aclose()
