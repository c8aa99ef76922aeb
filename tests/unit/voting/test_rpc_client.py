import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp

from voting.exceptions import RpcError
from voting.rpc_client import RpcClient

URL_A = "https://rpc-a.example"
URL_B = "https://rpc-b.example"


class FakeResponse:
    def __init__(self, status, payload=None):
        self.status = status
        self.payload = payload

    async def json(self):
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class BrokenJsonResponse(FakeResponse):
    def __init__(self, body):
        super().__init__(200)
        self.body = body

    async def json(self):
        return json.loads(self.body)


def result(value):
    return FakeResponse(200, {"jsonrpc": "2.0", "id": 1, "result": value})


def error(code, message):
    return FakeResponse(200, {"jsonrpc": "2.0", "id": 1, "error": {"code": code, "message": message}})


def make_client(responses, urls=URL_A, max_retries=3):
    client = RpcClient(urls, max_retries=max_retries, rpc_min_interval=0)
    session = MagicMock()
    session.closed = False
    session.post = MagicMock(side_effect=responses)
    session.close = AsyncMock()
    client._session = session
    return client, session


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


def test_provider_uris_are_split():
    client = RpcClient(f" {URL_A}, {URL_B} ,")
    assert client.rpc_urls == [URL_A, URL_B]

    with pytest.raises(ValueError):
        RpcClient(" , ")


@pytest.mark.asyncio
async def test_get_code_returns_result():
    client, session = make_client([result("0x6080")])

    assert await client.get_code("0x" + "11" * 20) == "0x6080"

    url = session.post.call_args.args[0]
    payload = session.post.call_args.kwargs["json"]
    assert url == URL_A
    assert payload["method"] == "eth_getCode"
    assert payload["params"] == ["0x" + "11" * 20, "latest"]


@pytest.mark.asyncio
async def test_eth_call_payload():
    client, session = make_client([result("0x01")])

    await client.eth_call("0x" + "22" * 20, "0xabcdef")

    payload = session.post.call_args.kwargs["json"]
    assert payload["method"] == "eth_call"
    assert payload["params"] == [{"to": "0x" + "22" * 20, "data": "0xabcdef"}, "latest"]


@pytest.mark.asyncio
async def test_fails_over_to_next_provider():
    client, session = make_client([FakeResponse(502), result("0x")], urls=[URL_A, URL_B])

    assert await client.get_code("0x" + "11" * 20) == "0x"
    assert [c.args[0] for c in session.post.call_args_list] == [URL_A, URL_B]


@pytest.mark.asyncio
async def test_rate_limited_provider_slows_down(no_sleep):
    client, session = make_client([FakeResponse(429), result("0x01")])
    client._min_interval = 0.1

    assert await client.eth_call("0x" + "22" * 20, "0x") == "0x01"
    assert client._min_interval > 0.1
    assert no_sleep.await_count >= 1


@pytest.mark.asyncio
async def test_network_errors_are_retried():
    client, session = make_client([aiohttp.ClientConnectionError("reset"), result("0x02")])

    assert await client.eth_call("0x" + "22" * 20, "0x") == "0x02"
    assert session.post.call_count == 2


@pytest.mark.asyncio
async def test_malformed_body_fails_over_to_next_provider():
    client, session = make_client([BrokenJsonResponse("{\"jsonrpc\": \"2.0\", \"res"), result("0x03")], urls=[URL_A, URL_B])

    assert await client.eth_call("0x" + "22" * 20, "0x") == "0x03"
    assert [c.args[0] for c in session.post.call_args_list] == [URL_A, URL_B]


@pytest.mark.asyncio
async def test_malformed_bodies_exhaust_retries():
    client, session = make_client([BrokenJsonResponse("<html></html>")] * 2, max_retries=2)

    with pytest.raises(RpcError, match="malformed JSON body"):
        await client.get_code("0x" + "11" * 20)


@pytest.mark.asyncio
async def test_retriable_errors_exhaust_retries():
    responses = [error(-32603, "internal error")] * 4
    client, session = make_client(responses, urls=[URL_A, URL_B], max_retries=2)

    with pytest.raises(RpcError, match="failed after 2 attempts"):
        await client.get_code("0x" + "11" * 20)
    assert session.post.call_count == 4


@pytest.mark.asyncio
async def test_execution_revert_is_not_retried():
    client, session = make_client([error(-32000, "execution reverted")], urls=[URL_A, URL_B])

    with pytest.raises(RpcError, match="execution reverted"):
        await client.eth_call("0x" + "22" * 20, "0x")
    assert session.post.call_count == 1


@pytest.mark.asyncio
async def test_invalid_params_is_not_retried():
    client, session = make_client([error(-32602, "invalid argument 0")])

    with pytest.raises(RpcError):
        await client.get_code("not-an-address")
    assert session.post.call_count == 1


@pytest.mark.asyncio
async def test_context_manager_closes_session():
    client, session = make_client([])

    async with client:
        pass

    session.close.assert_awaited_once()
