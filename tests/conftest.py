"""
Pytest fixtures for the AlphaSec SDK tests.
"""
import asyncio
import contextlib
import json
import time
from unittest.mock import MagicMock

import aiohttp
import pytest
from aiohttp import test_utils, web
from eth_account import Account
from eth_utils import to_checksum_address
from web3 import Web3
from web3.providers.rpc import HTTPProvider

from alphasec_sdk._rate_limited_log import reset_rate_limits
from alphasec_sdk.config import Config, NetworkConfig
from alphasec_sdk.models import Token, TokenMetadata
from alphasec_sdk.websocket.manager import WsConfig

# Constants for testing
TEST_API_URL = "https://api.alphasec.example.com"
TEST_L1_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
TEST_L2_PRIV_KEY = "0xfedcba9876543210fedcba9876543210fedcba9876543210fedcba9876543210"
TEST_L1_ADDRESS = Account.from_key(TEST_L1_PRIV_KEY).address
TEST_L2_ADDRESS = Account.from_key(TEST_L2_PRIV_KEY).address
TEST_RECIPIENT = "0x1234567890123456789012345678901234567890"
TEST_BTC_L1_ADDRESS = "0x2345678901234567890123456789012345678901"
TEST_USDT_L1_ADDRESS = "0x3456789012345678901234567890123456789012"

TEST_TOKENS = [
    {
        "tokenId": "1",
        "l1Symbol": "KAIA",
        "l1Address": "0x0000000000000000000000000000000000000000",
        "l1Decimal": 18,
        "isActive": True,
    },
    {
        "tokenId": "2",
        "l1Symbol": "USDT",
        "l1Address": TEST_USDT_L1_ADDRESS,
        "l1Decimal": 6,
        "isActive": True,
    },
    {
        "tokenId": "5",
        "l1Symbol": "BTC",
        "l1Address": TEST_BTC_L1_ADDRESS,
        "l1Decimal": 8,
        "isActive": True,
    },
]


# Make time.sleep instantaneous so polling loops don't slow the suite down
@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _patch_http_provider(monkeypatch):
    """
    Stub every Web3 HTTP call so no DNS / network traffic is triggered.
    """
    def _dummy(self, method, params=None, _=None):
        if method == "eth_chainId":
            return {"jsonrpc": "2.0", "id": 1, "result": "0x3e9"}
        if method == "eth_gasPrice":
            return {"jsonrpc": "2.0", "id": 1, "result": "0x3b9aca00"}
        return {"jsonrpc": "2.0", "id": 1, "result": "0x0"}

    monkeypatch.setattr(HTTPProvider, "make_request", _dummy, raising=True)


@pytest.fixture(autouse=True)
def _reset_module_state():
    """Clear module-level caches between tests"""
    reset_rate_limits()
    NetworkConfig._networks_cache = None
    yield
    reset_rate_limits()
    NetworkConfig._networks_cache = None


@pytest.fixture
def config():
    """Configuration with an L1 key on the kairos network"""
    return Config(api_url=TEST_API_URL, network="kairos", l1_private_key=TEST_L1_PRIV_KEY)


@pytest.fixture
def session_config():
    """Configuration that signs trading commands with the session key"""
    return Config(
        api_url=TEST_API_URL,
        network="kairos",
        l1_private_key=TEST_L1_PRIV_KEY,
        l2_private_key=TEST_L2_PRIV_KEY,
        session_enabled=True,
    )


@pytest.fixture
def token_metadata():
    return TokenMetadata([Token.model_validate(t) for t in TEST_TOKENS])


@pytest.fixture
def mock_tokens(requests_mock):
    """Mock the tokens endpoint used during initialization"""
    return requests_mock.get(
        f"{TEST_API_URL}/api/v1/market/tokens",
        json={"code": 200, "result": TEST_TOKENS},
    )


def make_contract_mock(address):
    """
    Create a contract mock whose functions build transactions the way web3 does.
    """
    contract = MagicMock()
    contract.address = address

    def build_tx(tx_params):
        return {**tx_params, "to": address, "data": "0x123456789abcdef0"}

    functions = contract.functions
    for name in ("depositEth", "approve", "outboundTransfer"):
        getattr(functions, name).return_value.build_transaction.side_effect = build_tx
    functions.allowance.return_value.call.return_value = 0
    return contract


@pytest.fixture
def l1_contracts():
    """Contract mocks keyed by checksum address, created on first use"""
    return {}


@pytest.fixture
def mock_l1_w3(l1_contracts):
    """Create a mock L1 Web3 instance with realistic contract behavior"""
    eth = MagicMock()
    eth.gas_price = 1_000_000_000
    eth.get_transaction_count = MagicMock(return_value=7)
    eth.send_raw_transaction = MagicMock(return_value=bytes.fromhex("ab" * 32))
    eth.wait_for_transaction_receipt = MagicMock(
        return_value={"status": 1, "blockNumber": 12345}
    )

    def contract(address=None, abi=None):
        key = to_checksum_address(address)
        if key not in l1_contracts:
            l1_contracts[key] = make_contract_mock(key)
        return l1_contracts[key]

    eth.contract = MagicMock(side_effect=contract)

    w3 = MagicMock(spec=Web3)
    w3.eth = eth
    return w3


# WebSocket test helpers

TRADE_PUSH = {
    "method": "subscription",
    "params": {
        "channel": "trade@5_2",
        "result": [{
            "tradeId": "t-1",
            "marketId": "5_2",
            "price": "50000",
            "quantity": "0.1",
            "buyOrderId": "o-1",
            "sellOrderId": "o-2",
            "createdAt": 1700000000000,
            "isBuyerMaker": False,
        }],
    },
}


class FakeExchange:
    """
    Minimal stream endpoint that records frames and acknowledges subscriptions.

    Args:
        close_first_after: Close the first connection after this many frames
        autoping: Answer client pings; pongs are only recorded when False
    """

    def __init__(self, close_first_after=None, autoping=True):
        self.close_first_after = close_first_after
        self.autoping = autoping
        self.connections = []
        self.frames = []
        self.pongs = []
        self.app = web.Application()
        self.app.router.add_get("/ws", self.handler)

    async def handler(self, request):
        ws = web.WebSocketResponse(autoping=self.autoping)
        await ws.prepare(request)
        index = len(self.connections)
        self.connections.append(ws)
        frames = []
        self.frames.append(frames)

        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.PONG:
                self.pongs.append(msg.data)
            if msg.type != aiohttp.WSMsgType.TEXT:
                continue
            data = json.loads(msg.data)
            frames.append(data)
            if data.get("method") == "subscribe":
                await ws.send_json({"id": data["id"], "result": None})
            if index == 0 and self.close_first_after == len(frames):
                await ws.close()
                break
        return ws


@contextlib.asynccontextmanager
async def running_exchange(**kwargs):
    exchange = FakeExchange(**kwargs)
    server = test_utils.TestServer(exchange.app, host="127.0.0.1")
    await server.start_server()
    try:
        yield exchange, str(server.make_url("/ws"))
    finally:
        await server.close()


def ws_config(url, **overrides):
    params = dict(
        url=url,
        reconnect_delay=0.05,
        max_reconnect_delay=0.2,
        ping_interval=5.0,
        pong_timeout=5.0,
        connect_timeout=2.0,
    )
    params.update(overrides)
    return WsConfig(**params)


async def wait_until(predicate, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)
