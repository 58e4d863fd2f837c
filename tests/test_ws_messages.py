"""
Tests for parsing WebSocket frames into typed messages.
"""
import json

import pytest

from alphasec_sdk.exceptions import JsonError
from alphasec_sdk.websocket.messages import (
    AccountEvent,
    AckMessage,
    DepthMessage,
    GenericMessage,
    OrderEvent,
    TickerMessage,
    TradeMessage,
    UserEventMessage,
    parse_message,
)
from conftest import TEST_L1_ADDRESS

TRADE_FRAME = {
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
            "isBuyerMaker": True,
        }],
    },
}

USER_EVENT_BASE = {
    "eventType": "UPDATE",
    "eventTime": 1700000000000,
    "blockNumber": 42,
    "accountAddress": TEST_L1_ADDRESS,
    "txHash": "0xabc",
}


def test_parse_trade():
    message = parse_message(json.dumps(TRADE_FRAME))

    assert isinstance(message, TradeMessage)
    assert message.params.channel == "trade@5_2"
    assert message.params.result[0].price == "50000"
    assert message.params.result[0].is_buyer_maker


def test_parse_depth():
    frame = {
        "method": "subscription",
        "params": {
            "channel": "depth@5_2",
            "result": {
                "marketId": "5_2",
                "bids": [["49999", "1.5"]],
                "asks": None,
                "firstId": 10,
                "finalId": 12,
                "time": 1700000000000,
            },
        },
    }

    message = parse_message(json.dumps(frame))

    assert isinstance(message, DepthMessage)
    assert message.params.result.bids == [["49999", "1.5"]]
    assert message.params.result.asks is None


def test_parse_ticker():
    frame = {
        "method": "subscription",
        "params": {
            "channel": "ticker@5_2",
            "result": [{
                "marketId": "5_2",
                "baseTokenId": "5",
                "quoteTokenId": "2",
                "price": "50000",
                "open24h": "1",
                "high24h": "2",
                "low24h": "0.5",
                "volume24h": "10",
                "quoteVolume24h": "20",
            }],
        },
    }

    message = parse_message(json.dumps(frame))

    assert isinstance(message, TickerMessage)
    assert message.params.result[0].base_token_id == "5"


def test_parse_order_event():
    """
    Test that user events are discriminated by topic, in either case.
    """
    # Setup
    event = {
        **USER_EVENT_BASE,
        "topic": "order",
        "orderId": "o-1",
        "marketId": "5_2",
        "side": "BUY",
        "orderType": "LIMIT",
        "orderMode": 0,
        "origPrice": "50000",
        "origQty": "1",
        "origQuoteOrderQty": "0",
        "status": "PARTIALLY_FILLED",
        "createdAt": 1700000000000,
        "executedQty": "0.5",
        "executedQuoteQty": "25000",
        "lastPrice": "50000",
        "lastQty": "0.5",
        "fee": "0.01",
        "tradeId": "t-1",
        "isMaker": False,
    }
    frame = {"method": "subscription", "params": {"channel": f"userEvent@{TEST_L1_ADDRESS}", "result": event}}

    # Test
    message = parse_message(json.dumps(frame))

    # Verify
    assert isinstance(message, UserEventMessage)
    assert isinstance(message.params.result, OrderEvent)
    assert message.params.result.executed_qty == "0.5"
    assert message.params.result.fee_token_id is None


def test_parse_account_event():
    event = {**USER_EVENT_BASE, "topic": "ACCOUNT", "tokenId": "2", "amount": "100"}
    frame = {"method": "subscription", "params": {"channel": f"userEvent@{TEST_L1_ADDRESS}", "result": event}}

    message = parse_message(json.dumps(frame))

    assert isinstance(message.params.result, AccountEvent)
    assert message.params.result.amount == "100"


def test_parse_ack():
    message = parse_message('{"id":3,"result":null}')

    assert isinstance(message, AckMessage)
    assert message.id == 3


@pytest.mark.parametrize(
    "frame",
    [
        {"foo": 1},
        [1, 2, 3],
        "hello",
        {"method": "subscription", "params": {"channel": "trade@5_2", "result": "garbage"}},
        {"method": "subscription", "params": {"channel": "candles@5_2", "result": []}},
    ],
)
def test_unknown_frames_are_generic(frame):
    message = parse_message(json.dumps(frame))

    assert isinstance(message, GenericMessage)
    assert message.data == frame


def test_invalid_json_raises():
    with pytest.raises(JsonError):
        parse_message("{not json")
