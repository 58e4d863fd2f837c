"""
Tests for the REST API client.
"""
import pytest
import requests

from alphasec_sdk.api.client import ApiClient
from alphasec_sdk.exceptions import ApiError, HttpError, JsonError, NotFoundError
from conftest import TEST_API_URL, TEST_L1_ADDRESS

TICKER = {
    "marketId": "5_2",
    "baseTokenId": "5",
    "quoteTokenId": "2",
    "price": "50000",
    "open24h": "49000",
    "high24h": "51000",
    "low24h": "48000",
    "volume24h": "12.5",
    "quoteVolume24h": "625000",
}

ORDER = {
    "id": 1,
    "orderId": "o-123",
    "accountAddress": TEST_L1_ADDRESS,
    "marketId": "5_2",
    "side": "BUY",
    "orderType": "LIMIT",
    "price": "50000",
    "origQty": "1",
    "origQuoteOrderQty": "0",
    "isTrigger": False,
    "isTriggered": False,
    "triggerPrice": "0",
    "status": "NEW",
    "contingencyType": "",
    "otoLegType": "",
    "txHash": "0xabc",
    "createdAt": 1700000000000,
    "updatedAt": 1700000000000,
    "executedQty": "0",
    "executedQuoteQty": "0",
}


@pytest.fixture
def client(config, mock_tokens):
    api = ApiClient(config)
    api.initialize_metadata()
    return api


def test_initialize_metadata(client, mock_tokens):
    assert mock_tokens.called_once
    assert len(client.token_metadata) == 3
    assert client.token_metadata.market_to_market_id("BTC/USDT") == "5_2"


def test_get_ticker_resolves_market(client, requests_mock):
    """
    Test that market symbols are resolved to market ids in queries.
    """
    # Setup
    route = requests_mock.get(
        f"{TEST_API_URL}/api/v1/market/ticker", json={"code": 200, "result": [TICKER]}
    )

    # Test
    ticker = client.get_ticker("BTC/USDT")

    # Verify
    assert ticker.price == "50000"
    assert ticker.quote_volume_24h == "625000"
    assert route.last_request.qs == {"marketid": ["5_2"]}


def test_get_ticker_not_found(client, requests_mock):
    requests_mock.get(f"{TEST_API_URL}/api/v1/market/ticker", json={"code": 200, "result": []})

    with pytest.raises(NotFoundError):
        client.get_ticker("BTC/USDT")


def test_get_ticker_unknown_symbol(client):
    with pytest.raises(NotFoundError, match="DOGE"):
        client.get_ticker("DOGE/USDT")


def test_get_trades_default_limit(client, requests_mock):
    route = requests_mock.get(f"{TEST_API_URL}/api/v1/market/trades", json={"code": 200, "result": []})

    assert client.get_trades("BTC/USDT") == []
    assert route.last_request.qs["limit"] == ["100"]


def test_non_2xx_becomes_api_error(client, requests_mock):
    requests_mock.get(f"{TEST_API_URL}/api/v1/market", status_code=503, text="maintenance")

    with pytest.raises(ApiError) as excinfo:
        client.get_market_list()

    assert excinfo.value.code == 503
    assert excinfo.value.message == "maintenance"


def test_unexpected_shape_is_api_error_500(client, requests_mock):
    requests_mock.get(f"{TEST_API_URL}/api/v1/market", json={"code": 200, "result": {"oops": 1}})

    with pytest.raises(ApiError) as excinfo:
        client.get_market_list()

    assert excinfo.value.code == 500
    assert "Invalid market list response format" in str(excinfo.value)


def test_invalid_json(client, requests_mock):
    requests_mock.get(f"{TEST_API_URL}/api/v1/market", text="<html>")

    with pytest.raises(JsonError):
        client.get_market_list()


def test_connection_error(client, requests_mock):
    requests_mock.get(f"{TEST_API_URL}/api/v1/market", exc=requests.exceptions.ConnectTimeout)

    with pytest.raises(HttpError):
        client.get_market_list()


def test_get_balance(client, requests_mock):
    route = requests_mock.get(
        f"{TEST_API_URL}/api/v1/wallet/balance",
        json={"code": 200, "result": [{"tokenId": "2", "locked": "0", "unlocked": "100"}]},
    )

    balances = client.get_balance(TEST_L1_ADDRESS)

    assert balances[0].token_id == "2"
    assert balances[0].unlocked == "100"
    assert route.last_request.qs["address"] == [TEST_L1_ADDRESS.lower()]


def test_open_orders_null_result(client, requests_mock):
    requests_mock.get(f"{TEST_API_URL}/api/v1/order/open", json={"code": 200, "result": None})

    assert client.get_open_orders(TEST_L1_ADDRESS) == []


def test_filled_canceled_orders(client, requests_mock):
    filled = {**ORDER, "status": "FILLED"}
    route = requests_mock.get(f"{TEST_API_URL}/api/v1/order/", json={"code": 200, "result": [filled]})

    orders = client.get_filled_canceled_orders(TEST_L1_ADDRESS, "BTC/USDT", limit=10)

    assert orders[0].is_filled()
    assert not orders[0].is_active()
    assert route.last_request.qs["marketid"] == ["5_2"]


def test_order_by_id(client, requests_mock):
    requests_mock.get(f"{TEST_API_URL}/api/v1/order/o-123", json={"code": 200, "result": ORDER})

    order = client.get_order_by_id("o-123")

    assert order.order_id == "o-123"
    assert order.is_active()


def test_order_by_id_404_is_none(client, requests_mock):
    requests_mock.get(f"{TEST_API_URL}/api/v1/order/missing", status_code=404, text="not found")

    assert client.get_order_by_id("missing") is None


def test_order_by_id_other_errors_propagate(client, requests_mock):
    requests_mock.get(f"{TEST_API_URL}/api/v1/order/o-1", status_code=401, text="unauthorized")

    with pytest.raises(ApiError) as excinfo:
        client.get_order_by_id("o-1")

    assert excinfo.value.code == 401


def test_transfer_history_null_result(client, requests_mock):
    route = requests_mock.get(f"{TEST_API_URL}/api/v1/wallet/transfer", json={"code": 200, "result": None})

    assert client.get_transfer_history(TEST_L1_ADDRESS, token_id="2") == []
    assert "frommsec" not in route.last_request.qs
    assert route.last_request.qs["tokenid"] == ["2"]


def test_transfer_history_keeps_unknown_fields(client, requests_mock):
    requests_mock.get(
        f"{TEST_API_URL}/api/v1/wallet/transfer",
        json={"code": 200, "result": [{"tokenId": "2", "amount": "5", "status": "DONE"}]},
    )

    transfers = client.get_transfer_history(TEST_L1_ADDRESS)

    assert transfers[0].amount == "5"
    assert transfers[0].model_extra["status"] == "DONE"


def test_get_sessions(client, requests_mock):
    requests_mock.get(
        f"{TEST_API_URL}/api/v1/wallet/session",
        json={"code": 200, "result": [{
            "name": "bot",
            "sessionAddress": TEST_L1_ADDRESS,
            "ownerAddress": TEST_L1_ADDRESS,
            "expiry": 1800000000,
            "applied": True,
        }]},
    )

    sessions = client.get_sessions(TEST_L1_ADDRESS)

    assert sessions[0].name == "bot"
    assert sessions[0].applied


@pytest.mark.parametrize(
    "method, path",
    [
        ("order", "/api/v1/order"),
        ("cancel", "/api/v1/wallet/order/cancel"),
        ("cancel_all", "/api/v1/order/cancel/all"),
        ("modify", "/api/v1/wallet/order/modify"),
        ("stop_order", "/api/v1/wallet/order/stop"),
        ("native_transfer", "/api/v1/wallet/transfer"),
        ("token_transfer", "/api/v1/wallet/transfer"),
        ("delete_session", "/api/v1/wallet/session/delete"),
        ("withdraw_token", "/api/v1/wallet/withdraw"),
    ],
)
def test_signed_submissions(client, requests_mock, method, path):
    """Each submission posts the signed transaction to its endpoint"""
    route = requests_mock.post(f"{TEST_API_URL}{path}", json={"code": 200, "result": "ok"})

    response = getattr(client, method)("0xdeadbeef")

    assert response.success
    assert response.result_string() == "ok"
    assert route.last_request.json() == {"tx": "0xdeadbeef"}


def test_session_submissions_carry_session_id(client, requests_mock):
    create = requests_mock.post(f"{TEST_API_URL}/api/v1/wallet/session", json={"code": 200, "result": "c"})
    update = requests_mock.post(
        f"{TEST_API_URL}/api/v1/wallet/session/update", json={"code": 200, "result": "u"}
    )

    client.create_session("bot", "0x01")
    client.update_session("bot", "0x02")

    assert create.last_request.json() == {"sessionId": "bot", "tx": "0x01"}
    assert update.last_request.json() == {"sessionId": "bot", "tx": "0x02"}


def test_submission_error_envelope_is_returned(client, requests_mock):
    """Non-200 codes in the body are left for the caller"""
    requests_mock.post(
        f"{TEST_API_URL}/api/v1/order", json={"code": 400, "errMsg": "insufficient balance"}
    )

    response = client.order("0x01")

    assert not response.success
    assert response.err_msg == "insufficient balance"
    assert response.result_string() == "Error: insufficient balance"


def test_submission_bad_shape(client, requests_mock):
    requests_mock.post(f"{TEST_API_URL}/api/v1/order", json=["unexpected"])

    with pytest.raises(ApiError) as excinfo:
        client.order("0x01")

    assert excinfo.value.code == 500


def test_result_string_renders_json():
    from alphasec_sdk.models import ApiResponse

    assert ApiResponse(code=200, result={"orderId": "o-1"}).result_string() == '{"orderId":"o-1"}'
    assert ApiResponse(code=200).result_string() == "No result"
