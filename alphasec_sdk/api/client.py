"""
ApiClient - HTTP client for the AlphaSec REST API.
"""
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import Config
from ..exceptions import ApiError, HttpError, JsonError, NotFoundError
from ..models import (
    ApiResponse,
    Balance,
    Market,
    Order,
    Session,
    Ticker,
    Token,
    TokenMetadata,
    Trade,
    Transfer,
)
from ..utils import sanitize_payload

M = TypeVar("M", bound=BaseModel)

DEFAULT_TRADES_LIMIT = 100


class ApiClient:
    """
    Client for the AlphaSec REST API.

    Read endpoints return parsed models. Mutating endpoints take a signed L2
    transaction hex string and return the raw ``ApiResponse``; callers decide
    how to treat non-200 codes.

    Args:
        config: SDK configuration
        session: Optional pre-configured requests session
        logger: Optional logger instance
    """

    def __init__(
        self,
        config: Config,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.base_url = config.api_url.rstrip("/")
        self.timeout = config.timeout
        self.logger = logger or logging.getLogger(__name__)
        self._token_metadata: Optional[TokenMetadata] = None

        if session is None:
            session = requests.Session()
            # Signed submissions are never replayed; only reads are retried
            retries = Retry(
                total=config.max_retries,
                backoff_factor=0.5,
                status_forcelist=[500, 502, 503, 504],
                allowed_methods=["GET"],
                raise_on_status=False,
                connect=config.max_retries,
                read=config.max_retries,
            )
            session.mount("http://", HTTPAdapter(max_retries=retries))
            session.mount("https://", HTTPAdapter(max_retries=retries))
        self.session = session
        self.session.headers.update({"Content-Type": "application/json"})

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def token_metadata(self) -> Optional[TokenMetadata]:
        return self._token_metadata

    def initialize_metadata(self) -> TokenMetadata:
        """
        Load token metadata from the tokens endpoint.

        Returns:
            The loaded TokenMetadata
        """
        tokens = self.get_tokens()
        self._token_metadata = TokenMetadata(tokens)
        self.logger.info(f"Token metadata initialized with {len(tokens)} tokens")
        return self._token_metadata

    def _resolve_market(self, market: str) -> str:
        if self._token_metadata is not None:
            return self._token_metadata.market_to_market_id(market)
        return market

    # Transport

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise HttpError(f"{method} {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise ApiError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise JsonError(f"Invalid JSON from {url}: {e}") from e

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        self.logger.debug(f"GET {path} {params}")
        data = self._request("GET", path, params=params)
        if not isinstance(data, dict):
            raise ApiError(500, f"Invalid response format from {path}")
        return data

    def _post(self, path: str, body: Dict[str, Any]) -> ApiResponse:
        self.logger.debug(f"POST {path} {sanitize_payload(body)}")
        data = self._request("POST", path, json=body)
        try:
            return ApiResponse.model_validate(data)
        except ValidationError as e:
            raise ApiError(500, f"Invalid response format from {path}: {e}") from e

    @staticmethod
    def _result_list(response: Dict[str, Any], what: str) -> List[Any]:
        result = response.get("result")
        if not isinstance(result, list):
            raise ApiError(500, f"Invalid {what} response format")
        return result

    @staticmethod
    def _parse(model: Type[M], items: List[Any]) -> List[M]:
        try:
            return [model.model_validate(item) for item in items]
        except ValidationError as e:
            raise JsonError(f"Failed to parse {model.__name__}: {e}") from e

    # Market data

    def get_market_list(self) -> List[Market]:
        response = self._get("/api/v1/market")
        return self._parse(Market, self._result_list(response, "market list"))

    def get_tickers(self) -> List[Ticker]:
        response = self._get("/api/v1/market/ticker")
        return self._parse(Ticker, self._result_list(response, "tickers"))

    def get_ticker(self, market: str) -> Ticker:
        """
        Get the ticker of one market.

        Args:
            market: Market as BASE/QUOTE (or a market id before metadata is loaded)

        Raises:
            NotFoundError: If the exchange returns no ticker for the market
        """
        market_id = self._resolve_market(market)
        response = self._get("/api/v1/market/ticker", {"marketId": market_id})
        tickers = self._result_list(response, "ticker")
        if not tickers:
            raise NotFoundError(f"Ticker not found for market: {market}")
        return self._parse(Ticker, tickers[:1])[0]

    def get_tokens(self) -> List[Token]:
        response = self._get("/api/v1/market/tokens")
        return self._parse(Token, self._result_list(response, "tokens"))

    def get_trades(self, market: str, limit: Optional[int] = None) -> List[Trade]:
        params = {
            "marketId": self._resolve_market(market),
            "limit": limit if limit is not None else DEFAULT_TRADES_LIMIT,
        }
        response = self._get("/api/v1/market/trades", params)
        return self._parse(Trade, self._result_list(response, "trades"))

    # Wallet

    def get_balance(self, address: str) -> List[Balance]:
        response = self._get("/api/v1/wallet/balance", {"address": address})
        return self._parse(Balance, self._result_list(response, "balance"))

    def get_sessions(self, address: str) -> List[Session]:
        response = self._get("/api/v1/wallet/session", {"address": address})
        return self._parse(Session, self._result_list(response, "sessions"))

    def get_transfer_history(
        self,
        address: str,
        token_id: Optional[str] = None,
        from_msec: Optional[int] = None,
        to_msec: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Transfer]:
        params = {
            "address": address,
            "tokenId": token_id,
            "fromMsec": from_msec,
            "toMsec": to_msec,
            "limit": limit,
        }
        response = self._get("/api/v1/wallet/transfer", params)
        if response.get("result") is None:
            return []
        return self._parse(Transfer, self._result_list(response, "transfer history"))

    # Orders

    def _get_orders(
        self, path: str, address: str, market: Optional[str], limit: Optional[int], what: str
    ) -> List[Order]:
        params = {
            "address": address,
            "marketId": self._resolve_market(market) if market else None,
            "limit": limit,
        }
        response = self._get(path, params)
        if response.get("result") is None:
            return []
        return self._parse(Order, self._result_list(response, what))

    def get_open_orders(
        self, address: str, market: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Order]:
        return self._get_orders("/api/v1/order/open", address, market, limit, "open orders")

    def get_filled_canceled_orders(
        self, address: str, market: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Order]:
        return self._get_orders("/api/v1/order/", address, market, limit, "orders")

    def get_order_by_id(self, order_id: str) -> Optional[Order]:
        """
        Get one order.

        Returns:
            The order, or None when the exchange answers 404
        """
        try:
            response = self._get(f"/api/v1/order/{order_id}")
        except ApiError as e:
            if e.code == 404:
                return None
            raise
        try:
            return Order.model_validate(response.get("result"))
        except ValidationError as e:
            raise JsonError(f"Failed to parse Order: {e}") from e

    # Signed submissions

    def order(self, signed_tx: str) -> ApiResponse:
        return self._post("/api/v1/order", {"tx": signed_tx})

    def cancel(self, signed_tx: str) -> ApiResponse:
        return self._post("/api/v1/wallet/order/cancel", {"tx": signed_tx})

    def cancel_all(self, signed_tx: str) -> ApiResponse:
        return self._post("/api/v1/order/cancel/all", {"tx": signed_tx})

    def modify(self, signed_tx: str) -> ApiResponse:
        return self._post("/api/v1/wallet/order/modify", {"tx": signed_tx})

    def stop_order(self, signed_tx: str) -> ApiResponse:
        return self._post("/api/v1/wallet/order/stop", {"tx": signed_tx})

    def native_transfer(self, signed_tx: str) -> ApiResponse:
        return self._post("/api/v1/wallet/transfer", {"tx": signed_tx})

    def token_transfer(self, signed_tx: str) -> ApiResponse:
        return self._post("/api/v1/wallet/transfer", {"tx": signed_tx})

    def create_session(self, session_id: str, signed_tx: str) -> ApiResponse:
        return self._post("/api/v1/wallet/session", {"sessionId": session_id, "tx": signed_tx})

    def update_session(self, session_id: str, signed_tx: str) -> ApiResponse:
        return self._post(
            "/api/v1/wallet/session/update", {"sessionId": session_id, "tx": signed_tx}
        )

    def delete_session(self, signed_tx: str) -> ApiResponse:
        return self._post("/api/v1/wallet/session/delete", {"tx": signed_tx})

    def withdraw_token(self, signed_tx: str) -> ApiResponse:
        return self._post("/api/v1/wallet/withdraw", {"tx": signed_tx})
