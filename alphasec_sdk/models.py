"""
Data models for the AlphaSec SDK.
"""
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidParameterError, NotFoundError


class ApiModel(BaseModel):
    """Base for API payloads; accepts both camelCase aliases and field names"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Token(ApiModel):
    token_id: str = Field(..., alias="tokenId")
    l1_symbol: str = Field(..., alias="l1Symbol")
    l1_address: str = Field(..., alias="l1Address")
    decimals: int = Field(..., alias="l1Decimal")
    is_active: bool = Field(False, alias="isActive")


class Market(ApiModel):
    market_id: str = Field(..., alias="marketId")
    base_token_id: str = Field(..., alias="baseTokenId")
    quote_token_id: str = Field(..., alias="quoteTokenId")
    ticker: str
    description: str
    exchange: str
    market_type: str = Field(..., alias="type")
    listed: bool
    taker_fee: str = Field(..., alias="takerFee")
    maker_fee: str = Field(..., alias="makerFee")


class Ticker(ApiModel):
    market_id: str = Field(..., alias="marketId")
    base_token_id: str = Field(..., alias="baseTokenId")
    quote_token_id: str = Field(..., alias="quoteTokenId")
    price: str
    open_24h: str = Field(..., alias="open24h")
    high_24h: str = Field(..., alias="high24h")
    low_24h: str = Field(..., alias="low24h")
    volume_24h: str = Field(..., alias="volume24h")
    quote_volume_24h: str = Field(..., alias="quoteVolume24h")


class Trade(ApiModel):
    trade_id: str = Field(..., alias="tradeId")
    market_id: str = Field(..., alias="marketId")
    price: str
    quantity: str
    buy_order_id: str = Field(..., alias="buyOrderId")
    sell_order_id: str = Field(..., alias="sellOrderId")
    created_at: int = Field(..., alias="createdAt")
    is_buyer_maker: bool = Field(..., alias="isBuyerMaker")


class Order(ApiModel):
    """Order as returned by the order endpoints"""
    id: int
    order_id: str = Field(..., alias="orderId")
    account_address: str = Field(..., alias="accountAddress")
    market_id: str = Field(..., alias="marketId")
    side: str
    order_type: str = Field(..., alias="orderType")
    price: str
    orig_qty: str = Field(..., alias="origQty")
    orig_quote_order_qty: str = Field(..., alias="origQuoteOrderQty")
    is_trigger: bool = Field(..., alias="isTrigger")
    is_triggered: bool = Field(..., alias="isTriggered")
    trigger_price: str = Field(..., alias="triggerPrice")
    status: str
    contingency_type: str = Field(..., alias="contingencyType")
    oto_leg_type: str = Field(..., alias="otoLegType")
    tx_hash: str = Field(..., alias="txHash")
    created_at: int = Field(..., alias="createdAt")
    updated_at: int = Field(..., alias="updatedAt")
    executed_qty: str = Field(..., alias="executedQty")
    executed_quote_qty: str = Field(..., alias="executedQuoteQty")

    def is_filled(self) -> bool:
        return self.status == "FILLED"

    def is_canceled(self) -> bool:
        return self.status == "CANCELED"

    def is_active(self) -> bool:
        return self.status in ("NEW", "PARTIALLY_FILLED")


class Balance(ApiModel):
    token_id: str = Field(..., alias="tokenId")
    locked: Optional[str] = None
    unlocked: Optional[str] = None


class Session(ApiModel):
    name: str
    session_address: str = Field(..., alias="sessionAddress")
    owner_address: str = Field(..., alias="ownerAddress")
    expiry: int
    applied: bool


class Transfer(ApiModel):
    """Deposit, withdrawal or L2 transfer record"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    token_id: Optional[str] = Field(None, alias="tokenId")
    amount: Optional[str] = None
    from_address: Optional[str] = Field(None, alias="fromAddress")
    to_address: Optional[str] = Field(None, alias="toAddress")
    transfer_type: Optional[str] = Field(None, alias="type")
    tx_hash: Optional[str] = Field(None, alias="txHash")
    created_at: Optional[int] = Field(None, alias="createdAt")


class ApiResponse(ApiModel):
    """Envelope returned by the mutating endpoints"""
    code: Optional[int] = None
    result: Any = None
    err_msg: Optional[str] = Field(None, alias="errMsg")

    @property
    def success(self) -> bool:
        return self.code == 200

    def result_string(self) -> str:
        """Result as a plain string; non-string results are rendered as JSON"""
        if self.result is not None:
            if isinstance(self.result, str):
                return self.result
            return json.dumps(self.result, separators=(",", ":"))
        if self.err_msg:
            return f"Error: {self.err_msg}"
        return "No result"


class TokenMetadata:
    """
    Lookup tables built from the tokens endpoint.

    Resolves token symbols to exchange token ids and back, and market
    strings of the form ``BASE/QUOTE`` to market ids ``<base_id>_<quote_id>``.
    """

    def __init__(self, tokens: List[Token]):
        self.token_id_symbol_map: Dict[str, str] = {}
        self.symbol_token_id_map: Dict[str, str] = {}
        self.token_id_address_map: Dict[str, str] = {}
        self.token_id_decimal_map: Dict[str, int] = {}
        for token in tokens:
            self.token_id_symbol_map[token.token_id] = token.l1_symbol
            self.symbol_token_id_map[token.l1_symbol] = token.token_id
            self.token_id_address_map[token.token_id] = token.l1_address
            self.token_id_decimal_map[token.token_id] = token.decimals

    def __len__(self) -> int:
        return len(self.token_id_symbol_map)

    def token_id(self, symbol: str) -> str:
        """
        Raises:
            NotFoundError: If the symbol is unknown
        """
        try:
            return self.symbol_token_id_map[symbol]
        except KeyError:
            raise NotFoundError(f"Token not found: {symbol}") from None

    def symbol(self, token_id: str) -> str:
        try:
            return self.token_id_symbol_map[token_id]
        except KeyError:
            raise NotFoundError(f"Token ID not found: {token_id}") from None

    def l1_address(self, token_id: str) -> str:
        try:
            return self.token_id_address_map[token_id]
        except KeyError:
            raise NotFoundError(f"L1 address not found for token ID: {token_id}") from None

    def l1_decimals(self, token_id: str) -> int:
        try:
            return self.token_id_decimal_map[token_id]
        except KeyError:
            raise NotFoundError(f"L1 decimals not found for token ID: {token_id}") from None

    def market_to_market_id(self, market: str) -> str:
        """
        Convert ``BASE/QUOTE`` to ``<base_id>_<quote_id>``.

        Raises:
            InvalidParameterError: If the market is not of the form BASE/QUOTE
            NotFoundError: If either symbol is unknown
        """
        parts = market.split("/")
        if len(parts) != 2:
            raise InvalidParameterError(
                f"Invalid market format: {market}. Expected format: BASE/QUOTE"
            )
        base, quote = parts
        if base not in self.symbol_token_id_map:
            raise NotFoundError(f"Base token not found: {base}")
        if quote not in self.symbol_token_id_map:
            raise NotFoundError(f"Quote token not found: {quote}")
        return f"{self.symbol_token_id_map[base]}_{self.symbol_token_id_map[quote]}"

    def market_id_to_market(self, market_id: str) -> str:
        """Convert ``<base_id>_<quote_id>`` back to ``BASE/QUOTE``"""
        parts = market_id.split("_")
        if len(parts) != 2:
            raise InvalidParameterError(f"Invalid market ID format: {market_id}")
        base_id, quote_id = parts
        if base_id not in self.token_id_symbol_map:
            raise NotFoundError(f"Base token ID not found: {base_id}")
        if quote_id not in self.token_id_symbol_map:
            raise NotFoundError(f"Quote token ID not found: {quote_id}")
        return f"{self.token_id_symbol_map[base_id]}/{self.token_id_symbol_map[quote_id]}"
