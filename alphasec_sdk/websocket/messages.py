"""
Typed messages delivered by the AlphaSec WebSocket stream.
"""
import json
import logging
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..exceptions import JsonError

logger = logging.getLogger(__name__)


class StreamModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TradeResult(StreamModel):
    trade_id: str = Field(..., alias="tradeId")
    market_id: str = Field(..., alias="marketId")
    price: str
    quantity: str
    buy_order_id: str = Field(..., alias="buyOrderId")
    sell_order_id: str = Field(..., alias="sellOrderId")
    created_at: int = Field(..., alias="createdAt")
    is_buyer_maker: bool = Field(..., alias="isBuyerMaker")


class TradeParams(StreamModel):
    channel: str
    result: List[TradeResult]


class DepthResult(StreamModel):
    market_id: str = Field(..., alias="marketId")
    bids: Optional[List[List[str]]] = None
    asks: Optional[List[List[str]]] = None
    first_id: int = Field(..., alias="firstId")
    final_id: int = Field(..., alias="finalId")
    time: int


class DepthParams(StreamModel):
    channel: str
    result: DepthResult


class TickerEntry(StreamModel):
    market_id: str = Field(..., alias="marketId")
    base_token_id: str = Field(..., alias="baseTokenId")
    quote_token_id: str = Field(..., alias="quoteTokenId")
    price: str
    open_24h: str = Field(..., alias="open24h")
    high_24h: str = Field(..., alias="high24h")
    low_24h: str = Field(..., alias="low24h")
    volume_24h: str = Field(..., alias="volume24h")
    quote_volume_24h: str = Field(..., alias="quoteVolume24h")


class TickerParams(StreamModel):
    channel: str
    result: List[TickerEntry]


class UserEventBase(StreamModel):
    event_type: str = Field(..., alias="eventType")
    event_time: int = Field(..., alias="eventTime")
    block_number: int = Field(..., alias="blockNumber")
    account_address: str = Field(..., alias="accountAddress")
    tx_hash: str = Field(..., alias="txHash")


class OrderEvent(UserEventBase):
    topic: Literal["ORDER"] = "ORDER"
    order_id: str = Field(..., alias="orderId")
    market_id: str = Field(..., alias="marketId")
    side: str
    order_type: str = Field(..., alias="orderType")
    order_mode: int = Field(..., alias="orderMode")
    orig_price: str = Field(..., alias="origPrice")
    orig_qty: str = Field(..., alias="origQty")
    orig_quote_order_qty: str = Field(..., alias="origQuoteOrderQty")
    status: str
    created_at: int = Field(..., alias="createdAt")
    executed_qty: str = Field(..., alias="executedQty")
    executed_quote_qty: str = Field(..., alias="executedQuoteQty")
    last_price: str = Field(..., alias="lastPrice")
    last_qty: str = Field(..., alias="lastQty")
    fee: str
    fee_token_id: Optional[str] = Field(None, alias="feeTokenId")
    trade_id: str = Field(..., alias="tradeId")
    is_maker: bool = Field(..., alias="isMaker")


class AccountEvent(UserEventBase):
    topic: Literal["ACCOUNT"] = "ACCOUNT"
    token_id: str = Field(..., alias="tokenId")
    amount: str
    from_address: Optional[str] = Field(None, alias="fromAddress")
    to_address: Optional[str] = Field(None, alias="toAddress")


class UserEventParams(StreamModel):
    channel: str
    result: Union[OrderEvent, AccountEvent] = Field(..., discriminator="topic")

    @model_validator(mode="before")
    @classmethod
    def _normalize_topic(cls, data: Any) -> Any:
        # Topics arrive as ORDER/ACCOUNT or lowercase
        if isinstance(data, dict) and isinstance(data.get("result"), dict):
            result = data["result"]
            if isinstance(result.get("topic"), str):
                data = {**data, "result": {**result, "topic": result["topic"].upper()}}
        return data


class AckMessage(StreamModel):
    """Subscription acknowledgement; consumed by the manager"""
    id: int
    result: Any = None


class TradeMessage(StreamModel):
    method: str
    params: TradeParams


class DepthMessage(StreamModel):
    method: str
    params: DepthParams


class TickerMessage(StreamModel):
    method: str
    params: TickerParams


class UserEventMessage(StreamModel):
    method: str
    params: UserEventParams


class GenericMessage(StreamModel):
    """Any JSON frame that matches no typed schema"""
    data: Any


class PingMessage(StreamModel):
    payload: bytes = b""


class PongMessage(StreamModel):
    payload: bytes = b""


class DisconnectedMessage(StreamModel):
    """Emitted by the manager when the connection is lost"""
    pass


WebSocketMessage = Union[
    AckMessage,
    TradeMessage,
    DepthMessage,
    TickerMessage,
    UserEventMessage,
    GenericMessage,
    PingMessage,
    PongMessage,
    DisconnectedMessage,
]

CHANNEL_MESSAGES: Dict[str, Type[StreamModel]] = {
    "trade": TradeMessage,
    "depth": DepthMessage,
    "ticker": TickerMessage,
    "userEvent": UserEventMessage,
}


def _parse_update(data: Dict[str, Any]) -> Optional[StreamModel]:
    params = data.get("params")
    channel = params.get("channel") if isinstance(params, dict) else None
    if not isinstance(channel, str):
        return None

    model = CHANNEL_MESSAGES.get(channel.split("@", 1)[0])
    if model is None:
        return None
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Frame on {channel} does not match {model.__name__}: {e}")
        return None


def parse_message(text: str) -> WebSocketMessage:
    """
    Parse one text frame.

    Subscription acknowledgements become AckMessage, channel updates their
    typed message, and anything else a GenericMessage carrying the JSON value.

    Raises:
        JsonError: If the frame is not valid JSON
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise JsonError(f"Invalid JSON frame: {e}") from e

    if isinstance(data, dict):
        if "id" in data and "result" in data and "method" not in data:
            try:
                return AckMessage.model_validate(data)
            except ValidationError:
                pass
        elif "params" in data:
            message = _parse_update(data)
            if message is not None:
                return message

    return GenericMessage(data=data)
