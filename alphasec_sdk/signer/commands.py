"""
Exchange command payloads.

A command payload is a single tag byte followed by compact UTF-8 JSON. The
payload travels as the data field of an L2 envelope transaction and is parsed
by the exchange.
"""
import json
from enum import IntEnum
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..constants import (
    DEX_COMMAND_CANCEL,
    DEX_COMMAND_CANCEL_ALL,
    DEX_COMMAND_MODIFY,
    DEX_COMMAND_ORDER,
    DEX_COMMAND_SESSION,
    DEX_COMMAND_STOP_ORDER,
    DEX_COMMAND_TOKEN_TRANSFER,
    DEX_COMMAND_TRANSFER,
)
from ..exceptions import TransactionEncodingError


class OrderSide(IntEnum):
    BUY = 0
    SELL = 1


class OrderType(IntEnum):
    LIMIT = 0
    MARKET = 1


class OrderMode(IntEnum):
    BASE = 0
    QUOTE = 1


class SessionCommandType(IntEnum):
    CREATE = 1
    UPDATE = 2
    DELETE = 3


class DexCommand(BaseModel):
    """Base class for tagged command payloads"""
    TAG: ClassVar[int]

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)

    def to_wire(self) -> bytes:
        """Encode as tag byte followed by the JSON body"""
        return bytes([self.TAG]) + self.to_json().encode("utf-8")

    @classmethod
    def from_wire(cls, payload: bytes) -> "DexCommand":
        """
        Decode a payload produced by ``to_wire``.

        Raises:
            TransactionEncodingError: If the tag does not match or the body is invalid
        """
        if not payload or payload[0] != cls.TAG:
            got = f"0x{payload[0]:02x}" if payload else "empty payload"
            raise TransactionEncodingError(
                f"Expected command tag 0x{cls.TAG:02x} for {cls.__name__}, got {got}"
            )
        try:
            return cls.model_validate_json(payload[1:])
        except ValidationError as e:
            raise TransactionEncodingError(f"Invalid {cls.__name__} body: {e}") from e


class SessionCommand(DexCommand):
    TAG: ClassVar[int] = DEX_COMMAND_SESSION

    type: SessionCommandType
    publickey: str
    expires_at: int = Field(..., alias="expiresAt")
    nonce: int
    l1owner: str
    l1signature: str
    metadata: Optional[str] = None


class ValueTransferCommand(DexCommand):
    TAG: ClassVar[int] = DEX_COMMAND_TRANSFER

    l1owner: str
    to: str
    value: str


class TokenTransferCommand(DexCommand):
    TAG: ClassVar[int] = DEX_COMMAND_TOKEN_TRANSFER

    l1owner: str
    to: str
    value: str
    token: str


class Tpsl(BaseModel):
    """Take-profit / stop-loss legs attached to an order"""
    model_config = ConfigDict(populate_by_name=True)

    tp_limit: Optional[str] = Field(None, alias="tpLimit")
    sl_trigger: Optional[str] = Field(None, alias="slTrigger")
    sl_limit: Optional[str] = Field(None, alias="slLimit")


class OrderCommand(DexCommand):
    TAG: ClassVar[int] = DEX_COMMAND_ORDER

    l1owner: str
    base_token: str = Field(..., alias="baseToken")
    quote_token: str = Field(..., alias="quoteToken")
    side: OrderSide
    price: str
    quantity: str
    order_type: OrderType = Field(..., alias="orderType")
    order_mode: OrderMode = Field(..., alias="orderMode")
    tpsl: Optional[Tpsl] = None


class CancelCommand(DexCommand):
    TAG: ClassVar[int] = DEX_COMMAND_CANCEL

    l1owner: str
    order_id: str = Field(..., alias="orderId")


class CancelAllCommand(DexCommand):
    TAG: ClassVar[int] = DEX_COMMAND_CANCEL_ALL

    l1owner: str


class ModifyCommand(DexCommand):
    TAG: ClassVar[int] = DEX_COMMAND_MODIFY

    l1owner: str
    order_id: str = Field(..., alias="orderId")
    new_price: str = Field(..., alias="newPrice")
    new_qty: str = Field(..., alias="newQty")
    order_mode: OrderMode = Field(..., alias="orderMode")


class StopOrderCommand(DexCommand):
    TAG: ClassVar[int] = DEX_COMMAND_STOP_ORDER

    l1owner: str
    base_token: str = Field(..., alias="baseToken")
    quote_token: str = Field(..., alias="quoteToken")
    stop_price: str = Field(..., alias="stopPrice")
    price: str
    quantity: str
    side: OrderSide
    order_type: OrderType = Field(..., alias="orderType")
    order_mode: OrderMode = Field(..., alias="orderMode")
