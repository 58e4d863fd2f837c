"""
AlphaSecSigner - builds command payloads and signs them into L2 envelopes.
"""
import base64
import itertools
import logging
import threading
from typing import TYPE_CHECKING, Any, Optional

from eth_utils import to_checksum_address

from ..constants import (
    ALPHASEC_GAS_LIMIT,
    ALPHASEC_MAX_FEE_PER_GAS,
    ALPHASEC_MAX_PRIORITY_FEE_PER_GAS,
    ORDER_CONTRACT_ADDRESS,
)
from ..exceptions import AlphaSecError, InvalidParameterError, SignerError
from ..utils import Number, current_timestamp_ms, require_address, to_decimal
from .commands import (
    CancelAllCommand,
    CancelCommand,
    ModifyCommand,
    OrderCommand,
    OrderMode,
    OrderSide,
    OrderType,
    SessionCommand,
    SessionCommandType,
    StopOrderCommand,
    TokenTransferCommand,
    Tpsl,
    ValueTransferCommand,
)
from .eip712 import sign_session_authorization
from .utils import format_decimal, normalize_price, normalize_price_quantity

if TYPE_CHECKING:
    from ..config import Config
    from . import Signer

# Process-wide counter that keeps envelope nonces distinct within one millisecond
_nonce_counter = itertools.count()
_nonce_lock = threading.Lock()


def next_nonce(timestamp_ms: Optional[int] = None) -> int:
    """
    Get an envelope nonce.

    Args:
        timestamp_ms: Caller supplied nonce; used as-is when given

    Returns:
        ``timestamp_ms`` or the current time in ms plus a process-wide counter
    """
    if timestamp_ms is not None:
        return timestamp_ms
    # Clock read under the lock keeps concurrent results strictly increasing
    with _nonce_lock:
        return current_timestamp_ms() + next(_nonce_counter)


class AlphaSecSigner:
    """
    Signer for AlphaSec exchange commands.

    Every payload carries the L1 owner address as ``l1owner``; envelopes are
    signed by the active wallet (the session key when sessions are enabled)
    unless a wallet is passed explicitly.
    """

    def __init__(self, config: "Config", logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    @property
    def l1_address(self) -> str:
        return self.config.l1_address

    def generate_alphasec_transaction(
        self,
        data: bytes,
        timestamp_ms: Optional[int] = None,
        wallet: Optional["Signer"] = None,
    ) -> str:
        """
        Wrap a command payload into a signed EIP-1559 L2 transaction.

        Args:
            data: Command payload (tag byte + JSON)
            timestamp_ms: Nonce override; defaults to now_ms plus a counter
            wallet: Signer to use instead of the active wallet

        Returns:
            0x-prefixed hex of the signed raw transaction

        Raises:
            SignerError: If signing fails
            ConfigError: If no active wallet is configured
        """
        signer = wallet or self.config.get_wallet()
        tx = {
            "type": 2,
            "chainId": self.config.l2_chain_id,
            "nonce": next_nonce(timestamp_ms),
            "to": to_checksum_address(ORDER_CONTRACT_ADDRESS),
            "value": 0,
            "gas": ALPHASEC_GAS_LIMIT,
            "maxFeePerGas": ALPHASEC_MAX_FEE_PER_GAS,
            "maxPriorityFeePerGas": ALPHASEC_MAX_PRIORITY_FEE_PER_GAS,
            "data": "0x" + data.hex(),
            "accessList": [],
        }
        self.logger.debug(f"Signing envelope nonce={tx['nonce']} chainId={tx['chainId']}")
        try:
            signed = signer.sign_transaction(tx)
        except AlphaSecError:
            raise
        except Exception as e:
            raise SignerError(f"Failed to sign transaction: {e}") from e
        return "0x" + bytes(signed.raw_transaction).hex()

    def create_value_transfer_data(self, to: str, value: Number) -> bytes:
        """Payload for a native L2 transfer"""
        require_address(to, "recipient address")
        amount = to_decimal(value, "value")
        if amount < 0:
            raise InvalidParameterError("Transfer value cannot be negative")
        return ValueTransferCommand(
            l1owner=self.l1_address,
            to=to,
            value=format_decimal(amount),
        ).to_wire()

    def create_token_transfer_data(self, to: str, value: Number, token_id: str) -> bytes:
        """Payload for an L2 token transfer"""
        require_address(to, "recipient address")
        amount = to_decimal(value, "value")
        if amount < 0:
            raise InvalidParameterError("Transfer value cannot be negative")
        return TokenTransferCommand(
            l1owner=self.l1_address,
            to=to,
            value=format_decimal(amount),
            token=token_id,
        ).to_wire()

    def create_order_data(
        self,
        base_token: str,
        quote_token: str,
        side: OrderSide,
        price: Number,
        quantity: Number,
        order_type: OrderType,
        order_mode: OrderMode,
        tp_limit: Optional[Number] = None,
        sl_trigger: Optional[Number] = None,
        sl_limit: Optional[Number] = None,
    ) -> bytes:
        """
        Payload for a new order.

        Price and quantity are normalized to exchange precision. A ``tpsl``
        object is attached only when ``tp_limit`` or ``sl_trigger`` is set.
        """
        norm_price, norm_qty = normalize_price_quantity(price, quantity)

        tpsl = None
        if tp_limit is not None or sl_trigger is not None:
            tpsl = Tpsl(
                tp_limit=_optional_price(tp_limit),
                sl_trigger=_optional_price(sl_trigger),
                sl_limit=_optional_price(sl_limit),
            )

        return OrderCommand(
            l1owner=self.l1_address,
            base_token=base_token,
            quote_token=quote_token,
            side=OrderSide(side),
            price=format_decimal(norm_price),
            quantity=format_decimal(norm_qty),
            order_type=OrderType(order_type),
            order_mode=OrderMode(order_mode),
            tpsl=tpsl,
        ).to_wire()

    def create_cancel_data(self, order_id: str) -> bytes:
        if not order_id:
            raise InvalidParameterError("Order id is required")
        return CancelCommand(l1owner=self.l1_address, order_id=order_id).to_wire()

    def create_cancel_all_data(self) -> bytes:
        return CancelAllCommand(l1owner=self.l1_address).to_wire()

    def create_modify_data(
        self,
        order_id: str,
        new_price: Number,
        new_qty: Number,
        order_mode: OrderMode,
    ) -> bytes:
        """Payload for modifying an open order; price and quantity are normalized"""
        if not order_id:
            raise InvalidParameterError("Order id is required")
        norm_price, norm_qty = normalize_price_quantity(new_price, new_qty)
        return ModifyCommand(
            l1owner=self.l1_address,
            order_id=order_id,
            new_price=format_decimal(norm_price),
            new_qty=format_decimal(norm_qty),
            order_mode=OrderMode(order_mode),
        ).to_wire()

    def create_stop_order_data(
        self,
        base_token: str,
        quote_token: str,
        stop_price: Number,
        price: Number,
        quantity: Number,
        side: OrderSide,
        order_type: OrderType,
        order_mode: OrderMode,
    ) -> bytes:
        """Payload for a stop order; stop price uses the price schedule"""
        norm_price, norm_qty = normalize_price_quantity(price, quantity)
        norm_stop = normalize_price(stop_price)
        return StopOrderCommand(
            l1owner=self.l1_address,
            base_token=base_token,
            quote_token=quote_token,
            stop_price=format_decimal(norm_stop),
            price=format_decimal(norm_price),
            quantity=format_decimal(norm_qty),
            side=OrderSide(side),
            order_type=OrderType(order_type),
            order_mode=OrderMode(order_mode),
        ).to_wire()

    def create_session_data(
        self,
        cmd: SessionCommandType,
        session_wallet: "Signer",
        timestamp_ms: int,
        expires_at: int,
        metadata: Optional[bytes] = None,
    ) -> bytes:
        """
        Payload for registering, updating or deleting a session wallet.

        The L1 owner signs ``RegisterSessionWallet{sessionWallet, expiry, nonce}``
        with ``nonce = timestamp_ms`` under the L1 chain id domain.

        Args:
            cmd: Session subcommand
            session_wallet: The session key being managed
            timestamp_ms: Nonce of the authorization (and of the envelope)
            expires_at: Session expiry; 0 for delete
            metadata: Optional opaque bytes, sent base64 encoded

        Raises:
            SignerError: If the L1 key is not configured
        """
        session_address = to_checksum_address(session_wallet.address)
        l1_signature = sign_session_authorization(
            self.config.l1_signer,
            session_address,
            nonce=timestamp_ms,
            expiry=expires_at,
            chain_id=self.config.l1_chain_id,
        )
        return SessionCommand(
            type=SessionCommandType(cmd),
            publickey=session_address,
            expires_at=expires_at,
            nonce=timestamp_ms,
            l1owner=self.l1_address,
            l1signature=l1_signature,
            metadata=base64.b64encode(metadata).decode("ascii") if metadata else None,
        ).to_wire()


def _optional_price(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    return format_decimal(normalize_price(value))
