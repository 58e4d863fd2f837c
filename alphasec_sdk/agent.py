"""
Agent - high-level async interface to the AlphaSec exchange.
"""
import asyncio
import logging
from typing import Any, Callable, List, Optional

from .api.client import ApiClient
from .config import Config
from .exceptions import ApiError, InvalidParameterError, NetworkError
from .models import (
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
from .signer import BridgeBuilder, Signer
from .signer.commands import OrderMode, OrderSide, OrderType, SessionCommandType
from .signer.signer import AlphaSecSigner
from .utils import Number, current_timestamp_ms
from .websocket.manager import WsConfig, WsManager

MARKET_CHANNELS = ("trade", "ticker", "depth")
USER_CHANNELS = ("userEvent",)


class Agent:
    """
    Trading agent for AlphaSec.

    Resolves token symbols and markets, signs commands and submits them
    through the REST API, and manages the WebSocket stream. Blocking HTTP
    and RPC work runs in worker threads so the coroutine API never blocks
    the event loop.

    Args:
        config: SDK configuration
        api_client: Optional ApiClient (built from config when omitted)
        bridge: Optional BridgeBuilder for deposits and withdrawals
        enable_websocket: Create a WsManager for streaming
        ws_config: Optional streaming settings (defaults derive from config)
        logger: Optional logger instance

    Raises:
        AlphaSecError: If token metadata cannot be loaded
    """

    def __init__(
        self,
        config: Config,
        api_client: Optional[ApiClient] = None,
        bridge: Optional[BridgeBuilder] = None,
        enable_websocket: bool = True,
        ws_config: Optional[WsConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.signer = AlphaSecSigner(config, logger=self.logger)
        self.api = api_client or ApiClient(config, logger=self.logger)
        self.bridge = bridge or BridgeBuilder(config, logger=self.logger)
        self.api.initialize_metadata()

        self.ws: Optional[WsManager] = None
        if enable_websocket:
            self.ws = WsManager(ws_config or WsConfig(
                url=config.ws_url,
                max_reconnect_attempts=0,
                reconnect_delay=1.0,
                max_reconnect_delay=30.0,
                ping_interval=10.0,
                pong_timeout=10.0,
                message_queue_size=0,
            ))

        self.logger.info(f"AlphaSec agent initialized for network: {config.network.value}")

    @classmethod
    async def create(cls, config: Config, **kwargs: Any) -> "Agent":
        """Construct an Agent without blocking the event loop"""
        return await asyncio.to_thread(cls, config, **kwargs)

    async def __aenter__(self) -> "Agent":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()
        self.api.close()

    @property
    def metadata(self) -> TokenMetadata:
        return self.api.token_metadata

    @property
    def l1_address(self) -> str:
        return self.config.l1_address

    def is_session_enabled(self) -> bool:
        return self.config.session_enabled

    # Streaming

    async def start(self) -> None:
        if self.ws is not None:
            await self.ws.start()
            self.logger.info("WebSocket manager started")

    async def stop(self) -> None:
        if self.ws is not None:
            await self.ws.stop()
            self.logger.info("WebSocket manager stopped")

    def resolve_channel(self, channel: str) -> str:
        """
        Rewrite ``type@target`` so that market targets use market ids.

        Raises:
            InvalidParameterError: If the channel is malformed or of an unknown type
            NotFoundError: If the market cannot be resolved
        """
        if "@" not in channel:
            raise InvalidParameterError(
                f"Channel format should be 'type@target', got: {channel}"
            )
        channel_type, target = channel.split("@", 1)
        if channel_type in MARKET_CHANNELS:
            return f"{channel_type}@{self.metadata.market_to_market_id(target)}"
        if channel_type in USER_CHANNELS:
            return f"{channel_type}@{target}"
        raise InvalidParameterError(
            f"Unsupported channel type: {channel_type}. "
            "Use 'trade', 'ticker', 'depth', or 'userEvent'"
        )

    async def subscribe(self, channel: str) -> int:
        """
        Subscribe to a stream channel.

        The subscription is registered at once and sent when the stream is
        (re)connected.

        Args:
            channel: ``trade@BASE/QUOTE``, ``ticker@BASE/QUOTE``,
                ``depth@BASE/QUOTE`` or ``userEvent@<address>``

        Returns:
            Subscription id for ``unsubscribe``
        """
        actual = self.resolve_channel(channel)
        if self.ws is None:
            raise NetworkError("WebSocket not initialized")
        sub_id = await self.ws.subscribe(actual)
        self.logger.info(f"Subscribed to channel: {channel} (ID: {sub_id})")
        return sub_id

    async def unsubscribe(self, subscription_id: int) -> bool:
        if self.ws is None:
            raise NetworkError("WebSocket not initialized")
        return await self.ws.unsubscribe(subscription_id)

    def take_message_receiver(self) -> Optional[asyncio.Queue]:
        if self.ws is None:
            return None
        return self.ws.take_message_receiver()

    def get_ws_sender(self) -> Optional[asyncio.Queue]:
        if self.ws is None:
            return None
        return self.ws.get_outgoing_sender()

    # Signed commands

    @staticmethod
    def _check(response: ApiResponse) -> str:
        if response.success:
            return response.result_string()
        raise ApiError(
            response.code if response.code is not None else 500,
            response.err_msg or response.result_string(),
        )

    async def _submit(
        self,
        build: Callable[[], bytes],
        submit: Callable[[str], ApiResponse],
        timestamp_ms: Optional[int] = None,
        wallet: Optional[Signer] = None,
    ) -> str:
        def work() -> str:
            data = build()
            signed_tx = self.signer.generate_alphasec_transaction(data, timestamp_ms, wallet)
            return self._check(submit(signed_tx))

        return await asyncio.to_thread(work)

    def _market_tokens(self, market: str):
        parts = market.split("/")
        if len(parts) != 2:
            raise InvalidParameterError(
                f"Invalid market format: {market}. Expected format: BASE/QUOTE"
            )
        return self.metadata.token_id(parts[0]), self.metadata.token_id(parts[1])

    async def order(
        self,
        market: str,
        side: OrderSide,
        price: Number,
        quantity: Number,
        order_type: OrderType = OrderType.LIMIT,
        order_mode: OrderMode = OrderMode.BASE,
        tp_limit: Optional[Number] = None,
        sl_trigger: Optional[Number] = None,
        sl_limit: Optional[Number] = None,
        timestamp_ms: Optional[int] = None,
    ) -> str:
        """
        Place an order.

        Args:
            market: Market as BASE/QUOTE, e.g. "KAIA/USDT"
            side: Buy or sell
            price: Limit price (normalized to exchange precision)
            quantity: Order quantity (normalized to exchange precision)
            order_type: Limit or market
            order_mode: Quantity denominated in base or quote token
            tp_limit: Optional take-profit limit price
            sl_trigger: Optional stop-loss trigger price
            sl_limit: Optional stop-loss limit price
            timestamp_ms: Optional envelope nonce

        Returns:
            The exchange result (typically the order id)

        Raises:
            NotFoundError: If a symbol is unknown
            ApiError: If the exchange rejects the order
        """
        base, quote = self._market_tokens(market)
        return await self._submit(
            lambda: self.signer.create_order_data(
                base, quote, side, price, quantity, order_type, order_mode,
                tp_limit, sl_trigger, sl_limit,
            ),
            self.api.order,
            timestamp_ms,
        )

    async def cancel(self, order_id: str, timestamp_ms: Optional[int] = None) -> str:
        return await self._submit(
            lambda: self.signer.create_cancel_data(order_id), self.api.cancel, timestamp_ms
        )

    async def cancel_all(self, timestamp_ms: Optional[int] = None) -> str:
        return await self._submit(
            self.signer.create_cancel_all_data, self.api.cancel_all, timestamp_ms
        )

    async def modify(
        self,
        order_id: str,
        new_price: Number,
        new_qty: Number,
        order_mode: OrderMode = OrderMode.BASE,
        timestamp_ms: Optional[int] = None,
    ) -> str:
        return await self._submit(
            lambda: self.signer.create_modify_data(order_id, new_price, new_qty, order_mode),
            self.api.modify,
            timestamp_ms,
        )

    async def stop_order(
        self,
        market: str,
        stop_price: Number,
        price: Number,
        quantity: Number,
        side: OrderSide,
        order_type: OrderType = OrderType.LIMIT,
        order_mode: OrderMode = OrderMode.BASE,
        timestamp_ms: Optional[int] = None,
    ) -> str:
        """Place a stop order that triggers at ``stop_price``"""
        base, quote = self._market_tokens(market)
        return await self._submit(
            lambda: self.signer.create_stop_order_data(
                base, quote, stop_price, price, quantity, side, order_type, order_mode
            ),
            self.api.stop_order,
            timestamp_ms,
        )

    async def native_transfer(
        self, to: str, value: Number, timestamp_ms: Optional[int] = None
    ) -> str:
        return await self._submit(
            lambda: self.signer.create_value_transfer_data(to, value),
            self.api.native_transfer,
            timestamp_ms,
        )

    async def token_transfer(
        self, to: str, value: Number, token: str, timestamp_ms: Optional[int] = None
    ) -> str:
        """Transfer a token, given by symbol, to another L2 account"""
        token_id = self.metadata.token_id(token)
        return await self._submit(
            lambda: self.signer.create_token_transfer_data(to, value, token_id),
            self.api.token_transfer,
            timestamp_ms,
        )

    # Sessions

    def _session_wallet(self, session_wallet: Optional[Signer]) -> Signer:
        wallet = session_wallet or self.config.l2_signer
        if wallet is None:
            raise InvalidParameterError("L2 wallet is required for session operations")
        return wallet

    async def _session_command(
        self,
        cmd: SessionCommandType,
        submit: Callable[[str], ApiResponse],
        session_wallet: Optional[Signer],
        timestamp_ms: Optional[int],
        expires_at: int,
        metadata: Optional[bytes],
    ) -> str:
        wallet = self._session_wallet(session_wallet)
        ts = timestamp_ms if timestamp_ms is not None else current_timestamp_ms()
        return await self._submit(
            lambda: self.signer.create_session_data(cmd, wallet, ts, expires_at, metadata),
            submit,
            ts,
            wallet,
        )

    async def create_session(
        self,
        session_id: str,
        expires_at: int,
        session_wallet: Optional[Signer] = None,
        timestamp_ms: Optional[int] = None,
        metadata: Optional[bytes] = None,
    ) -> str:
        """
        Register a session wallet authorized by the L1 owner.

        The envelope is signed by the session wallet itself with
        ``nonce = timestamp_ms``.

        Args:
            session_id: Client chosen session name
            expires_at: Session expiry timestamp
            session_wallet: Session key (defaults to the configured L2 key)
            timestamp_ms: Authorization nonce (defaults to now)
            metadata: Optional opaque bytes stored with the session
        """
        return await self._session_command(
            SessionCommandType.CREATE,
            lambda tx: self.api.create_session(session_id, tx),
            session_wallet, timestamp_ms, expires_at, metadata,
        )

    async def update_session(
        self,
        session_id: str,
        expires_at: int,
        session_wallet: Optional[Signer] = None,
        timestamp_ms: Optional[int] = None,
        metadata: Optional[bytes] = None,
    ) -> str:
        return await self._session_command(
            SessionCommandType.UPDATE,
            lambda tx: self.api.update_session(session_id, tx),
            session_wallet, timestamp_ms, expires_at, metadata,
        )

    async def delete_session(
        self,
        session_wallet: Optional[Signer] = None,
        timestamp_ms: Optional[int] = None,
    ) -> str:
        return await self._session_command(
            SessionCommandType.DELETE,
            self.api.delete_session,
            session_wallet, timestamp_ms, 0, None,
        )

    # Bridge

    async def deposit_token(self, token: str, value: Number) -> str:
        """
        Deposit a token from L1 into the exchange.

        Blocks (in a worker thread) until the L1 deposit is confirmed.

        Returns:
            L1 transaction hash
        """
        token_id = self.metadata.token_id(token)
        l1_address = self.metadata.l1_address(token_id)
        decimals = self.metadata.l1_decimals(token_id)
        return await asyncio.to_thread(
            self.bridge.deposit, token_id, value, l1_address, decimals
        )

    async def withdraw_token(
        self, token: str, value: Number, timestamp_ms: Optional[int] = None
    ) -> str:
        """Withdraw a token from the exchange back to L1"""
        token_id = self.metadata.token_id(token)
        l1_address = self.metadata.l1_address(token_id)

        def work() -> str:
            signed_tx = self.bridge.build_withdraw_transaction(
                token_id, value, l1_address, timestamp_ms
            )
            return self._check(self.api.withdraw_token(signed_tx))

        return await asyncio.to_thread(work)

    # Reads

    async def get_market_list(self) -> List[Market]:
        return await asyncio.to_thread(self.api.get_market_list)

    async def get_tickers(self) -> List[Ticker]:
        return await asyncio.to_thread(self.api.get_tickers)

    async def get_ticker(self, market: str) -> Ticker:
        return await asyncio.to_thread(self.api.get_ticker, market)

    async def get_tokens(self) -> List[Token]:
        return await asyncio.to_thread(self.api.get_tokens)

    async def get_trades(self, market: str, limit: Optional[int] = None) -> List[Trade]:
        return await asyncio.to_thread(self.api.get_trades, market, limit)

    async def get_balance(self, address: Optional[str] = None) -> List[Balance]:
        return await asyncio.to_thread(self.api.get_balance, address or self.l1_address)

    async def get_sessions(self, address: Optional[str] = None) -> List[Session]:
        return await asyncio.to_thread(self.api.get_sessions, address or self.l1_address)

    async def get_open_orders(
        self,
        address: Optional[str] = None,
        market: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Order]:
        return await asyncio.to_thread(
            self.api.get_open_orders, address or self.l1_address, market, limit
        )

    async def get_filled_canceled_orders(
        self,
        address: Optional[str] = None,
        market: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Order]:
        return await asyncio.to_thread(
            self.api.get_filled_canceled_orders, address or self.l1_address, market, limit
        )

    async def get_order_by_id(self, order_id: str) -> Optional[Order]:
        return await asyncio.to_thread(self.api.get_order_by_id, order_id)

    async def get_transfer_history(
        self,
        address: Optional[str] = None,
        token_id: Optional[str] = None,
        from_msec: Optional[int] = None,
        to_msec: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Transfer]:
        return await asyncio.to_thread(
            self.api.get_transfer_history,
            address or self.l1_address, token_id, from_msec, to_msec, limit,
        )
