"""
WsManager - WebSocket connection manager for the AlphaSec stream.

A single background task owns the socket. The public API talks to it through
a FIFO control queue and a shared state object; parsed messages reach one
consumer through a receive queue that can be taken exactly once.
"""
import asyncio
import dataclasses
import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Set, Union

import aiohttp

from .._rate_limited_log import rate_limited_log
from ..exceptions import JsonError
from .messages import (
    AckMessage,
    DisconnectedMessage,
    PingMessage,
    PongMessage,
    WebSocketMessage,
    parse_message,
)

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


@dataclass
class WsConfig:
    """
    Streaming client settings.

    ``max_reconnect_attempts = 0`` retries forever and
    ``message_queue_size = 0`` leaves the receive queue unbounded. When
    ``auto_reconnect_after_success`` is False the manager stays disconnected
    after losing a connection that had been established.
    """
    url: str
    max_reconnect_attempts: int = 0
    reconnect_delay: float = 1.0
    max_reconnect_delay: float = 30.0
    ping_interval: float = 10.0
    pong_timeout: float = 30.0
    message_queue_size: int = 0
    auto_reconnect_after_success: bool = True
    connect_timeout: float = 10.0


@dataclass
class ConnectionStats:
    connection_attempts: int = 0
    successful_connections: int = 0
    messages_sent: int = 0
    messages_received: int = 0
    last_connected_at: Optional[float] = None
    last_disconnected_at: Optional[float] = None


@dataclass(frozen=True)
class ConnectCommand:
    pass


@dataclass(frozen=True)
class DisconnectCommand:
    pass


@dataclass(frozen=True)
class SubscribeCommand:
    id: int
    channel: str


@dataclass(frozen=True)
class UnsubscribeCommand:
    id: int
    channel: str


ManagerCommand = Union[ConnectCommand, DisconnectCommand, SubscribeCommand, UnsubscribeCommand]


def subscription_frame(method: str, sub_id: int, channel: str) -> str:
    return json.dumps(
        {"method": method, "params": {"channels": [channel]}, "id": sub_id},
        separators=(",", ":"),
    )


@dataclass
class _SharedState:
    """State shared between the public API and the connection task"""
    state: ConnectionState = ConnectionState.DISCONNECTED
    subscriptions: Dict[int, str] = field(default_factory=dict)
    next_id: int = 1
    stats: ConnectionStats = field(default_factory=ConnectionStats)
    outbound: Optional[asyncio.Queue] = None
    state_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    subscriptions_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    connected: asyncio.Event = field(default_factory=asyncio.Event)

    async def set_state(self, state: ConnectionState) -> None:
        async with self.state_lock:
            if self.state != state:
                logger.debug(f"WebSocket state {self.state.value} -> {state.value}")
            self.state = state
            if state == ConnectionState.CONNECTED:
                self.connected.set()
            else:
                self.connected.clear()


class _ConnectionTask:
    """Connection loop run by the manager's background task"""

    # Outcomes of one served connection
    LOST = "lost"
    STOPPED = "stopped"

    def __init__(
        self,
        config: WsConfig,
        shared: _SharedState,
        control: asyncio.Queue,
        messages: asyncio.Queue,
    ):
        self.config = config
        self.shared = shared
        self.control = control
        self.messages = messages
        self._control_task: Optional[asyncio.Task] = None

    def _next_control(self) -> asyncio.Task:
        if self._control_task is None:
            self._control_task = asyncio.ensure_future(self.control.get())
        return self._control_task

    def _take_control(self) -> ManagerCommand:
        command = self._control_task.result()
        self._control_task = None
        return command

    async def run(self) -> None:
        try:
            if await self._wait_for_connect():
                async with aiohttp.ClientSession() as session:
                    await self._connection_loop(session)
        finally:
            if self._control_task is not None:
                self._control_task.cancel()
            self.shared.outbound = None

    async def _wait_for_connect(self) -> bool:
        while True:
            command = await self._next_control()
            self._take_control()
            if isinstance(command, ConnectCommand):
                return True
            if isinstance(command, DisconnectCommand):
                await self.shared.set_state(ConnectionState.CLOSED)
                return False

    async def _sleep_or_disconnect(self, delay: float) -> bool:
        """Sleep for the backoff delay; True if a Disconnect arrived meanwhile"""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + delay
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            task = self._next_control()
            done, _ = await asyncio.wait({task}, timeout=remaining)
            if task in done:
                if isinstance(self._take_control(), DisconnectCommand):
                    return True
                # Subscription changes are replayed from the registry on connect

    async def _connection_loop(self, session: aiohttp.ClientSession) -> None:
        cfg = self.config
        attempts = 0
        delay = cfg.reconnect_delay

        while True:
            await self.shared.set_state(ConnectionState.CONNECTING)
            self.shared.stats.connection_attempts += 1
            try:
                ws = await asyncio.wait_for(
                    session.ws_connect(cfg.url, autoping=False),
                    timeout=cfg.connect_timeout,
                )
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                attempts += 1
                rate_limited_log(
                    f"WebSocket connection to {cfg.url} failed: {e}",
                    key=f"ws-connect:{cfg.url}",
                    logger_instance=logger,
                )
                if cfg.max_reconnect_attempts > 0 and attempts >= cfg.max_reconnect_attempts:
                    logger.error(
                        f"Giving up on {cfg.url} after {attempts} connection attempts"
                    )
                    await self.shared.set_state(ConnectionState.DISCONNECTED)
                    return
                await self.shared.set_state(ConnectionState.RECONNECTING)
                if await self._sleep_or_disconnect(delay):
                    await self.shared.set_state(ConnectionState.CLOSED)
                    return
                delay = min(delay * 2, cfg.max_reconnect_delay)
                continue

            attempts = 0
            delay = cfg.reconnect_delay
            stats = self.shared.stats
            stats.successful_connections += 1
            stats.last_connected_at = time.monotonic()
            logger.info(f"WebSocket connected to {cfg.url}")

            try:
                outcome = await self._serve(ws)
            finally:
                self.shared.outbound = None
                stats.last_disconnected_at = time.monotonic()
                if not ws.closed:
                    await ws.close()

            if outcome == self.STOPPED:
                await self.shared.set_state(ConnectionState.CLOSED)
                return

            await self.shared.set_state(ConnectionState.DISCONNECTED)
            self._deliver(DisconnectedMessage())
            if not cfg.auto_reconnect_after_success:
                logger.warning(f"WebSocket connection to {cfg.url} lost; auto-reconnect disabled")
                return

            logger.warning(f"WebSocket connection to {cfg.url} lost; reconnecting")
            await self.shared.set_state(ConnectionState.RECONNECTING)
            if await self._sleep_or_disconnect(delay):
                await self.shared.set_state(ConnectionState.CLOSED)
                return

    def _deliver(self, message: WebSocketMessage) -> None:
        """Queue a message, evicting the oldest ones when a bounded queue is full"""
        while True:
            try:
                self.messages.put_nowait(message)
                return
            except asyncio.QueueFull:
                rate_limited_log(
                    "WebSocket receive queue is full; dropping oldest messages",
                    key="ws-queue-full",
                    logger_instance=logger,
                )
                try:
                    self.messages.get_nowait()
                except asyncio.QueueEmpty:
                    pass

    async def _send(self, ws: aiohttp.ClientWebSocketResponse, text: str) -> None:
        await ws.send_str(text)
        self.shared.stats.messages_sent += 1

    async def _serve(self, ws: aiohttp.ClientWebSocketResponse) -> str:
        cfg = self.config

        # Registered subscriptions go out before any other frame
        async with self.shared.subscriptions_lock:
            replay = sorted(self.shared.subscriptions.items())
        sent: Set[int] = set()
        try:
            for sub_id, channel in replay:
                await self._send(ws, subscription_frame("subscribe", sub_id, channel))
                sent.add(sub_id)
        except (aiohttp.ClientError, ConnectionError) as e:
            logger.warning(f"Failed to restore subscriptions: {e}")
            return self.LOST
        if replay:
            logger.debug(f"Restored {len(replay)} subscriptions")

        outbound: asyncio.Queue = asyncio.Queue()
        self.shared.outbound = outbound
        await self.shared.set_state(ConnectionState.CONNECTED)

        receive_task = asyncio.ensure_future(ws.receive())
        outbound_task = asyncio.ensure_future(outbound.get())
        ping_task = asyncio.ensure_future(asyncio.sleep(cfg.ping_interval))
        # Armed by the first unanswered ping, disarmed by any pong
        pong_deadline: Optional[asyncio.Future] = None

        try:
            while True:
                control_task = self._next_control()
                waiting = {receive_task, outbound_task, ping_task, control_task}
                if pong_deadline is not None:
                    waiting.add(pong_deadline)
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                if pong_deadline is not None and pong_deadline in done:
                    logger.warning(f"No pong within {cfg.pong_timeout}s; dropping connection")
                    return self.LOST

                if control_task in done:
                    command = self._take_control()
                    if isinstance(command, DisconnectCommand):
                        await ws.close()
                        return self.STOPPED
                    if (
                        isinstance(command, SubscribeCommand)
                        and command.id not in sent
                        and command.id in self.shared.subscriptions
                    ):
                        await self._send(ws, subscription_frame("subscribe", command.id, command.channel))
                        sent.add(command.id)
                    elif isinstance(command, UnsubscribeCommand):
                        await self._send(ws, subscription_frame("unsubscribe", command.id, command.channel))
                        sent.discard(command.id)

                if outbound_task in done:
                    item = outbound_task.result()
                    if not isinstance(item, str):
                        item = json.dumps(item, separators=(",", ":"))
                    await self._send(ws, item)
                    outbound_task = asyncio.ensure_future(outbound.get())

                if ping_task in done:
                    await ws.ping()
                    if pong_deadline is None:
                        pong_deadline = asyncio.ensure_future(asyncio.sleep(cfg.pong_timeout))
                    ping_task = asyncio.ensure_future(asyncio.sleep(cfg.ping_interval))

                if receive_task in done:
                    msg = receive_task.result()
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        self._handle_text(msg.data)
                    elif msg.type == aiohttp.WSMsgType.PING:
                        await ws.pong(msg.data)
                        self._deliver(PingMessage(payload=msg.data))
                    elif msg.type == aiohttp.WSMsgType.PONG:
                        if pong_deadline is not None:
                            pong_deadline.cancel()
                            pong_deadline = None
                        self._deliver(PongMessage(payload=msg.data))
                    elif msg.type in (
                        aiohttp.WSMsgType.CLOSE,
                        aiohttp.WSMsgType.CLOSING,
                        aiohttp.WSMsgType.CLOSED,
                        aiohttp.WSMsgType.ERROR,
                    ):
                        logger.info(f"WebSocket closed by peer ({msg.type.name})")
                        return self.LOST
                    receive_task = asyncio.ensure_future(ws.receive())
        except (aiohttp.ClientError, ConnectionError) as e:
            logger.warning(f"WebSocket error: {e}")
            return self.LOST
        finally:
            pending = [receive_task, outbound_task, ping_task]
            if pong_deadline is not None:
                pending.append(pong_deadline)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def _handle_text(self, text: str) -> None:
        self.shared.stats.messages_received += 1
        try:
            message = parse_message(text)
        except JsonError as e:
            logger.warning(f"Dropping unparseable frame: {e}")
            return
        if isinstance(message, AckMessage):
            logger.debug(f"Subscription {message.id} acknowledged: {message.result}")
            return
        self._deliver(message)


class WsManager:
    """
    Manager for the AlphaSec WebSocket stream.

    Subscriptions are kept in a registry keyed by SDK id and are re-sent
    after every reconnect.

    Args:
        config: Streaming settings
        logger: Optional logger instance
    """

    def __init__(self, config: WsConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._shared = _SharedState()
        self._control: asyncio.Queue = asyncio.Queue()
        self._messages: asyncio.Queue = asyncio.Queue(maxsize=max(config.message_queue_size, 0))
        self._receiver_taken = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Spawn the connection task and request a connection"""
        if self._task is not None:
            self.logger.warning("WebSocket manager already started")
            return
        runner = _ConnectionTask(self.config, self._shared, self._control, self._messages)
        self._task = asyncio.create_task(runner.run())
        self._task.add_done_callback(self._on_task_done)
        await self._control.put(ConnectCommand())

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error(f"WebSocket task failed: {exc!r}")

    async def stop(self) -> None:
        """Request shutdown and wait for the connection task to exit"""
        if self._task is None:
            return
        await self._control.put(DisconnectCommand())
        self._shared.outbound = None
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            self.logger.error(f"WebSocket task ended with error: {e!r}")
        finally:
            self._task = None
        await self._shared.set_state(ConnectionState.CLOSED)

    def take_message_receiver(self) -> Optional[asyncio.Queue]:
        """
        Hand out the receive queue.

        Returns:
            The queue on the first call, None afterwards
        """
        if self._receiver_taken:
            return None
        self._receiver_taken = True
        return self._messages

    async def subscribe(self, channel: str) -> int:
        """
        Subscribe to a channel.

        Returns:
            SDK subscription id (monotonic, never reused)
        """
        async with self._shared.subscriptions_lock:
            sub_id = self._shared.next_id
            self._shared.next_id += 1
            self._shared.subscriptions[sub_id] = channel
        await self._control.put(SubscribeCommand(sub_id, channel))
        self.logger.debug(f"Subscribed {channel} as {sub_id}")
        return sub_id

    async def unsubscribe(self, sub_id: int) -> bool:
        """
        Remove a subscription.

        Returns:
            True if the id was registered
        """
        async with self._shared.subscriptions_lock:
            channel = self._shared.subscriptions.pop(sub_id, None)
        if channel is None:
            return False
        await self._control.put(UnsubscribeCommand(sub_id, channel))
        return True

    @property
    def started(self) -> bool:
        return self._task is not None

    def get_subscriptions(self) -> Dict[int, str]:
        return dict(self._shared.subscriptions)

    def get_state(self) -> ConnectionState:
        return self._shared.state

    def is_connected(self) -> bool:
        return self._shared.state == ConnectionState.CONNECTED

    async def wait_until_connected(self, timeout: Optional[float] = None) -> bool:
        """Wait for the connected state; False on timeout"""
        try:
            await asyncio.wait_for(self._shared.connected.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def get_stats(self) -> ConnectionStats:
        return dataclasses.replace(self._shared.stats)

    def get_outgoing_sender(self) -> Optional[asyncio.Queue]:
        """
        Queue of raw outbound frames (str or JSON-serializable objects).

        Returns:
            The queue while connected, else None
        """
        return self._shared.outbound
