"""
Real-time market data and user events over WebSocket.
"""
from .manager import ConnectionState, ConnectionStats, WsConfig, WsManager
from .messages import (
    AccountEvent,
    AckMessage,
    DepthMessage,
    DisconnectedMessage,
    GenericMessage,
    OrderEvent,
    PingMessage,
    PongMessage,
    TickerMessage,
    TradeMessage,
    UserEventMessage,
    WebSocketMessage,
    parse_message,
)

__all__ = [
    "ConnectionState",
    "ConnectionStats",
    "WsConfig",
    "WsManager",
    "AccountEvent",
    "AckMessage",
    "DepthMessage",
    "DisconnectedMessage",
    "GenericMessage",
    "OrderEvent",
    "PingMessage",
    "PongMessage",
    "TickerMessage",
    "TradeMessage",
    "UserEventMessage",
    "WebSocketMessage",
    "parse_message",
]
