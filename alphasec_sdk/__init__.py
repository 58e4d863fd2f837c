"""
AlphaSec SDK - trade on the AlphaSec order-book exchange from Python.
"""
from .agent import Agent
from .api import ApiClient
from .config import Config, Network, NetworkConfig
from .exceptions import (
    AlphaSecError,
    ApiError,
    AuthError,
    ConfigError,
    Eip712Error,
    EthereumError,
    HttpError,
    InvalidAddressError,
    InvalidParameterError,
    JsonError,
    NetworkError,
    NonceError,
    NotFoundError,
    SignerError,
    TransactionEncodingError,
    TransactionError,
    WebSocketError,
)
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
from .signer import AlphaSecSigner, BridgeBuilder, LocalSigner, Signer
from .signer.commands import OrderMode, OrderSide, OrderType, SessionCommandType
from .version import __version__
from .websocket import ConnectionState, WsConfig, WsManager

__all__ = [
    "Agent",
    "ApiClient",
    "Config",
    "Network",
    "NetworkConfig",
    "AlphaSecSigner",
    "BridgeBuilder",
    "LocalSigner",
    "Signer",
    "OrderMode",
    "OrderSide",
    "OrderType",
    "SessionCommandType",
    "ConnectionState",
    "WsConfig",
    "WsManager",
    "ApiResponse",
    "Balance",
    "Market",
    "Order",
    "Session",
    "Ticker",
    "Token",
    "TokenMetadata",
    "Trade",
    "Transfer",
    "AlphaSecError",
    "ApiError",
    "AuthError",
    "ConfigError",
    "Eip712Error",
    "EthereumError",
    "HttpError",
    "InvalidAddressError",
    "InvalidParameterError",
    "JsonError",
    "NetworkError",
    "NonceError",
    "NotFoundError",
    "SignerError",
    "TransactionEncodingError",
    "TransactionError",
    "WebSocketError",
    "__version__",
]
