"""
Exceptions for the AlphaSec SDK.
"""
from typing import Optional


class AlphaSecError(Exception):
    """Base exception for all AlphaSec SDK errors."""
    pass


class HttpError(AlphaSecError):
    """Raised when an HTTP request cannot be completed."""
    pass


class JsonError(AlphaSecError):
    """Raised when a response body cannot be decoded as JSON."""
    pass


class WebSocketError(AlphaSecError):
    """Raised for WebSocket transport failures."""
    pass


class EthereumError(AlphaSecError):
    """Raised when an L1 or L2 RPC call fails."""
    pass


class Eip712Error(AlphaSecError):
    """Raised when typed data cannot be encoded or signed."""
    pass


class ConfigError(AlphaSecError):
    """Raised when the SDK configuration is invalid."""
    pass


class ApiError(AlphaSecError):
    """Raised when the exchange API returns an error response."""

    def __init__(self, code: int, message: Optional[str] = None):
        self.code = code
        self.message = message or ""
        super().__init__(f"API error {code}: {self.message}")


class AuthError(AlphaSecError):
    """Raised when authentication with the exchange fails."""
    pass


class InvalidParameterError(AlphaSecError):
    """Raised when a caller supplies an invalid argument."""
    pass


class NetworkError(AlphaSecError):
    """Raised for network-level failures outside HTTP."""
    pass


class InvalidAddressError(AlphaSecError):
    """Raised when an address is not 0x followed by 40 hex characters."""
    pass


class NotFoundError(AlphaSecError):
    """Raised when a symbol, market or resource cannot be resolved."""
    pass


class SignerError(AlphaSecError):
    """Raised when a transaction or message cannot be signed."""
    pass


class TransactionEncodingError(AlphaSecError):
    """Raised when a transaction cannot be encoded."""
    pass


class NonceError(AlphaSecError):
    """Raised when a transaction nonce cannot be determined."""
    pass


class TransactionError(AlphaSecError):
    """Raised when an L1 transaction reverts or is not confirmed in time."""
    pass
