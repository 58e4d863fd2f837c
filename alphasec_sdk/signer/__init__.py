"""
Signing layer for AlphaSec L2 envelopes, session authorizations and L1 bridge transactions.
"""
from typing import Any, Dict, Protocol


class Signer(Protocol):
    """Protocol for objects able to sign AlphaSec transactions"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object"""
        ...

    def sign_typed_data(self, full_message: Dict[str, Any]) -> bytes:
        """Sign EIP-712 typed data and return the 65-byte signature"""
        ...


from .local import LocalSigner  # noqa: E402
from .signer import AlphaSecSigner  # noqa: E402
from .bridge import BridgeBuilder  # noqa: E402

__all__ = ["Signer", "LocalSigner", "AlphaSecSigner", "BridgeBuilder"]
