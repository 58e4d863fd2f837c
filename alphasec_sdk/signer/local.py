"""
Local private-key signer.
"""
from typing import Any, Dict

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount

from ..exceptions import ConfigError, SignerError


class LocalSigner:
    """
    Signer backed by a raw hex private key held in memory.

    Args:
        private_key: Hex private key, with or without 0x prefix

    Raises:
        ConfigError: If the key is not a valid secp256k1 private key
    """

    def __init__(self, private_key: str):
        key = private_key.strip()
        if not key.startswith("0x"):
            key = "0x" + key
        try:
            self._account: LocalAccount = Account.from_key(key)
        except (ValueError, TypeError) as e:
            raise ConfigError(f"Invalid private key: {e}") from e

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def account(self) -> LocalAccount:
        return self._account

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        try:
            return self._account.sign_transaction(transaction_dict)
        except Exception as e:
            raise SignerError(f"Failed to sign transaction: {e}") from e

    def sign_typed_data(self, full_message: Dict[str, Any]) -> bytes:
        try:
            signable = encode_typed_data(full_message=full_message)
            signed = self._account.sign_message(signable)
        except Exception as e:
            raise SignerError(f"Failed to sign typed data: {e}") from e
        return bytes(signed.signature)

    def __repr__(self) -> str:
        return f"LocalSigner(address={self.address})"
