"""
EIP-712 session wallet authorization.

The L1 owner authorizes a session key by signing a ``RegisterSessionWallet``
message. The domain uses the L1 chain id, never the L2 envelope chain id.
"""
import base64
from typing import Any, Dict, Optional

from ..constants import EIP712_DOMAIN_NAME, EIP712_DOMAIN_VERSION, ZERO_ADDRESS
from ..exceptions import Eip712Error, SignerError

SESSION_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "RegisterSessionWallet": [
        {"name": "sessionWallet", "type": "address"},
        {"name": "expiry", "type": "uint64"},
        {"name": "nonce", "type": "uint64"},
    ],
}


def build_session_typed_data(
    session_wallet: str,
    nonce: int,
    expiry: int,
    chain_id: int,
) -> Dict[str, Any]:
    """
    Build the typed data that authorizes a session wallet.

    Args:
        session_wallet: Address of the session key
        nonce: Authorization nonce (the caller's timestamp in ms)
        expiry: Session expiry timestamp
        chain_id: L1 chain id

    Returns:
        Full EIP-712 message dict
    """
    return {
        "types": SESSION_TYPES,
        "primaryType": "RegisterSessionWallet",
        "domain": {
            "name": EIP712_DOMAIN_NAME,
            "version": EIP712_DOMAIN_VERSION,
            "chainId": chain_id,
            "verifyingContract": ZERO_ADDRESS,
        },
        "message": {
            "sessionWallet": session_wallet,
            "expiry": expiry,
            "nonce": nonce,
        },
    }


def sign_session_authorization(
    l1_signer: Optional[Any],
    session_wallet: str,
    nonce: int,
    expiry: int,
    chain_id: int,
) -> str:
    """
    Sign a session authorization with the L1 owner key.

    Returns:
        Base64 encoding of the 65-byte signature

    Raises:
        SignerError: If no L1 signer is available
        Eip712Error: If the signature is malformed
    """
    if l1_signer is None:
        raise SignerError("L1 private key is required to authorize a session")

    typed_data = build_session_typed_data(session_wallet, nonce, expiry, chain_id)
    signature = l1_signer.sign_typed_data(typed_data)
    if len(signature) != 65:
        raise Eip712Error(f"Expected a 65-byte signature, got {len(signature)} bytes")
    return base64.b64encode(signature).decode("ascii")
