"""
Tests for the signed L2 envelope transaction.
"""
import threading

import pytest
import rlp
from eth_account import Account

from alphasec_sdk.config import Config
from alphasec_sdk.exceptions import ConfigError, SignerError
from alphasec_sdk.signer.signer import AlphaSecSigner, next_nonce
from conftest import TEST_API_URL, TEST_L1_ADDRESS, TEST_L1_PRIV_KEY, TEST_L2_ADDRESS

ORDER_CONTRACT = bytes.fromhex("00" * 19 + "cc")


def decode_envelope(raw_hex: str):
    """Split a typed EIP-1559 transaction into its RLP fields"""
    raw = bytes.fromhex(raw_hex[2:])
    assert raw[0] == 0x02
    fields = rlp.decode(raw[1:])
    return {
        "chainId": int.from_bytes(fields[0], "big"),
        "nonce": int.from_bytes(fields[1], "big"),
        "maxPriorityFeePerGas": int.from_bytes(fields[2], "big"),
        "maxFeePerGas": int.from_bytes(fields[3], "big"),
        "gas": int.from_bytes(fields[4], "big"),
        "to": fields[5],
        "value": int.from_bytes(fields[6], "big"),
        "data": fields[7],
        "accessList": fields[8],
    }


def test_envelope_fields(config):
    """
    Test that the envelope wraps the payload with the fixed L2 parameters.
    """
    # Setup
    signer = AlphaSecSigner(config)
    payload = signer.create_cancel_data("o-123")

    # Test
    raw = signer.generate_alphasec_transaction(payload, timestamp_ms=1_700_000_000_123)

    # Verify
    tx = decode_envelope(raw)
    assert tx["chainId"] == 41001
    assert tx["nonce"] == 1_700_000_000_123
    assert tx["maxPriorityFeePerGas"] == 0
    assert tx["maxFeePerGas"] == 0
    assert tx["gas"] == 1_000_000
    assert tx["to"] == ORDER_CONTRACT
    assert tx["value"] == 0
    assert tx["data"] == payload
    assert tx["accessList"] == []


def test_envelope_signed_by_l1_wallet(config):
    signer = AlphaSecSigner(config)

    raw = signer.generate_alphasec_transaction(signer.create_cancel_all_data())

    assert Account.recover_transaction(raw) == TEST_L1_ADDRESS


def test_envelope_signed_by_session_wallet(session_config):
    """With sessions enabled the session key signs, but l1owner stays the owner"""
    signer = AlphaSecSigner(session_config)
    payload = signer.create_cancel_all_data()

    raw = signer.generate_alphasec_transaction(payload)

    assert Account.recover_transaction(raw) == TEST_L2_ADDRESS
    assert TEST_L1_ADDRESS.encode() in decode_envelope(raw)["data"]


def test_envelope_explicit_wallet(config, session_config):
    signer = AlphaSecSigner(config)

    raw = signer.generate_alphasec_transaction(
        signer.create_cancel_all_data(), wallet=session_config.l2_signer
    )

    assert Account.recover_transaction(raw) == TEST_L2_ADDRESS


def test_chain_id_override(config):
    signer = AlphaSecSigner(config.with_chain_id(777))

    raw = signer.generate_alphasec_transaction(b"\x23{}", timestamp_ms=1)

    assert decode_envelope(raw)["chainId"] == 777


def test_envelope_requires_signing_key():
    config = Config(api_url=TEST_API_URL, l1_address=TEST_L1_ADDRESS)
    signer = AlphaSecSigner(config)

    with pytest.raises(ConfigError):
        signer.generate_alphasec_transaction(b"\x23{}")


def test_signing_failure_is_wrapped(config):
    class BrokenWallet:
        address = TEST_L1_ADDRESS

        def sign_transaction(self, tx):
            raise RuntimeError("device unplugged")

    signer = AlphaSecSigner(config)

    with pytest.raises(SignerError, match="device unplugged"):
        signer.generate_alphasec_transaction(b"\x23{}", wallet=BrokenWallet())


def test_explicit_nonce_is_used_verbatim():
    assert next_nonce(42) == 42


def test_nonces_distinct_across_threads():
    """
    Test that concurrent callers in the same millisecond get distinct nonces.
    """
    # Setup
    nonces = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            value = next_nonce()
            with lock:
                nonces.append(value)

    threads = [threading.Thread(target=worker) for _ in range(8)]

    # Test
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    # Verify
    assert len(nonces) == 400
    assert len(set(nonces)) == 400


def test_nonce_tracks_wall_clock(monkeypatch):
    monkeypatch.setattr("alphasec_sdk.signer.signer.current_timestamp_ms", lambda: 5_000)

    assert next_nonce() >= 5_000
