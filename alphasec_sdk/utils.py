"""
Utility functions for the AlphaSec SDK.
"""
import decimal
import re
import time
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union

from .exceptions import InvalidAddressError, InvalidParameterError

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

Number = Union[Decimal, int, float, str]

# Keys whose values must never reach the logs
SENSITIVE_KEYS = ("tx", "l1signature", "signature", "private_key")


def is_valid_address(address: Optional[str]) -> bool:
    """Check that an address is 0x followed by 40 hex characters"""
    return bool(address) and ADDRESS_RE.match(address) is not None


def require_address(address: Optional[str], name: str = "address") -> str:
    """
    Validate an address.

    Raises:
        InvalidAddressError: If the address is malformed
    """
    if not is_valid_address(address):
        raise InvalidAddressError(f"Invalid {name}: {address}")
    return address


def current_timestamp_ms() -> int:
    return int(time.time() * 1000)


def to_decimal(value: Number, name: str = "value") -> Decimal:
    """
    Convert a number to Decimal without binary float artifacts.

    Floats go through ``str`` so that ``0.2`` becomes ``Decimal("0.2")``.

    Raises:
        InvalidParameterError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be a number, got bool")
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise InvalidParameterError(f"{name} is not a number: {value!r}") from e
    if not result.is_finite():
        raise InvalidParameterError(f"{name} must be finite, got {value!r}")
    return result


def to_base_units(amount: Number, decimals: int) -> int:
    """
    Convert a token amount to integer base units.

    Any fraction smaller than one base unit is truncated.

    Raises:
        InvalidParameterError: If the amount is negative
    """
    value = to_decimal(amount, "amount")
    if value < 0:
        raise InvalidParameterError("Amount cannot be negative")
    with decimal.localcontext() as ctx:
        ctx.prec = 78
        return int(value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def sanitize_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of a request payload with signed data redacted for logging"""
    safe = {}
    for key, value in payload.items():
        if key in SENSITIVE_KEYS and isinstance(value, str):
            safe[key] = f"{value[:10]}...[{len(value)} chars]" if len(value) > 10 else "***"
        else:
            safe[key] = value
    return safe
