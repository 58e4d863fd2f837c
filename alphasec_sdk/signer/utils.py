"""
Price and quantity normalization for AlphaSec orders.
"""
import decimal
from decimal import Decimal, ROUND_DOWN
from typing import Tuple

from ..exceptions import InvalidParameterError
from ..utils import Number, to_decimal

# (lower bound, decimals), checked in order; first match wins
PRICE_PRECISION = (
    (Decimal("10000"), 0),
    (Decimal("1000"), 1),
    (Decimal("100"), 2),
    (Decimal("10"), 3),
    (Decimal("1"), 4),
    (Decimal("0.1"), 5),
    (Decimal("0.01"), 6),
    (Decimal("0.001"), 7),
)
PRICE_PRECISION_FLOOR = 8

QUANTITY_PRECISION = (
    (Decimal("10000"), 5),
    (Decimal("1000"), 4),
    (Decimal("100"), 3),
    (Decimal("10"), 2),
    (Decimal("1"), 1),
)
# Sub-unit quantities keep enough places for fractional base amounts
QUANTITY_PRECISION_FLOOR = 5


def get_price_precision(price: Decimal) -> int:
    for bound, places in PRICE_PRECISION:
        if price >= bound:
            return places
    return PRICE_PRECISION_FLOOR


def get_quantity_precision(quantity: Decimal) -> int:
    for bound, places in QUANTITY_PRECISION:
        if quantity >= bound:
            return places
    return QUANTITY_PRECISION_FLOOR


def truncate(value: Decimal, places: int) -> Decimal:
    """Truncate toward zero to a number of decimal places"""
    with decimal.localcontext() as ctx:
        ctx.prec = 78
        return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)


def normalize_price(price: Number) -> Decimal:
    value = to_decimal(price, "price")
    if value < 0:
        raise InvalidParameterError("Price cannot be negative")
    return truncate(value, get_price_precision(value))


def normalize_quantity(quantity: Number) -> Decimal:
    value = to_decimal(quantity, "quantity")
    if value < 0:
        raise InvalidParameterError("Quantity cannot be negative")
    return truncate(value, get_quantity_precision(value))


def normalize_price_quantity(price: Number, quantity: Number) -> Tuple[Decimal, Decimal]:
    """
    Normalize price and quantity by truncating them to the exchange precision.

    The number of decimal places depends on magnitude: prices keep 0 places
    from 10000 up to 8 places below 0.001, quantities keep 5 places from
    10000 down to 1 place in [1, 10), and 5 places below 1.

    Args:
        price: Order price (must be non-negative)
        quantity: Order quantity (must be non-negative)

    Returns:
        Tuple of (price, quantity) as Decimals

    Raises:
        InvalidParameterError: If either value is negative or not a number
    """
    return normalize_price(price), normalize_quantity(quantity)


def format_decimal(value: Decimal) -> str:
    """Render a Decimal in plain notation without trailing fractional zeros"""
    with decimal.localcontext() as ctx:
        ctx.prec = 78
        text = format(value.normalize(), "f")
    return "0" if text in ("-0", "") else text
