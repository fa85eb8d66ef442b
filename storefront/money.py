"""
Money Utilities - Safe Decimal operations for prices.

Catalog prices arrive as JSON numbers; everything is converted to Decimal
before arithmetic and back to float only at the API boundary.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Number = Union[str, int, float, Decimal, None]

MONEY_PRECISION = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """
    Convert any value to Decimal safely.

    Returns:
        Decimal representation of the value, or Decimal("0") if None/invalid
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def round_money(value: Number) -> Decimal:
    """Round to kopecks (ROUND_HALF_UP)."""
    return to_decimal(value).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def to_float(value: Number) -> float:
    """Convert to float for JSON serialization. Use only at API boundaries."""
    return float(to_decimal(value))


def apply_discount(price: Number, discount_percent: Number) -> Decimal:
    """
    Price after a percentage discount.

    Discounts outside 0..100 are clamped; no discount returns the price as is.
    """
    percent = min(max(to_decimal(discount_percent), Decimal("0")), Decimal("100"))
    if percent == 0:
        return to_decimal(price)
    return to_decimal(price) * (Decimal("1") - percent / Decimal("100"))


def multiply(value: Number, factor: Number) -> Decimal:
    """Safe multiplication of monetary value by a factor."""
    return to_decimal(value) * to_decimal(factor)
