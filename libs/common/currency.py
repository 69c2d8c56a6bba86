"""Money helpers for the commerce core.

Internal storage unit: dollars as ``Decimal`` with two places (``Numeric(12, 2)``).
Provider unit: integer cents.

Rounding is half away from zero (``ROUND_HALF_UP`` on ``Decimal``), never
banker's rounding.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, int, float, str]

CENTS_PER_DOLLAR: int = 100
CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Number | None) -> Decimal:
    """Convert a number to ``Decimal`` without binary float artifacts."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round2(value: Number) -> Decimal:
    """Round to the cent, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def dollars_to_cents(amount: Number) -> int:
    """Convert dollars to integer cents (round half away from zero)."""
    cents = to_decimal(amount) * CENTS_PER_DOLLAR
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_dollars(cents: int) -> Decimal:
    """Convert integer cents to a two-place ``Decimal``."""
    return round2(Decimal(int(cents)) / CENTS_PER_DOLLAR)


def as_json_number(value: Number) -> Union[int, float]:
    """Render a ``Decimal`` as a JSON number (ints stay ints)."""
    dec = to_decimal(value)
    if dec == dec.to_integral_value():
        return int(dec)
    return float(dec)
