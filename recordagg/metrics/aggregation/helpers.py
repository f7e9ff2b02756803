"""Numeric coercion shared by the accumulator model."""

from __future__ import annotations

from decimal import Context, Decimal
from numbers import Integral, Real
from typing import Any

from ...config import DECIMAL_PRECISION

# No traps: invalid arithmetic produces NaN/Infinity instead of raising.
ARITHMETIC = Context(prec=DECIMAL_PRECISION, traps=[])

NAN = Decimal("NaN")
ZERO = Decimal(0)
POSITIVE_INFINITY = Decimal("Infinity")
NEGATIVE_INFINITY = Decimal("-Infinity")


def to_decimal(value: Any) -> Decimal:
    """Convert raw record values and wire payload numbers into ``Decimal``.

    Floats go through their shortest repr so ``0.1`` stays ``0.1``. Anything that
    is not number-like becomes ``NaN``.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        result = Decimal(int(value))
    elif isinstance(value, Integral):
        result = Decimal(int(value))
    elif isinstance(value, Real):
        result = ARITHMETIC.create_decimal(repr(float(value)))
    elif isinstance(value, str):
        result = ARITHMETIC.create_decimal(value.strip())
    else:
        return NAN
    if result.is_snan():
        return NAN
    return result


def to_count(value: Any) -> int:
    """Coerce a wire count into a non-negative int, raising ``ValueError`` otherwise."""
    if isinstance(value, bool):
        raise ValueError(f"Count must be an integer, received {value!r}")
    if isinstance(value, Integral):
        count = int(value)
    else:
        number = to_decimal(value)
        if not number.is_finite() or number != number.to_integral_value():
            raise ValueError(f"Count must be an integer, received {value!r}")
        count = int(number)
    if count < 0:
        raise ValueError(f"Count must be non-negative, received {count}")
    return count


__all__ = [
    "ARITHMETIC",
    "NAN",
    "NEGATIVE_INFINITY",
    "POSITIVE_INFINITY",
    "ZERO",
    "to_count",
    "to_decimal",
]
