"""
stock_kernel.domain.quantities -- Explicit numeric accessors.

Each accessor encodes exactly one default policy so that ``0``, ``None``
and non-finite values never drift into silently different behavior:

    to_decimal        absent or non-numeric -> None (unknown stays unknown)
    quantity_or_zero  absent quantity -> Decimal("0")
    round_money       2 places, ROUND_HALF_UP (aggregate boundaries only)
    round_units       nearest whole unit, half up
    ceil_to_multiple  smallest multiple of ``step`` >= value

Rounding widens the context precision when needed, so a very large
but finite value (a mis-keyed PAR of 1e30) rounds instead of raising.

Floats are converted through ``str`` so ``32.5`` becomes ``Decimal("32.5")``
rather than its binary expansion.  Booleans are not numbers.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

ZERO = Decimal("0")
ONE = Decimal("1")


def to_decimal(value: Any) -> Decimal | None:
    """Convert a numeric-ish value to a finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            result = Decimal(s)
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def quantity_or_zero(value: Any) -> Decimal:
    """Quantities default to zero when absent."""
    result = to_decimal(value)
    return ZERO if result is None else result


def _quantize(value: Decimal, places: int, rounding: str) -> Decimal:
    digits = max(value.adjusted(), 0) + max(places, 0) + 2
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, digits)
        return value.quantize(Decimal(1).scaleb(-places), rounding=rounding)


def round_money(value: Decimal, places: int = 2) -> Decimal:
    """Round a monetary aggregate half-up to ``places`` decimal places."""
    return _quantize(value, places, ROUND_HALF_UP)


def round_units(value: Decimal) -> Decimal:
    """Round to the nearest whole unit, halves rounding up."""
    return _quantize(value, 0, ROUND_HALF_UP)


def ceil_units(value: Decimal) -> Decimal:
    """Round up to the next whole unit."""
    return _quantize(value, 0, ROUND_CEILING)


def ceil_to_multiple(value: Decimal, step: Decimal) -> Decimal:
    """Smallest multiple of ``step`` that is >= ``value`` (step > 0)."""
    if step <= ZERO:
        raise ValueError(f"step must be positive, got {step}")
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() - step.adjusted() + 30)
        return ceil_units(value / step) * step
