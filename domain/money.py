"""
Domain: monetary arithmetic helpers (pure).

All money is carried as Decimal and never rounded during computation.
Rounding happens only at the reporting edge, half-up to whole units.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

ZERO = Decimal("0")


def to_decimal(value: Any, *, name: str = "amount") -> Decimal:
    """
    Coerce a stored or requested value into a Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    """

    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise TypeError(f"{name} must be numeric, got bool")
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"{name} is not a valid number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{name} must be finite")
    return result


def round_money(value: Decimal) -> int:
    """Round to a whole currency unit, half away from zero."""

    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_one_place(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return ZERO
    return part / whole * 100


def money_sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)
