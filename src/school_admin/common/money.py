from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from ..core.constants import CENT, ZERO
from ..core.exceptions import ValidationError


def to_money(value: Any) -> Decimal:
    """Coerce DB/JSON values (Decimal, float, int, str, None) to a 2-place Decimal."""
    if value is None:
        return ZERO
    try:
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value}")


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    return to_money(Decimal(amount) * Decimal(percent) / Decimal(100))


def money_str(value: Any) -> str:
    return str(to_money(value))
