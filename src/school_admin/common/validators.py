from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from ..core.exceptions import ValidationError
from .datetime_utils import parse_iso_date


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    v = (value or "").strip()
    return v or None


def require_decimal(value: Any, field_name: str) -> Decimal:
    if isinstance(value, Decimal):
        amount = value
    else:
        if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{field_name} must be a number")
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field_name} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    return amount


def require_non_negative(value: Any, field_name: str) -> Decimal:
    amount = require_decimal(value, field_name)
    if amount < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return amount


def require_positive(value: Any, field_name: str) -> Decimal:
    amount = require_decimal(value, field_name)
    if amount <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return amount


def require_percentage(value: Any, field_name: str) -> Decimal:
    amount = require_non_negative(value, field_name)
    if amount > 100:
        raise ValidationError(f"{field_name} cannot exceed 100")
    return amount


def require_choice(value: Any, enum_cls, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


def require_int_range(value: Any, field_name: str, low: int, high: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if n < low or n > high:
        raise ValidationError(f"{field_name} must be between {low} and {high}")
    return n


def int_list(values: Optional[Iterable[Any]]) -> list[int]:
    if not values:
        return []
    try:
        return [int(v) for v in values]
    except (TypeError, ValueError):
        raise ValidationError("Expected a list of ids")


def optional_date(value: Any, field_name: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)")
