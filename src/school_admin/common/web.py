"""Request parsing helpers shared by the JSON controllers."""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from flask import request

from ..core.exceptions import ValidationError
from .validators import optional_date


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def current_user_id() -> Optional[int]:
    raw = (request.headers.get("X-User-Id") or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("X-User-Id header must be an integer")


def arg_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def arg_str(name: str) -> Optional[str]:
    raw = (request.args.get(name) or "").strip()
    return raw or None


def arg_bool(name: str, default: bool) -> bool:
    raw = (request.args.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def arg_date(name: str) -> Optional[date]:
    raw = arg_str(name)
    return parse_date(raw, name) if raw else None


def parse_date(value: Any, field_name: str) -> Optional[date]:
    return optional_date(value, field_name)


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses, dates, Decimals and enums into JSON-friendly values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value
