from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ..core.constants import ACADEMIC_YEAR_START_MONTH


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def today_local() -> date:
    """Current local date.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now().date()


def now_local() -> datetime:
    return datetime.now()


def fee_month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def academic_year_for(day: date) -> str:
    """Academic year label ("2025-2026") containing `day`; years start in July."""
    if day.month >= ACADEMIC_YEAR_START_MONTH:
        return f"{day.year}-{day.year + 1}"
    return f"{day.year - 1}-{day.year}"


def iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None
