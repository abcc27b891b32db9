from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class School:
    school_id: int
    name: str
    parent_school_id: Optional[int] = None
    is_active: bool = True
    settings: dict = field(default_factory=dict)

    @property
    def owner_id(self) -> int:
        """School that owns shared resources (academic years, fee setup) for this campus."""
        return self.parent_school_id or self.school_id


@dataclass(frozen=True)
class LibrarySettings:
    max_books_per_student: int
    loan_duration_days: int
    fine_per_day: Decimal
