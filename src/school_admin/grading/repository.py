from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import ScaleType
from .model import GradingScale, NewScaleGrade, ScaleGrade


class GradingScaleRepository(Protocol):
    def list_for_school(self, *, school_id: int, campus_id: Optional[int] = None) -> Sequence[GradingScale]:
        """Scales ordered by sort_order and title; with a campus, only that campus's and shared ones."""

        raise NotImplementedError

    def get(self, *, grading_scale_id: int, school_id: int) -> Optional[GradingScale]:
        raise NotImplementedError

    def get_default(self, *, school_id: int) -> Optional[GradingScale]:
        raise NotImplementedError

    def clear_default(self, *, school_id: int) -> None:
        raise NotImplementedError

    def create(
        self,
        *,
        school_id: int,
        campus_id: Optional[int],
        title: str,
        scale_type: ScaleType,
        comment: Optional[str],
        is_default: bool,
        sort_order: int,
    ) -> int:
        raise NotImplementedError

    def update(self, *, grading_scale_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, grading_scale_id: int, school_id: int) -> bool:
        raise NotImplementedError


class ScaleGradeRepository(Protocol):
    def list_for_scale(self, *, grading_scale_id: int, active_only: bool = False) -> Sequence[ScaleGrade]:
        raise NotImplementedError

    def get(self, grade_id: int) -> Optional[ScaleGrade]:
        raise NotImplementedError

    def create_many(self, *, grading_scale_id: int, grades: Sequence[NewScaleGrade]) -> list[int]:
        raise NotImplementedError

    def update(self, *, grade_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, grade_id: int) -> bool:
        raise NotImplementedError

    def best_match(self, *, grading_scale_id: int, percentage: Decimal) -> Optional[ScaleGrade]:
        """Active grade with the highest break_off not above `percentage`."""

        raise NotImplementedError
