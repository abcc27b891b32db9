from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..core.enums import ScaleType


@dataclass(frozen=True)
class ScaleGrade:
    grade_id: int
    grading_scale_id: int
    title: str
    gpa_value: Decimal
    break_off: Decimal
    comment: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class GradingScale:
    grading_scale_id: int
    school_id: int
    title: str
    scale_type: ScaleType = ScaleType.PERCENTAGE
    campus_id: Optional[int] = None
    comment: Optional[str] = None
    is_default: bool = False
    sort_order: int = 0
    grades: tuple[ScaleGrade, ...] = ()


@dataclass(frozen=True)
class NewScaleGrade:
    title: str
    gpa_value: Decimal
    break_off: Decimal
    comment: Optional[str] = None
    sort_order: int = 0


# Letter grades of the standard percentage scale, highest first.
STANDARD_GRADES = (
    NewScaleGrade("A+", Decimal("4.00"), Decimal("90"), sort_order=0),
    NewScaleGrade("A", Decimal("3.70"), Decimal("85"), sort_order=1),
    NewScaleGrade("B+", Decimal("3.30"), Decimal("80"), sort_order=2),
    NewScaleGrade("B", Decimal("3.00"), Decimal("75"), sort_order=3),
    NewScaleGrade("C+", Decimal("2.70"), Decimal("70"), sort_order=4),
    NewScaleGrade("C", Decimal("2.30"), Decimal("65"), sort_order=5),
    NewScaleGrade("D", Decimal("1.00"), Decimal("60"), sort_order=6),
    NewScaleGrade("F", Decimal("0.00"), Decimal("0"), sort_order=7),
)
