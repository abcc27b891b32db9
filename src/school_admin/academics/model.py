from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..core.enums import SubjectType


@dataclass(frozen=True)
class AcademicYear:
    academic_year_id: int
    school_id: int
    name: str
    start_date: date
    end_date: date
    is_current: bool = False
    is_next: bool = False
    is_active: bool = True


@dataclass(frozen=True)
class GradeLevel:
    grade_level_id: int
    school_id: int
    name: str
    order_index: int = 0
    base_fee: Decimal = Decimal("0.00")
    is_active: bool = True
    section_count: int = 0
    subject_count: int = 0
    student_count: int = 0


@dataclass(frozen=True)
class Section:
    section_id: int
    school_id: int
    grade_level_id: int
    name: str
    capacity: int
    current_strength: int = 0
    is_active: bool = True
    grade_name: Optional[str] = None

    @property
    def available_seats(self) -> int:
        return self.capacity - self.current_strength


@dataclass(frozen=True)
class Subject:
    subject_id: int
    school_id: int
    grade_level_id: int
    name: str
    code: Optional[str] = None
    subject_type: SubjectType = SubjectType.THEORY
    is_active: bool = True
    grade_name: Optional[str] = None
