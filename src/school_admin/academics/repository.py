from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Protocol, Sequence

from .model import AcademicYear, GradeLevel, Section, Subject


class AcademicYearRepository(Protocol):
    def list_active(self, *, school_id: int) -> Sequence[AcademicYear]:
        """Active years, most recent start date first."""

        raise NotImplementedError

    def get(self, *, academic_year_id: int, school_id: int) -> Optional[AcademicYear]:
        raise NotImplementedError

    def get_current(self, *, school_id: int) -> Optional[AcademicYear]:
        raise NotImplementedError

    def clear_flags(self, *, school_id: int, is_current: bool, is_next: bool) -> None:
        """Unset is_current/is_next on every year of the school (only the flags passed as True)."""

        raise NotImplementedError

    def create(
        self,
        *,
        school_id: int,
        name: str,
        start_date: date,
        end_date: date,
        is_current: bool,
        is_next: bool,
    ) -> int:
        raise NotImplementedError

    def update(self, *, academic_year_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, academic_year_id: int, school_id: int) -> bool:
        raise NotImplementedError


class GradeLevelRepository(Protocol):
    def list_with_stats(self, *, school_id: int, include_inactive: bool = False) -> Sequence[GradeLevel]:
        raise NotImplementedError

    def get(self, *, grade_level_id: int, school_id: int) -> Optional[GradeLevel]:
        raise NotImplementedError

    def create(self, *, school_id: int, name: str, order_index: int, base_fee: Decimal) -> int:
        raise NotImplementedError

    def update(self, *, grade_level_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, grade_level_id: int, school_id: int) -> bool:
        raise NotImplementedError


class SectionRepository(Protocol):
    def list(self, *, school_id: int, grade_level_id: Optional[int] = None) -> Sequence[Section]:
        raise NotImplementedError

    def get(self, *, section_id: int, school_id: int) -> Optional[Section]:
        raise NotImplementedError

    def count_for_grade(self, *, grade_level_id: int) -> int:
        raise NotImplementedError

    def count_students(self, *, section_id: int) -> int:
        raise NotImplementedError

    def create(self, *, school_id: int, grade_level_id: int, name: str, capacity: int) -> int:
        raise NotImplementedError

    def update(self, *, section_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, section_id: int, school_id: int) -> bool:
        raise NotImplementedError


class SubjectRepository(Protocol):
    def list(self, *, school_id: int, grade_level_id: Optional[int] = None) -> Sequence[Subject]:
        raise NotImplementedError

    def get(self, *, subject_id: int, school_id: int) -> Optional[Subject]:
        raise NotImplementedError

    def count_for_grade(self, *, grade_level_id: int) -> int:
        raise NotImplementedError

    def create(
        self,
        *,
        school_id: int,
        grade_level_id: int,
        name: str,
        code: Optional[str],
        subject_type: str,
    ) -> int:
        raise NotImplementedError

    def update(self, *, subject_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, subject_id: int, school_id: int) -> bool:
        raise NotImplementedError
