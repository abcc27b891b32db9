from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Sequence

from ..common.money import to_money
from ..common.validators import optional_date, optional_text, require_choice, require_non_empty, require_non_negative
from ..core.enums import SubjectType
from ..core.exceptions import NotFoundError, ValidationError
from ..schools.service import SchoolDirectory
from .model import AcademicYear, GradeLevel, Section, Subject
from .repository import AcademicYearRepository, GradeLevelRepository, SectionRepository, SubjectRepository

logger = logging.getLogger(__name__)


class AcademicYearService:
    """Academic years belong to the owner school; at most one is current and one is next."""

    def __init__(self, years: AcademicYearRepository, schools: SchoolDirectory):
        self._years = years
        self._schools = schools

    def _owner(self, school_id: int) -> int:
        return self._schools.resource_owner_id(int(school_id))

    def list(self, *, school_id: int) -> Sequence[AcademicYear]:
        return self._years.list_active(school_id=self._owner(school_id))

    def current(self, *, school_id: int) -> Optional[AcademicYear]:
        return self._years.get_current(school_id=self._owner(school_id))

    def get(self, *, school_id: int, academic_year_id: int) -> AcademicYear:
        year = self._years.get(academic_year_id=int(academic_year_id), school_id=self._owner(school_id))
        if not year:
            raise NotFoundError("Academic year not found")
        return year

    @staticmethod
    def _check_range(start: date, end: date) -> None:
        if end <= start:
            raise ValidationError("end_date must be after start_date")

    def create(
        self,
        *,
        school_id: int,
        name: str,
        start_date: Any,
        end_date: Any,
        is_current: bool = False,
        is_next: bool = False,
    ) -> int:
        owner_id = self._owner(school_id)
        name = require_non_empty(name, "Academic year name")
        start = optional_date(start_date, "start_date")
        end = optional_date(end_date, "end_date")
        if not start or not end:
            raise ValidationError("start_date and end_date are required")
        self._check_range(start, end)

        self._years.clear_flags(school_id=owner_id, is_current=bool(is_current), is_next=bool(is_next))
        year_id = self._years.create(
            school_id=owner_id,
            name=name,
            start_date=start,
            end_date=end,
            is_current=bool(is_current),
            is_next=bool(is_next),
        )
        logger.info("Academic year %s (%s) created for school %s", year_id, name, owner_id)
        return year_id

    def update(self, *, school_id: int, academic_year_id: int, changes: dict[str, Any]) -> AcademicYear:
        existing = self.get(school_id=school_id, academic_year_id=academic_year_id)

        values: dict[str, Any] = {}
        if "name" in changes:
            values["name"] = require_non_empty(changes["name"], "Academic year name")
        if "start_date" in changes:
            values["start_date"] = optional_date(changes["start_date"], "start_date") or existing.start_date
        if "end_date" in changes:
            values["end_date"] = optional_date(changes["end_date"], "end_date") or existing.end_date
        self._check_range(values.get("start_date", existing.start_date), values.get("end_date", existing.end_date))
        for flag in ("is_current", "is_next", "is_active"):
            if flag in changes:
                values[flag] = int(bool(changes[flag]))

        self._years.clear_flags(
            school_id=existing.school_id,
            is_current=bool(values.get("is_current")),
            is_next=bool(values.get("is_next")),
        )
        if values:
            self._years.update(academic_year_id=existing.academic_year_id, school_id=existing.school_id, changes=values)
        return self.get(school_id=school_id, academic_year_id=existing.academic_year_id)

    def delete(self, *, school_id: int, academic_year_id: int) -> None:
        existing = self.get(school_id=school_id, academic_year_id=academic_year_id)
        self._years.delete(academic_year_id=existing.academic_year_id, school_id=existing.school_id)


class GradeLevelService:
    def __init__(self, grades: GradeLevelRepository, sections: SectionRepository, subjects: SubjectRepository):
        self._grades = grades
        self._sections = sections
        self._subjects = subjects

    def list(self, *, school_id: int, include_inactive: bool = False) -> Sequence[GradeLevel]:
        return self._grades.list_with_stats(school_id=int(school_id), include_inactive=include_inactive)

    def get(self, *, school_id: int, grade_level_id: int) -> GradeLevel:
        grade = self._grades.get(grade_level_id=int(grade_level_id), school_id=int(school_id))
        if not grade:
            raise NotFoundError("Grade level not found")
        return grade

    def create(self, *, school_id: int, name: str, order_index: int = 0, base_fee: Any = 0) -> int:
        return self._grades.create(
            school_id=int(school_id),
            name=require_non_empty(name, "Grade name"),
            order_index=int(order_index or 0),
            base_fee=to_money(require_non_negative(base_fee if base_fee is not None else 0, "base_fee")),
        )

    def update(self, *, school_id: int, grade_level_id: int, changes: dict[str, Any]) -> GradeLevel:
        existing = self.get(school_id=school_id, grade_level_id=grade_level_id)
        values: dict[str, Any] = {}
        if "name" in changes:
            values["name"] = require_non_empty(changes["name"], "Grade name")
        if "order_index" in changes:
            values["order_index"] = int(changes["order_index"] or 0)
        if "base_fee" in changes:
            values["base_fee"] = to_money(require_non_negative(changes["base_fee"], "base_fee"))
        if "is_active" in changes:
            values["is_active"] = int(bool(changes["is_active"]))
        if values:
            self._grades.update(grade_level_id=existing.grade_level_id, school_id=existing.school_id, changes=values)
        return self.get(school_id=school_id, grade_level_id=existing.grade_level_id)

    def delete(self, *, school_id: int, grade_level_id: int) -> None:
        existing = self.get(school_id=school_id, grade_level_id=grade_level_id)
        sections = self._sections.count_for_grade(grade_level_id=existing.grade_level_id)
        subjects = self._subjects.count_for_grade(grade_level_id=existing.grade_level_id)
        if sections or subjects:
            raise ValidationError(
                f"Cannot delete grade level with {sections} section(s) and {subjects} subject(s). "
                "Remove them first."
            )
        self._grades.delete(grade_level_id=existing.grade_level_id, school_id=existing.school_id)


class SectionService:
    def __init__(self, sections: SectionRepository, grades: GradeLevelRepository):
        self._sections = sections
        self._grades = grades

    def list(self, *, school_id: int, grade_level_id: Optional[int] = None) -> Sequence[Section]:
        return self._sections.list(school_id=int(school_id), grade_level_id=grade_level_id)

    def get(self, *, school_id: int, section_id: int) -> Section:
        section = self._sections.get(section_id=int(section_id), school_id=int(school_id))
        if not section:
            raise NotFoundError("Section not found")
        return section

    def _require_grade(self, school_id: int, grade_level_id: Any) -> int:
        if not grade_level_id or not self._grades.get(grade_level_id=int(grade_level_id), school_id=int(school_id)):
            raise NotFoundError("Grade level not found")
        return int(grade_level_id)

    @staticmethod
    def _capacity(value: Any) -> int:
        try:
            capacity = int(value)
        except (TypeError, ValueError):
            raise ValidationError("capacity must be an integer")
        if capacity < 1:
            raise ValidationError("capacity must be at least 1")
        return capacity

    def create(self, *, school_id: int, grade_level_id: int, name: str, capacity: Any = 30) -> int:
        return self._sections.create(
            school_id=int(school_id),
            grade_level_id=self._require_grade(school_id, grade_level_id),
            name=require_non_empty(name, "Section name"),
            capacity=self._capacity(capacity),
        )

    def update(self, *, school_id: int, section_id: int, changes: dict[str, Any]) -> Section:
        existing = self.get(school_id=school_id, section_id=section_id)
        values: dict[str, Any] = {}
        if "name" in changes:
            values["name"] = require_non_empty(changes["name"], "Section name")
        if "grade_level_id" in changes:
            values["grade_level_id"] = self._require_grade(school_id, changes["grade_level_id"])
        if "capacity" in changes:
            capacity = self._capacity(changes["capacity"])
            if capacity < existing.current_strength:
                raise ValidationError(
                    f"Cannot reduce capacity to {capacity}. Current strength is {existing.current_strength}."
                )
            values["capacity"] = capacity
        if "is_active" in changes:
            values["is_active"] = int(bool(changes["is_active"]))
        if values:
            self._sections.update(section_id=existing.section_id, school_id=existing.school_id, changes=values)
        return self.get(school_id=school_id, section_id=existing.section_id)

    def delete(self, *, school_id: int, section_id: int) -> None:
        existing = self.get(school_id=school_id, section_id=section_id)
        enrolled = self._sections.count_students(section_id=existing.section_id)
        if enrolled:
            raise ValidationError(f"Cannot delete section with {enrolled} enrolled student(s)")
        self._sections.delete(section_id=existing.section_id, school_id=existing.school_id)


class SubjectService:
    def __init__(self, subjects: SubjectRepository, grades: GradeLevelRepository):
        self._subjects = subjects
        self._grades = grades

    def list(self, *, school_id: int, grade_level_id: Optional[int] = None) -> Sequence[Subject]:
        return self._subjects.list(school_id=int(school_id), grade_level_id=grade_level_id)

    def get(self, *, school_id: int, subject_id: int) -> Subject:
        subject = self._subjects.get(subject_id=int(subject_id), school_id=int(school_id))
        if not subject:
            raise NotFoundError("Subject not found")
        return subject

    def create(
        self,
        *,
        school_id: int,
        grade_level_id: int,
        name: str,
        code: Optional[str] = None,
        subject_type: Any = SubjectType.THEORY.value,
    ) -> int:
        if not grade_level_id or not self._grades.get(grade_level_id=int(grade_level_id), school_id=int(school_id)):
            raise NotFoundError("Grade level not found")
        kind = require_choice(subject_type or SubjectType.THEORY.value, SubjectType, "subject_type")
        return self._subjects.create(
            school_id=int(school_id),
            grade_level_id=int(grade_level_id),
            name=require_non_empty(name, "Subject name"),
            code=optional_text(code),
            subject_type=kind.value,
        )

    def update(self, *, school_id: int, subject_id: int, changes: dict[str, Any]) -> Subject:
        existing = self.get(school_id=school_id, subject_id=subject_id)
        values: dict[str, Any] = {}
        if "name" in changes:
            values["name"] = require_non_empty(changes["name"], "Subject name")
        if "code" in changes:
            values["code"] = optional_text(changes["code"])
        if "subject_type" in changes:
            values["subject_type"] = require_choice(changes["subject_type"], SubjectType, "subject_type").value
        if "grade_level_id" in changes:
            if not self._grades.get(grade_level_id=int(changes["grade_level_id"]), school_id=int(school_id)):
                raise NotFoundError("Grade level not found")
            values["grade_level_id"] = int(changes["grade_level_id"])
        if "is_active" in changes:
            values["is_active"] = int(bool(changes["is_active"]))
        if values:
            self._subjects.update(subject_id=existing.subject_id, school_id=existing.school_id, changes=values)
        return self.get(school_id=school_id, subject_id=existing.subject_id)

    def delete(self, *, school_id: int, subject_id: int) -> None:
        existing = self.get(school_id=school_id, subject_id=subject_id)
        self._subjects.delete(subject_id=existing.subject_id, school_id=existing.school_id)
