from __future__ import annotations

import dataclasses
from datetime import date
from typing import Any, Optional

import pytest

from school_admin.academics.model import AcademicYear, GradeLevel, Section
from school_admin.academics.service import AcademicYearService, GradeLevelService, SectionService, SubjectService
from school_admin.core.enums import SubjectType
from school_admin.core.exceptions import NotFoundError, ValidationError

from tests.fees.fakes import directory


class InMemoryYears:
    def __init__(self):
        self.rows: dict[int, AcademicYear] = {}
        self._id = 0

    def list_active(self, *, school_id: int):
        return sorted(
            (y for y in self.rows.values() if y.school_id == school_id and y.is_active),
            key=lambda y: y.start_date,
            reverse=True,
        )

    def get(self, *, academic_year_id: int, school_id: int) -> Optional[AcademicYear]:
        y = self.rows.get(academic_year_id)
        return y if y and y.school_id == school_id else None

    def get_current(self, *, school_id: int) -> Optional[AcademicYear]:
        return next((y for y in self.rows.values() if y.school_id == school_id and y.is_current), None)

    def clear_flags(self, *, school_id: int, is_current: bool, is_next: bool) -> None:
        for key, y in list(self.rows.items()):
            if y.school_id != school_id:
                continue
            self.rows[key] = dataclasses.replace(
                y,
                is_current=False if is_current else y.is_current,
                is_next=False if is_next else y.is_next,
            )

    def create(self, **kwargs) -> int:
        self._id += 1
        self.rows[self._id] = AcademicYear(academic_year_id=self._id, **kwargs)
        return self._id

    def update(self, *, academic_year_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        values = {k: bool(v) if k.startswith("is_") else v for k, v in changes.items()}
        self.rows[academic_year_id] = dataclasses.replace(self.rows[academic_year_id], **values)
        return True

    def delete(self, *, academic_year_id: int, school_id: int) -> bool:
        return self.rows.pop(academic_year_id, None) is not None


class InMemoryGrades:
    def __init__(self, *grades: GradeLevel):
        self.rows = {g.grade_level_id: g for g in grades}

    def list_with_stats(self, *, school_id: int, include_inactive: bool = False):
        return [g for g in self.rows.values() if g.school_id == school_id]

    def get(self, *, grade_level_id: int, school_id: int) -> Optional[GradeLevel]:
        g = self.rows.get(grade_level_id)
        return g if g and g.school_id == school_id else None

    def delete(self, *, grade_level_id: int, school_id: int) -> bool:
        return self.rows.pop(grade_level_id, None) is not None


class InMemorySections:
    def __init__(self, *sections: Section, enrolled: Optional[dict[int, int]] = None):
        self.rows = {s.section_id: s for s in sections}
        self.enrolled = enrolled or {}
        self._id = max(self.rows, default=0)

    def list(self, *, school_id: int, grade_level_id=None):
        return [s for s in self.rows.values() if s.school_id == school_id]

    def get(self, *, section_id: int, school_id: int) -> Optional[Section]:
        s = self.rows.get(section_id)
        return s if s and s.school_id == school_id else None

    def count_for_grade(self, *, grade_level_id: int) -> int:
        return sum(1 for s in self.rows.values() if s.grade_level_id == grade_level_id)

    def count_students(self, *, section_id: int) -> int:
        return self.enrolled.get(section_id, 0)

    def create(self, *, school_id: int, grade_level_id: int, name: str, capacity: int) -> int:
        self._id += 1
        self.rows[self._id] = Section(
            section_id=self._id, school_id=school_id, grade_level_id=grade_level_id, name=name, capacity=capacity
        )
        return self._id

    def update(self, *, section_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        self.rows[section_id] = dataclasses.replace(self.rows[section_id], **changes)
        return True

    def delete(self, *, section_id: int, school_id: int) -> bool:
        return self.rows.pop(section_id, None) is not None


class InMemorySubjects:
    def __init__(self):
        self.created: list[dict] = []

    def count_for_grade(self, *, grade_level_id: int) -> int:
        return sum(1 for s in self.created if s["grade_level_id"] == grade_level_id)

    def create(self, **kwargs) -> int:
        self.created.append(kwargs)
        return len(self.created)


GRADE = GradeLevel(grade_level_id=10, school_id=1, name="Grade 1")


def test_academic_year_dates_and_single_current():
    years = InMemoryYears()
    service = AcademicYearService(years, directory())

    with pytest.raises(ValidationError):
        service.create(school_id=1, name="2025-2026", start_date="2026-06-30", end_date="2025-07-01")

    first = service.create(school_id=1, name="2024-2025", start_date="2024-07-01", end_date="2025-06-30", is_current=True)
    second = service.create(school_id=2, name="2025-2026", start_date="2025-07-01", end_date="2026-06-30", is_current=True)

    assert years.get(academic_year_id=second, school_id=1).school_id == 1
    assert years.get(academic_year_id=first, school_id=1).is_current is False
    assert service.current(school_id=2).academic_year_id == second
    assert [y.name for y in service.list(school_id=1)] == ["2025-2026", "2024-2025"]


def test_academic_year_update_keeps_range_valid():
    years = InMemoryYears()
    service = AcademicYearService(years, directory())
    year_id = service.create(school_id=1, name="2025-2026", start_date="2025-07-01", end_date="2026-06-30")

    with pytest.raises(ValidationError):
        service.update(school_id=1, academic_year_id=year_id, changes={"end_date": "2025-01-01"})

    updated = service.update(school_id=1, academic_year_id=year_id, changes={"end_date": date(2026, 7, 31)})
    assert updated.end_date == date(2026, 7, 31)


def test_grade_with_sections_cannot_be_deleted():
    sections = InMemorySections(Section(section_id=1, school_id=1, grade_level_id=10, name="A", capacity=30))
    service = GradeLevelService(InMemoryGrades(GRADE), sections, InMemorySubjects())

    with pytest.raises(ValidationError, match="1 section"):
        service.delete(school_id=1, grade_level_id=10)
    with pytest.raises(NotFoundError):
        service.delete(school_id=2, grade_level_id=10)


def test_section_capacity_rules():
    sections = InMemorySections(
        Section(section_id=1, school_id=1, grade_level_id=10, name="A", capacity=30, current_strength=25)
    )
    service = SectionService(sections, InMemoryGrades(GRADE))

    with pytest.raises(ValidationError):
        service.update(school_id=1, section_id=1, changes={"capacity": 20})
    with pytest.raises(ValidationError):
        service.create(school_id=1, grade_level_id=10, name="B", capacity=0)
    with pytest.raises(NotFoundError):
        service.create(school_id=1, grade_level_id=77, name="B")

    assert service.update(school_id=1, section_id=1, changes={"capacity": 25}).capacity == 25
    assert service.get(school_id=1, section_id=1).available_seats == 0


def test_section_with_students_cannot_be_deleted():
    sections = InMemorySections(
        Section(section_id=1, school_id=1, grade_level_id=10, name="A", capacity=30), enrolled={1: 3}
    )
    service = SectionService(sections, InMemoryGrades(GRADE))

    with pytest.raises(ValidationError, match="3 enrolled"):
        service.delete(school_id=1, section_id=1)


def test_subject_type_defaults_to_theory():
    subjects = InMemorySubjects()
    service = SubjectService(subjects, InMemoryGrades(GRADE))

    service.create(school_id=1, grade_level_id=10, name="Maths", code=" M1 ", subject_type=None)

    assert subjects.created[0]["subject_type"] == SubjectType.THEORY.value
    assert subjects.created[0]["code"] == "M1"
    with pytest.raises(ValidationError):
        service.create(school_id=1, grade_level_id=10, name="Art", subject_type="painting")
