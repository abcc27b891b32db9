from __future__ import annotations

import dataclasses
from decimal import Decimal
from typing import Any, Optional, Sequence

import pytest

from school_admin.core.enums import ScaleType
from school_admin.core.exceptions import NotFoundError, ValidationError
from school_admin.grading.model import GradingScale, NewScaleGrade, ScaleGrade
from school_admin.grading.service import GradingService, weighted_gpa

from tests.fees.fakes import directory


class InMemoryScaleGrades:
    def __init__(self):
        self.rows: dict[int, ScaleGrade] = {}

    def list_for_scale(self, *, grading_scale_id: int, active_only: bool = True) -> Sequence[ScaleGrade]:
        grades = [
            g for g in self.rows.values() if g.grading_scale_id == grading_scale_id and (g.is_active or not active_only)
        ]
        return sorted(grades, key=lambda g: (g.sort_order, -g.break_off))

    def get(self, grade_id: int) -> Optional[ScaleGrade]:
        return self.rows.get(grade_id)

    def create_many(self, *, grading_scale_id: int, grades: Sequence[NewScaleGrade]) -> list[int]:
        ids = []
        for g in grades:
            grade_id = len(self.rows) + 1
            self.rows[grade_id] = ScaleGrade(grade_id=grade_id, grading_scale_id=grading_scale_id,
                                             **dataclasses.asdict(g))
            ids.append(grade_id)
        return ids

    def update(self, *, grade_id: int, changes: dict[str, Any]) -> bool:
        values = {k: bool(v) if k == "is_active" else v for k, v in changes.items()}
        self.rows[grade_id] = dataclasses.replace(self.rows[grade_id], **values)
        return True

    def delete(self, *, grade_id: int) -> bool:
        return self.rows.pop(grade_id, None) is not None

    def best_match(self, *, grading_scale_id: int, percentage: Decimal) -> Optional[ScaleGrade]:
        candidates = [g for g in self.list_for_scale(grading_scale_id=grading_scale_id) if g.break_off <= percentage]
        return max(candidates, key=lambda g: g.break_off, default=None)


class InMemoryScales:
    def __init__(self, grades: InMemoryScaleGrades):
        self.rows: dict[int, GradingScale] = {}
        self._grades = grades

    def _with_grades(self, scale: GradingScale) -> GradingScale:
        return dataclasses.replace(
            scale, grades=tuple(self._grades.list_for_scale(grading_scale_id=scale.grading_scale_id))
        )

    def list_for_school(self, *, school_id: int, campus_id: Optional[int] = None):
        return [
            self._with_grades(s)
            for s in self.rows.values()
            if s.school_id == school_id and (campus_id is None or s.campus_id in (None, campus_id))
        ]

    def get(self, *, grading_scale_id: int, school_id: int) -> Optional[GradingScale]:
        s = self.rows.get(grading_scale_id)
        return self._with_grades(s) if s and s.school_id == school_id else None

    def get_default(self, *, school_id: int) -> Optional[GradingScale]:
        return next((self._with_grades(s) for s in self.rows.values() if s.school_id == school_id and s.is_default), None)

    def clear_default(self, *, school_id: int) -> None:
        for key, s in list(self.rows.items()):
            if s.school_id == school_id:
                self.rows[key] = dataclasses.replace(s, is_default=False)

    def create(self, **kwargs) -> int:
        scale_id = len(self.rows) + 1
        self.rows[scale_id] = GradingScale(grading_scale_id=scale_id, **kwargs)
        return scale_id

    def update(self, *, grading_scale_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        values = {k: bool(v) if k == "is_default" else v for k, v in changes.items()}
        self.rows[grading_scale_id] = dataclasses.replace(self.rows[grading_scale_id], **values)
        return True

    def delete(self, *, grading_scale_id: int, school_id: int) -> bool:
        return self.rows.pop(grading_scale_id, None) is not None


def _service():
    grades = InMemoryScaleGrades()
    scales = InMemoryScales(grades)
    return GradingService(scales, grades, directory()), scales, grades


def test_weighted_gpa():
    entries = [
        {"gpa_value": "4.0", "credit_hours": 3},
        {"gpa_value": "3.0", "credit_hours": 4},
        {"gpa_value": "2.0", "credit_hours": "1"},
    ]

    assert weighted_gpa(entries) == Decimal("3.25")
    assert weighted_gpa([]) == Decimal("0.00")
    assert weighted_gpa([{"gpa_value": 4, "credit_hours": 0}]) == Decimal("0.00")
    with pytest.raises(ValidationError):
        weighted_gpa([{"gpa_value": 4, "credit_hours": -1}])


def test_seed_default_scale_is_idempotent():
    service, scales, _ = _service()

    first = service.seed_default_scale(school_id=2)
    second = service.seed_default_scale(school_id=1)

    assert first.grading_scale_id == second.grading_scale_id
    assert first.school_id == 1
    assert first.is_default is True
    assert [g.title for g in first.grades][:3] == ["A+", "A", "B+"]
    assert len(scales.rows) == 1


def test_letter_grade_lookup():
    service, _, _ = _service()
    scale = service.seed_default_scale(school_id=1)

    assert service.letter_grade(school_id=1, grading_scale_id=scale.grading_scale_id, percentage="86").title == "A"
    assert service.letter_grade(school_id=1, grading_scale_id=scale.grading_scale_id, percentage=59.5).title == "F"
    with pytest.raises(ValidationError):
        service.letter_grade(school_id=1, grading_scale_id=scale.grading_scale_id, percentage=101)


def test_only_one_default_scale():
    service, _, _ = _service()
    seeded = service.seed_default_scale(school_id=1)

    created = service.create_scale(
        school_id=1,
        title="Pass/Fail",
        scale_type="points",
        is_default=True,
        grades=[{"title": "Pass", "gpa_value": 1, "break_off": 50}, {"title": "Fail", "break_off": 0}],
    )

    assert created.scale_type == ScaleType.POINTS
    assert [g.sort_order for g in created.grades] == [0, 1]
    assert service.get_scale(school_id=1, grading_scale_id=seeded.grading_scale_id).is_default is False


def test_campus_scales_include_shared_ones():
    service, _, _ = _service()
    service.create_scale(school_id=1, title="Shared")
    service.create_scale(school_id=1, title="North only", campus_id=2)
    service.create_scale(school_id=1, title="South only", campus_id=3)

    titles = [s.title for s in service.list_scales(school_id=2, campus_id=2)]

    assert titles == ["Shared", "North only"]


def test_grade_validation_and_scoping():
    service, _, _ = _service()
    scale = service.create_scale(school_id=1, title="Custom")

    with pytest.raises(ValidationError):
        service.add_grades(school_id=1, grading_scale_id=scale.grading_scale_id, grades=[])
    with pytest.raises(ValidationError):
        service.add_grades(
            school_id=1, grading_scale_id=scale.grading_scale_id, grades=[{"title": "X", "gpa_value": -1}]
        )

    [grade_id] = service.add_grades(
        school_id=1, grading_scale_id=scale.grading_scale_id, grades=[{"title": "Merit", "break_off": 70}]
    )
    updated = service.update_grade(school_id=1, grade_id=grade_id, changes={"gpa_value": "3.5"})
    assert updated.gpa_value == Decimal("3.5")

    with pytest.raises(NotFoundError):
        service.delete_grade(school_id=5, grade_id=grade_id)
    with pytest.raises(NotFoundError):
        service.get_scale(school_id=5, grading_scale_id=scale.grading_scale_id)
