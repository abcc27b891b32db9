from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional, Sequence

from ..common.validators import optional_text, require_choice, require_decimal, require_non_empty, require_percentage
from ..core.constants import CENT
from ..core.enums import ScaleType
from ..core.exceptions import NotFoundError, ValidationError
from ..schools.service import SchoolDirectory
from .model import STANDARD_GRADES, GradingScale, NewScaleGrade, ScaleGrade
from .repository import GradingScaleRepository, ScaleGradeRepository

logger = logging.getLogger(__name__)


def _parse_grade(raw: dict, default_order: int) -> NewScaleGrade:
    gpa = require_decimal(raw.get("gpa_value", 0), "gpa_value")
    if gpa < 0:
        raise ValidationError("gpa_value cannot be negative")
    return NewScaleGrade(
        title=require_non_empty(raw.get("title"), "Grade title"),
        gpa_value=gpa,
        break_off=require_percentage(raw.get("break_off", 0), "break_off"),
        comment=optional_text(raw.get("comment")),
        sort_order=int(raw.get("sort_order", default_order) or 0),
    )


def weighted_gpa(entries: Iterable[dict]) -> Decimal:
    """Credit-weighted mean of gpa_value, rounded to two decimals.

    Each entry carries `gpa_value` and `credit_hours`; empty input or zero credits yields 0.
    """
    points = Decimal("0")
    credits = Decimal("0")
    for e in entries:
        hours = require_decimal(e.get("credit_hours"), "credit_hours")
        if hours < 0:
            raise ValidationError("credit_hours cannot be negative")
        points += require_decimal(e.get("gpa_value"), "gpa_value") * hours
        credits += hours
    if credits == 0:
        return Decimal("0.00")
    return (points / credits).quantize(CENT, rounding=ROUND_HALF_UP)


class GradingService:
    """Grading scales and the letter-grade and GPA lookups built on them.

    Scales are stored on the owner school; a campus may additionally pin a scale to itself.
    """

    def __init__(self, scales: GradingScaleRepository, grades: ScaleGradeRepository, schools: SchoolDirectory):
        self._scales = scales
        self._grades = grades
        self._schools = schools

    def _owner(self, school_id: int) -> int:
        return self._schools.resource_owner_id(int(school_id))

    def list_scales(self, *, school_id: int, campus_id: Optional[int] = None) -> Sequence[GradingScale]:
        return self._scales.list_for_school(
            school_id=self._owner(school_id),
            campus_id=int(campus_id) if campus_id is not None else None,
        )

    def get_scale(self, *, school_id: int, grading_scale_id: int) -> GradingScale:
        scale = self._scales.get(grading_scale_id=int(grading_scale_id), school_id=self._owner(school_id))
        if not scale:
            raise NotFoundError("Grading scale not found")
        return scale

    def create_scale(
        self,
        *,
        school_id: int,
        title: str,
        scale_type: str = ScaleType.PERCENTAGE.value,
        campus_id: Optional[int] = None,
        comment: Optional[str] = None,
        is_default: bool = False,
        sort_order: int = 0,
        grades: Iterable[dict] = (),
    ) -> GradingScale:
        owner_id = self._owner(school_id)
        title = require_non_empty(title, "Scale title")
        kind = require_choice(scale_type, ScaleType, "scale_type")
        parsed = [_parse_grade(g, i) for i, g in enumerate(grades or ())]

        if is_default:
            self._scales.clear_default(school_id=owner_id)
        scale_id = self._scales.create(
            school_id=owner_id,
            campus_id=int(campus_id) if campus_id else None,
            title=title,
            scale_type=kind,
            comment=optional_text(comment),
            is_default=bool(is_default),
            sort_order=int(sort_order or 0),
        )
        if parsed:
            self._grades.create_many(grading_scale_id=scale_id, grades=parsed)
        logger.info("Created grading scale %s (%s) for school %s with %d grades", scale_id, title, owner_id, len(parsed))
        return self.get_scale(school_id=owner_id, grading_scale_id=scale_id)

    def update_scale(self, *, school_id: int, grading_scale_id: int, changes: dict[str, Any]) -> GradingScale:
        owner_id = self._owner(school_id)
        existing = self.get_scale(school_id=owner_id, grading_scale_id=grading_scale_id)

        values: dict[str, Any] = {}
        if "title" in changes:
            values["title"] = require_non_empty(changes["title"], "Scale title")
        if "scale_type" in changes:
            values["scale_type"] = require_choice(changes["scale_type"], ScaleType, "scale_type")
        if "comment" in changes:
            values["comment"] = optional_text(changes["comment"])
        if "sort_order" in changes:
            values["sort_order"] = int(changes["sort_order"] or 0)
        if "campus_id" in changes:
            values["campus_id"] = int(changes["campus_id"]) if changes["campus_id"] else None
        if "is_default" in changes:
            make_default = bool(changes["is_default"])
            if make_default and not existing.is_default:
                self._scales.clear_default(school_id=owner_id)
            values["is_default"] = int(make_default)

        if values:
            self._scales.update(grading_scale_id=existing.grading_scale_id, school_id=owner_id, changes=values)
        return self.get_scale(school_id=owner_id, grading_scale_id=existing.grading_scale_id)

    def delete_scale(self, *, school_id: int, grading_scale_id: int) -> None:
        owner_id = self._owner(school_id)
        self.get_scale(school_id=owner_id, grading_scale_id=grading_scale_id)
        self._scales.delete(grading_scale_id=int(grading_scale_id), school_id=owner_id)
        logger.info("Deleted grading scale %s of school %s", grading_scale_id, owner_id)

    # -------- Grades --------
    def _grade_in(self, school_id: int, grade_id: int) -> ScaleGrade:
        grade = self._grades.get(int(grade_id))
        if not grade or not self._scales.get(grading_scale_id=grade.grading_scale_id, school_id=self._owner(school_id)):
            raise NotFoundError("Grade not found")
        return grade

    def list_grades(self, *, school_id: int, grading_scale_id: int) -> Sequence[ScaleGrade]:
        scale = self.get_scale(school_id=school_id, grading_scale_id=grading_scale_id)
        return self._grades.list_for_scale(grading_scale_id=scale.grading_scale_id)

    def add_grades(self, *, school_id: int, grading_scale_id: int, grades: Iterable[dict]) -> list[int]:
        scale = self.get_scale(school_id=school_id, grading_scale_id=grading_scale_id)
        existing = len(scale.grades)
        parsed = [_parse_grade(g, existing + i) for i, g in enumerate(grades or ())]
        if not parsed:
            raise ValidationError("At least one grade is required")
        return self._grades.create_many(grading_scale_id=scale.grading_scale_id, grades=parsed)

    def update_grade(self, *, school_id: int, grade_id: int, changes: dict[str, Any]) -> ScaleGrade:
        grade = self._grade_in(school_id, grade_id)

        values: dict[str, Any] = {}
        if "title" in changes:
            values["title"] = require_non_empty(changes["title"], "Grade title")
        if "gpa_value" in changes:
            gpa = require_decimal(changes["gpa_value"], "gpa_value")
            if gpa < 0:
                raise ValidationError("gpa_value cannot be negative")
            values["gpa_value"] = gpa
        if "break_off" in changes:
            values["break_off"] = require_percentage(changes["break_off"], "break_off")
        if "comment" in changes:
            values["comment"] = optional_text(changes["comment"])
        if "sort_order" in changes:
            values["sort_order"] = int(changes["sort_order"] or 0)
        if "is_active" in changes:
            values["is_active"] = int(bool(changes["is_active"]))

        if values:
            self._grades.update(grade_id=grade.grade_id, changes=values)
        return self._grades.get(grade.grade_id) or grade

    def delete_grade(self, *, school_id: int, grade_id: int) -> None:
        grade = self._grade_in(school_id, grade_id)
        self._grades.delete(grade_id=grade.grade_id)

    # -------- Lookups --------
    def letter_grade(self, *, school_id: int, grading_scale_id: int, percentage: Any) -> Optional[ScaleGrade]:
        pct = require_percentage(percentage, "percentage")
        scale = self.get_scale(school_id=school_id, grading_scale_id=grading_scale_id)
        return self._grades.best_match(grading_scale_id=scale.grading_scale_id, percentage=pct)

    def gpa(self, entries: Iterable[dict]) -> Decimal:
        return weighted_gpa(entries)

    def seed_default_scale(self, *, school_id: int) -> GradingScale:
        owner_id = self._owner(school_id)
        existing = self._scales.get_default(school_id=owner_id)
        if existing:
            return existing

        scale_id = self._scales.create(
            school_id=owner_id,
            campus_id=None,
            title="Standard Grading Scale",
            scale_type=ScaleType.PERCENTAGE,
            comment="Default grading scale with letter grades",
            is_default=True,
            sort_order=0,
        )
        self._grades.create_many(grading_scale_id=scale_id, grades=STANDARD_GRADES)
        logger.info("Seeded standard grading scale %s for school %s", scale_id, owner_id)
        return self.get_scale(school_id=owner_id, grading_scale_id=scale_id)
