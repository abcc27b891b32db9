from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..common.money import to_money
from ..common.pagination import page_of
from ..common.validators import optional_text, require_non_empty, require_non_negative
from ..core.constants import DEFAULT_OVERRIDE_PAGE_SIZE
from ..core.exceptions import ConflictError, NotFoundError
from ..schools.service import SchoolDirectory
from ..students.repository import StudentRepository
from .model import StudentFeeOverride
from .repository import FeeCategoryRepository, OverrideRepository

logger = logging.getLogger(__name__)


class FeeOverrideService:
    """Per-student replacement amounts for a fee category in one academic year."""

    def __init__(
        self,
        overrides: OverrideRepository,
        categories: FeeCategoryRepository,
        students: StudentRepository,
        schools: SchoolDirectory,
    ):
        self._overrides = overrides
        self._categories = categories
        self._students = students
        self._schools = schools

    def _override_in(self, override_id: int, school_id: int) -> StudentFeeOverride:
        override = self._overrides.get(int(override_id))
        if not override or not self._schools.belongs_to(override.school_id, int(school_id)):
            raise NotFoundError("Fee override not found")
        return override

    def create(
        self,
        *,
        school_id: int,
        student_id: int,
        fee_category_id: int,
        academic_year: str,
        override_amount: Any,
        reason: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        student = self._students.get(int(student_id))
        if not student or not self._schools.belongs_to(student.school_id, int(school_id)):
            raise NotFoundError("Student not found")
        owner_id = self._schools.resource_owner_id(student.school_id)
        if not self._categories.get(fee_category_id=int(fee_category_id), school_id=owner_id):
            raise NotFoundError("Fee category not found")

        academic_year = require_non_empty(academic_year, "Academic year")
        amount = to_money(require_non_negative(override_amount, "override_amount"))

        if self._overrides.find_active(
            student_id=student.student_id, fee_category_id=int(fee_category_id), academic_year=academic_year
        ):
            raise ConflictError("An override already exists for this student, category, and academic year")

        override_id = self._overrides.create(
            school_id=student.school_id,
            student_id=student.student_id,
            fee_category_id=int(fee_category_id),
            academic_year=academic_year,
            override_amount=amount,
            reason=optional_text(reason),
            created_by=created_by,
        )
        logger.info(
            "Override %s: student %s category %s set to %s for %s",
            override_id,
            student.student_id,
            fee_category_id,
            amount,
            academic_year,
        )
        return override_id

    def list_for_student(
        self, *, school_id: int, student_id: int, academic_year: Optional[str] = None
    ) -> Sequence[StudentFeeOverride]:
        student = self._students.get(int(student_id))
        if not student or not self._schools.belongs_to(student.school_id, int(school_id)):
            raise NotFoundError("Student not found")
        return self._overrides.list_for_student(student_id=student.student_id, academic_year=academic_year)

    def get(self, *, school_id: int, override_id: int) -> StudentFeeOverride:
        return self._override_in(override_id, school_id)

    def update(self, *, school_id: int, override_id: int, changes: dict[str, Any]) -> StudentFeeOverride:
        existing = self._override_in(override_id, school_id)

        values: dict[str, Any] = {}
        if "override_amount" in changes:
            values["override_amount"] = to_money(require_non_negative(changes["override_amount"], "override_amount"))
        if "reason" in changes:
            values["reason"] = optional_text(changes["reason"])
        if "is_active" in changes:
            active = bool(changes["is_active"])
            if active and not existing.is_active:
                clash = self._overrides.find_active(
                    student_id=existing.student_id,
                    fee_category_id=existing.fee_category_id,
                    academic_year=existing.academic_year,
                )
                if clash and clash.override_id != existing.override_id:
                    raise ConflictError("An override already exists for this student, category, and academic year")
            values["is_active"] = int(active)

        if values:
            self._overrides.update(override_id=existing.override_id, changes=values)
        return self._overrides.get(existing.override_id) or existing

    def delete(self, *, school_id: int, override_id: int) -> None:
        existing = self._override_in(override_id, school_id)
        self._overrides.delete(override_id=existing.override_id)
        logger.info("Override %s deleted", existing.override_id)

    def list_for_school(
        self,
        *,
        school_id: int,
        academic_year: Optional[str] = None,
        fee_category_id: Optional[int] = None,
        is_active: Optional[bool] = True,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        p = page_of(page, limit, default_limit=DEFAULT_OVERRIDE_PAGE_SIZE)
        rows, total = self._overrides.list_for_school(
            school_id=int(school_id),
            academic_year=academic_year,
            fee_category_id=int(fee_category_id) if fee_category_id is not None else None,
            is_active=is_active,
            offset=p.offset,
            limit=p.limit,
        )
        return {"overrides": list(rows), "total": total, "page": p.page, "limit": p.limit}
