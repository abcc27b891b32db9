from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from decimal import Decimal
from typing import Callable, Optional, Sequence

from ..academics.repository import AcademicYearRepository
from ..common.datetime_utils import academic_year_for, fee_month_key, next_month, today_local
from ..common.money import to_money
from ..common.validators import int_list, require_int_range
from ..core.constants import MONTHLY_DUE_DAY, ZERO
from ..core.exceptions import NotFoundError, ValidationError
from ..schools.service import SchoolDirectory
from ..students.model import Student
from ..students.repository import StudentRepository
from .amounts import compute_final_amount
from .discounts import SiblingDiscountCalculator
from .model import FeeBreakdownLine, FeeStructure, MonthlyRunResult, NewStudentFee
from .repository import FeeStructureRepository, OverrideRepository, SchoolServiceRepository, StudentFeeRepository

logger = logging.getLogger(__name__)


def build_breakdown(
    structures: Sequence[FeeStructure],
    overrides: dict[int, Decimal],
) -> tuple[list[FeeBreakdownLine], Decimal]:
    """One line per structure with a positive amount; an active override replaces the structure amount."""
    lines: list[FeeBreakdownLine] = []
    total = ZERO
    for s in structures:
        override = overrides.get(s.fee_category_id)
        amount = to_money(override if override is not None else s.amount)
        if amount <= 0:
            continue
        lines.append(
            FeeBreakdownLine(
                category_id=s.fee_category_id,
                category_name=s.category_name,
                category_code=s.category_code,
                amount=amount,
                is_override=override is not None,
                original_amount=to_money(s.amount) if override is not None else None,
            )
        )
        total += amount
    return lines, total


class FeeBillingService:
    """Creates student fee rows: single structures, new admissions and the monthly batch."""

    def __init__(
        self,
        fees: StudentFeeRepository,
        structures: FeeStructureRepository,
        overrides: OverrideRepository,
        services: SchoolServiceRepository,
        students: StudentRepository,
        academic_years: AcademicYearRepository,
        schools: SchoolDirectory,
        discounts: SiblingDiscountCalculator,
        *,
        clock: Callable[[], date] = today_local,
    ):
        self._fees = fees
        self._structures = structures
        self._overrides = overrides
        self._services = services
        self._students = students
        self._academic_years = academic_years
        self._schools = schools
        self._discounts = discounts
        self._clock = clock

    def resolve_academic_year(self, *, school_id: int, today: Optional[date] = None) -> str:
        owner_id = self._schools.resource_owner_id(school_id)
        current = self._academic_years.get_current(school_id=owner_id)
        if current:
            return current.name
        return academic_year_for(today or self._clock())

    def _student_in(self, student_id: int, school_id: int) -> Student:
        student = self._students.get(int(student_id))
        if not student or not self._schools.belongs_to(student.school_id, int(school_id)):
            raise NotFoundError("Student not found")
        return student

    def generate_for_student(
        self,
        *,
        student_id: int,
        school_id: int,
        fee_structure_id: int,
        academic_year: Optional[str] = None,
    ) -> int:
        student = self._student_in(student_id, school_id)
        owner_id = self._schools.resource_owner_id(student.school_id)
        structure = self._structures.get(fee_structure_id=int(fee_structure_id), school_id=owner_id)
        if not structure:
            raise NotFoundError("Fee structure not found")

        base = to_money(structure.amount)
        discount = self._discounts.calculate(
            student_id=student.student_id,
            school_id=student.school_id,
            fee_category_id=structure.fee_category_id,
            base_amount=base,
        )
        lines, _ = build_breakdown([structure], {})
        due = structure.due_date or self._clock()

        fee_id = self._fees.create(
            NewStudentFee(
                school_id=student.school_id,
                student_id=student.student_id,
                academic_year=academic_year or structure.academic_year,
                due_date=due,
                fee_structure_id=structure.fee_structure_id,
                base_amount=base,
                sibling_discount=discount,
                final_amount=compute_final_amount(
                    base_amount=base,
                    services_amount=ZERO,
                    sibling_discount=discount,
                    custom_discount=ZERO,
                    late_fee_applied=ZERO,
                    discount_forfeited=False,
                ),
                fee_breakdown=[line.as_dict() for line in lines],
            )
        )
        logger.info("Created fee %s for student %s from structure %s", fee_id, student.student_id, fee_structure_id)
        return fee_id

    def generate_for_new_student(
        self,
        *,
        student_id: int,
        school_id: int,
        grade_level_id: Optional[int] = None,
        service_ids: Sequence[int] = (),
        academic_year: Optional[str] = None,
        fee_month: Optional[str] = None,
        due_date: Optional[date] = None,
        category_ids: Sequence[int] = (),
    ) -> dict:
        student = self._student_in(student_id, school_id)
        owner_id = self._schools.resource_owner_id(student.school_id)
        today = self._clock()
        grade_id = grade_level_id or student.grade_level_id
        if not grade_id:
            raise ValidationError("Student has no grade level")
        year_name = academic_year or self.resolve_academic_year(school_id=owner_id, today=today)

        structures = self._structures.list_active_for(
            school_id=owner_id,
            academic_year=year_name,
            grade_level_id=int(grade_id),
            include_school_wide=True,
            category_ids=int_list(category_ids),
        )
        if not structures:
            raise ValidationError(
                f"No active fee structure found for this grade level and academic year {year_name}. "
                "Please configure fee structures first."
            )

        lines, base = build_breakdown(structures, {})
        services = self._services.list_active(school_id=owner_id, service_ids=int_list(service_ids))
        services_amount = to_money(sum((s.default_charge for s in services), ZERO))

        discount = self._discounts.calculate(
            student_id=student.student_id,
            school_id=student.school_id,
            fee_category_id=structures[0].fee_category_id,
            base_amount=base + services_amount,
        )
        final = compute_final_amount(
            base_amount=base,
            services_amount=services_amount,
            sibling_discount=discount,
            custom_discount=ZERO,
            late_fee_applied=ZERO,
            discount_forfeited=False,
        )
        due = due_date or today
        month_key = fee_month or fee_month_key(due.year, due.month)

        fee_id = self._fees.create(
            NewStudentFee(
                school_id=student.school_id,
                student_id=student.student_id,
                academic_year=year_name,
                due_date=due,
                fee_structure_id=structures[0].fee_structure_id,
                fee_month=month_key,
                base_amount=base,
                services_amount=services_amount,
                sibling_discount=discount,
                final_amount=final,
                fee_breakdown=[line.as_dict() for line in lines],
            )
        )
        logger.info("Created admission fee %s for student %s (final=%s)", fee_id, student.student_id, final)
        return {
            "student_fee_id": fee_id,
            "academic_year": year_name,
            "fee_month": month_key,
            "base_amount": base,
            "services_amount": services_amount,
            "sibling_discount": discount,
            "final_amount": final,
            "breakdown": [line.as_dict() for line in lines],
        }

    def generate_monthly(
        self,
        *,
        school_id: int,
        month: Optional[int] = None,
        year: Optional[int] = None,
        academic_year: Optional[str] = None,
        grade_level_id: Optional[int] = None,
        section_id: Optional[int] = None,
        category_ids: Sequence[int] = (),
        campus_id: Optional[int] = None,
    ) -> MonthlyRunResult:
        effective_id = int(campus_id or school_id)
        owner_id = self._schools.resource_owner_id(effective_id)
        today = self._clock()

        if month is None:
            year_default, month = next_month(today.year, today.month)
            year = year if year is not None else year_default
        month = require_int_range(month, "month", 1, 12)
        year = require_int_range(year if year is not None else today.year, "year", 2000, 2100)

        month_key = fee_month_key(year, month)
        due = date(year, month, MONTHLY_DUE_DAY)
        year_name = academic_year or self.resolve_academic_year(school_id=owner_id, today=today)
        categories = int_list(category_ids)

        students = self._students.list_for_billing(
            school_id=effective_id,
            grade_level_id=int(grade_level_id) if grade_level_id is not None else None,
            section_id=int(section_id) if section_id is not None else None,
        )

        structures_by_grade: dict[int, Sequence[FeeStructure]] = {}
        skipped: Counter = Counter()
        processed = 0
        created = 0
        total = ZERO

        for student in students:
            if self._fees.exists_for_month(student_id=student.student_id, fee_month=month_key):
                skipped["already_billed"] += 1
                continue
            processed += 1
            if student.grade_level_id is None:
                skipped["no_grade"] += 1
                continue

            grade_id = int(student.grade_level_id)
            if grade_id not in structures_by_grade:
                structures_by_grade[grade_id] = self._structures.list_active_for(
                    school_id=owner_id,
                    academic_year=year_name,
                    grade_level_id=grade_id,
                    category_ids=categories,
                )
            structures = structures_by_grade[grade_id]
            if not structures:
                skipped["no_structure"] += 1
                continue

            overrides = self._overrides.active_amounts(student_id=student.student_id, academic_year=year_name)
            lines, base = build_breakdown(structures, overrides)
            if base <= 0:
                skipped["zero_total"] += 1
                continue

            discount = self._discounts.calculate(
                student_id=student.student_id,
                school_id=student.school_id,
                fee_category_id=structures[0].fee_category_id,
                base_amount=base,
            )
            final = compute_final_amount(
                base_amount=base,
                services_amount=ZERO,
                sibling_discount=discount,
                custom_discount=ZERO,
                late_fee_applied=ZERO,
                discount_forfeited=False,
            )
            if final <= 0:
                skipped["fully_discounted"] += 1
                continue

            self._fees.create(
                NewStudentFee(
                    school_id=student.school_id,
                    student_id=student.student_id,
                    academic_year=year_name,
                    due_date=due,
                    fee_structure_id=structures[0].fee_structure_id,
                    fee_month=month_key,
                    base_amount=base,
                    sibling_discount=discount,
                    final_amount=final,
                    fee_breakdown=[line.as_dict() for line in lines],
                )
            )
            created += 1
            total += final

        logger.info(
            "Monthly fees %s for school %s: processed=%d created=%d total=%s skipped=%s",
            month_key,
            effective_id,
            processed,
            created,
            total,
            dict(skipped),
        )
        return MonthlyRunResult(
            students_processed=processed,
            fees_created=created,
            total_amount=to_money(total),
            skipped=dict(skipped),
        )

    def generate_monthly_all_schools(self, *, month: Optional[int] = None, year: Optional[int] = None) -> dict:
        rows: list[dict] = []
        total_created = 0
        grand_total = ZERO

        for school in self._schools.list_active():
            try:
                result = self.generate_monthly(school_id=school.school_id, month=month, year=year)
            except Exception:
                logger.exception("Monthly fee generation failed for school %s", school.school_id)
                rows.append(
                    {
                        "school_id": school.school_id,
                        "school_name": school.name,
                        "students_processed": 0,
                        "fees_created": 0,
                        "total_amount": ZERO,
                        "failed": True,
                    }
                )
                continue

            rows.append(
                {
                    "school_id": school.school_id,
                    "school_name": school.name,
                    "students_processed": result.students_processed,
                    "fees_created": result.fees_created,
                    "total_amount": result.total_amount,
                    "failed": False,
                }
            )
            total_created += result.fees_created
            grand_total += result.total_amount

        return {"schools": rows, "total_fees_created": total_created, "grand_total": to_money(grand_total)}
