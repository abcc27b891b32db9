from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from school_admin.academics.model import AcademicYear
from school_admin.core.enums import AmountType, PeriodType
from school_admin.core.exceptions import NotFoundError, ValidationError
from school_admin.fees.billing_service import FeeBillingService, build_breakdown
from school_admin.fees.discounts import SiblingDiscountCalculator
from school_admin.fees.model import (
    FeeSettings,
    FeeStructure,
    SchoolService,
    SiblingDiscountTier,
    StudentFeeOverride,
)

from tests.fees.fakes import (
    InMemoryAcademicYears,
    InMemoryFeeSettings,
    InMemoryOverrides,
    InMemoryServices,
    InMemoryStructures,
    InMemoryStudentFees,
    InMemoryStudents,
    InMemoryTiers,
    directory,
    fee,
    student,
)

YEAR = "2025-2026"


def _structures() -> InMemoryStructures:
    return InMemoryStructures(
        [
            FeeStructure(fee_structure_id=1, school_id=1, academic_year=YEAR, fee_category_id=1, amount=Decimal("300"),
                         grade_level_id=10, category_name="Tuition", category_code="TUI"),
            FeeStructure(fee_structure_id=2, school_id=1, academic_year=YEAR, fee_category_id=2, amount=Decimal("50"),
                         grade_level_id=10, category_name="Transport", category_code="TRN"),
            FeeStructure(fee_structure_id=3, school_id=1, academic_year=YEAR, fee_category_id=3, amount=Decimal("1000"),
                         grade_level_id=10, period_type=PeriodType.ANNUAL, category_name="Books", category_code="BOK"),
        ]
    )


def _service(*, students: InMemoryStudents, fees=None, overrides=None, structures=None, today=date(2025, 8, 20)):
    schools = directory()
    settings = InMemoryFeeSettings({1: FeeSettings(school_id=1)})
    tiers = InMemoryTiers(
        [SiblingDiscountTier(tier_id=1, school_id=1, sibling_count=2, discount_type=AmountType.PERCENTAGE,
                             discount_value=Decimal("10"))]
    )
    fees = fees or InMemoryStudentFees()
    service = FeeBillingService(
        fees,
        structures or _structures(),
        overrides or InMemoryOverrides(),
        InMemoryServices([SchoolService(service_id=1, school_id=1, name="Lunch", default_charge=Decimal("40"))]),
        students,
        InMemoryAcademicYears(
            AcademicYear(academic_year_id=1, school_id=1, name=YEAR, start_date=date(2025, 7, 1),
                         end_date=date(2026, 6, 30), is_current=True)
        ),
        schools,
        SiblingDiscountCalculator(settings, tiers, students, schools),
        clock=lambda: today,
    )
    return service, fees


def test_build_breakdown_uses_override_and_drops_zero_lines():
    lines, total = build_breakdown(_structures().list(school_id=1), {2: Decimal("0"), 1: Decimal("250")})

    assert total == Decimal("1250.00")
    assert [line.category_id for line in lines] == [1, 3]
    assert lines[0].is_override is True
    assert lines[0].original_amount == Decimal("300.00")


def test_generate_for_student_applies_sibling_discount():
    students = InMemoryStudents({1: student(1)}, siblings={1: 2})
    service, fees = _service(students=students)

    fee_id = service.generate_for_student(student_id=1, school_id=1, fee_structure_id=1)

    created = fees.get(fee_id)
    assert created.base_amount == Decimal("300.00")
    assert created.sibling_discount == Decimal("30.00")
    assert created.final_amount == Decimal("270.00")
    assert created.due_date == date(2025, 8, 20)


def test_generate_for_student_outside_school_is_not_found():
    students = InMemoryStudents({1: student(1, school_id=9)})
    service, _ = _service(students=students)

    with pytest.raises(NotFoundError):
        service.generate_for_student(student_id=1, school_id=1, fee_structure_id=1)


def test_generate_for_new_student_adds_services():
    students = InMemoryStudents({1: student(1)}, siblings={1: 2})
    service, fees = _service(students=students)

    result = service.generate_for_new_student(student_id=1, school_id=1, service_ids=[1], category_ids=[1, 2])

    assert result["academic_year"] == YEAR
    assert result["fee_month"] == "2025-08"
    assert result["base_amount"] == Decimal("350.00")
    assert result["services_amount"] == Decimal("40.00")
    assert result["sibling_discount"] == Decimal("39.00")
    assert result["final_amount"] == Decimal("351.00")
    assert fees.get(result["student_fee_id"]).final_amount == Decimal("351.00")


def test_generate_for_new_student_without_structures_fails():
    students = InMemoryStudents({1: student(1, grade_level_id=99)})
    service, _ = _service(students=students)

    with pytest.raises(ValidationError):
        service.generate_for_new_student(student_id=1, school_id=1)


def test_generate_monthly_counts_skip_reasons():
    students = InMemoryStudents(
        {
            1: student(1),
            2: student(2),
            3: student(3, grade_level_id=None),
            4: student(4, grade_level_id=20),
            6: student(6),
        },
        siblings={1: 2},
    )
    fees = InMemoryStudentFees([fee(1, student_id=2, fee_month="2025-09")])
    overrides = InMemoryOverrides(
        [
            StudentFeeOverride(override_id=1, school_id=1, student_id=1, fee_category_id=2, academic_year=YEAR,
                               override_amount=Decimal("0")),
            StudentFeeOverride(override_id=2, school_id=1, student_id=6, fee_category_id=1, academic_year=YEAR,
                               override_amount=Decimal("0")),
            StudentFeeOverride(override_id=3, school_id=1, student_id=6, fee_category_id=2, academic_year=YEAR,
                               override_amount=Decimal("0")),
            StudentFeeOverride(override_id=4, school_id=1, student_id=6, fee_category_id=3, academic_year=YEAR,
                               override_amount=Decimal("0")),
        ]
    )
    service, fees = _service(students=students, fees=fees, overrides=overrides)

    result = service.generate_monthly(school_id=1)

    assert result.students_processed == 4
    assert result.fees_created == 1
    assert result.total_amount == Decimal("1170.00")
    assert result.skipped == {"already_billed": 1, "no_grade": 1, "no_structure": 1, "zero_total": 1}

    created = fees.latest_for_student(student_id=1, school_id=1)
    assert created.fee_month == "2025-09"
    assert created.due_date == date(2025, 9, 5)
    assert [line["category_code"] for line in created.fee_breakdown] == ["TUI", "BOK"]


def test_generate_monthly_bills_non_monthly_structures():
    structures = InMemoryStructures(
        [
            FeeStructure(fee_structure_id=7, school_id=1, academic_year=YEAR, fee_category_id=3, amount=Decimal("600"),
                         grade_level_id=30, period_type=PeriodType.ANNUAL, category_name="Exams",
                         category_code="EXM"),
        ]
    )
    students = InMemoryStudents({1: student(1, grade_level_id=30)})
    service, fees = _service(students=students, structures=structures)

    result = service.generate_monthly(school_id=1, month=9, year=2025)

    assert result.fees_created == 1
    assert result.skipped == {}
    created = fees.latest_for_student(student_id=1, school_id=1)
    assert created.fee_structure_id == 7
    assert created.final_amount == Decimal("600.00")


def test_generate_monthly_all_students_already_billed():
    students = InMemoryStudents({1: student(1)})
    fees = InMemoryStudentFees([fee(1, student_id=1, fee_month="2025-09")])
    service, _ = _service(students=students, fees=fees)

    result = service.generate_monthly(school_id=1, month=9, year=2025)

    assert result.students_processed == 0
    assert result.skipped == {"already_billed": 1}


def test_generate_monthly_december_rolls_into_next_year():
    students = InMemoryStudents({1: student(1)})
    service, fees = _service(students=students, today=date(2025, 12, 10))

    service.generate_monthly(school_id=1)

    created = fees.latest_for_student(student_id=1, school_id=1)
    assert created.fee_month == "2026-01"
    assert created.final_amount == Decimal("1350.00")


def test_generate_monthly_rejects_bad_month():
    service, _ = _service(students=InMemoryStudents({}))

    with pytest.raises(ValidationError):
        service.generate_monthly(school_id=1, month=13, year=2025)


class _BrokenCampusStudents(InMemoryStudents):
    def list_for_billing(self, *, school_id: int, grade_level_id=None, section_id=None):
        if school_id == 2:
            raise RuntimeError("campus database unavailable")
        return super().list_for_billing(school_id=school_id, grade_level_id=grade_level_id, section_id=section_id)


def test_generate_monthly_all_schools_reports_failures():
    students = _BrokenCampusStudents({1: student(1)})
    service, _ = _service(students=students)

    result = service.generate_monthly_all_schools()

    by_school = {row["school_id"]: row for row in result["schools"]}
    assert by_school[1]["failed"] is False
    assert by_school[1]["fees_created"] == 1
    assert by_school[2]["failed"] is True
    assert result["total_fees_created"] == 1
    assert result["grand_total"] == Decimal("1350.00")
