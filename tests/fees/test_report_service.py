from __future__ import annotations

from decimal import Decimal

import pytest

from school_admin.core.enums import FeeStatus
from school_admin.core.exceptions import NotFoundError, ValidationError
from school_admin.fees.report_service import FeeReportService

from tests.fees.fakes import InMemoryStudentFees, InMemoryStudents, directory, fee, student


def _service():
    fees = InMemoryStudentFees(
        [
            fee(1, amount_paid=Decimal("100.00"), status=FeeStatus.PAID),
            fee(2, amount_paid=Decimal("40.00"), status=FeeStatus.PARTIAL),
            fee(3),
            fee(4, final_amount=Decimal("110.00"), late_fee_applied=Decimal("10.00"), amount_paid=Decimal("10.00"),
                status=FeeStatus.OVERDUE),
            fee(5, amount_paid=Decimal("20.00"), status=FeeStatus.WAIVED),
            fee(6, student_id=2, academic_year="2024-2025"),
        ]
    )
    return FeeReportService(fees, InMemoryStudents({1: student(1), 2: student(2)}), directory())


def test_dashboard_stats():
    stats = _service().dashboard_stats(school_id=1, academic_year="2025-2026")

    assert stats["total_fees"] == Decimal("410.00")
    assert stats["total_collected"] == Decimal("170.00")
    assert stats["total_pending"] == Decimal("160.00")
    assert stats["total_overdue"] == Decimal("100.00")
    assert stats["counts"] == {"pending": 1, "partial": 1, "paid": 1, "overdue": 1, "waived": 1}


def test_student_fee_summary_excludes_waived():
    summary = _service().student_fee_summary(student_id=1, school_id=1)

    assert summary == {
        "total_fees": Decimal("410.00"),
        "total_payments": Decimal("150.00"),
        "balance": Decimal("260.00"),
    }


def test_student_fee_summary_unknown_student():
    with pytest.raises(NotFoundError):
        _service().student_fee_summary(student_id=99, school_id=1)


def test_list_student_fees_all_status_means_no_filter():
    service = _service()

    everything = service.list_student_fees(school_id=1, status="all")
    paid = service.list_student_fees(school_id=1, status="paid", limit=1)

    assert everything["total"] == 6
    assert paid["total"] == 1
    assert paid["data"][0].student_fee_id == 1
    with pytest.raises(ValidationError):
        service.list_student_fees(school_id=1, status="late")


def test_fee_history_summary_covers_page():
    history = _service().student_fee_history(student_id=2, school_id=1)

    assert history["total"] == 1
    assert history["summary"]["total_due"] == Decimal("100.00")


def test_get_student_fee_outside_school_returns_none():
    assert _service().get_student_fee(student_fee_id=1, school_id=5) is None
