from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from ..common.money import to_money
from ..common.pagination import page_of
from ..common.validators import require_choice
from ..core.constants import (
    DEFAULT_FEE_PAGE_SIZE,
    DEFAULT_GRADE_PAGE_SIZE,
    DEFAULT_HISTORY_PAGE_SIZE,
    DEFAULT_STUDENT_PAGE_SIZE,
    ZERO,
)
from ..core.enums import FeeStatus
from ..core.exceptions import NotFoundError
from ..schools.service import SchoolDirectory
from ..students.repository import StudentRepository
from .model import StudentFee
from .repository import StudentFeeRepository


def _status(value: Any) -> Optional[FeeStatus]:
    if value in (None, "", "all"):
        return None
    return require_choice(value, FeeStatus, "status")


def _grade_filter(value: Any) -> Optional[int]:
    if value in (None, "", "all"):
        return None
    return int(value)


class FeeReportService:
    """Read-only views over student fees."""

    def __init__(self, fees: StudentFeeRepository, students: StudentRepository, schools: SchoolDirectory):
        self._fees = fees
        self._students = students
        self._schools = schools

    def list_student_fees(
        self,
        *,
        school_id: int,
        student_id: Optional[int] = None,
        academic_year: Optional[str] = None,
        status: Any = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        p = page_of(page, limit, default_limit=DEFAULT_FEE_PAGE_SIZE)
        rows, total = self._fees.search(
            school_id=int(school_id),
            student_id=int(student_id) if student_id is not None else None,
            academic_year=academic_year,
            status=_status(status),
            offset=p.offset,
            limit=p.limit,
        )
        return {"data": list(rows), "total": total, "page": p.page, "limit": p.limit}

    def get_student_fee(self, *, student_fee_id: int, school_id: int) -> Optional[StudentFee]:
        fee = self._fees.get(int(student_fee_id))
        if not fee or not self._schools.belongs_to(fee.school_id, int(school_id)):
            return None
        return fee

    def fees_by_grade(
        self,
        *,
        school_id: int,
        grade_level_id: Any = None,
        section_id: Optional[int] = None,
        fee_month: Optional[str] = None,
        status: Any = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        p = page_of(page, limit, default_limit=DEFAULT_GRADE_PAGE_SIZE)
        rows, total = self._fees.search(
            school_id=int(school_id),
            grade_level_id=_grade_filter(grade_level_id),
            section_id=int(section_id) if section_id is not None else None,
            fee_month=fee_month,
            status=_status(status),
            offset=p.offset,
            limit=p.limit,
        )
        return {"data": list(rows), "total": total, "page": p.page, "limit": p.limit}

    def student_fee_history(
        self,
        *,
        student_id: int,
        school_id: int,
        academic_year: Optional[str] = None,
        status: Any = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        """Paged fee history; the summary covers the returned page only."""
        p = page_of(page, limit, default_limit=DEFAULT_HISTORY_PAGE_SIZE)
        rows, total = self._fees.search(
            school_id=int(school_id),
            student_id=int(student_id),
            academic_year=academic_year,
            status=_status(status),
            offset=p.offset,
            limit=p.limit,
        )
        billed = sum((f.final_amount for f in rows), ZERO)
        paid = sum((f.amount_paid for f in rows), ZERO)
        return {
            "data": list(rows),
            "total": total,
            "page": p.page,
            "limit": p.limit,
            "summary": {
                "total_billed": to_money(billed),
                "total_paid": to_money(paid),
                "total_due": to_money(billed - paid),
            },
        }

    def student_fee_summary(self, *, student_id: int, school_id: int) -> dict:
        student = self._students.get(int(student_id))
        if not student or not self._schools.belongs_to(student.school_id, int(school_id)):
            raise NotFoundError("Student not found")

        fees = [
            f
            for f in self._fees.list_for_student(student_id=student.student_id, school_id=student.school_id)
            if f.status != FeeStatus.WAIVED
        ]
        total_fees = to_money(sum((f.final_amount for f in fees), ZERO))
        total_payments = to_money(sum((f.amount_paid for f in fees), ZERO))
        return {"total_fees": total_fees, "total_payments": total_payments, "balance": total_fees - total_payments}

    def students_with_payment_summary(
        self,
        *,
        school_id: int,
        search: Optional[str] = None,
        grade_level_id: Any = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        p = page_of(page, limit, default_limit=DEFAULT_STUDENT_PAGE_SIZE)
        rows, total = self._fees.student_payment_summaries(
            school_id=int(school_id),
            search=(search or "").strip() or None,
            grade_level_id=_grade_filter(grade_level_id),
            offset=p.offset,
            limit=p.limit,
        )
        return {"data": list(rows), "total": total, "page": p.page, "limit": p.limit}

    def dashboard_stats(self, *, school_id: int, academic_year: Optional[str] = None) -> dict:
        counts = {s.value: 0 for s in FeeStatus}
        total_fees = ZERO
        collected = ZERO
        pending = ZERO
        overdue = ZERO

        for row in self._fees.status_totals(school_id=int(school_id), academic_year=academic_year):
            status = FeeStatus(row["status"])
            final_total = Decimal(row["final_total"])
            paid_total = Decimal(row["paid_total"])
            counts[status.value] = int(row["fee_count"])
            collected += paid_total
            if status == FeeStatus.WAIVED:
                continue
            total_fees += final_total
            if status in (FeeStatus.PENDING, FeeStatus.PARTIAL):
                pending += final_total - paid_total
            elif status == FeeStatus.OVERDUE:
                overdue += final_total - paid_total

        return {
            "total_fees": to_money(total_fees),
            "total_collected": to_money(collected),
            "total_pending": to_money(pending),
            "total_overdue": to_money(overdue),
            "counts": counts,
        }
