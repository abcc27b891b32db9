from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional, Sequence

from ..common.datetime_utils import today_local
from ..common.money import percent_of, to_money
from ..common.validators import optional_date, optional_text, require_choice, require_positive
from ..core.constants import RECEIPT_PREFIX, ZERO
from ..core.enums import FeeStatus, PaymentMethod
from ..core.exceptions import NotFoundError, ValidationError
from ..schools.service import SchoolDirectory
from ..students.repository import StudentRepository
from .amounts import status_after_change
from .lookup import fee_in_school
from .model import FeePayment, NewPayment, NewStudentFee, StudentFee
from .repository import FeeSettingsRepository, FeeStructureRepository, PaymentRepository, StudentFeeRepository

logger = logging.getLogger(__name__)


def _percent_label(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    return str(value.normalize())


def new_receipt_number() -> str:
    return f"{RECEIPT_PREFIX}{uuid.uuid4().hex[:8].upper()}"


class FeePaymentService:
    """Records, edits and removes fee payments, keeping the fee's paid total and status in step."""

    def __init__(
        self,
        fees: StudentFeeRepository,
        payments: PaymentRepository,
        structures: FeeStructureRepository,
        settings: FeeSettingsRepository,
        students: StudentRepository,
        schools: SchoolDirectory,
        *,
        clock: Callable[[], date] = today_local,
        receipt_numbers: Callable[[], str] = new_receipt_number,
    ):
        self._fees = fees
        self._payments = payments
        self._structures = structures
        self._settings = settings
        self._students = students
        self._schools = schools
        self._clock = clock
        self._receipt_numbers = receipt_numbers

    def _refresh_totals(self, student_fee_id: int) -> Optional[StudentFee]:
        fee = self._fees.get(int(student_fee_id))
        if not fee:
            return None
        paid = to_money(self._payments.total_for_fee(student_fee_id=fee.student_fee_id))
        current = fee.status
        # A fully paid fee that carried a late fee goes back to overdue if it becomes unpaid again.
        if current == FeeStatus.PAID and fee.late_fee_applied > 0:
            current = FeeStatus.OVERDUE
        status = status_after_change(current=current, amount_paid=paid, final_amount=fee.final_amount)
        self._fees.update_fields(student_fee_id=fee.student_fee_id, changes={"amount_paid": paid, "status": status})
        return self._fees.get(fee.student_fee_id)

    def _check_amount(self, fee: StudentFee, amount: Decimal, balance: Decimal) -> None:
        if amount > balance:
            raise ValidationError(f"Payment amount exceeds the outstanding balance of {balance}")

        settings = self._settings.get(self._schools.resource_owner_id(fee.school_id))
        if not settings:
            return
        if not settings.allow_partial_payments:
            if amount < balance:
                raise ValidationError(f"Partial payments are not allowed. The full balance of {balance} is required")
            return

        percent = settings.min_partial_payment_percent
        if percent > 0:
            minimum = percent_of(fee.final_amount, percent)
            if amount < minimum and amount < balance:
                raise ValidationError(f"Minimum payment is {minimum} ({_percent_label(percent)}%)")

    def record_payment(
        self,
        *,
        school_id: int,
        student_fee_id: int,
        amount: Any,
        payment_method: Any = PaymentMethod.CASH.value,
        payment_reference: Optional[str] = None,
        payment_date: Any = None,
        received_by: Optional[int] = None,
        notes: Optional[str] = None,
        comment: Optional[str] = None,
        is_lunch_payment: bool = False,
        file_url: Optional[str] = None,
        receipt_number: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        fee = fee_in_school(self._fees, self._schools, student_fee_id=student_fee_id, school_id=school_id)
        if fee.status == FeeStatus.WAIVED:
            raise ValidationError("Cannot record a payment against a waived fee")

        value = to_money(require_positive(amount, "Payment amount"))
        self._check_amount(fee, value, fee.balance)

        payment_id = self._payments.create(
            NewPayment(
                student_fee_id=fee.student_fee_id,
                amount=value,
                payment_date=optional_date(payment_date, "payment_date") or self._clock(),
                payment_method=require_choice(payment_method or PaymentMethod.CASH.value, PaymentMethod, "payment_method"),
                payment_reference=optional_text(payment_reference),
                received_by=received_by,
                notes=optional_text(notes),
                comment=optional_text(comment),
                is_lunch_payment=bool(is_lunch_payment),
                file_url=optional_text(file_url),
                receipt_number=optional_text(receipt_number),
                created_by=created_by,
            )
        )
        self._refresh_totals(fee.student_fee_id)
        logger.info("Payment %s of %s recorded on fee %s", payment_id, value, fee.student_fee_id)
        return payment_id

    def record_direct_payment(
        self,
        *,
        school_id: int,
        student_id: int,
        amount: Any,
        payment_date: Any = None,
        payment_method: Any = PaymentMethod.CASH.value,
        comment: Optional[str] = None,
        is_lunch_payment: bool = False,
        file_url: Optional[str] = None,
        receipt_number: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> dict:
        """Book money received outside a specific invoice against the student's latest fee.

        Balance rules are not applied here; a student with no fee yet gets an empty "general" fee.
        """
        student = self._students.get(int(student_id))
        if not student or not self._schools.belongs_to(student.school_id, int(school_id)):
            raise NotFoundError("Student not found")

        value = to_money(require_positive(amount, "Payment amount"))
        today = self._clock()

        fee = self._fees.latest_for_student(student_id=student.student_id, school_id=student.school_id)
        if fee:
            fee_id = fee.student_fee_id
        else:
            structure = self._structures.first_for_school(
                school_id=self._schools.resource_owner_id(student.school_id)
            )
            fee_id = self._fees.create(
                NewStudentFee(
                    school_id=student.school_id,
                    student_id=student.student_id,
                    academic_year=str(today.year),
                    due_date=today,
                    fee_structure_id=structure.fee_structure_id if structure else None,
                    base_amount=ZERO,
                    final_amount=ZERO,
                    notes="General fee for direct payments",
                )
            )
            logger.info("Created general fee %s for student %s", fee_id, student.student_id)

        receipt = optional_text(receipt_number) or self._receipt_numbers()
        payment_id = self._payments.create(
            NewPayment(
                student_fee_id=fee_id,
                amount=value,
                payment_date=optional_date(payment_date, "payment_date") or today,
                payment_method=require_choice(payment_method or PaymentMethod.CASH.value, PaymentMethod, "payment_method"),
                comment=optional_text(comment),
                is_lunch_payment=bool(is_lunch_payment),
                file_url=optional_text(file_url),
                receipt_number=receipt,
                created_by=created_by,
            )
        )
        self._refresh_totals(fee_id)
        return {"payment_id": payment_id, "student_fee_id": fee_id, "receipt_number": receipt}

    def _payment_in_school(self, payment_id: int, school_id: int) -> tuple[FeePayment, StudentFee]:
        payment = self._payments.get(int(payment_id))
        if not payment:
            raise NotFoundError("Payment not found")
        fee = self._fees.get(payment.student_fee_id)
        if not fee or not self._schools.belongs_to(fee.school_id, int(school_id)):
            raise NotFoundError("Payment not found")
        return payment, fee

    def update_payment(self, *, payment_id: int, school_id: int, changes: dict[str, Any]) -> FeePayment:
        payment, fee = self._payment_in_school(payment_id, school_id)

        values: dict[str, Any] = {}
        if "amount" in changes:
            value = to_money(require_positive(changes["amount"], "Payment amount"))
            available = fee.balance + payment.amount
            if value > available and fee.status != FeeStatus.WAIVED and fee.final_amount > 0:
                raise ValidationError(f"Payment amount exceeds the outstanding balance of {available}")
            values["amount"] = value
        if "payment_date" in changes:
            values["payment_date"] = optional_date(changes["payment_date"], "payment_date") or payment.payment_date
        for key in ("comment", "file_url", "receipt_number", "notes"):
            if key in changes:
                values[key] = optional_text(changes[key])
        if "is_lunch_payment" in changes:
            values["is_lunch_payment"] = bool(changes["is_lunch_payment"])

        if values:
            self._payments.update(payment_id=payment.payment_id, changes=values)
            self._refresh_totals(fee.student_fee_id)
        return self._payments.get(payment.payment_id) or payment

    def delete_payment(self, *, payment_id: int, school_id: int) -> None:
        payment, fee = self._payment_in_school(payment_id, school_id)
        self._payments.delete(payment_id=payment.payment_id)
        self._refresh_totals(fee.student_fee_id)
        logger.info("Payment %s removed from fee %s", payment.payment_id, fee.student_fee_id)

    def payment_history(self, *, student_fee_id: int, school_id: int) -> Sequence[FeePayment]:
        fee = fee_in_school(self._fees, self._schools, student_fee_id=student_fee_id, school_id=school_id)
        return self._payments.list_for_fee(student_fee_id=fee.student_fee_id)

    def student_payments(self, *, student_id: int, school_id: int) -> Sequence[FeePayment]:
        student = self._students.get(int(student_id))
        if not student or not self._schools.belongs_to(student.school_id, int(school_id)):
            raise NotFoundError("Student not found")
        return self._payments.list_for_student(student_id=student.student_id, school_id=student.school_id)
