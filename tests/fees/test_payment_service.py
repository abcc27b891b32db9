from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from school_admin.core.enums import FeeStatus, PaymentMethod
from school_admin.core.exceptions import NotFoundError, ValidationError
from school_admin.fees.model import FeeSettings, FeeStructure, NewPayment
from school_admin.fees.payment_service import FeePaymentService

from tests.fees.fakes import (
    InMemoryFeeSettings,
    InMemoryPayments,
    InMemoryStructures,
    InMemoryStudentFees,
    InMemoryStudents,
    directory,
    fee,
    student,
)

TODAY = date(2025, 9, 10)


def _service(*fees, settings=None, structures=()):
    store = InMemoryStudentFees(fees)
    payments = InMemoryPayments(store)
    service = FeePaymentService(
        store,
        payments,
        InMemoryStructures(structures),
        InMemoryFeeSettings({1: settings or FeeSettings(school_id=1)}),
        InMemoryStudents({1: student(1), 2: student(2, school_id=2)}),
        directory(),
        clock=lambda: TODAY,
        receipt_numbers=lambda: "RP-TEST0001",
    )
    return service, store, payments


def test_partial_then_full_payment_updates_status():
    service, store, payments = _service(fee(1))

    first = service.record_payment(school_id=1, student_fee_id=1, amount="30")
    assert store.get(1).status == FeeStatus.PARTIAL
    assert store.get(1).amount_paid == Decimal("30.00")
    assert payments.get(first).payment_date == TODAY
    assert payments.get(first).payment_method == PaymentMethod.CASH

    service.record_payment(school_id=1, student_fee_id=1, amount="70", payment_method="card")
    assert store.get(1).status == FeeStatus.PAID
    assert store.get(1).balance == Decimal("0.00")


def test_payment_cannot_exceed_balance():
    service, _, _ = _service(fee(1, amount_paid=Decimal("90.00"), status=FeeStatus.PARTIAL))

    with pytest.raises(ValidationError):
        service.record_payment(school_id=1, student_fee_id=1, amount="10.01")


def test_minimum_partial_payment_percent():
    service, _, _ = _service(fee(1))

    with pytest.raises(ValidationError, match="Minimum payment is 25.00"):
        service.record_payment(school_id=1, student_fee_id=1, amount="10")


def test_small_payment_allowed_when_it_settles_the_balance():
    service, store, payments = _service(fee(1, amount_paid=Decimal("95.00"), status=FeeStatus.PARTIAL))
    payments.create(NewPayment(student_fee_id=1, amount=Decimal("95.00"), payment_date=date(2025, 9, 1)))

    service.record_payment(school_id=1, student_fee_id=1, amount="5")

    assert store.get(1).status == FeeStatus.PAID
    assert store.get(1).amount_paid == Decimal("100.00")


def test_partial_payments_disabled_requires_full_balance():
    service, store, _ = _service(fee(1), settings=FeeSettings(school_id=1, allow_partial_payments=False))

    with pytest.raises(ValidationError, match="Partial payments are not allowed"):
        service.record_payment(school_id=1, student_fee_id=1, amount="50")

    service.record_payment(school_id=1, student_fee_id=1, amount="100")
    assert store.get(1).status == FeeStatus.PAID


def test_waived_fee_rejects_payment():
    service, _, _ = _service(fee(1, status=FeeStatus.WAIVED))

    with pytest.raises(ValidationError):
        service.record_payment(school_id=1, student_fee_id=1, amount="10")


def test_payment_must_be_positive():
    service, _, _ = _service(fee(1))

    with pytest.raises(ValidationError):
        service.record_payment(school_id=1, student_fee_id=1, amount="0")


@pytest.mark.parametrize("amount", ["NaN", "sNaN", "Infinity", "-Infinity", "1e999"])
def test_non_numeric_amounts_are_rejected(amount):
    service, store, payments = _service(fee(1))

    with pytest.raises(ValidationError):
        service.record_payment(school_id=1, student_fee_id=1, amount=amount)

    assert payments.rows == {}
    assert store.get(1).status == FeeStatus.PENDING


def test_direct_payment_creates_general_fee():
    structure = FeeStructure(fee_structure_id=5, school_id=1, academic_year="2025-2026", fee_category_id=1,
                             amount=Decimal("100"))
    service, store, payments = _service(structures=[structure])

    result = service.record_direct_payment(school_id=1, student_id=1, amount="80")

    general = store.get(result["student_fee_id"])
    assert general.notes == "General fee for direct payments"
    assert general.fee_structure_id == 5
    assert general.academic_year == "2025"
    assert general.amount_paid == Decimal("80.00")
    assert result["receipt_number"] == "RP-TEST0001"
    assert payments.get(result["payment_id"]).receipt_number == "RP-TEST0001"


def test_direct_payment_uses_latest_fee_and_skips_balance_rules():
    service, store, _ = _service(fee(1), fee(2, fee_month="2025-10"))

    result = service.record_direct_payment(school_id=1, student_id=1, amount="150", receipt_number="R-1")

    assert result["student_fee_id"] == 2
    assert result["receipt_number"] == "R-1"
    assert store.get(2).status == FeeStatus.PAID


def test_direct_payment_for_student_of_other_school():
    service, _, _ = _service()

    with pytest.raises(NotFoundError):
        service.record_direct_payment(school_id=3, student_id=1, amount="10")


def test_update_payment_checks_available_balance():
    service, store, _ = _service(fee(1))
    payment_id = service.record_payment(school_id=1, student_fee_id=1, amount="60")

    with pytest.raises(ValidationError):
        service.update_payment(payment_id=payment_id, school_id=1, changes={"amount": "101"})

    updated = service.update_payment(payment_id=payment_id, school_id=1, changes={"amount": "100", "comment": " ok "})
    assert updated.amount == Decimal("100.00")
    assert updated.comment == "ok"
    assert store.get(1).status == FeeStatus.PAID


def test_deleting_payment_on_late_fee_returns_to_overdue():
    service, store, _ = _service(
        fee(1, late_fee_applied=Decimal("5.00"), final_amount=Decimal("105.00"), status=FeeStatus.OVERDUE)
    )
    payment_id = service.record_payment(school_id=1, student_fee_id=1, amount="105")
    assert store.get(1).status == FeeStatus.PAID

    service.delete_payment(payment_id=payment_id, school_id=1)

    assert store.get(1).status == FeeStatus.OVERDUE
    assert store.get(1).amount_paid == Decimal("0.00")


def test_campus_payment_visible_from_parent_school():
    service, _, _ = _service(fee(1, school_id=2, student_id=2))
    service.record_payment(school_id=2, student_fee_id=1, amount="40")

    assert len(service.payment_history(student_fee_id=1, school_id=1)) == 1
    assert len(service.student_payments(student_id=2, school_id=1)) == 1
