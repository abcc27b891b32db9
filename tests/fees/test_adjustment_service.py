from __future__ import annotations

from decimal import Decimal

import pytest

from school_admin.core.enums import AdjustmentType, FeeStatus
from school_admin.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from school_admin.fees.adjustment_service import FeeAdjustmentService
from school_admin.fees.model import FeeSettings

from tests.fees.fakes import InMemoryAdjustments, InMemoryFeeSettings, InMemoryStudentFees, directory, fee


def _service(*fees, settings=None):
    store = InMemoryStudentFees(fees)
    adjustments = InMemoryAdjustments()
    service = FeeAdjustmentService(
        store,
        adjustments,
        InMemoryFeeSettings({1: settings or FeeSettings(school_id=1)}),
        directory(),
    )
    return service, store, adjustments


def _late_fee(**kwargs):
    values = dict(
        base_amount=Decimal("500.00"),
        sibling_discount=Decimal("50.00"),
        late_fee_applied=Decimal("25.00"),
        discount_forfeited=True,
        final_amount=Decimal("525.00"),
        status=FeeStatus.OVERDUE,
    )
    values.update(kwargs)
    return fee(1, **values)


def test_remove_late_fee_recomputes_final_and_logs_adjustment():
    service, store, adjustments = _service(_late_fee())

    updated = service.adjust(
        student_fee_id=1, school_id=1, admin_id=9, adjustment_type="late_fee_removed", reason="First offence"
    )

    assert updated.late_fee_applied == Decimal("0.00")
    assert updated.final_amount == Decimal("500.00")
    [row] = adjustments.list_for_fee(student_fee_id=1)
    assert row.adjustment_type == AdjustmentType.LATE_FEE_REMOVED
    assert row.amount_before == Decimal("525.00")
    assert row.amount_after == Decimal("500.00")
    assert row.adjustment_amount == Decimal("-25.00")
    assert row.adjusted_by == 9


def test_reduce_late_fee_cannot_increase_it():
    service, _, _ = _service(_late_fee())

    with pytest.raises(ValidationError):
        service.adjust(
            student_fee_id=1,
            school_id=1,
            admin_id=9,
            adjustment_type="late_fee_reduced",
            reason="typo",
            new_late_fee="30",
        )

    updated = service.adjust(
        student_fee_id=1, school_id=1, admin_id=9, adjustment_type="late_fee_reduced", reason="ok", new_late_fee="10"
    )
    assert updated.final_amount == Decimal("510.00")


def test_custom_discount_accumulates():
    service, _, _ = _service(fee(1, amount_paid=Decimal("60.00"), status=FeeStatus.PARTIAL))

    service.adjust(student_fee_id=1, school_id=1, admin_id=1, adjustment_type="custom_discount", reason="a",
                   custom_discount="20")
    updated = service.adjust(student_fee_id=1, school_id=1, admin_id=1, adjustment_type="custom_discount",
                             reason="b", custom_discount="20")

    assert updated.custom_discount == Decimal("40.00")
    assert updated.final_amount == Decimal("60.00")
    assert updated.status == FeeStatus.PAID
    assert updated.discount_reason == "b"


def test_custom_discount_cannot_go_negative():
    service, _, _ = _service(fee(1))

    with pytest.raises(ValidationError):
        service.adjust(student_fee_id=1, school_id=1, admin_id=1, adjustment_type="custom_discount", reason="x",
                       custom_discount="150")


def test_restore_discount():
    service, _, adjustments = _service(_late_fee())

    updated = service.restore_discount(student_fee_id=1, school_id=1, admin_id=4)

    assert updated.discount_forfeited is False
    assert updated.discount_restored_by == 4
    assert updated.final_amount == Decimal("475.00")
    [row] = adjustments.rows
    assert row.adjustment_type == AdjustmentType.DISCOUNT_RESTORED
    assert row.amount_before == Decimal("525.00")
    assert row.amount_after == Decimal("475.00")
    assert row.adjustment_amount == Decimal("50.00")


def test_restore_discount_requires_setting():
    service, _, _ = _service(_late_fee(), settings=FeeSettings(school_id=1, admin_can_restore_discounts=False))

    with pytest.raises(AuthorizationError):
        service.restore_discount(student_fee_id=1, school_id=1, admin_id=4)


def test_waive_fee_and_waived_fee_is_final():
    service, store, adjustments = _service(fee(1))

    waived = service.waive_fee(student_fee_id=1, school_id=1, admin_id=2)

    assert waived.status == FeeStatus.WAIVED
    assert waived.notes == "Fee waived by admin"
    row = adjustments.rows[-1]
    assert row.adjustment_type == AdjustmentType.FEE_WAIVED
    assert row.amount_before == Decimal("100.00")
    assert row.amount_after == Decimal("0.00")
    assert row.adjustment_amount == Decimal("-100.00")
    with pytest.raises(ValidationError):
        service.adjust(student_fee_id=1, school_id=1, admin_id=2, adjustment_type="late_fee_removed", reason="x")


def test_reason_is_required_and_type_checked():
    service, _, _ = _service(fee(1))

    with pytest.raises(ValidationError):
        service.adjust(student_fee_id=1, school_id=1, admin_id=1, adjustment_type="late_fee_removed", reason="  ")
    with pytest.raises(ValidationError):
        service.adjust(student_fee_id=1, school_id=1, admin_id=1, adjustment_type="bogus", reason="x")


def test_fee_from_other_school_is_not_found():
    service, _, _ = _service(fee(1, school_id=7))

    with pytest.raises(NotFoundError):
        service.list_adjustments(student_fee_id=1, school_id=1)
