"""Arithmetic shared by every workflow that touches a student fee."""

from __future__ import annotations

from decimal import Decimal

from ..common.money import to_money
from ..core.enums import FeeStatus
from .model import StudentFee


def compute_final_amount(
    *,
    base_amount: Decimal,
    services_amount: Decimal,
    sibling_discount: Decimal,
    custom_discount: Decimal,
    late_fee_applied: Decimal,
    discount_forfeited: bool,
) -> Decimal:
    # A forfeited sibling discount is kept on the row so it can be restored later.
    effective_sibling = Decimal(0) if discount_forfeited else sibling_discount
    return to_money(base_amount + services_amount - effective_sibling - custom_discount + late_fee_applied)


def final_amount_of(fee: StudentFee, **overrides) -> Decimal:
    values = dict(
        base_amount=fee.base_amount,
        services_amount=fee.services_amount,
        sibling_discount=fee.sibling_discount,
        custom_discount=fee.custom_discount,
        late_fee_applied=fee.late_fee_applied,
        discount_forfeited=fee.discount_forfeited,
    )
    values.update(overrides)
    return compute_final_amount(**values)


def status_after_change(*, current: FeeStatus, amount_paid: Decimal, final_amount: Decimal) -> FeeStatus:
    if current == FeeStatus.WAIVED:
        return FeeStatus.WAIVED
    if amount_paid >= final_amount:
        return FeeStatus.PAID
    if current == FeeStatus.OVERDUE:
        return FeeStatus.OVERDUE
    if amount_paid > 0:
        return FeeStatus.PARTIAL
    return FeeStatus.PENDING
