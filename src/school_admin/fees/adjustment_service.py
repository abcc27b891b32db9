from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..common.money import to_money
from ..common.validators import require_choice, require_non_empty, require_non_negative, require_positive
from ..core.constants import DEFAULT_WAIVE_NOTE, ZERO
from ..core.enums import AdjustmentType, FeeStatus
from ..core.exceptions import AuthorizationError, ValidationError
from ..schools.service import SchoolDirectory
from .amounts import final_amount_of, status_after_change
from .lookup import fee_in_school
from .model import FeeAdjustment, StudentFee
from .repository import AdjustmentRepository, FeeSettingsRepository, StudentFeeRepository

logger = logging.getLogger(__name__)


class FeeAdjustmentService:
    """Manual corrections to a single fee; every change leaves an audit row."""

    def __init__(
        self,
        fees: StudentFeeRepository,
        adjustments: AdjustmentRepository,
        settings: FeeSettingsRepository,
        schools: SchoolDirectory,
    ):
        self._fees = fees
        self._adjustments = adjustments
        self._settings = settings
        self._schools = schools

    def _require_restore_allowed(self, fee: StudentFee) -> None:
        settings = self._settings.get(self._schools.resource_owner_id(fee.school_id))
        if not settings or not settings.admin_can_restore_discounts:
            raise AuthorizationError("Discount restoration is disabled for this school")

    def adjust(
        self,
        *,
        student_fee_id: int,
        school_id: int,
        admin_id: Optional[int],
        adjustment_type: Any,
        reason: str,
        new_late_fee: Any = None,
        custom_discount: Any = None,
    ) -> StudentFee:
        kind = require_choice(adjustment_type, AdjustmentType, "adjustment_type")
        reason = require_non_empty(reason, "Reason")
        fee = fee_in_school(self._fees, self._schools, student_fee_id=student_fee_id, school_id=school_id)
        if fee.status == FeeStatus.WAIVED:
            raise ValidationError("Waived fees cannot be adjusted")

        before = fee.final_amount
        changes: dict[str, Any] = {}
        amount_fields: dict[str, Any] = {}

        if kind == AdjustmentType.LATE_FEE_REMOVED:
            if fee.late_fee_applied <= 0:
                raise ValidationError("This fee has no late fee to remove")
            amount_fields["late_fee_applied"] = ZERO

        elif kind == AdjustmentType.LATE_FEE_REDUCED:
            if new_late_fee is None or new_late_fee == "":
                raise ValidationError("new_late_fee is required to reduce a late fee")
            new_fee = to_money(require_non_negative(new_late_fee, "new_late_fee"))
            if new_fee > fee.late_fee_applied:
                raise ValidationError(f"New late fee cannot exceed the current late fee of {fee.late_fee_applied}")
            amount_fields["late_fee_applied"] = new_fee

        elif kind == AdjustmentType.CUSTOM_DISCOUNT:
            if custom_discount is None or custom_discount == "":
                raise ValidationError("custom_discount is required for a custom discount")
            extra = to_money(require_positive(custom_discount, "custom_discount"))
            amount_fields["custom_discount"] = fee.custom_discount + extra
            changes["discount_reason"] = reason

        elif kind == AdjustmentType.DISCOUNT_RESTORED:
            if not fee.discount_forfeited:
                raise ValidationError("The sibling discount of this fee has not been forfeited")
            self._require_restore_allowed(fee)
            amount_fields["discount_forfeited"] = False
            changes["discount_forfeited"] = False
            changes["discount_restored_by"] = admin_id

        if kind == AdjustmentType.FEE_WAIVED:
            after = ZERO
            changes["status"] = FeeStatus.WAIVED
            changes["notes"] = reason
        else:
            after = final_amount_of(fee, **amount_fields)
            if after < 0:
                raise ValidationError("Adjustment would make the fee amount negative")
            changes.update({k: v for k, v in amount_fields.items() if k != "discount_forfeited"})
            changes["final_amount"] = after
            changes["status"] = status_after_change(current=fee.status, amount_paid=fee.amount_paid, final_amount=after)

        # Restorations record the discount given back.
        if kind == AdjustmentType.DISCOUNT_RESTORED:
            delta = to_money(fee.sibling_discount)
        else:
            delta = to_money(after - before)

        self._fees.update_fields(student_fee_id=fee.student_fee_id, changes=changes)
        self._adjustments.create(
            student_fee_id=fee.student_fee_id,
            adjusted_by=admin_id,
            adjustment_type=kind,
            amount_before=before,
            amount_after=after,
            adjustment_amount=delta,
            reason=reason,
        )
        logger.info(
            "Fee %s adjusted (%s) by %s: %s -> %s", fee.student_fee_id, kind.value, admin_id, before, after
        )
        return self._fees.get(fee.student_fee_id) or fee

    def restore_discount(self, *, student_fee_id: int, school_id: int, admin_id: Optional[int]) -> StudentFee:
        fee = fee_in_school(self._fees, self._schools, student_fee_id=student_fee_id, school_id=school_id)
        self._require_restore_allowed(fee)
        return self.adjust(
            student_fee_id=fee.student_fee_id,
            school_id=school_id,
            admin_id=admin_id,
            adjustment_type=AdjustmentType.DISCOUNT_RESTORED,
            reason="Sibling discount restored by admin",
        )

    def waive_fee(
        self,
        *,
        student_fee_id: int,
        school_id: int,
        admin_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StudentFee:
        return self.adjust(
            student_fee_id=student_fee_id,
            school_id=school_id,
            admin_id=admin_id,
            adjustment_type=AdjustmentType.FEE_WAIVED,
            reason=(notes or "").strip() or DEFAULT_WAIVE_NOTE,
        )

    def list_adjustments(self, *, student_fee_id: int, school_id: int) -> Sequence[FeeAdjustment]:
        fee = fee_in_school(self._fees, self._schools, student_fee_id=student_fee_id, school_id=school_id)
        return self._adjustments.list_for_fee(student_fee_id=fee.student_fee_id)
