from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.constants import ZERO
from ..core.enums import AdjustmentType, AmountType, FeeStatus, PaymentMethod, PeriodType


@dataclass(frozen=True)
class FeeSettings:
    school_id: int
    enable_late_fees: bool = True
    late_fee_type: AmountType = AmountType.PERCENTAGE
    late_fee_value: Decimal = Decimal("5.00")
    grace_days: int = 7
    enable_sibling_discounts: bool = True
    discount_forfeiture_enabled: bool = True
    admin_can_restore_discounts: bool = True
    allow_partial_payments: bool = True
    min_partial_payment_percent: Decimal = Decimal("25.00")


@dataclass(frozen=True)
class FeeCategory:
    fee_category_id: int
    school_id: int
    name: str
    code: str
    description: Optional[str] = None
    is_mandatory: bool = True
    is_discountable: bool = True
    display_order: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class SiblingDiscountTier:
    tier_id: int
    school_id: int
    sibling_count: int
    discount_type: AmountType
    discount_value: Decimal
    applies_to_categories: tuple[int, ...] = ()
    is_active: bool = True

    def covers(self, fee_category_id: Optional[int]) -> bool:
        if not self.applies_to_categories:
            return True
        return fee_category_id is not None and int(fee_category_id) in self.applies_to_categories


@dataclass(frozen=True)
class FeeStructure:
    fee_structure_id: int
    school_id: int
    academic_year: str
    fee_category_id: int
    amount: Decimal
    grade_level_id: Optional[int] = None
    period_type: PeriodType = PeriodType.MONTHLY
    period_name: Optional[str] = None
    period_number: Optional[int] = None
    due_date: Optional[date] = None
    is_active: bool = True
    category_name: Optional[str] = None
    category_code: Optional[str] = None
    grade_name: Optional[str] = None


@dataclass(frozen=True)
class SchoolService:
    service_id: int
    school_id: int
    name: str
    default_charge: Decimal
    is_active: bool = True


@dataclass(frozen=True)
class FeeBreakdownLine:
    category_id: int
    category_name: Optional[str]
    category_code: Optional[str]
    amount: Decimal
    is_override: bool = False
    original_amount: Optional[Decimal] = None

    def as_dict(self) -> dict:
        return {
            "category_id": self.category_id,
            "category_name": self.category_name,
            "category_code": self.category_code,
            "amount": str(self.amount),
            "is_override": self.is_override,
            "original_amount": str(self.original_amount) if self.original_amount is not None else None,
        }


@dataclass(frozen=True)
class StudentFee:
    student_fee_id: int
    school_id: int
    student_id: int
    academic_year: str
    due_date: date
    fee_structure_id: Optional[int] = None
    fee_month: Optional[str] = None
    base_amount: Decimal = ZERO
    services_amount: Decimal = ZERO
    sibling_discount: Decimal = ZERO
    custom_discount: Decimal = ZERO
    late_fee_applied: Decimal = ZERO
    final_amount: Decimal = ZERO
    amount_paid: Decimal = ZERO
    status: FeeStatus = FeeStatus.PENDING
    discount_forfeited: bool = False
    discount_restored_by: Optional[int] = None
    discount_reason: Optional[str] = None
    notes: Optional[str] = None
    fee_breakdown: Optional[list] = None
    created_at: Optional[datetime] = None
    student_name: Optional[str] = None
    student_number: Optional[str] = None

    @property
    def balance(self) -> Decimal:
        return self.final_amount - self.amount_paid


@dataclass(frozen=True)
class NewStudentFee:
    """Values for a fee row that is about to be inserted."""

    school_id: int
    student_id: int
    academic_year: str
    due_date: date
    base_amount: Decimal
    final_amount: Decimal
    fee_structure_id: Optional[int] = None
    fee_month: Optional[str] = None
    services_amount: Decimal = ZERO
    sibling_discount: Decimal = ZERO
    status: FeeStatus = FeeStatus.PENDING
    notes: Optional[str] = None
    fee_breakdown: Optional[list] = None


@dataclass(frozen=True)
class FeePayment:
    payment_id: int
    student_fee_id: int
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_reference: Optional[str] = None
    received_by: Optional[int] = None
    notes: Optional[str] = None
    comment: Optional[str] = None
    is_lunch_payment: bool = False
    file_url: Optional[str] = None
    receipt_number: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewPayment:
    student_fee_id: int
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_reference: Optional[str] = None
    received_by: Optional[int] = None
    notes: Optional[str] = None
    comment: Optional[str] = None
    is_lunch_payment: bool = False
    file_url: Optional[str] = None
    receipt_number: Optional[str] = None
    created_by: Optional[int] = None


@dataclass(frozen=True)
class FeeAdjustment:
    adjustment_id: int
    student_fee_id: int
    adjustment_type: AdjustmentType
    amount_before: Decimal
    amount_after: Decimal
    adjustment_amount: Decimal
    reason: str
    adjusted_by: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class StudentFeeOverride:
    override_id: int
    school_id: int
    student_id: int
    fee_category_id: int
    academic_year: str
    override_amount: Decimal
    reason: Optional[str] = None
    is_active: bool = True
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    category_name: Optional[str] = None
    student_name: Optional[str] = None


@dataclass(frozen=True)
class MonthlyRunResult:
    students_processed: int = 0
    fees_created: int = 0
    total_amount: Decimal = ZERO
    skipped: dict = field(default_factory=dict)
