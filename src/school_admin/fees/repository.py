from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import AdjustmentType, FeeStatus
from .model import (
    FeeAdjustment,
    FeeCategory,
    FeePayment,
    FeeSettings,
    FeeStructure,
    NewPayment,
    NewStudentFee,
    SchoolService,
    SiblingDiscountTier,
    StudentFee,
    StudentFeeOverride,
)


class FeeSettingsRepository(Protocol):
    def get(self, school_id: int) -> Optional[FeeSettings]:
        raise NotImplementedError

    def upsert(self, settings: FeeSettings) -> None:
        raise NotImplementedError

    def list_school_ids_with_late_fees(self) -> Sequence[int]:
        raise NotImplementedError


class FeeCategoryRepository(Protocol):
    def list(self, *, school_id: int, active_only: bool = True) -> Sequence[FeeCategory]:
        raise NotImplementedError

    def get(self, *, fee_category_id: int, school_id: int) -> Optional[FeeCategory]:
        raise NotImplementedError

    def get_by_code(self, *, school_id: int, code: str) -> Optional[FeeCategory]:
        raise NotImplementedError

    def create(
        self,
        *,
        school_id: int,
        name: str,
        code: str,
        description: Optional[str],
        is_mandatory: bool,
        is_discountable: bool,
        display_order: int,
    ) -> int:
        raise NotImplementedError

    def update(self, *, fee_category_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def deactivate(self, *, fee_category_id: int, school_id: int) -> bool:
        raise NotImplementedError


class DiscountTierRepository(Protocol):
    def list_active(self, *, school_id: int) -> Sequence[SiblingDiscountTier]:
        """Active tiers ordered by sibling_count."""

        raise NotImplementedError

    def replace_all(self, *, school_id: int, tiers: Sequence[SiblingDiscountTier]) -> None:
        """Deactivate every tier of the school, then upsert `tiers` (keyed by sibling_count) as active."""

        raise NotImplementedError


class FeeStructureRepository(Protocol):
    def list(self, *, school_id: int, academic_year: Optional[str] = None) -> Sequence[FeeStructure]:
        raise NotImplementedError

    def get(self, *, fee_structure_id: int, school_id: Optional[int] = None) -> Optional[FeeStructure]:
        raise NotImplementedError

    def list_active_for(
        self,
        *,
        school_id: int,
        academic_year: str,
        grade_level_id: Optional[int],
        include_school_wide: bool = False,
        category_ids: Sequence[int] = (),
    ) -> Sequence[FeeStructure]:
        raise NotImplementedError

    def first_for_school(self, *, school_id: int) -> Optional[FeeStructure]:
        raise NotImplementedError

    def create(
        self,
        *,
        school_id: int,
        academic_year: str,
        grade_level_id: Optional[int],
        fee_category_id: int,
        period_type: str,
        period_name: Optional[str],
        period_number: Optional[int],
        amount: Decimal,
        due_date: Optional[date],
    ) -> int:
        raise NotImplementedError

    def update(self, *, fee_structure_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def deactivate(self, *, fee_structure_id: int, school_id: int) -> bool:
        raise NotImplementedError


class SchoolServiceRepository(Protocol):
    def list_active(self, *, school_id: int, service_ids: Sequence[int]) -> Sequence[SchoolService]:
        raise NotImplementedError


class StudentFeeRepository(Protocol):
    def get(self, student_fee_id: int) -> Optional[StudentFee]:
        raise NotImplementedError

    def create(self, fee: NewStudentFee) -> int:
        raise NotImplementedError

    def exists_for_month(self, *, student_id: int, fee_month: str) -> bool:
        raise NotImplementedError

    def latest_for_student(self, *, student_id: int, school_id: int) -> Optional[StudentFee]:
        raise NotImplementedError

    def update_fields(self, *, student_fee_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def list_late_fee_candidates(self, *, school_ids: Sequence[int], due_before: date) -> Sequence[StudentFee]:
        """Pending/partial fees due before `due_before` that have no late fee yet."""

        raise NotImplementedError

    def search(
        self,
        *,
        school_id: int,
        student_id: Optional[int] = None,
        academic_year: Optional[str] = None,
        status: Optional[FeeStatus] = None,
        grade_level_id: Optional[int] = None,
        section_id: Optional[int] = None,
        fee_month: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[StudentFee], int]:
        """Page of fees (newest due date first) and the total matching count."""

        raise NotImplementedError

    def list_for_student(self, *, student_id: int, school_id: int) -> Sequence[StudentFee]:
        raise NotImplementedError

    def status_totals(self, *, school_id: int, academic_year: Optional[str] = None) -> Sequence[dict]:
        """Rows of {status, fee_count, final_total, paid_total}."""

        raise NotImplementedError

    def student_payment_summaries(
        self,
        *,
        school_id: int,
        search: Optional[str] = None,
        grade_level_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[dict], int]:
        raise NotImplementedError


class PaymentRepository(Protocol):
    def create(self, payment: NewPayment) -> int:
        raise NotImplementedError

    def get(self, payment_id: int) -> Optional[FeePayment]:
        raise NotImplementedError

    def list_for_fee(self, *, student_fee_id: int) -> Sequence[FeePayment]:
        raise NotImplementedError

    def list_for_student(self, *, student_id: int, school_id: int) -> Sequence[FeePayment]:
        raise NotImplementedError

    def total_for_fee(self, *, student_fee_id: int) -> Decimal:
        raise NotImplementedError

    def update(self, *, payment_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, payment_id: int) -> bool:
        raise NotImplementedError


class AdjustmentRepository(Protocol):
    def create(
        self,
        *,
        student_fee_id: int,
        adjusted_by: Optional[int],
        adjustment_type: AdjustmentType,
        amount_before: Decimal,
        amount_after: Decimal,
        adjustment_amount: Decimal,
        reason: str,
    ) -> int:
        raise NotImplementedError

    def list_for_fee(self, *, student_fee_id: int) -> Sequence[FeeAdjustment]:
        raise NotImplementedError


class OverrideRepository(Protocol):
    def create(
        self,
        *,
        school_id: int,
        student_id: int,
        fee_category_id: int,
        academic_year: str,
        override_amount: Decimal,
        reason: Optional[str],
        created_by: Optional[int],
    ) -> int:
        raise NotImplementedError

    def get(self, override_id: int) -> Optional[StudentFeeOverride]:
        raise NotImplementedError

    def find_active(self, *, student_id: int, fee_category_id: int, academic_year: str) -> Optional[StudentFeeOverride]:
        raise NotImplementedError

    def list_for_student(self, *, student_id: int, academic_year: Optional[str] = None) -> Sequence[StudentFeeOverride]:
        raise NotImplementedError

    def active_amounts(self, *, student_id: int, academic_year: str) -> dict[int, Decimal]:
        """{fee_category_id: override_amount} for the student's active overrides."""

        raise NotImplementedError

    def update(self, *, override_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, override_id: int) -> bool:
        raise NotImplementedError

    def list_for_school(
        self,
        *,
        school_id: int,
        academic_year: Optional[str] = None,
        fee_category_id: Optional[int] = None,
        is_active: Optional[bool] = True,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[StudentFeeOverride], int]:
        raise NotImplementedError
