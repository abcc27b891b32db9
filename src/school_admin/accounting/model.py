from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.constants import ZERO
from ..core.enums import AccountingCategoryType


@dataclass(frozen=True)
class AccountingCategory:
    category_id: int
    school_id: int
    name: str
    category_type: AccountingCategoryType
    description: Optional[str] = None
    display_order: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class Income:
    income_id: int
    campus_id: int
    academic_year: str
    title: str
    amount: Decimal
    income_date: date
    category_id: Optional[int] = None
    comments: Optional[str] = None
    file_attached: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    category_name: Optional[str] = None


@dataclass(frozen=True)
class AccountingPayment:
    """An expense, or a staff payment when `staff_id` is set."""

    accounting_payment_id: int
    campus_id: int
    academic_year: str
    title: str
    amount: Decimal
    payment_date: date
    staff_id: Optional[int] = None
    category_id: Optional[int] = None
    comments: Optional[str] = None
    file_attached: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    category_name: Optional[str] = None
    staff_name: Optional[str] = None

    @property
    def is_staff_payment(self) -> bool:
        return self.staff_id is not None


# Editable text columns of a payee.
PAYEE_FIELDS = (
    "name",
    "email",
    "phone",
    "address",
    "bank",
    "account_number",
    "swift_iban",
    "bsb_bic",
    "rollover",
)


@dataclass(frozen=True)
class Payee:
    payee_id: int
    school_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bank: Optional[str] = None
    account_number: Optional[str] = None
    swift_iban: Optional[str] = None
    bsb_bic: Optional[str] = None
    rollover: Optional[str] = None
    is_active: bool = True
    total_payments: Decimal = ZERO


@dataclass(frozen=True)
class PayeePayment:
    payee_payment_id: int
    payee_id: int
    amount: Decimal
    payment_date: date
    academic_year_id: Optional[int] = None
    description: Optional[str] = None
    reference_number: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
