from __future__ import annotations

from enum import Enum


class FeeStatus(str, Enum):
    """Lifecycle of a student fee row."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    WAIVED = "waived"


class AmountType(str, Enum):
    """How a discount or late fee value is interpreted."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PeriodType(str, Enum):
    MONTHLY = "monthly"
    SEMESTER = "semester"
    ANNUAL = "annual"
    ONE_TIME = "one_time"


class AdjustmentType(str, Enum):
    """Manual corrections an administrator can apply to a fee."""

    LATE_FEE_REMOVED = "late_fee_removed"
    LATE_FEE_REDUCED = "late_fee_reduced"
    CUSTOM_DISCOUNT = "custom_discount"
    FEE_WAIVED = "fee_waived"
    DISCOUNT_RESTORED = "discount_restored"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
    CARD = "card"
    ONLINE = "online"


class AccountingCategoryType(str, Enum):
    INCOMES = "incomes"
    EXPENSES = "expenses"
    COMMON = "common"


class SubjectType(str, Enum):
    THEORY = "theory"
    PRACTICAL = "practical"
    BOTH = "both"


class ScaleType(str, Enum):
    PERCENTAGE = "percentage"
    POINTS = "points"


class CopyStatus(str, Enum):
    AVAILABLE = "available"
    ISSUED = "issued"
    LOST = "lost"
    DAMAGED = "damaged"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    RETURNED = "returned"
    LOST = "lost"
