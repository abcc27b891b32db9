from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import AccountingCategoryType
from .model import AccountingCategory, AccountingPayment, Income, Payee, PayeePayment


class AccountingCategoryRepository(Protocol):
    def list(
        self, *, school_id: int, category_type: Optional[AccountingCategoryType] = None
    ) -> Sequence[AccountingCategory]:
        """Active categories; filtering by type always includes the common ones."""

        raise NotImplementedError

    def get(self, *, category_id: int, school_id: int) -> Optional[AccountingCategory]:
        raise NotImplementedError

    def create(
        self,
        *,
        school_id: int,
        name: str,
        category_type: AccountingCategoryType,
        description: Optional[str],
        display_order: int,
    ) -> int:
        raise NotImplementedError

    def update(self, *, category_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError


class IncomeRepository(Protocol):
    def list(
        self,
        *,
        campus_id: int,
        academic_year: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Income]:
        raise NotImplementedError

    def get(self, *, income_id: int, campus_id: int) -> Optional[Income]:
        raise NotImplementedError

    def create(
        self,
        *,
        campus_id: int,
        academic_year: str,
        title: str,
        category_id: Optional[int],
        amount: Decimal,
        income_date: date,
        comments: Optional[str],
        file_attached: Optional[str],
        created_by: Optional[int],
    ) -> int:
        raise NotImplementedError

    def update(self, *, income_id: int, campus_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, income_id: int, campus_id: int) -> bool:
        raise NotImplementedError

    def total(self, *, campus_id: int, academic_year: str, start: Optional[date], end: Optional[date]) -> Decimal:
        raise NotImplementedError


class AccountingPaymentRepository(Protocol):
    def list(
        self,
        *,
        campus_id: int,
        academic_year: str,
        staff_payments: bool,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AccountingPayment]:
        raise NotImplementedError

    def get(self, *, accounting_payment_id: int, campus_id: int) -> Optional[AccountingPayment]:
        raise NotImplementedError

    def create(
        self,
        *,
        campus_id: int,
        academic_year: str,
        staff_id: Optional[int],
        title: str,
        category_id: Optional[int],
        amount: Decimal,
        payment_date: date,
        comments: Optional[str],
        file_attached: Optional[str],
        created_by: Optional[int],
    ) -> int:
        raise NotImplementedError

    def update(self, *, accounting_payment_id: int, campus_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, accounting_payment_id: int, campus_id: int) -> bool:
        raise NotImplementedError

    def totals(
        self, *, campus_id: int, academic_year: str, start: Optional[date], end: Optional[date]
    ) -> dict[str, Decimal]:
        """{"expenses": ..., "staff_payments": ...}"""

        raise NotImplementedError

    def staff_balances(
        self, *, campus_id: int, academic_year: str, start: Optional[date], end: Optional[date]
    ) -> Sequence[dict]:
        raise NotImplementedError


class StudentPaymentLedger(Protocol):
    """Fee payments seen from the accounting side."""

    def total(self, *, campus_id: int, academic_year: str, start: Optional[date], end: Optional[date]) -> Decimal:
        raise NotImplementedError

    def list_on(self, *, campus_id: int, day: date) -> Sequence[dict]:
        raise NotImplementedError


class PayeeRepository(Protocol):
    def list_active(self, *, school_id: int) -> Sequence[Payee]:
        """Active payees by name, each with the sum of its payments."""

        raise NotImplementedError

    def get(self, *, payee_id: int, school_id: int) -> Optional[Payee]:
        raise NotImplementedError

    def create(self, *, school_id: int, values: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, *, payee_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError


class PayeePaymentRepository(Protocol):
    def list_for_payee(self, *, payee_id: int) -> Sequence[PayeePayment]:
        raise NotImplementedError

    def get(self, payee_payment_id: int) -> Optional[PayeePayment]:
        raise NotImplementedError

    def create(
        self,
        *,
        payee_id: int,
        academic_year_id: Optional[int],
        amount: Decimal,
        payment_date: date,
        description: Optional[str],
        reference_number: Optional[str],
        created_by: Optional[int],
    ) -> int:
        raise NotImplementedError

    def delete(self, *, payee_payment_id: int) -> bool:
        raise NotImplementedError
