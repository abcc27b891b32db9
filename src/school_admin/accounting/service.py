from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Sequence

from ..common.money import to_money
from ..common.validators import (
    optional_date,
    optional_text,
    require_choice,
    require_non_empty,
    require_positive,
)
from ..core.constants import ZERO
from ..core.enums import AccountingCategoryType
from ..core.exceptions import NotFoundError, ValidationError
from ..schools.service import SchoolDirectory
from .model import PAYEE_FIELDS, AccountingCategory, AccountingPayment, Income, Payee, PayeePayment
from .repository import (
    AccountingCategoryRepository,
    AccountingPaymentRepository,
    IncomeRepository,
    PayeePaymentRepository,
    PayeeRepository,
    StudentPaymentLedger,
)

logger = logging.getLogger(__name__)


def _check_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and end < start:
        raise ValidationError("end date must not be before start date")


class AccountingService:
    """Campus ledger: incomes, expenses and staff payments, plus fee payments for the totals."""

    def __init__(
        self,
        categories: AccountingCategoryRepository,
        incomes: IncomeRepository,
        payments: AccountingPaymentRepository,
        ledger: StudentPaymentLedger,
        schools: SchoolDirectory,
    ):
        self._categories = categories
        self._incomes = incomes
        self._payments = payments
        self._ledger = ledger
        self._schools = schools

    # -------- Categories --------
    def list_categories(self, *, school_id: int, category_type: Any = None) -> Sequence[AccountingCategory]:
        kind = require_choice(category_type, AccountingCategoryType, "category_type") if category_type else None
        return self._categories.list(school_id=self._schools.resource_owner_id(school_id), category_type=kind)

    def create_category(
        self,
        *,
        school_id: int,
        name: str,
        category_type: Any,
        description: Optional[str] = None,
        display_order: int = 0,
    ) -> int:
        return self._categories.create(
            school_id=self._schools.resource_owner_id(school_id),
            name=require_non_empty(name, "Category name"),
            category_type=require_choice(category_type, AccountingCategoryType, "category_type"),
            description=optional_text(description),
            display_order=int(display_order or 0),
        )

    def _category(self, school_id: int, category_id: int) -> AccountingCategory:
        category = self._categories.get(
            category_id=int(category_id), school_id=self._schools.resource_owner_id(school_id)
        )
        if not category:
            raise NotFoundError("Accounting category not found")
        return category

    def update_category(self, *, school_id: int, category_id: int, changes: dict[str, Any]) -> AccountingCategory:
        existing = self._category(school_id, category_id)
        values: dict[str, Any] = {}
        if "name" in changes:
            values["name"] = require_non_empty(changes["name"], "Category name")
        if "category_type" in changes:
            values["category_type"] = require_choice(changes["category_type"], AccountingCategoryType, "category_type")
        if "description" in changes:
            values["description"] = optional_text(changes["description"])
        if "display_order" in changes:
            values["display_order"] = int(changes["display_order"] or 0)
        if "is_active" in changes:
            values["is_active"] = int(bool(changes["is_active"]))
        if values:
            self._categories.update(category_id=existing.category_id, school_id=existing.school_id, changes=values)
        return self._category(school_id, existing.category_id)

    def delete_category(self, *, school_id: int, category_id: int) -> None:
        existing = self._category(school_id, category_id)
        self._categories.update(category_id=existing.category_id, school_id=existing.school_id, changes={"is_active": 0})

    # -------- Incomes --------
    def list_incomes(
        self,
        *,
        campus_id: int,
        academic_year: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Income]:
        _check_range(start, end)
        return self._incomes.list(
            campus_id=int(campus_id),
            academic_year=require_non_empty(academic_year, "Academic year"),
            start=start,
            end=end,
        )

    def create_income(
        self,
        *,
        campus_id: int,
        academic_year: str,
        title: str,
        amount: Any,
        income_date: Any,
        category_id: Optional[int] = None,
        comments: Optional[str] = None,
        file_attached: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        when = optional_date(income_date, "income_date")
        if not when:
            raise ValidationError("income_date is required")
        if category_id:
            self._category(campus_id, category_id)
        income_id = self._incomes.create(
            campus_id=int(campus_id),
            academic_year=require_non_empty(academic_year, "Academic year"),
            title=require_non_empty(title, "Title"),
            category_id=int(category_id) if category_id else None,
            amount=to_money(require_positive(amount, "Amount")),
            income_date=when,
            comments=optional_text(comments),
            file_attached=optional_text(file_attached),
            created_by=created_by,
        )
        logger.info("Income %s recorded for campus %s", income_id, campus_id)
        return income_id

    def _income(self, campus_id: int, income_id: int) -> Income:
        income = self._incomes.get(income_id=int(income_id), campus_id=int(campus_id))
        if not income:
            raise NotFoundError("Income not found")
        return income

    def update_income(self, *, campus_id: int, income_id: int, changes: dict[str, Any]) -> Income:
        existing = self._income(campus_id, income_id)
        values = self._entry_changes(campus_id, changes, date_field="income_date")
        if values:
            self._incomes.update(income_id=existing.income_id, campus_id=existing.campus_id, changes=values)
        return self._income(campus_id, existing.income_id)

    def delete_income(self, *, campus_id: int, income_id: int) -> None:
        existing = self._income(campus_id, income_id)
        self._incomes.delete(income_id=existing.income_id, campus_id=existing.campus_id)

    # -------- Expenses and staff payments --------
    def list_payments(
        self,
        *,
        campus_id: int,
        academic_year: str,
        staff_payments: bool = False,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AccountingPayment]:
        _check_range(start, end)
        return self._payments.list(
            campus_id=int(campus_id),
            academic_year=require_non_empty(academic_year, "Academic year"),
            staff_payments=bool(staff_payments),
            start=start,
            end=end,
        )

    def create_payment(
        self,
        *,
        campus_id: int,
        academic_year: str,
        title: str,
        amount: Any,
        payment_date: Any,
        staff_id: Optional[int] = None,
        category_id: Optional[int] = None,
        comments: Optional[str] = None,
        file_attached: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        """Record an expense, or a staff payment when `staff_id` is given."""
        when = optional_date(payment_date, "payment_date")
        if not when:
            raise ValidationError("payment_date is required")
        if category_id:
            self._category(campus_id, category_id)
        return self._payments.create(
            campus_id=int(campus_id),
            academic_year=require_non_empty(academic_year, "Academic year"),
            staff_id=int(staff_id) if staff_id else None,
            title=require_non_empty(title, "Title"),
            category_id=int(category_id) if category_id else None,
            amount=to_money(require_positive(amount, "Amount")),
            payment_date=when,
            comments=optional_text(comments),
            file_attached=optional_text(file_attached),
            created_by=created_by,
        )

    def _payment(self, campus_id: int, accounting_payment_id: int) -> AccountingPayment:
        payment = self._payments.get(accounting_payment_id=int(accounting_payment_id), campus_id=int(campus_id))
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    def update_payment(self, *, campus_id: int, accounting_payment_id: int, changes: dict[str, Any]) -> AccountingPayment:
        existing = self._payment(campus_id, accounting_payment_id)
        values = self._entry_changes(campus_id, changes, date_field="payment_date")
        if values:
            self._payments.update(
                accounting_payment_id=existing.accounting_payment_id, campus_id=existing.campus_id, changes=values
            )
        return self._payment(campus_id, existing.accounting_payment_id)

    def delete_payment(self, *, campus_id: int, accounting_payment_id: int) -> None:
        existing = self._payment(campus_id, accounting_payment_id)
        self._payments.delete(accounting_payment_id=existing.accounting_payment_id, campus_id=existing.campus_id)

    def _entry_changes(self, campus_id: int, changes: dict[str, Any], *, date_field: str) -> dict[str, Any]:
        values: dict[str, Any] = {}
        if "title" in changes:
            values["title"] = require_non_empty(changes["title"], "Title")
        if "amount" in changes:
            values["amount"] = to_money(require_positive(changes["amount"], "Amount"))
        if date_field in changes:
            when = optional_date(changes[date_field], date_field)
            if not when:
                raise ValidationError(f"{date_field} is required")
            values[date_field] = when
        if "category_id" in changes:
            if changes["category_id"]:
                self._category(campus_id, changes["category_id"])
            values["category_id"] = int(changes["category_id"]) if changes["category_id"] else None
        for key in ("comments", "file_attached"):
            if key in changes:
                values[key] = optional_text(changes[key])
        if "academic_year" in changes:
            values["academic_year"] = require_non_empty(changes["academic_year"], "Academic year")
        return values

    # -------- Reports --------
    def totals(
        self,
        *,
        campus_id: int,
        academic_year: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> dict:
        _check_range(start, end)
        academic_year = require_non_empty(academic_year, "Academic year")
        incomes = to_money(self._incomes.total(campus_id=int(campus_id), academic_year=academic_year, start=start, end=end))
        student = to_money(self._ledger.total(campus_id=int(campus_id), academic_year=academic_year, start=start, end=end))
        outgoing = self._payments.totals(campus_id=int(campus_id), academic_year=academic_year, start=start, end=end)
        expenses = to_money(outgoing.get("expenses", ZERO))
        staff = to_money(outgoing.get("staff_payments", ZERO))
        return {
            "total_incomes": incomes,
            "total_student_payments": student,
            "total_expenses": expenses,
            "total_staff_payments": staff,
            "balance": incomes - expenses,
            "general_balance": incomes + student - expenses - staff,
        }

    def daily_transactions(self, *, campus_id: int, academic_year: str, day: date) -> dict:
        incomes = self.list_incomes(campus_id=campus_id, academic_year=academic_year, start=day, end=day)
        expenses = self.list_payments(campus_id=campus_id, academic_year=academic_year, start=day, end=day)
        staff = self.list_payments(
            campus_id=campus_id, academic_year=academic_year, staff_payments=True, start=day, end=day
        )
        student = self._ledger.list_on(campus_id=int(campus_id), day=day)
        return {
            "date": day,
            "incomes": list(incomes),
            "expenses": list(expenses),
            "staff_payments": list(staff),
            "student_payments": list(student),
            "totals": self.totals(campus_id=campus_id, academic_year=academic_year, start=day, end=day),
        }

    def staff_balances(
        self,
        *,
        campus_id: int,
        academic_year: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[dict]:
        _check_range(start, end)
        return self._payments.staff_balances(
            campus_id=int(campus_id),
            academic_year=require_non_empty(academic_year, "Academic year"),
            start=start,
            end=end,
        )


class PayeeService:
    def __init__(self, payees: PayeeRepository, payments: PayeePaymentRepository):
        self._payees = payees
        self._payments = payments

    def list(self, *, school_id: int) -> Sequence[Payee]:
        return self._payees.list_active(school_id=int(school_id))

    def get(self, *, school_id: int, payee_id: int) -> Payee:
        payee = self._payees.get(payee_id=int(payee_id), school_id=int(school_id))
        if not payee:
            raise NotFoundError("Payee not found")
        return payee

    @staticmethod
    def _fields(data: dict[str, Any]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for key in PAYEE_FIELDS:
            if key in data:
                values[key] = optional_text(data[key])
        if "name" in values and not values["name"]:
            raise ValidationError("Payee name is required")
        return values

    def create(self, *, school_id: int, data: dict[str, Any]) -> int:
        values = self._fields(data)
        if not values.get("name"):
            raise ValidationError("Payee name is required")
        payee_id = self._payees.create(school_id=int(school_id), values=values)
        logger.info("Payee %s created for school %s", payee_id, school_id)
        return payee_id

    def update(self, *, school_id: int, payee_id: int, changes: dict[str, Any]) -> Payee:
        existing = self.get(school_id=school_id, payee_id=payee_id)
        values = self._fields(changes)
        if "is_active" in changes:
            values["is_active"] = int(bool(changes["is_active"]))
        if values:
            self._payees.update(payee_id=existing.payee_id, school_id=existing.school_id, changes=values)
        return self.get(school_id=school_id, payee_id=existing.payee_id)

    def delete(self, *, school_id: int, payee_id: int) -> None:
        existing = self.get(school_id=school_id, payee_id=payee_id)
        self._payees.update(payee_id=existing.payee_id, school_id=existing.school_id, changes={"is_active": 0})

    def list_payments(self, *, school_id: int, payee_id: int) -> Sequence[PayeePayment]:
        payee = self.get(school_id=school_id, payee_id=payee_id)
        return self._payments.list_for_payee(payee_id=payee.payee_id)

    def create_payment(
        self,
        *,
        school_id: int,
        payee_id: int,
        amount: Any,
        payment_date: Any,
        academic_year_id: Optional[int] = None,
        description: Optional[str] = None,
        reference_number: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> int:
        payee = self.get(school_id=school_id, payee_id=payee_id)
        when = optional_date(payment_date, "payment_date")
        if not when:
            raise ValidationError("payment_date is required")
        return self._payments.create(
            payee_id=payee.payee_id,
            academic_year_id=int(academic_year_id) if academic_year_id else None,
            amount=to_money(require_positive(amount, "Amount")),
            payment_date=when,
            description=optional_text(description),
            reference_number=optional_text(reference_number),
            created_by=created_by,
        )

    def delete_payment(self, *, school_id: int, payee_payment_id: int) -> None:
        payment = self._payments.get(int(payee_payment_id))
        if not payment or not self._payees.get(payee_id=payment.payee_id, school_id=int(school_id)):
            raise NotFoundError("Payee payment not found")
        self._payments.delete(payee_payment_id=payment.payee_payment_id)
