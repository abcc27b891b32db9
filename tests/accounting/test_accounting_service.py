from __future__ import annotations

import dataclasses
from datetime import date
from decimal import Decimal
from typing import Any, Optional

import pytest

from school_admin.accounting.model import AccountingCategory, Payee, PayeePayment
from school_admin.accounting.service import AccountingService, PayeeService
from school_admin.core.enums import AccountingCategoryType
from school_admin.core.exceptions import NotFoundError, ValidationError

from tests.fees.fakes import directory


class InMemoryAccountingCategories:
    def __init__(self, *categories: AccountingCategory):
        self.rows = {c.category_id: c for c in categories}

    def list(self, *, school_id: int, category_type=None):
        return [
            c
            for c in self.rows.values()
            if c.school_id == school_id
            and (category_type is None or c.category_type in (category_type, AccountingCategoryType.COMMON))
        ]

    def get(self, *, category_id: int, school_id: int) -> Optional[AccountingCategory]:
        c = self.rows.get(category_id)
        return c if c and c.school_id == school_id else None


class InMemoryIncomes:
    def __init__(self):
        self.created: list[dict] = []

    def create(self, **kwargs) -> int:
        self.created.append(kwargs)
        return len(self.created)

    def total(self, *, campus_id: int, academic_year: str, start, end) -> Decimal:
        return sum(
            (i["amount"] for i in self.created if i["campus_id"] == campus_id and i["academic_year"] == academic_year),
            Decimal(0),
        )


class InMemoryAccountingPayments:
    def __init__(self):
        self.created: list[dict] = []

    def create(self, **kwargs) -> int:
        self.created.append(kwargs)
        return len(self.created)

    def totals(self, *, campus_id: int, academic_year: str, start, end) -> dict:
        out = {"expenses": Decimal(0), "staff_payments": Decimal(0)}
        for p in self.created:
            if p["campus_id"] == campus_id and p["academic_year"] == academic_year:
                out["staff_payments" if p["staff_id"] else "expenses"] += p["amount"]
        return out


class FixedLedger:
    def __init__(self, amount: str):
        self.amount = Decimal(amount)

    def total(self, *, campus_id: int, academic_year: str, start, end) -> Decimal:
        return self.amount


def _accounting(ledger="0"):
    categories = InMemoryAccountingCategories(
        AccountingCategory(category_id=1, school_id=1, name="Donations", category_type=AccountingCategoryType.INCOMES),
        AccountingCategory(category_id=2, school_id=1, name="Utilities", category_type=AccountingCategoryType.EXPENSES),
        AccountingCategory(category_id=3, school_id=1, name="Misc", category_type=AccountingCategoryType.COMMON),
    )
    incomes = InMemoryIncomes()
    payments = InMemoryAccountingPayments()
    service = AccountingService(categories, incomes, payments, FixedLedger(ledger), directory())
    return service, incomes, payments


def test_totals_and_general_balance():
    service, _, _ = _accounting(ledger="1000")
    service.create_income(campus_id=2, academic_year="2025-2026", title="Fair", amount="500", income_date="2025-09-01",
                          category_id=1)
    service.create_payment(campus_id=2, academic_year="2025-2026", title="Power", amount="200",
                           payment_date="2025-09-02", category_id=2)
    service.create_payment(campus_id=2, academic_year="2025-2026", title="Salary", amount="300",
                           payment_date="2025-09-03", staff_id=7)

    totals = service.totals(campus_id=2, academic_year="2025-2026")

    assert totals == {
        "total_incomes": Decimal("500.00"),
        "total_student_payments": Decimal("1000.00"),
        "total_expenses": Decimal("200.00"),
        "total_staff_payments": Decimal("300.00"),
        "balance": Decimal("300.00"),
        "general_balance": Decimal("1000.00"),
    }


def test_category_filter_includes_common_categories():
    service, _, _ = _accounting()

    names = [c.name for c in service.list_categories(school_id=2, category_type="expenses")]

    assert names == ["Utilities", "Misc"]


def test_income_validation():
    service, _, _ = _accounting()

    with pytest.raises(ValidationError):
        service.create_income(campus_id=1, academic_year="2025-2026", title="x", amount="10", income_date=None)
    with pytest.raises(ValidationError):
        service.create_income(campus_id=1, academic_year="2025-2026", title="x", amount="-1", income_date="2025-09-01")
    with pytest.raises(NotFoundError):
        service.create_income(campus_id=1, academic_year="2025-2026", title="x", amount="10",
                              income_date="2025-09-01", category_id=99)


def test_report_range_must_be_ordered():
    service, _, _ = _accounting()

    with pytest.raises(ValidationError):
        service.totals(campus_id=1, academic_year="2025-2026", start=date(2025, 9, 2), end=date(2025, 9, 1))


class InMemoryPayees:
    def __init__(self):
        self.rows: dict[int, Payee] = {}

    def list_active(self, *, school_id: int):
        return [p for p in self.rows.values() if p.school_id == school_id and p.is_active]

    def get(self, *, payee_id: int, school_id: int) -> Optional[Payee]:
        p = self.rows.get(payee_id)
        return p if p and p.school_id == school_id else None

    def create(self, *, school_id: int, values: dict[str, Any]) -> int:
        payee_id = len(self.rows) + 1
        self.rows[payee_id] = Payee(payee_id=payee_id, school_id=school_id, **values)
        return payee_id

    def update(self, *, payee_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        values = {k: bool(v) if k == "is_active" else v for k, v in changes.items()}
        self.rows[payee_id] = dataclasses.replace(self.rows[payee_id], **values)
        return True


class InMemoryPayeePayments:
    def __init__(self):
        self.rows: dict[int, PayeePayment] = {}

    def list_for_payee(self, *, payee_id: int):
        return [p for p in self.rows.values() if p.payee_id == payee_id]

    def get(self, payee_payment_id: int) -> Optional[PayeePayment]:
        return self.rows.get(payee_payment_id)

    def create(self, **kwargs) -> int:
        payment_id = len(self.rows) + 1
        self.rows[payment_id] = PayeePayment(payee_payment_id=payment_id, **kwargs)
        return payment_id

    def delete(self, *, payee_payment_id: int) -> bool:
        return self.rows.pop(payee_payment_id, None) is not None


def test_payee_lifecycle():
    payees = InMemoryPayees()
    payments = InMemoryPayeePayments()
    service = PayeeService(payees, payments)

    with pytest.raises(ValidationError):
        service.create(school_id=1, data={"email": "a@b.c"})

    payee_id = service.create(school_id=1, data={"name": " Acme Supplies ", "bank": "First Bank"})
    payment_id = service.create_payment(school_id=1, payee_id=payee_id, amount="99.999", payment_date="2025-09-01")

    assert payees.get(payee_id=payee_id, school_id=1).name == "Acme Supplies"
    assert payments.get(payment_id).amount == Decimal("100.00")
    with pytest.raises(NotFoundError):
        service.delete_payment(school_id=2, payee_payment_id=payment_id)

    service.delete(school_id=1, payee_id=payee_id)
    assert service.list(school_id=1) == []
