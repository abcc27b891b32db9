from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import add_date_range, build_where, db_cursor, fetchall, fetchone, set_clause
from .model import AccountingPayment
from .repository import AccountingPaymentRepository, StudentPaymentLedger

_SELECT = """
    SELECT p.accounting_payment_id, p.campus_id, p.academic_year, p.staff_id, p.title, p.category_id,
           p.amount, p.payment_date, p.comments, p.file_attached, p.created_by, p.created_at,
           c.name AS category_name, st.full_name AS staff_name
    FROM accounting_payments p
    LEFT JOIN accounting_categories c ON c.category_id = p.category_id
    LEFT JOIN staff st ON st.staff_id = p.staff_id
"""

_UPDATABLE = {"title", "category_id", "amount", "payment_date", "comments", "file_attached", "staff_id", "academic_year"}


def _row_to_payment(r: dict) -> AccountingPayment:
    return AccountingPayment(
        accounting_payment_id=int(r["accounting_payment_id"]),
        campus_id=int(r["campus_id"]),
        academic_year=r["academic_year"],
        staff_id=r.get("staff_id"),
        title=r["title"],
        category_id=r.get("category_id"),
        amount=Decimal(r["amount"]),
        payment_date=r["payment_date"],
        comments=r.get("comments"),
        file_attached=r.get("file_attached"),
        created_by=r.get("created_by"),
        created_at=r.get("created_at"),
        category_name=r.get("category_name"),
        staff_name=r.get("staff_name"),
    )


class MySQLAccountingPaymentRepository(AccountingPaymentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(
        self,
        *,
        campus_id: int,
        academic_year: str,
        staff_payments: bool,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[AccountingPayment]:
        clauses = [
            "p.campus_id=%s",
            "p.academic_year=%s",
            "p.staff_id IS NOT NULL" if staff_payments else "p.staff_id IS NULL",
        ]
        params: list[object] = [int(campus_id), academic_year]
        add_date_range(clauses, params, "p.payment_date", start, end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {build_where(clauses)} ORDER BY p.payment_date DESC, p.accounting_payment_id DESC",
                tuple(params),
            )
            return [_row_to_payment(r) for r in fetchall(cur)]

    def get(self, *, accounting_payment_id: int, campus_id: int) -> Optional[AccountingPayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE p.accounting_payment_id=%s AND p.campus_id=%s",
                (int(accounting_payment_id), int(campus_id)),
            )
            r = fetchone(cur)
            return _row_to_payment(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO accounting_payments(
                    campus_id, academic_year, staff_id, title, category_id, amount, payment_date,
                    comments, file_attached, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(campus_id),
                    academic_year,
                    staff_id,
                    title,
                    category_id,
                    amount,
                    payment_date,
                    comments,
                    file_attached,
                    created_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, *, accounting_payment_id: int, campus_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE accounting_payments SET {sets} WHERE accounting_payment_id=%s AND campus_id=%s",
                tuple(params + [int(accounting_payment_id), int(campus_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, accounting_payment_id: int, campus_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM accounting_payments WHERE accounting_payment_id=%s AND campus_id=%s",
                (int(accounting_payment_id), int(campus_id)),
            )
            return cur.rowcount > 0

    def totals(
        self, *, campus_id: int, academic_year: str, start: Optional[date], end: Optional[date]
    ) -> dict[str, Decimal]:
        clauses = ["campus_id=%s", "academic_year=%s"]
        params: list[object] = [int(campus_id), academic_year]
        add_date_range(clauses, params, "payment_date", start, end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COALESCE(SUM(CASE WHEN staff_id IS NULL THEN amount ELSE 0 END), 0) AS expenses,
                       COALESCE(SUM(CASE WHEN staff_id IS NOT NULL THEN amount ELSE 0 END), 0) AS staff_payments
                FROM accounting_payments
                WHERE {build_where(clauses)}
                """,
                tuple(params),
            )
            r = fetchone(cur) or {}
            return {
                "expenses": Decimal(r.get("expenses") or 0),
                "staff_payments": Decimal(r.get("staff_payments") or 0),
            }

    def staff_balances(
        self, *, campus_id: int, academic_year: str, start: Optional[date], end: Optional[date]
    ) -> Sequence[dict]:
        clauses = ["p.campus_id=%s", "p.academic_year=%s", "p.staff_id IS NOT NULL"]
        params: list[object] = [int(campus_id), academic_year]
        add_date_range(clauses, params, "p.payment_date", start, end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT p.staff_id, st.full_name AS staff_name,
                       COUNT(*) AS payment_count, COALESCE(SUM(p.amount), 0) AS total_paid
                FROM accounting_payments p
                LEFT JOIN staff st ON st.staff_id = p.staff_id
                WHERE {build_where(clauses)}
                GROUP BY p.staff_id, st.full_name
                ORDER BY st.full_name
                """,
                tuple(params),
            )
            return [
                {
                    "staff_id": int(r["staff_id"]),
                    "staff_name": r.get("staff_name"),
                    "payment_count": int(r["payment_count"]),
                    "total_paid": Decimal(r["total_paid"]),
                }
                for r in fetchall(cur)
            ]


class MySQLStudentPaymentLedger(StudentPaymentLedger):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def total(self, *, campus_id: int, academic_year: str, start: Optional[date], end: Optional[date]) -> Decimal:
        clauses = ["sf.school_id=%s", "sf.academic_year=%s"]
        params: list[object] = [int(campus_id), academic_year]
        add_date_range(clauses, params, "fp.payment_date", start, end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COALESCE(SUM(fp.amount), 0) AS total
                FROM fee_payments fp
                JOIN student_fees sf ON sf.student_fee_id = fp.student_fee_id
                WHERE {build_where(clauses)}
                """,
                tuple(params),
            )
            return Decimal((fetchone(cur) or {}).get("total") or 0)

    def list_on(self, *, campus_id: int, day: date) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT fp.payment_id, fp.amount, fp.payment_method, fp.receipt_number, sf.student_id,
                       CONCAT(s.first_name, ' ', s.last_name) AS student_name
                FROM fee_payments fp
                JOIN student_fees sf ON sf.student_fee_id = fp.student_fee_id
                JOIN students s ON s.student_id = sf.student_id
                WHERE sf.school_id=%s AND fp.payment_date=%s
                ORDER BY fp.payment_id
                """,
                (int(campus_id), day),
            )
            return [
                {
                    "payment_id": int(r["payment_id"]),
                    "student_id": int(r["student_id"]),
                    "student_name": r.get("student_name"),
                    "amount": Decimal(r["amount"]),
                    "payment_method": r.get("payment_method"),
                    "receipt_number": r.get("receipt_number"),
                }
                for r in fetchall(cur)
            ]
