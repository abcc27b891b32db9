from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from ..core.enums import LoanStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone, set_clause
from .model import Fine, Loan
from .repository import FineRepository, LoanRepository

_LOAN_SELECT = """
    SELECT l.loan_id, l.school_id, l.copy_id, l.student_id, l.issue_date, l.due_date, l.return_date, l.status,
           l.fine_amount, l.collected_amount, l.notes, l.issued_by, l.returned_by,
           c.book_id, c.accession_number, c.price AS copy_price, b.title AS book_title,
           CONCAT(s.first_name, ' ', s.last_name) AS student_name
    FROM library_loans l
    JOIN library_book_copies c ON c.copy_id = l.copy_id
    JOIN library_books b ON b.book_id = c.book_id
    JOIN students s ON s.student_id = l.student_id
"""

_FINE_SELECT = """
    SELECT f.fine_id, f.school_id, f.loan_id, f.student_id, f.amount, f.reason, f.is_paid, f.paid_at, f.created_at,
           CONCAT(s.first_name, ' ', s.last_name) AS student_name, b.title AS book_title
    FROM library_fines f
    JOIN students s ON s.student_id = f.student_id
    LEFT JOIN library_loans l ON l.loan_id = f.loan_id
    LEFT JOIN library_book_copies c ON c.copy_id = l.copy_id
    LEFT JOIN library_books b ON b.book_id = c.book_id
"""

_LOAN_UPDATABLE = {"return_date", "status", "fine_amount", "collected_amount", "notes", "returned_by"}


def _row_to_loan(r: dict) -> Loan:
    return Loan(
        loan_id=int(r["loan_id"]),
        school_id=int(r["school_id"]),
        copy_id=int(r["copy_id"]),
        student_id=int(r["student_id"]),
        issue_date=r["issue_date"],
        due_date=r["due_date"],
        return_date=r.get("return_date"),
        status=LoanStatus(r["status"]),
        fine_amount=Decimal(r["fine_amount"]),
        collected_amount=Decimal(r["collected_amount"]),
        notes=r.get("notes"),
        issued_by=r.get("issued_by"),
        returned_by=r.get("returned_by"),
        book_id=r.get("book_id"),
        book_title=r.get("book_title"),
        accession_number=r.get("accession_number"),
        copy_price=Decimal(r["copy_price"]) if r.get("copy_price") is not None else None,
        student_name=r.get("student_name"),
    )


def _row_to_fine(r: dict) -> Fine:
    return Fine(
        fine_id=int(r["fine_id"]),
        school_id=int(r["school_id"]),
        loan_id=int(r["loan_id"]),
        student_id=int(r["student_id"]),
        amount=Decimal(r["amount"]),
        reason=r["reason"],
        is_paid=bool(r["is_paid"]),
        paid_at=r.get("paid_at"),
        created_at=r.get("created_at"),
        student_name=r.get("student_name"),
        book_title=r.get("book_title"),
    )


class MySQLLoanRepository(LoanRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, loan_id: int, school_id: int) -> Optional[Loan]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_LOAN_SELECT} WHERE l.loan_id=%s AND l.school_id=%s", (int(loan_id), int(school_id)))
            r = fetchone(cur)
            return _row_to_loan(r) if r else None

    def create(
        self,
        *,
        school_id: int,
        copy_id: int,
        student_id: int,
        issue_date: date,
        due_date: date,
        notes: Optional[str],
        issued_by: Optional[int],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO library_loans(school_id, copy_id, student_id, issue_date, due_date, status, notes, issued_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(school_id),
                    int(copy_id),
                    int(student_id),
                    issue_date,
                    due_date,
                    LoanStatus.ACTIVE.value,
                    notes,
                    issued_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, *, loan_id: int, changes: dict[str, Any]) -> bool:
        values = dict(changes)
        if isinstance(values.get("status"), LoanStatus):
            values["status"] = values["status"].value
        sets, params = set_clause(values, _LOAN_UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE library_loans SET {sets} WHERE loan_id=%s", tuple(params + [int(loan_id)]))
            return cur.rowcount > 0

    def count_active(self, *, student_id: int, school_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM library_loans WHERE student_id=%s AND school_id=%s AND status=%s",
                (int(student_id), int(school_id), LoanStatus.ACTIVE.value),
            )
            return int((fetchone(cur) or {}).get("n") or 0)

    def count_overdue(self, *, student_id: int, school_id: int, today: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n FROM library_loans
                WHERE student_id=%s AND school_id=%s AND status=%s AND due_date < %s
                """,
                (int(student_id), int(school_id), LoanStatus.ACTIVE.value, today),
            )
            return int((fetchone(cur) or {}).get("n") or 0)

    def list(
        self,
        *,
        school_id: int,
        status: Optional[LoanStatus] = None,
        student_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[Loan]:
        clauses = ["l.school_id=%s"]
        params: list[object] = [int(school_id)]
        if status is not None:
            clauses.append("l.status=%s")
            params.append(LoanStatus(status).value)
        if student_id is not None:
            clauses.append("l.student_id=%s")
            params.append(int(student_id))
        if search:
            clauses.append(
                "(b.title LIKE %s OR c.accession_number LIKE %s OR CONCAT(s.first_name, ' ', s.last_name) LIKE %s)"
            )
            params.extend([f"%{search}%"] * 3)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_LOAN_SELECT} WHERE {build_where(clauses)} ORDER BY l.issue_date DESC, l.loan_id DESC",
                tuple(params),
            )
            return [_row_to_loan(r) for r in fetchall(cur)]

    def total_collected(self, *, school_id: int) -> Decimal:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COALESCE(SUM(collected_amount), 0) AS total FROM library_loans WHERE school_id=%s",
                (int(school_id),),
            )
            return Decimal((fetchone(cur) or {}).get("total") or 0)


class MySQLFineRepository(FineRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, school_id: int, loan_id: int, student_id: int, amount: Decimal, reason: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO library_fines(school_id, loan_id, student_id, amount, reason) VALUES(%s,%s,%s,%s,%s)",
                (int(school_id), int(loan_id), int(student_id), amount, reason),
            )
            return int(cur.lastrowid)

    def get(self, *, fine_id: int, school_id: int) -> Optional[Fine]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_FINE_SELECT} WHERE f.fine_id=%s AND f.school_id=%s", (int(fine_id), int(school_id)))
            r = fetchone(cur)
            return _row_to_fine(r) if r else None

    def list_unpaid(self, *, student_id: int, school_id: int) -> Sequence[Fine]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_FINE_SELECT} WHERE f.student_id=%s AND f.school_id=%s AND f.is_paid=0 ORDER BY f.created_at",
                (int(student_id), int(school_id)),
            )
            return [_row_to_fine(r) for r in fetchall(cur)]

    def mark_paid(self, *, fine_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE library_fines SET is_paid=1, paid_at=NOW() WHERE fine_id=%s AND is_paid=0", (int(fine_id),))
            return cur.rowcount > 0

    def totals(self, *, school_id: int) -> dict:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n,
                       COALESCE(SUM(CASE WHEN is_paid=1 THEN amount ELSE 0 END), 0) AS paid,
                       COALESCE(SUM(CASE WHEN is_paid=0 THEN amount ELSE 0 END), 0) AS unpaid
                FROM library_fines
                WHERE school_id=%s
                """,
                (int(school_id),),
            )
            r = fetchone(cur) or {}
            return {
                "count": int(r.get("n") or 0),
                "paid": Decimal(r.get("paid") or 0),
                "unpaid": Decimal(r.get("unpaid") or 0),
            }

    def recent(self, *, school_id: int, limit: int = 20) -> Sequence[Fine]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_FINE_SELECT} WHERE f.school_id=%s ORDER BY f.created_at DESC, f.fine_id DESC LIMIT %s",
                (int(school_id), int(limit)),
            )
            return [_row_to_fine(r) for r in fetchall(cur)]
