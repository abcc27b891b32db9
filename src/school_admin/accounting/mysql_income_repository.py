from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import add_date_range, build_where, db_cursor, fetchall, fetchone, set_clause
from .model import Income
from .repository import IncomeRepository

_SELECT = """
    SELECT i.income_id, i.campus_id, i.academic_year, i.title, i.category_id, i.amount, i.income_date,
           i.comments, i.file_attached, i.created_by, i.created_at, c.name AS category_name
    FROM incomes i
    LEFT JOIN accounting_categories c ON c.category_id = i.category_id
"""

_UPDATABLE = {"title", "category_id", "amount", "income_date", "comments", "file_attached", "academic_year"}


def _row_to_income(r: dict) -> Income:
    return Income(
        income_id=int(r["income_id"]),
        campus_id=int(r["campus_id"]),
        academic_year=r["academic_year"],
        title=r["title"],
        category_id=r.get("category_id"),
        amount=Decimal(r["amount"]),
        income_date=r["income_date"],
        comments=r.get("comments"),
        file_attached=r.get("file_attached"),
        created_by=r.get("created_by"),
        created_at=r.get("created_at"),
        category_name=r.get("category_name"),
    )


class MySQLIncomeRepository(IncomeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(
        self,
        *,
        campus_id: int,
        academic_year: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Income]:
        clauses = ["i.campus_id=%s", "i.academic_year=%s"]
        params: list[object] = [int(campus_id), academic_year]
        add_date_range(clauses, params, "i.income_date", start, end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {build_where(clauses)} ORDER BY i.income_date DESC, i.income_id DESC",
                tuple(params),
            )
            return [_row_to_income(r) for r in fetchall(cur)]

    def get(self, *, income_id: int, campus_id: int) -> Optional[Income]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE i.income_id=%s AND i.campus_id=%s", (int(income_id), int(campus_id)))
            r = fetchone(cur)
            return _row_to_income(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO incomes(
                    campus_id, academic_year, title, category_id, amount, income_date,
                    comments, file_attached, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(campus_id),
                    academic_year,
                    title,
                    category_id,
                    amount,
                    income_date,
                    comments,
                    file_attached,
                    created_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, *, income_id: int, campus_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE incomes SET {sets} WHERE income_id=%s AND campus_id=%s",
                tuple(params + [int(income_id), int(campus_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, income_id: int, campus_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM incomes WHERE income_id=%s AND campus_id=%s", (int(income_id), int(campus_id)))
            return cur.rowcount > 0

    def total(self, *, campus_id: int, academic_year: str, start: Optional[date], end: Optional[date]) -> Decimal:
        clauses = ["campus_id=%s", "academic_year=%s"]
        params: list[object] = [int(campus_id), academic_year]
        add_date_range(clauses, params, "income_date", start, end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COALESCE(SUM(amount), 0) AS total FROM incomes WHERE {build_where(clauses)}",
                tuple(params),
            )
            return Decimal((fetchone(cur) or {}).get("total") or 0)
