from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone, set_clause
from .model import StudentFeeOverride
from .repository import OverrideRepository

_SELECT = """
    SELECT o.override_id, o.school_id, o.student_id, o.fee_category_id, o.academic_year,
           o.override_amount, o.reason, o.is_active, o.created_by, o.created_at,
           fc.name AS category_name,
           CONCAT(s.first_name, ' ', s.last_name) AS student_name
    FROM student_fee_overrides o
    JOIN fee_categories fc ON fc.fee_category_id = o.fee_category_id
    JOIN students s ON s.student_id = o.student_id
"""

_UPDATABLE = {"override_amount", "reason", "is_active"}


def _row_to_override(r: dict) -> StudentFeeOverride:
    return StudentFeeOverride(
        override_id=int(r["override_id"]),
        school_id=int(r["school_id"]),
        student_id=int(r["student_id"]),
        fee_category_id=int(r["fee_category_id"]),
        academic_year=r["academic_year"],
        override_amount=Decimal(r["override_amount"]),
        reason=r.get("reason"),
        is_active=bool(r["is_active"]),
        created_by=r.get("created_by"),
        created_at=r.get("created_at"),
        category_name=r.get("category_name"),
        student_name=r.get("student_name"),
    )


class MySQLOverrideRepository(OverrideRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO student_fee_overrides(
                    school_id, student_id, fee_category_id, academic_year, override_amount, reason, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(school_id),
                    int(student_id),
                    int(fee_category_id),
                    academic_year,
                    override_amount,
                    reason,
                    created_by,
                ),
            )
            return int(cur.lastrowid)

    def get(self, override_id: int) -> Optional[StudentFeeOverride]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE o.override_id=%s", (int(override_id),))
            r = fetchone(cur)
            return _row_to_override(r) if r else None

    def find_active(self, *, student_id: int, fee_category_id: int, academic_year: str) -> Optional[StudentFeeOverride]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_SELECT}
                WHERE o.student_id=%s AND o.fee_category_id=%s AND o.academic_year=%s AND o.is_active=1
                LIMIT 1
                """,
                (int(student_id), int(fee_category_id), academic_year),
            )
            r = fetchone(cur)
            return _row_to_override(r) if r else None

    def list_for_student(self, *, student_id: int, academic_year: Optional[str] = None) -> Sequence[StudentFeeOverride]:
        clauses = ["o.student_id=%s"]
        params: list[object] = [int(student_id)]
        if academic_year:
            clauses.append("o.academic_year=%s")
            params.append(academic_year)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {build_where(clauses)} ORDER BY o.academic_year DESC, fc.display_order",
                tuple(params),
            )
            return [_row_to_override(r) for r in fetchall(cur)]

    def active_amounts(self, *, student_id: int, academic_year: str) -> dict[int, Decimal]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT fee_category_id, override_amount
                FROM student_fee_overrides
                WHERE student_id=%s AND academic_year=%s AND is_active=1
                """,
                (int(student_id), academic_year),
            )
            return {int(r["fee_category_id"]): Decimal(r["override_amount"]) for r in fetchall(cur)}

    def update(self, *, override_id: int, changes: dict[str, Any]) -> bool:
        values = dict(changes)
        if "is_active" in values:
            values["is_active"] = int(bool(values["is_active"]))
        sets, params = set_clause(values, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE student_fee_overrides SET {sets} WHERE override_id=%s",
                tuple(params + [int(override_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, override_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM student_fee_overrides WHERE override_id=%s", (int(override_id),))
            return cur.rowcount > 0

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
        clauses = ["o.school_id=%s"]
        params: list[object] = [int(school_id)]
        if academic_year:
            clauses.append("o.academic_year=%s")
            params.append(academic_year)
        if fee_category_id is not None:
            clauses.append("o.fee_category_id=%s")
            params.append(int(fee_category_id))
        if is_active is not None:
            clauses.append("o.is_active=%s")
            params.append(int(is_active))

        where = build_where(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM student_fee_overrides o WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n") or 0)

            cur.execute(
                f"{_SELECT} WHERE {where} ORDER BY o.created_at DESC, o.override_id DESC LIMIT %s OFFSET %s",
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_override(r) for r in fetchall(cur)], total
