from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, set_clause
from .model import GradeLevel
from .repository import GradeLevelRepository

_SELECT = """
    SELECT gl.grade_level_id, gl.school_id, gl.name, gl.order_index, gl.base_fee, gl.is_active,
           (SELECT COUNT(*) FROM sections s WHERE s.grade_level_id = gl.grade_level_id) AS section_count,
           (SELECT COUNT(*) FROM subjects sub WHERE sub.grade_level_id = gl.grade_level_id) AS subject_count,
           (SELECT COUNT(*) FROM students st
             WHERE st.grade_level_id = gl.grade_level_id AND st.is_active = 1) AS student_count
    FROM grade_levels gl
"""

_UPDATABLE = {"name", "order_index", "base_fee", "is_active"}


def _row_to_grade(r: dict) -> GradeLevel:
    return GradeLevel(
        grade_level_id=int(r["grade_level_id"]),
        school_id=int(r["school_id"]),
        name=r["name"],
        order_index=int(r["order_index"]),
        base_fee=Decimal(r["base_fee"]),
        is_active=bool(r["is_active"]),
        section_count=int(r.get("section_count") or 0),
        subject_count=int(r.get("subject_count") or 0),
        student_count=int(r.get("student_count") or 0),
    )


class MySQLGradeLevelRepository(GradeLevelRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_with_stats(self, *, school_id: int, include_inactive: bool = False) -> Sequence[GradeLevel]:
        where = "gl.school_id=%s" if include_inactive else "gl.school_id=%s AND gl.is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE {where} ORDER BY gl.order_index, gl.name", (int(school_id),))
            return [_row_to_grade(r) for r in fetchall(cur)]

    def get(self, *, grade_level_id: int, school_id: int) -> Optional[GradeLevel]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE gl.grade_level_id=%s AND gl.school_id=%s",
                (int(grade_level_id), int(school_id)),
            )
            r = fetchone(cur)
            return _row_to_grade(r) if r else None

    def create(self, *, school_id: int, name: str, order_index: int, base_fee: Decimal) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO grade_levels(school_id, name, order_index, base_fee) VALUES(%s,%s,%s,%s)",
                (int(school_id), name, int(order_index), base_fee),
            )
            return int(cur.lastrowid)

    def update(self, *, grade_level_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE grade_levels SET {sets} WHERE grade_level_id=%s AND school_id=%s",
                tuple(params + [int(grade_level_id), int(school_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, grade_level_id: int, school_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM grade_levels WHERE grade_level_id=%s AND school_id=%s",
                (int(grade_level_id), int(school_id)),
            )
            return cur.rowcount > 0
