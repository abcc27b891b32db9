from __future__ import annotations

from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone, set_clause
from .model import Section
from .repository import SectionRepository

_SELECT = """
    SELECT s.section_id, s.school_id, s.grade_level_id, s.name, s.capacity, s.current_strength, s.is_active,
           gl.name AS grade_name
    FROM sections s
    JOIN grade_levels gl ON gl.grade_level_id = s.grade_level_id
"""

_UPDATABLE = {"name", "capacity", "grade_level_id", "is_active"}


def _row_to_section(r: dict) -> Section:
    return Section(
        section_id=int(r["section_id"]),
        school_id=int(r["school_id"]),
        grade_level_id=int(r["grade_level_id"]),
        name=r["name"],
        capacity=int(r["capacity"]),
        current_strength=int(r["current_strength"]),
        is_active=bool(r["is_active"]),
        grade_name=r.get("grade_name"),
    )


class MySQLSectionRepository(SectionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(self, *, school_id: int, grade_level_id: Optional[int] = None) -> Sequence[Section]:
        clauses = ["s.school_id=%s"]
        params: list[object] = [int(school_id)]
        if grade_level_id is not None:
            clauses.append("s.grade_level_id=%s")
            params.append(int(grade_level_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {build_where(clauses)} ORDER BY gl.order_index, s.name",
                tuple(params),
            )
            return [_row_to_section(r) for r in fetchall(cur)]

    def get(self, *, section_id: int, school_id: int) -> Optional[Section]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE s.section_id=%s AND s.school_id=%s", (int(section_id), int(school_id)))
            r = fetchone(cur)
            return _row_to_section(r) if r else None

    def count_for_grade(self, *, grade_level_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM sections WHERE grade_level_id=%s", (int(grade_level_id),))
            return int((fetchone(cur) or {}).get("n") or 0)

    def count_students(self, *, section_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM students WHERE section_id=%s AND is_active=1",
                (int(section_id),),
            )
            return int((fetchone(cur) or {}).get("n") or 0)

    def create(self, *, school_id: int, grade_level_id: int, name: str, capacity: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO sections(school_id, grade_level_id, name, capacity) VALUES(%s,%s,%s,%s)",
                (int(school_id), int(grade_level_id), name, int(capacity)),
            )
            return int(cur.lastrowid)

    def update(self, *, section_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE sections SET {sets} WHERE section_id=%s AND school_id=%s",
                tuple(params + [int(section_id), int(school_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, section_id: int, school_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM sections WHERE section_id=%s AND school_id=%s", (int(section_id), int(school_id)))
            return cur.rowcount > 0
