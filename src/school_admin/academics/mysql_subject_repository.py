from __future__ import annotations

from typing import Any, Optional, Sequence

from ..core.enums import SubjectType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone, set_clause
from .model import Subject
from .repository import SubjectRepository

_SELECT = """
    SELECT sub.subject_id, sub.school_id, sub.grade_level_id, sub.name, sub.code, sub.subject_type, sub.is_active,
           gl.name AS grade_name
    FROM subjects sub
    JOIN grade_levels gl ON gl.grade_level_id = sub.grade_level_id
"""

_UPDATABLE = {"name", "code", "subject_type", "grade_level_id", "is_active"}


def _row_to_subject(r: dict) -> Subject:
    return Subject(
        subject_id=int(r["subject_id"]),
        school_id=int(r["school_id"]),
        grade_level_id=int(r["grade_level_id"]),
        name=r["name"],
        code=r.get("code"),
        subject_type=SubjectType(r["subject_type"]),
        is_active=bool(r["is_active"]),
        grade_name=r.get("grade_name"),
    )


class MySQLSubjectRepository(SubjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(self, *, school_id: int, grade_level_id: Optional[int] = None) -> Sequence[Subject]:
        clauses = ["sub.school_id=%s"]
        params: list[object] = [int(school_id)]
        if grade_level_id is not None:
            clauses.append("sub.grade_level_id=%s")
            params.append(int(grade_level_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {build_where(clauses)} ORDER BY gl.order_index, sub.name",
                tuple(params),
            )
            return [_row_to_subject(r) for r in fetchall(cur)]

    def get(self, *, subject_id: int, school_id: int) -> Optional[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE sub.subject_id=%s AND sub.school_id=%s",
                (int(subject_id), int(school_id)),
            )
            r = fetchone(cur)
            return _row_to_subject(r) if r else None

    def count_for_grade(self, *, grade_level_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM subjects WHERE grade_level_id=%s", (int(grade_level_id),))
            return int((fetchone(cur) or {}).get("n") or 0)

    def create(
        self,
        *,
        school_id: int,
        grade_level_id: int,
        name: str,
        code: Optional[str],
        subject_type: str,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO subjects(school_id, grade_level_id, name, code, subject_type) VALUES(%s,%s,%s,%s,%s)",
                (int(school_id), int(grade_level_id), name, code, subject_type),
            )
            return int(cur.lastrowid)

    def update(self, *, subject_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE subjects SET {sets} WHERE subject_id=%s AND school_id=%s",
                tuple(params + [int(subject_id), int(school_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, subject_id: int, school_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM subjects WHERE subject_id=%s AND school_id=%s", (int(subject_id), int(school_id)))
            return cur.rowcount > 0
