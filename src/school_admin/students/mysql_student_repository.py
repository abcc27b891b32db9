from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import Student
from .repository import StudentRepository

_COLUMNS = "student_id, school_id, student_number, first_name, last_name, grade_level_id, section_id, is_active"


def _row_to_student(r: dict) -> Student:
    return Student(
        student_id=int(r["student_id"]),
        school_id=int(r["school_id"]),
        student_number=r["student_number"],
        first_name=r["first_name"],
        last_name=r["last_name"],
        grade_level_id=r.get("grade_level_id"),
        section_id=r.get("section_id"),
        is_active=bool(r["is_active"]),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE student_id=%s", (int(student_id),))
            r = fetchone(cur)
            return _row_to_student(r) if r else None

    def list_for_billing(
        self,
        *,
        school_id: int,
        grade_level_id: Optional[int] = None,
        section_id: Optional[int] = None,
    ) -> Sequence[Student]:
        clauses = ["school_id=%s", "is_active=1"]
        params: list[object] = [int(school_id)]
        if grade_level_id is not None:
            clauses.append("grade_level_id=%s")
            params.append(int(grade_level_id))
        if section_id is not None:
            clauses.append("section_id=%s")
            params.append(int(section_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM students WHERE {build_where(clauses)} ORDER BY student_id",
                tuple(params),
            )
            return [_row_to_student(r) for r in fetchall(cur)]

    def count_siblings(self, *, student_id: int, school_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(DISTINCT l2.student_id) AS n
                FROM parent_student_links l1
                JOIN parent_student_links l2 ON l2.parent_id = l1.parent_id AND l2.is_active = 1
                JOIN students s ON s.student_id = l2.student_id
                WHERE l1.student_id=%s AND l1.is_active=1 AND s.school_id=%s AND s.is_active=1
                """,
                (int(student_id), int(school_id)),
            )
            r = fetchone(cur)
            return max(int(r["n"] or 0) if r else 0, 1)
