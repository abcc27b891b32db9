from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, set_clause
from .model import AcademicYear
from .repository import AcademicYearRepository

_COLUMNS = "academic_year_id, school_id, name, start_date, end_date, is_current, is_next, is_active"

_UPDATABLE = {"name", "start_date", "end_date", "is_current", "is_next", "is_active"}


def _row_to_year(r: dict) -> AcademicYear:
    return AcademicYear(
        academic_year_id=int(r["academic_year_id"]),
        school_id=int(r["school_id"]),
        name=r["name"],
        start_date=r["start_date"],
        end_date=r["end_date"],
        is_current=bool(r["is_current"]),
        is_next=bool(r["is_next"]),
        is_active=bool(r["is_active"]),
    )


class MySQLAcademicYearRepository(AcademicYearRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self, *, school_id: int) -> Sequence[AcademicYear]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM academic_years WHERE school_id=%s AND is_active=1 ORDER BY start_date DESC",
                (int(school_id),),
            )
            return [_row_to_year(r) for r in fetchall(cur)]

    def get(self, *, academic_year_id: int, school_id: int) -> Optional[AcademicYear]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM academic_years WHERE academic_year_id=%s AND school_id=%s",
                (int(academic_year_id), int(school_id)),
            )
            r = fetchone(cur)
            return _row_to_year(r) if r else None

    def get_current(self, *, school_id: int) -> Optional[AcademicYear]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM academic_years
                WHERE school_id=%s AND is_current=1 AND is_active=1
                ORDER BY start_date DESC
                LIMIT 1
                """,
                (int(school_id),),
            )
            r = fetchone(cur)
            return _row_to_year(r) if r else None

    def clear_flags(self, *, school_id: int, is_current: bool, is_next: bool) -> None:
        flags = []
        if is_current:
            flags.append("is_current=0")
        if is_next:
            flags.append("is_next=0")
        if not flags:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE academic_years SET {', '.join(flags)} WHERE school_id=%s", (int(school_id),))

    def create(
        self,
        *,
        school_id: int,
        name: str,
        start_date: date,
        end_date: date,
        is_current: bool,
        is_next: bool,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO academic_years(school_id, name, start_date, end_date, is_current, is_next)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(school_id), name, start_date, end_date, int(is_current), int(is_next)),
            )
            return int(cur.lastrowid)

    def update(self, *, academic_year_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE academic_years SET {sets} WHERE academic_year_id=%s AND school_id=%s",
                tuple(params + [int(academic_year_id), int(school_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, academic_year_id: int, school_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM academic_years WHERE academic_year_id=%s AND school_id=%s",
                (int(academic_year_id), int(school_id)),
            )
            return cur.rowcount > 0
