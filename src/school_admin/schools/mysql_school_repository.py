from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, decode_json, fetchall, fetchone
from .model import School
from .repository import SchoolRepository


def _row_to_school(r: dict) -> School:
    settings = decode_json(r.get("settings"), column="schools.settings")
    return School(
        school_id=int(r["school_id"]),
        name=r["name"],
        parent_school_id=int(r["parent_school_id"]) if r.get("parent_school_id") else None,
        is_active=bool(r["is_active"]),
        settings=settings if isinstance(settings, dict) else {},
    )


class MySQLSchoolRepository(SchoolRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, school_id: int) -> Optional[School]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT school_id, name, parent_school_id, is_active, settings FROM schools WHERE school_id=%s",
                (int(school_id),),
            )
            r = fetchone(cur)
            return _row_to_school(r) if r else None

    def list_active(self) -> Sequence[School]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT school_id, name, parent_school_id, is_active, settings
                FROM schools
                WHERE is_active=1
                ORDER BY school_id
                """
            )
            return [_row_to_school(r) for r in fetchall(cur)]

    def list_campus_ids(self, school_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT school_id FROM schools WHERE parent_school_id=%s AND is_active=1 ORDER BY school_id",
                (int(school_id),),
            )
            return [int(school_id)] + [int(r["school_id"]) for r in fetchall(cur)]
