from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Sequence

from ..core.enums import ScaleType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, set_clause
from .model import GradingScale, NewScaleGrade, ScaleGrade
from .repository import GradingScaleRepository, ScaleGradeRepository

_SCALE_COLUMNS = "grading_scale_id, school_id, campus_id, title, scale_type, comment, is_default, sort_order"
_GRADE_COLUMNS = "grade_id, grading_scale_id, title, gpa_value, break_off, comment, sort_order, is_active"

_SCALE_UPDATABLE = {"title", "scale_type", "comment", "is_default", "sort_order", "campus_id"}
_GRADE_UPDATABLE = {"title", "gpa_value", "break_off", "comment", "sort_order", "is_active"}


def _row_to_grade(r: dict) -> ScaleGrade:
    return ScaleGrade(
        grade_id=int(r["grade_id"]),
        grading_scale_id=int(r["grading_scale_id"]),
        title=r["title"],
        gpa_value=Decimal(r["gpa_value"]),
        break_off=Decimal(r["break_off"]),
        comment=r.get("comment"),
        sort_order=int(r["sort_order"]),
        is_active=bool(r["is_active"]),
    )


def _row_to_scale(r: dict, grades: Sequence[ScaleGrade]) -> GradingScale:
    return GradingScale(
        grading_scale_id=int(r["grading_scale_id"]),
        school_id=int(r["school_id"]),
        campus_id=r.get("campus_id"),
        title=r["title"],
        scale_type=ScaleType(r["scale_type"]),
        comment=r.get("comment"),
        is_default=bool(r["is_default"]),
        sort_order=int(r["sort_order"]),
        grades=tuple(grades),
    )


class MySQLGradingScaleRepository(GradingScaleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _with_grades(self, cur, rows: list[dict]) -> list[GradingScale]:
        if not rows:
            return []
        ids = [int(r["grading_scale_id"]) for r in rows]
        placeholders = ",".join(["%s"] * len(ids))
        cur.execute(
            f"""
            SELECT {_GRADE_COLUMNS} FROM grading_scale_grades
            WHERE grading_scale_id IN ({placeholders})
            ORDER BY sort_order, break_off DESC
            """,
            tuple(ids),
        )
        by_scale: dict[int, list[ScaleGrade]] = {i: [] for i in ids}
        for g in fetchall(cur):
            grade = _row_to_grade(g)
            by_scale[grade.grading_scale_id].append(grade)
        return [_row_to_scale(r, by_scale[int(r["grading_scale_id"])]) for r in rows]

    def list_for_school(self, *, school_id: int, campus_id: Optional[int] = None) -> Sequence[GradingScale]:
        sql = f"SELECT {_SCALE_COLUMNS} FROM grading_scales WHERE school_id=%s"
        params: list[object] = [int(school_id)]
        if campus_id is not None:
            sql += " AND (campus_id=%s OR campus_id IS NULL)"
            params.append(int(campus_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY sort_order, title", tuple(params))
            return self._with_grades(cur, fetchall(cur))

    def get(self, *, grading_scale_id: int, school_id: int) -> Optional[GradingScale]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SCALE_COLUMNS} FROM grading_scales WHERE grading_scale_id=%s AND school_id=%s",
                (int(grading_scale_id), int(school_id)),
            )
            r = fetchone(cur)
            return self._with_grades(cur, [r])[0] if r else None

    def get_default(self, *, school_id: int) -> Optional[GradingScale]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SCALE_COLUMNS} FROM grading_scales WHERE school_id=%s AND is_default=1 LIMIT 1",
                (int(school_id),),
            )
            r = fetchone(cur)
            return self._with_grades(cur, [r])[0] if r else None

    def clear_default(self, *, school_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE grading_scales SET is_default=0 WHERE school_id=%s AND is_default=1", (int(school_id),))

    def create(
        self,
        *,
        school_id: int,
        campus_id: Optional[int],
        title: str,
        scale_type: ScaleType,
        comment: Optional[str],
        is_default: bool,
        sort_order: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO grading_scales(school_id, campus_id, title, scale_type, comment, is_default, sort_order)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(school_id), campus_id, title, scale_type.value, comment, int(is_default), int(sort_order)),
            )
            return int(cur.lastrowid)

    def update(self, *, grading_scale_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        values = dict(changes)
        if isinstance(values.get("scale_type"), ScaleType):
            values["scale_type"] = values["scale_type"].value
        sets, params = set_clause(values, _SCALE_UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE grading_scales SET {sets} WHERE grading_scale_id=%s AND school_id=%s",
                tuple(params + [int(grading_scale_id), int(school_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, grading_scale_id: int, school_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM grading_scales WHERE grading_scale_id=%s AND school_id=%s",
                (int(grading_scale_id), int(school_id)),
            )
            return cur.rowcount > 0


class MySQLScaleGradeRepository(ScaleGradeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_scale(self, *, grading_scale_id: int, active_only: bool = False) -> Sequence[ScaleGrade]:
        where = "grading_scale_id=%s AND is_active=1" if active_only else "grading_scale_id=%s"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_GRADE_COLUMNS} FROM grading_scale_grades WHERE {where} ORDER BY sort_order, break_off DESC",
                (int(grading_scale_id),),
            )
            return [_row_to_grade(r) for r in fetchall(cur)]

    def get(self, grade_id: int) -> Optional[ScaleGrade]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_GRADE_COLUMNS} FROM grading_scale_grades WHERE grade_id=%s", (int(grade_id),))
            r = fetchone(cur)
            return _row_to_grade(r) if r else None

    def create_many(self, *, grading_scale_id: int, grades: Sequence[NewScaleGrade]) -> list[int]:
        ids: list[int] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for g in grades:
                cur.execute(
                    """
                    INSERT INTO grading_scale_grades(grading_scale_id, title, gpa_value, break_off, comment, sort_order)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (int(grading_scale_id), g.title, g.gpa_value, g.break_off, g.comment, int(g.sort_order)),
                )
                ids.append(int(cur.lastrowid))
        return ids

    def update(self, *, grade_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, _GRADE_UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE grading_scale_grades SET {sets} WHERE grade_id=%s",
                tuple(params + [int(grade_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, grade_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM grading_scale_grades WHERE grade_id=%s", (int(grade_id),))
            return cur.rowcount > 0

    def best_match(self, *, grading_scale_id: int, percentage: Decimal) -> Optional[ScaleGrade]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_GRADE_COLUMNS} FROM grading_scale_grades
                WHERE grading_scale_id=%s AND is_active=1 AND break_off <= %s
                ORDER BY break_off DESC
                LIMIT 1
                """,
                (int(grading_scale_id), percentage),
            )
            r = fetchone(cur)
            return _row_to_grade(r) if r else None
