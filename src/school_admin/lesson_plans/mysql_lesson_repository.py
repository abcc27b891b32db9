from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import add_date_range, build_where, db_cursor, fetchall, fetchone, set_clause
from .model import ITEM_TEXT_FIELDS, LESSON_TEXT_FIELDS, CoursePeriod, Lesson, LessonFile, LessonItem
from .repository import CoursePeriodRepository, LessonRepository

_LESSON_SELECT = """
    SELECT l.lesson_id, l.school_id, l.campus_id, l.course_period_id, l.teacher_id, l.academic_year_id, l.title,
           l.on_date, l.lesson_number, l.length_minutes, l.learning_objectives, l.evaluation, l.inclusiveness,
           l.is_published, l.created_by, cp.title AS course_period_title
    FROM lesson_plans l
    JOIN course_periods cp ON cp.course_period_id = l.course_period_id
"""

_ITEM_COLUMNS = "item_id, lesson_id, sort_order, time_minutes, " + ", ".join(ITEM_TEXT_FIELDS)
_FILE_COLUMNS = "file_id, lesson_id, file_name, file_url, file_type, file_size, uploaded_by, created_at"

_LESSON_COLUMNS = (
    "campus_id",
    "course_period_id",
    "teacher_id",
    "academic_year_id",
    "title",
    "on_date",
    "lesson_number",
    "length_minutes",
) + LESSON_TEXT_FIELDS + ("is_published", "created_by")

_LESSON_UPDATABLE = set(_LESSON_COLUMNS) - {"created_by"}


def _row_to_item(r: dict) -> LessonItem:
    return LessonItem(
        item_id=int(r["item_id"]),
        sort_order=int(r["sort_order"]),
        time_minutes=r.get("time_minutes"),
        teacher_activity=r.get("teacher_activity"),
        learner_activity=r.get("learner_activity"),
        formative_assessment=r.get("formative_assessment"),
        learning_materials=r.get("learning_materials"),
    )


def _row_to_file(r: dict) -> LessonFile:
    return LessonFile(
        file_id=int(r["file_id"]),
        lesson_id=int(r["lesson_id"]),
        file_name=r["file_name"],
        file_url=r["file_url"],
        file_type=r.get("file_type"),
        file_size=r.get("file_size"),
        uploaded_by=r.get("uploaded_by"),
        created_at=r.get("created_at"),
    )


def _row_to_lesson(r: dict, items: Sequence[LessonItem] = (), files: Sequence[LessonFile] = ()) -> Lesson:
    return Lesson(
        lesson_id=int(r["lesson_id"]),
        school_id=int(r["school_id"]),
        campus_id=r.get("campus_id"),
        course_period_id=int(r["course_period_id"]),
        teacher_id=int(r["teacher_id"]),
        academic_year_id=r.get("academic_year_id"),
        title=r["title"],
        on_date=r["on_date"],
        lesson_number=int(r["lesson_number"]),
        length_minutes=r.get("length_minutes"),
        learning_objectives=r.get("learning_objectives"),
        evaluation=r.get("evaluation"),
        inclusiveness=r.get("inclusiveness"),
        is_published=bool(r["is_published"]),
        created_by=r.get("created_by"),
        course_period_title=r.get("course_period_title"),
        items=tuple(items),
        files=tuple(files),
    )


class MySQLCoursePeriodRepository(CoursePeriodRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, course_period_id: int, school_id: int) -> Optional[CoursePeriod]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT course_period_id, school_id, title, subject_id, section_id, teacher_id
                FROM course_periods
                WHERE course_period_id=%s AND school_id=%s
                """,
                (int(course_period_id), int(school_id)),
            )
            r = fetchone(cur)
            if not r:
                return None
            return CoursePeriod(
                course_period_id=int(r["course_period_id"]),
                school_id=int(r["school_id"]),
                title=r["title"],
                subject_id=r.get("subject_id"),
                section_id=r.get("section_id"),
                teacher_id=r.get("teacher_id"),
            )


class MySQLLessonRepository(LessonRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _items_by_lesson(self, cur, lesson_ids: Sequence[int]) -> dict[int, list[LessonItem]]:
        out: dict[int, list[LessonItem]] = {i: [] for i in lesson_ids}
        if not lesson_ids:
            return out
        placeholders = ",".join(["%s"] * len(lesson_ids))
        cur.execute(
            f"SELECT {_ITEM_COLUMNS} FROM lesson_plan_items WHERE lesson_id IN ({placeholders}) ORDER BY sort_order, item_id",
            tuple(lesson_ids),
        )
        for r in fetchall(cur):
            out[int(r["lesson_id"])].append(_row_to_item(r))
        return out

    def search(
        self,
        *,
        school_id: int,
        course_period_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        campus_id: Optional[int] = None,
        academic_year_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[Lesson], int]:
        clauses = ["l.school_id=%s"]
        params: list[object] = [int(school_id)]
        for column, value in (
            ("l.course_period_id", course_period_id),
            ("l.teacher_id", teacher_id),
            ("l.campus_id", campus_id),
            ("l.academic_year_id", academic_year_id),
        ):
            if value is not None:
                clauses.append(f"{column}=%s")
                params.append(int(value))
        add_date_range(clauses, params, "l.on_date", date_from, date_to)
        where = build_where(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM lesson_plans l WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n") or 0)

            cur.execute(
                f"""
                {_LESSON_SELECT}
                WHERE {where}
                ORDER BY l.on_date DESC, l.lesson_number
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            rows = fetchall(cur)
            items = self._items_by_lesson(cur, [int(r["lesson_id"]) for r in rows])
            return [_row_to_lesson(r, items[int(r["lesson_id"])]) for r in rows], total

    def get(self, *, lesson_id: int, school_id: int) -> Optional[Lesson]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_LESSON_SELECT} WHERE l.lesson_id=%s AND l.school_id=%s", (int(lesson_id), int(school_id)))
            r = fetchone(cur)
            if not r:
                return None
            items = self._items_by_lesson(cur, [int(lesson_id)])[int(lesson_id)]
            cur.execute(
                f"SELECT {_FILE_COLUMNS} FROM lesson_plan_files WHERE lesson_id=%s ORDER BY created_at, file_id",
                (int(lesson_id),),
            )
            files = [_row_to_file(f) for f in fetchall(cur)]
            return _row_to_lesson(r, items, files)

    def create(self, *, school_id: int, values: dict[str, Any]) -> int:
        placeholders = ",".join(["%s"] * (len(_LESSON_COLUMNS) + 1))
        row = dict(values)
        row["is_published"] = int(bool(row.get("is_published")))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO lesson_plans(school_id, {', '.join(_LESSON_COLUMNS)}) VALUES({placeholders})",
                tuple([int(school_id)] + [row.get(c) for c in _LESSON_COLUMNS]),
            )
            return int(cur.lastrowid)

    def update(self, *, lesson_id: int, changes: dict[str, Any]) -> bool:
        values = dict(changes)
        if "is_published" in values:
            values["is_published"] = int(bool(values["is_published"]))
        sets, params = set_clause(values, _LESSON_UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE lesson_plans SET {sets} WHERE lesson_id=%s", tuple(params + [int(lesson_id)]))
            return cur.rowcount > 0

    def delete(self, *, lesson_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM lesson_plans WHERE lesson_id=%s", (int(lesson_id),))
            return cur.rowcount > 0

    def replace_items(self, *, lesson_id: int, items: Sequence[LessonItem]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM lesson_plan_items WHERE lesson_id=%s", (int(lesson_id),))
            for item in items:
                cur.execute(
                    f"""
                    INSERT INTO lesson_plan_items(lesson_id, sort_order, time_minutes, {", ".join(ITEM_TEXT_FIELDS)})
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(lesson_id),
                        int(item.sort_order),
                        item.time_minutes,
                        item.teacher_activity,
                        item.learner_activity,
                        item.formative_assessment,
                        item.learning_materials,
                    ),
                )

    def add_file(
        self,
        *,
        lesson_id: int,
        file_name: str,
        file_url: str,
        file_type: Optional[str],
        file_size: Optional[int],
        uploaded_by: Optional[int],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO lesson_plan_files(lesson_id, file_name, file_url, file_type, file_size, uploaded_by)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(lesson_id), file_name, file_url, file_type, file_size, uploaded_by),
            )
            return int(cur.lastrowid)

    def get_file(self, file_id: int) -> Optional[LessonFile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_FILE_COLUMNS} FROM lesson_plan_files WHERE file_id=%s", (int(file_id),))
            r = fetchone(cur)
            return _row_to_file(r) if r else None

    def remove_file(self, *, file_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM lesson_plan_files WHERE file_id=%s", (int(file_id),))
            return cur.rowcount > 0

    def published_dates(
        self,
        *,
        school_id: int,
        teacher_id: Optional[int] = None,
        campus_id: Optional[int] = None,
        academic_year_id: Optional[int] = None,
    ) -> Sequence[dict]:
        clauses = ["l.school_id=%s", "l.is_published=1"]
        params: list[object] = [int(school_id)]
        for column, value in (
            ("l.teacher_id", teacher_id),
            ("l.campus_id", campus_id),
            ("l.academic_year_id", academic_year_id),
        ):
            if value is not None:
                clauses.append(f"{column}=%s")
                params.append(int(value))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT l.course_period_id, cp.title AS course_period_title, l.on_date
                FROM lesson_plans l
                JOIN course_periods cp ON cp.course_period_id = l.course_period_id
                WHERE {build_where(clauses)}
                ORDER BY l.on_date DESC
                """,
                tuple(params),
            )
            return fetchall(cur)
