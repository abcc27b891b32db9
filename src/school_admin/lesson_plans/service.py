from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence

from ..common.pagination import page_of
from ..common.validators import optional_date, optional_text, require_non_empty
from ..core.constants import DEFAULT_LESSON_PAGE_SIZE
from ..core.exceptions import NotFoundError, ValidationError
from .model import ITEM_TEXT_FIELDS, LESSON_TEXT_FIELDS, Lesson, LessonFile, LessonItem
from .repository import CoursePeriodRepository, LessonRepository

logger = logging.getLogger(__name__)


def _optional_int(value: Any, field_name: str, *, minimum: int = 0) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if n < minimum:
        raise ValidationError(f"{field_name} must be at least {minimum}")
    return n


def parse_items(raw_items: Optional[Iterable[dict]]) -> list[LessonItem]:
    """Items keep their given sort_order; without one they are ordered by position."""
    items: list[LessonItem] = []
    for index, raw in enumerate(raw_items or ()):
        if not isinstance(raw, dict):
            raise ValidationError("Each lesson item must be an object")
        order = raw.get("sort_order")
        items.append(
            LessonItem(
                sort_order=int(order) if order is not None else index,
                time_minutes=_optional_int(raw.get("time_minutes"), "time_minutes"),
                **{f: optional_text(raw.get(f)) for f in ITEM_TEXT_FIELDS},
            )
        )
    return items


class LessonPlanService:
    def __init__(self, lessons: LessonRepository, course_periods: CoursePeriodRepository):
        self._lessons = lessons
        self._course_periods = course_periods

    def _require_course_period(self, school_id: int, course_period_id: Any) -> int:
        cp_id = _optional_int(course_period_id, "course_period_id", minimum=1)
        if cp_id is None or not self._course_periods.get(course_period_id=cp_id, school_id=int(school_id)):
            raise NotFoundError("Course period not found")
        return cp_id

    def list_lessons(
        self,
        *,
        school_id: int,
        course_period_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        campus_id: Optional[int] = None,
        academic_year_id: Optional[int] = None,
        date_from: Any = None,
        date_to: Any = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        p = page_of(page, limit, default_limit=DEFAULT_LESSON_PAGE_SIZE)
        lessons, total = self._lessons.search(
            school_id=int(school_id),
            course_period_id=course_period_id,
            teacher_id=teacher_id,
            campus_id=campus_id,
            academic_year_id=academic_year_id,
            date_from=optional_date(date_from, "from"),
            date_to=optional_date(date_to, "to"),
            offset=p.offset,
            limit=p.limit,
        )
        return {"data": lessons, "total": total, "page": p.page, "limit": p.limit}

    def get_lesson(self, *, school_id: int, lesson_id: int) -> Lesson:
        lesson = self._lessons.get(lesson_id=int(lesson_id), school_id=int(school_id))
        if not lesson:
            raise NotFoundError("Lesson plan not found")
        return lesson

    def create_lesson(
        self,
        *,
        school_id: int,
        data: dict[str, Any],
        campus_id: Optional[int] = None,
        created_by: Optional[int] = None,
    ) -> Lesson:
        on_date = optional_date(data.get("on_date"), "on_date")
        if on_date is None:
            raise ValidationError("on_date is required")
        teacher_id = _optional_int(data.get("teacher_id"), "teacher_id", minimum=1)
        if teacher_id is None:
            raise ValidationError("teacher_id is required")

        values: dict[str, Any] = {
            "campus_id": campus_id,
            "course_period_id": self._require_course_period(school_id, data.get("course_period_id")),
            "teacher_id": teacher_id,
            "academic_year_id": _optional_int(data.get("academic_year_id"), "academic_year_id", minimum=1),
            "title": require_non_empty(data.get("title"), "Lesson title"),
            "on_date": on_date,
            "lesson_number": _optional_int(data.get("lesson_number"), "lesson_number", minimum=1) or 1,
            "length_minutes": _optional_int(data.get("length_minutes"), "length_minutes", minimum=1),
            "is_published": bool(data.get("is_published")),
            "created_by": created_by,
        }
        for f in LESSON_TEXT_FIELDS:
            values[f] = optional_text(data.get(f))
        items = parse_items(data.get("items"))

        lesson_id = self._lessons.create(school_id=int(school_id), values=values)
        if items:
            self._lessons.replace_items(lesson_id=lesson_id, items=items)
        logger.info("Created lesson plan %s (%d items) for school %s", lesson_id, len(items), school_id)
        return self.get_lesson(school_id=school_id, lesson_id=lesson_id)

    def update_lesson(self, *, school_id: int, lesson_id: int, changes: dict[str, Any]) -> Lesson:
        lesson = self.get_lesson(school_id=school_id, lesson_id=lesson_id)

        values: dict[str, Any] = {}
        if "course_period_id" in changes:
            values["course_period_id"] = self._require_course_period(school_id, changes["course_period_id"])
        if "teacher_id" in changes:
            teacher_id = _optional_int(changes["teacher_id"], "teacher_id", minimum=1)
            if teacher_id is None:
                raise ValidationError("teacher_id is required")
            values["teacher_id"] = teacher_id
        if "academic_year_id" in changes:
            values["academic_year_id"] = _optional_int(changes["academic_year_id"], "academic_year_id", minimum=1)
        if "title" in changes:
            values["title"] = require_non_empty(changes["title"], "Lesson title")
        if "on_date" in changes:
            on_date = optional_date(changes["on_date"], "on_date")
            if on_date is None:
                raise ValidationError("on_date is required")
            values["on_date"] = on_date
        if "lesson_number" in changes:
            values["lesson_number"] = _optional_int(changes["lesson_number"], "lesson_number", minimum=1) or 1
        if "length_minutes" in changes:
            values["length_minutes"] = _optional_int(changes["length_minutes"], "length_minutes", minimum=1)
        if "is_published" in changes:
            values["is_published"] = bool(changes["is_published"])
        for f in LESSON_TEXT_FIELDS:
            if f in changes:
                values[f] = optional_text(changes[f])

        if values:
            self._lessons.update(lesson_id=lesson.lesson_id, changes=values)
        if "items" in changes:
            self._lessons.replace_items(lesson_id=lesson.lesson_id, items=parse_items(changes["items"]))
        return self.get_lesson(school_id=school_id, lesson_id=lesson.lesson_id)

    def delete_lesson(self, *, school_id: int, lesson_id: int) -> None:
        lesson = self.get_lesson(school_id=school_id, lesson_id=lesson_id)
        self._lessons.delete(lesson_id=lesson.lesson_id)
        logger.info("Deleted lesson plan %s", lesson.lesson_id)

    def replace_items(self, *, school_id: int, lesson_id: int, items: Iterable[dict]) -> Lesson:
        lesson = self.get_lesson(school_id=school_id, lesson_id=lesson_id)
        self._lessons.replace_items(lesson_id=lesson.lesson_id, items=parse_items(items))
        return self.get_lesson(school_id=school_id, lesson_id=lesson.lesson_id)

    # -------- Files --------
    def add_file(
        self,
        *,
        school_id: int,
        lesson_id: int,
        file_name: str,
        file_url: str,
        file_type: Optional[str] = None,
        file_size: Any = None,
        uploaded_by: Optional[int] = None,
    ) -> LessonFile:
        lesson = self.get_lesson(school_id=school_id, lesson_id=lesson_id)
        file_id = self._lessons.add_file(
            lesson_id=lesson.lesson_id,
            file_name=require_non_empty(file_name, "file_name"),
            file_url=require_non_empty(file_url, "file_url"),
            file_type=optional_text(file_type),
            file_size=_optional_int(file_size, "file_size"),
            uploaded_by=uploaded_by,
        )
        stored = self._lessons.get_file(file_id)
        if not stored:
            raise NotFoundError("File not found")
        return stored

    def remove_file(self, *, school_id: int, file_id: int) -> None:
        stored = self._lessons.get_file(int(file_id))
        if not stored or not self._lessons.get(lesson_id=stored.lesson_id, school_id=int(school_id)):
            raise NotFoundError("File not found")
        self._lessons.remove_file(file_id=stored.file_id)

    # -------- Summary --------
    def summary(
        self,
        *,
        school_id: int,
        teacher_id: Optional[int] = None,
        campus_id: Optional[int] = None,
        academic_year_id: Optional[int] = None,
    ) -> Sequence[dict]:
        """Published lessons grouped by course period, with their count and most recent date."""
        rows = self._lessons.published_dates(
            school_id=int(school_id),
            teacher_id=teacher_id,
            campus_id=campus_id,
            academic_year_id=academic_year_id,
        )
        grouped: dict[int, dict] = {}
        for r in rows:
            cp_id = int(r["course_period_id"])
            entry = grouped.setdefault(
                cp_id,
                {
                    "course_period_id": cp_id,
                    "course_period_title": r.get("course_period_title"),
                    "count": 0,
                    "last_date": r["on_date"],
                },
            )
            entry["count"] += 1
            if r["on_date"] > entry["last_date"]:
                entry["last_date"] = r["on_date"]
        return list(grouped.values())
