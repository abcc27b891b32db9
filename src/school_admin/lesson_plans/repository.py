from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol, Sequence

from .model import CoursePeriod, Lesson, LessonFile, LessonItem


class CoursePeriodRepository(Protocol):
    def get(self, *, course_period_id: int, school_id: int) -> Optional[CoursePeriod]:
        raise NotImplementedError


class LessonRepository(Protocol):
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
        """Page of lessons (newest date first, then lesson number) with items, and the total count."""

        raise NotImplementedError

    def get(self, *, lesson_id: int, school_id: int) -> Optional[Lesson]:
        raise NotImplementedError

    def create(self, *, school_id: int, values: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, *, lesson_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, lesson_id: int) -> bool:
        raise NotImplementedError

    def replace_items(self, *, lesson_id: int, items: Sequence[LessonItem]) -> None:
        raise NotImplementedError

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
        raise NotImplementedError

    def get_file(self, file_id: int) -> Optional[LessonFile]:
        raise NotImplementedError

    def remove_file(self, *, file_id: int) -> bool:
        raise NotImplementedError

    def published_dates(
        self,
        *,
        school_id: int,
        teacher_id: Optional[int] = None,
        campus_id: Optional[int] = None,
        academic_year_id: Optional[int] = None,
    ) -> Sequence[dict]:
        """Rows of {course_period_id, course_period_title, on_date} for published lessons."""

        raise NotImplementedError
