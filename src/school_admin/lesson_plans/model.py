from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

LESSON_TEXT_FIELDS = ("learning_objectives", "evaluation", "inclusiveness")
ITEM_TEXT_FIELDS = ("teacher_activity", "learner_activity", "formative_assessment", "learning_materials")


@dataclass(frozen=True)
class CoursePeriod:
    course_period_id: int
    school_id: int
    title: str
    subject_id: Optional[int] = None
    section_id: Optional[int] = None
    teacher_id: Optional[int] = None


@dataclass(frozen=True)
class LessonItem:
    sort_order: int
    time_minutes: Optional[int] = None
    teacher_activity: Optional[str] = None
    learner_activity: Optional[str] = None
    formative_assessment: Optional[str] = None
    learning_materials: Optional[str] = None
    item_id: Optional[int] = None


@dataclass(frozen=True)
class LessonFile:
    file_id: int
    lesson_id: int
    file_name: str
    file_url: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    uploaded_by: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Lesson:
    lesson_id: int
    school_id: int
    course_period_id: int
    teacher_id: int
    title: str
    on_date: date
    campus_id: Optional[int] = None
    academic_year_id: Optional[int] = None
    lesson_number: int = 1
    length_minutes: Optional[int] = None
    learning_objectives: Optional[str] = None
    evaluation: Optional[str] = None
    inclusiveness: Optional[str] = None
    is_published: bool = False
    created_by: Optional[int] = None
    course_period_title: Optional[str] = None
    items: tuple[LessonItem, ...] = ()
    files: tuple[LessonFile, ...] = ()
