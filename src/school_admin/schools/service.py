from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Sequence

from ..core.constants import DEFAULT_FINE_PER_DAY, DEFAULT_LOAN_DURATION_DAYS, DEFAULT_MAX_BOOKS_PER_STUDENT
from .model import LibrarySettings, School
from .repository import SchoolRepository

logger = logging.getLogger(__name__)


class SchoolDirectory:
    """Resolves campuses to the school that owns their shared setup."""

    def __init__(self, schools: SchoolRepository):
        self._schools = schools

    def resource_owner_id(self, school_id: int) -> int:
        school = self._schools.get(int(school_id))
        if not school:
            return int(school_id)
        return school.owner_id

    def list_active(self) -> Sequence[School]:
        return self._schools.list_active()

    def library_settings(self, school_id: int) -> LibrarySettings:
        school = self._schools.get(int(school_id))
        raw = (school.settings if school else {}).get("library") or {}
        try:
            fine = Decimal(str(raw.get("fine_per_day", DEFAULT_FINE_PER_DAY)))
        except InvalidOperation:
            logger.warning("Invalid library fine_per_day for school %s: %r", school_id, raw.get("fine_per_day"))
            fine = DEFAULT_FINE_PER_DAY
        return LibrarySettings(
            max_books_per_student=int(raw.get("max_books_per_student", DEFAULT_MAX_BOOKS_PER_STUDENT)),
            loan_duration_days=int(raw.get("loan_duration_days", DEFAULT_LOAN_DURATION_DAYS)),
            fine_per_day=fine,
        )

    def campus_ids(self, school_id: int) -> Sequence[int]:
        return self._schools.list_campus_ids(int(school_id))

    def belongs_to(self, record_school_id: int, scope_school_id: int) -> bool:
        """True when a campus-level record is visible from `scope_school_id` (itself or its parent)."""
        if int(record_school_id) == int(scope_school_id):
            return True
        return self.resource_owner_id(int(record_school_id)) == int(scope_school_id)
