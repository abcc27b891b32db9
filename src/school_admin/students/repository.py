from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Student


class StudentRepository(Protocol):
    def get(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def list_for_billing(
        self,
        *,
        school_id: int,
        grade_level_id: Optional[int] = None,
        section_id: Optional[int] = None,
    ) -> Sequence[Student]:
        """Active students of a campus, optionally narrowed to a grade/section."""

        raise NotImplementedError

    def count_siblings(self, *, student_id: int, school_id: int) -> int:
        """Students (including this one) sharing an active parent link, within `school_id`."""

        raise NotImplementedError
