from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import School


class SchoolRepository(Protocol):
    def get(self, school_id: int) -> Optional[School]:
        raise NotImplementedError

    def list_active(self) -> Sequence[School]:
        raise NotImplementedError

    def list_campus_ids(self, school_id: int) -> Sequence[int]:
        """The school itself followed by its campuses."""

        raise NotImplementedError
