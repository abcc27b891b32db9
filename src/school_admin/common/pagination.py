from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import MAX_PAGE_SIZE
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Page:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_of(page: Optional[int], limit: Optional[int], *, default_limit: int) -> Page:
    p = 1 if page is None else int(page)
    n = default_limit if limit is None else int(limit)
    if p < 1:
        raise ValidationError("page must be >= 1")
    if n < 1 or n > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    return Page(page=p, limit=n)
