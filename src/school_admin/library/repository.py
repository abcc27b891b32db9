from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import CopyStatus, LoanStatus
from .model import Book, BookCopy, Fine, Loan


class BookRepository(Protocol):
    def list(self, *, school_id: int, search: Optional[str] = None, category: Optional[str] = None) -> Sequence[Book]:
        raise NotImplementedError

    def get(self, *, book_id: int, school_id: int) -> Optional[Book]:
        raise NotImplementedError

    def create(self, *, school_id: int, values: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, *, book_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, book_id: int, school_id: int) -> bool:
        raise NotImplementedError

    def refresh_counts(self, *, book_id: int) -> None:
        """Recompute total_copies and available_copies from the copies table."""

        raise NotImplementedError


class BookCopyRepository(Protocol):
    def list_for_book(self, *, book_id: int, status: Optional[CopyStatus] = None) -> Sequence[BookCopy]:
        raise NotImplementedError

    def get(self, copy_id: int) -> Optional[BookCopy]:
        raise NotImplementedError

    def count_for_book(self, *, book_id: int) -> int:
        raise NotImplementedError

    def next_accession_number(self) -> int:
        """Number following the highest LIB-nnnnnn accession number in use."""

        raise NotImplementedError

    def create_many(
        self,
        *,
        book_id: int,
        accession_numbers: Sequence[str],
        purchase_date: Optional[date],
        price: Optional[Decimal],
        condition_notes: Optional[str],
    ) -> list[int]:
        raise NotImplementedError

    def update(self, *, copy_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, *, copy_id: int) -> bool:
        raise NotImplementedError


class LoanRepository(Protocol):
    def get(self, *, loan_id: int, school_id: int) -> Optional[Loan]:
        raise NotImplementedError

    def create(
        self,
        *,
        school_id: int,
        copy_id: int,
        student_id: int,
        issue_date: date,
        due_date: date,
        notes: Optional[str],
        issued_by: Optional[int],
    ) -> int:
        raise NotImplementedError

    def update(self, *, loan_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def count_active(self, *, student_id: int, school_id: int) -> int:
        raise NotImplementedError

    def count_overdue(self, *, student_id: int, school_id: int, today: date) -> int:
        raise NotImplementedError

    def list(
        self,
        *,
        school_id: int,
        status: Optional[LoanStatus] = None,
        student_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[Loan]:
        raise NotImplementedError

    def total_collected(self, *, school_id: int) -> Decimal:
        raise NotImplementedError


class FineRepository(Protocol):
    def create(self, *, school_id: int, loan_id: int, student_id: int, amount: Decimal, reason: str) -> int:
        raise NotImplementedError

    def get(self, *, fine_id: int, school_id: int) -> Optional[Fine]:
        raise NotImplementedError

    def list_unpaid(self, *, student_id: int, school_id: int) -> Sequence[Fine]:
        raise NotImplementedError

    def mark_paid(self, *, fine_id: int) -> bool:
        raise NotImplementedError

    def totals(self, *, school_id: int) -> dict:
        """{paid, unpaid, count} over every fine of the school."""

        raise NotImplementedError

    def recent(self, *, school_id: int, limit: int = 20) -> Sequence[Fine]:
        raise NotImplementedError
