from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.constants import ZERO
from ..core.enums import CopyStatus, LoanStatus

BOOK_FIELDS = ("title", "author", "isbn", "publisher", "publication_year", "category")


@dataclass(frozen=True)
class Book:
    book_id: int
    school_id: int
    title: str
    author: Optional[str] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    publication_year: Optional[int] = None
    category: Optional[str] = None
    total_copies: int = 0
    available_copies: int = 0


@dataclass(frozen=True)
class BookCopy:
    copy_id: int
    book_id: int
    school_id: int
    accession_number: str
    status: CopyStatus = CopyStatus.AVAILABLE
    purchase_date: Optional[date] = None
    price: Optional[Decimal] = None
    condition_notes: Optional[str] = None
    book_title: Optional[str] = None


@dataclass(frozen=True)
class Loan:
    loan_id: int
    school_id: int
    copy_id: int
    student_id: int
    issue_date: date
    due_date: date
    return_date: Optional[date] = None
    status: LoanStatus = LoanStatus.ACTIVE
    fine_amount: Decimal = ZERO
    collected_amount: Decimal = ZERO
    notes: Optional[str] = None
    issued_by: Optional[int] = None
    returned_by: Optional[int] = None
    book_id: Optional[int] = None
    book_title: Optional[str] = None
    accession_number: Optional[str] = None
    copy_price: Optional[Decimal] = None
    student_name: Optional[str] = None

    def days_late(self, on: date) -> int:
        return max((on - self.due_date).days, 0)

    def is_overdue(self, today: date) -> bool:
        return self.status == LoanStatus.ACTIVE and self.due_date < today


@dataclass(frozen=True)
class Fine:
    fine_id: int
    school_id: int
    loan_id: int
    student_id: int
    amount: Decimal
    reason: str
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    student_name: Optional[str] = None
    book_title: Optional[str] = None
