from __future__ import annotations

import dataclasses
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from school_admin.core.enums import CopyStatus, LoanStatus
from school_admin.library.model import Book, BookCopy, Fine, Loan


class InMemoryBooks:
    def __init__(self):
        self.rows: dict[int, Book] = {}
        self.copies: Optional["InMemoryCopies"] = None

    def list(self, *, school_id: int, search: Optional[str] = None, category: Optional[str] = None) -> Sequence[Book]:
        return [
            b
            for b in self.rows.values()
            if b.school_id == school_id
            and (not search or search.lower() in b.title.lower())
            and (not category or b.category == category)
        ]

    def get(self, *, book_id: int, school_id: int) -> Optional[Book]:
        b = self.rows.get(book_id)
        return b if b and b.school_id == school_id else None

    def create(self, *, school_id: int, values: dict[str, Any]) -> int:
        book_id = max(self.rows, default=0) + 1
        self.rows[book_id] = Book(book_id=book_id, school_id=school_id, **values)
        return book_id

    def update(self, *, book_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        self.rows[book_id] = dataclasses.replace(self.rows[book_id], **changes)
        return True

    def delete(self, *, book_id: int, school_id: int) -> bool:
        return self.rows.pop(book_id, None) is not None

    def refresh_counts(self, *, book_id: int) -> None:
        copies = self.copies.list_for_book(book_id=book_id) if self.copies else []
        self.rows[book_id] = dataclasses.replace(
            self.rows[book_id],
            total_copies=len(copies),
            available_copies=sum(1 for c in copies if c.status == CopyStatus.AVAILABLE),
        )


class InMemoryCopies:
    def __init__(self, books: InMemoryBooks):
        self._books = books
        books.copies = self
        self.rows: dict[int, BookCopy] = {}

    def list_for_book(self, *, book_id: int, status: Optional[CopyStatus] = None) -> Sequence[BookCopy]:
        return [c for c in self.rows.values() if c.book_id == book_id and (status is None or c.status == status)]

    def get(self, copy_id: int) -> Optional[BookCopy]:
        return self.rows.get(copy_id)

    def count_for_book(self, *, book_id: int) -> int:
        return len(self.list_for_book(book_id=book_id))

    def next_accession_number(self) -> int:
        numbers = [int(c.accession_number.split("-")[1]) for c in self.rows.values()]
        return max(numbers, default=0) + 1

    def create_many(self, *, book_id: int, accession_numbers: Sequence[str], purchase_date, price, condition_notes):
        ids = []
        book = self._books.rows[book_id]
        for number in accession_numbers:
            copy_id = max(self.rows, default=0) + 1
            self.rows[copy_id] = BookCopy(
                copy_id=copy_id,
                book_id=book_id,
                school_id=book.school_id,
                accession_number=number,
                purchase_date=purchase_date,
                price=price,
                condition_notes=condition_notes,
                book_title=book.title,
            )
            ids.append(copy_id)
        return ids

    def update(self, *, copy_id: int, changes: dict[str, Any]) -> bool:
        self.rows[copy_id] = dataclasses.replace(self.rows[copy_id], **changes)
        return True

    def delete(self, *, copy_id: int) -> bool:
        return self.rows.pop(copy_id, None) is not None


class InMemoryLoans:
    def __init__(self, copies: InMemoryCopies):
        self._copies = copies
        self.rows: dict[int, Loan] = {}

    def _joined(self, loan: Loan) -> Loan:
        copy = self._copies.get(loan.copy_id)
        if not copy:
            return loan
        return dataclasses.replace(
            loan,
            book_id=copy.book_id,
            book_title=copy.book_title,
            accession_number=copy.accession_number,
            copy_price=copy.price,
        )

    def get(self, *, loan_id: int, school_id: int) -> Optional[Loan]:
        loan = self.rows.get(loan_id)
        return self._joined(loan) if loan and loan.school_id == school_id else None

    def create(self, *, school_id: int, copy_id: int, student_id: int, issue_date: date, due_date: date,
               notes=None, issued_by=None) -> int:
        loan_id = max(self.rows, default=0) + 1
        self.rows[loan_id] = Loan(
            loan_id=loan_id,
            school_id=school_id,
            copy_id=copy_id,
            student_id=student_id,
            issue_date=issue_date,
            due_date=due_date,
            notes=notes,
            issued_by=issued_by,
        )
        return loan_id

    def update(self, *, loan_id: int, changes: dict[str, Any]) -> bool:
        self.rows[loan_id] = dataclasses.replace(self.rows[loan_id], **changes)
        return True

    def count_active(self, *, student_id: int, school_id: int) -> int:
        return sum(
            1
            for loan in self.rows.values()
            if loan.student_id == student_id and loan.school_id == school_id and loan.status == LoanStatus.ACTIVE
        )

    def count_overdue(self, *, student_id: int, school_id: int, today: date) -> int:
        return sum(
            1
            for loan in self.rows.values()
            if loan.student_id == student_id and loan.school_id == school_id and loan.is_overdue(today)
        )

    def list(self, *, school_id: int, status=None, student_id=None, search=None) -> Sequence[Loan]:
        return [
            self._joined(loan)
            for loan in self.rows.values()
            if loan.school_id == school_id
            and (status is None or loan.status == status)
            and (student_id is None or loan.student_id == student_id)
        ]

    def total_collected(self, *, school_id: int) -> Decimal:
        return sum((loan.collected_amount for loan in self.rows.values() if loan.school_id == school_id), Decimal(0))


class InMemoryFines:
    def __init__(self):
        self.rows: dict[int, Fine] = {}

    def create(self, *, school_id: int, loan_id: int, student_id: int, amount: Decimal, reason: str) -> int:
        fine_id = max(self.rows, default=0) + 1
        self.rows[fine_id] = Fine(
            fine_id=fine_id, school_id=school_id, loan_id=loan_id, student_id=student_id, amount=amount, reason=reason
        )
        return fine_id

    def get(self, *, fine_id: int, school_id: int) -> Optional[Fine]:
        fine = self.rows.get(fine_id)
        return fine if fine and fine.school_id == school_id else None

    def list_unpaid(self, *, student_id: int, school_id: int) -> Sequence[Fine]:
        return [
            f
            for f in self.rows.values()
            if f.student_id == student_id and f.school_id == school_id and not f.is_paid
        ]

    def mark_paid(self, *, fine_id: int) -> bool:
        self.rows[fine_id] = dataclasses.replace(self.rows[fine_id], is_paid=True)
        return True

    def totals(self, *, school_id: int) -> dict:
        mine = [f for f in self.rows.values() if f.school_id == school_id]
        return {
            "count": len(mine),
            "paid": sum((f.amount for f in mine if f.is_paid), Decimal(0)),
            "unpaid": sum((f.amount for f in mine if not f.is_paid), Decimal(0)),
        }

    def recent(self, *, school_id: int, limit: int = 20) -> Sequence[Fine]:
        return sorted((f for f in self.rows.values() if f.school_id == school_id), key=lambda f: -f.fine_id)[:limit]
