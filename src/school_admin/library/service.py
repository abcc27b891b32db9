from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Optional, Sequence

from ..common.datetime_utils import today_local
from ..common.money import to_money
from ..common.validators import optional_date, optional_text, require_choice, require_non_empty, require_non_negative
from ..core.constants import ACCESSION_PREFIX, DEFAULT_LOST_BOOK_PROCESSING_FEE, MAX_COPIES_PER_BATCH, ZERO
from ..core.enums import CopyStatus, LoanStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..schools.service import SchoolDirectory
from ..students.model import Student
from ..students.repository import StudentRepository
from .model import Book, BookCopy, Fine, Loan
from .repository import BookCopyRepository, BookRepository, FineRepository, LoanRepository

logger = logging.getLogger(__name__)

_ISBN_10 = re.compile(r"^\d{9}[\dX]$")
_ISBN_13 = re.compile(r"^\d{13}$")
_ISBN_NOISE = re.compile(r"[^0-9X]")


def normalize_isbn(value: Any) -> Optional[str]:
    """Strip everything but digits and X; the result must look like an ISBN-10 or ISBN-13."""
    if value is None or str(value).strip() == "":
        return None
    clean = _ISBN_NOISE.sub("", str(value).upper())
    if not (_ISBN_10.match(clean) or _ISBN_13.match(clean)):
        raise ValidationError("Invalid ISBN format")
    return clean


def validate_publication_year(value: Any, today: date) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    max_year = today.year + 5
    try:
        year = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"publication_year must be between 1000 and {max_year}")
    if year < 1000 or year > max_year:
        raise ValidationError(f"publication_year must be between 1000 and {max_year}")
    return year


def accession_number(n: int) -> str:
    return f"{ACCESSION_PREFIX}{n:06d}"


class LibraryCatalogService:
    """Books and their physical copies."""

    def __init__(
        self,
        books: BookRepository,
        copies: BookCopyRepository,
        *,
        clock: Callable[[], date] = today_local,
    ):
        self._books = books
        self._copies = copies
        self._clock = clock

    def _book_values(self, data: dict[str, Any], *, partial: bool) -> dict[str, Any]:
        values: dict[str, Any] = {}
        if not partial or "title" in data:
            values["title"] = require_non_empty(data.get("title"), "Book title")
        for key in ("author", "publisher", "category"):
            if not partial or key in data:
                values[key] = optional_text(data.get(key))
        if not partial or "isbn" in data:
            values["isbn"] = normalize_isbn(data.get("isbn"))
        if not partial or "publication_year" in data:
            values["publication_year"] = validate_publication_year(data.get("publication_year"), self._clock())
        return values

    def list_books(self, *, school_id: int, search: Optional[str] = None, category: Optional[str] = None) -> Sequence[Book]:
        return self._books.list(school_id=int(school_id), search=search, category=category)

    def get_book(self, *, school_id: int, book_id: int) -> Book:
        book = self._books.get(book_id=int(book_id), school_id=int(school_id))
        if not book:
            raise NotFoundError("Book not found")
        return book

    def create_book(self, *, school_id: int, data: dict[str, Any]) -> int:
        book_id = self._books.create(school_id=int(school_id), values=self._book_values(data, partial=False))
        logger.info("Added book %s to the library of school %s", book_id, school_id)
        return book_id

    def update_book(self, *, school_id: int, book_id: int, changes: dict[str, Any]) -> Book:
        book = self.get_book(school_id=school_id, book_id=book_id)
        values = self._book_values(changes, partial=True)
        if values:
            self._books.update(book_id=book.book_id, school_id=book.school_id, changes=values)
        return self.get_book(school_id=school_id, book_id=book.book_id)

    def delete_book(self, *, school_id: int, book_id: int) -> None:
        book = self.get_book(school_id=school_id, book_id=book_id)
        if self._copies.count_for_book(book_id=book.book_id) > 0:
            raise ConflictError("Cannot delete book with existing copies. Delete all copies first.")
        self._books.delete(book_id=book.book_id, school_id=book.school_id)

    # -------- Copies --------
    def _copy_in(self, school_id: int, copy_id: int) -> BookCopy:
        copy = self._copies.get(int(copy_id))
        if not copy or copy.school_id != int(school_id):
            raise NotFoundError("Copy not found")
        return copy

    def list_copies(self, *, school_id: int, book_id: int, available_only: bool = False) -> Sequence[BookCopy]:
        book = self.get_book(school_id=school_id, book_id=book_id)
        status = CopyStatus.AVAILABLE if available_only else None
        return self._copies.list_for_book(book_id=book.book_id, status=status)

    def add_copies(
        self,
        *,
        school_id: int,
        book_id: int,
        count: Any,
        purchase_date: Any = None,
        price: Any = None,
        condition_notes: Optional[str] = None,
    ) -> Sequence[BookCopy]:
        book = self.get_book(school_id=school_id, book_id=book_id)
        try:
            n = int(count)
        except (TypeError, ValueError):
            raise ValidationError("Number of copies must be an integer")
        if n < 1 or n > MAX_COPIES_PER_BATCH:
            raise ValidationError(f"Number of copies must be between 1 and {MAX_COPIES_PER_BATCH}")

        start = self._copies.next_accession_number()
        numbers = [accession_number(start + i) for i in range(n)]
        self._copies.create_many(
            book_id=book.book_id,
            accession_numbers=numbers,
            purchase_date=optional_date(purchase_date, "purchase_date"),
            price=to_money(require_non_negative(price, "price")) if price not in (None, "") else None,
            condition_notes=optional_text(condition_notes),
        )
        self._books.refresh_counts(book_id=book.book_id)
        logger.info("Added %d copies (%s..%s) to book %s", n, numbers[0], numbers[-1], book.book_id)
        return self._copies.list_for_book(book_id=book.book_id)

    def update_copy(self, *, school_id: int, copy_id: int, changes: dict[str, Any]) -> BookCopy:
        copy = self._copy_in(school_id, copy_id)

        values: dict[str, Any] = {}
        if "status" in changes:
            status = require_choice(changes["status"], CopyStatus, "status")
            if CopyStatus.ISSUED in (status, copy.status) and status != copy.status:
                raise ValidationError("Issued status is managed through loans")
            values["status"] = status
        if "purchase_date" in changes:
            values["purchase_date"] = optional_date(changes["purchase_date"], "purchase_date")
        if "price" in changes:
            raw = changes["price"]
            values["price"] = to_money(require_non_negative(raw, "price")) if raw not in (None, "") else None
        if "condition_notes" in changes:
            values["condition_notes"] = optional_text(changes["condition_notes"])

        if values:
            self._copies.update(copy_id=copy.copy_id, changes=values)
            self._books.refresh_counts(book_id=copy.book_id)
        return self._copies.get(copy.copy_id) or copy

    def delete_copy(self, *, school_id: int, copy_id: int) -> None:
        copy = self._copy_in(school_id, copy_id)
        if copy.status == CopyStatus.ISSUED:
            raise ConflictError("Cannot delete a copy that is currently issued")
        self._copies.delete(copy_id=copy.copy_id)
        self._books.refresh_counts(book_id=copy.book_id)


class LibraryLoanService:
    """Issuing and returning copies, lost books and the fines they produce."""

    def __init__(
        self,
        loans: LoanRepository,
        fines: FineRepository,
        copies: BookCopyRepository,
        books: BookRepository,
        students: StudentRepository,
        schools: SchoolDirectory,
        *,
        clock: Callable[[], date] = today_local,
    ):
        self._loans = loans
        self._fines = fines
        self._copies = copies
        self._books = books
        self._students = students
        self._schools = schools
        self._clock = clock

    def _student_in(self, student_id: int, school_id: int) -> Student:
        student = self._students.get(int(student_id))
        if not student or not self._schools.belongs_to(student.school_id, int(school_id)):
            raise NotFoundError("Student not found")
        return student

    def _loan_in(self, school_id: int, loan_id: int) -> Loan:
        loan = self._loans.get(loan_id=int(loan_id), school_id=int(school_id))
        if not loan:
            raise NotFoundError("Loan not found")
        return loan

    def _unpaid_total(self, student_id: int, school_id: int) -> Decimal:
        fines = self._fines.list_unpaid(student_id=student_id, school_id=school_id)
        return to_money(sum((f.amount for f in fines), ZERO))

    def issue_book(
        self,
        *,
        school_id: int,
        copy_id: int,
        student_id: int,
        due_date: Any = None,
        notes: Optional[str] = None,
        issued_by: Optional[int] = None,
    ) -> dict:
        school_id = int(school_id)
        copy = self._copies.get(int(copy_id))
        if not copy or copy.school_id != school_id:
            raise NotFoundError("Book copy not found")
        if copy.status != CopyStatus.AVAILABLE:
            raise ValidationError(f"Book copy is not available. Current status: {copy.status.value}")

        student = self._student_in(student_id, school_id)
        if not student.is_active:
            raise ValidationError("Student account is inactive. Cannot issue books.")

        today = self._clock()
        if self._loans.count_overdue(student_id=student.student_id, school_id=school_id, today=today) > 0:
            raise ValidationError("Student has overdue books. Please return them before issuing new books.")

        settings = self._schools.library_settings(school_id)
        if self._loans.count_active(student_id=student.student_id, school_id=school_id) >= settings.max_books_per_student:
            raise ValidationError(f"Student has reached maximum book limit ({settings.max_books_per_student} books)")

        due = optional_date(due_date, "due_date") or today + timedelta(days=settings.loan_duration_days)
        if due < today:
            raise ValidationError("due_date cannot be before the issue date")

        loan_id = self._loans.create(
            school_id=school_id,
            copy_id=copy.copy_id,
            student_id=student.student_id,
            issue_date=today,
            due_date=due,
            notes=optional_text(notes),
            issued_by=issued_by,
        )
        self._copies.update(copy_id=copy.copy_id, changes={"status": CopyStatus.ISSUED})
        self._books.refresh_counts(book_id=copy.book_id)
        logger.info("Issued copy %s to student %s (loan %s, due %s)", copy.accession_number, student.student_id, loan_id, due)

        unpaid = self._unpaid_total(student.student_id, school_id)
        return {
            "loan": self._loans.get(loan_id=loan_id, school_id=school_id),
            "warning": f"Student has {unpaid} in unpaid fines" if unpaid > 0 else None,
        }

    def return_book(
        self,
        *,
        school_id: int,
        loan_id: int,
        collected_amount: Any = None,
        returned_by: Optional[int] = None,
    ) -> dict:
        loan = self._loan_in(school_id, loan_id)
        if loan.status == LoanStatus.RETURNED:
            raise ValidationError("Book has already been returned")
        if loan.status == LoanStatus.LOST:
            raise ValidationError("Book is marked as lost")

        today = self._clock()
        days_late = loan.days_late(today)
        settings = self._schools.library_settings(loan.school_id)
        overdue_fine = to_money(settings.fine_per_day * days_late)
        collected = to_money(require_non_negative(collected_amount, "collected_amount")) if collected_amount else ZERO

        self._loans.update(
            loan_id=loan.loan_id,
            changes={
                "return_date": today,
                "status": LoanStatus.RETURNED,
                "fine_amount": overdue_fine,
                "collected_amount": collected,
                "returned_by": returned_by,
            },
        )
        self._copies.update(copy_id=loan.copy_id, changes={"status": CopyStatus.AVAILABLE})
        if loan.book_id is not None:
            self._books.refresh_counts(book_id=loan.book_id)

        if overdue_fine > 0:
            self._fines.create(
                school_id=loan.school_id,
                loan_id=loan.loan_id,
                student_id=loan.student_id,
                amount=overdue_fine,
                reason=f"Late return - {days_late} days overdue",
            )
        logger.info("Loan %s returned (%d days late, fine=%s, collected=%s)", loan.loan_id, days_late, overdue_fine, collected)
        return {
            "loan_id": loan.loan_id,
            "days_late": days_late,
            "overdue_fine": overdue_fine,
            "collected_amount": collected,
        }

    def mark_lost(self, *, school_id: int, loan_id: int, processing_fee: Any = None) -> dict:
        loan = self._loan_in(school_id, loan_id)
        if loan.status == LoanStatus.LOST:
            raise ValidationError("Book is already marked as lost")
        if loan.status == LoanStatus.RETURNED:
            raise ValidationError("Book has already been returned")

        fee = (
            to_money(require_non_negative(processing_fee, "processing_fee"))
            if processing_fee is not None
            else DEFAULT_LOST_BOOK_PROCESSING_FEE
        )
        price = to_money(loan.copy_price)
        total = to_money(price + fee)

        self._loans.update(loan_id=loan.loan_id, changes={"status": LoanStatus.LOST, "fine_amount": total})
        self._copies.update(copy_id=loan.copy_id, changes={"status": CopyStatus.LOST})
        if loan.book_id is not None:
            self._books.refresh_counts(book_id=loan.book_id)
        self._fines.create(
            school_id=loan.school_id,
            loan_id=loan.loan_id,
            student_id=loan.student_id,
            amount=total,
            reason=f"Lost book - Book price: {price}, Processing fee: {fee}",
        )
        logger.info("Loan %s marked lost; charged %s", loan.loan_id, total)
        return {"total_cost": total, "book_price": price, "processing_fee": fee}

    def list_loans(
        self,
        *,
        school_id: int,
        status: Optional[str] = None,
        student_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[Loan]:
        parsed = require_choice(status, LoanStatus, "status") if status and status != "all" else None
        return self._loans.list(
            school_id=int(school_id),
            status=parsed,
            student_id=int(student_id) if student_id is not None else None,
            search=search,
        )

    def eligibility(self, *, school_id: int, student_id: int) -> dict:
        school_id = int(school_id)
        student = self._students.get(int(student_id))
        if not student or not self._schools.belongs_to(student.school_id, school_id):
            return {"eligible": False, "message": "Student not found"}
        if not student.is_active:
            return {"eligible": False, "message": "Student account is not active"}

        settings = self._schools.library_settings(school_id)
        active = self._loans.count_active(student_id=student.student_id, school_id=school_id)
        if active >= settings.max_books_per_student:
            return {
                "eligible": False,
                "message": f"Student has reached maximum loan limit ({settings.max_books_per_student})",
                "active_loans": active,
                "max_books": settings.max_books_per_student,
                "warnings": [f"Currently has {active} active loans"],
            }

        overdue = self._loans.count_overdue(student_id=student.student_id, school_id=school_id, today=self._clock())
        if overdue > 0:
            return {
                "eligible": False,
                "message": "Student has overdue books",
                "overdue_loans": overdue,
                "warnings": [f"{overdue} overdue book(s) must be returned first"],
            }

        unpaid = self._unpaid_total(student.student_id, school_id)
        return {
            "eligible": True,
            "message": "Student is eligible for book loans",
            "active_loans": active,
            "max_books": settings.max_books_per_student,
            "unpaid_fines": unpaid,
            "warnings": [f"Outstanding fines: {unpaid}"] if unpaid > 0 else [],
        }

    def unpaid_fines(self, *, school_id: int, student_id: int) -> Sequence[Fine]:
        student = self._student_in(student_id, school_id)
        return self._fines.list_unpaid(student_id=student.student_id, school_id=int(school_id))

    def pay_fine(self, *, school_id: int, fine_id: int) -> Fine:
        fine = self._fines.get(fine_id=int(fine_id), school_id=int(school_id))
        if not fine:
            raise NotFoundError("Fine not found")
        if fine.is_paid:
            raise ConflictError("Fine is already paid")
        self._fines.mark_paid(fine_id=fine.fine_id)
        logger.info("Fine %s of %s paid by student %s", fine.fine_id, fine.amount, fine.student_id)
        return self._fines.get(fine_id=fine.fine_id, school_id=int(school_id)) or fine

    def fine_stats(self, *, school_id: int) -> dict:
        totals = self._fines.totals(school_id=int(school_id))
        return {
            "total_overdue_fines": to_money(totals["paid"] + totals["unpaid"]),
            "unpaid_overdue_fines": to_money(totals["unpaid"]),
            "paid_overdue_fines": to_money(totals["paid"]),
            "total_condition_fines": to_money(self._loans.total_collected(school_id=int(school_id))),
            "overdue_fines_count": totals["count"],
            "recent_fines": self._fines.recent(school_id=int(school_id), limit=20),
        }
