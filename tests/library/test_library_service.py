from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from school_admin.core.enums import CopyStatus, LoanStatus
from school_admin.core.exceptions import ConflictError, NotFoundError, ValidationError
from school_admin.library.service import (
    LibraryCatalogService,
    LibraryLoanService,
    accession_number,
    normalize_isbn,
    validate_publication_year,
)
from school_admin.schools.model import School

from tests.fees.fakes import InMemoryStudents, directory, student
from tests.library.fakes import InMemoryBooks, InMemoryCopies, InMemoryFines, InMemoryLoans

START = date(2025, 9, 1)


class Clock:
    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


def _library():
    clock = Clock(START)
    books = InMemoryBooks()
    copies = InMemoryCopies(books)
    loans = InMemoryLoans(copies)
    fines = InMemoryFines()
    schools = directory(
        School(
            school_id=1,
            name="Main",
            settings={"library": {"max_books_per_student": 2, "loan_duration_days": 10, "fine_per_day": "1.50"}},
        )
    )
    students = InMemoryStudents({1: student(1), 2: student(2, is_active=False)})
    catalog = LibraryCatalogService(books, copies, clock=clock)
    desk = LibraryLoanService(loans, fines, copies, books, students, schools, clock=clock)

    book_id = catalog.create_book(school_id=1, data={"title": "Dune", "author": "Frank Herbert", "isbn": "0-441-17271-7"})
    catalog.add_copies(school_id=1, book_id=book_id, count=3, price="12.5")
    return catalog, desk, clock, books, copies, fines, book_id


def test_normalize_isbn():
    assert normalize_isbn("978-0-306-40615-7") == "9780306406157"
    assert normalize_isbn("0-8044-2957-x") == "080442957X"
    assert normalize_isbn("  ") is None
    with pytest.raises(ValidationError, match="Invalid ISBN format"):
        normalize_isbn("12345")


def test_publication_year_bounds():
    today = date(2025, 1, 1)

    assert validate_publication_year("2030", today) == 2030
    assert validate_publication_year(None, today) is None
    with pytest.raises(ValidationError):
        validate_publication_year(2031, today)
    with pytest.raises(ValidationError):
        validate_publication_year("999", today)
    with pytest.raises(ValidationError):
        validate_publication_year("next year", today)


def test_add_copies_numbers_globally_and_refreshes_counts():
    catalog, _, _, books, _, _, book_id = _library()
    other = catalog.create_book(school_id=1, data={"title": "Emma"})

    added = catalog.add_copies(school_id=1, book_id=other, count="2")

    assert [c.accession_number for c in added] == [accession_number(4), "LIB-000005"]
    assert books.get(book_id=book_id, school_id=1).total_copies == 3
    assert books.get(book_id=other, school_id=1).available_copies == 2
    with pytest.raises(ValidationError):
        catalog.add_copies(school_id=1, book_id=other, count=0)
    with pytest.raises(ValidationError):
        catalog.add_copies(school_id=1, book_id=other, count=501)
    with pytest.raises(NotFoundError):
        catalog.add_copies(school_id=2, book_id=other, count=1)


def test_book_with_copies_cannot_be_deleted():
    catalog, _, _, _, _, _, book_id = _library()

    with pytest.raises(ConflictError):
        catalog.delete_book(school_id=1, book_id=book_id)


def test_issue_book_defaults_due_date_and_marks_copy_issued():
    catalog, desk, _, books, copies, _, book_id = _library()

    result = desk.issue_book(school_id=1, copy_id=1, student_id=1)

    assert result["loan"].due_date == START + timedelta(days=10)
    assert result["warning"] is None
    assert copies.get(1).status == CopyStatus.ISSUED
    assert books.get(book_id=book_id, school_id=1).available_copies == 2
    with pytest.raises(ValidationError, match="Current status: issued"):
        desk.issue_book(school_id=1, copy_id=1, student_id=1)
    with pytest.raises(ValidationError):
        catalog.update_copy(school_id=1, copy_id=1, changes={"status": "available"})
    with pytest.raises(ConflictError):
        catalog.delete_copy(school_id=1, copy_id=1)


def test_issue_book_enforces_limits():
    _, desk, clock, _, _, _, _ = _library()

    with pytest.raises(ValidationError, match="inactive"):
        desk.issue_book(school_id=1, copy_id=1, student_id=2)
    with pytest.raises(ValidationError):
        desk.issue_book(school_id=1, copy_id=1, student_id=1, due_date="2025-08-31")

    desk.issue_book(school_id=1, copy_id=1, student_id=1)
    desk.issue_book(school_id=1, copy_id=2, student_id=1)
    with pytest.raises(ValidationError, match="maximum book limit \\(2 books\\)"):
        desk.issue_book(school_id=1, copy_id=3, student_id=1)

    clock.today = START + timedelta(days=30)
    with pytest.raises(ValidationError, match="overdue"):
        desk.issue_book(school_id=1, copy_id=3, student_id=1)


def test_late_return_creates_fine():
    _, desk, clock, _, copies, fines, _ = _library()
    loan = desk.issue_book(school_id=1, copy_id=1, student_id=1)["loan"]

    clock.today = loan.due_date + timedelta(days=3)
    result = desk.return_book(school_id=1, loan_id=loan.loan_id, collected_amount="2")

    assert result == {
        "loan_id": loan.loan_id,
        "days_late": 3,
        "overdue_fine": Decimal("4.50"),
        "collected_amount": Decimal("2.00"),
    }
    assert copies.get(1).status == CopyStatus.AVAILABLE
    [fine] = fines.rows.values()
    assert fine.reason == "Late return - 3 days overdue"
    with pytest.raises(ValidationError):
        desk.return_book(school_id=1, loan_id=loan.loan_id)
    with pytest.raises(ValidationError):
        desk.mark_lost(school_id=1, loan_id=loan.loan_id)


def test_on_time_return_has_no_fine():
    _, desk, _, _, _, fines, _ = _library()
    loan = desk.issue_book(school_id=1, copy_id=1, student_id=1)["loan"]

    result = desk.return_book(school_id=1, loan_id=loan.loan_id)

    assert result["days_late"] == 0
    assert fines.rows == {}


def test_mark_lost_charges_price_and_processing_fee():
    _, desk, _, _, copies, fines, _ = _library()
    loan = desk.issue_book(school_id=1, copy_id=1, student_id=1)["loan"]

    charge = desk.mark_lost(school_id=1, loan_id=loan.loan_id)

    assert charge == {"total_cost": Decimal("17.50"), "book_price": Decimal("12.50"), "processing_fee": Decimal("5.00")}
    assert copies.get(1).status == CopyStatus.LOST
    assert desk.list_loans(school_id=1, status="lost")[0].status == LoanStatus.LOST
    assert len(desk.list_loans(school_id=1, status="all")) == 1
    assert fines.rows[1].amount == Decimal("17.50")
    with pytest.raises(ValidationError):
        desk.return_book(school_id=1, loan_id=loan.loan_id)
    with pytest.raises(ValidationError):
        desk.mark_lost(school_id=1, loan_id=loan.loan_id)


def test_eligibility_never_raises():
    _, desk, _, _, _, _, _ = _library()

    assert desk.eligibility(school_id=1, student_id=99) == {"eligible": False, "message": "Student not found"}
    assert desk.eligibility(school_id=1, student_id=2)["eligible"] is False

    loan = desk.issue_book(school_id=1, copy_id=1, student_id=1)["loan"]
    desk.mark_lost(school_id=1, loan_id=loan.loan_id, processing_fee="0")

    result = desk.eligibility(school_id=1, student_id=1)
    assert result["eligible"] is True
    assert result["unpaid_fines"] == Decimal("12.50")
    assert result["warnings"] == ["Outstanding fines: 12.50"]


def test_issue_warns_about_unpaid_fines_and_pay_fine():
    _, desk, _, _, _, _, _ = _library()
    loan = desk.issue_book(school_id=1, copy_id=1, student_id=1)["loan"]
    desk.mark_lost(school_id=1, loan_id=loan.loan_id)

    result = desk.issue_book(school_id=1, copy_id=2, student_id=1)
    assert result["warning"] == "Student has 17.50 in unpaid fines"

    [fine] = desk.unpaid_fines(school_id=1, student_id=1)
    paid = desk.pay_fine(school_id=1, fine_id=fine.fine_id)
    assert paid.is_paid is True
    with pytest.raises(ConflictError):
        desk.pay_fine(school_id=1, fine_id=fine.fine_id)

    stats = desk.fine_stats(school_id=1)
    assert stats["paid_overdue_fines"] == Decimal("17.50")
    assert stats["unpaid_overdue_fines"] == Decimal("0.00")
    assert stats["overdue_fines_count"] == 1
