from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from ..core.constants import ACCESSION_PREFIX
from ..core.enums import CopyStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone, set_clause
from .model import BOOK_FIELDS, Book, BookCopy
from .repository import BookCopyRepository, BookRepository

_BOOK_COLUMNS = "book_id, school_id, " + ", ".join(BOOK_FIELDS) + ", total_copies, available_copies"

_COPY_SELECT = """
    SELECT c.copy_id, c.book_id, b.school_id, c.accession_number, c.status, c.purchase_date, c.price,
           c.condition_notes, b.title AS book_title
    FROM library_book_copies c
    JOIN library_books b ON b.book_id = c.book_id
"""

_COPY_UPDATABLE = {"status", "purchase_date", "price", "condition_notes"}


def _row_to_book(r: dict) -> Book:
    return Book(
        book_id=int(r["book_id"]),
        school_id=int(r["school_id"]),
        title=r["title"],
        author=r.get("author"),
        isbn=r.get("isbn"),
        publisher=r.get("publisher"),
        publication_year=r.get("publication_year"),
        category=r.get("category"),
        total_copies=int(r["total_copies"]),
        available_copies=int(r["available_copies"]),
    )


def _row_to_copy(r: dict) -> BookCopy:
    return BookCopy(
        copy_id=int(r["copy_id"]),
        book_id=int(r["book_id"]),
        school_id=int(r["school_id"]),
        accession_number=r["accession_number"],
        status=CopyStatus(r["status"]),
        purchase_date=r.get("purchase_date"),
        price=Decimal(r["price"]) if r.get("price") is not None else None,
        condition_notes=r.get("condition_notes"),
        book_title=r.get("book_title"),
    )


class MySQLBookRepository(BookRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(self, *, school_id: int, search: Optional[str] = None, category: Optional[str] = None) -> Sequence[Book]:
        clauses = ["school_id=%s"]
        params: list[object] = [int(school_id)]
        if search:
            clauses.append("(title LIKE %s OR author LIKE %s OR isbn LIKE %s)")
            params.extend([f"%{search}%"] * 3)
        if category:
            clauses.append("category=%s")
            params.append(category)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_BOOK_COLUMNS} FROM library_books WHERE {build_where(clauses)} ORDER BY title",
                tuple(params),
            )
            return [_row_to_book(r) for r in fetchall(cur)]

    def get(self, *, book_id: int, school_id: int) -> Optional[Book]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_BOOK_COLUMNS} FROM library_books WHERE book_id=%s AND school_id=%s",
                (int(book_id), int(school_id)),
            )
            r = fetchone(cur)
            return _row_to_book(r) if r else None

    def create(self, *, school_id: int, values: dict[str, Any]) -> int:
        placeholders = ",".join(["%s"] * (len(BOOK_FIELDS) + 1))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO library_books(school_id, {', '.join(BOOK_FIELDS)}) VALUES({placeholders})",
                tuple([int(school_id)] + [values.get(f) for f in BOOK_FIELDS]),
            )
            return int(cur.lastrowid)

    def update(self, *, book_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, set(BOOK_FIELDS))
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE library_books SET {sets} WHERE book_id=%s AND school_id=%s",
                tuple(params + [int(book_id), int(school_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, book_id: int, school_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM library_books WHERE book_id=%s AND school_id=%s", (int(book_id), int(school_id)))
            return cur.rowcount > 0

    def refresh_counts(self, *, book_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE library_books b
                SET total_copies = (SELECT COUNT(*) FROM library_book_copies c WHERE c.book_id = b.book_id),
                    available_copies = (
                        SELECT COUNT(*) FROM library_book_copies c WHERE c.book_id = b.book_id AND c.status = %s
                    )
                WHERE b.book_id=%s
                """,
                (CopyStatus.AVAILABLE.value, int(book_id)),
            )


class MySQLBookCopyRepository(BookCopyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_book(self, *, book_id: int, status: Optional[CopyStatus] = None) -> Sequence[BookCopy]:
        clauses = ["c.book_id=%s"]
        params: list[object] = [int(book_id)]
        if status is not None:
            clauses.append("c.status=%s")
            params.append(CopyStatus(status).value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_COPY_SELECT} WHERE {build_where(clauses)} ORDER BY c.accession_number", tuple(params))
            return [_row_to_copy(r) for r in fetchall(cur)]

    def get(self, copy_id: int) -> Optional[BookCopy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_COPY_SELECT} WHERE c.copy_id=%s", (int(copy_id),))
            r = fetchone(cur)
            return _row_to_copy(r) if r else None

    def count_for_book(self, *, book_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM library_book_copies WHERE book_id=%s", (int(book_id),))
            return int((fetchone(cur) or {}).get("n") or 0)

    def next_accession_number(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT accession_number FROM library_book_copies
                WHERE accession_number LIKE %s
                ORDER BY accession_number DESC
                LIMIT 1
                """,
                (f"{ACCESSION_PREFIX}%",),
            )
            r = fetchone(cur)
        if not r:
            return 1
        digits = r["accession_number"][len(ACCESSION_PREFIX):]
        return int(digits) + 1 if digits.isdigit() else 1

    def create_many(
        self,
        *,
        book_id: int,
        accession_numbers: Sequence[str],
        purchase_date: Optional[date],
        price: Optional[Decimal],
        condition_notes: Optional[str],
    ) -> list[int]:
        ids: list[int] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for number in accession_numbers:
                cur.execute(
                    """
                    INSERT INTO library_book_copies(book_id, accession_number, status, purchase_date, price, condition_notes)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (int(book_id), number, CopyStatus.AVAILABLE.value, purchase_date, price, condition_notes),
                )
                ids.append(int(cur.lastrowid))
        return ids

    def update(self, *, copy_id: int, changes: dict[str, Any]) -> bool:
        values = dict(changes)
        if isinstance(values.get("status"), CopyStatus):
            values["status"] = values["status"].value
        sets, params = set_clause(values, _COPY_UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE library_book_copies SET {sets} WHERE copy_id=%s",
                tuple(params + [int(copy_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, copy_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM library_book_copies WHERE copy_id=%s", (int(copy_id),))
            return cur.rowcount > 0
