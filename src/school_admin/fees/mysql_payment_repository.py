from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Sequence

from ..core.enums import PaymentMethod
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, set_clause
from .model import FeePayment, NewPayment
from .repository import PaymentRepository

_COLUMNS = """
    p.payment_id, p.student_fee_id, p.amount, p.payment_method, p.payment_reference, p.payment_date,
    p.received_by, p.notes, p.comment, p.is_lunch_payment, p.file_url, p.receipt_number,
    p.created_by, p.created_at
"""

_UPDATABLE = {"amount", "payment_date", "comment", "is_lunch_payment", "file_url", "receipt_number", "notes"}


def _row_to_payment(r: dict) -> FeePayment:
    return FeePayment(
        payment_id=int(r["payment_id"]),
        student_fee_id=int(r["student_fee_id"]),
        amount=Decimal(r["amount"]),
        payment_method=PaymentMethod(r["payment_method"]),
        payment_reference=r.get("payment_reference"),
        payment_date=r["payment_date"],
        received_by=r.get("received_by"),
        notes=r.get("notes"),
        comment=r.get("comment"),
        is_lunch_payment=bool(r.get("is_lunch_payment")),
        file_url=r.get("file_url"),
        receipt_number=r.get("receipt_number"),
        created_by=r.get("created_by"),
        created_at=r.get("created_at"),
    )


class MySQLPaymentRepository(PaymentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, payment: NewPayment) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO fee_payments(
                    student_fee_id, amount, payment_method, payment_reference, payment_date,
                    received_by, notes, comment, is_lunch_payment, file_url, receipt_number, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(payment.student_fee_id),
                    payment.amount,
                    payment.payment_method.value,
                    payment.payment_reference,
                    payment.payment_date,
                    payment.received_by,
                    payment.notes,
                    payment.comment,
                    int(payment.is_lunch_payment),
                    payment.file_url,
                    payment.receipt_number,
                    payment.created_by,
                ),
            )
            return int(cur.lastrowid)

    def get(self, payment_id: int) -> Optional[FeePayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM fee_payments p WHERE p.payment_id=%s", (int(payment_id),))
            r = fetchone(cur)
            return _row_to_payment(r) if r else None

    def list_for_fee(self, *, student_fee_id: int) -> Sequence[FeePayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM fee_payments p
                WHERE p.student_fee_id=%s
                ORDER BY p.payment_date DESC, p.payment_id DESC
                """,
                (int(student_fee_id),),
            )
            return [_row_to_payment(r) for r in fetchall(cur)]

    def list_for_student(self, *, student_id: int, school_id: int) -> Sequence[FeePayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM fee_payments p
                JOIN student_fees sf ON sf.student_fee_id = p.student_fee_id
                WHERE sf.student_id=%s AND sf.school_id=%s
                ORDER BY p.payment_date DESC, p.payment_id DESC
                """,
                (int(student_id), int(school_id)),
            )
            return [_row_to_payment(r) for r in fetchall(cur)]

    def total_for_fee(self, *, student_fee_id: int) -> Decimal:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COALESCE(SUM(amount), 0) AS total FROM fee_payments WHERE student_fee_id=%s",
                (int(student_fee_id),),
            )
            r = fetchone(cur)
            return Decimal(r["total"]) if r else Decimal(0)

    def update(self, *, payment_id: int, changes: dict[str, Any]) -> bool:
        values = dict(changes)
        if "is_lunch_payment" in values:
            values["is_lunch_payment"] = int(bool(values["is_lunch_payment"]))
        sets, params = set_clause(values, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE fee_payments SET {sets} WHERE payment_id=%s",
                tuple(params + [int(payment_id)]),
            )
            return cur.rowcount > 0

    def delete(self, *, payment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM fee_payments WHERE payment_id=%s", (int(payment_id),))
            return cur.rowcount > 0
