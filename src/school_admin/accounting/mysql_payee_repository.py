from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, set_clause
from .model import PAYEE_FIELDS, Payee, PayeePayment
from .repository import PayeePaymentRepository, PayeeRepository

_PAYEE_COLUMNS = ", ".join("p." + f for f in PAYEE_FIELDS)

_SELECT = f"""
    SELECT p.payee_id, p.school_id, {_PAYEE_COLUMNS}, p.is_active,
           COALESCE((SELECT SUM(pp.amount) FROM payee_payments pp WHERE pp.payee_id = p.payee_id), 0)
               AS total_payments
    FROM payees p
"""

_UPDATABLE = set(PAYEE_FIELDS) | {"is_active"}


def _row_to_payee(r: dict) -> Payee:
    return Payee(
        payee_id=int(r["payee_id"]),
        school_id=int(r["school_id"]),
        is_active=bool(r["is_active"]),
        total_payments=Decimal(r.get("total_payments") or 0),
        **{f: r.get(f) for f in PAYEE_FIELDS},
    )


def _row_to_payee_payment(r: dict) -> PayeePayment:
    return PayeePayment(
        payee_payment_id=int(r["payee_payment_id"]),
        payee_id=int(r["payee_id"]),
        academic_year_id=r.get("academic_year_id"),
        amount=Decimal(r["amount"]),
        payment_date=r["payment_date"],
        description=r.get("description"),
        reference_number=r.get("reference_number"),
        created_by=r.get("created_by"),
        created_at=r.get("created_at"),
    )


class MySQLPayeeRepository(PayeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self, *, school_id: int) -> Sequence[Payee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE p.school_id=%s AND p.is_active=1 ORDER BY p.name", (int(school_id),))
            return [_row_to_payee(r) for r in fetchall(cur)]

    def get(self, *, payee_id: int, school_id: int) -> Optional[Payee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE p.payee_id=%s AND p.school_id=%s", (int(payee_id), int(school_id)))
            r = fetchone(cur)
            return _row_to_payee(r) if r else None

    def create(self, *, school_id: int, values: dict[str, Any]) -> int:
        cols = [f for f in PAYEE_FIELDS if f in values]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO payees(school_id, {', '.join(cols)}) VALUES(%s, {', '.join(['%s'] * len(cols))})",
                tuple([int(school_id)] + [values[c] for c in cols]),
            )
            return int(cur.lastrowid)

    def update(self, *, payee_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE payees SET {sets} WHERE payee_id=%s AND school_id=%s",
                tuple(params + [int(payee_id), int(school_id)]),
            )
            return cur.rowcount > 0


class MySQLPayeePaymentRepository(PayeePaymentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_payee(self, *, payee_id: int) -> Sequence[PayeePayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT * FROM payee_payments
                WHERE payee_id=%s
                ORDER BY payment_date DESC, payee_payment_id DESC
                """,
                (int(payee_id),),
            )
            return [_row_to_payee_payment(r) for r in fetchall(cur)]

    def get(self, payee_payment_id: int) -> Optional[PayeePayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM payee_payments WHERE payee_payment_id=%s", (int(payee_payment_id),))
            r = fetchone(cur)
            return _row_to_payee_payment(r) if r else None

    def create(
        self,
        *,
        payee_id: int,
        academic_year_id: Optional[int],
        amount: Decimal,
        payment_date: date,
        description: Optional[str],
        reference_number: Optional[str],
        created_by: Optional[int],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO payee_payments(
                    payee_id, academic_year_id, amount, payment_date, description, reference_number, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(payee_id), academic_year_id, amount, payment_date, description, reference_number, created_by),
            )
            return int(cur.lastrowid)

    def delete(self, *, payee_payment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM payee_payments WHERE payee_payment_id=%s", (int(payee_payment_id),))
            return cur.rowcount > 0
