from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import AdjustmentType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import FeeAdjustment
from .repository import AdjustmentRepository


class MySQLAdjustmentRepository(AdjustmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        student_fee_id: int,
        adjusted_by: Optional[int],
        adjustment_type: AdjustmentType,
        amount_before: Decimal,
        amount_after: Decimal,
        adjustment_amount: Decimal,
        reason: str,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO fee_adjustments(
                    student_fee_id, adjusted_by, adjustment_type,
                    amount_before, amount_after, adjustment_amount, reason
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(student_fee_id),
                    adjusted_by,
                    adjustment_type.value,
                    amount_before,
                    amount_after,
                    adjustment_amount,
                    reason,
                ),
            )
            return int(cur.lastrowid)

    def list_for_fee(self, *, student_fee_id: int) -> Sequence[FeeAdjustment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT adjustment_id, student_fee_id, adjusted_by, adjustment_type,
                       amount_before, amount_after, adjustment_amount, reason, created_at
                FROM fee_adjustments
                WHERE student_fee_id=%s
                ORDER BY created_at DESC, adjustment_id DESC
                """,
                (int(student_fee_id),),
            )
            return [
                FeeAdjustment(
                    adjustment_id=int(r["adjustment_id"]),
                    student_fee_id=int(r["student_fee_id"]),
                    adjusted_by=r.get("adjusted_by"),
                    adjustment_type=AdjustmentType(r["adjustment_type"]),
                    amount_before=Decimal(r["amount_before"]),
                    amount_after=Decimal(r["amount_after"]),
                    adjustment_amount=Decimal(r["adjustment_amount"]),
                    reason=r["reason"],
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
