from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from ..core.enums import FeeStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, decode_json, encode_json, fetchall, fetchone, set_clause
from .model import NewStudentFee, StudentFee
from .repository import StudentFeeRepository

_SELECT = """
    SELECT sf.student_fee_id, sf.school_id, sf.student_id, sf.fee_structure_id, sf.academic_year, sf.fee_month,
           sf.base_amount, sf.services_amount, sf.sibling_discount, sf.custom_discount, sf.late_fee_applied,
           sf.final_amount, sf.amount_paid, sf.status, sf.due_date, sf.discount_forfeited,
           sf.discount_restored_by, sf.discount_reason, sf.notes, sf.fee_breakdown, sf.created_at,
           CONCAT(s.first_name, ' ', s.last_name) AS student_name, s.student_number
    FROM student_fees sf
    JOIN students s ON s.student_id = sf.student_id
"""

_UPDATABLE = {
    "late_fee_applied",
    "custom_discount",
    "final_amount",
    "amount_paid",
    "status",
    "discount_forfeited",
    "discount_restored_by",
    "discount_reason",
    "notes",
}


def _row_to_fee(r: dict) -> StudentFee:
    breakdown = decode_json(r.get("fee_breakdown"), column="student_fees.fee_breakdown")
    return StudentFee(
        student_fee_id=int(r["student_fee_id"]),
        school_id=int(r["school_id"]),
        student_id=int(r["student_id"]),
        fee_structure_id=r.get("fee_structure_id"),
        academic_year=r["academic_year"],
        fee_month=r.get("fee_month"),
        base_amount=Decimal(r["base_amount"]),
        services_amount=Decimal(r["services_amount"]),
        sibling_discount=Decimal(r["sibling_discount"]),
        custom_discount=Decimal(r["custom_discount"]),
        late_fee_applied=Decimal(r["late_fee_applied"]),
        final_amount=Decimal(r["final_amount"]),
        amount_paid=Decimal(r["amount_paid"]),
        status=FeeStatus(r["status"]),
        due_date=r["due_date"],
        discount_forfeited=bool(r["discount_forfeited"]),
        discount_restored_by=r.get("discount_restored_by"),
        discount_reason=r.get("discount_reason"),
        notes=r.get("notes"),
        fee_breakdown=breakdown if isinstance(breakdown, list) else None,
        created_at=r.get("created_at"),
        student_name=r.get("student_name"),
        student_number=r.get("student_number"),
    )


class MySQLStudentFeeRepository(StudentFeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, student_fee_id: int) -> Optional[StudentFee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE sf.student_fee_id=%s", (int(student_fee_id),))
            r = fetchone(cur)
            return _row_to_fee(r) if r else None

    def create(self, fee: NewStudentFee) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO student_fees(
                    school_id, student_id, fee_structure_id, academic_year, fee_month,
                    base_amount, services_amount, sibling_discount, final_amount,
                    status, due_date, notes, fee_breakdown
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(fee.school_id),
                    int(fee.student_id),
                    fee.fee_structure_id,
                    fee.academic_year,
                    fee.fee_month,
                    fee.base_amount,
                    fee.services_amount,
                    fee.sibling_discount,
                    fee.final_amount,
                    fee.status.value,
                    fee.due_date,
                    fee.notes,
                    encode_json(fee.fee_breakdown),
                ),
            )
            return int(cur.lastrowid)

    def exists_for_month(self, *, student_id: int, fee_month: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM student_fees WHERE student_id=%s AND fee_month=%s LIMIT 1",
                (int(student_id), fee_month),
            )
            return fetchone(cur) is not None

    def latest_for_student(self, *, student_id: int, school_id: int) -> Optional[StudentFee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_SELECT}
                WHERE sf.student_id=%s AND sf.school_id=%s
                ORDER BY sf.created_at DESC, sf.student_fee_id DESC
                LIMIT 1
                """,
                (int(student_id), int(school_id)),
            )
            r = fetchone(cur)
            return _row_to_fee(r) if r else None

    def update_fields(self, *, student_fee_id: int, changes: dict[str, Any]) -> bool:
        values = dict(changes)
        if isinstance(values.get("status"), FeeStatus):
            values["status"] = values["status"].value
        if "discount_forfeited" in values:
            values["discount_forfeited"] = int(bool(values["discount_forfeited"]))
        sets, params = set_clause(values, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE student_fees SET {sets} WHERE student_fee_id=%s",
                tuple(params + [int(student_fee_id)]),
            )
            return cur.rowcount > 0

    def list_late_fee_candidates(self, *, school_ids: Sequence[int], due_before: date) -> Sequence[StudentFee]:
        if not school_ids:
            return []
        placeholders = ",".join(["%s"] * len(school_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_SELECT}
                WHERE sf.school_id IN ({placeholders})
                  AND sf.status IN (%s, %s)
                  AND sf.due_date < %s
                  AND sf.late_fee_applied = 0
                ORDER BY sf.due_date, sf.student_fee_id
                """,
                tuple([int(s) for s in school_ids] + [FeeStatus.PENDING.value, FeeStatus.PARTIAL.value, due_before]),
            )
            return [_row_to_fee(r) for r in fetchall(cur)]

    def search(
        self,
        *,
        school_id: int,
        student_id: Optional[int] = None,
        academic_year: Optional[str] = None,
        status: Optional[FeeStatus] = None,
        grade_level_id: Optional[int] = None,
        section_id: Optional[int] = None,
        fee_month: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[StudentFee], int]:
        clauses = ["sf.school_id=%s"]
        params: list[object] = [int(school_id)]

        if student_id is not None:
            clauses.append("sf.student_id=%s")
            params.append(int(student_id))
        if academic_year:
            clauses.append("sf.academic_year=%s")
            params.append(academic_year)
        if status is not None:
            clauses.append("sf.status=%s")
            params.append(FeeStatus(status).value)
        if grade_level_id is not None:
            clauses.append("s.grade_level_id=%s")
            params.append(int(grade_level_id))
        if section_id is not None:
            clauses.append("s.section_id=%s")
            params.append(int(section_id))
        if fee_month:
            clauses.append("sf.fee_month=%s")
            params.append(fee_month)

        where = build_where(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n
                FROM student_fees sf
                JOIN students s ON s.student_id = sf.student_id
                WHERE {where}
                """,
                tuple(params),
            )
            total = int((fetchone(cur) or {}).get("n") or 0)

            cur.execute(
                f"""
                {_SELECT}
                WHERE {where}
                ORDER BY sf.due_date DESC, sf.student_fee_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_fee(r) for r in fetchall(cur)], total

    def list_for_student(self, *, student_id: int, school_id: int) -> Sequence[StudentFee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE sf.student_id=%s AND sf.school_id=%s ORDER BY sf.due_date DESC",
                (int(student_id), int(school_id)),
            )
            return [_row_to_fee(r) for r in fetchall(cur)]

    def status_totals(self, *, school_id: int, academic_year: Optional[str] = None) -> Sequence[dict]:
        clauses = ["school_id=%s"]
        params: list[object] = [int(school_id)]
        if academic_year:
            clauses.append("academic_year=%s")
            params.append(academic_year)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT status,
                       COUNT(*) AS fee_count,
                       COALESCE(SUM(final_amount), 0) AS final_total,
                       COALESCE(SUM(amount_paid), 0) AS paid_total
                FROM student_fees
                WHERE {build_where(clauses)}
                GROUP BY status
                """,
                tuple(params),
            )
            return [
                {
                    "status": FeeStatus(r["status"]),
                    "fee_count": int(r["fee_count"]),
                    "final_total": Decimal(r["final_total"]),
                    "paid_total": Decimal(r["paid_total"]),
                }
                for r in fetchall(cur)
            ]

    def student_payment_summaries(
        self,
        *,
        school_id: int,
        search: Optional[str] = None,
        grade_level_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[dict], int]:
        clauses = ["s.school_id=%s", "s.is_active=1"]
        params: list[object] = [int(school_id)]
        if search:
            clauses.append("(s.student_number LIKE %s OR CONCAT(s.first_name, ' ', s.last_name) LIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])
        if grade_level_id is not None:
            clauses.append("s.grade_level_id=%s")
            params.append(int(grade_level_id))

        where = build_where(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM students s WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("n") or 0)

            cur.execute(
                f"""
                SELECT s.student_id, s.student_number,
                       CONCAT(s.first_name, ' ', s.last_name) AS student_name,
                       gl.name AS grade_name, sec.name AS section_name,
                       COALESCE(SUM(sf.final_amount), 0) AS total_fees,
                       COALESCE(SUM(sf.amount_paid), 0) AS total_paid
                FROM students s
                LEFT JOIN grade_levels gl ON gl.grade_level_id = s.grade_level_id
                LEFT JOIN sections sec ON sec.section_id = s.section_id
                LEFT JOIN student_fees sf ON sf.student_id = s.student_id AND sf.status <> %s
                WHERE {where}
                GROUP BY s.student_id, s.student_number, s.first_name, s.last_name, gl.name, sec.name
                ORDER BY s.student_number
                LIMIT %s OFFSET %s
                """,
                tuple([FeeStatus.WAIVED.value] + params + [int(limit), int(offset)]),
            )
            out: list[dict] = []
            for r in fetchall(cur):
                total_fees = Decimal(r["total_fees"])
                total_paid = Decimal(r["total_paid"])
                out.append(
                    {
                        "student_id": int(r["student_id"]),
                        "student_number": r["student_number"],
                        "student_name": r["student_name"],
                        "grade_name": r.get("grade_name"),
                        "section_name": r.get("section_name"),
                        "total_fees": total_fees,
                        "total_paid": total_paid,
                        "balance": total_fees - total_paid,
                    }
                )
            return out, total
