from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from ..core.enums import PeriodType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone, set_clause
from .model import FeeStructure, SchoolService
from .repository import FeeStructureRepository, SchoolServiceRepository

_SELECT = """
    SELECT fs.fee_structure_id, fs.school_id, fs.academic_year, fs.grade_level_id, fs.fee_category_id,
           fs.period_type, fs.period_name, fs.period_number, fs.amount, fs.due_date, fs.is_active,
           fc.name AS category_name, fc.code AS category_code, fc.display_order,
           gl.name AS grade_name
    FROM fee_structures fs
    JOIN fee_categories fc ON fc.fee_category_id = fs.fee_category_id
    LEFT JOIN grade_levels gl ON gl.grade_level_id = fs.grade_level_id
"""

_UPDATABLE = {
    "academic_year",
    "grade_level_id",
    "fee_category_id",
    "period_type",
    "period_name",
    "period_number",
    "amount",
    "due_date",
    "is_active",
}


def _row_to_structure(r: dict) -> FeeStructure:
    return FeeStructure(
        fee_structure_id=int(r["fee_structure_id"]),
        school_id=int(r["school_id"]),
        academic_year=r["academic_year"],
        grade_level_id=r.get("grade_level_id"),
        fee_category_id=int(r["fee_category_id"]),
        period_type=PeriodType(r["period_type"]),
        period_name=r.get("period_name"),
        period_number=r.get("period_number"),
        amount=Decimal(r["amount"]),
        due_date=r.get("due_date"),
        is_active=bool(r["is_active"]),
        category_name=r.get("category_name"),
        category_code=r.get("category_code"),
        grade_name=r.get("grade_name"),
    )


class MySQLFeeStructureRepository(FeeStructureRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(self, *, school_id: int, academic_year: Optional[str] = None) -> Sequence[FeeStructure]:
        clauses = ["fs.school_id=%s", "fs.is_active=1"]
        params: list[object] = [int(school_id)]
        if academic_year:
            clauses.append("fs.academic_year=%s")
            params.append(academic_year)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_SELECT}
                WHERE {build_where(clauses)}
                ORDER BY fs.academic_year DESC, gl.order_index, fc.display_order
                """,
                tuple(params),
            )
            return [_row_to_structure(r) for r in fetchall(cur)]

    def get(self, *, fee_structure_id: int, school_id: Optional[int] = None) -> Optional[FeeStructure]:
        clauses = ["fs.fee_structure_id=%s"]
        params: list[object] = [int(fee_structure_id)]
        if school_id is not None:
            clauses.append("fs.school_id=%s")
            params.append(int(school_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE {build_where(clauses)}", tuple(params))
            r = fetchone(cur)
            return _row_to_structure(r) if r else None

    def list_active_for(
        self,
        *,
        school_id: int,
        academic_year: str,
        grade_level_id: Optional[int],
        include_school_wide: bool = False,
        category_ids: Sequence[int] = (),
    ) -> Sequence[FeeStructure]:
        clauses = ["fs.school_id=%s", "fs.academic_year=%s", "fs.is_active=1"]
        params: list[object] = [int(school_id), academic_year]

        if grade_level_id is None:
            clauses.append("fs.grade_level_id IS NULL")
        elif include_school_wide:
            clauses.append("(fs.grade_level_id=%s OR fs.grade_level_id IS NULL)")
            params.append(int(grade_level_id))
        else:
            clauses.append("fs.grade_level_id=%s")
            params.append(int(grade_level_id))

        if category_ids:
            placeholders = ",".join(["%s"] * len(category_ids))
            clauses.append(f"fs.fee_category_id IN ({placeholders})")
            params.extend(int(c) for c in category_ids)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_SELECT}
                WHERE {build_where(clauses)}
                ORDER BY fc.display_order, fs.fee_structure_id
                """,
                tuple(params),
            )
            return [_row_to_structure(r) for r in fetchall(cur)]

    def first_for_school(self, *, school_id: int) -> Optional[FeeStructure]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE fs.school_id=%s ORDER BY fs.fee_structure_id LIMIT 1",
                (int(school_id),),
            )
            r = fetchone(cur)
            return _row_to_structure(r) if r else None

    def create(
        self,
        *,
        school_id: int,
        academic_year: str,
        grade_level_id: Optional[int],
        fee_category_id: int,
        period_type: str,
        period_name: Optional[str],
        period_number: Optional[int],
        amount: Decimal,
        due_date: Optional[date],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO fee_structures(
                    school_id, academic_year, grade_level_id, fee_category_id,
                    period_type, period_name, period_number, amount, due_date
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(school_id),
                    academic_year,
                    grade_level_id,
                    int(fee_category_id),
                    period_type,
                    period_name,
                    period_number,
                    amount,
                    due_date,
                ),
            )
            return int(cur.lastrowid)

    def update(self, *, fee_structure_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE fee_structures SET {sets} WHERE fee_structure_id=%s AND school_id=%s",
                tuple(params + [int(fee_structure_id), int(school_id)]),
            )
            return cur.rowcount > 0

    def deactivate(self, *, fee_structure_id: int, school_id: int) -> bool:
        return self.update(fee_structure_id=fee_structure_id, school_id=school_id, changes={"is_active": 0})


class MySQLSchoolServiceRepository(SchoolServiceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self, *, school_id: int, service_ids: Sequence[int]) -> Sequence[SchoolService]:
        if not service_ids:
            return []
        placeholders = ",".join(["%s"] * len(service_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT service_id, school_id, name, default_charge, is_active
                FROM school_services
                WHERE school_id=%s AND is_active=1 AND service_id IN ({placeholders})
                ORDER BY service_id
                """,
                tuple([int(school_id)] + [int(s) for s in service_ids]),
            )
            return [
                SchoolService(
                    service_id=int(r["service_id"]),
                    school_id=int(r["school_id"]),
                    name=r["name"],
                    default_charge=Decimal(r["default_charge"]),
                    is_active=bool(r["is_active"]),
                )
                for r in fetchall(cur)
            ]
