from __future__ import annotations

from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, set_clause
from .model import FeeCategory
from .repository import FeeCategoryRepository

_COLUMNS = """
    fee_category_id, school_id, name, code, description,
    is_mandatory, is_discountable, display_order, is_active
"""

_UPDATABLE = {"name", "code", "description", "is_mandatory", "is_discountable", "display_order", "is_active"}


def _row_to_category(r: dict) -> FeeCategory:
    return FeeCategory(
        fee_category_id=int(r["fee_category_id"]),
        school_id=int(r["school_id"]),
        name=r["name"],
        code=r["code"],
        description=r.get("description"),
        is_mandatory=bool(r["is_mandatory"]),
        is_discountable=bool(r["is_discountable"]),
        display_order=int(r["display_order"]),
        is_active=bool(r["is_active"]),
    )


class MySQLFeeCategoryRepository(FeeCategoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(self, *, school_id: int, active_only: bool = True) -> Sequence[FeeCategory]:
        where = "school_id=%s AND is_active=1" if active_only else "school_id=%s"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM fee_categories WHERE {where} ORDER BY display_order, name",
                (int(school_id),),
            )
            return [_row_to_category(r) for r in fetchall(cur)]

    def get(self, *, fee_category_id: int, school_id: int) -> Optional[FeeCategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM fee_categories WHERE fee_category_id=%s AND school_id=%s",
                (int(fee_category_id), int(school_id)),
            )
            r = fetchone(cur)
            return _row_to_category(r) if r else None

    def get_by_code(self, *, school_id: int, code: str) -> Optional[FeeCategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM fee_categories WHERE school_id=%s AND code=%s",
                (int(school_id), code),
            )
            r = fetchone(cur)
            return _row_to_category(r) if r else None

    def create(
        self,
        *,
        school_id: int,
        name: str,
        code: str,
        description: Optional[str],
        is_mandatory: bool,
        is_discountable: bool,
        display_order: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO fee_categories(
                    school_id, name, code, description, is_mandatory, is_discountable, display_order
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(school_id),
                    name,
                    code,
                    description,
                    int(is_mandatory),
                    int(is_discountable),
                    int(display_order),
                ),
            )
            return int(cur.lastrowid)

    def update(self, *, fee_category_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        sets, params = set_clause(changes, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE fee_categories SET {sets} WHERE fee_category_id=%s AND school_id=%s",
                tuple(params + [int(fee_category_id), int(school_id)]),
            )
            return cur.rowcount > 0

    def deactivate(self, *, fee_category_id: int, school_id: int) -> bool:
        return self.update(fee_category_id=fee_category_id, school_id=school_id, changes={"is_active": 0})
