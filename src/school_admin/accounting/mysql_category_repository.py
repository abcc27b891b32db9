from __future__ import annotations

from typing import Any, Optional, Sequence

from ..core.enums import AccountingCategoryType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, set_clause
from .model import AccountingCategory
from .repository import AccountingCategoryRepository

_COLUMNS = "category_id, school_id, name, category_type, description, display_order, is_active"

_UPDATABLE = {"name", "category_type", "description", "display_order", "is_active"}


def _row_to_category(r: dict) -> AccountingCategory:
    return AccountingCategory(
        category_id=int(r["category_id"]),
        school_id=int(r["school_id"]),
        name=r["name"],
        category_type=AccountingCategoryType(r["category_type"]),
        description=r.get("description"),
        display_order=int(r["display_order"]),
        is_active=bool(r["is_active"]),
    )


class MySQLAccountingCategoryRepository(AccountingCategoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(
        self, *, school_id: int, category_type: Optional[AccountingCategoryType] = None
    ) -> Sequence[AccountingCategory]:
        sql = f"SELECT {_COLUMNS} FROM accounting_categories WHERE school_id=%s AND is_active=1"
        params: list[object] = [int(school_id)]
        if category_type is not None and category_type != AccountingCategoryType.COMMON:
            sql += " AND category_type IN (%s, %s)"
            params.extend([category_type.value, AccountingCategoryType.COMMON.value])
        elif category_type is not None:
            sql += " AND category_type=%s"
            params.append(category_type.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY display_order, name", tuple(params))
            return [_row_to_category(r) for r in fetchall(cur)]

    def get(self, *, category_id: int, school_id: int) -> Optional[AccountingCategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM accounting_categories WHERE category_id=%s AND school_id=%s",
                (int(category_id), int(school_id)),
            )
            r = fetchone(cur)
            return _row_to_category(r) if r else None

    def create(
        self,
        *,
        school_id: int,
        name: str,
        category_type: AccountingCategoryType,
        description: Optional[str],
        display_order: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO accounting_categories(school_id, name, category_type, description, display_order)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(school_id), name, category_type.value, description, int(display_order)),
            )
            return int(cur.lastrowid)

    def update(self, *, category_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        values = dict(changes)
        if isinstance(values.get("category_type"), AccountingCategoryType):
            values["category_type"] = values["category_type"].value
        sets, params = set_clause(values, _UPDATABLE)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE accounting_categories SET {sets} WHERE category_id=%s AND school_id=%s",
                tuple(params + [int(category_id), int(school_id)]),
            )
            return cur.rowcount > 0
