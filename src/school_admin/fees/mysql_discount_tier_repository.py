from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from ..core.enums import AmountType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, decode_json, encode_json, fetchall
from .model import SiblingDiscountTier
from .repository import DiscountTierRepository


def _row_to_tier(r: dict) -> SiblingDiscountTier:
    categories = decode_json(r.get("applies_to_categories"), column="sibling_discount_tiers.applies_to_categories")
    return SiblingDiscountTier(
        tier_id=int(r["tier_id"]),
        school_id=int(r["school_id"]),
        sibling_count=int(r["sibling_count"]),
        discount_type=AmountType(r["discount_type"]),
        discount_value=Decimal(r["discount_value"]),
        applies_to_categories=tuple(int(c) for c in categories) if isinstance(categories, list) else (),
        is_active=bool(r["is_active"]),
    )


class MySQLDiscountTierRepository(DiscountTierRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self, *, school_id: int) -> Sequence[SiblingDiscountTier]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT tier_id, school_id, sibling_count, discount_type, discount_value,
                       applies_to_categories, is_active
                FROM sibling_discount_tiers
                WHERE school_id=%s AND is_active=1
                ORDER BY sibling_count
                """,
                (int(school_id),),
            )
            return [_row_to_tier(r) for r in fetchall(cur)]

    def replace_all(self, *, school_id: int, tiers: Sequence[SiblingDiscountTier]) -> None:
        # One transaction: readers never see a school with every tier switched off.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE sibling_discount_tiers SET is_active=0 WHERE school_id=%s", (int(school_id),))
            for tier in tiers:
                cur.execute(
                    """
                    INSERT INTO sibling_discount_tiers(
                        school_id, sibling_count, discount_type, discount_value, applies_to_categories, is_active
                    )
                    VALUES(%s,%s,%s,%s,%s,1)
                    ON DUPLICATE KEY UPDATE
                        discount_type=VALUES(discount_type),
                        discount_value=VALUES(discount_value),
                        applies_to_categories=VALUES(applies_to_categories),
                        is_active=1
                    """,
                    (
                        int(school_id),
                        int(tier.sibling_count),
                        tier.discount_type.value,
                        tier.discount_value,
                        encode_json(list(tier.applies_to_categories)),
                    ),
                )
