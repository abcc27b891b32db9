from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import AmountType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import FeeSettings
from .repository import FeeSettingsRepository


class MySQLFeeSettingsRepository(FeeSettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, school_id: int) -> Optional[FeeSettings]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT school_id, enable_late_fees, late_fee_type, late_fee_value, grace_days,
                       enable_sibling_discounts, discount_forfeiture_enabled, admin_can_restore_discounts,
                       allow_partial_payments, min_partial_payment_percent
                FROM fee_settings
                WHERE school_id=%s
                """,
                (int(school_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return FeeSettings(
                school_id=int(r["school_id"]),
                enable_late_fees=bool(r["enable_late_fees"]),
                late_fee_type=AmountType(r["late_fee_type"]),
                late_fee_value=Decimal(r["late_fee_value"]),
                grace_days=int(r["grace_days"]),
                enable_sibling_discounts=bool(r["enable_sibling_discounts"]),
                discount_forfeiture_enabled=bool(r["discount_forfeiture_enabled"]),
                admin_can_restore_discounts=bool(r["admin_can_restore_discounts"]),
                allow_partial_payments=bool(r["allow_partial_payments"]),
                min_partial_payment_percent=Decimal(r["min_partial_payment_percent"]),
            )

    def upsert(self, settings: FeeSettings) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO fee_settings(
                    school_id, enable_late_fees, late_fee_type, late_fee_value, grace_days,
                    enable_sibling_discounts, discount_forfeiture_enabled, admin_can_restore_discounts,
                    allow_partial_payments, min_partial_payment_percent
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    enable_late_fees=VALUES(enable_late_fees),
                    late_fee_type=VALUES(late_fee_type),
                    late_fee_value=VALUES(late_fee_value),
                    grace_days=VALUES(grace_days),
                    enable_sibling_discounts=VALUES(enable_sibling_discounts),
                    discount_forfeiture_enabled=VALUES(discount_forfeiture_enabled),
                    admin_can_restore_discounts=VALUES(admin_can_restore_discounts),
                    allow_partial_payments=VALUES(allow_partial_payments),
                    min_partial_payment_percent=VALUES(min_partial_payment_percent)
                """,
                (
                    int(settings.school_id),
                    int(settings.enable_late_fees),
                    settings.late_fee_type.value,
                    settings.late_fee_value,
                    int(settings.grace_days),
                    int(settings.enable_sibling_discounts),
                    int(settings.discount_forfeiture_enabled),
                    int(settings.admin_can_restore_discounts),
                    int(settings.allow_partial_payments),
                    settings.min_partial_payment_percent,
                ),
            )

    def list_school_ids_with_late_fees(self) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT fs.school_id
                FROM fee_settings fs
                JOIN schools s ON s.school_id = fs.school_id
                WHERE fs.enable_late_fees=1 AND s.is_active=1
                ORDER BY fs.school_id
                """
            )
            return [int(r["school_id"]) for r in fetchall(cur)]
