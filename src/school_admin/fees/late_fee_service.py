from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import today_local
from ..core.enums import FeeStatus
from ..schools.service import SchoolDirectory
from .amounts import final_amount_of
from .repository import FeeSettingsRepository, StudentFeeRepository
from .rules.factory import AmountRuleFactory

logger = logging.getLogger(__name__)


class LateFeeService:
    """Applies the one-off late fee to fees still unpaid after the grace period.

    A fee is charged at most once: rows with a non-zero late fee are never picked up again.
    When forfeiture is enabled the fee also loses its sibling discount.
    """

    def __init__(
        self,
        fees: StudentFeeRepository,
        settings: FeeSettingsRepository,
        schools: SchoolDirectory,
        *,
        rule_factory: Optional[AmountRuleFactory] = None,
        clock: Callable[[], date] = today_local,
    ):
        self._fees = fees
        self._settings = settings
        self._schools = schools
        self._rules = rule_factory or AmountRuleFactory()
        self._clock = clock

    def apply_late_fees(self, *, school_id: int, today: Optional[date] = None) -> dict:
        owner_id = self._schools.resource_owner_id(int(school_id))
        settings = self._settings.get(owner_id)
        if not settings or not settings.enable_late_fees:
            return {"fees_updated": 0, "discounts_forfeited": 0}

        cutoff = (today or self._clock()) - timedelta(days=int(settings.grace_days))
        rule = self._rules.for_type(settings.late_fee_type, settings.late_fee_value)
        candidates = self._fees.list_late_fee_candidates(
            school_ids=self._schools.campus_ids(int(school_id)),
            due_before=cutoff,
        )

        updated = 0
        forfeited = 0
        for fee in candidates:
            late_fee = rule.amount_for(fee.final_amount)
            forfeit = settings.discount_forfeiture_enabled and not fee.discount_forfeited
            changes = {
                "late_fee_applied": late_fee,
                "final_amount": final_amount_of(
                    fee,
                    late_fee_applied=late_fee,
                    discount_forfeited=fee.discount_forfeited or forfeit,
                ),
                "status": FeeStatus.OVERDUE,
            }
            if forfeit:
                changes["discount_forfeited"] = True
                forfeited += 1

            self._fees.update_fields(student_fee_id=fee.student_fee_id, changes=changes)
            updated += 1

        if updated:
            logger.info(
                "Late fees applied for school %s: %d fees updated, %d discounts forfeited",
                school_id,
                updated,
                forfeited,
            )
        return {"fees_updated": updated, "discounts_forfeited": forfeited}

    def apply_late_fees_all_schools(self, *, today: Optional[date] = None) -> dict:
        processed = 0
        total_updated = 0
        total_forfeited = 0

        for school_id in self._settings.list_school_ids_with_late_fees():
            try:
                result = self.apply_late_fees(school_id=school_id, today=today)
            except Exception:
                logger.exception("Applying late fees failed for school %s", school_id)
                continue
            processed += 1
            total_updated += result["fees_updated"]
            total_forfeited += result["discounts_forfeited"]

        return {
            "schools_processed": processed,
            "total_fees_updated": total_updated,
            "total_discounts_forfeited": total_forfeited,
        }
