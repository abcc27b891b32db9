from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from ..common.money import to_money
from ..core.constants import ZERO
from ..schools.service import SchoolDirectory
from ..students.repository import StudentRepository
from .repository import DiscountTierRepository, FeeSettingsRepository
from .rules.factory import AmountRuleFactory

logger = logging.getLogger(__name__)


class SiblingDiscountCalculator:
    """Discount owed to a student for a fee, based on how many siblings attend the same campus.

    The tier must match the sibling count exactly; a school that configures tiers for 2 and 3
    siblings gives nothing to a family of 4 unless a 4-sibling tier exists.
    """

    def __init__(
        self,
        settings: FeeSettingsRepository,
        tiers: DiscountTierRepository,
        students: StudentRepository,
        schools: SchoolDirectory,
        *,
        rule_factory: Optional[AmountRuleFactory] = None,
    ):
        self._settings = settings
        self._tiers = tiers
        self._students = students
        self._schools = schools
        self._rules = rule_factory or AmountRuleFactory()

    def calculate(
        self,
        *,
        student_id: int,
        school_id: int,
        fee_category_id: Optional[int],
        base_amount: Decimal,
    ) -> Decimal:
        owner_id = self._schools.resource_owner_id(school_id)
        settings = self._settings.get(owner_id)
        if not settings or not settings.enable_sibling_discounts:
            return ZERO

        count = self._students.count_siblings(student_id=int(student_id), school_id=int(school_id))
        if count <= 1:
            return ZERO

        tier = next(
            (t for t in self._tiers.list_active(school_id=owner_id) if t.sibling_count == count and t.covers(fee_category_id)),
            None,
        )
        if tier is None:
            return ZERO

        discount = self._rules.for_type(tier.discount_type, tier.discount_value).amount_for(base_amount)
        discount = min(discount, to_money(base_amount))
        logger.debug(
            "Sibling discount %s for student %s (siblings=%s, tier=%s)", discount, student_id, count, tier.tier_id
        )
        return discount
