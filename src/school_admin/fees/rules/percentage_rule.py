from __future__ import annotations

from decimal import Decimal

from ...common.money import percent_of
from .base import AmountRule


class PercentageRule(AmountRule):
    """value% of the base amount."""

    def amount_for(self, base: Decimal) -> Decimal:
        return percent_of(base, self.value)
