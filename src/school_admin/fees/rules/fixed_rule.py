from __future__ import annotations

from decimal import Decimal

from ...common.money import to_money
from .base import AmountRule


class FixedRule(AmountRule):
    """Flat value regardless of the base amount."""

    def amount_for(self, base: Decimal) -> Decimal:
        return to_money(self.value)
