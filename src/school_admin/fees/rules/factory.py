from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ...core.enums import AmountType
from .base import AmountRule
from .fixed_rule import FixedRule
from .percentage_rule import PercentageRule


@dataclass
class AmountRuleFactory:
    """Factory Pattern: choose the rule for a discount tier or late-fee setting."""

    def for_type(self, amount_type: AmountType, value: Decimal) -> AmountRule:
        if AmountType(amount_type) == AmountType.PERCENTAGE:
            return PercentageRule(value)
        return FixedRule(value)
