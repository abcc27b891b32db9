from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal


class AmountRule(ABC):
    """Strategy Pattern: how a configured value turns into money for a given base amount."""

    def __init__(self, value: Decimal):
        self.value = Decimal(value)

    @abstractmethod
    def amount_for(self, base: Decimal) -> Decimal:
        raise NotImplementedError
