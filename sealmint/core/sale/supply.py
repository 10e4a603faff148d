"""
Supply Counter - Fixed-cap issuance counter shared by both sale phases.

Token identifiers are issued sequentially from 0; `total_supply` is the
next identifier to issue and never decreases.
"""

from dataclasses import dataclass
from typing import List

from sealmint.core.errors import SupplyExhausted


@dataclass
class SupplyCounter:
    max_supply: int
    total_supply: int = 0

    @property
    def remaining(self) -> int:
        return self.max_supply - self.total_supply

    def is_exhausted(self) -> bool:
        return self.total_supply >= self.max_supply

    def reserve(self, amount: int) -> List[int]:
        """Claim the next `amount` identifiers."""
        if self.total_supply + amount > self.max_supply:
            raise SupplyExhausted(
                f"Cannot issue {amount}: {self.remaining} of {self.max_supply} remaining"
            )
        first = self.total_supply
        self.total_supply += amount
        return list(range(first, first + amount))

    def snapshot(self) -> int:
        return self.total_supply

    def restore(self, total_supply: int) -> None:
        self.total_supply = total_supply
