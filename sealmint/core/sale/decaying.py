"""
Decaying Sale - Post-auction batch sale on a falling price curve.

The curve is anchored on the clearing price discovered by the auction and
on the time of the previous public mint:

    unit_price = max(min_price, clearing_price - (now - last_mint_time) * decay_rate)
    cost       = unit_price * amount

After every sale the anchor moves:

    clearing_price = unit_price + increase_rate * amount
    last_mint_time = now

so the price falls while nobody buys and climbs with every unit sold. The
first public mint sees zero elapsed time and is priced at the seed.

Boundary note: `can_mint(amount)` tests `total_supply + amount < max_supply`
(strict) while `mint` only refuses when the supply is already exhausted or
the batch would overshoot the cap. A batch that lands exactly on the cap is
therefore reported unmintable by `can_mint` yet succeeds in `mint`.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from sealmint.core.auction.statistics import PriceStatistics
from sealmint.core.errors import SupplyExhausted
from sealmint.core.events import EventBus, PublicMintEvent
from sealmint.core.payments import Payments
from sealmint.core.phase import Phase, PhaseClock
from sealmint.core.registry import OwnershipRegistry
from sealmint.core.sale.supply import SupplyCounter
from sealmint.crypto import short_hex
from sealmint.utils.logger import get_logger
from sealmint.utils.validation import ensure, validate_address, validate_amount, validate_integer

logger = get_logger("sale.decaying")


@dataclass
class SaleCurveState:
    """
    Anchor of the decaying price curve.

    Both fields stay None until the first public mint seeds them.
    """
    clearing_price: Optional[int] = None
    last_mint_time: Optional[int] = None

    def snapshot(self) -> Tuple[Optional[int], Optional[int]]:
        return self.clearing_price, self.last_mint_time

    def restore(self, state: Tuple[Optional[int], Optional[int]]) -> None:
        self.clearing_price, self.last_mint_time = state


@dataclass(frozen=True)
class PublicMintQuote:
    unit_price: int
    amount: int
    cost: int
    next_clearing_price: int


class DecayingSaleController:
    """
    Prices and executes public-phase batch mints.
    """

    def __init__(
        self,
        curve: SaleCurveState,
        statistics: PriceStatistics,
        supply: SupplyCounter,
        payments: Payments,
        registry: OwnershipRegistry,
        clock: PhaseClock,
        events: EventBus,
        min_price: int,
        decay_rate: int,
        increase_rate: int,
    ):
        self.curve = curve
        self.statistics = statistics
        self.supply = supply
        self.payments = payments
        self.registry = registry
        self.clock = clock
        self.events = events
        self.min_price = min_price
        self.decay_rate = decay_rate
        self.increase_rate = increase_rate

    # =========================================================================
    # Pricing
    # =========================================================================

    def _anchor(self, now: int) -> Tuple[int, int]:
        """(clearing_price, last_mint_time), seeded from the auction if unset."""
        clearing_price = self.curve.clearing_price
        if clearing_price is None:
            clearing_price = self.statistics.mean
        last_mint_time = self.curve.last_mint_time
        if last_mint_time is None:
            last_mint_time = now
        return clearing_price, last_mint_time

    def unit_price_at(self, now: int) -> int:
        clearing_price, last_mint_time = self._anchor(now)
        decay = max(0, now - last_mint_time) * self.decay_rate
        return max(self.min_price, clearing_price - decay)

    def current_unit_price(self) -> int:
        return self.unit_price_at(self.clock.now())

    def quote(self, amount: int) -> PublicMintQuote:
        """Price a batch of `amount` units at the current time."""
        ensure(validate_integer(amount, "amount", min_val=1))
        unit_price = self.current_unit_price()
        return PublicMintQuote(
            unit_price=unit_price,
            amount=amount,
            cost=unit_price * amount,
            next_clearing_price=unit_price + self.increase_rate * amount,
        )

    def can_mint(self, amount: int) -> bool:
        """View check; strict, see module docstring."""
        return self.supply.total_supply + amount < self.supply.max_supply

    # =========================================================================
    # Minting
    # =========================================================================

    def mint(self, participant: bytes, amount: int, payment: int = 0) -> List[int]:
        """
        Buy `amount` units at the current curve price.

        Args:
            participant: Buyer address
            amount: Number of units (>= 1)
            payment: Value attached to the call (native asset only)

        Returns:
            Minted token identifiers
        """
        self.clock.require(Phase.PUBLIC_MINT, "mint")
        ensure(
            validate_address(participant, "participant"),
            validate_integer(amount, "amount", min_val=1),
            validate_amount(payment, "payment"),
        )
        if self.supply.is_exhausted():
            raise SupplyExhausted(f"Max supply {self.supply.max_supply} reached")

        now = self.clock.now()
        unit_price = self.unit_price_at(now)
        cost = unit_price * amount
        charge = self.payments.quote_charge(cost, payment, "public mint")

        # Bookkeeping first
        token_ids = self.supply.reserve(amount)
        self.curve.clearing_price = unit_price + self.increase_rate * amount
        self.curve.last_mint_time = now
        self.payments.add_proceeds(charge)
        self.events.emit(PublicMintEvent(
            participant=bytes(participant),
            first_token_id=token_ids[0],
            amount=amount,
            unit_price=unit_price,
        ))

        # External effects second
        self.payments.take(participant, charge)
        for token_id in token_ids:
            self.registry.mint(participant, token_id)

        logger.info(f"Public mint: {amount} units to {short_hex(participant)} at {unit_price} each "
                    f"(next clearing price {self.curve.clearing_price})")
        return token_ids


__all__ = ["DecayingSaleController", "SaleCurveState", "PublicMintQuote"]
