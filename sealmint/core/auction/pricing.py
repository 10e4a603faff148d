"""
Eligibility and Pricing - Everything derived from the revealed statistics.

Given the running mean M and std dev S (see statistics.py), a band factor F
and an outlier factor OF:

    price band             [M - F*S, M + F*S]         (inclusive)
    restricted mint price  max(M, min_price)          (flat, same for everyone)
    forgo:
        diff              = |a - M|
        band penalty      = ((diff // S) * deposit) // 100          if S > 0 and a in band
        outlier surcharge = ((OF * (diff // S)) * deposit) // 100   if S > 0
        refund            = deposit - (band penalty + outlier surcharge)
    lost reveal:
        penalty           = deposit * lost_reveal_penalty_pct // 100
        refund            = deposit (penalty discarded) unless applied by config

All arithmetic is unsigned: a band whose lower edge would drop below zero,
or penalties exceeding the deposit, raise ArithmeticUnderflow instead of
clamping.

The restricted mint price deliberately carries no per-participant discount;
every eligible participant pays the same clearing price.
"""

from dataclasses import dataclass

from sealmint.core.auction.statistics import PriceStatistics
from sealmint.core.errors import ArithmeticUnderflow
from sealmint.utils.logger import get_logger

logger = get_logger("pricing")


# =============================================================================
# Constants
# =============================================================================

DEFAULT_BAND_FACTOR = 1
DEFAULT_OUTLIER_FACTOR = 5
DEFAULT_LOST_REVEAL_PENALTY_PCT = 50

# Penalties are expressed in percent of the deposit
PERCENT = 100


# =============================================================================
# Quotes
# =============================================================================


@dataclass(frozen=True)
class PriceBand:
    """Inclusive eligibility interval."""
    lower: int
    upper: int

    def contains(self, appraisal: int) -> bool:
        return self.lower <= appraisal <= self.upper


@dataclass(frozen=True)
class ForgoQuote:
    """Refund owed to a participant who declines to mint."""
    appraisal: int
    deviation: int
    band_penalty: int
    outlier_surcharge: int
    refund: int

    @property
    def penalty(self) -> int:
        return self.band_penalty + self.outlier_surcharge


@dataclass(frozen=True)
class LostRevealQuote:
    """Refund owed to a participant who committed but never revealed."""
    computed_penalty: int
    applied_penalty: int
    refund: int


# =============================================================================
# Pricing Policy
# =============================================================================


class PricingPolicy:
    """
    Derives eligibility, prices and penalties from live statistics.
    """

    def __init__(
        self,
        statistics: PriceStatistics,
        deposit: int,
        min_price: int,
        band_factor: int = DEFAULT_BAND_FACTOR,
        outlier_factor: int = DEFAULT_OUTLIER_FACTOR,
        lost_reveal_penalty_pct: int = DEFAULT_LOST_REVEAL_PENALTY_PCT,
        apply_lost_reveal_penalty: bool = False,
    ):
        self.statistics = statistics
        self.deposit = deposit
        self.min_price = min_price
        self.band_factor = band_factor
        self.outlier_factor = outlier_factor
        self.lost_reveal_penalty_pct = lost_reveal_penalty_pct
        self.apply_lost_reveal_penalty = apply_lost_reveal_penalty

    # =========================================================================
    # Eligibility
    # =========================================================================

    def price_band(self) -> PriceBand:
        """
        [M - F*S, M + F*S].

        Raises:
            StatisticsUnavailable: nothing revealed yet
            ArithmeticUnderflow: M < F*S
        """
        self.statistics.require_samples()
        mean = self.statistics.mean
        width = self.band_factor * self.statistics.std_dev
        if mean < width:
            raise ArithmeticUnderflow(
                f"Price band lower bound underflows: mean {mean} < band width {width}"
            )
        return PriceBand(lower=mean - width, upper=mean + width)

    def can_restricted_mint(self, appraisal: int) -> bool:
        """Whether `appraisal` lies inside the price band (inclusive)."""
        return self.price_band().contains(appraisal)

    def restricted_mint_price(self) -> int:
        """Flat price for every eligible participant: max(M, min_price)."""
        self.statistics.require_samples()
        return max(self.statistics.mean, self.min_price)

    # =========================================================================
    # Penalties
    # =========================================================================

    def forgo_quote(self, appraisal: int) -> ForgoQuote:
        """
        Refund for forgoing with `appraisal`.

        The band penalty and the outlier surcharge are added, not chosen
        between: a participant with nonzero variance pays both when both apply.
        """
        self.statistics.require_samples()
        mean = self.statistics.mean
        std_dev = self.statistics.std_dev
        diff = abs(appraisal - mean)

        band_penalty = 0
        outlier_surcharge = 0
        if std_dev > 0:
            ratio = diff // std_dev
            if self.price_band().contains(appraisal):
                band_penalty = (ratio * self.deposit) // PERCENT
            outlier_surcharge = (self.outlier_factor * ratio * self.deposit) // PERCENT

        penalty = band_penalty + outlier_surcharge
        if penalty > self.deposit:
            raise ArithmeticUnderflow(
                f"Forgo penalty {penalty} exceeds deposit {self.deposit}"
            )

        logger.debug(f"Forgo quote for appraisal {appraisal}: diff={diff}, std_dev={std_dev}, "
                     f"band_penalty={band_penalty}, outlier_surcharge={outlier_surcharge}")
        return ForgoQuote(
            appraisal=appraisal,
            deviation=diff,
            band_penalty=band_penalty,
            outlier_surcharge=outlier_surcharge,
            refund=self.deposit - penalty,
        )

    def lost_reveal_quote(self) -> LostRevealQuote:
        """
        Refund for a commitment that was never revealed.

        The penalty is always computed; it is only deducted when
        `apply_lost_reveal_penalty` is set.
        """
        computed = (self.deposit * self.lost_reveal_penalty_pct) // PERCENT
        applied = computed if self.apply_lost_reveal_penalty else 0
        return LostRevealQuote(
            computed_penalty=computed,
            applied_penalty=applied,
            refund=self.deposit - applied,
        )


__all__ = [
    "PriceBand",
    "ForgoQuote",
    "LostRevealQuote",
    "PricingPolicy",
    "DEFAULT_BAND_FACTOR",
    "DEFAULT_OUTLIER_FACTOR",
    "DEFAULT_LOST_REVEAL_PENALTY_PCT",
]
