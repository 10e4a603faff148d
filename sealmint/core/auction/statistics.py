"""
Price Statistics - Online mean/variance over revealed appraisals.

The recurrence is evaluated in unsigned, truncating integer arithmetic:

    N == 0:  M = x,  V = 0
    N  > 0:  diff  = |x - M|
             carry = ((N - 1) * V) // N
             delta = diff**2 // (N + 1)
             V     = carry + delta
             M     = (N * M + x) // (N + 1)
    N = N + 1

This is NOT Welford's algorithm and does not track the population
variance exactly once N > 2. Eligibility bands and forgo penalties are
defined over exactly these values, so the recurrence must not be replaced
with a textbook one.

Example: appraisals 100, 200, 300 give means 100, 150, 200 and variances
0, 5000, 10000 (std dev 100).
"""

import math
from dataclasses import dataclass
from typing import Dict, Tuple

from sealmint.core.errors import StatisticsUnavailable
from sealmint.utils.logger import get_logger

logger = get_logger("statistics")


@dataclass
class PriceStatistics:
    """
    Running count, mean and variance of revealed appraisals.

    Attributes:
        count: Number of reveals (N)
        mean: Running mean (M), also the clearing price
        variance: Running variance (V)
    """
    count: int = 0
    mean: int = 0
    variance: int = 0

    def update(self, x: int) -> None:
        """Fold one revealed appraisal into the statistics."""
        if x < 0:
            raise ValueError("Appraisal must be non-negative")

        n = self.count
        if n == 0:
            self.mean = x
            self.variance = 0
        else:
            diff = abs(x - self.mean)
            carry = ((n - 1) * self.variance) // n
            delta = (diff * diff) // (n + 1)
            self.variance = carry + delta
            self.mean = (n * self.mean + x) // (n + 1)
        self.count = n + 1

        logger.debug(f"Statistics after {self.count} reveals: mean={self.mean}, variance={self.variance}")

    @property
    def has_samples(self) -> bool:
        return self.count > 0

    def require_samples(self) -> None:
        if self.count == 0:
            raise StatisticsUnavailable("No appraisals have been revealed")

    @property
    def std_dev(self) -> int:
        """floor(sqrt(V))."""
        return math.isqrt(self.variance)

    def to_dict(self) -> Dict[str, int]:
        return {"count": self.count, "mean": self.mean, "variance": self.variance}

    def snapshot(self) -> Tuple[int, int, int]:
        return self.count, self.mean, self.variance

    def restore(self, state: Tuple[int, int, int]) -> None:
        self.count, self.mean, self.variance = state


def compute_statistics(appraisals) -> PriceStatistics:
    """Run the recurrence over a sequence of appraisals in order."""
    stats = PriceStatistics()
    for appraisal in appraisals:
        stats.update(appraisal)
    return stats


__all__ = ["PriceStatistics", "compute_statistics"]
