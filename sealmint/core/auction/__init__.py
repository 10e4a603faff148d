"""
sealmint Auction Module.

This module provides the sealed-appraisal price discovery:
- Commitment ledger (commit phase, deposits, participant records)
- Reveal engine (commitment openings)
- Online price statistics
- Eligibility band, restricted price and refund quotes
"""

from sealmint.core.auction.statistics import (
    PriceStatistics,
    compute_statistics,
)

from sealmint.core.auction.commitment import (
    CommitmentLedger,
    ParticipantRecord,
    ParticipantStatus,
    AppraisalOpening,
    compute_commitment,
    create_sealed_appraisal,
)

from sealmint.core.auction.reveal import RevealEngine

from sealmint.core.auction.pricing import (
    PricingPolicy,
    PriceBand,
    ForgoQuote,
    LostRevealQuote,
    DEFAULT_BAND_FACTOR,
    DEFAULT_OUTLIER_FACTOR,
    DEFAULT_LOST_REVEAL_PENALTY_PCT,
)

__all__ = [
    # Statistics
    "PriceStatistics",
    "compute_statistics",
    # Commitments
    "CommitmentLedger",
    "ParticipantRecord",
    "ParticipantStatus",
    "AppraisalOpening",
    "compute_commitment",
    "create_sealed_appraisal",
    # Reveal
    "RevealEngine",
    # Pricing
    "PricingPolicy",
    "PriceBand",
    "ForgoQuote",
    "LostRevealQuote",
    "DEFAULT_BAND_FACTOR",
    "DEFAULT_OUTLIER_FACTOR",
    "DEFAULT_LOST_REVEAL_PENALTY_PCT",
]
