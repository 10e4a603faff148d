"""
sealmint Sale Module.

This module provides settlement and issuance:
- Supply counter (shared fixed cap, sequential identifiers)
- Restricted sale (restricted mint, forgo, lost reveal)
- Decaying public sale
- SealedBidSale facade (locking, rollback, persistence)
"""

from sealmint.core.sale.supply import SupplyCounter

from sealmint.core.sale.restricted import RestrictedSaleController

from sealmint.core.sale.decaying import (
    DecayingSaleController,
    SaleCurveState,
    PublicMintQuote,
)

from sealmint.core.sale.mechanism import SealedBidSale

__all__ = [
    "SupplyCounter",
    "RestrictedSaleController",
    "DecayingSaleController",
    "SaleCurveState",
    "PublicMintQuote",
    "SealedBidSale",
]
