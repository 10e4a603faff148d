"""
Restricted Sale - Settlement of revealed appraisals.

Once the restricted-mint phase begins, every participant settles exactly
once:
- restricted_mint: appraisal inside the price band; pays the flat clearing
  price, gets the deposit back and receives one unit
- forgo: declines to mint; gets the deposit back minus band/outlier penalties
- lost_reveal: committed but never revealed; gets the deposit back (minus
  the lost-reveal penalty only if the sale is configured to apply it)

Ordering discipline: each operation validates first, then marks the
participant's record CONSUMED and advances counters, and only then moves
value or mints. A reentrant call made from inside a transfer or receiver
hook therefore sees the record already consumed and fails with
IneligibleAppraisal instead of settling twice.
"""

from sealmint.core.auction.commitment import CommitmentLedger, ParticipantStatus
from sealmint.core.auction.pricing import ForgoQuote, LostRevealQuote, PricingPolicy
from sealmint.core.errors import IneligibleAppraisal, SupplyExhausted
from sealmint.core.events import (
    EventBus,
    ForgoEvent,
    LostRevealEvent,
    RestrictedMintEvent,
)
from sealmint.core.payments import Payments
from sealmint.core.phase import Phase, PhaseClock
from sealmint.core.registry import OwnershipRegistry
from sealmint.core.sale.supply import SupplyCounter
from sealmint.crypto import short_hex
from sealmint.utils.logger import get_logger
from sealmint.utils.validation import ensure, validate_address, validate_amount

logger = get_logger("sale.restricted")


class RestrictedSaleController:
    """
    Orchestrates restricted mint, forgo and lost-reveal settlement.
    """

    def __init__(
        self,
        ledger: CommitmentLedger,
        pricing: PricingPolicy,
        supply: SupplyCounter,
        payments: Payments,
        registry: OwnershipRegistry,
        clock: PhaseClock,
        events: EventBus,
    ):
        self.ledger = ledger
        self.pricing = pricing
        self.supply = supply
        self.payments = payments
        self.registry = registry
        self.clock = clock
        self.events = events

    @property
    def deposit(self) -> int:
        return self.ledger.deposit

    def _require_revealed(self, participant: bytes, operation: str) -> int:
        record = self.ledger.get(participant)
        if record.status != ParticipantStatus.REVEALED:
            raise IneligibleAppraisal(
                f"{operation}: no revealed appraisal for {short_hex(participant)} "
                f"(status: {record.status.name})"
            )
        return record.appraisal

    # =========================================================================
    # Restricted Mint
    # =========================================================================

    def restricted_mint(self, participant: bytes, payment: int = 0) -> int:
        """
        Mint one unit at the clearing price.

        Args:
            participant: Revealed participant
            payment: Value attached to the call (native asset only)

        Returns:
            Minted token identifier
        """
        self.clock.require_at_least(Phase.RESTRICTED_MINT, "restricted_mint")
        ensure(validate_address(participant, "participant"), validate_amount(payment, "payment"))

        appraisal = self._require_revealed(participant, "restricted_mint")
        if not self.pricing.can_restricted_mint(appraisal):
            band = self.pricing.price_band()
            raise IneligibleAppraisal(
                f"Appraisal {appraisal} outside price band [{band.lower}, {band.upper}]"
            )
        if self.supply.is_exhausted():
            raise SupplyExhausted(f"Max supply {self.supply.max_supply} reached")

        price = self.pricing.restricted_mint_price()
        charge = self.payments.quote_charge(price, payment, "restricted mint")

        # Bookkeeping first
        self.ledger.consume(participant)
        token_id = self.supply.reserve(1)[0]
        receipt = self.payments.release_deposit(self.deposit)
        self.payments.add_proceeds(charge)
        self.events.emit(RestrictedMintEvent(
            participant=bytes(participant),
            token_id=token_id,
            price=price,
            refund=receipt.refund,
        ))

        # External effects second
        self.payments.take(participant, charge)
        self.payments.refund(participant, receipt.refund)
        self.registry.mint(participant, token_id)

        logger.info(f"Restricted mint: token {token_id} to {short_hex(participant)} "
                    f"at price {price} (appraisal {appraisal})")
        return token_id

    # =========================================================================
    # Forgo
    # =========================================================================

    def forgo(self, participant: bytes) -> ForgoQuote:
        """
        Decline to mint and reclaim the deposit less penalties.

        Returns:
            The settled ForgoQuote
        """
        self.clock.require_at_least(Phase.RESTRICTED_MINT, "forgo")
        ensure(validate_address(participant, "participant"))

        appraisal = self._require_revealed(participant, "forgo")
        quote = self.pricing.forgo_quote(appraisal)

        self.ledger.consume(participant)
        receipt = self.payments.release_deposit(self.deposit, penalty=quote.penalty)
        self.events.emit(ForgoEvent(
            participant=bytes(participant),
            refund=receipt.refund,
            penalty=receipt.penalty,
        ))

        self.payments.refund(participant, receipt.refund)

        logger.info(f"Forgo by {short_hex(participant)}: refund={quote.refund}, "
                    f"band_penalty={quote.band_penalty}, outlier_surcharge={quote.outlier_surcharge}")
        return quote

    # =========================================================================
    # Lost Reveal
    # =========================================================================

    def lost_reveal(self, participant: bytes) -> LostRevealQuote:
        """
        Reclaim the deposit of a commitment that was never revealed.

        Returns:
            The settled LostRevealQuote
        """
        self.clock.require_at_least(Phase.RESTRICTED_MINT, "lost_reveal")
        ensure(validate_address(participant, "participant"))

        record = self.ledger.get(participant)
        if record.status != ParticipantStatus.COMMITTED:
            raise IneligibleAppraisal(
                f"lost_reveal: no unrevealed commitment for {short_hex(participant)} "
                f"(status: {record.status.name})"
            )

        quote = self.pricing.lost_reveal_quote()

        self.ledger.consume(participant)
        receipt = self.payments.release_deposit(self.deposit, penalty=quote.applied_penalty)
        self.events.emit(LostRevealEvent(
            participant=bytes(participant),
            refund=receipt.refund,
            penalty=receipt.penalty,
        ))

        self.payments.refund(participant, receipt.refund)

        if quote.applied_penalty:
            logger.info(f"Lost reveal by {short_hex(participant)}: refund={quote.refund}, "
                        f"penalty={quote.applied_penalty}")
        else:
            logger.info(f"Lost reveal by {short_hex(participant)}: full refund {quote.refund} "
                        f"(computed penalty {quote.computed_penalty} not applied)")
        return quote


__all__ = ["RestrictedSaleController"]
