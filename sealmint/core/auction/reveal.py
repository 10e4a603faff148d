"""
Reveal Engine - Opens sealed appraisals and feeds the price statistics.

A reveal is accepted only during the reveal phase and only if
keccak256(participant || appraisal || blinding_factor) equals the
participant's stored commitment. On success the commitment is cleared,
the appraisal is recorded and folded into PriceStatistics, and a Reveal
notification is emitted.
"""

from sealmint.core.auction.commitment import CommitmentLedger, compute_commitment
from sealmint.core.auction.statistics import PriceStatistics
from sealmint.core.errors import InvalidCommitmentProof
from sealmint.core.events import EventBus, RevealEvent
from sealmint.core.phase import Phase, PhaseClock
from sealmint.crypto import short_hex
from sealmint.utils.logger import get_logger
from sealmint.utils.validation import (
    ensure,
    validate_address,
    validate_appraisal,
    validate_blinding_factor,
)

logger = get_logger("reveal")


class RevealEngine:
    """
    Verifies commitment openings.
    """

    def __init__(
        self,
        ledger: CommitmentLedger,
        statistics: PriceStatistics,
        clock: PhaseClock,
        events: EventBus,
    ):
        self.ledger = ledger
        self.statistics = statistics
        self.clock = clock
        self.events = events

    def reveal(self, participant: bytes, appraisal: int, blinding_factor: bytes) -> int:
        """
        Reveal a sealed appraisal.

        Args:
            participant: Revealing address
            appraisal: The appraisal that was sealed
            blinding_factor: The 32-byte secret used when sealing

        Returns:
            Reveal count after this reveal
        """
        self.clock.require(Phase.REVEAL, "reveal")
        ensure(
            validate_address(participant, "participant"),
            validate_appraisal(appraisal),
            validate_blinding_factor(blinding_factor),
        )

        record = self.ledger.get(participant)
        if not record.has_commitment:
            raise InvalidCommitmentProof(
                f"No commitment found for {short_hex(participant)} (status: {record.status.name})"
            )

        expected = compute_commitment(participant, appraisal, blinding_factor)
        if expected != record.commitment:
            logger.warning(f"Reveal mismatch for {short_hex(participant)}: "
                           f"computed {short_hex(expected)}, stored {short_hex(record.commitment)}")
            raise InvalidCommitmentProof("Reveal does not match commitment")

        self.ledger.record_reveal(participant, appraisal)
        self.statistics.update(appraisal)
        self.events.emit(RevealEvent(participant=bytes(participant), appraisal=appraisal))

        logger.info(f"Reveal from {short_hex(participant)}: appraisal={appraisal} "
                    f"(reveal #{self.statistics.count})")
        return self.statistics.count

    def get_reveal_count(self) -> int:
        return self.statistics.count


__all__ = ["RevealEngine"]
