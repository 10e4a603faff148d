"""
Commitment Ledger - Sealed appraisals and their deposits.

During the commit phase each participant submits
    C = keccak256(address || uint256(appraisal) || blinding_factor)
together with a fixed deposit. The appraisal stays hidden until the reveal
phase, which prevents participants from copying or undercutting each
other's price.

Participant lifecycle:

    ABSENT --commit--> COMMITTED --reveal--> REVEALED --mint/forgo--> CONSUMED
                           |                                            ^
                           +---------------- lost_reveal ---------------+

The status is explicit, so an appraisal of 0 is a legal bid rather than a
"not revealed" marker. Commitment and appraisal are never held at the same
time, and while a record is COMMITTED or REVEALED exactly one deposit is
held for it.

Recommit semantics: a participant who commits again during the commit
phase replaces the previous commitment and pays the deposit again. Only one
deposit is ever refundable, so the earlier one is forfeited to the sale's
proceeds.
"""

import copy
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sealmint.core.errors import SaleError
from sealmint.core.events import CommitEvent, EventBus
from sealmint.core.journal import Journaled
from sealmint.core.phase import Phase, PhaseClock
from sealmint.core.payments import Payments
from sealmint.crypto import keccak256, random_blinding_factor, short_hex
from sealmint.utils.logger import get_logger
from sealmint.utils.validation import (
    ensure,
    validate_address,
    validate_amount,
    validate_hash,
)

logger = get_logger("commit")


# =============================================================================
# Participant State
# =============================================================================


class ParticipantStatus(IntEnum):
    """Where a participant is in the sale lifecycle."""
    ABSENT = 0      # Never committed
    COMMITTED = 1   # Sealed commitment held, deposit held
    REVEALED = 2    # Appraisal pending settlement, deposit held
    CONSUMED = 3    # Settled (mint, forgo or lost reveal); terminal


@dataclass
class ParticipantRecord:
    """
    Per-participant sale state.

    Attributes:
        address: 20-byte participant identity
        status: Lifecycle state
        commitment: Sealed hash while COMMITTED, else None
        appraisal: Revealed appraisal while REVEALED, else None
        commit_count: Number of commits made (deposits charged)
    """
    address: bytes
    status: ParticipantStatus = ParticipantStatus.ABSENT
    commitment: Optional[bytes] = None
    appraisal: Optional[int] = None
    commit_count: int = 0

    @property
    def has_commitment(self) -> bool:
        return self.status == ParticipantStatus.COMMITTED

    @property
    def has_appraisal(self) -> bool:
        return self.status == ParticipantStatus.REVEALED

    @property
    def holds_deposit(self) -> bool:
        return self.status in (ParticipantStatus.COMMITTED, ParticipantStatus.REVEALED)

    def to_row(self) -> Tuple[bytes, int, Optional[bytes], Optional[str], int]:
        """Storage row; appraisals are uint256 so they are stored as text."""
        appraisal = str(self.appraisal) if self.appraisal is not None else None
        return self.address, int(self.status), self.commitment, appraisal, self.commit_count

    @classmethod
    def from_row(cls, row) -> "ParticipantRecord":
        address, status, commitment, appraisal, commit_count = row
        return cls(
            address=bytes(address),
            status=ParticipantStatus(status),
            commitment=bytes(commitment) if commitment is not None else None,
            appraisal=int(appraisal) if appraisal is not None else None,
            commit_count=commit_count,
        )


@dataclass
class AppraisalOpening:
    """The secret a participant keeps until the reveal phase."""
    participant: bytes
    appraisal: int
    blinding_factor: bytes

    def compute_commitment(self) -> bytes:
        return compute_commitment(self.participant, self.appraisal, self.blinding_factor)


# =============================================================================
# Commitment Hashing
# =============================================================================


def compute_commitment(participant: bytes, appraisal: int, blinding_factor: bytes) -> bytes:
    """
    Hash binding a participant to an appraisal.

    Packed encoding: 20-byte address, 32-byte big-endian appraisal,
    32-byte blinding factor.
    """
    return keccak256(participant + appraisal.to_bytes(32, "big") + blinding_factor)


def create_sealed_appraisal(
    participant: bytes,
    appraisal: int,
    blinding_factor: Optional[bytes] = None,
) -> Tuple[bytes, AppraisalOpening]:
    """
    Create a matching commitment/opening pair.

    Args:
        participant: Participant address
        appraisal: Appraisal to seal
        blinding_factor: 32-byte secret (random if omitted)

    Returns:
        (commitment, opening)
    """
    if blinding_factor is None:
        blinding_factor = random_blinding_factor()
    opening = AppraisalOpening(
        participant=participant,
        appraisal=appraisal,
        blinding_factor=blinding_factor,
    )
    return opening.compute_commitment(), opening


# =============================================================================
# Commitment Ledger
# =============================================================================


class CommitmentLedger(Journaled):
    """
    Stores one sealed commitment and deposit per participant.

    Also owns the participant records that the reveal engine and the
    settlement controllers transition.
    """

    def __init__(
        self,
        clock: PhaseClock,
        payments: Payments,
        events: EventBus,
        deposit: int,
    ):
        self.clock = clock
        self.payments = payments
        self.events = events
        self.deposit = deposit

        # address -> ParticipantRecord
        self.records: Dict[bytes, ParticipantRecord] = {}

        # addresses modified since the last persist
        self.dirty: Set[bytes] = set()

    # =========================================================================
    # Commit Phase
    # =========================================================================

    def commit(self, participant: bytes, commitment: bytes, payment: int = 0) -> ParticipantRecord:
        """
        Submit (or replace) a sealed appraisal.

        Args:
            participant: Committing address
            commitment: 32-byte commitment hash
            payment: Value attached to the call (native asset only)

        Returns:
            The participant's updated record
        """
        self.clock.require(Phase.COMMIT, "commit")
        ensure(
            validate_address(participant, "participant"),
            validate_hash(commitment, "commitment"),
            validate_amount(payment, "payment"),
        )
        charge = self.payments.quote_charge(self.deposit, payment, "commit deposit")

        record = self._checkout(participant)
        replaced = record.has_commitment
        if replaced:
            # Earlier deposit stays in the sale but is no longer refundable
            self.payments.forfeit_deposit(self.deposit)

        record.commitment = bytes(commitment)
        record.appraisal = None
        record.status = ParticipantStatus.COMMITTED
        record.commit_count += 1
        self._store(record)

        self.payments.hold_deposit(self.deposit, charge)
        self.events.emit(CommitEvent(participant=record.address, commitment=record.commitment))

        self.payments.take(participant, charge)

        if replaced:
            logger.info(f"Commit replaced for {short_hex(participant)} "
                        f"(commit #{record.commit_count}, previous deposit forfeited)")
        else:
            logger.info(f"Commit from {short_hex(participant)}: {short_hex(commitment)}")
        return record

    # =========================================================================
    # Record Transitions
    # =========================================================================

    def record_reveal(self, participant: bytes, appraisal: int) -> ParticipantRecord:
        """COMMITTED -> REVEALED: clear the commitment, keep the appraisal."""
        if self.status_of(participant) != ParticipantStatus.COMMITTED:
            raise SaleError(f"Cannot reveal from status {self.status_of(participant).name}")
        record = self._checkout(participant)
        record.commitment = None
        record.appraisal = appraisal
        record.status = ParticipantStatus.REVEALED
        self._store(record)
        return record

    def consume(self, participant: bytes) -> ParticipantRecord:
        """
        Settle a record (terminal).

        Returns the record as it was before consumption so callers can
        still read the appraisal they are settling.
        """
        before = self.get(participant)
        if not before.holds_deposit:
            raise SaleError(f"Cannot consume record in status {before.status.name}")
        record = self._checkout(participant)
        record.commitment = None
        record.appraisal = None
        record.status = ParticipantStatus.CONSUMED
        self._store(record)
        return before

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, participant: bytes) -> ParticipantRecord:
        """Record for `participant` (a detached ABSENT record if unknown)."""
        record = self.records.get(bytes(participant))
        if record is None:
            return ParticipantRecord(address=bytes(participant))
        return record

    def commitment_of(self, participant: bytes) -> Optional[bytes]:
        return self.get(participant).commitment

    def appraisal_of(self, participant: bytes) -> Optional[int]:
        return self.get(participant).appraisal

    def status_of(self, participant: bytes) -> ParticipantStatus:
        return self.get(participant).status

    def participants(self, status: Optional[ParticipantStatus] = None) -> List[bytes]:
        return [
            addr for addr, record in self.records.items()
            if status is None or record.status == status
        ]

    def get_commit_count(self) -> int:
        """Participants currently holding a commitment."""
        return len(self.participants(ParticipantStatus.COMMITTED))

    def get_unrevealed(self) -> List[bytes]:
        """Participants who committed but never revealed (and haven't reclaimed)."""
        return self.participants(ParticipantStatus.COMMITTED)

    # =========================================================================
    # Persistence / Rollback
    # =========================================================================

    def _store(self, record: ParticipantRecord) -> None:
        self.records[record.address] = record
        self.dirty.add(record.address)

    def take_dirty(self) -> List[ParticipantRecord]:
        dirty = [self.records[addr] for addr in self.dirty if addr in self.records]
        self.dirty.clear()
        return dirty

    def load(self, records: Iterable[ParticipantRecord]) -> None:
        for record in records:
            self.records[record.address] = record

    def _checkout(self, participant: bytes) -> ParticipantRecord:
        """
        Writable copy of a participant's record.

        The stored record is never changed in place: the copy replaces it
        in `_store`, and the journal can put the previous object back.
        """
        address = bytes(participant)
        previous = self.records.get(address)
        self._record_undo(lambda: self._revert(address, previous))
        if previous is None:
            return ParticipantRecord(address=address)
        return copy.copy(previous)

    def _revert(self, address: bytes, previous: Optional[ParticipantRecord]) -> None:
        if previous is None:
            self.records.pop(address, None)
        else:
            self.records[address] = previous
        self.dirty.add(address)


__all__ = [
    "ParticipantStatus",
    "ParticipantRecord",
    "AppraisalOpening",
    "CommitmentLedger",
    "compute_commitment",
    "create_sealed_appraisal",
]
