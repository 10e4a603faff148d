"""
Sealed-Bid Sale - The complete issuance mechanism behind one entry point.

Wires the phase clock, commitment ledger, reveal engine, statistics,
pricing policy and both sale controllers around shared collaborators
(asset book, ownership registry, event bus, optional storage).

Execution model
---------------
Every public operation:
1. takes the sale lock (re-entrant, so a receiver hook running inside an
   operation may call back in on the same thread),
2. opens a section of the undo journal shared by the ledger, the asset
   book and the registry, and records the small fixed-size state
   (statistics, supply, curve, books, pending events),
3. runs the component operation (validate -> mutate bookkeeping ->
   transfer/mint),
4. on any exception replays the journal back to its mark, restores the
   fixed-size state and re-raises; otherwise persists the changes
   (outermost call only) and publishes buffered events.

An operation is therefore all-or-nothing: a failed transfer or a rejecting
receiver leaves no trace in balances, records, statistics or supply.
"""

import copy
import threading
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from sealmint.core.assets import AssetTransfer
from sealmint.core.auction import (
    CommitmentLedger,
    ForgoQuote,
    LostRevealQuote,
    ParticipantRecord,
    PriceBand,
    PriceStatistics,
    PricingPolicy,
    RevealEngine,
)
from sealmint.core.config import NATIVE_ASSET, SaleConfig
from sealmint.core.errors import InvalidInput, SaleError, Unauthorized
from sealmint.core.events import EventBus, WithdrawalEvent
from sealmint.core.journal import UndoJournal
from sealmint.core.payments import Payments
from sealmint.core.phase import Phase, PhaseClock
from sealmint.core.registry import OwnershipRegistry
from sealmint.core.sale.decaying import DecayingSaleController, PublicMintQuote, SaleCurveState
from sealmint.core.sale.restricted import RestrictedSaleController
from sealmint.core.sale.supply import SupplyCounter
from sealmint.core.storage import StorageManager
from sealmint.crypto import short_hex
from sealmint.utils.logger import get_logger
from sealmint.utils.validation import ensure, validate_address

logger = get_logger("sale")


class SealedBidSale:
    """
    Phased sealed-appraisal sale with restricted and decaying public mints.

    Usage:
        sale = SealedBidSale(config, assets, owner=issuer, time_source=clock)
        sale.commit(alice, commitment, payment=config.deposit)
        ...
        sale.reveal(alice, appraisal, blinding_factor)
        ...
        sale.restricted_mint(alice, payment=sale.restricted_mint_price())
    """

    def __init__(
        self,
        config: SaleConfig,
        assets: AssetTransfer,
        owner: bytes,
        registry: Optional[OwnershipRegistry] = None,
        time_source: Optional[Callable[[], int]] = None,
        storage_manager: Optional[StorageManager] = None,
        events: Optional[EventBus] = None,
    ):
        """
        Initialize the sale.

        Args:
            config: Economic parameters and phase schedule
            assets: Asset book settling deposits, prices and refunds
            owner: Issuer address allowed to withdraw proceeds
            registry: Ownership registry (a fresh one if omitted)
            time_source: Callable returning unix seconds (system time if omitted)
            storage_manager: Persistence manager. If omitted, one is opened
                in config.data_dir; with neither the sale is in-memory only.
            events: Event bus (a fresh one if omitted)
        """
        ensure(validate_address(owner, "owner"))
        expects_attached = config.payment_asset == NATIVE_ASSET
        if assets.attached_payment != expects_attached:
            raise InvalidInput(
                f"payment_asset={config.payment_asset!r} does not match "
                f"{type(assets).__name__}"
            )

        self.config = config
        self.owner = bytes(owner)
        self.assets = assets
        self.registry = registry or OwnershipRegistry(operator=assets.sale_account)
        self.events = events or EventBus()
        if storage_manager is None and config.data_dir is not None:
            storage_manager = StorageManager(config.data_dir)
        self.storage_manager = storage_manager

        self.clock = PhaseClock(config.phase_window(), time_source)
        self.payments = Payments(assets)
        self.statistics = PriceStatistics()
        self.supply = SupplyCounter(max_supply=config.max_supply)
        self.curve = SaleCurveState()

        self.ledger = CommitmentLedger(
            clock=self.clock,
            payments=self.payments,
            events=self.events,
            deposit=config.deposit,
        )
        self.reveal_engine = RevealEngine(
            ledger=self.ledger,
            statistics=self.statistics,
            clock=self.clock,
            events=self.events,
        )
        self.pricing = PricingPolicy(
            statistics=self.statistics,
            deposit=config.deposit,
            min_price=config.min_price,
            band_factor=config.band_factor,
            outlier_factor=config.outlier_factor,
            lost_reveal_penalty_pct=config.lost_reveal_penalty_pct,
            apply_lost_reveal_penalty=config.apply_lost_reveal_penalty,
        )
        self.restricted = RestrictedSaleController(
            ledger=self.ledger,
            pricing=self.pricing,
            supply=self.supply,
            payments=self.payments,
            registry=self.registry,
            clock=self.clock,
            events=self.events,
        )
        self.public = DecayingSaleController(
            curve=self.curve,
            statistics=self.statistics,
            supply=self.supply,
            payments=self.payments,
            registry=self.registry,
            clock=self.clock,
            events=self.events,
            min_price=config.min_price,
            decay_rate=config.decay_rate,
            increase_rate=config.increase_rate,
        )

        self.journal = UndoJournal()
        for component in (self.ledger, self.assets, self.registry):
            component.use_journal(self.journal)

        self._lock = threading.RLock()
        self._depth = 0

        if storage_manager:
            self._load_from_storage()

        logger.info(f"Sale initialized: deposit={config.deposit}, min_price={config.min_price}, "
                    f"max_supply={config.max_supply}, asset={config.payment_asset}")

    # =========================================================================
    # Atomic Execution
    # =========================================================================

    def _snapshot(self) -> Dict[str, object]:
        return {
            "journal": self.journal.begin(),
            "statistics": self.statistics.snapshot(),
            "supply": self.supply.snapshot(),
            "curve": self.curve.snapshot(),
            "payments": self.payments.snapshot(),
            "events": self.events.snapshot(),
        }

    def _restore(self, snapshot: Dict[str, object]) -> None:
        self.journal.rollback(snapshot["journal"])
        self.statistics.restore(snapshot["statistics"])
        self.supply.restore(snapshot["supply"])
        self.curve.restore(snapshot["curve"])
        self.payments.restore(snapshot["payments"])
        self.events.restore(snapshot["events"])

    @contextmanager
    def _operation(self, name: str, participant: bytes):
        with self._lock:
            snapshot = self._snapshot()
            self._depth += 1
            try:
                yield
                if self._depth == 1:
                    self._persist()
            except Exception as exc:
                self._restore(snapshot)
                if isinstance(exc, SaleError):
                    logger.warning(f"{name} rejected for {_fmt(participant)}: "
                                   f"{type(exc).__name__}: {exc}")
                else:
                    logger.error(f"{name} aborted for {_fmt(participant)}: {exc!r}")
                raise
            finally:
                self._depth -= 1
                self.journal.end()
            if self._depth == 0:
                self.events.flush()

    # =========================================================================
    # Operations
    # =========================================================================

    def commit(self, participant: bytes, commitment: bytes, payment: int = 0) -> ParticipantRecord:
        """Commit phase: seal an appraisal and pay the deposit."""
        participant = _canonical(participant)
        with self._operation("commit", participant):
            return copy.copy(self.ledger.commit(participant, commitment, payment))

    def reveal(self, participant: bytes, appraisal: int, blinding_factor: bytes) -> int:
        """Reveal phase: open a commitment. Returns the reveal count."""
        participant = _canonical(participant)
        with self._operation("reveal", participant):
            return self.reveal_engine.reveal(participant, appraisal, blinding_factor)

    def restricted_mint(self, participant: bytes, payment: int = 0) -> int:
        """Restricted phase onward: mint one unit at the clearing price."""
        participant = _canonical(participant)
        with self._operation("restricted_mint", participant):
            return self.restricted.restricted_mint(participant, payment)

    def forgo(self, participant: bytes) -> ForgoQuote:
        """Restricted phase onward: decline to mint, reclaim deposit less penalties."""
        participant = _canonical(participant)
        with self._operation("forgo", participant):
            return self.restricted.forgo(participant)

    def lost_reveal(self, participant: bytes) -> LostRevealQuote:
        """Restricted phase onward: reclaim the deposit of an unrevealed commitment."""
        participant = _canonical(participant)
        with self._operation("lost_reveal", participant):
            return self.restricted.lost_reveal(participant)

    def mint(self, participant: bytes, amount: int, payment: int = 0) -> List[int]:
        """Public phase: buy `amount` units on the decaying curve."""
        participant = _canonical(participant)
        with self._operation("mint", participant):
            return self.public.mint(participant, amount, payment)

    def withdraw_proceeds(self, caller: bytes, recipient: Optional[bytes] = None) -> int:
        """Owner only: pay out accumulated proceeds. Held deposits stay put."""
        caller = _canonical(caller)
        recipient = self.owner if recipient is None else _canonical(recipient)
        with self._operation("withdraw_proceeds", caller):
            ensure(validate_address(caller, "caller"), validate_address(recipient, "recipient"))
            if caller != self.owner:
                raise Unauthorized(f"{_fmt(caller)} is not the sale owner")
            amount = self.payments.withdraw(recipient)
            self.events.emit(WithdrawalEvent(recipient=recipient, amount=amount))
            return amount

    # =========================================================================
    # Views
    # =========================================================================

    def phase(self) -> Phase:
        return self.clock.current()

    def participant(self, address: bytes) -> ParticipantRecord:
        """Detached copy of the participant's record."""
        return copy.copy(self.ledger.get(_canonical(address)))

    def price_band(self) -> PriceBand:
        return self.pricing.price_band()

    def can_restricted_mint(self, appraisal: int) -> bool:
        return self.pricing.can_restricted_mint(appraisal)

    def restricted_mint_price(self) -> int:
        return self.pricing.restricted_mint_price()

    def forgo_quote(self, participant: bytes) -> ForgoQuote:
        record = self.ledger.get(_canonical(participant))
        if record.appraisal is None:
            raise InvalidInput(f"{_fmt(participant)} has no revealed appraisal")
        return self.pricing.forgo_quote(record.appraisal)

    def can_mint(self, amount: int) -> bool:
        return self.public.can_mint(amount)

    def public_unit_price(self) -> int:
        return self.public.current_unit_price()

    def public_quote(self, amount: int) -> PublicMintQuote:
        return self.public.quote(amount)

    @property
    def total_supply(self) -> int:
        return self.supply.total_supply

    @property
    def proceeds(self) -> int:
        return self.payments.proceeds

    @property
    def deposits_held(self) -> int:
        return self.payments.deposits_held

    def sale_state(self) -> Dict[str, Optional[int]]:
        """Persisted-state surface (sale-wide values)."""
        return {
            "reveal_count": self.statistics.count,
            "mean": self.statistics.mean,
            "variance": self.statistics.variance,
            "total_supply": self.supply.total_supply,
            "last_mint_time": self.curve.last_mint_time,
            "clearing_price": self.curve.clearing_price,
            "deposits_held": self.payments.deposits_held,
            "proceeds": self.payments.proceeds,
        }

    def stats(self) -> dict:
        """Summary for dashboards and the CLI."""
        summary = {
            "phase": self.phase().name,
            "participants": len(self.ledger.records),
            "std_dev": self.statistics.std_dev,
        }
        summary.update(self.sale_state())
        summary.update(self.payments.stats())
        return summary

    # =========================================================================
    # Persistence
    # =========================================================================

    def _persist(self) -> None:
        if not self.storage_manager:
            return
        rows = [record.to_row() for record in self.ledger.take_dirty()]
        state = self.sale_state()
        state.update(self.payments.lifetime_totals())
        self.storage_manager.persist_snapshot(rows, state)

    def _load_from_storage(self) -> None:
        rows = self.storage_manager.load_participants()
        self.ledger.load(ParticipantRecord.from_row(row) for row in rows)

        state = self.storage_manager.load_sale_state()
        if state:
            self.statistics.restore((state["reveal_count"], state["mean"], state["variance"]))
            self.supply.restore(state["total_supply"])
            self.curve.restore((state.get("clearing_price"), state.get("last_mint_time")))
            self.payments.restore((
                state["deposits_held"],
                state["proceeds"],
                state.get("total_collected") or 0,
                state.get("total_refunded") or 0,
                state.get("total_withdrawn") or 0,
            ))

        logger.info(f"Loaded {len(rows)} participants from storage "
                    f"(reveals={self.statistics.count}, supply={self.supply.total_supply})")

    def close(self) -> None:
        """Close the storage backend, if any."""
        if self.storage_manager:
            self.storage_manager.close()


def _canonical(address):
    """Hashable bytes for bytearray/memoryview addresses; other types are left to validation."""
    if isinstance(address, (bytearray, memoryview)):
        return bytes(address)
    return address


def _fmt(address) -> str:
    if isinstance(address, (bytes, bytearray)):
        return short_hex(bytes(address))
    return repr(address)


__all__ = ["SealedBidSale"]
