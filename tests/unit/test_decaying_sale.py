"""
Tests for the decaying public sale.

Tests cover:
1. Curve seeding from the auction
2. Decay with time and increase with units sold
3. Price floor
4. Supply boundary (can_mint vs mint)
5. Rollback on failed payment
"""

import pytest

from sealmint.core.assets import NativeAssetBook
from sealmint.core.auction import create_sealed_appraisal
from sealmint.core.config import SaleConfig
from sealmint.core.errors import InsufficientFunds, InvalidInput, PhaseViolation, SupplyExhausted
from sealmint.core.events import PublicMintEvent
from sealmint.core.phase import ManualClock
from sealmint.core.sale import SealedBidSale


SALE = b"\x5a" * 20
OWNER = b"\x0e" * 20
ALICE = b"\xa1" * 20
BOB = b"\xb0" * 20
CAROL = b"\xc0" * 20
BUYER = b"\xbb" * 20

DEPOSIT = 1000


# =============================================================================
# Fixtures
# =============================================================================


def make_sale(max_supply=10, appraisals=(100, 200, 300)):
    config = SaleConfig(
        deposit=DEPOSIT,
        min_price=10,
        max_supply=max_supply,
        decay_rate=1,
        increase_rate=5,
        commit_start=100,
        reveal_start=200,
        restricted_start=300,
        public_start=400,
    )
    clock = ManualClock(100)
    assets = NativeAssetBook(SALE)
    for who in (ALICE, BOB, CAROL, BUYER):
        assets.credit(who, 1_000_000)
    sale = SealedBidSale(config, assets, owner=OWNER, time_source=clock)

    openings = []
    for who, appraisal in zip((ALICE, BOB, CAROL), appraisals):
        commitment, opening = create_sealed_appraisal(who, appraisal)
        sale.commit(who, commitment, payment=DEPOSIT)
        openings.append(opening)
    clock.set(200)
    for opening in openings:
        sale.reveal(opening.participant, opening.appraisal, opening.blinding_factor)
    clock.set(400)
    return sale, clock, assets


@pytest.fixture
def public_sale():
    """Public phase, clearing price 200."""
    return make_sale()


# =============================================================================
# Curve Tests
# =============================================================================


class TestPriceCurve:
    """Tests for the decaying unit price."""

    def test_seeded_from_clearing_price(self, public_sale):
        sale, _, _ = public_sale
        assert sale.public_unit_price() == 200

    def test_first_mint_priced_at_seed(self, public_sale):
        sale, _, assets = public_sale
        token_ids = sale.mint(BUYER, 2, payment=400)

        assert token_ids == [0, 1]
        assert sale.curve.clearing_price == 210
        assert sale.curve.last_mint_time == 400
        assert assets.balance_of(BUYER) == 1_000_000 - 400
        assert sale.events.of_type(PublicMintEvent) == [
            PublicMintEvent(participant=BUYER, first_token_id=0, amount=2, unit_price=200)
        ]

    def test_decay_between_mints(self, public_sale):
        """unit = clearing - elapsed * decay, then clearing = unit + increase * amount."""
        sale, clock, _ = public_sale
        sale.mint(BUYER, 2, payment=400)

        clock.advance(30)
        quote = sale.public_quote(1)
        assert quote.unit_price == 180
        assert quote.cost == 180
        assert quote.next_clearing_price == 185

        sale.mint(BUYER, 1, payment=180)
        assert sale.curve.clearing_price == 185
        assert sale.curve.last_mint_time == 430

    def test_no_decay_without_elapsed_time(self, public_sale):
        sale, _, _ = public_sale
        sale.mint(BUYER, 1, payment=200)
        assert sale.public_unit_price() == 205

    def test_price_floor(self, public_sale):
        sale, clock, _ = public_sale
        sale.mint(BUYER, 1, payment=200)
        clock.advance(100_000)
        assert sale.public_unit_price() == 10

    def test_statistics_stay_frozen(self, public_sale):
        """Public mints move the curve, not the auction statistics."""
        sale, clock, _ = public_sale
        sale.mint(BUYER, 3, payment=600)
        clock.advance(10)
        sale.mint(BUYER, 1, payment=1000)

        assert sale.statistics.mean == 200
        assert sale.statistics.variance == 10000
        assert sale.restricted_mint_price() == 200

    def test_no_reveals_starts_at_floor(self):
        sale, _, _ = make_sale(appraisals=())
        assert sale.public_unit_price() == 10
        assert sale.mint(BUYER, 1, payment=10) == [0]


# =============================================================================
# Supply Boundary Tests
# =============================================================================


class TestSupplyBoundary:
    """can_mint is strict while mint accepts landing exactly on the cap."""

    def test_can_mint_strict(self, public_sale):
        sale, _, _ = public_sale
        assert sale.can_mint(9)
        assert not sale.can_mint(10)

    def test_mint_exactly_to_cap(self, public_sale):
        """Reported unmintable by can_mint, yet the mint succeeds."""
        sale, _, _ = public_sale
        assert not sale.can_mint(10)

        token_ids = sale.mint(BUYER, 10, payment=2000)
        assert token_ids == list(range(10))
        assert sale.total_supply == 10

    def test_exhausted(self, public_sale):
        sale, _, _ = public_sale
        sale.mint(BUYER, 10, payment=2000)
        with pytest.raises(SupplyExhausted):
            sale.mint(BUYER, 1, payment=10_000)

    def test_overshoot_rejected(self, public_sale):
        sale, _, assets = public_sale
        sale.mint(BUYER, 8, payment=1600)
        balance = assets.balance_of(BUYER)
        curve = sale.curve.snapshot()

        with pytest.raises(SupplyExhausted):
            sale.mint(BUYER, 3, payment=10_000)

        assert sale.total_supply == 8
        assert assets.balance_of(BUYER) == balance
        assert sale.curve.snapshot() == curve

    def test_ids_shared_with_restricted_mints(self, public_sale):
        """Both sales draw identifiers from the same counter."""
        sale, _, _ = public_sale
        sale.restricted_mint(BOB, payment=200)
        assert sale.mint(BUYER, 2, payment=400) == [1, 2]
        assert sale.can_mint(6)
        assert not sale.can_mint(7)


# =============================================================================
# Validation Tests
# =============================================================================


class TestPublicMintValidation:
    """Tests for rejected public mints."""

    def test_zero_amount(self, public_sale):
        sale, _, _ = public_sale
        with pytest.raises(InvalidInput):
            sale.mint(BUYER, 0, payment=0)

    def test_before_public_phase(self):
        config = SaleConfig(commit_start=100, reveal_start=200, restricted_start=300, public_start=400)
        clock = ManualClock(350)
        sale = SealedBidSale(config, NativeAssetBook(SALE), owner=OWNER, time_source=clock)
        with pytest.raises(PhaseViolation):
            sale.mint(BUYER, 1, payment=10**18)

    def test_underpayment_rolls_back(self, public_sale):
        sale, _, assets = public_sale
        with pytest.raises(InsufficientFunds):
            sale.mint(BUYER, 2, payment=399)

        assert sale.total_supply == 0
        assert sale.curve.clearing_price is None
        assert sale.curve.last_mint_time is None
        assert assets.balance_of(BUYER) == 1_000_000

    def test_balance_too_low_rolls_back(self, public_sale):
        """Payment covers the cost on paper but the buyer can't fund it."""
        sale, _, assets = public_sale
        poor = b"\x01" * 20
        assets.credit(poor, 100)

        with pytest.raises(InsufficientFunds):
            sale.mint(poor, 1, payment=200)

        assert sale.total_supply == 0
        assert sale.proceeds == 0
        assert sale.registry.total_minted() == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
