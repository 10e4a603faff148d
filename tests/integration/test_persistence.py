import pytest

from sealmint.core.assets import NativeAssetBook
from sealmint.core.auction import ParticipantStatus, create_sealed_appraisal
from sealmint.core.config import SaleConfig
from sealmint.core.errors import InvalidCommitmentProof, ReceiverRejected
from sealmint.core.phase import ManualClock
from sealmint.core.sale import SealedBidSale
from sealmint.core.storage import StorageManager

SALE = b"\x5a" * 20
OWNER = b"\x0e" * 20
ALICE = b"\xa1" * 20
BOB = b"\xb0" * 20
CAROL = b"\xc0" * 20
BUYER = b"\xbb" * 20


@pytest.fixture
def temp_sale_dir(tmp_path):
    """Create a temporary directory for sale data."""
    data_dir = tmp_path / "sale_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def config():
    return SaleConfig(
        deposit=1000,
        min_price=10,
        max_supply=10,
        decay_rate=1,
        increase_rate=5,
        commit_start=100,
        reveal_start=200,
        restricted_start=300,
        public_start=400,
    )


def funded_book():
    assets = NativeAssetBook(SALE)
    for who in (ALICE, BOB, CAROL, BUYER):
        assets.credit(who, 100_000)
    return assets


def test_sale_state_survives_restart(temp_sale_dir, config):
    """Participants, statistics and the price curve are reloaded on restart."""
    # 1. First process runs the auction
    clock = ManualClock(100)
    assets = funded_book()
    storage_a = StorageManager(data_dir=temp_sale_dir)
    sale_a = SealedBidSale(config, assets, owner=OWNER, time_source=clock, storage_manager=storage_a)

    openings = {}
    for who, appraisal in [(ALICE, 100), (BOB, 200), (CAROL, 300)]:
        commitment, openings[who] = create_sealed_appraisal(who, appraisal)
        sale_a.commit(who, commitment, payment=1000)

    clock.set(200)
    for who in (ALICE, BOB):
        sale_a.reveal(who, openings[who].appraisal, openings[who].blinding_factor)

    clock.set(400)
    sale_a.mint(BUYER, 2, payment=1000)
    expected_state = sale_a.sale_state()
    storage_a.close()
    del sale_a

    # 2. Second process reopens the same database
    storage_b = StorageManager(data_dir=temp_sale_dir)
    sale_b = SealedBidSale(config, assets, owner=OWNER, time_source=clock, storage_manager=storage_b)

    assert sale_b.sale_state() == expected_state
    assert sale_b.statistics.count == 2
    assert sale_b.statistics.mean == 150
    assert sale_b.statistics.variance == 5000
    assert sale_b.curve.clearing_price == 160
    assert sale_b.curve.last_mint_time == 400
    assert sale_b.total_supply == 2

    assert sale_b.participant(ALICE).status == ParticipantStatus.REVEALED
    assert sale_b.participant(ALICE).appraisal == 100
    assert sale_b.participant(CAROL).status == ParticipantStatus.COMMITTED
    assert sale_b.participant(CAROL).commitment == openings[CAROL].compute_commitment()

    # 3. Continue where the first process stopped
    quote = sale_b.lost_reveal(CAROL)
    assert quote.refund == 1000
    assert sale_b.mint(BUYER, 1, payment=1000) == [2]
    storage_b.close()

    # 4. A third process sees the continued state
    storage_c = StorageManager(data_dir=temp_sale_dir)
    sale_c = SealedBidSale(config, assets, owner=OWNER, time_source=clock, storage_manager=storage_c)
    assert sale_c.participant(CAROL).status == ParticipantStatus.CONSUMED
    assert sale_c.total_supply == 3
    assert sale_c.deposits_held == 2000
    storage_c.close()


def test_failed_operations_not_persisted(temp_sale_dir, config):
    """Rolled-back operations leave the database untouched."""
    clock = ManualClock(100)
    assets = funded_book()
    storage = StorageManager(data_dir=temp_sale_dir)
    sale = SealedBidSale(config, assets, owner=OWNER, time_source=clock, storage_manager=storage)

    commitment, opening = create_sealed_appraisal(ALICE, 100)
    sale.commit(ALICE, commitment, payment=1000)
    clock.set(200)

    with pytest.raises(InvalidCommitmentProof):
        sale.reveal(ALICE, 101, opening.blinding_factor)

    sale.reveal(ALICE, 100, opening.blinding_factor)
    clock.set(300)
    sale.registry.register_receiver(ALICE, lambda *args: b"\x00" * 4)
    with pytest.raises(ReceiverRejected):
        sale.restricted_mint(ALICE, payment=100)

    state = storage.load_sale_state()
    assert state["reveal_count"] == 1
    assert state["total_supply"] == 0
    assert state["proceeds"] == 0
    assert state["deposits_held"] == 1000

    rows = storage.load_participants()
    assert len(rows) == 1
    assert rows[0][1] == ParticipantStatus.REVEALED
    storage.close()


def test_recommit_persists_latest(temp_sale_dir, config):
    clock = ManualClock(100)
    storage = StorageManager(data_dir=temp_sale_dir)
    sale = SealedBidSale(config, funded_book(), owner=OWNER, time_source=clock, storage_manager=storage)

    first, _ = create_sealed_appraisal(ALICE, 100)
    second, _ = create_sealed_appraisal(ALICE, 200)
    sale.commit(ALICE, first, payment=1000)
    sale.commit(ALICE, second, payment=1000)

    rows = {row[0]: row for row in storage.load_participants()}
    assert rows[ALICE][2] == second
    assert rows[ALICE][4] == 2
    assert storage.load_sale_state()["proceeds"] == 1000
    storage.close()


def test_lifetime_totals_survive_restart(temp_sale_dir, config):
    """Collected, refunded and withdrawn totals are reloaded with the books."""
    clock = ManualClock(100)
    assets = funded_book()
    storage_a = StorageManager(data_dir=temp_sale_dir)
    sale_a = SealedBidSale(config, assets, owner=OWNER, time_source=clock, storage_manager=storage_a)

    commitment, opening = create_sealed_appraisal(ALICE, 100)
    sale_a.commit(ALICE, commitment, payment=1200)
    sale_a.commit(BOB, create_sealed_appraisal(BOB, 300)[0], payment=1000)
    clock.set(200)
    sale_a.reveal(ALICE, 100, opening.blinding_factor)
    clock.set(300)
    sale_a.lost_reveal(BOB)
    sale_a.withdraw_proceeds(OWNER)

    expected = sale_a.payments.stats()
    assert expected["total_collected"] == 2200
    assert expected["total_refunded"] == 1000
    assert expected["total_withdrawn"] == 200
    storage_a.close()

    storage_b = StorageManager(data_dir=temp_sale_dir)
    sale_b = SealedBidSale(config, assets, owner=OWNER, time_source=clock, storage_manager=storage_b)
    assert sale_b.payments.stats() == expected
    assert sale_b.stats()["total_collected"] == 2200
    storage_b.close()


def test_config_data_dir_opens_storage(temp_sale_dir, config):
    """A sale built with config.data_dir persists without an explicit manager."""
    config.data_dir = temp_sale_dir / "from_config"
    clock = ManualClock(100)
    assets = funded_book()

    sale = SealedBidSale(config, assets, owner=OWNER, time_source=clock)
    commitment, _ = create_sealed_appraisal(ALICE, 100)
    sale.commit(ALICE, commitment, payment=1000)
    sale.close()

    assert (config.data_dir / "sale.db").exists()

    reopened = SealedBidSale(config, assets, owner=OWNER, time_source=clock)
    assert reopened.participant(ALICE).status == ParticipantStatus.COMMITTED
    assert reopened.deposits_held == 1000
    reopened.close()


def test_in_memory_without_data_dir(config):
    sale = SealedBidSale(config, funded_book(), owner=OWNER, time_source=ManualClock(100))
    assert sale.storage_manager is None
    sale.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
