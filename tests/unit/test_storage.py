"""
Unit tests for SQLite persistence.
"""

import pytest

from sealmint.core.auction import ParticipantRecord, ParticipantStatus
from sealmint.core.storage import SQLiteAdapter, StorageManager, STATE_KEYS


ALICE = b"\xa1" * 20
BOB = b"\xb0" * 20


@pytest.fixture
def storage(tmp_path):
    manager = StorageManager(tmp_path / "data")
    yield manager
    manager.close()


class TestSQLiteAdapter:
    """Tests for the raw adapter."""

    def test_creates_parent_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "sale.db"
        adapter = SQLiteAdapter(db_path)
        assert db_path.parent.exists()
        adapter.close()

    def test_participant_upsert(self, tmp_path):
        adapter = SQLiteAdapter(tmp_path / "sale.db")
        adapter.persist_update([(ALICE, 1, b"\x01" * 32, None, 1)], {})
        adapter.persist_update([(ALICE, 2, None, "500", 1)], {})

        assert adapter.get_all_participants() == [(ALICE, 2, None, "500", 1)]
        adapter.close()

    def test_state_values(self, tmp_path):
        adapter = SQLiteAdapter(tmp_path / "sale.db")
        adapter.persist_update([], {"mean": "123", "clearing_price": None})
        adapter.persist_update([], {"mean": "124"})

        assert adapter.get_all_state() == {"mean": "124", "clearing_price": None}
        adapter.close()


class TestStorageManager:
    """Tests for sale-level persistence."""

    def test_participants_round_trip(self, storage):
        record = ParticipantRecord(
            address=ALICE,
            status=ParticipantStatus.REVEALED,
            appraisal=2**255,
            commit_count=1,
        )
        storage.persist_snapshot([record.to_row()], {})

        rows = storage.load_participants()
        assert [ParticipantRecord.from_row(row) for row in rows] == [record]

    def test_sale_state_round_trip(self, storage):
        """uint256 values survive storage as text."""
        state = {key: 2**200 + i for i, key in enumerate(STATE_KEYS)}
        state["last_mint_time"] = None
        storage.persist_snapshot([], state)

        assert storage.load_sale_state() == state

    def test_fresh_database(self, storage):
        assert storage.load_sale_state() == {}
        assert storage.load_participants() == []

    def test_persist_snapshot(self, storage):
        rows = [
            ParticipantRecord(address=ALICE, status=ParticipantStatus.COMMITTED,
                              commitment=b"\x01" * 32, commit_count=1).to_row(),
            ParticipantRecord(address=BOB, status=ParticipantStatus.CONSUMED, commit_count=1).to_row(),
        ]
        storage.persist_snapshot(rows, {"total_supply": 3, "proceeds": 10})

        assert len(storage.load_participants()) == 2
        assert storage.load_sale_state() == {"total_supply": 3, "proceeds": 10}

    def test_lifetime_totals_persisted(self, storage):
        storage.persist_snapshot([], {
            "total_collected": 300,
            "total_refunded": 120,
            "total_withdrawn": 50,
        })
        state = storage.load_sale_state()
        assert state["total_collected"] == 300
        assert state["total_refunded"] == 120
        assert state["total_withdrawn"] == 50

    def test_unknown_state_key_rejected(self, storage):
        with pytest.raises(ValueError):
            storage.persist_snapshot([], {"bogus": 1})
        assert storage.load_sale_state() == {}

    def test_reopen(self, tmp_path):
        first = StorageManager(tmp_path)
        first.persist_snapshot([], {"reveal_count": 4})
        first.close()

        second = StorageManager(tmp_path)
        assert second.load_sale_state() == {"reveal_count": 4}
        second.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
