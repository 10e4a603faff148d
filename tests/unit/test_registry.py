"""
Unit tests for the ownership registry.
"""

import pytest

from sealmint.core.errors import DuplicateToken, ReceiverRejected
from sealmint.core.journal import UndoJournal
from sealmint.core.registry import RECEIVER_ACCEPTED, ZERO_ADDRESS, OwnershipRegistry
from sealmint.crypto import keccak256


SALE = b"\x5a" * 20
ALICE = b"\xa1" * 20
BOB = b"\xb0" * 20


@pytest.fixture
def registry():
    return OwnershipRegistry(operator=SALE)


class TestMinting:
    """Tests for issuance bookkeeping."""

    def test_mint_records_owner(self, registry):
        registry.mint(ALICE, 0)
        registry.mint(ALICE, 1)
        registry.mint(BOB, 2)

        assert registry.owner_of(0) == ALICE
        assert registry.balance_of(ALICE) == 2
        assert registry.tokens_of(ALICE) == [0, 1]
        assert registry.total_minted() == 3

    def test_duplicate_id_rejected(self, registry):
        registry.mint(ALICE, 0)
        with pytest.raises(DuplicateToken):
            registry.mint(BOB, 0)
        assert registry.owner_of(0) == ALICE

    def test_unknown_token(self, registry):
        assert registry.owner_of(7) is None
        assert registry.balance_of(BOB) == 0


class TestReceivers:
    """Tests for contract-like recipients."""

    def test_selector_value(self):
        assert RECEIVER_ACCEPTED == keccak256(b"onERC721Received(address,address,uint256,bytes)")[:4]
        assert RECEIVER_ACCEPTED.hex() == "150b7a02"

    def test_hook_arguments(self, registry):
        calls = []

        def hook(operator, from_address, token_id, data):
            calls.append((operator, from_address, token_id, data))
            return RECEIVER_ACCEPTED

        registry.register_receiver(ALICE, hook)
        registry.mint(ALICE, 5, data=b"hi")

        assert calls == [(SALE, ZERO_ADDRESS, 5, b"hi")]

    def test_hook_sees_recorded_ownership(self, registry):
        """Ownership is recorded before the hook runs."""
        seen = []
        registry.register_receiver(ALICE, lambda *args: seen.append(registry.owner_of(0)) or RECEIVER_ACCEPTED)
        registry.mint(ALICE, 0)
        assert seen == [ALICE]

    def test_rejecting_hook(self, registry):
        registry.register_receiver(ALICE, lambda *args: b"\xde\xad\xbe\xef")
        with pytest.raises(ReceiverRejected):
            registry.mint(ALICE, 0)

    def test_unregister(self, registry):
        registry.register_receiver(ALICE, lambda *args: b"")
        registry.unregister_receiver(ALICE)
        registry.mint(ALICE, 0)
        assert registry.owner_of(0) == ALICE

    def test_journaled_rollback(self, registry):
        registry.mint(ALICE, 0)
        journal = UndoJournal()
        registry.use_journal(journal)

        mark = journal.begin()
        registry.mint(BOB, 1)
        journal.rollback(mark)
        journal.end()

        assert registry.owner_of(1) is None
        assert registry.balance_of(BOB) == 0
        assert registry.total_minted() == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
