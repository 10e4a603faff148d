"""
Unit tests for the undo journal.
"""

import pytest

from sealmint.core.journal import Journaled, UndoJournal


class Counter(Journaled):
    def __init__(self):
        self.value = 0

    def add(self, amount):
        previous = self.value
        self._record_undo(lambda: setattr(self, "value", previous))
        self.value += amount


class TestUndoJournal:
    """Tests for nested sections and rollback."""

    def test_rollback_reverts_newest_first(self):
        journal = UndoJournal()
        counter = Counter()
        counter.use_journal(journal)

        mark = journal.begin()
        counter.add(1)
        counter.add(10)
        journal.rollback(mark)
        journal.end()

        assert counter.value == 0
        assert len(journal) == 0

    def test_inner_rollback_keeps_outer_changes(self):
        journal = UndoJournal()
        counter = Counter()
        counter.use_journal(journal)

        outer = journal.begin()
        counter.add(1)
        inner = journal.begin()
        counter.add(10)
        journal.rollback(inner)
        journal.end()
        assert counter.value == 1

        journal.rollback(outer)
        journal.end()
        assert counter.value == 0

    def test_outer_rollback_undoes_committed_inner_section(self):
        journal = UndoJournal()
        counter = Counter()
        counter.use_journal(journal)

        outer = journal.begin()
        journal.begin()
        counter.add(5)
        journal.end()
        assert journal.active

        journal.rollback(outer)
        journal.end()
        assert counter.value == 0
        assert not journal.active

    def test_entries_dropped_after_outermost_section(self):
        journal = UndoJournal()
        counter = Counter()
        counter.use_journal(journal)

        journal.begin()
        counter.add(3)
        journal.end()

        assert len(journal) == 0
        assert counter.value == 3

    def test_unjournaled_component(self):
        """Components without a journal mutate freely."""
        counter = Counter()
        counter.add(2)
        assert counter.value == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
