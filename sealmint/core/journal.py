"""
Undo Journal - Rollback of in-place changes made during a sale operation.

Components whose state grows with the number of participants (the
commitment ledger, asset books, the ownership registry) do not copy
themselves before an operation. Instead, every mutation they make while a
journal section is open records a callable that reverts exactly that
change. A failed operation replays the entries recorded since its mark in
reverse order, so rollback cost depends on what the operation touched,
not on the size of the sale.

Sections nest: a reentrant operation opens an inner section whose failure
only reverts its own entries. Entries are discarded once the outermost
section closes.
"""

from typing import Callable, List, Optional

Undo = Callable[[], None]


class UndoJournal:
    """Stack of undo callables grouped into nested sections."""

    def __init__(self):
        self._entries: List[Undo] = []
        self._depth = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def active(self) -> bool:
        return self._depth > 0

    def begin(self) -> int:
        """Open a section. Returns the mark to roll back to."""
        self._depth += 1
        return len(self._entries)

    def record(self, undo: Undo) -> None:
        if self._depth:
            self._entries.append(undo)

    def rollback(self, mark: int) -> None:
        """Revert every change recorded after `mark`, newest first."""
        while len(self._entries) > mark:
            self._entries.pop()()

    def end(self) -> None:
        """Close a section; the outermost close forgets all entries."""
        self._depth -= 1
        if self._depth == 0:
            self._entries.clear()


class Journaled:
    """Mixin for components that report their mutations to an UndoJournal."""

    _journal: Optional[UndoJournal] = None

    def use_journal(self, journal: UndoJournal) -> None:
        self._journal = journal

    def _record_undo(self, undo: Undo) -> None:
        if self._journal is not None:
            self._journal.record(undo)


__all__ = ["UndoJournal", "Journaled"]
