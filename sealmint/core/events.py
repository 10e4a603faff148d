"""
Sale notifications.

Commit and Reveal are the notifications external indexers rely on; the
settlement notifications (RestrictedMint, Forgo, LostReveal, PublicMint,
Withdrawal) report value movements.

Events emitted inside an operation that later fails are withdrawn together
with the rest of the operation's state (see EventBus.snapshot/restore), so
subscribers are only notified once the operation has committed. Only the
most recent published events are kept in `history`.
"""

from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional

from sealmint.utils.logger import get_logger

logger = get_logger("events")


@dataclass(frozen=True)
class CommitEvent:
    participant: bytes
    commitment: bytes


@dataclass(frozen=True)
class RevealEvent:
    participant: bytes
    appraisal: int


@dataclass(frozen=True)
class RestrictedMintEvent:
    participant: bytes
    token_id: int
    price: int
    refund: int


@dataclass(frozen=True)
class ForgoEvent:
    participant: bytes
    refund: int
    penalty: int


@dataclass(frozen=True)
class LostRevealEvent:
    participant: bytes
    refund: int
    penalty: int


@dataclass(frozen=True)
class PublicMintEvent:
    participant: bytes
    first_token_id: int
    amount: int
    unit_price: int


@dataclass(frozen=True)
class WithdrawalEvent:
    recipient: bytes
    amount: int


class EventBus:
    """
    Buffers events per operation and delivers them to subscribers on flush.
    """

    def __init__(self, history_limit: Optional[int] = 10_000):
        """
        Args:
            history_limit: Published events kept in `history` (None = unbounded)
        """
        self.history: Deque[object] = deque(maxlen=history_limit)
        self._pending: List[object] = []
        self._subscribers: List[Callable[[object], None]] = []

    def subscribe(self, callback: Callable[[object], None]) -> None:
        self._subscribers.append(callback)

    def emit(self, event: object) -> None:
        self._pending.append(event)

    def flush(self) -> None:
        """Publish buffered events (called after an operation commits)."""
        pending, self._pending = self._pending, []
        for event in pending:
            self.history.append(event)
            logger.debug(f"Event: {event}")
            for callback in self._subscribers:
                callback(event)

    def of_type(self, event_type: type) -> List[object]:
        return [e for e in self.history if isinstance(e, event_type)]

    def snapshot(self) -> int:
        return len(self._pending)

    def restore(self, pending_len: int) -> None:
        del self._pending[pending_len:]


__all__ = [
    "CommitEvent",
    "RevealEvent",
    "RestrictedMintEvent",
    "ForgoEvent",
    "LostRevealEvent",
    "PublicMintEvent",
    "WithdrawalEvent",
    "EventBus",
]
