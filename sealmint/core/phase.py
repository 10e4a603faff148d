"""
Phase Clock - Derives the active sale phase from wall-clock time.

Four ordered boundaries partition time into five phases:

    PRE_COMMIT | COMMIT | REVEAL | RESTRICTED_MINT | PUBLIC_MINT
               ^        ^        ^                 ^
         commit_start reveal_start restricted_start public_start

Each boundary belongs to the phase it opens. Every sale operation guards on
the phase it is valid in and raises PhaseViolation otherwise.
"""

import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional

from sealmint.core.errors import InvalidPhaseWindow, PhaseViolation


class Phase(IntEnum):
    """Sale phases, ordered so that later phases compare greater."""
    PRE_COMMIT = 0
    COMMIT = 1
    REVEAL = 2
    RESTRICTED_MINT = 3
    PUBLIC_MINT = 4


@dataclass(frozen=True)
class PhaseWindow:
    """
    The four phase boundaries (unix seconds).

    Boundaries must be strictly increasing; an inverted or empty window is
    rejected at construction rather than producing a phase that can never
    be entered.
    """
    commit_start: int
    reveal_start: int
    restricted_start: int
    public_start: int

    def __post_init__(self):
        bounds = self.as_tuple()
        for value in bounds:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidPhaseWindow(f"Phase boundary must be a non-negative int, got {value!r}")
        if not all(a < b for a, b in zip(bounds, bounds[1:])):
            raise InvalidPhaseWindow(
                "Phase boundaries must be strictly increasing: "
                f"commit={self.commit_start}, reveal={self.reveal_start}, "
                f"restricted={self.restricted_start}, public={self.public_start}"
            )

    def as_tuple(self):
        return (self.commit_start, self.reveal_start, self.restricted_start, self.public_start)

    def phase_at(self, now: int) -> Phase:
        """Phase active at time `now`."""
        if now < self.commit_start:
            return Phase.PRE_COMMIT
        if now < self.reveal_start:
            return Phase.COMMIT
        if now < self.restricted_start:
            return Phase.REVEAL
        if now < self.public_start:
            return Phase.RESTRICTED_MINT
        return Phase.PUBLIC_MINT

    @classmethod
    def from_durations(
        cls,
        start: int,
        commit_duration: int,
        reveal_duration: int,
        restricted_duration: int,
    ) -> "PhaseWindow":
        """Build a window from a commit start and three phase lengths."""
        reveal_start = start + commit_duration
        restricted_start = reveal_start + reveal_duration
        return cls(
            commit_start=start,
            reveal_start=reveal_start,
            restricted_start=restricted_start,
            public_start=restricted_start + restricted_duration,
        )


class ManualClock:
    """
    Externally driven clock for simulations and tests.

    Callable like time.time, but only moves when told to.
    """

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.now += seconds
        return self.now

    def set(self, now: int) -> int:
        if now < self.now:
            raise ValueError("Clock cannot move backwards")
        self.now = now
        return self.now


def system_clock() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


class PhaseClock:
    """
    Combines a PhaseWindow with a time source.

    Usage:
        clock = PhaseClock(window, ManualClock(0))
        clock.require(Phase.COMMIT, "commit")
    """

    def __init__(self, window: PhaseWindow, time_source: Optional[Callable[[], int]] = None):
        self.window = window
        self.time_source = time_source or system_clock

    def now(self) -> int:
        return int(self.time_source())

    def current(self) -> Phase:
        """Phase active right now."""
        return self.window.phase_at(self.now())

    def require(self, expected: Phase, operation: str) -> Phase:
        """Raise PhaseViolation unless the current phase is exactly `expected`."""
        phase = self.current()
        if phase != expected:
            raise PhaseViolation(operation, expected.name, phase.name)
        return phase

    def require_at_least(self, earliest: Phase, operation: str) -> Phase:
        """Raise PhaseViolation unless `earliest` or a later phase is active."""
        phase = self.current()
        if phase < earliest:
            raise PhaseViolation(operation, f">={earliest.name}", phase.name)
        return phase


__all__ = [
    "Phase",
    "PhaseWindow",
    "PhaseClock",
    "ManualClock",
    "system_clock",
]
