"""
Error taxonomy for the sealed-appraisal sale.

Every rejected operation raises one of these before it commits any state.
The facade additionally rolls back all bookkeeping and collaborator state
when a failure surfaces after bookkeeping was mutated, so a raised
SaleError always means "nothing happened".
"""

from typing import Optional


class SaleError(Exception):
    """Base class for all sale failures."""


class PhaseViolation(SaleError):
    """Operation invoked outside the phase it is valid in."""

    def __init__(self, operation: str, expected: str, actual: str):
        self.operation = operation
        self.expected = expected
        self.actual = actual
        super().__init__(f"{operation} requires phase {expected}, current phase is {actual}")


class InvalidPhaseWindow(SaleError, ValueError):
    """Phase boundaries are not strictly increasing."""


class InvalidCommitmentProof(SaleError):
    """Revealed opening does not hash to the stored commitment."""


class InsufficientFunds(SaleError):
    """Payment, balance or allowance is below the required amount."""

    def __init__(self, message: str, required: Optional[int] = None, available: Optional[int] = None):
        self.required = required
        self.available = available
        super().__init__(message)


class IneligibleAppraisal(SaleError):
    """Participant has no usable appraisal, or it lies outside the price band."""


class SupplyExhausted(SaleError):
    """The fixed maximum supply has been (or would be) exceeded."""


class ArithmeticUnderflow(SaleError):
    """Unsigned arithmetic would go negative (penalty above deposit, band below zero)."""


class StatisticsUnavailable(SaleError):
    """Statistics were evaluated before any appraisal was revealed."""


class InvalidInput(SaleError, ValueError):
    """Malformed argument (wrong size, type or range)."""


class ReceiverRejected(SaleError):
    """A contract-like recipient did not accept a minted unit."""


class DuplicateToken(SaleError):
    """A token identifier was minted twice."""


class Unauthorized(SaleError):
    """Caller is not allowed to perform the operation."""


__all__ = [
    "SaleError",
    "PhaseViolation",
    "InvalidPhaseWindow",
    "InvalidCommitmentProof",
    "InsufficientFunds",
    "IneligibleAppraisal",
    "SupplyExhausted",
    "ArithmeticUnderflow",
    "StatisticsUnavailable",
    "InvalidInput",
    "ReceiverRejected",
    "DuplicateToken",
    "Unauthorized",
]
