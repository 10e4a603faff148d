"""
Payments - Deposit custody and proceeds accounting for the sale.

Manages:
- Charge computation (attached native payment vs. pulled token amount)
- Held deposits (refundable, one per active participant)
- Proceeds (everything else the sale has received: prices, penalties,
  overpayments, forfeited deposits), withdrawable by the issuer

Invariant: the sale account's balance on the asset book equals
`deposits_held + proceeds`.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from sealmint.core.assets import AssetTransfer
from sealmint.core.errors import InsufficientFunds
from sealmint.crypto import short_hex
from sealmint.utils.logger import get_logger

logger = get_logger("payments")


@dataclass
class RefundReceipt:
    """Breakdown of a settled deposit."""
    deposit: int
    penalty: int
    refund: int


class Payments:
    """
    Moves value through the asset collaborator and keeps the sale's books.
    """

    def __init__(self, assets: AssetTransfer):
        self.assets = assets

        self.deposits_held: int = 0
        self.proceeds: int = 0

        # Lifetime totals
        self.total_collected: int = 0
        self.total_refunded: int = 0
        self.total_withdrawn: int = 0

    # =========================================================================
    # Charging
    # =========================================================================

    def quote_charge(self, required: int, payment: int, purpose: str) -> int:
        """
        Amount to take for a charge of `required`.

        With an attached-payment asset the whole attached payment is taken
        and must cover `required`. With a pulled token exactly `required`
        is taken and `payment` is ignored.
        """
        if not self.assets.attached_payment:
            return required
        if payment < required:
            raise InsufficientFunds(
                f"Insufficient payment for {purpose}: got {payment}, need {required}",
                required=required,
                available=payment,
            )
        return payment

    def take(self, participant: bytes, amount: int) -> None:
        """Pull `amount` from the participant into the sale account."""
        if amount == 0:
            return
        self.assets.pull(participant, amount)
        self.total_collected += amount

    def refund(self, participant: bytes, amount: int) -> None:
        """Push `amount` from the sale account back to the participant."""
        if amount == 0:
            return
        self.assets.push(participant, amount)
        self.total_refunded += amount
        logger.debug(f"Refunded {amount} to {short_hex(participant)}")

    # =========================================================================
    # Bookkeeping
    # =========================================================================

    def hold_deposit(self, deposit: int, charge: int) -> None:
        """Book a commit charge: `deposit` is held, any excess is proceeds."""
        self.deposits_held += deposit
        self.proceeds += charge - deposit

    def forfeit_deposit(self, deposit: int) -> None:
        """A held deposit becomes non-refundable."""
        self.deposits_held -= deposit
        self.proceeds += deposit

    def release_deposit(self, deposit: int, penalty: int = 0) -> RefundReceipt:
        """Stop holding a deposit; `penalty` of it is kept as proceeds."""
        self.deposits_held -= deposit
        self.proceeds += penalty
        return RefundReceipt(deposit=deposit, penalty=penalty, refund=deposit - penalty)

    def add_proceeds(self, amount: int) -> None:
        self.proceeds += amount

    def withdraw(self, recipient: bytes) -> int:
        """Pay out all proceeds to `recipient`. Held deposits are untouched."""
        amount = self.proceeds
        self.proceeds = 0
        self.total_withdrawn += amount
        if amount:
            self.assets.push(recipient, amount)
        logger.info(f"Withdrew {amount} proceeds to {short_hex(recipient)}")
        return amount

    # =========================================================================
    # Queries / Rollback
    # =========================================================================

    def lifetime_totals(self) -> Dict[str, int]:
        return {
            "total_collected": self.total_collected,
            "total_refunded": self.total_refunded,
            "total_withdrawn": self.total_withdrawn,
        }

    def stats(self) -> Dict[str, int]:
        summary = {"deposits_held": self.deposits_held, "proceeds": self.proceeds}
        summary.update(self.lifetime_totals())
        return summary

    def snapshot(self) -> Tuple[int, int, int, int, int]:
        return (
            self.deposits_held,
            self.proceeds,
            self.total_collected,
            self.total_refunded,
            self.total_withdrawn,
        )

    def restore(self, state: Tuple[int, int, int, int, int]) -> None:
        (
            self.deposits_held,
            self.proceeds,
            self.total_collected,
            self.total_refunded,
            self.total_withdrawn,
        ) = state


__all__ = ["Payments", "RefundReceipt"]
