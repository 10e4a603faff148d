"""
Asset Transfer - Value movement between participants and the sale.

The sale never holds balances itself; it asks an AssetTransfer to
`pull` value from a participant into the sale account and to `push` value
from the sale account out to a recipient.

Two in-memory books are provided:
- NativeAssetBook: the chain's native coin. A participant attaches a
  payment to the call and the whole payment is pulled.
- FungibleTokenBook: an ERC20-style token with allowances. Pulls use
  transfer-from semantics and consume the allowance granted to the sale.

Both books report every balance and allowance change to the sale's undo
journal, so a failed operation is rolled back entry by entry.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict

from sealmint.core.errors import InsufficientFunds, InvalidInput
from sealmint.core.journal import Journaled
from sealmint.crypto import short_hex
from sealmint.utils.logger import get_logger

logger = get_logger("assets")


class AssetTransfer(Journaled, ABC):
    """Pull/push primitive the sale settles through."""

    #: True when the caller attaches value to the call (native coin)
    attached_payment: bool = True

    def __init__(self, sale_account: bytes):
        self.sale_account = sale_account

    @abstractmethod
    def pull(self, source: bytes, amount: int) -> None:
        """Move `amount` from `source` into the sale account."""

    @abstractmethod
    def push(self, destination: bytes, amount: int) -> None:
        """Move `amount` from the sale account to `destination`."""

    @abstractmethod
    def balance_of(self, account: bytes) -> int:
        """Current balance of `account`."""


class NativeAssetBook(AssetTransfer):
    """Balances of the native coin."""

    attached_payment = True

    def __init__(self, sale_account: bytes):
        super().__init__(sale_account)
        self.balances: Dict[bytes, int] = defaultdict(int)

    def credit(self, account: bytes, amount: int) -> None:
        """Fund an account (genesis / faucet)."""
        if amount < 0:
            raise InvalidInput("Credit amount must be non-negative")
        self._set_balances({account: self.balances.get(account, 0) + amount})

    def balance_of(self, account: bytes) -> int:
        return self.balances.get(account, 0)

    def _set_balances(self, updates: Dict[bytes, int]) -> None:
        previous = {account: self.balances.get(account, 0) for account in updates}
        self._record_undo(lambda: self.balances.update(previous))
        self.balances.update(updates)

    def _move(self, source: bytes, destination: bytes, amount: int) -> None:
        if amount < 0:
            raise InvalidInput("Transfer amount must be non-negative")
        available = self.balances.get(source, 0)
        if available < amount:
            raise InsufficientFunds(
                f"Insufficient balance for {short_hex(source)}: have {available}, need {amount}",
                required=amount,
                available=available,
            )
        if source == destination:
            return
        self._set_balances({
            source: available - amount,
            destination: self.balances.get(destination, 0) + amount,
        })

    def pull(self, source: bytes, amount: int) -> None:
        self._move(source, self.sale_account, amount)
        logger.debug(f"Pulled {amount} from {short_hex(source)}")

    def push(self, destination: bytes, amount: int) -> None:
        self._move(self.sale_account, destination, amount)
        logger.debug(f"Pushed {amount} to {short_hex(destination)}")


class FungibleTokenBook(NativeAssetBook):
    """
    ERC20-style token: balances plus allowances.

    `pull` behaves like transferFrom(source, sale, amount) invoked by the sale,
    so the source must have approved the sale for at least `amount`.
    """

    attached_payment = False

    def __init__(self, sale_account: bytes, symbol: str = "TOKEN"):
        super().__init__(sale_account)
        self.symbol = symbol
        # owner -> spender -> remaining allowance
        self.allowances: Dict[bytes, Dict[bytes, int]] = defaultdict(dict)

    def approve(self, owner: bytes, spender: bytes, amount: int) -> None:
        if amount < 0:
            raise InvalidInput("Allowance must be non-negative")
        self._set_allowance(owner, spender, amount)

    def allowance(self, owner: bytes, spender: bytes) -> int:
        return self.allowances.get(owner, {}).get(spender, 0)

    def _set_allowance(self, owner: bytes, spender: bytes, amount: int) -> None:
        previous = self.allowance(owner, spender)
        self._record_undo(lambda: self.allowances[owner].__setitem__(spender, previous))
        self.allowances[owner][spender] = amount

    def pull(self, source: bytes, amount: int) -> None:
        allowed = self.allowance(source, self.sale_account)
        if allowed < amount:
            raise InsufficientFunds(
                f"Insufficient {self.symbol} allowance for {short_hex(source)}: "
                f"have {allowed}, need {amount}",
                required=amount,
                available=allowed,
            )
        self._move(source, self.sale_account, amount)
        self._set_allowance(source, self.sale_account, allowed - amount)
        logger.debug(f"Pulled {amount} {self.symbol} from {short_hex(source)}")


__all__ = [
    "AssetTransfer",
    "NativeAssetBook",
    "FungibleTokenBook",
]
