"""
Ownership Registry - Issuance bookkeeping for minted units.

Only the minting surface the sale depends on is modelled:
- `mint(to, token_id)` with globally unique identifiers
- receiver acceptance hooks for contract-like recipients

A recipient that registers a hook is treated like a contract: the hook is
invoked on every mint to that address and must answer RECEIVER_ACCEPTED
(the ERC721 `onERC721Received` selector), otherwise the mint fails.
Hooks run synchronously inside the minting operation and may call back
into the sale.
"""

from collections import defaultdict
from typing import Callable, Dict, List, Optional

from sealmint.core.errors import DuplicateToken, ReceiverRejected
from sealmint.core.journal import Journaled
from sealmint.crypto import keccak256, short_hex
from sealmint.utils.logger import get_logger

logger = get_logger("registry")


# bytes4(keccak256("onERC721Received(address,address,uint256,bytes)"))
RECEIVER_ACCEPTED = keccak256(b"onERC721Received(address,address,uint256,bytes)")[:4]

# Zero address used as `from` on mint
ZERO_ADDRESS = bytes(20)

# hook(operator, from_address, token_id, data) -> bytes4
ReceiverHook = Callable[[bytes, bytes, int, bytes], bytes]


class OwnershipRegistry(Journaled):
    """
    Registry of minted units and their owners.
    """

    def __init__(self, operator: bytes = ZERO_ADDRESS):
        """
        Args:
            operator: Address reported to receiver hooks as the minting operator
        """
        self.operator = operator

        # token_id -> owner
        self.owners: Dict[int, bytes] = {}

        # owner -> number of units held
        self.balances: Dict[bytes, int] = defaultdict(int)

        # address -> acceptance hook (contract-like recipients only)
        self.receivers: Dict[bytes, ReceiverHook] = {}

    # =========================================================================
    # Receivers
    # =========================================================================

    def register_receiver(self, address: bytes, hook: ReceiverHook) -> None:
        """Mark `address` as contract-like, with `hook` as its acceptance check."""
        self.receivers[address] = hook

    def unregister_receiver(self, address: bytes) -> None:
        self.receivers.pop(address, None)

    # =========================================================================
    # Minting
    # =========================================================================

    def mint(self, to: bytes, token_id: int, data: bytes = b"") -> None:
        """
        Issue `token_id` to `to`.

        Ownership is recorded before the receiver hook runs, matching the
        safe-mint ordering of the issuance standard.
        """
        if token_id in self.owners:
            raise DuplicateToken(f"Token {token_id} already minted")

        self.owners[token_id] = to
        self.balances[to] += 1
        self._record_undo(lambda: self._unmint(to, token_id))
        logger.debug(f"Minted token {token_id} to {short_hex(to)}")

        hook = self.receivers.get(to)
        if hook is not None:
            response = hook(self.operator, ZERO_ADDRESS, token_id, data)
            if response != RECEIVER_ACCEPTED:
                raise ReceiverRejected(
                    f"Receiver {short_hex(to)} rejected token {token_id}"
                )

    # =========================================================================
    # Queries
    # =========================================================================

    def owner_of(self, token_id: int) -> Optional[bytes]:
        return self.owners.get(token_id)

    def balance_of(self, owner: bytes) -> int:
        return self.balances.get(owner, 0)

    def tokens_of(self, owner: bytes) -> List[int]:
        return sorted(t for t, o in self.owners.items() if o == owner)

    def total_minted(self) -> int:
        return len(self.owners)

    def _unmint(self, owner: bytes, token_id: int) -> None:
        del self.owners[token_id]
        self.balances[owner] -= 1


__all__ = [
    "OwnershipRegistry",
    "RECEIVER_ACCEPTED",
    "ZERO_ADDRESS",
    "ReceiverHook",
]
