"""Per-account replay-protection counters."""

from __future__ import annotations

from web3 import Web3

from .errors import InvalidAccountNonce
from .storage import StorageBackend, StorageMap


class NonceRegistry:
    """Monotonic nonce per account, stored as a mapping at *base*.

    A nonce starts at 0 and only ever moves forward by one. Nothing resets
    or decrements it.
    """

    def __init__(self, storage: StorageBackend, base: int) -> None:
        self._nonces = StorageMap(storage, base)

    def nonces(self, owner: str) -> int:
        """Return the next unused nonce for *owner*."""
        return self._nonces[Web3.to_checksum_address(owner)]

    def use_nonce(self, owner: str) -> int:
        """Consume and return the current nonce of *owner*."""
        slot = self._nonces.location_for(Web3.to_checksum_address(owner))
        current = slot.get()
        slot.set(current + 1)
        return current

    def use_checked_nonce(self, owner: str, nonce: int) -> None:
        """Consume *nonce* only if it is the current nonce of *owner*.

        Raises
        ------
        InvalidAccountNonce
            If *nonce* is stale or from the future.
        """
        owner = Web3.to_checksum_address(owner)
        slot = self._nonces.location_for(owner)
        current = slot.get()
        if nonce != current:
            raise InvalidAccountNonce(owner, current)
        slot.set(current + 1)
