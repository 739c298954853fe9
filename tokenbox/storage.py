"""Persistent uint256 storage and Solidity-style addressed access.

The ledger never talks to a keyed collection directly. It computes a slot
for each key (or key pair) exactly the way Solidity lays out a
``mapping``::

    slot(key)          = keccak256(abi.encode(key, base))
    slot(key1, key2)   = keccak256(abi.encode(key2, slot(key1)))

and then reads or writes that slot on a ``StorageBackend``. This is the same
addressing ``anvil_setStorageAt`` needs to inject a balance into a deployed
token, so the same code drives an in-memory store and a live Anvil node.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Protocol

from web3 import Web3

from .constants import MAX_UINT256


class StorageBackend(Protocol):
    """A uint256 -> uint256 store. Unset slots read as zero."""

    def load(self, slot: int) -> int: ...

    def store(self, slot: int, value: int) -> None: ...

    def atomic(self): ...


def require_uint256(value: int, what: str = "amount") -> None:
    """Raise ValueError unless *value* is an int in ``[0, 2**256 - 1]``."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{what} must be an int, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT256:
        raise ValueError(f"{what} {value} is outside uint256")


def _key_word(key: int | str) -> int:
    """Encode a mapping key (address or uint256) as a 256-bit word."""
    if isinstance(key, str):
        return int(Web3.to_checksum_address(key), 16)
    require_uint256(key, "key")
    return key


def mapping_slot(base: int, key: int | str) -> int:
    """Return ``keccak256(abi.encode(key, base))`` as an int."""
    digest = Web3.solidity_keccak(["uint256", "uint256"], [_key_word(key), base])
    return int.from_bytes(digest, "big")


# ---------------------------------------------------------------------------
# In-memory substrate
# ---------------------------------------------------------------------------

class MemoryStorage:
    """Dict-backed storage with a write journal for request rollback.

    Writes made inside :meth:`atomic` are recorded; if an exception escapes
    the outermost block every one of them is undone in reverse order.
    """

    def __init__(self) -> None:
        self._slots: dict[int, int] = {}
        self._journal: list[tuple[int, int | None]] = []
        self._depth = 0

    def load(self, slot: int) -> int:
        return self._slots.get(slot, 0)

    def store(self, slot: int, value: int) -> None:
        require_uint256(slot, "slot")
        require_uint256(value, "value")
        if self._depth:
            self._journal.append((slot, self._slots.get(slot)))
        if value:
            self._slots[slot] = value
        else:
            # zero and absent are the same thing
            self._slots.pop(slot, None)

    @contextmanager
    def atomic(self) -> Iterator["MemoryStorage"]:
        mark = len(self._journal)
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._rollback(mark)
            raise
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._journal.clear()

    def _rollback(self, mark: int) -> None:
        while len(self._journal) > mark:
            slot, previous = self._journal.pop()
            if previous is None:
                self._slots.pop(slot, None)
            else:
                self._slots[slot] = previous

    def __len__(self) -> int:
        return len(self._slots)


# ---------------------------------------------------------------------------
# Addressed access
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Slot:
    """Handle to one storage location, for read-modify-write on hot paths."""

    storage: StorageBackend
    location: int

    def get(self) -> int:
        return self.storage.load(self.location)

    def set(self, value: int) -> None:
        self.storage.store(self.location, value)


class StorageMap:
    """A Solidity ``mapping`` rooted at *base*.

    ``m[key]`` and ``m[key1, key2]`` are the generic keyed interface;
    :meth:`location_for` hands out a :class:`Slot` so a caller can read and
    then write the same location without hashing the key twice.
    """

    def __init__(self, storage: StorageBackend, base: int) -> None:
        require_uint256(base, "base slot")
        self._storage = storage
        self._base = base

    @property
    def base(self) -> int:
        return self._base

    def location_for(self, *keys: int | str) -> Slot:
        if not keys:
            raise ValueError("location_for() needs at least one key")
        location = self._base
        for key in keys:
            location = mapping_slot(location, key)
        return Slot(self._storage, location)

    def __getitem__(self, keys) -> int:
        if not isinstance(keys, tuple):
            keys = (keys,)
        return self.location_for(*keys).get()

    def __setitem__(self, keys, value: int) -> None:
        if not isinstance(keys, tuple):
            keys = (keys,)
        self.location_for(*keys).set(value)
