"""ERC-20 balance and allowance ledger over addressed storage.

Implements the value-moving core of an ERC-20 token:
  - balances and allowances live in Solidity-style mappings
  - total supply always equals the sum of all balances
  - every public call is one request: its writes commit together or are
    rolled back together

Mint/burn authorization and token metadata are the caller's business.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from web3 import Web3

from .constants import DEFAULT_LAYOUT, MAX_UINT256, ZERO_ADDRESS, StorageLayout
from .errors import (
    ArithmeticOverflow,
    InsufficientAllowance,
    InsufficientBalance,
    InvalidReceiver,
    InvalidSender,
)
from .events import Approval, EventLog, Transfer
from .storage import Slot, StorageBackend, StorageMap, require_uint256


class Ledger:
    """Balances, allowances, and total supply of one fungible token.

    Parameters
    ----------
    storage : StorageBackend
        Where the ledger keeps its state.
    layout : StorageLayout
        Base slots of the ledger's maps inside *storage*.
    events : EventLog, optional
        Sink for Transfer/Approval notifications.
    """

    def __init__(
        self,
        storage: StorageBackend,
        layout: StorageLayout = DEFAULT_LAYOUT,
        events: EventLog | None = None,
    ) -> None:
        self._storage = storage
        self._layout = layout
        self._balances = StorageMap(storage, layout.balances)
        self._allowances = StorageMap(storage, layout.allowances)
        self._total_supply = Slot(storage, layout.total_supply)
        self.events = events if events is not None else EventLog()

    # -- read-only accessors --------------------------------------------------

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    @property
    def layout(self) -> StorageLayout:
        return self._layout

    def total_supply(self) -> int:
        return self._total_supply.get()

    def balance_of(self, account: str) -> int:
        return self._balances[Web3.to_checksum_address(account)]

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances[
            Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)
        ]

    # -- requests -------------------------------------------------------------

    def transfer(self, caller: str, to: str, value: int) -> bool:
        """Move *value* from *caller* to *to*."""
        caller, to = _address(caller), _address(to)
        require_uint256(value)
        with self._request():
            self._transfer(caller, to, value)
        return True

    def transfer_from(self, caller: str, sender: str, to: str, value: int) -> bool:
        """Move *value* from *sender* to *to* using *caller*'s allowance.

        The allowance is spent before balances are touched; if the balance
        check then fails the spend is rolled back with the rest of the
        request.
        """
        caller, sender, to = _address(caller), _address(sender), _address(to)
        require_uint256(value)
        with self._request():
            self._spend_allowance(sender, caller, value)
            self._transfer(sender, to, value)
        return True

    def approve(self, owner: str, spender: str, value: int) -> bool:
        """Set the allowance of *spender* over *owner*'s balance to *value*."""
        owner, spender = _address(owner), _address(spender)
        require_uint256(value)
        with self._request():
            self._approve(owner, spender, value)
        return True

    def spend_allowance(self, owner: str, spender: str, value: int) -> None:
        owner, spender = _address(owner), _address(spender)
        require_uint256(value)
        with self._request():
            self._spend_allowance(owner, spender, value)

    def increase_allowance(self, owner: str, spender: str, added: int) -> bool:
        owner, spender = _address(owner), _address(spender)
        require_uint256(added)
        with self._request():
            current = self._allowances[owner, spender]
            if current + added > MAX_UINT256:
                raise ArithmeticOverflow(current + added)
            self._approve(owner, spender, current + added)
        return True

    def decrease_allowance(self, owner: str, spender: str, subtracted: int) -> bool:
        owner, spender = _address(owner), _address(spender)
        require_uint256(subtracted)
        with self._request():
            current = self._allowances[owner, spender]
            if current < subtracted:
                raise InsufficientAllowance(spender, current, subtracted)
            self._approve(owner, spender, current - subtracted)
        return True

    def mint(self, account: str, value: int) -> None:
        """Create *value* new tokens in *account*."""
        account = _address(account)
        require_uint256(value)
        if account == ZERO_ADDRESS:
            raise InvalidReceiver(ZERO_ADDRESS)
        with self._request():
            self._update(ZERO_ADDRESS, account, value)

    def burn(self, account: str, value: int) -> None:
        """Destroy *value* tokens held by *account*."""
        account = _address(account)
        require_uint256(value)
        if account == ZERO_ADDRESS:
            raise InvalidSender(ZERO_ADDRESS)
        with self._request():
            self._update(account, ZERO_ADDRESS, value)

    def burn_from(self, caller: str, account: str, value: int) -> None:
        """Destroy *value* of *account*'s tokens using *caller*'s allowance."""
        caller, account = _address(caller), _address(account)
        require_uint256(value)
        if account == ZERO_ADDRESS:
            raise InvalidSender(ZERO_ADDRESS)
        with self._request():
            self._spend_allowance(account, caller, value)
            self._update(account, ZERO_ADDRESS, value)

    # -- internals ------------------------------------------------------------

    @contextmanager
    def _request(self) -> Iterator[None]:
        """Scope of one public call.

        Storage writes and emitted events commit together: events reach the
        log only after every step succeeded, and a subscriber that raises
        rolls the writes back as well.
        """
        with self._storage.atomic(), self.events.transaction():
            yield

    def _transfer(self, sender: str, to: str, value: int) -> None:
        if sender == ZERO_ADDRESS:
            raise InvalidSender(ZERO_ADDRESS)
        if to == ZERO_ADDRESS:
            raise InvalidReceiver(ZERO_ADDRESS)
        self._update(sender, to, value)

    def _update(self, sender: str, to: str, value: int) -> None:
        """Move *value* from *sender* to *to*; the null address mints or burns.

        All checks run before the first write. Only the supply can overflow:
        no balance exceeds the supply, so balance arithmetic is bounded.
        """
        supply = self._total_supply.get()
        if sender == ZERO_ADDRESS:
            if supply + value > MAX_UINT256:
                raise ArithmeticOverflow(supply + value)
            from_slot = None
        else:
            from_slot = self._balances.location_for(sender)
            balance = from_slot.get()
            if balance < value:
                raise InsufficientBalance(sender, balance, value)

        if from_slot is None:
            self._total_supply.set(supply + value)
        else:
            from_slot.set(balance - value)

        if to == ZERO_ADDRESS:
            self._total_supply.set(self._total_supply.get() - value)
        else:
            to_slot = self._balances.location_for(to)
            to_slot.set(to_slot.get() + value)

        self.events.emit(Transfer(sender, to, value))

    def _approve(self, owner: str, spender: str, value: int) -> None:
        self._allowances.location_for(owner, spender).set(value)
        self.events.emit(Approval(owner, spender, value))

    def _spend_allowance(self, owner: str, spender: str, value: int) -> None:
        slot = self._allowances.location_for(owner, spender)
        current = slot.get()
        if current == MAX_UINT256:
            return
        if current < value:
            raise InsufficientAllowance(spender, current, value)
        slot.set(current - value)


def _address(account: str) -> str:
    return Web3.to_checksum_address(account)
