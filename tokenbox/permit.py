"""EIP-2612 permit: set an allowance from an off-chain signature.

The holder signs a typed ``Permit`` message instead of sending ``approve``
themselves; anyone can relay the signature. ``permit()`` walks a fixed
sequence of checks:

  1. deadline      -> ExpiredSignature, before anything else is touched
  2. nonce         -> the owner's nonce is consumed and stays consumed
  3. digest        -> Permit struct hash wrapped by the EIP-712 domain
  4. recovery      -> InvalidSignature / InvalidSignatureS
  5. signer check  -> InvalidSigner
  6. approve       -> allowance set, Approval emitted

Step 2 commits even when 3-5 fail, so a signature built against a stale
nonce never gets a second try.
"""

from __future__ import annotations

from typing import Any

from eth_abi import encode
from eth_account import Account
from web3 import Web3

from .constants import (
    DEFAULT_LAYOUT,
    EIP712_DOMAIN_FIELDS,
    PERMIT_FIELDS,
    PERMIT_TYPEHASH,
    StorageLayout,
)
from .domain import DomainDescriptor, EIP712Domain, Environment, SigningDomain
from .errors import ExpiredSignature, InvalidSigner
from .events import EventLog
from .ledger import Ledger
from .nonces import NonceRegistry
from .signature import PermitSignature, recover
from .storage import StorageBackend, require_uint256


def permit_struct_hash(
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> bytes:
    return bytes(Web3.keccak(encode(
        ["bytes32", "address", "address", "uint256", "uint256", "uint256"],
        [
            PERMIT_TYPEHASH,
            Web3.to_checksum_address(owner),
            Web3.to_checksum_address(spender),
            value,
            nonce,
            deadline,
        ],
    )))


class PermitLedger(Ledger):
    """A :class:`Ledger` whose allowances can also be set by signature.

    Parameters
    ----------
    storage : StorageBackend
        Where balances, allowances, supply, and nonces live.
    signing : SigningDomain
        EIP-712 name and version, fixed for the life of the ledger.
    environment : Environment
        Chain id, ledger address, and clock supplied by the caller.
    layout : StorageLayout
        Base slots inside *storage*.
    events : EventLog, optional
        Sink for Transfer/Approval notifications.
    """

    def __init__(
        self,
        storage: StorageBackend,
        signing: SigningDomain,
        environment: Environment,
        layout: StorageLayout = DEFAULT_LAYOUT,
        events: EventLog | None = None,
    ) -> None:
        super().__init__(storage, layout, events)
        self._nonces = NonceRegistry(storage, layout.nonces)
        self._domain = EIP712Domain(signing, environment)

    # -- read-only accessors --------------------------------------------------

    @property
    def domain(self) -> EIP712Domain:
        return self._domain

    @property
    def environment(self) -> Environment:
        return self._domain.environment

    def nonces(self, owner: str) -> int:
        return self._nonces.nonces(owner)

    def domain_separator(self) -> bytes:
        return self._domain.current_separator()

    def eip712_domain(self) -> DomainDescriptor:
        return self._domain.eip712_domain()

    # -- permit ---------------------------------------------------------------

    def permit(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        v: int,
        r: int,
        s: int,
    ) -> None:
        """Approve *spender* for *value* of *owner*'s tokens by signature.

        Raises
        ------
        ExpiredSignature
            If the environment clock is past *deadline*.
        InvalidSignature
            If ``(v, r, s)`` is malformed.
        InvalidSigner
            If the signature was not made by *owner* over the current nonce.
        """
        owner = Web3.to_checksum_address(owner)
        spender = Web3.to_checksum_address(spender)
        require_uint256(value)
        require_uint256(deadline, "deadline")

        if self.environment.timestamp > deadline:
            raise ExpiredSignature(deadline)

        nonce = self._nonces.use_nonce(owner)
        digest = self._domain.hash_typed_data(
            permit_struct_hash(owner, spender, value, nonce, deadline)
        )
        signer = recover(digest, v, r, s)
        if signer != owner:
            raise InvalidSigner(signer, owner)

        with self._request():
            self._approve(owner, spender, value)


# ---------------------------------------------------------------------------
# Client-side helpers
# ---------------------------------------------------------------------------

def permit_typed_data(
    descriptor: DomainDescriptor,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> dict[str, Any]:
    """Return the EIP-712 document a wallet signs for a permit."""
    return {
        "types": {
            "EIP712Domain": EIP712_DOMAIN_FIELDS,
            "Permit": PERMIT_FIELDS,
        },
        "primaryType": "Permit",
        "domain": {
            "name": descriptor.name,
            "version": descriptor.version,
            "chainId": descriptor.chain_id,
            "verifyingContract": descriptor.verifying_contract,
        },
        "message": {
            "owner": Web3.to_checksum_address(owner),
            "spender": Web3.to_checksum_address(spender),
            "value": value,
            "nonce": nonce,
            "deadline": deadline,
        },
    }


def sign_permit(private_key: bytes | str, typed_data: dict[str, Any]) -> PermitSignature:
    """Sign *typed_data* with *private_key* via ``eth_account``."""
    signed = Account.sign_typed_data(private_key, full_message=typed_data)
    return PermitSignature(v=signed.v, r=signed.r, s=signed.s)
