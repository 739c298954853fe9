"""EIP-712 signing domain with a cached domain separator.

The separator binds every signed message to one (chain, contract) pair. It
is computed once and cached together with the chain id and contract address
it was computed under. A read compares both against the current
:class:`Environment`; on any mismatch (chain fork, contract moved) the
separator is recomputed on the fly and the cache is left alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from eth_abi import encode
from web3 import Web3

from .constants import (
    DOMAIN_FIELDS,
    EIP712_DOMAIN_TYPEHASH,
    TYPED_DATA_PREFIX,
    ZERO_ADDRESS,
)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class Environment:
    """Facts about the execution context, supplied by the caller.

    Attributes
    ----------
    chain_id : int
        Identifier of the chain the ledger runs on.
    address : str
        Address of the ledger itself (the EIP-712 ``verifyingContract``).
    timestamp : int
        Current time in epoch seconds, used for permit deadlines.
    """

    chain_id: int
    address: str
    timestamp: int = 0


@dataclass(frozen=True)
class SigningDomain:
    """Human-readable name and version of the signing domain."""

    name: str
    version: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not isinstance(self.version, str):
            raise ValueError("domain name and version must be str")


@dataclass(frozen=True)
class DomainDescriptor:
    """ERC-5267 ``eip712Domain()`` return value."""

    fields: bytes
    name: str
    version: str
    chain_id: int
    verifying_contract: str
    salt: bytes = bytes(32)
    extensions: tuple[int, ...] = field(default_factory=tuple)


@dataclass
class SeparatorCache:
    address: str = ZERO_ADDRESS
    chain_id: int = 0
    separator: bytes = bytes(32)


# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------

def build_domain_separator(
    hashed_name: bytes,
    hashed_version: bytes,
    chain_id: int,
    address: str,
) -> bytes:
    """Return ``keccak256(abi.encode(typehash, name, version, chainId, addr))``."""
    return bytes(Web3.keccak(encode(
        ["bytes32", "bytes32", "bytes32", "uint256", "address"],
        [
            EIP712_DOMAIN_TYPEHASH,
            hashed_name,
            hashed_version,
            chain_id,
            Web3.to_checksum_address(address),
        ],
    )))


class EIP712Domain:
    """Signing domain bound to an :class:`Environment`."""

    def __init__(self, signing: SigningDomain, environment: Environment) -> None:
        self._signing = signing
        self._environment = environment
        self._hashed_name = bytes(Web3.keccak(text=signing.name))
        self._hashed_version = bytes(Web3.keccak(text=signing.version))
        self._cache = SeparatorCache()
        self.refresh_cache()

    # -- read-only accessors --------------------------------------------------

    @property
    def signing(self) -> SigningDomain:
        return self._signing

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def cache(self) -> SeparatorCache:
        return self._cache

    # -- separator ------------------------------------------------------------

    def refresh_cache(self) -> bytes:
        """Recompute the cached separator from the current environment."""
        chain_id = self._environment.chain_id
        address = Web3.to_checksum_address(self._environment.address)
        self._cache = SeparatorCache(
            address=address,
            chain_id=chain_id,
            separator=self._build(chain_id, address),
        )
        return self._cache.separator

    def current_separator(self) -> bytes:
        """Return the separator valid for the current environment."""
        chain_id = self._environment.chain_id
        address = Web3.to_checksum_address(self._environment.address)
        if address == self._cache.address and chain_id == self._cache.chain_id:
            return self._cache.separator
        return self._build(chain_id, address)

    def hash_typed_data(self, struct_hash: bytes) -> bytes:
        """Return the EIP-712 digest ``keccak256(0x1901 ‖ separator ‖ struct_hash)``."""
        if len(struct_hash) != 32:
            raise ValueError(f"struct hash must be 32 bytes, got {len(struct_hash)}")
        return bytes(Web3.keccak(
            TYPED_DATA_PREFIX + self.current_separator() + bytes(struct_hash)
        ))

    def eip712_domain(self) -> DomainDescriptor:
        return DomainDescriptor(
            fields=DOMAIN_FIELDS,
            name=self._signing.name,
            version=self._signing.version,
            chain_id=self._environment.chain_id,
            verifying_contract=Web3.to_checksum_address(self._environment.address),
        )

    def _build(self, chain_id: int, address: str) -> bytes:
        return build_domain_separator(
            self._hashed_name, self._hashed_version, chain_id, address,
        )
