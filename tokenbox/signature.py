"""secp256k1 signer recovery with ``ecrecover`` semantics.

Accepts only canonical signatures: ``v`` in {27, 28}, ``0 < r < n`` and
``0 < s <= n/2``. The upper-half ``s`` check removes the second valid
signature every ECDSA signature has, so a signature cannot be mutated into a
different byte string that still verifies.
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from .constants import SECP256K1_HALF_N, SECP256K1_N
from .errors import InvalidSignature, InvalidSignatureS


@dataclass(frozen=True)
class PermitSignature:
    """A recoverable ECDSA signature split into ``(v, r, s)``."""

    v: int
    r: int
    s: int

    @classmethod
    def from_bytes(cls, signature: bytes) -> "PermitSignature":
        """Split a 65-byte ``r ‖ s ‖ v`` signature."""
        if len(signature) != 65:
            raise InvalidSignature(f"signature length {len(signature)}, expected 65")
        return cls(
            v=signature[64],
            r=int.from_bytes(signature[0:32], "big"),
            s=int.from_bytes(signature[32:64], "big"),
        )

    def to_bytes(self) -> bytes:
        return (
            self.r.to_bytes(32, "big")
            + self.s.to_bytes(32, "big")
            + bytes([self.v])
        )

    @property
    def vrs(self) -> tuple[int, int, int]:
        return self.v, self.r, self.s


def recover(digest: bytes, v: int, r: int, s: int) -> str:
    """Return the checksummed address that signed *digest*.

    Raises
    ------
    InvalidSignatureS
        If *s* is in the upper half of the curve order.
    InvalidSignature
        If ``v``/``r``/``s`` do not encode a recoverable point.
    """
    if len(digest) != 32:
        raise ValueError(f"digest must be 32 bytes, got {len(digest)}")
    if s > SECP256K1_HALF_N:
        raise InvalidSignatureS(s)
    if v not in (27, 28):
        raise InvalidSignature(f"invalid recovery id v={v}")
    if not 0 < r < SECP256K1_N or s == 0:
        raise InvalidSignature("r or s out of range")

    try:
        signature = keys.Signature(vrs=(v - 27, r, s))
        public_key = signature.recover_public_key_from_msg_hash(bytes(digest))
    except (BadSignature, ValidationError) as exc:
        raise InvalidSignature(str(exc)) from exc
    return public_key.to_checksum_address()
