"""Ledger and permit failures.

Every error carries the structured values a caller needs to decide whether
to retry with different inputs (account, current value, requested value).
"""


class TokenError(Exception):
    """Base class for all ledger and permit failures."""


# ---------------------------------------------------------------------------
# Invalid party
# ---------------------------------------------------------------------------

class InvalidSender(TokenError):
    """The null account was used as the source of value."""

    def __init__(self, sender: str):
        self.sender = sender
        super().__init__(f"invalid sender {sender}")


class InvalidReceiver(TokenError):
    """The null account was used as the destination of value."""

    def __init__(self, receiver: str):
        self.receiver = receiver
        super().__init__(f"invalid receiver {receiver}")


# ---------------------------------------------------------------------------
# Insufficiency
# ---------------------------------------------------------------------------

class InsufficientBalance(TokenError):
    def __init__(self, sender: str, balance: int, needed: int):
        self.sender = sender
        self.balance = balance
        self.needed = needed
        super().__init__(
            f"{sender} has balance {balance}, needs {needed}"
        )


class InsufficientAllowance(TokenError):
    def __init__(self, spender: str, allowance: int, needed: int):
        self.spender = spender
        self.allowance = allowance
        self.needed = needed
        super().__init__(
            f"{spender} has allowance {allowance}, needs {needed}"
        )


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

class ExpiredSignature(TokenError):
    def __init__(self, deadline: int):
        self.deadline = deadline
        super().__init__(f"permit expired at {deadline}")


class InvalidSigner(TokenError):
    def __init__(self, signer: str, owner: str):
        self.signer = signer
        self.owner = owner
        super().__init__(f"signer {signer} is not owner {owner}")


class InvalidAccountNonce(TokenError):
    def __init__(self, account: str, current_nonce: int):
        self.account = account
        self.current_nonce = current_nonce
        super().__init__(f"{account} nonce is {current_nonce}")


class InvalidSignature(TokenError):
    """The signature does not encode a recoverable secp256k1 point."""

    def __init__(self, reason: str = "invalid signature"):
        self.reason = reason
        super().__init__(reason)


class InvalidSignatureS(InvalidSignature):
    """The signature's ``s`` lies in the upper half of the curve order."""

    def __init__(self, s: int):
        self.s = s
        super().__init__(f"malleable signature s={s:#x}")


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

class ArithmeticOverflow(TokenError):
    def __init__(self, value: int):
        self.value = value
        super().__init__(f"{value} exceeds uint256")
