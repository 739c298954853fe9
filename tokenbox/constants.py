"""Ledger constants, storage layout, and EIP-712 type hashes."""

from dataclasses import dataclass

from web3 import Web3


# --- Numeric bounds ---
MAX_UINT256 = 2**256 - 1
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

# --- Accounts ---
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# --- Chains ---
ANVIL_CHAIN_ID = 31337
MAINNET_CHAIN_ID = 1

# --- USDC (FiatTokenV2) on mainnet, used by the fork tests ---
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
USDC_BALANCE_SLOT = 9


# ---------------------------------------------------------------------------
# EIP-712 types
# ---------------------------------------------------------------------------

EIP712_DOMAIN_TYPE = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
PERMIT_TYPE = (
    "Permit(address owner,address spender,uint256 value,uint256 nonce,uint256 deadline)"
)

EIP712_DOMAIN_TYPEHASH = bytes(Web3.keccak(text=EIP712_DOMAIN_TYPE))
PERMIT_TYPEHASH = bytes(Web3.keccak(text=PERMIT_TYPE))

# "\x19\x01" prefix from EIP-191 version 0x01 (structured data)
TYPED_DATA_PREFIX = b"\x19\x01"

# ERC-5267 field bitmap: name, version, chainId, verifyingContract
DOMAIN_FIELDS = b"\x0f"

EIP712_DOMAIN_FIELDS = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

PERMIT_FIELDS = [
    {"name": "owner", "type": "address"},
    {"name": "spender", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "deadline", "type": "uint256"},
]


# ---------------------------------------------------------------------------
# Storage layout
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StorageLayout:
    """Base slots of the ledger's persistent maps and fields.

    Attributes
    ----------
    balances : int
        Base slot of the ``account -> balance`` mapping.
    allowances : int
        Base slot of the ``owner -> spender -> allowance`` mapping.
    total_supply : int
        Fixed slot holding the total supply.
    nonces : int
        Base slot of the ``owner -> nonce`` mapping.
    """

    balances: int
    allowances: int
    total_supply: int
    nonces: int


DEFAULT_LAYOUT = StorageLayout(balances=0, allowances=1, total_supply=2, nonces=3)
