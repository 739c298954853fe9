"""Shared pytest fixtures for tokenbox tests.

Provides in-memory ledgers and signing accounts for the pure tests, and
Anvil nodes (started through ``tokenbox.anvil``) for local-node and
mainnet fork tests.
"""

import os
import shutil
import socket

import pytest
from eth_account import Account
from web3 import Web3

from tokenbox.anvil import connect, start_anvil, stop_anvil
from tokenbox.constants import ANVIL_CHAIN_ID
from tokenbox.domain import Environment, SigningDomain
from tokenbox.permit import PermitLedger
from tokenbox.storage import MemoryStorage


LEDGER_ADDRESS = "0x000000000000000000000000000000000000C0DE"
NOW = 1_700_000_000


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _require_anvil() -> None:
    if shutil.which("anvil") is None:
        pytest.skip("anvil not found on PATH, install Foundry")


# ---------------------------------------------------------------------------
# In-memory ledger
# ---------------------------------------------------------------------------

@pytest.fixture
def alice():
    return Account.from_key(Web3.keccak(text="alice"))


@pytest.fixture
def bob():
    return Account.from_key(Web3.keccak(text="bob"))


@pytest.fixture
def carol():
    return Account.from_key(Web3.keccak(text="carol"))


@pytest.fixture
def env():
    return Environment(chain_id=ANVIL_CHAIN_ID, address=LEDGER_ADDRESS, timestamp=NOW)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def ledger(storage, env):
    """A fresh PermitLedger named "Token" v1 over in-memory storage."""
    return PermitLedger(storage, SigningDomain("Token", "1"), env)


# ---------------------------------------------------------------------------
# Local Anvil (no fork)
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def anvil_local():
    """Session-scoped local Anvil (no mainnet fork).

    Yields (web3_instance, port).
    """
    _require_anvil()
    port = _free_port()
    proc = start_anvil(port)
    try:
        yield connect(port), port
    finally:
        stop_anvil(proc)


# ---------------------------------------------------------------------------
# Forked Anvil (requires RPC_URL env var)
# ---------------------------------------------------------------------------

DEFAULT_FORK_BLOCK = 19_000_000


@pytest.fixture(scope="session")
def anvil_fork():
    """Session-scoped Anvil forking mainnet at a historical block.

    Requires the RPC_URL environment variable. Tests using this fixture
    are skipped if RPC_URL is not set.

    Yields (web3_instance, port).
    """
    _require_anvil()
    rpc_url = os.environ.get("RPC_URL")
    if not rpc_url:
        pytest.skip("RPC_URL not set, skipping mainnet fork tests")
    port = _free_port()
    proc = start_anvil(port, fork_url=rpc_url, block=DEFAULT_FORK_BLOCK)
    try:
        yield connect(port), port
    finally:
        stop_anvil(proc)
