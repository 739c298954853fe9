"""Anvil node lifecycle, storage substrate, and chain environment.

``AnvilStorage`` keeps the ledger's slots in the storage of an account on a
running Anvil node, so a ledger built on it is visible to anything that
reads that account's storage (including a deployed token's own getters).
"""

from __future__ import annotations

import signal
import subprocess
import time
from contextlib import contextmanager
from typing import Iterator

from web3 import Web3


def start_anvil(
    port: int = 8545,
    fork_url: str | None = None,
    block: int | None = None,
    timeout: float = 15.0,
) -> subprocess.Popen:
    """Launch anvil on *port*, optionally forking *fork_url* at *block*.

    Waits up to *timeout* seconds for the RPC to answer.
    """
    args = ["anvil", "--port", str(port), "--silent"]
    if fork_url:
        args += ["--fork-url", fork_url]
        if block is not None:
            args += ["--fork-block-number", str(block)]
    proc = subprocess.Popen(
        args,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    # Wait for RPC to be ready
    w3 = Web3(Web3.HTTPProvider(f"http://127.0.0.1:{port}"))
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if w3.is_connected():
                return proc
        except Exception:
            pass
        time.sleep(0.3)
    proc.kill()
    raise RuntimeError(f"Anvil failed to start on port {port}")


def stop_anvil(proc: subprocess.Popen) -> None:
    proc.send_signal(signal.SIGTERM)
    try:
        proc.wait(timeout=5)
    except subprocess.TimeoutExpired:
        proc.kill()


def connect(port: int = 8545) -> Web3:
    w3 = Web3(Web3.HTTPProvider(f"http://127.0.0.1:{port}"))
    if not w3.is_connected():
        raise ConnectionError(f"Cannot reach Anvil RPC on port {port}")
    return w3


def _word(n: int) -> str:
    return "0x" + n.to_bytes(32, "big").hex()


def _rpc(w3: Web3, method: str, params: list):
    response = w3.provider.make_request(method, params)
    if "error" in response:
        raise RuntimeError(f"{method} failed: {response['error']}")
    return response.get("result")


# ---------------------------------------------------------------------------
# Storage substrate
# ---------------------------------------------------------------------------

class AnvilStorage:
    """Storage slots of *address* on an Anvil node.

    ``atomic()`` takes an ``evm_snapshot`` and reverts to it if the block
    raises, which undoes every ``anvil_setStorageAt`` made inside it.
    """

    def __init__(self, w3: Web3, address: str) -> None:
        self._w3 = w3
        self._address = Web3.to_checksum_address(address)

    @property
    def address(self) -> str:
        return self._address

    def load(self, slot: int) -> int:
        raw = self._w3.eth.get_storage_at(self._address, slot)
        return int.from_bytes(raw, "big")

    def store(self, slot: int, value: int) -> None:
        _rpc(self._w3, "anvil_setStorageAt", [self._address, _word(slot), _word(value)])

    @contextmanager
    def atomic(self) -> Iterator["AnvilStorage"]:
        """Revert every write in the block if it raises.

        Each call takes one ``evm_snapshot``. ``evm_revert`` consumes it on
        failure, but Anvil has no RPC to release a snapshot, so one taken by
        a block that succeeds stays on the node until the node restarts.
        Long-running sessions against one node should restart it from time
        to time.
        """
        snapshot = _rpc(self._w3, "evm_snapshot", [])
        try:
            yield self
        except BaseException:
            _rpc(self._w3, "evm_revert", [snapshot])
            raise


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

class ChainEnvironment:
    """Chain id and clock read live from the node.

    Has the same attributes as :class:`tokenbox.domain.Environment`; the
    values follow the node, so a chain id change is seen immediately.
    """

    def __init__(self, w3: Web3, address: str) -> None:
        self._w3 = w3
        self.address = Web3.to_checksum_address(address)

    @property
    def chain_id(self) -> int:
        return self._w3.eth.chain_id

    @property
    def timestamp(self) -> int:
        return self._w3.eth.get_block("latest")["timestamp"]
