#!/usr/bin/env python3
"""tokenbox demo: mint, transfer, permit, and replay rejection.

Run:
    python -m tokenbox.main [--anvil [--port 8545]] [--name NAME] [--version V]

Without --anvil the ledger lives in memory. With --anvil a local node is
started and the ledger's storage is written into an account on it.
"""

import argparse
import sys
import time

from eth_account import Account
from web3 import Web3

from .anvil import AnvilStorage, ChainEnvironment, connect, start_anvil, stop_anvil
from .constants import ANVIL_CHAIN_ID, MAX_UINT256
from .domain import Environment, SigningDomain
from .errors import InvalidSigner, TokenError
from .permit import PermitLedger, permit_typed_data, sign_permit
from .storage import MemoryStorage

LEDGER_ADDRESS = "0x00000000000000000000000000000000000070cE"
MINT_AMOUNT = 1_000
TRANSFER_AMOUNT = 400
PERMIT_AMOUNT = 250


def _account(label: str):
    return Account.from_key(Web3.keccak(text=label))


def build_ledger(args: argparse.Namespace, w3: Web3 | None = None) -> PermitLedger:
    signing = SigningDomain(args.name, args.version)
    if w3 is not None:
        return PermitLedger(
            AnvilStorage(w3, LEDGER_ADDRESS),
            signing,
            ChainEnvironment(w3, LEDGER_ADDRESS),
        )
    env = Environment(args.chain_id, LEDGER_ADDRESS, int(time.time()))
    return PermitLedger(MemoryStorage(), signing, env)


def run(ledger: PermitLedger) -> bool:
    alice, bob, carol = _account("alice"), _account("bob"), _account("carol")
    print(f"=== tokenbox demo ({ledger.eip712_domain().name}) ===")

    # ---- 1. Mint and transfer ----
    ledger.mint(alice.address, MINT_AMOUNT)
    ledger.transfer(alice.address, bob.address, TRANSFER_AMOUNT)
    print(f"\n[1] mint {MINT_AMOUNT} to alice, transfer {TRANSFER_AMOUNT} to bob")
    print(f"    alice       : {ledger.balance_of(alice.address)}")
    print(f"    bob         : {ledger.balance_of(bob.address)}")
    print(f"    totalSupply : {ledger.total_supply()}")
    ledger_ok = (
        ledger.balance_of(alice.address) == MINT_AMOUNT - TRANSFER_AMOUNT
        and ledger.balance_of(bob.address) == TRANSFER_AMOUNT
        and ledger.total_supply() == MINT_AMOUNT
    )

    # ---- 2. Permit ----
    deadline = ledger.environment.timestamp + 3600
    nonce = ledger.nonces(alice.address)
    typed = permit_typed_data(
        ledger.eip712_domain(), alice.address, carol.address,
        PERMIT_AMOUNT, nonce, deadline,
    )
    sig = sign_permit(alice.key, typed)
    ledger.permit(alice.address, carol.address, PERMIT_AMOUNT, deadline, *sig.vrs)
    allowance = ledger.allowance(alice.address, carol.address)
    print(f"\n[2] permit alice -> carol for {PERMIT_AMOUNT} (nonce {nonce})")
    print(f"    separator   : 0x{ledger.domain_separator().hex()}")
    print(f"    allowance   : {allowance}")
    print(f"    next nonce  : {ledger.nonces(alice.address)}")
    permit_ok = allowance == PERMIT_AMOUNT

    # ---- 3. Replay ----
    try:
        ledger.permit(alice.address, carol.address, MAX_UINT256, deadline, *sig.vrs)
        replay_ok = False
    except InvalidSigner as exc:
        print(f"\n[3] replayed signature rejected: {exc}")
        replay_ok = True

    ok = ledger_ok and permit_ok and replay_ok
    verdict = "GO" if ok else "NO-GO"
    print(f"\n=== Verdict: {verdict} ===")
    print(f"    Ledger balances correct : {ledger_ok}")
    print(f"    Permit set allowance    : {permit_ok}")
    print(f"    Replay rejected         : {replay_ok}")
    return ok


def main() -> None:
    parser = argparse.ArgumentParser(description="tokenbox permit ledger demo")
    parser.add_argument("--anvil", action="store_true", help="Keep state on a local Anvil node")
    parser.add_argument("--port", type=int, default=8545, help="Anvil RPC port")
    parser.add_argument("--name", default="tokenbox", help="EIP-712 domain name")
    parser.add_argument("--version", default="1", help="EIP-712 domain version")
    parser.add_argument("--chain-id", type=int, default=ANVIL_CHAIN_ID,
                        help="Chain id for the in-memory ledger")
    args = parser.parse_args()

    proc = None
    ok = False
    try:
        w3 = None
        if args.anvil:
            proc = start_anvil(args.port)
            w3 = connect(args.port)
        ok = run(build_ledger(args, w3))

    except TokenError as exc:
        print(f"\nLEDGER ERROR: {exc}", file=sys.stderr)

    except Exception as exc:
        print(f"\nFATAL: {exc}", file=sys.stderr)
        import traceback; traceback.print_exc()

    finally:
        if proc is not None:
            stop_anvil(proc)

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
