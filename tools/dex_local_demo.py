#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.core.errors import DexError
from src.integration.config import load_config
from src.integration.harness import LocalHarness
from src.integration.snapshot import snapshot_from_ledger
from src.state.units import format_ether, parse_ether


TRADER = "0x" + "00" * 19 + "a1"


def _balances(harness: LocalHarness, account: str) -> str:
    return " ".join(f"{sym}={format_ether(tok.balance_of(account))}" for sym, tok in sorted(harness.tokens.items()))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Replay the platform flow against a local exchange ledger.")
    parser.add_argument("--config", type=Path, default=None, help="YAML config (defaults to the packaged one)")
    parser.add_argument("--amount-in", default="10", help="swap input in whole units")
    parser.add_argument("--single-min-out", default="9", help="single-hop amountOutMin in whole units")
    parser.add_argument("--multi-min-out", default="8", help="multi-hop amountOutMin in whole units")
    parser.add_argument("--liquidity", default="10", help="amount of each token to deposit")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))

    harness = LocalHarness(load_config(args.config))
    platform = harness.setup()
    harness.fund_all(TRADER)
    tokens = harness.tokens
    print(f"[local-demo] ledger={harness.ledger.address}")
    print(f"[local-demo] trader balances: {_balances(harness, TRADER)}")

    amount_in = parse_ether(args.amount_in)
    single_in = tokens[harness.config.platform.single_hop_path[0]]
    multi_in = tokens[harness.config.platform.multi_hop_path[0]]
    try:
        single_in.approve(TRADER, platform.address, amount_in)
        out = platform.swap_single_hop_exact_amount_in(amount_in, parse_ether(args.single_min_out), TRADER)
        print(f"[local-demo] single hop out={format_ether(out)}")

        multi_in.approve(TRADER, platform.address, amount_in)
        out = platform.swap_multi_hop_exact_amount_in(amount_in, parse_ether(args.multi_min_out), TRADER)
        print(f"[local-demo] multi hop out={format_ether(out)}")

        tt1, tt2 = tokens["TT1"], tokens["TT2"]
        deposit = parse_ether(args.liquidity)
        tt1.approve(TRADER, platform.address, deposit)
        tt2.approve(TRADER, platform.address, deposit)
        added = platform.add_liquidity(tt1, tt2, deposit, deposit, TRADER)
        print(f"[local-demo] liquidity added shares={added.shares}")

        removed = platform.remove_liquidity(tt1, tt2, TRADER)
        print(
            f"[local-demo] liquidity removed amounts=({format_ether(removed.amount_a)}, {format_ether(removed.amount_b)})"
        )
    except DexError as exc:
        print(f"[local-demo] FAIL: {type(exc).__name__}: {exc}")
        return 1

    print(f"[local-demo] trader balances: {_balances(harness, TRADER)}")
    print(f"[local-demo] Log events: {len(harness.ledger.events)}")
    print(f"[local-demo] snapshot commitment={snapshot_from_ledger(harness.ledger).commitment_hex()}")
    print("[local-demo] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
