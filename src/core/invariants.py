"""Invariant checkers for the exchange ledger.

Each function returns True when the invariant holds, and `check_all()` returns
the list of violated invariant IDs (empty = all pass).
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Callable, Dict

if TYPE_CHECKING:
    from .ledger import ExchangeLedger


def inv_reserves_non_negative(ledger: ExchangeLedger) -> bool:
    return all(p.reserve0 >= 0 and p.reserve1 >= 0 and p.share_supply >= 0 for p in ledger.pairs.values())


def inv_shares_match_supply(ledger: ExchangeLedger) -> bool:
    return all(ledger.positions.total_for_pair(p.pair_id) == p.share_supply for p in ledger.pairs.values())


def inv_empty_pair_consistent(ledger: ExchangeLedger) -> bool:
    for p in ledger.pairs.values():
        if p.share_supply == 0 and (p.reserve0 != 0 or p.reserve1 != 0):
            return False
        if p.share_supply > 0 and (p.reserve0 == 0 or p.reserve1 == 0):
            return False
    return True


def inv_reserves_backed(ledger: ExchangeLedger) -> bool:
    # Donations may leave the ledger holding more than its reserves, never less.
    owed: Dict[str, int] = defaultdict(int)
    for p in ledger.pairs.values():
        owed[p.asset0] += p.reserve0
        owed[p.asset1] += p.reserve1
    assets = ledger.assets
    for asset_id, amount in owed.items():
        token = assets.get(asset_id)
        if token is None:
            if amount:
                return False
            continue
        if token.balance_of(ledger.address) < amount:
            return False
    return True


INVARIANT_REGISTRY: dict[str, Callable[[ExchangeLedger], bool]] = {
    "inv_reserves_non_negative": inv_reserves_non_negative,
    "inv_shares_match_supply": inv_shares_match_supply,
    "inv_empty_pair_consistent": inv_empty_pair_consistent,
    "inv_reserves_backed": inv_reserves_backed,
}


def check_all(ledger: ExchangeLedger) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(ledger)
    ]
