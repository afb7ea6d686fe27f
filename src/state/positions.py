"""
Liquidity position tracking.

Shares are scoped per pair_id and are tracked separately from asset balances.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Set, Tuple

from .balances import ZERO_ADDRESS, Address, Amount

# Type alias
PairId = str

# Holder of permanently locked minimum liquidity.
LOCKED_SHARES_OWNER = ZERO_ADDRESS


class PositionTable:
    """
    Share table mapping (owner, pair_id) -> shares, plus redemption agents.

    Notes:
    - Share balances are always non-negative.
    - Zero balances are omitted to keep the table sparse.
    """

    def __init__(self) -> None:
        self._shares: Dict[Tuple[Address, PairId], Amount] = {}
        self._agents: Dict[Tuple[Address, PairId], Set[Address]] = {}

    def get(self, owner: Address, pair_id: PairId) -> Amount:
        """Get shares for (owner, pair_id). Returns 0 if not found."""
        return self._shares.get((owner, pair_id), 0)

    def set(self, owner: Address, pair_id: PairId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Share balance cannot be negative: {amount}")
        if amount == 0:
            self._shares.pop((owner, pair_id), None)
        else:
            self._shares[(owner, pair_id)] = amount

    def add(self, owner: Address, pair_id: PairId, delta: int) -> None:
        """Add delta to a position (delta may be negative)."""
        current = self.get(owner, pair_id)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient shares: {current} + {delta} = {new_balance} < 0"
            )
        self.set(owner, pair_id, new_balance)

    def subtract(self, owner: Address, pair_id: PairId, delta: Amount) -> None:
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(owner, pair_id, -delta)

    def total_for_pair(self, pair_id: PairId) -> Amount:
        return sum(amount for (_owner, pid), amount in self._shares.items() if pid == pair_id)

    def positions_for_pair(self, pair_id: PairId) -> Dict[Address, Amount]:
        return {owner: amount for (owner, pid), amount in self._shares.items() if pid == pair_id}

    def get_all_positions(self) -> Dict[Tuple[Address, PairId], Amount]:
        return dict(self._shares)

    def approve_agent(self, owner: Address, pair_id: PairId, agent: Address) -> None:
        if agent == owner:
            raise ValueError("owner cannot be its own agent")
        self._agents.setdefault((owner, pair_id), set()).add(agent)

    def revoke_agent(self, owner: Address, pair_id: PairId, agent: Address) -> None:
        agents = self._agents.get((owner, pair_id))
        if not agents:
            return
        agents.discard(agent)
        if not agents:
            del self._agents[(owner, pair_id)]

    def is_agent(self, owner: Address, pair_id: PairId, agent: Address) -> bool:
        return agent in self._agents.get((owner, pair_id), ())

    def get_all_agents(self) -> Dict[Tuple[Address, PairId], FrozenSet[Address]]:
        return {k: frozenset(v) for k, v in self._agents.items()}

    def copy(self) -> "PositionTable":
        copied = PositionTable()
        copied._shares = dict(self._shares)
        copied._agents = {k: set(v) for k, v in self._agents.items()}
        return copied

    def verify_non_negative(self) -> bool:
        return all(amount >= 0 for amount in self._shares.values())

    def __repr__(self) -> str:
        return f"PositionTable({len(self._shares)} entries)"
