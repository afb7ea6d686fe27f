"""
Nonce table for permit replay protection.

We track, per owner, the last accepted permit nonce. Policy is strict
sequential nonces: the next accepted nonce is always `last + 1`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

from .balances import Address


@dataclass
class NonceTable:
    """Mutable mapping: owner -> last_used_nonce."""

    _last: Dict[Address, int] = field(default_factory=dict)

    def get_last(self, owner: Address) -> int:
        v = self._last.get(owner, 0)
        if not isinstance(v, int) or isinstance(v, bool) or v < 0:
            raise ValueError(f"invalid stored nonce for {owner!r}: {v!r}")
        return int(v)

    def next_nonce(self, owner: Address) -> int:
        return self.get_last(owner) + 1

    def set_last(self, owner: Address, last_nonce: int) -> None:
        if not isinstance(last_nonce, int) or isinstance(last_nonce, bool) or last_nonce < 0:
            raise TypeError("last_nonce must be a non-negative int")
        if last_nonce > 0xFFFFFFFF:
            raise TypeError("last_nonce must fit in u32")
        if last_nonce == 0:
            self._last.pop(owner, None)
        else:
            self._last[owner] = int(last_nonce)

    def get_all(self) -> Mapping[Address, int]:
        # Return a shallow copy to avoid accidental mutation during iteration.
        return dict(self._last)

    def copy(self) -> "NonceTable":
        return NonceTable(dict(self._last))
