"""
Trading pair state.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, replace
from typing import Tuple

from .balances import Amount, AssetId


PairKey = Tuple[AssetId, AssetId]

DEFAULT_FEE_BPS = 30


def pair_key(asset_a: AssetId, asset_b: AssetId) -> PairKey:
    """
    Canonical (sorted) key for an unordered asset pair.

    Raises:
        ValueError: If both sides name the same asset
    """
    if not isinstance(asset_a, str) or not isinstance(asset_b, str) or not asset_a or not asset_b:
        raise ValueError("asset identifiers must be non-empty strings")
    if asset_a == asset_b:
        raise ValueError(f"pair assets must differ: {asset_a}")
    return (asset_a, asset_b) if asset_a < asset_b else (asset_b, asset_a)


def compute_pair_id(asset0: AssetId, asset1: AssetId, fee_bps: int) -> str:
    """
    Deterministically compute a pair_id:
        pair_id = H("DexPair" || asset0 || asset1 || fee_bps)
    """
    if asset0 >= asset1:
        raise ValueError(f"Assets must be in canonical order: {asset0} < {asset1}")
    if not (0 <= fee_bps <= 10000):
        raise ValueError(f"fee_bps must be in [0, 10000]: {fee_bps}")

    data = (
        b"DexPair"
        + asset0.encode("utf-8")
        + asset1.encode("utf-8")
        + str(int(fee_bps)).encode("utf-8")
    )
    return "0x" + hashlib.sha256(data).hexdigest()


@dataclass
class TradingPair:
    """
    Reserve state of a two-asset constant-product pool.

    Attributes:
        pair_id: 32-byte pair identifier (hex string)
        asset0: First asset (must be < asset1 lexicographically)
        asset1: Second asset
        reserve0: Reserve amount for asset0
        reserve1: Reserve amount for asset1
        fee_bps: Swap fee in basis points (0-10000)
        share_supply: Total liquidity-share supply
        created_at: Sequence number of the call that created the pair
    """
    pair_id: str
    asset0: AssetId
    asset1: AssetId
    reserve0: Amount
    reserve1: Amount
    fee_bps: int
    share_supply: Amount
    created_at: int = 0

    def __post_init__(self):
        """Validate pair state invariants."""
        if self.asset0 >= self.asset1:
            raise ValueError(
                f"Assets must be in canonical order: {self.asset0} < {self.asset1}"
            )
        if not (0 <= self.fee_bps <= 10000):
            raise ValueError(f"fee_bps must be in [0, 10000]: {self.fee_bps}")
        if self.reserve0 < 0 or self.reserve1 < 0:
            raise ValueError(
                f"Reserves must be non-negative: ({self.reserve0}, {self.reserve1})"
            )
        if self.share_supply < 0:
            raise ValueError(f"Share supply must be non-negative: {self.share_supply}")

    @property
    def key(self) -> PairKey:
        return (self.asset0, self.asset1)

    def contains(self, asset: AssetId) -> bool:
        return asset == self.asset0 or asset == self.asset1

    def get_reserve(self, asset: AssetId) -> Amount:
        """
        Get reserve for a specific asset.

        Raises:
            ValueError: If asset is not in this pair
        """
        if asset == self.asset0:
            return self.reserve0
        elif asset == self.asset1:
            return self.reserve1
        else:
            raise ValueError(f"Asset {asset} not in pair {self.pair_id}")

    def other(self, asset: AssetId) -> AssetId:
        if asset == self.asset0:
            return self.asset1
        if asset == self.asset1:
            return self.asset0
        raise ValueError(f"Asset {asset} not in pair {self.pair_id}")

    def reserves_for(self, asset_in: AssetId) -> Tuple[Amount, Amount, AssetId]:
        """Return (reserve_in, reserve_out, asset_out) oriented for a swap of asset_in."""
        if asset_in == self.asset0:
            return self.reserve0, self.reserve1, self.asset1
        if asset_in == self.asset1:
            return self.reserve1, self.reserve0, self.asset0
        raise ValueError(f"Asset {asset_in} not in pair {self.pair_id}")

    def with_reserves_for(self, asset_in: AssetId, new_reserve_in: Amount, new_reserve_out: Amount) -> "TradingPair":
        """Copy with reserves updated from the swap-oriented view."""
        if asset_in == self.asset0:
            return replace(self, reserve0=new_reserve_in, reserve1=new_reserve_out)
        if asset_in == self.asset1:
            return replace(self, reserve0=new_reserve_out, reserve1=new_reserve_in)
        raise ValueError(f"Asset {asset_in} not in pair {self.pair_id}")

    def oriented(self, asset_a: AssetId) -> Tuple[Amount, Amount]:
        """Reserves as (reserve of asset_a, reserve of the other asset)."""
        reserve_a, reserve_b, _ = self.reserves_for(asset_a)
        return reserve_a, reserve_b

    def get_constant_product(self) -> int:
        """k = reserve0 * reserve1."""
        return self.reserve0 * self.reserve1

    def is_empty(self) -> bool:
        return self.share_supply == 0

    def copy(self) -> "TradingPair":
        return replace(self)

    def __repr__(self) -> str:
        return (
            f"TradingPair(pair_id={self.pair_id[:16]}..., "
            f"assets=({self.asset0[:8]}..., {self.asset1[:8]}...), "
            f"reserves=({self.reserve0}, {self.reserve1}), "
            f"share_supply={self.share_supply})"
        )
