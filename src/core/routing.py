"""
Swap routes: construction, quoting and 2-hop route search.

A route is an ordered sequence of one or two trading pairs (direct, or through
a common intermediate asset such as WETH). Routes are ephemeral: they are
built per swap call and never persisted.

Determinism:
- Quotes are computed against pair copies; the caller decides whether to commit.
- Route search ties are broken by (hop_count, pair_id sequence).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..state.balances import Amount, AssetId
from ..state.pairs import PairKey, TradingPair, pair_key
from .cpmm import swap_exact_in
from .errors import DexError, InvalidAmount, InvalidRoute


DEFAULT_MAX_HOPS = 2


@dataclass(frozen=True)
class RouteHop:
    pair_id: str
    asset_in: AssetId
    asset_out: AssetId


@dataclass(frozen=True)
class SwapRoute:
    hops: Tuple[RouteHop, ...]

    @property
    def asset_in(self) -> AssetId:
        return self.hops[0].asset_in

    @property
    def asset_out(self) -> AssetId:
        return self.hops[-1].asset_out

    @property
    def path(self) -> Tuple[AssetId, ...]:
        return (self.hops[0].asset_in,) + tuple(h.asset_out for h in self.hops)

    @property
    def pair_ids(self) -> Tuple[str, ...]:
        return tuple(h.pair_id for h in self.hops)

    def __len__(self) -> int:
        return len(self.hops)


@dataclass(frozen=True)
class HopQuote:
    hop: RouteHop
    amount_in: Amount
    amount_out: Amount


@dataclass(frozen=True)
class RouteQuote:
    route: SwapRoute
    amount_in: Amount
    amount_out: Amount
    hops: Tuple[HopQuote, ...]
    # Post-swap pair states keyed by pair_id (not yet committed).
    pairs_after: Dict[str, TradingPair]


def build_route(
    pairs_by_key: Mapping[PairKey, TradingPair],
    path: Sequence[AssetId],
    *,
    max_hops: int = DEFAULT_MAX_HOPS,
) -> SwapRoute:
    """
    Resolve an asset path ([A, B] or [A, MID, B]) into a route over existing pairs.

    Raises:
        InvalidRoute: malformed path, too many hops, or a missing pair
    """
    if isinstance(path, (str, bytes)):
        raise InvalidRoute("path must be a sequence of asset identifiers")
    assets = list(path)
    if len(assets) < 2:
        raise InvalidRoute(f"path needs at least two assets: {assets}")
    if len(assets) - 1 > max_hops:
        raise InvalidRoute(f"path has {len(assets) - 1} hops; at most {max_hops} allowed")
    if len(set(assets)) != len(assets):
        raise InvalidRoute(f"path must not revisit an asset: {assets}")

    hops: List[RouteHop] = []
    for asset_in, asset_out in zip(assets, assets[1:]):
        try:
            key = pair_key(asset_in, asset_out)
        except ValueError as exc:
            raise InvalidRoute(str(exc)) from exc
        pair = pairs_by_key.get(key)
        if pair is None:
            raise InvalidRoute(f"no pair for ({asset_in}, {asset_out})")
        hops.append(RouteHop(pair_id=pair.pair_id, asset_in=asset_in, asset_out=asset_out))
    return SwapRoute(hops=tuple(hops))


def quote_route(
    pairs_by_id: Mapping[str, TradingPair],
    route: SwapRoute,
    amount_in: Amount,
) -> RouteQuote:
    """
    Price an exact-in swap along `route` without mutating any pair.

    The output of hop i is the input of hop i+1; reserves are updated per hop
    on copies so a route that crosses the same pair twice would see its own
    earlier effect.
    """
    if not isinstance(amount_in, int) or isinstance(amount_in, bool) or amount_in <= 0:
        raise InvalidAmount(f"amount_in must be a positive int: {amount_in!r}")
    if not route.hops:
        raise InvalidRoute("route has no hops")

    working: Dict[str, TradingPair] = {}
    hop_quotes: List[HopQuote] = []
    current = amount_in
    for hop in route.hops:
        pair = working.get(hop.pair_id) or pairs_by_id.get(hop.pair_id)
        if pair is None:
            raise InvalidRoute(f"unknown pair_id: {hop.pair_id}")
        if not pair.contains(hop.asset_in) or pair.other(hop.asset_in) != hop.asset_out:
            raise InvalidRoute(f"pair {hop.pair_id} does not connect {hop.asset_in} -> {hop.asset_out}")
        reserve_in, reserve_out, _ = pair.reserves_for(hop.asset_in)
        amount_out, (new_in, new_out) = swap_exact_in(reserve_in, reserve_out, current, pair.fee_bps)
        working[hop.pair_id] = pair.with_reserves_for(hop.asset_in, new_in, new_out)
        hop_quotes.append(HopQuote(hop=hop, amount_in=current, amount_out=amount_out))
        current = amount_out

    return RouteQuote(
        route=route,
        amount_in=amount_in,
        amount_out=current,
        hops=tuple(hop_quotes),
        pairs_after=working,
    )


def _try_quote(pairs_by_id: Mapping[str, TradingPair], route: SwapRoute, amount_in: Amount) -> Optional[RouteQuote]:
    try:
        return quote_route(pairs_by_id, route, amount_in)
    except DexError:
        return None


def _quote_key(q: RouteQuote) -> Tuple[int, str]:
    # Prefer fewer hops, then lexicographic pair_id sequence.
    return (len(q.route), ",".join(q.route.pair_ids))


def best_route_exact_in_2hop(
    *,
    pairs_by_id: Mapping[str, TradingPair],
    asset_in: AssetId,
    asset_out: AssetId,
    amount_in: Amount,
) -> Optional[RouteQuote]:
    """
    Compute the best exact-in route up to 2 hops.

    Returns None when no pair combination connects the assets with a non-zero output.
    """
    if amount_in <= 0 or asset_in == asset_out:
        return None

    pairs: List[TradingPair] = sorted(pairs_by_id.values(), key=lambda p: p.pair_id)
    best: Optional[RouteQuote] = None

    def consider(q: Optional[RouteQuote]) -> None:
        nonlocal best
        if q is None:
            return
        if best is None or q.amount_out > best.amount_out or (
            q.amount_out == best.amount_out and _quote_key(q) < _quote_key(best)
        ):
            best = q

    for p in pairs:
        if p.contains(asset_in) and p.other(asset_in) == asset_out:
            route = SwapRoute(hops=(RouteHop(p.pair_id, asset_in, asset_out),))
            consider(_try_quote(pairs_by_id, route, amount_in))

    # asset_in -> mid -> asset_out
    for p1 in pairs:
        if not p1.contains(asset_in):
            continue
        mid = p1.other(asset_in)
        if mid == asset_out:
            continue
        for p2 in pairs:
            if p2.pair_id == p1.pair_id or not p2.contains(mid) or p2.other(mid) != asset_out:
                continue
            route = SwapRoute(
                hops=(RouteHop(p1.pair_id, asset_in, mid), RouteHop(p2.pair_id, mid, asset_out))
            )
            consider(_try_quote(pairs_by_id, route, amount_in))

    return best
