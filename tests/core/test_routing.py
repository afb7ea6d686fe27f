from __future__ import annotations

import pytest

from src.core.errors import InvalidRoute
from src.core.routing import best_route_exact_in_2hop, build_route, quote_route
from src.state.pairs import TradingPair, pair_key


def _pair(pid: str, a0: str, a1: str, r0: int, r1: int, fee_bps: int = 0) -> TradingPair:
    return TradingPair(
        pair_id=pid,
        asset0=min(a0, a1),
        asset1=max(a0, a1),
        reserve0=r0 if a0 < a1 else r1,
        reserve1=r1 if a0 < a1 else r0,
        fee_bps=fee_bps,
        share_supply=1,
    )


def _by_key(*pairs: TradingPair) -> dict:
    return {p.key: p for p in pairs}


def test_build_route_resolves_direct_and_two_hop_paths():
    pairs = _by_key(_pair("p_ac", "A", "C", 1000, 1000), _pair("p_cb", "C", "B", 1000, 1000))
    route = build_route(pairs, ["A", "C", "B"])
    assert route.path == ("A", "C", "B")
    assert route.pair_ids == ("p_ac", "p_cb")
    assert len(route) == 2

    direct = build_route(pairs, ["C", "A"])
    assert direct.asset_in == "C" and direct.asset_out == "A"


@pytest.mark.parametrize(
    "path",
    [
        ["A"],
        ["A", "A"],
        ["A", "B"],  # no A/B pair
        ["A", "C", "B", "D"],  # three hops
        ["A", "C", "A"],
    ],
)
def test_build_route_rejects_bad_paths(path):
    pairs = _by_key(_pair("p_ac", "A", "C", 1000, 1000), _pair("p_cb", "C", "B", 1000, 1000))
    with pytest.raises(InvalidRoute):
        build_route(pairs, path)


def test_build_route_respects_max_hops():
    pairs = _by_key(_pair("p_ac", "A", "C", 1000, 1000), _pair("p_cb", "C", "B", 1000, 1000))
    with pytest.raises(InvalidRoute, match="at most 1"):
        build_route(pairs, ["A", "C", "B"], max_hops=1)


def test_quote_chains_hops_without_mutating_pairs():
    p_ac = _pair("p_ac", "A", "C", 1000, 1000)
    p_cb = _pair("p_cb", "C", "B", 1000, 1000)
    route = build_route(_by_key(p_ac, p_cb), ["A", "C", "B"])
    q = quote_route({"p_ac": p_ac, "p_cb": p_cb}, route, 100)

    assert q.hops[0].amount_out == 1000 * 100 // 1100
    assert q.hops[1].amount_in == q.hops[0].amount_out
    assert q.amount_out == q.hops[1].amount_out
    assert q.pairs_after["p_ac"].get_reserve("A") == 1100
    # Originals untouched.
    assert p_ac.reserve0 == 1000 and p_cb.reserve1 == 1000


def test_best_route_picks_direct_if_best():
    # A-B direct pair is very good; A-C-B path is worse.
    pairs = {
        "p_ab": _pair("p_ab", "A", "B", 1000, 1000),
        "p_ac": _pair("p_ac", "A", "C", 1000, 10),
        "p_cb": _pair("p_cb", "C", "B", 10, 1000),
    }
    q = best_route_exact_in_2hop(pairs_by_id=pairs, asset_in="A", asset_out="B", amount_in=10)
    assert q is not None
    assert q.route.pair_ids == ("p_ab",)


def test_best_route_uses_2hop_when_better():
    pairs = {
        "p_ab": _pair("p_ab", "A", "B", 1000, 1),
        "p_ac": _pair("p_ac", "A", "C", 1000, 1000),
        "p_cb": _pair("p_cb", "C", "B", 1000, 1000),
    }
    q = best_route_exact_in_2hop(pairs_by_id=pairs, asset_in="A", asset_out="B", amount_in=10)
    assert q is not None
    assert q.route.path == ("A", "C", "B")


def test_tie_break_is_deterministic():
    pairs = {
        "p2": _pair("p2", "A", "B", 1000, 1000),
        "p1": _pair("p1", "A", "B", 1000, 1000),
    }
    q = best_route_exact_in_2hop(pairs_by_id=pairs, asset_in="A", asset_out="B", amount_in=10)
    assert q is not None
    assert q.route.pair_ids == ("p1",)


def test_best_route_none_when_disconnected():
    pairs = {"p_ac": _pair("p_ac", "A", "C", 1000, 1000)}
    assert best_route_exact_in_2hop(pairs_by_id=pairs, asset_in="A", asset_out="B", amount_in=10) is None
    assert pair_key("B", "A") == ("A", "B")
