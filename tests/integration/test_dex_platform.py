# [TESTER] v1

from __future__ import annotations

import pytest

from src.core.errors import InsufficientAllowance, InsufficientPosition, SlippageExceeded
from src.core.events import LIQUIDITY
from src.integration.config import load_config
from src.integration.harness import LocalHarness
from src.state.units import parse_ether


ADDR1 = "0x" + "00" * 19 + "a1"


@pytest.fixture()
def harness() -> LocalHarness:
    h = LocalHarness(load_config(env={}))
    h.setup()
    h.fund_all(ADDR1)
    return h


def test_swap_weth_to_tt1_single_hop(harness: LocalHarness) -> None:
    weth, tt1 = harness.tokens["WETH"], harness.tokens["TT1"]
    platform = harness.platform
    amount_in = parse_ether("10")

    weth.approve(ADDR1, platform.address, amount_in)
    out = platform.swapSingleHopExactAmountIn(amount_in, parse_ether("9"), ADDR1)

    assert parse_ether("9.87") < out < parse_ether("9.88")
    assert tt1.balance_of(ADDR1) == parse_ether("100") + out
    assert weth.balance_of(ADDR1) == parse_ether("90")


def test_single_hop_slippage_limit(harness: LocalHarness) -> None:
    weth, tt1 = harness.tokens["WETH"], harness.tokens["TT1"]
    platform = harness.platform
    weth.approve(ADDR1, platform.address, parse_ether("10"))

    with pytest.raises(SlippageExceeded):
        platform.swap_single_hop_exact_amount_in(parse_ether("10"), parse_ether("9.9"), ADDR1)
    assert tt1.balance_of(ADDR1) == parse_ether("100")


def test_swap_without_approval_fails(harness: LocalHarness) -> None:
    with pytest.raises(InsufficientAllowance):
        harness.platform.swap_single_hop_exact_amount_in(parse_ether("10"), 0, ADDR1)


def test_multi_hop_tt1_weth_tt2(harness: LocalHarness) -> None:
    tt1, tt2 = harness.tokens["TT1"], harness.tokens["TT2"]
    platform = harness.platform
    amount_in = parse_ether("10")

    single_equivalent = harness.ledger.quote_exact_in([tt1, harness.tokens["WETH"]], amount_in).amount_out
    tt1.approve(ADDR1, platform.address, amount_in)
    out = platform.swapMultiHopExactAmountIn(amount_in, parse_ether("8"), ADDR1)

    assert out > parse_ether("8")
    assert out < single_equivalent
    assert tt2.balance_of(ADDR1) == parse_ether("100") + out
    assert tt1.balance_of(ADDR1) == parse_ether("90")


def test_add_liquidity_tt1_tt2_emits_liquidity_log(harness: LocalHarness) -> None:
    tt1, tt2 = harness.tokens["TT1"], harness.tokens["TT2"]
    platform = harness.platform
    amount = parse_ether("10")
    tt1.approve(ADDR1, platform.address, amount)
    tt2.approve(ADDR1, platform.address, amount)
    events_before = len(harness.ledger.events)

    res = platform.addLiquidity(tt1, tt2, amount, amount, ADDR1)

    new_events = list(harness.ledger.events)[events_before:]
    assert [e.category for e in new_events] == [LIQUIDITY]
    assert new_events[0].emitter == platform.address
    assert res.shares == parse_ether("10")
    assert harness.ledger.get_reserves(tt1, tt2) == (amount, amount)


def test_remove_liquidity_tt1_tt2(harness: LocalHarness) -> None:
    tt1, tt2 = harness.tokens["TT1"], harness.tokens["TT2"]
    platform = harness.platform
    amount = parse_ether("10")
    tt1.approve(ADDR1, platform.address, amount)
    tt2.approve(ADDR1, platform.address, amount)
    platform.add_liquidity(tt1.address, tt2.address, amount, amount, ADDR1)

    res = platform.removeLiquidity(tt1.address, tt2.address, ADDR1)

    assert res.amount_a == amount and res.amount_b == amount
    assert tt1.balance_of(ADDR1) == parse_ether("100")
    assert tt2.balance_of(ADDR1) == parse_ether("100")
    assert harness.ledger.events.last(LIQUIDITY).value["action"] == "remove"


def test_remove_liquidity_without_position(harness: LocalHarness) -> None:
    tt1, tt2 = harness.tokens["TT1"], harness.tokens["TT2"]
    seq = harness.ledger.sequence

    with pytest.raises(InsufficientPosition):
        harness.platform.remove_liquidity(tt1, tt2, ADDR1)

    assert harness.ledger.get_pair(tt1, tt2) is None
    assert harness.ledger.get_reserves(tt1, tt2) == (0, 0)
    assert harness.ledger.sequence == seq
    assert tt1.balance_of(ADDR1) > 0
    assert tt2.balance_of(ADDR1) > 0


def test_remove_liquidity_from_someone_elses_pair(harness: LocalHarness) -> None:
    tt1, tt2 = harness.tokens["TT1"], harness.tokens["TT2"]
    harness.add_liquidity(harness.deployer, "TT1", "TT2", parse_ether("10"), parse_ether("10"))
    before = harness.ledger.get_reserves(tt1, tt2)

    with pytest.raises(InsufficientPosition):
        harness.platform.remove_liquidity(tt1, tt2, ADDR1)

    assert harness.ledger.get_reserves(tt1, tt2) == before


def test_harness_seeding_matches_config(harness: LocalHarness) -> None:
    weth, tt1, tt2 = harness.tokens["WETH"], harness.tokens["TT1"], harness.tokens["TT2"]
    assert harness.ledger.get_reserves(weth, tt1) == (parse_ether("1000"), parse_ether("1000"))
    assert harness.ledger.get_reserves(weth, tt2) == (parse_ether("1000"), parse_ether("1000"))
    assert weth.balance_of(harness.deployer) == parse_ether("10000") - parse_ether("2000") - parse_ether("100")
    assert harness.ledger.check_invariants() == []
    with pytest.raises(ValueError):
        harness.deploy_token("Again", "TT1", 0)
