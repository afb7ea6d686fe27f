from __future__ import annotations

from pathlib import Path

import pytest

from src.integration.config import apply_env_overrides, config_from_dict, load_config
from src.state.units import parse_ether


def test_packaged_defaults() -> None:
    cfg = load_config(env={})
    assert cfg.ledger.fee_bps == 30
    assert cfg.ledger.min_liquidity_lock == 0
    assert cfg.ledger.ratio_policy == "refund"
    assert cfg.platform.single_hop_path == ("WETH", "TT1")
    assert cfg.platform.multi_hop_path == ("TT1", "WETH", "TT2")
    assert cfg.harness.token("TT1").initial_supply == parse_ether("10000")
    assert cfg.harness.seed_liquidity[0].amounts == (parse_ether("1000"), parse_ether("1000"))


def test_env_overrides() -> None:
    env = {
        "DEX_FEE_BPS": "5",
        "DEX_MIN_LIQUIDITY_LOCK": "1000",
        "DEX_RATIO_POLICY": "STRICT",
        "DEX_STRICT_INVARIANTS": "yes",
        "DEX_CHAIN_ID": "dex-test",
    }
    cfg = load_config(env=env)
    assert cfg.ledger.fee_bps == 5
    assert cfg.ledger.min_liquidity_lock == 1000
    assert cfg.ledger.ratio_policy == "strict"
    assert cfg.ledger.check_invariants is True
    assert cfg.ledger.chain_id == "dex-test"


def test_bad_env_values_raise() -> None:
    base = config_from_dict({})
    with pytest.raises(ValueError, match="DEX_FEE_BPS"):
        apply_env_overrides(base, {"DEX_FEE_BPS": "thirty"})
    with pytest.raises(ValueError):
        apply_env_overrides(base, {"DEX_RATIO_POLICY": "loose"})
    # Unrecognised booleans fall back to the configured value.
    assert apply_env_overrides(base, {"DEX_STRICT_INVARIANTS": "maybe"}).ledger.check_invariants is False


def test_config_path_from_env(tmp_path: Path) -> None:
    path = tmp_path / "dex.yaml"
    path.write_text(
        "ledger:\n  fee_bps: 100\n"
        "harness:\n  tokens:\n    - {name: Six, symbol: SIX, initial_supply: '2.5', decimals: 6}\n",
        encoding="utf-8",
    )
    cfg = load_config(env={"DEX_CONFIG": str(path)})
    assert cfg.ledger.fee_bps == 100
    assert cfg.harness.token("SIX").initial_supply == 2_500_000
    assert cfg.harness.seed_liquidity == ()


@pytest.mark.parametrize(
    "obj",
    [
        {"ledger": {"fee": 30}},
        {"ledger": []},
        {"platform": {"single_hop_path": ["WETH"]}},
        {"harness": {"tokens": [{"symbol": "X"}]}},
        {"harness": {"tokens": [{"name": "X", "symbol": "X"}], "seed_liquidity": [{"assets": ["X", "Y"], "amounts": [1, 1]}]}},
    ],
)
def test_invalid_config_is_rejected(obj) -> None:
    with pytest.raises(ValueError):
        config_from_dict(obj)


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("ledger: [unclosed\n", encoding="utf-8")
    with pytest.raises(ValueError, match="invalid YAML"):
        load_config(path, env={})
