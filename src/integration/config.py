"""
Deployment configuration: YAML defaults + environment overrides.

Load order:
1. `dex_config.yaml` next to this module (or the file named by `path` / `DEX_CONFIG`)
2. environment overrides:
   - DEX_FEE_BPS, DEX_MIN_LIQUIDITY_LOCK, DEX_MAX_HOPS  (ints)
   - DEX_RATIO_POLICY                                   ("refund" | "strict")
   - DEX_CHAIN_ID                                       (string)
   - DEX_STRICT_INVARIANTS                              (bool: 1/0, true/false, yes/no, on/off)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from ..core.ledger import LedgerConfig
from ..state.units import DEFAULT_DECIMALS, parse_units


def _default_config_path() -> Path:
    return Path(__file__).resolve().parent / "dex_config.yaml"


def _bool_env(env: Mapping[str, str], name: str, *, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return bool(default)
    v = raw.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return bool(default)


def _int_env(env: Mapping[str, str], name: str, *, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip(), 10)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _require_mapping(obj: Any, *, name: str) -> Mapping[str, Any]:
    if obj is None:
        return {}
    if not isinstance(obj, Mapping):
        raise ValueError(f"{name} must be a mapping")
    return obj


def _require_symbols(obj: Any, *, name: str) -> Tuple[str, ...]:
    if not isinstance(obj, (list, tuple)) or not all(isinstance(s, str) and s for s in obj):
        raise ValueError(f"{name} must be a list of token symbols")
    return tuple(obj)


@dataclass(frozen=True)
class PlatformConfig:
    single_hop_path: Tuple[str, ...] = ("WETH", "TT1")
    multi_hop_path: Tuple[str, ...] = ("TT1", "WETH", "TT2")


@dataclass(frozen=True)
class TokenSpec:
    name: str
    symbol: str
    initial_supply: int
    decimals: int = DEFAULT_DECIMALS


@dataclass(frozen=True)
class SeedSpec:
    assets: Tuple[str, str]
    amounts: Tuple[int, int]


@dataclass(frozen=True)
class HarnessConfig:
    deployer: str = "0x" + "00" * 19 + "d1"
    tokens: Tuple[TokenSpec, ...] = ()
    seed_liquidity: Tuple[SeedSpec, ...] = ()
    # Whole-unit amount of every token sent to each funded account.
    fund_amount: str = "100"

    def token(self, symbol: str) -> TokenSpec:
        for spec in self.tokens:
            if spec.symbol == symbol:
                return spec
        raise KeyError(symbol)


@dataclass(frozen=True)
class DexConfig:
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    platform: PlatformConfig = field(default_factory=PlatformConfig)
    harness: HarnessConfig = field(default_factory=HarnessConfig)


def _parse_ledger(obj: Mapping[str, Any]) -> LedgerConfig:
    known = {"fee_bps", "min_liquidity_lock", "ratio_policy", "max_hops", "chain_id", "check_invariants"}
    unknown = set(obj) - known
    if unknown:
        raise ValueError(f"unknown ledger config keys: {sorted(unknown)}")
    return LedgerConfig(**dict(obj))


def _parse_platform(obj: Mapping[str, Any]) -> PlatformConfig:
    defaults = PlatformConfig()
    single = _require_symbols(obj.get("single_hop_path", defaults.single_hop_path), name="platform.single_hop_path")
    multi = _require_symbols(obj.get("multi_hop_path", defaults.multi_hop_path), name="platform.multi_hop_path")
    if len(single) != 2:
        raise ValueError("platform.single_hop_path must name exactly two tokens")
    if len(multi) != 3:
        raise ValueError("platform.multi_hop_path must name exactly three tokens")
    return PlatformConfig(single_hop_path=single, multi_hop_path=multi)


def _parse_harness(obj: Mapping[str, Any]) -> HarnessConfig:
    tokens = []
    for i, entry in enumerate(obj.get("tokens") or []):
        entry = _require_mapping(entry, name=f"harness.tokens[{i}]")
        decimals = entry.get("decimals", DEFAULT_DECIMALS)
        try:
            spec = TokenSpec(
                name=str(entry["name"]),
                symbol=str(entry["symbol"]),
                initial_supply=parse_units(str(entry.get("initial_supply", "0")), decimals),
                decimals=int(decimals),
            )
        except KeyError as exc:
            raise ValueError(f"harness.tokens[{i}] missing key {exc}") from exc
        tokens.append(spec)
    symbols = [t.symbol for t in tokens]
    if len(set(symbols)) != len(symbols):
        raise ValueError(f"duplicate token symbols: {symbols}")
    decimals_by_symbol = {t.symbol: t.decimals for t in tokens}

    seeds = []
    for i, entry in enumerate(obj.get("seed_liquidity") or []):
        entry = _require_mapping(entry, name=f"harness.seed_liquidity[{i}]")
        assets = _require_symbols(entry.get("assets"), name=f"harness.seed_liquidity[{i}].assets")
        amounts = entry.get("amounts")
        if len(assets) != 2 or not isinstance(amounts, (list, tuple)) or len(amounts) != 2:
            raise ValueError(f"harness.seed_liquidity[{i}] needs two assets and two amounts")
        for symbol in assets:
            if symbol not in decimals_by_symbol:
                raise ValueError(f"harness.seed_liquidity[{i}] references unknown token {symbol!r}")
        seeds.append(
            SeedSpec(
                assets=(assets[0], assets[1]),
                amounts=(
                    parse_units(str(amounts[0]), decimals_by_symbol[assets[0]]),
                    parse_units(str(amounts[1]), decimals_by_symbol[assets[1]]),
                ),
            )
        )

    defaults = HarnessConfig()
    return HarnessConfig(
        deployer=str(obj.get("deployer", defaults.deployer)),
        tokens=tuple(tokens),
        seed_liquidity=tuple(seeds),
        fund_amount=str(obj.get("fund_amount", defaults.fund_amount)),
    )


def config_from_dict(obj: Mapping[str, Any]) -> DexConfig:
    obj = _require_mapping(obj, name="config")
    return DexConfig(
        ledger=_parse_ledger(_require_mapping(obj.get("ledger"), name="ledger")),
        platform=_parse_platform(_require_mapping(obj.get("platform"), name="platform")),
        harness=_parse_harness(_require_mapping(obj.get("harness"), name="harness")),
    )


def apply_env_overrides(config: DexConfig, env: Mapping[str, str]) -> DexConfig:
    led = config.ledger
    ledger = replace(
        led,
        fee_bps=_int_env(env, "DEX_FEE_BPS", default=led.fee_bps),
        min_liquidity_lock=_int_env(env, "DEX_MIN_LIQUIDITY_LOCK", default=led.min_liquidity_lock),
        max_hops=_int_env(env, "DEX_MAX_HOPS", default=led.max_hops),
        ratio_policy=(env.get("DEX_RATIO_POLICY") or led.ratio_policy).strip().lower(),
        chain_id=(env.get("DEX_CHAIN_ID") or "").strip() or led.chain_id,
        check_invariants=_bool_env(env, "DEX_STRICT_INVARIANTS", default=led.check_invariants),
    )
    return replace(config, ledger=ledger)


def load_config(path: Optional[Path] = None, *, env: Optional[Mapping[str, str]] = None) -> DexConfig:
    """Load YAML config (defaults to the packaged file) and apply environment overrides."""
    env = os.environ if env is None else env
    if path is None:
        raw_path = (env.get("DEX_CONFIG") or "").strip()
        path = Path(raw_path) if raw_path else _default_config_path()
    try:
        obj: Dict[str, Any] = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid YAML in {path}: {exc}") from exc
    return apply_env_overrides(config_from_dict(obj), env)
