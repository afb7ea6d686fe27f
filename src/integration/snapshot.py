"""
Exchange ledger snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / snapshot distribution.
- Round-trippable into an `ExchangeLedger` (token balances are owned by the
  token contracts and are not part of the snapshot).
- Explicit versioning.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional

from ..core.invariants import check_all
from ..core.ledger import ExchangeLedger, LedgerConfig
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from ..state.pairs import TradingPair, compute_pair_id
from ..state.tokens import FungibleAsset


LEDGER_SNAPSHOT_VERSION = 1


def _require_str(value: Any, *, name: str, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    if not value:
        raise ValueError(f"{name} must be non-empty")
    if len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_list(value: Any, *, name: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list")
    return value


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Deterministic, versioned snapshot of an `ExchangeLedger`.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return sha256_hex(payload)


def snapshot_from_ledger(ledger: ExchangeLedger, *, version: int = LEDGER_SNAPSHOT_VERSION) -> LedgerSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")

    pairs_entries = [
        {
            "pair_id": p.pair_id,
            "asset0": p.asset0,
            "asset1": p.asset1,
            "reserve0": int(p.reserve0),
            "reserve1": int(p.reserve1),
            "fee_bps": int(p.fee_bps),
            "share_supply": int(p.share_supply),
            "created_at": int(p.created_at),
        }
        for p in ledger.pairs.values()
    ]
    pairs_entries.sort(key=lambda e: e["pair_id"])

    position_entries = [
        {"owner": owner, "pair_id": pair_id, "shares": int(shares)}
        for (owner, pair_id), shares in ledger.positions.get_all_positions().items()
    ]
    position_entries.sort(key=lambda e: (e["owner"], e["pair_id"]))

    agent_entries = [
        {"owner": owner, "pair_id": pair_id, "agents": sorted(agents)}
        for (owner, pair_id), agents in ledger.positions.get_all_agents().items()
    ]
    agent_entries.sort(key=lambda e: (e["owner"], e["pair_id"]))

    nonce_entries = [{"owner": owner, "last_nonce": int(last)} for owner, last in ledger.nonces.get_all().items()]
    nonce_entries.sort(key=lambda e: e["owner"])

    cfg = ledger.config
    data: Dict[str, Any] = {
        "version": version,
        "address": ledger.address,
        "sequence": int(ledger.sequence),
        "config": {
            "fee_bps": cfg.fee_bps,
            "min_liquidity_lock": cfg.min_liquidity_lock,
            "ratio_policy": cfg.ratio_policy,
            "max_hops": cfg.max_hops,
            "chain_id": cfg.chain_id,
        },
        "assets": sorted(ledger.assets.keys()),
        "pairs": pairs_entries,
        "positions": position_entries,
        "agents": agent_entries,
        "nonces": nonce_entries,
    }
    return LedgerSnapshot(version=version, data=data)


def ledger_from_snapshot(
    obj: Mapping[str, Any],
    tokens: Iterable[FungibleAsset],
    *,
    check_invariants: Optional[bool] = None,
) -> ExchangeLedger:
    """
    Rebuild a ledger from `snapshot.data`, attaching the given token contracts.

    Every asset listed in the snapshot must be provided. The rebuild is strict:
    pair ids must match their assets and fee, positions and agents must name a
    listed pair, and the result must pass every ledger invariant.
    """
    if not isinstance(obj, Mapping):
        raise TypeError("snapshot must be a mapping")
    version = _require_int(obj.get("version"), name="version")
    if version != LEDGER_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    cfg_obj = obj.get("config")
    if not isinstance(cfg_obj, Mapping):
        raise TypeError("config must be a mapping")
    config = LedgerConfig(
        fee_bps=_require_int(cfg_obj.get("fee_bps"), name="config.fee_bps"),
        min_liquidity_lock=_require_int(cfg_obj.get("min_liquidity_lock"), name="config.min_liquidity_lock"),
        ratio_policy=_require_str(cfg_obj.get("ratio_policy"), name="config.ratio_policy"),
        max_hops=_require_int(cfg_obj.get("max_hops"), name="config.max_hops"),
        chain_id=_require_str(cfg_obj.get("chain_id"), name="config.chain_id"),
        check_invariants=bool(check_invariants),
    )
    ledger = ExchangeLedger(config, address=_require_str(obj.get("address"), name="address"))

    by_address = {t.address: t for t in tokens}
    for i, asset_id in enumerate(_require_list(obj.get("assets"), name="assets")):
        asset_id = _require_str(asset_id, name=f"assets[{i}]")
        token = by_address.get(asset_id)
        if token is None:
            raise ValueError(f"snapshot asset {asset_id} was not provided")
        ledger.register_asset(token)

    pairs: Dict[Any, TradingPair] = {}
    for i, e in enumerate(_require_list(obj.get("pairs"), name="pairs")):
        if not isinstance(e, Mapping):
            raise TypeError(f"pairs[{i}] must be a mapping")
        pair = TradingPair(
            pair_id=_require_str(e.get("pair_id"), name=f"pairs[{i}].pair_id"),
            asset0=_require_str(e.get("asset0"), name=f"pairs[{i}].asset0"),
            asset1=_require_str(e.get("asset1"), name=f"pairs[{i}].asset1"),
            reserve0=_require_int(e.get("reserve0"), name=f"pairs[{i}].reserve0"),
            reserve1=_require_int(e.get("reserve1"), name=f"pairs[{i}].reserve1"),
            fee_bps=_require_int(e.get("fee_bps"), name=f"pairs[{i}].fee_bps"),
            share_supply=_require_int(e.get("share_supply"), name=f"pairs[{i}].share_supply"),
            created_at=_require_int(e.get("created_at"), name=f"pairs[{i}].created_at"),
        )
        if pair.pair_id != compute_pair_id(pair.asset0, pair.asset1, pair.fee_bps):
            raise ValueError(f"pairs[{i}].pair_id does not match its assets and fee: {pair.pair_id}")
        if pair.key in pairs:
            raise ValueError(f"duplicate pair in snapshot: {pair.key}")
        pairs[pair.key] = pair
    ledger._pairs = pairs
    pair_ids = {p.pair_id for p in pairs.values()}

    for i, e in enumerate(_require_list(obj.get("positions"), name="positions")):
        if not isinstance(e, Mapping):
            raise TypeError(f"positions[{i}] must be a mapping")
        pair_id = _require_str(e.get("pair_id"), name=f"positions[{i}].pair_id")
        if pair_id not in pair_ids:
            raise ValueError(f"positions[{i}] references unknown pair {pair_id}")
        ledger.positions.set(
            _require_str(e.get("owner"), name=f"positions[{i}].owner"),
            pair_id,
            _require_int(e.get("shares"), name=f"positions[{i}].shares"),
        )

    for i, e in enumerate(_require_list(obj.get("agents"), name="agents")):
        if not isinstance(e, Mapping):
            raise TypeError(f"agents[{i}] must be a mapping")
        owner = _require_str(e.get("owner"), name=f"agents[{i}].owner")
        pair_id = _require_str(e.get("pair_id"), name=f"agents[{i}].pair_id")
        if pair_id not in pair_ids:
            raise ValueError(f"agents[{i}] references unknown pair {pair_id}")
        for j, agent in enumerate(_require_list(e.get("agents"), name=f"agents[{i}].agents")):
            ledger.positions.approve_agent(owner, pair_id, _require_str(agent, name=f"agents[{i}].agents[{j}]"))

    for i, e in enumerate(_require_list(obj.get("nonces"), name="nonces")):
        if not isinstance(e, Mapping):
            raise TypeError(f"nonces[{i}] must be a mapping")
        ledger.nonces.set_last(
            _require_str(e.get("owner"), name=f"nonces[{i}].owner"),
            _require_int(e.get("last_nonce"), name=f"nonces[{i}].last_nonce"),
        )

    ledger._sequence = _require_int(obj.get("sequence"), name="sequence")

    violations = check_all(ledger)
    if violations:
        raise ValueError(f"snapshot violates ledger invariants: {violations}")
    return ledger
