"""
Exchange ledger: reserves per trading pair, swap pricing and liquidity accounting.

This is the imperative shell around the pure math in `cpmm.py` / `routing.py`:
- Checks: validate inputs, allowances and balances; price the call on copies.
- Effects: commit reserves, share balances and events.
- Interactions: move tokens (pull input, push output).

Every public operation runs inside `_atomic()`, which journals all ledger and
token state and restores it if anything raises, so a failed call leaves no
observable trace. A call arriving while another is in flight (for instance from
a token transfer hook) is rejected with `ReentrantCall`.
"""

from __future__ import annotations

import hashlib
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from ..agents.permits import SignedPermit, verify_permit
from ..state.balances import Address, Amount, AssetId
from ..state.nonces import NonceTable
from ..state.pairs import DEFAULT_FEE_BPS, PairKey, TradingPair, compute_pair_id, pair_key
from ..state.positions import LOCKED_SHARES_OWNER, PositionTable
from ..state.tokens import FungibleAsset
from .cpmm import quote_deposit, quote_withdrawal
from .errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientPosition,
    InvalidAmount,
    InvalidPermit,
    InvalidRoute,
    InvariantViolation,
    ReentrantCall,
    SlippageExceeded,
    Unauthorized,
)
from .events import AGENT, LIQUIDITY, SWAP, EventLog
from .invariants import check_all
from .routing import DEFAULT_MAX_HOPS, RouteQuote, SwapRoute, build_route, quote_route


logger = logging.getLogger(__name__)

RATIO_POLICY_REFUND = "refund"
RATIO_POLICY_STRICT = "strict"
RATIO_POLICIES = (RATIO_POLICY_REFUND, RATIO_POLICY_STRICT)


@dataclass(frozen=True)
class LedgerConfig:
    """Runtime config for the exchange ledger."""

    fee_bps: int = DEFAULT_FEE_BPS
    # Shares burned to LOCKED_SHARES_OWNER on the first deposit (Uniswap uses 1000).
    min_liquidity_lock: int = 0
    # "refund": only the ratio-preserving part of a deposit is pulled.
    # "strict": a deposit off the reserve ratio is rejected.
    ratio_policy: str = RATIO_POLICY_REFUND
    max_hops: int = DEFAULT_MAX_HOPS
    # Bound into signed permits to prevent cross-deployment replay.
    chain_id: str = "dex-local"
    # Run the invariant registry after every committed call.
    check_invariants: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.fee_bps, int) or isinstance(self.fee_bps, bool) or not (0 <= self.fee_bps < 10000):
            raise ValueError(f"fee_bps must be an int in [0, 10000): {self.fee_bps!r}")
        if not isinstance(self.min_liquidity_lock, int) or self.min_liquidity_lock < 0:
            raise ValueError(f"min_liquidity_lock must be a non-negative int: {self.min_liquidity_lock!r}")
        if self.ratio_policy not in RATIO_POLICIES:
            raise ValueError(f"ratio_policy must be one of {RATIO_POLICIES}: {self.ratio_policy!r}")
        if not isinstance(self.max_hops, int) or not (1 <= self.max_hops <= 2):
            raise ValueError(f"max_hops must be 1 or 2: {self.max_hops!r}")
        if not isinstance(self.chain_id, str) or not self.chain_id:
            raise ValueError("chain_id must be a non-empty string")


@dataclass(frozen=True)
class SwapResult:
    route: SwapRoute
    amount_in: Amount
    amount_out: Amount
    hop_amounts: Tuple[Tuple[Amount, Amount], ...]


@dataclass(frozen=True)
class LiquidityResult:
    pair_id: str
    asset_a: AssetId
    asset_b: AssetId
    amount_a: Amount
    amount_b: Amount
    shares: Amount
    share_supply: Amount


@dataclass(frozen=True)
class _Journal:
    pairs: Dict[PairKey, TradingPair]
    positions: PositionTable
    nonces: NonceTable
    event_mark: int
    tokens: Dict[AssetId, Any]
    sequence: int


TokenRef = Union[FungibleAsset, AssetId]


def compute_ledger_address(label: str) -> Address:
    return "0x" + hashlib.sha256(b"ExchangeLedger" + label.encode("utf-8")).hexdigest()[:40]


class ExchangeLedger:
    """
    Constant-product exchange over pairs of fungible assets.

    The ledger's own `address` holds the pooled tokens; traders and providers
    must `approve` it before calling operations that pull their assets.
    """

    def __init__(self, config: Optional[LedgerConfig] = None, *, address: Optional[Address] = None) -> None:
        self.config = config or LedgerConfig()
        self.address: Address = address or compute_ledger_address(self.config.chain_id)
        self._assets: Dict[AssetId, FungibleAsset] = {}
        self._pairs: Dict[PairKey, TradingPair] = {}
        self.positions = PositionTable()
        self.nonces = NonceTable()
        self.events = EventLog()
        self._sequence = 0
        self._entered = False

    # ------------------------------------------------------------------
    # Registry / read-only views

    def register_asset(self, token: FungibleAsset) -> None:
        existing = self._assets.get(token.address)
        if existing is not None and existing is not token:
            raise ValueError(f"asset address already registered: {token.address}")
        self._assets[token.address] = token

    def asset(self, ref: TokenRef) -> FungibleAsset:
        if isinstance(ref, FungibleAsset):
            if ref.address not in self._assets:
                self.register_asset(ref)
            return ref
        token = self._assets.get(ref)
        if token is None:
            raise InvalidRoute(f"unknown asset: {ref}")
        return token

    @property
    def assets(self) -> Mapping[AssetId, FungibleAsset]:
        return dict(self._assets)

    @property
    def pairs(self) -> Mapping[PairKey, TradingPair]:
        return dict(self._pairs)

    @property
    def pairs_by_id(self) -> Dict[str, TradingPair]:
        return {p.pair_id: p for p in self._pairs.values()}

    @property
    def sequence(self) -> int:
        return self._sequence

    def get_pair(self, asset_a: TokenRef, asset_b: TokenRef) -> Optional[TradingPair]:
        key = self._key(asset_a, asset_b)
        pair = self._pairs.get(key)
        return pair.copy() if pair is not None else None

    def get_reserves(self, asset_a: TokenRef, asset_b: TokenRef) -> Tuple[Amount, Amount]:
        """Reserves oriented as (reserve of asset_a, reserve of asset_b); (0, 0) for unknown pairs."""
        a = _asset_id(asset_a)
        pair = self._pairs.get(self._key(asset_a, asset_b))
        if pair is None:
            return 0, 0
        return pair.oriented(a)

    def shares_of(self, owner: Address, asset_a: TokenRef, asset_b: TokenRef) -> Amount:
        pair = self._pairs.get(self._key(asset_a, asset_b))
        if pair is None:
            return 0
        return self.positions.get(owner, pair.pair_id)

    def quote_exact_in(self, path: Sequence[TokenRef], amount_in: Amount) -> RouteQuote:
        route = build_route(self._pairs, [_asset_id(a) for a in path], max_hops=self.config.max_hops)
        quote = quote_route(self.pairs_by_id, route, amount_in)
        logger.debug("quote %s amount_in=%d amount_out=%d", route.path, amount_in, quote.amount_out)
        return quote

    def check_invariants(self) -> List[str]:
        return check_all(self)

    # ------------------------------------------------------------------
    # Journal / re-entrancy guard

    def _key(self, asset_a: TokenRef, asset_b: TokenRef) -> PairKey:
        try:
            return pair_key(_asset_id(asset_a), _asset_id(asset_b))
        except ValueError as exc:
            raise InvalidRoute(str(exc)) from exc

    def _journal(self) -> _Journal:
        return _Journal(
            pairs={k: p.copy() for k, p in self._pairs.items()},
            positions=self.positions.copy(),
            nonces=self.nonces.copy(),
            event_mark=self.events.snapshot(),
            tokens={addr: token.snapshot() for addr, token in self._assets.items()},
            sequence=self._sequence,
        )

    def _rollback(self, journal: _Journal) -> None:
        self._pairs = journal.pairs
        self.positions = journal.positions
        self.nonces = journal.nonces
        self.events.restore(journal.event_mark)
        for addr, snap in journal.tokens.items():
            self._assets[addr].restore(snap)
        self._sequence = journal.sequence

    @contextmanager
    def _atomic(self, operation: str) -> Iterator[None]:
        if self._entered:
            raise ReentrantCall(f"{operation}: ledger call already in progress")
        self._entered = True
        journal = self._journal()
        try:
            yield
            self._sequence += 1
            if self.config.check_invariants:
                violations = self.check_invariants()
                if violations:
                    raise InvariantViolation(violations)
        except BaseException as exc:
            self._rollback(journal)
            logger.debug("%s rolled back: %s", operation, exc)
            raise
        finally:
            self._entered = False

    # ------------------------------------------------------------------
    # Token interactions

    def _pull(self, token: FungibleAsset, owner: Address, amount: Amount) -> None:
        allowed = token.allowance(owner, self.address)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{token.symbol}: allowance {allowed} < {amount} for spender {self.address}"
            )
        if token.balance_of(owner) < amount:
            raise InsufficientBalance(f"{token.symbol}: balance {token.balance_of(owner)} < {amount}")
        token.transfer_from(self.address, owner, self.address, amount)

    def _push(self, token: FungibleAsset, to: Address, amount: Amount) -> None:
        if amount > 0:
            token.transfer(self.address, to, amount)

    def _precheck_pull(self, token: FungibleAsset, owner: Address, amount: Amount) -> None:
        if token.allowance(owner, self.address) < amount:
            raise InsufficientAllowance(
                f"{token.symbol}: allowance {token.allowance(owner, self.address)} < {amount}"
            )
        if token.balance_of(owner) < amount:
            raise InsufficientBalance(f"{token.symbol}: balance {token.balance_of(owner)} < {amount}")

    # ------------------------------------------------------------------
    # Swaps

    def swap_exact_in(
        self,
        route: Union[SwapRoute, Sequence[TokenRef]],
        amount_in: Amount,
        amount_out_min: Amount,
        trader: Address,
        *,
        recipient: Optional[Address] = None,
    ) -> SwapResult:
        """
        Swap exactly `amount_in` of the route's input asset for as much output as the route yields.

        Raises:
            InvalidRoute: the route references a missing pair or is malformed
            InsufficientAllowance: `trader` has not approved the ledger for `amount_in`
            InsufficientLiquidity: a hop cannot produce a non-zero output
            SlippageExceeded: the final output is below `amount_out_min`
        """
        if not isinstance(amount_out_min, int) or isinstance(amount_out_min, bool) or amount_out_min < 0:
            raise InvalidAmount(f"amount_out_min must be a non-negative int: {amount_out_min!r}")
        to = recipient or trader

        if isinstance(route, (str, bytes)):
            raise InvalidRoute("route must be a SwapRoute or a sequence of assets")
        if not isinstance(route, SwapRoute):
            route = [self.asset(a).address if isinstance(a, FungibleAsset) else _asset_id(a) for a in route]

        with self._atomic("swap_exact_in"):
            if not isinstance(route, SwapRoute):
                route = build_route(self._pairs, route, max_hops=self.config.max_hops)
            elif len(route) > self.config.max_hops:
                raise InvalidRoute(f"route has {len(route)} hops; at most {self.config.max_hops} allowed")

            token_in = self.asset(route.asset_in)
            token_out = self.asset(route.asset_out)

            # Checks
            quote = quote_route(self.pairs_by_id, route, amount_in)
            if quote.amount_out < amount_out_min:
                raise SlippageExceeded(quote.amount_out, amount_out_min)
            self._precheck_pull(token_in, trader, amount_in)

            # Effects
            for pair in quote.pairs_after.values():
                self._pairs[pair.key] = pair
            hop_amounts = tuple((h.amount_in, h.amount_out) for h in quote.hops)
            self.events.emit(
                SWAP,
                {
                    "trader": trader,
                    "recipient": to,
                    "path": list(route.path),
                    "pair_ids": list(route.pair_ids),
                    "amount_in": amount_in,
                    "amount_out": quote.amount_out,
                    "hop_amounts": [list(x) for x in hop_amounts],
                },
                emitter=self.address,
            )

            # Interactions
            self._pull(token_in, trader, amount_in)
            self._push(token_out, to, quote.amount_out)

        logger.info(
            "swap %s -> %s hops=%d amount_in=%d amount_out=%d trader=%s",
            token_in.symbol,
            token_out.symbol,
            len(route),
            amount_in,
            quote.amount_out,
            trader,
        )
        return SwapResult(route=route, amount_in=amount_in, amount_out=quote.amount_out, hop_amounts=hop_amounts)

    # ------------------------------------------------------------------
    # Liquidity

    def add_liquidity(
        self,
        asset_a: TokenRef,
        asset_b: TokenRef,
        amount_a: Amount,
        amount_b: Amount,
        provider: Address,
        *,
        amount_a_min: Amount = 0,
        amount_b_min: Amount = 0,
    ) -> LiquidityResult:
        """
        Deposit both assets and mint liquidity shares to `provider`.

        The pair is created on the first deposit. Into an empty pair the deposit
        sets the price and mints `isqrt(amount_a * amount_b) - min_liquidity_lock`
        shares; otherwise only the ratio-preserving amounts are used.
        """
        # Tokens are registered before the journal snapshot is taken.
        token_a = self.asset(asset_a)
        token_b = self.asset(asset_b)
        with self._atomic("add_liquidity"):
            key = self._key(token_a.address, token_b.address)
            pair = self._pairs.get(key)
            if pair is None:
                pair = TradingPair(
                    pair_id=compute_pair_id(key[0], key[1], self.config.fee_bps),
                    asset0=key[0],
                    asset1=key[1],
                    reserve0=0,
                    reserve1=0,
                    fee_bps=self.config.fee_bps,
                    share_supply=0,
                    created_at=self._sequence,
                )
                logger.info("created pair %s (%s/%s)", pair.pair_id, token_a.symbol, token_b.symbol)

            reserve_a, reserve_b = pair.oriented(token_a.address)

            # Checks
            quote = quote_deposit(
                reserve_a,
                reserve_b,
                pair.share_supply,
                amount_a,
                amount_b,
                min_lock=self.config.min_liquidity_lock,
                strict=self.config.ratio_policy == RATIO_POLICY_STRICT,
            )
            if quote.used_a < amount_a_min:
                raise SlippageExceeded(quote.used_a, amount_a_min, what="amount_a_used")
            if quote.used_b < amount_b_min:
                raise SlippageExceeded(quote.used_b, amount_b_min, what="amount_b_used")
            self._precheck_pull(token_a, provider, quote.used_a)
            self._precheck_pull(token_b, provider, quote.used_b)

            # Effects
            pair = pair.with_reserves_for(token_a.address, quote.reserve_a_after, quote.reserve_b_after)
            pair.share_supply = quote.supply_after
            self._pairs[key] = pair
            self.positions.add(provider, pair.pair_id, quote.shares)
            if quote.locked:
                self.positions.add(LOCKED_SHARES_OWNER, pair.pair_id, quote.locked)
            result = LiquidityResult(
                pair_id=pair.pair_id,
                asset_a=token_a.address,
                asset_b=token_b.address,
                amount_a=quote.used_a,
                amount_b=quote.used_b,
                shares=quote.shares,
                share_supply=pair.share_supply,
            )
            self.events.emit(LIQUIDITY, _liquidity_event("add", provider, result), emitter=self.address)

            # Interactions
            self._pull(token_a, provider, quote.used_a)
            self._pull(token_b, provider, quote.used_b)

        logger.info(
            "add_liquidity %s/%s provider=%s amounts=(%d, %d) shares=%d",
            token_a.symbol,
            token_b.symbol,
            provider,
            result.amount_a,
            result.amount_b,
            result.shares,
        )
        return result

    def remove_liquidity(
        self,
        asset_a: TokenRef,
        asset_b: TokenRef,
        provider: Address,
        *,
        shares: Optional[Amount] = None,
        amount_a_min: Amount = 0,
        amount_b_min: Amount = 0,
        caller: Optional[Address] = None,
    ) -> LiquidityResult:
        """
        Burn `provider`'s shares (all of them by default) and return the
        proportional reserves to `provider`.

        Raises:
            InsufficientPosition: the pair does not exist, provider holds no shares,
                or fewer than `shares`
            Unauthorized: `caller` is neither the provider nor an approved agent, or
                `provider` is the locked-shares owner
        """
        token_a = self.asset(asset_a)
        token_b = self.asset(asset_b)
        with self._atomic("remove_liquidity"):
            key = self._key(token_a.address, token_b.address)
            pair = self._pairs.get(key)
            if pair is None:
                raise InsufficientPosition(f"{provider} holds no shares of ({token_a.symbol}, {token_b.symbol})")
            if provider == LOCKED_SHARES_OWNER:
                raise Unauthorized("locked minimum-liquidity shares cannot be redeemed")

            actor = caller or provider
            if actor != provider and not self.positions.is_agent(provider, pair.pair_id, actor):
                raise Unauthorized(f"{actor} may not redeem the position of {provider}")

            held = self.positions.get(provider, pair.pair_id)
            burn = held if shares is None else shares
            if not isinstance(burn, int) or isinstance(burn, bool) or burn < 0:
                raise InvalidAmount(f"shares must be a non-negative int: {shares!r}")
            if held == 0 or burn == 0:
                raise InsufficientPosition(f"{provider} holds no shares of pair {pair.pair_id}")
            if burn > held:
                raise InsufficientPosition(f"{provider} holds {held} shares; cannot burn {burn}")

            reserve_a, reserve_b = pair.oriented(token_a.address)
            out_a, out_b = quote_withdrawal(burn, reserve_a, reserve_b, pair.share_supply)
            if out_a < amount_a_min:
                raise SlippageExceeded(out_a, amount_a_min, what="amount_a_out")
            if out_b < amount_b_min:
                raise SlippageExceeded(out_b, amount_b_min, what="amount_b_out")

            # Effects
            pair = pair.with_reserves_for(token_a.address, reserve_a - out_a, reserve_b - out_b)
            pair.share_supply -= burn
            self._pairs[key] = pair
            self.positions.subtract(provider, pair.pair_id, burn)
            result = LiquidityResult(
                pair_id=pair.pair_id,
                asset_a=token_a.address,
                asset_b=token_b.address,
                amount_a=out_a,
                amount_b=out_b,
                shares=burn,
                share_supply=pair.share_supply,
            )
            self.events.emit(LIQUIDITY, _liquidity_event("remove", provider, result), emitter=self.address)

            # Interactions
            self._push(token_a, provider, out_a)
            self._push(token_b, provider, out_b)

        logger.info(
            "remove_liquidity %s/%s provider=%s shares=%d amounts=(%d, %d)",
            token_a.symbol,
            token_b.symbol,
            provider,
            burn,
            out_a,
            out_b,
        )
        return result

    # ------------------------------------------------------------------
    # Redemption agents

    def approve_agent(self, owner: Address, asset_a: TokenRef, asset_b: TokenRef, agent: Address) -> None:
        with self._atomic("approve_agent"):
            pair = self._pairs.get(self._key(asset_a, asset_b))
            if pair is None:
                raise InvalidRoute("cannot approve an agent for a missing pair")
            if owner == LOCKED_SHARES_OWNER:
                raise Unauthorized("locked minimum-liquidity shares cannot have agents")
            try:
                self.positions.approve_agent(owner, pair.pair_id, agent)
            except ValueError as exc:
                raise Unauthorized(str(exc)) from exc
            self.events.emit(
                AGENT, {"owner": owner, "agent": agent, "pair_id": pair.pair_id, "approved": True}, emitter=self.address
            )

    def revoke_agent(self, owner: Address, asset_a: TokenRef, asset_b: TokenRef, agent: Address) -> None:
        with self._atomic("revoke_agent"):
            pair = self._pairs.get(self._key(asset_a, asset_b))
            if pair is None:
                raise InvalidRoute("cannot revoke an agent for a missing pair")
            self.positions.revoke_agent(owner, pair.pair_id, agent)
            self.events.emit(
                AGENT, {"owner": owner, "agent": agent, "pair_id": pair.pair_id, "approved": False}, emitter=self.address
            )

    def permit_agent(self, signed: SignedPermit, *, now: int) -> None:
        """
        Approve a redemption agent from an owner-signed permit (BLS12-381).

        The permit's owner is its BLS public key; nonces are strictly sequential.
        """
        with self._atomic("permit_agent"):
            permit = signed.permit
            if permit.pair_id not in self.pairs_by_id:
                raise InvalidPermit(f"unknown pair_id: {permit.pair_id}")
            if permit.owner_pubkey == LOCKED_SHARES_OWNER:
                raise Unauthorized("locked minimum-liquidity shares cannot have agents")
            if now > permit.deadline:
                raise InvalidPermit(f"permit expired at {permit.deadline} (now={now})")
            expected = self.nonces.next_nonce(permit.owner_pubkey)
            if permit.nonce != expected:
                raise InvalidPermit(f"bad nonce {permit.nonce}; expected {expected}")
            if not verify_permit(signed, chain_id=self.config.chain_id):
                raise InvalidPermit("permit signature does not verify")
            self.nonces.set_last(permit.owner_pubkey, permit.nonce)
            try:
                self.positions.approve_agent(permit.owner_pubkey, permit.pair_id, permit.agent)
            except ValueError as exc:
                raise InvalidPermit(str(exc)) from exc
            self.events.emit(
                AGENT,
                {"owner": permit.owner_pubkey, "agent": permit.agent, "pair_id": permit.pair_id, "approved": True},
                emitter=self.address,
            )

    def __repr__(self) -> str:
        return f"ExchangeLedger(address={self.address[:10]}..., pairs={len(self._pairs)}, seq={self._sequence})"


def _asset_id(ref: TokenRef) -> AssetId:
    if isinstance(ref, FungibleAsset):
        return ref.address
    if not isinstance(ref, str) or not ref:
        raise InvalidRoute(f"invalid asset reference: {ref!r}")
    return ref


def _liquidity_event(action: str, provider: Address, result: LiquidityResult) -> Dict[str, Any]:
    return {
        "action": action,
        "provider": provider,
        "pair_id": result.pair_id,
        "asset_a": result.asset_a,
        "asset_b": result.asset_b,
        "amount_a": result.amount_a,
        "amount_b": result.amount_b,
        "shares": result.shares,
        "share_supply": result.share_supply,
    }
