"""
Constant Product Market Maker (CPMM) operations with checked invariants.

Everything here is expressed from the caller's side of a pair: `reserve_a` is
the reserve of the asset the caller names first, whatever the pair's canonical
order. Amounts are validated once, here; the swap kernel in
`src/kernels/python/cpmm_swap.py` only sees validated ints.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Deterministic Rounding
- Time Complexity: O(1) per hop / per deposit
- Invariant: After each swap, x' * y' >= x * y (the whole fee stays in the pool)
- Invariant: A deposit never mints more shares than either side pays for
"""

import math
from dataclasses import dataclass
from typing import Tuple

from ..kernels.python.cpmm_swap import price_exact_in
from ..state.balances import Amount
from .errors import InsufficientLiquidity, InvalidAmount, InvariantViolation, LiquidityRatioMismatch


def _require_amount(name: str, value: Amount) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidAmount(f"{name} must be an int, got {type(value).__name__}")
    if value <= 0:
        raise InvalidAmount(f"{name} must be positive: {value}")


def swap_exact_in(
    reserve_in: Amount,
    reserve_out: Amount,
    amount_in: Amount,
    fee_bps: int,
) -> Tuple[Amount, Tuple[Amount, Amount]]:
    """
    Compute output amount for one exact-in hop.

        fee = ceil(amount_in * fee_bps / 10_000)
        net_in = amount_in - fee
        amount_out = floor(reserve_out * net_in / (reserve_in + net_in))

    Post-swap reserves:
        new_reserve_in = reserve_in + amount_in  (fee stays in pool)
        new_reserve_out = reserve_out - amount_out

    Returns:
        Tuple of (amount_out, (new_reserve_in, new_reserve_out))

    Raises:
        InvalidAmount: amount_in is not a positive int, or fee_bps is out of range
        InsufficientLiquidity: reserves are empty or cannot produce a non-zero output
        InvariantViolation: the post-swap product would be smaller than before
    """
    _require_amount("amount_in", amount_in)
    if not isinstance(fee_bps, int) or not (0 <= fee_bps <= 10000):
        raise InvalidAmount(f"fee_bps must be in [0, 10000]: {fee_bps}")

    try:
        step = price_exact_in(reserve_in, reserve_out, amount_in, fee_bps)
    except ValueError as exc:
        raise InsufficientLiquidity(str(exc)) from exc

    if step.product_after() < step.product_before():
        raise InvariantViolation([f"k_after ({step.product_after()}) < k_before ({step.product_before()})"])

    return step.amount_out, (step.reserve_in_after, step.reserve_out_after)


@dataclass(frozen=True)
class DepositQuote:
    """What a deposit into one pair would do, seen from the depositor's (a, b) order."""

    used_a: Amount
    used_b: Amount
    refund_a: Amount
    refund_b: Amount
    shares: Amount
    # Shares set aside for LOCKED_SHARES_OWNER; only non-zero on a first deposit.
    locked: Amount
    reserve_a_after: Amount
    reserve_b_after: Amount
    supply_after: Amount

    @property
    def is_exact_ratio(self) -> bool:
        return self.refund_a == 0 and self.refund_b == 0


def _opening_deposit(amount_a: Amount, amount_b: Amount, min_lock: int) -> DepositQuote:
    root = math.isqrt(amount_a * amount_b)
    if root <= min_lock:
        raise InsufficientLiquidity(
            f"opening deposit ({amount_a}, {amount_b}) mints {root} shares, not above the lock of {min_lock}"
        )
    return DepositQuote(
        used_a=amount_a,
        used_b=amount_b,
        refund_a=0,
        refund_b=0,
        shares=root - min_lock,
        locked=min_lock,
        reserve_a_after=amount_a,
        reserve_b_after=amount_b,
        supply_after=root,
    )


def quote_deposit(
    reserve_a: Amount,
    reserve_b: Amount,
    share_supply: Amount,
    amount_a: Amount,
    amount_b: Amount,
    *,
    min_lock: int = 0,
    strict: bool = False,
) -> DepositQuote:
    """
    Price a two-sided deposit.

    An empty pair (no shares outstanding) takes both amounts as offered and
    mints `isqrt(amount_a * amount_b)`, of which `min_lock` is set aside.

    A live pair only takes the largest ratio-preserving part of the offer:
        matched_b = floor(amount_a * reserve_b / reserve_a)
    and if that exceeds `amount_b`, side b limits instead. Shares minted are
        min(floor(used_a * S / reserve_a), floor(used_b * S / reserve_b))

    With `strict=True` an offer that is not exactly on ratio raises
    `LiquidityRatioMismatch` rather than returning a refund.
    """
    _require_amount("amount_a", amount_a)
    _require_amount("amount_b", amount_b)
    if not isinstance(min_lock, int) or min_lock < 0:
        raise InvalidAmount(f"min_lock must be a non-negative int: {min_lock!r}")

    if share_supply == 0:
        if reserve_a or reserve_b:
            raise InsufficientLiquidity(f"pair holds ({reserve_a}, {reserve_b}) with no shares outstanding")
        return _opening_deposit(amount_a, amount_b, min_lock)
    if reserve_a <= 0 or reserve_b <= 0:
        raise InsufficientLiquidity(f"pair has {share_supply} shares but reserves ({reserve_a}, {reserve_b})")

    matched_b = amount_a * reserve_b // reserve_a
    if matched_b <= amount_b:
        used_a, used_b = amount_a, matched_b
    else:
        used_a, used_b = amount_b * reserve_a // reserve_b, amount_b

    if strict and (used_a, used_b) != (amount_a, amount_b):
        raise LiquidityRatioMismatch(
            f"deposit ({amount_a}, {amount_b}) does not match reserve ratio ({reserve_a}, {reserve_b})"
        )
    if used_a == 0 or used_b == 0:
        raise InsufficientLiquidity(f"deposit ({amount_a}, {amount_b}) rounds to zero on one side")

    shares = min(used_a * share_supply // reserve_a, used_b * share_supply // reserve_b)
    if shares == 0:
        raise InsufficientLiquidity(f"deposit ({used_a}, {used_b}) is worth less than one share")

    return DepositQuote(
        used_a=used_a,
        used_b=used_b,
        refund_a=amount_a - used_a,
        refund_b=amount_b - used_b,
        shares=shares,
        locked=0,
        reserve_a_after=reserve_a + used_a,
        reserve_b_after=reserve_b + used_b,
        supply_after=share_supply + shares,
    )


def quote_withdrawal(
    shares: Amount,
    reserve_a: Amount,
    reserve_b: Amount,
    share_supply: Amount,
) -> Tuple[Amount, Amount]:
    """
    Asset amounts returned for burning `shares`:
        amount_a = floor(shares * reserve_a / share_supply)
        amount_b = floor(shares * reserve_b / share_supply)
    """
    _require_amount("shares", shares)
    if shares > share_supply:
        raise InsufficientLiquidity(f"cannot burn {shares} of {share_supply} outstanding shares")
    return shares * reserve_a // share_supply, shares * reserve_b // share_supply
