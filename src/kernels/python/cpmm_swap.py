"""
Exact-in constant-product pricing for a single hop.

Rounding is always in the pool's favour:
- the fee on the gross input rounds up,
- the output rounds down.

Inputs are assumed to be validated ints (see `src/core/cpmm.py`); this module
only rejects pool states that cannot price the trade.
"""

from __future__ import annotations

from dataclasses import dataclass


FEE_DENOMINATOR = 10_000


def fee_on(amount_in: int, fee_bps: int) -> int:
    """ceil(amount_in * fee_bps / FEE_DENOMINATOR)"""
    return -((-amount_in * fee_bps) // FEE_DENOMINATOR)


@dataclass(frozen=True)
class SwapStep:
    reserve_in: int
    reserve_out: int
    amount_in: int
    fee: int
    amount_out: int

    @property
    def net_in(self) -> int:
        return self.amount_in - self.fee

    @property
    def reserve_in_after(self) -> int:
        # The whole gross input, fee included, joins the reserve.
        return self.reserve_in + self.amount_in

    @property
    def reserve_out_after(self) -> int:
        return self.reserve_out - self.amount_out

    def product_before(self) -> int:
        return self.reserve_in * self.reserve_out

    def product_after(self) -> int:
        return self.reserve_in_after * self.reserve_out_after


def price_exact_in(reserve_in: int, reserve_out: int, amount_in: int, fee_bps: int) -> SwapStep:
    """
    Price `amount_in` against (reserve_in, reserve_out):

        net = amount_in - fee_on(amount_in, fee_bps)
        out = reserve_out * net // (reserve_in + net)

    Raises ValueError when a reserve is empty, the fee eats the whole input,
    the output rounds to zero, or the output would empty the out-reserve.
    """
    if reserve_in <= 0 or reserve_out <= 0:
        raise ValueError(f"pool is empty: reserves=({reserve_in}, {reserve_out})")
    fee = fee_on(amount_in, fee_bps)
    net = amount_in - fee
    if net <= 0:
        raise ValueError(f"fee {fee} consumes the whole input {amount_in}")
    out = (reserve_out * net) // (reserve_in + net)
    if out == 0:
        raise ValueError(f"output rounds to zero for input {amount_in}")
    if out >= reserve_out:
        raise ValueError("output would empty the reserve")
    return SwapStep(reserve_in=reserve_in, reserve_out=reserve_out, amount_in=amount_in, fee=fee, amount_out=out)
