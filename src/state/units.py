"""
Decimal unit helpers (ether <-> wei style conversions).

Amounts are stored as integers in base units; these helpers exist for
tests, fixtures and human-facing output only.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

from .balances import Amount


DEFAULT_DECIMALS = 18


def _require_decimals(decimals: int) -> None:
    if not isinstance(decimals, int) or isinstance(decimals, bool) or not (0 <= decimals <= 77):
        raise ValueError(f"decimals must be an int in [0, 77]: {decimals!r}")


def parse_units(value: Union[str, int], decimals: int = DEFAULT_DECIMALS) -> Amount:
    """
    Convert a decimal string (or int) of whole units into base units.

    parse_units("1.5", 18) == 1_500_000_000_000_000_000
    """
    _require_decimals(decimals)
    if isinstance(value, bool):
        raise TypeError("value must be a str or int")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"value must be non-negative: {value}")
        return value * 10**decimals
    if not isinstance(value, str):
        raise TypeError("value must be a str or int")
    try:
        d = Decimal(value.strip())
    except InvalidOperation as exc:
        raise ValueError(f"invalid decimal amount: {value!r}") from exc
    if not d.is_finite():
        raise ValueError(f"amount must be finite: {value!r}")
    if d < 0:
        raise ValueError(f"value must be non-negative: {value!r}")
    scaled = d.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"too many fractional digits for {decimals} decimals: {value!r}")
    return int(scaled)


def format_units(amount: Amount, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render base units as a plain decimal string without trailing zeros."""
    _require_decimals(decimals)
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TypeError("amount must be an int")
    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")
    whole, frac = divmod(amount, 10**decimals)
    if frac == 0 or decimals == 0:
        return str(whole)
    frac_s = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{frac_s}"


def parse_ether(value: Union[str, int]) -> Amount:
    return parse_units(value, DEFAULT_DECIMALS)


def format_ether(amount: Amount) -> str:
    return format_units(amount, DEFAULT_DECIMALS)
