"""
Fungible asset ledger (ERC-20 style mock token).

The exchange only consumes `balance_of`, `approve`, `transfer` and
`transfer_from`. Everything else here (minting, snapshots, hooks) exists so a
local harness can stand in for deployed token contracts.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from ..core.errors import InsufficientAllowance, InsufficientBalance, InvalidAmount
from ..core.events import APPROVAL, TRANSFER, EventLog
from .balances import ZERO_ADDRESS, Address, Amount, BalanceTable


TransferHook = Callable[["FungibleAsset", Address, Address, Amount], None]


def compute_asset_address(name: str, symbol: str, salt: str = "") -> Address:
    """address = first 20 bytes of H("FungibleAsset" || name || symbol || salt)."""
    data = b"FungibleAsset" + name.encode("utf-8") + symbol.encode("utf-8") + salt.encode("utf-8")
    return "0x" + hashlib.sha256(data).hexdigest()[:40]


def _require_amount(amount: Amount, *, name: str = "amount") -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmount(f"{name} must be an int")
    if amount < 0:
        raise InvalidAmount(f"{name} must be non-negative: {amount}")


@dataclass(frozen=True)
class TokenSnapshot:
    balances: Dict[Address, Amount]
    allowances: Dict[Tuple[Address, Address], Amount]
    total_supply: Amount
    event_mark: int


class FungibleAsset:
    """
    Balance ledger for one asset.

    Invariant: sum(balances) == total_supply.
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        decimals: int = 18,
        *,
        address: Optional[Address] = None,
        salt: str = "",
    ) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError("name must be a non-empty string")
        if not isinstance(symbol, str) or not symbol:
            raise ValueError("symbol must be a non-empty string")
        self.name = name
        self.symbol = symbol
        self.decimals = int(decimals)
        self.address: Address = address or compute_asset_address(name, symbol, salt)
        self._balances = BalanceTable()
        self._allowances: Dict[Tuple[Address, Address], Amount] = {}
        self._total_supply: Amount = 0
        self.events = EventLog()
        # Invoked after every balance move; models token callbacks into the caller.
        self.transfer_hook: Optional[TransferHook] = None

    @property
    def total_supply(self) -> Amount:
        return self._total_supply

    def balance_of(self, owner: Address) -> Amount:
        return self._balances.get(owner)

    def allowance(self, owner: Address, spender: Address) -> Amount:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: Address, spender: Address, amount: Amount) -> bool:
        _require_amount(amount)
        if amount == 0:
            self._allowances.pop((owner, spender), None)
        else:
            self._allowances[(owner, spender)] = amount
        self.events.emit(APPROVAL, {"owner": owner, "spender": spender, "amount": amount}, emitter=self.address)
        return True

    def mint(self, to: Address, amount: Amount) -> None:
        _require_amount(amount)
        self._balances.add(to, amount)
        self._total_supply += amount
        self.events.emit(TRANSFER, {"from": ZERO_ADDRESS, "to": to, "amount": amount}, emitter=self.address)

    def transfer(self, sender: Address, to: Address, amount: Amount) -> bool:
        _require_amount(amount)
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: Address, owner: Address, to: Address, amount: Amount) -> bool:
        _require_amount(amount)
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{self.symbol}: allowance {allowed} < {amount} (owner={owner}, spender={spender})"
            )
        if self.balance_of(owner) < amount:
            raise InsufficientBalance(f"{self.symbol}: balance {self.balance_of(owner)} < {amount} (owner={owner})")
        remaining = allowed - amount
        if remaining == 0:
            self._allowances.pop((owner, spender), None)
        else:
            self._allowances[(owner, spender)] = remaining
        self._move(owner, to, amount)
        return True

    def _move(self, sender: Address, to: Address, amount: Amount) -> None:
        current = self.balance_of(sender)
        if current < amount:
            raise InsufficientBalance(f"{self.symbol}: balance {current} < {amount} (owner={sender})")
        self._balances.subtract(sender, amount)
        self._balances.add(to, amount)
        self.events.emit(TRANSFER, {"from": sender, "to": to, "amount": amount}, emitter=self.address)
        if self.transfer_hook is not None:
            self.transfer_hook(self, sender, to, amount)

    def snapshot(self) -> TokenSnapshot:
        return TokenSnapshot(
            balances=self._balances.get_all_balances(),
            allowances=dict(self._allowances),
            total_supply=self._total_supply,
            event_mark=self.events.snapshot(),
        )

    def restore(self, snap: TokenSnapshot) -> None:
        balances = BalanceTable()
        for owner, amount in snap.balances.items():
            balances.set(owner, amount)
        self._balances = balances
        self._allowances = dict(snap.allowances)
        self._total_supply = snap.total_supply
        self.events.restore(snap.event_mark)

    def verify_supply(self) -> bool:
        return self._balances.total() == self._total_supply

    def __repr__(self) -> str:
        return f"FungibleAsset({self.symbol}, address={self.address[:10]}..., supply={self._total_supply})"
