"""
Owner balance tracking for fungible assets.

Implements BalanceTable[Address] -> Amount
"""

from typing import Dict


# Type aliases
Address = str  # 0x-prefixed hex account / contract address
AssetId = str  # address of the fungible asset contract
Amount = int  # Non-negative integer in base units (arbitrary precision)

# Burn / lock address (Uniswap-style address(0))
ZERO_ADDRESS = "0x" + "00" * 20


class BalanceTable:
    """
    Sparse balance table mapping owner -> amount.

    Note: this class stores balances in a plain dict. Callers must sort keys
    explicitly at serialization / hashing boundaries (see `src/integration/snapshot.py`).
    """

    def __init__(self):
        """Initialize empty balance table."""
        self._balances: Dict[Address, Amount] = {}

    def get(self, owner: Address) -> Amount:
        """Get balance for owner. Returns 0 if not found."""
        return self._balances.get(owner, 0)

    def set(self, owner: Address, amount: Amount) -> None:
        """
        Set balance for owner.

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop(owner, None)
        else:
            self._balances[owner] = amount

    def add(self, owner: Address, delta: Amount) -> None:
        """
        Add delta to balance (delta can be negative for subtraction).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(owner)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(owner, new_balance)

    def subtract(self, owner: Address, delta: Amount) -> None:
        """Subtract a non-negative delta from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(owner, -delta)

    def get_all_balances(self) -> Dict[Address, Amount]:
        """Return all balances as a dictionary copy."""
        return dict(self._balances)

    def total(self) -> Amount:
        return sum(self._balances.values())

    def copy(self) -> "BalanceTable":
        copied = BalanceTable()
        copied._balances = dict(self._balances)
        return copied

    def verify_non_negative(self) -> bool:
        return all(amount >= 0 for amount in self._balances.values())

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
