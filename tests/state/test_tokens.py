# [TESTER] v1

from __future__ import annotations

import pytest

from src.core.errors import InsufficientAllowance, InsufficientBalance, InvalidAmount
from src.core.events import APPROVAL, TRANSFER
from src.state.balances import ZERO_ADDRESS, BalanceTable
from src.state.tokens import FungibleAsset, compute_asset_address


OWNER = "0x" + "00" * 19 + "01"
SPENDER = "0x" + "00" * 19 + "02"
OTHER = "0x" + "00" * 19 + "03"


def _token() -> FungibleAsset:
    token = FungibleAsset("Test Token 1", "TT1")
    token.mint(OWNER, 1000)
    return token


def test_address_is_deterministic() -> None:
    assert FungibleAsset("Test Token 1", "TT1").address == compute_asset_address("Test Token 1", "TT1")
    assert FungibleAsset("Test Token 1", "TT1", salt="x").address != compute_asset_address("Test Token 1", "TT1")
    assert len(compute_asset_address("a", "b")) == 42


def test_mint_emits_transfer_from_zero() -> None:
    token = _token()
    assert token.total_supply == 1000
    event = token.events.last(TRANSFER)
    assert event.value == {"from": ZERO_ADDRESS, "to": OWNER, "amount": 1000}


def test_transfer_from_consumes_allowance() -> None:
    token = _token()
    token.approve(OWNER, SPENDER, 300)
    assert token.events.last(APPROVAL).value["amount"] == 300

    token.transfer_from(SPENDER, OWNER, OTHER, 100)
    assert token.allowance(OWNER, SPENDER) == 200
    assert token.balance_of(OTHER) == 100

    with pytest.raises(InsufficientAllowance):
        token.transfer_from(SPENDER, OWNER, OTHER, 201)

    token.transfer_from(SPENDER, OWNER, OTHER, 200)
    assert token.allowance(OWNER, SPENDER) == 0
    assert token.verify_supply()


def test_transfer_requires_balance() -> None:
    token = _token()
    with pytest.raises(InsufficientBalance):
        token.transfer(OTHER, OWNER, 1)
    token.approve(OTHER, SPENDER, 10)
    with pytest.raises(InsufficientBalance):
        token.transfer_from(SPENDER, OTHER, OWNER, 10)


@pytest.mark.parametrize("amount", [-1, True, "10"])
def test_amounts_must_be_non_negative_ints(amount) -> None:
    token = _token()
    with pytest.raises(InvalidAmount):
        token.transfer(OWNER, OTHER, amount)


def test_snapshot_restore() -> None:
    token = _token()
    snap = token.snapshot()
    token.approve(OWNER, SPENDER, 5)
    token.transfer(OWNER, OTHER, 10)
    token.mint(OTHER, 1)

    token.restore(snap)

    assert token.balance_of(OWNER) == 1000
    assert token.balance_of(OTHER) == 0
    assert token.allowance(OWNER, SPENDER) == 0
    assert token.total_supply == 1000
    assert len(token.events) == 1


def test_balance_table_stays_sparse() -> None:
    table = BalanceTable()
    table.add(OWNER, 5)
    table.subtract(OWNER, 5)
    assert table.get_all_balances() == {}
    with pytest.raises(ValueError):
        table.subtract(OWNER, 1)
