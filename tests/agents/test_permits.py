# [TESTER] v1

from __future__ import annotations

from dataclasses import replace

import pytest

pytest.importorskip("py_ecc")

from src.agents.permits import PositionPermit, SignedPermit, generate_keypair, sign_permit, verify_permit
from src.core.errors import InvalidPermit
from src.core.ledger import ExchangeLedger
from src.state.tokens import FungibleAsset


CHAIN_ID = "dex-local"
AGENT = "0x" + "00" * 19 + "a9"


@pytest.fixture(scope="module")
def keypair():
    return generate_keypair(b"\x01" * 32)


def _ledger_with_position(owner: str):
    ledger = ExchangeLedger()
    a = FungibleAsset("Asset A", "A")
    b = FungibleAsset("Asset B", "B")
    for token in (a, b):
        token.mint(owner, 1000)
        token.approve(owner, ledger.address, 1000)
    res = ledger.add_liquidity(a, b, 100, 100, owner)
    return ledger, a, b, res.pair_id


def test_sign_and_verify_roundtrip(keypair) -> None:
    sk, pk = keypair
    permit = PositionPermit(owner_pubkey=pk, agent=AGENT, pair_id="0x" + "aa" * 32, nonce=1, deadline=100)
    signed = sign_permit(permit, sk, chain_id=CHAIN_ID)

    assert verify_permit(signed, chain_id=CHAIN_ID)
    # Bound to the chain id and to every permit field.
    assert not verify_permit(signed, chain_id="other-chain")
    assert not verify_permit(SignedPermit(replace(permit, nonce=2), signed.signature), chain_id=CHAIN_ID)


def test_malformed_permits_do_not_verify(keypair) -> None:
    _, pk = keypair
    permit = PositionPermit(owner_pubkey=pk, agent=AGENT, pair_id="p", nonce=1, deadline=1)
    assert not verify_permit(SignedPermit(permit, "0x1234"), chain_id=CHAIN_ID)
    assert not verify_permit(SignedPermit(replace(permit, owner_pubkey="0xzz"), "0x" + "00" * 96), chain_id=CHAIN_ID)


def test_keypair_is_deterministic() -> None:
    assert generate_keypair(b"\x02" * 32) == generate_keypair(b"\x02" * 32)
    with pytest.raises(ValueError):
        generate_keypair(b"short")


def test_permit_agent_approves_and_enforces_nonces(keypair) -> None:
    sk, pk = keypair
    ledger, a, b, pair_id = _ledger_with_position(pk)
    permit = PositionPermit(owner_pubkey=pk, agent=AGENT, pair_id=pair_id, nonce=1, deadline=50)
    signed = sign_permit(permit, sk, chain_id=ledger.config.chain_id)

    with pytest.raises(InvalidPermit, match="expired"):
        ledger.permit_agent(signed, now=51)

    ledger.permit_agent(signed, now=10)
    assert ledger.positions.is_agent(pk, pair_id, AGENT)
    assert ledger.nonces.get_last(pk) == 1

    # Replay of the same nonce is rejected.
    with pytest.raises(InvalidPermit, match="nonce"):
        ledger.permit_agent(signed, now=10)

    res = ledger.remove_liquidity(a, b, pk, caller=AGENT)
    assert res.shares == 100
    assert a.balance_of(pk) == 1000


def test_permit_agent_rejects_bad_signature_without_consuming_nonce(keypair) -> None:
    sk, pk = keypair
    ledger, _, _, pair_id = _ledger_with_position(pk)
    permit = PositionPermit(owner_pubkey=pk, agent=AGENT, pair_id=pair_id, nonce=1, deadline=50)
    signed = sign_permit(permit, sk, chain_id="other-chain")

    with pytest.raises(InvalidPermit, match="signature"):
        ledger.permit_agent(signed, now=0)
    assert ledger.nonces.get_last(pk) == 0
    assert not ledger.positions.is_agent(pk, pair_id, AGENT)

    with pytest.raises(InvalidPermit, match="unknown pair"):
        ledger.permit_agent(SignedPermit(replace(permit, pair_id="0x00"), signed.signature), now=0)
