"""
Owner-signed permits that approve a redemption agent for a liquidity position.

Signing scheme:
    message = SHA256( domain_sep(f"dex_position_permit:{chain_id}", v1) || canonical_json(permit) )
    signature = BLS12-381 G2Basic.Sign(sk, message)

The permit owner is identified by its 48-byte BLS public key (0x-hex).
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from py_ecc.bls import G2Basic

from ..state.balances import Address
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, hex_to_bytes_fixed


PUBKEY_BYTES = 48
SIGNATURE_BYTES = 96


@dataclass(frozen=True)
class PositionPermit:
    owner_pubkey: str
    agent: Address
    pair_id: str
    nonce: int
    deadline: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_pubkey": self.owner_pubkey,
            "agent": self.agent,
            "pair_id": self.pair_id,
            "nonce": int(self.nonce),
            "deadline": int(self.deadline),
        }


@dataclass(frozen=True)
class SignedPermit:
    permit: PositionPermit
    signature: str


def generate_keypair(seed: bytes) -> Tuple[int, str]:
    """
    Deterministic BLS keypair from a seed (at least 32 bytes).

    Returns (secret_key, pubkey_hex).
    """
    if not isinstance(seed, (bytes, bytearray)) or len(seed) < 32:
        raise ValueError("seed must be at least 32 bytes")
    sk = G2Basic.KeyGen(bytes(seed))
    pk = G2Basic.SkToPk(sk)
    return sk, "0x" + pk.hex()


def permit_message(permit: PositionPermit, *, chain_id: str) -> bytes:
    payload = canonical_json_bytes(permit.to_dict())
    return hashlib.sha256(domain_sep_bytes(f"dex_position_permit:{chain_id}", version=1) + payload).digest()


def sign_permit(permit: PositionPermit, secret_key: int, *, chain_id: str) -> SignedPermit:
    sig = G2Basic.Sign(secret_key, permit_message(permit, chain_id=chain_id))
    return SignedPermit(permit=permit, signature="0x" + sig.hex())


def verify_permit(signed: SignedPermit, *, chain_id: str) -> bool:
    """
    Verify a permit signature against its owner's public key.

    Malformed keys or signatures verify as False rather than raising.
    """
    try:
        pk = hex_to_bytes_fixed(signed.permit.owner_pubkey, nbytes=PUBKEY_BYTES, name="owner_pubkey")
        sig = hex_to_bytes_fixed(signed.signature, nbytes=SIGNATURE_BYTES, name="signature")
    except (TypeError, ValueError):
        return False
    try:
        return bool(G2Basic.Verify(pk, permit_message(signed.permit, chain_id=chain_id), sig))
    except (TypeError, ValueError, AssertionError):
        # py_ecc raises on points that are not on the curve / not in the subgroup.
        return False
