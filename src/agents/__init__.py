"""
Agent-facing helpers for the exchange ledger
"""

from .permits import (
    PositionPermit,
    SignedPermit,
    generate_keypair,
    sign_permit,
    verify_permit,
)

__all__ = [
    "PositionPermit",
    "SignedPermit",
    "generate_keypair",
    "sign_permit",
    "verify_permit",
]
