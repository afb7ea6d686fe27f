"""
State tables for the exchange ledger
"""

from .balances import BalanceTable
from .nonces import NonceTable
from .pairs import TradingPair, compute_pair_id, pair_key
from .positions import PositionTable

__all__ = [
    "BalanceTable",
    "NonceTable",
    "TradingPair",
    "compute_pair_id",
    "pair_key",
    "PositionTable",
]
