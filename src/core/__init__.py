"""
Core exchange algorithms
"""

from .cpmm import (
    DepositQuote,
    quote_deposit,
    quote_withdrawal,
    swap_exact_in,
)
from .errors import (
    DexError,
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientLiquidity,
    InsufficientPosition,
    InvalidAmount,
    InvalidPermit,
    InvalidRoute,
    InvariantViolation,
    LiquidityRatioMismatch,
    ReentrantCall,
    SlippageExceeded,
    Unauthorized,
)

__all__ = [
    "DepositQuote",
    "quote_deposit",
    "quote_withdrawal",
    "swap_exact_in",
    "DexError",
    "InsufficientAllowance",
    "InsufficientBalance",
    "InsufficientLiquidity",
    "InsufficientPosition",
    "InvalidAmount",
    "InvalidPermit",
    "InvalidRoute",
    "InvariantViolation",
    "LiquidityRatioMismatch",
    "ReentrantCall",
    "SlippageExceeded",
    "Unauthorized",
]
