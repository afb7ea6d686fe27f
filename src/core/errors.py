"""Exception taxonomy for the exchange ledger.

Every error aborts the whole ledger call: the journal in ``ledger.py``
restores the pre-call state before the exception propagates.

All errors derive from ``ValueError`` so callers that treat invalid inputs
generically (the kernels raise plain ``ValueError``) keep working.
"""

from __future__ import annotations


class DexError(ValueError):
    """Base class for ledger failures."""


class InsufficientAllowance(DexError):
    """The owner did not pre-authorize enough of the input asset."""


class InsufficientBalance(DexError):
    """The owner does not hold enough of an asset."""


class SlippageExceeded(DexError):
    """Computed output (or used amount) is below the caller's stated minimum."""

    def __init__(self, actual: int, minimum: int, *, what: str = "amount_out") -> None:
        self.actual = actual
        self.minimum = minimum
        self.what = what
        super().__init__(f"{what} ({actual}) < minimum ({minimum})")


class InsufficientLiquidity(DexError):
    """Pair reserves cannot satisfy the requested trade."""


class InsufficientPosition(DexError):
    """Liquidity withdrawal exceeds the caller's share balance."""


class InvalidRoute(DexError):
    """Route references a non-existent pair or is malformed."""


class InvalidAmount(DexError):
    """A caller-supplied amount is out of domain (non-positive, wrong type)."""


class LiquidityRatioMismatch(DexError):
    """Deposit does not match the pair's reserve ratio under the strict policy."""


class Unauthorized(DexError):
    """Caller is neither the position owner nor an approved agent."""


class ReentrantCall(DexError):
    """A ledger operation was invoked while another one is in flight."""


class InvalidPermit(DexError):
    """A signed agent permit failed verification."""


class InvariantViolation(DexError):
    """A post-state violates one or more ledger invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
