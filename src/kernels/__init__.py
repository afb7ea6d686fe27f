"""
Kernel layer.

Integer-only swap pricing used by the exchange ledger. `src/core/cpmm.py`
validates inputs, wraps the kernel with the ledger's error taxonomy and owns
the liquidity share math.
"""
