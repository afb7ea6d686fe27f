"""
Single-hop swap pricing over plain ints.

Kernels here raise bare `ValueError` for pool states they cannot price and
return frozen result objects; callers validate amounts first.
"""
