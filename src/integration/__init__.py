"""
Configuration, snapshots and the local deployment harness
"""

from .config import (
    DexConfig,
    HarnessConfig,
    PlatformConfig,
    load_config,
)
from .harness import LocalHarness
from .snapshot import (
    LedgerSnapshot,
    ledger_from_snapshot,
    snapshot_from_ledger,
)

__all__ = [
    "DexConfig",
    "HarnessConfig",
    "PlatformConfig",
    "load_config",
    "LocalHarness",
    "LedgerSnapshot",
    "ledger_from_snapshot",
    "snapshot_from_ledger",
]
