"""
Chain tracking and trusted-state persistence.
"""

from .state import TrustedState
from .tracker import ChainTracker
from .snapshot import (
    SNAPSHOT_FILENAME,
    save_snapshot,
    load_snapshot,
    snapshot_bytes,
    tracker_from_bytes,
    load_genesis,
    save_genesis,
    open_tracker,
)

__all__ = [
    "TrustedState",
    "ChainTracker",
    "SNAPSHOT_FILENAME",
    "save_snapshot",
    "load_snapshot",
    "snapshot_bytes",
    "tracker_from_bytes",
    "load_genesis",
    "save_genesis",
    "open_tracker",
]
