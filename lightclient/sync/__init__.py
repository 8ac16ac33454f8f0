"""
Fetching checkpoints from untrusted sources and feeding the tracker.
"""

from .source import CheckpointSource, DirectoryCheckpointSource, source_from_url
from .driver import SyncDriver, SyncResult

__all__ = [
    "CheckpointSource",
    "DirectoryCheckpointSource",
    "source_from_url",
    "SyncDriver",
    "SyncResult",
]
