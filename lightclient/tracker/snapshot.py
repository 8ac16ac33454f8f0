"""
Persistence of the trusted state.

A snapshot holds exactly what current_trusted_state() and the committee store
contain, in canonical JSON, so a client restarts without re-verifying the
chain from genesis. Loading a snapshot and saving it again reproduces the same
bytes.

The genesis file uses the same shape as a trusted state:
    {"checkpoint": {...header...}, "committee": {...}}
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..checkpoint.verify import DEFAULT_POLICY, QuorumPolicy
from ..committee.store import CommitteeStore
from ..core.canonical import canonical_json_bytes, decode_json
from ..core.errors import MalformedInput
from ..core.fields import require_field, require_int, require_list, require_mapping
from ..core.committee import Committee
from .state import TrustedState
from .tracker import SNAPSHOT_VERSION, ChainTracker

logger = logging.getLogger(__name__)

SNAPSHOT_FILENAME = "trusted_state.json"


def snapshot_bytes(tracker: ChainTracker) -> bytes:
    return canonical_json_bytes(tracker.snapshot_dict())


def save_snapshot(tracker: ChainTracker, path: str) -> str:
    """
    Write the tracker snapshot atomically (temp file + rename, fsync'd).

    Args:
        tracker: Tracker to persist
        path: Destination file

    Returns:
        Path written
    """
    data = snapshot_bytes(tracker)
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=".snapshot-", dir=directory)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise

    state = tracker.current_trusted_state()
    logger.info("saved snapshot at checkpoint %d to %s", state.sequence_number, path)
    return path


def tracker_from_bytes(raw: bytes, policy: QuorumPolicy = DEFAULT_POLICY) -> ChainTracker:
    """
    Rebuild a tracker from snapshot bytes.

    Raises:
        MalformedInput: If the snapshot is undecodable or has an unknown version
    """
    data = require_mapping(decode_json(raw), "snapshot")
    version = require_int(data, "version", "snapshot")
    if version != SNAPSHOT_VERSION:
        raise MalformedInput(f"unsupported snapshot version {version}")

    state = TrustedState.from_dict(require_field(data, "trusted_state", "snapshot"))
    store = CommitteeStore()
    for raw_committee in require_list(data, "committees", "snapshot"):
        store.insert(Committee.from_dict(raw_committee))
    return ChainTracker(state, store=store, policy=policy)


def load_snapshot(path: str, policy: QuorumPolicy = DEFAULT_POLICY) -> ChainTracker:
    """
    Restore a tracker saved with save_snapshot().

    Raises:
        FileNotFoundError: If path does not exist
        MalformedInput: If the file is not a valid snapshot
    """
    with open(path, "rb") as f:
        raw = f.read()
    tracker = tracker_from_bytes(raw, policy=policy)
    state = tracker.current_trusted_state()
    logger.info("restored snapshot at checkpoint %d (epoch %d)", state.sequence_number, state.epoch)
    return tracker


def load_genesis(path: str) -> TrustedState:
    """
    Load the configuration-supplied genesis state.

    Raises:
        FileNotFoundError: If path does not exist
        MalformedInput: If the file is not a valid trusted state
    """
    with open(path, "rb") as f:
        return TrustedState.from_dict(decode_json(f.read()))


def save_genesis(state: TrustedState, path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(state.to_bytes())


def open_tracker(
    state_dir: str,
    genesis_path: Optional[str] = None,
    policy: QuorumPolicy = DEFAULT_POLICY,
) -> ChainTracker:
    """
    Restore from state_dir's snapshot, falling back to the genesis file.

    Raises:
        FileNotFoundError: If neither a snapshot nor a genesis file exists
    """
    snapshot_path = os.path.join(state_dir, SNAPSHOT_FILENAME)
    if os.path.exists(snapshot_path):
        return load_snapshot(snapshot_path, policy=policy)
    if genesis_path is None:
        genesis_path = os.path.join(state_dir, "genesis.json")
    logger.info("no snapshot in %s; starting from genesis %s", state_dir, genesis_path)
    return ChainTracker(load_genesis(genesis_path), policy=policy)
