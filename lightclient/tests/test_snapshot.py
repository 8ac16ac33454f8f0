"""
Tests for trusted-state persistence.
"""

import json
import os
import tempfile

import pytest

from lightclient.core.errors import MalformedInput
from lightclient.tracker import (
    SNAPSHOT_FILENAME,
    ChainTracker,
    load_genesis,
    load_snapshot,
    open_tracker,
    save_genesis,
    save_snapshot,
    snapshot_bytes,
    tracker_from_bytes,
)

from .chain import ChainBuilder


def _advanced_tracker():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    tracker.apply(chain.next())
    tracker.apply(chain.next(rotate_to=(3, 3, 3)))
    tracker.apply(chain.next())
    return chain, tracker


def test_restore_then_save_is_byte_identical():
    _, tracker = _advanced_tracker()
    with tempfile.TemporaryDirectory() as tmpdir:
        first = os.path.join(tmpdir, "a.json")
        second = os.path.join(tmpdir, "b.json")
        save_snapshot(tracker, first)
        restored = load_snapshot(first)
        save_snapshot(restored, second)

        with open(first, "rb") as f1, open(second, "rb") as f2:
            assert f1.read() == f2.read()


def test_restored_tracker_continues_chain():
    chain, tracker = _advanced_tracker()
    restored = tracker_from_bytes(snapshot_bytes(tracker))

    assert restored.current_trusted_state() == tracker.current_trusted_state()
    assert restored.store.epochs() == [0, 1]
    assert restored.apply(chain.next()).sequence_number == 4


def test_snapshot_is_canonical_json():
    _, tracker = _advanced_tracker()
    raw = snapshot_bytes(tracker)
    data = json.loads(raw)
    assert data["version"] == 1
    assert data["trusted_state"]["checkpoint"]["sequence_number"] == 3
    assert [c["epoch"] for c in data["committees"]] == [0, 1]
    assert b" " not in raw and b"\n" not in raw


def test_unknown_version_rejected():
    _, tracker = _advanced_tracker()
    data = json.loads(snapshot_bytes(tracker))
    data["version"] = 99
    with pytest.raises(MalformedInput):
        tracker_from_bytes(json.dumps(data).encode())


def test_corrupt_snapshot_rejected():
    with pytest.raises(MalformedInput):
        tracker_from_bytes(b'{"version": 1}')
    with pytest.raises(MalformedInput):
        tracker_from_bytes(b"not json")


def test_save_leaves_no_temp_files():
    _, tracker = _advanced_tracker()
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, SNAPSHOT_FILENAME)
        save_snapshot(tracker, path)
        save_snapshot(tracker, path)
        assert os.listdir(tmpdir) == [SNAPSHOT_FILENAME]


def test_genesis_roundtrip_and_open_tracker():
    chain = ChainBuilder()
    with tempfile.TemporaryDirectory() as tmpdir:
        genesis_path = os.path.join(tmpdir, "genesis.json")
        save_genesis(chain.genesis, genesis_path)
        assert load_genesis(genesis_path) == chain.genesis

        # no snapshot yet: starts from genesis
        tracker = open_tracker(tmpdir)
        tracker.apply(chain.next())
        save_snapshot(tracker, os.path.join(tmpdir, SNAPSHOT_FILENAME))

        # snapshot wins over genesis
        reopened = open_tracker(tmpdir)
        assert reopened.current_trusted_state().sequence_number == 1


def test_open_tracker_without_state():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(FileNotFoundError):
            open_tracker(tmpdir)
