"""
Tests for ChainTracker.

Critical tests:
1. Monotonicity
2. No silent skip: a failed apply leaves state and store untouched
3. Committee rotation at epoch boundaries
4. Single writer under concurrent apply
"""

import threading

import pytest

from lightclient.checkpoint import certify, generate_committee, verify_with_committee
from lightclient.core.errors import (
    CommitteeMismatch,
    ConfigError,
    CommitteeNotFound,
    InvalidSignature,
    QuorumNotMet,
    SequenceGap,
    VerificationError,
)
from lightclient.tracker import ChainTracker, TrustedState

from .chain import ChainBuilder, tx_digests


def test_sequence_strictly_increases():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    seen = [tracker.current_trusted_state().sequence_number]
    for cert in chain.extend(5):
        seen.append(tracker.apply(cert).sequence_number)
    assert seen == [0, 1, 2, 3, 4, 5]


def test_genesis_may_start_mid_chain():
    chain = ChainBuilder(epoch=7, start_sequence=1000)
    tracker = ChainTracker(chain.genesis)
    assert tracker.apply(chain.next()).sequence_number == 1001
    assert tracker.current_trusted_state().epoch == 7


def test_failed_apply_leaves_state_byte_identical():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    tracker.apply(chain.next())

    before_state = tracker.current_trusted_state().to_bytes()
    before_store = tracker.store.to_dict()

    with pytest.raises(QuorumNotMet):
        tracker.apply(chain.next(signers=[0]))

    assert tracker.current_trusted_state().to_bytes() == before_state
    assert tracker.store.to_dict() == before_store


def test_never_skips_ahead_after_failure():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    bad = chain.next(signers=[3])
    good_successor = chain.next()

    with pytest.raises(QuorumNotMet):
        tracker.apply(bad)
    with pytest.raises(SequenceGap):
        tracker.apply(good_successor)
    assert tracker.current_trusted_state().sequence_number == 0


def test_rotation_adopts_next_committee():
    chain = ChainBuilder(stakes=(1, 1, 1, 1))
    tracker = ChainTracker(chain.genesis)
    old_committee = chain.committee

    tracker.apply(chain.next())
    boundary = chain.next(rotate_to=(10, 10, 10))
    state = tracker.apply(boundary)

    assert state.epoch == 0
    assert state.committee.epoch == 1
    assert state.committee == boundary.header.next_committee
    assert tracker.store.epochs() == [0, 1]
    assert tracker.committee_for(0) == old_committee

    state = tracker.apply(chain.next(signers=[0, 1, 2]))
    assert state.epoch == 1
    assert state.committee.epoch == 1


def test_old_committee_cannot_sign_after_rotation():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    old_keys = chain.keys
    old_committee = chain.committee
    tracker.apply(chain.next(rotate_to=(1, 1, 1)))

    header = chain.header()
    forged = certify(header, old_committee, old_keys, signers=[0, 1, 2])
    with pytest.raises(InvalidSignature):
        tracker.apply(forged)


def test_multiple_rotations():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    tracker.apply(chain.next(rotate_to=(2, 2, 2)))
    tracker.apply(chain.next())
    tracker.apply(chain.next(rotate_to=(5, 5, 5, 5)))
    state = tracker.apply(chain.next())
    assert state.epoch == 2
    assert tracker.store.epochs() == [0, 1, 2]


def test_genesis_on_unabsorbed_boundary():
    """Genesis anchored at a boundary but still holding the closing epoch's committee."""
    chain = ChainBuilder()
    old_committee = chain.committee
    boundary = chain.next(rotate_to=(1, 1, 1))
    genesis = TrustedState(checkpoint=boundary.header, committee=old_committee)

    tracker = ChainTracker(genesis)
    assert tracker.store.epochs() == [0, 1]
    state = tracker.apply(chain.next())
    assert state.epoch == 1
    assert state.committee == boundary.header.next_committee


def test_genesis_committee_must_fit_checkpoint():
    chain = ChainBuilder(epoch=0)
    stray, _ = generate_committee(4, (1, 1))
    with pytest.raises(ConfigError):
        ChainTracker(TrustedState(checkpoint=chain.genesis.checkpoint, committee=stray))


def test_conflicting_announced_committee_rolls_back():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    squatter, _ = generate_committee(1, (1, 1))
    tracker.store.insert(squatter)

    before = tracker.current_trusted_state().to_bytes()
    with pytest.raises(CommitteeMismatch):
        tracker.apply(chain.next(rotate_to=(1, 1, 1)))
    assert tracker.current_trusted_state().to_bytes() == before
    assert tracker.store.get(1) == squatter


def test_boundary_announcing_wrong_epoch_is_rejected():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    far_committee, _ = generate_committee(5, (1, 1, 1))
    cert = certify(chain.header(next_committee=far_committee), chain.committee, chain.keys)

    before_state = tracker.current_trusted_state().to_bytes()
    before_store = tracker.store.to_dict()
    with pytest.raises(CommitteeMismatch):
        tracker.apply(cert)
    with pytest.raises(CommitteeMismatch):
        verify_with_committee(cert, chain.genesis_committee)

    assert tracker.current_trusted_state().to_bytes() == before_state
    assert tracker.store.to_dict() == before_store
    assert tracker.apply(chain.next()).sequence_number == 1


def test_genesis_announcing_wrong_epoch_is_config_error():
    chain = ChainBuilder()
    far_committee, _ = generate_committee(5, (1, 1, 1))
    boundary = chain.header(next_committee=far_committee)
    with pytest.raises(ConfigError):
        ChainTracker(TrustedState(checkpoint=boundary, committee=chain.committee))


def test_committee_for_unknown_epoch():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    with pytest.raises(CommitteeNotFound):
        tracker.committee_for(3)


def test_verify_does_not_apply():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    cert = chain.next()
    assert tracker.verify(cert).header == cert.header
    assert tracker.current_trusted_state().sequence_number == 0


def test_apply_hook_sees_each_new_state():
    chain = ChainBuilder()
    applied = []
    tracker = ChainTracker(chain.genesis, on_apply=lambda cert, state: applied.append(state.sequence_number))
    tracker.apply_all(chain.extend(3))
    with pytest.raises(QuorumNotMet):
        tracker.apply(chain.next(signers=[0]))
    assert applied == [1, 2, 3]


def test_failing_apply_hook_does_not_undo_apply():
    chain = ChainBuilder()

    def broken_hook(cert, state):
        raise RuntimeError("hook failed")

    tracker = ChainTracker(chain.genesis, on_apply=broken_hook)
    state = tracker.apply(chain.next())
    assert state.sequence_number == 1
    assert tracker.current_trusted_state() == state
    assert tracker.apply(chain.next()).sequence_number == 2


def test_apply_all_stops_at_first_failure():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    certs = chain.extend(2) + [chain.next(signers=[1])] + chain.extend(1)
    with pytest.raises(QuorumNotMet) as exc:
        tracker.apply_all(certs)
    assert exc.value.sequence_number == 3
    assert tracker.current_trusted_state().sequence_number == 2


def test_transactions_do_not_affect_verification():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    cert = chain.next(transactions=[tx_digests("a"), tx_digests("b")])
    assert tracker.apply(cert).checkpoint.contents_digest == chain.contents[1].digest()


def test_concurrent_apply_single_winner():
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    cert = chain.next()
    outcomes = []
    lock = threading.Lock()

    def worker():
        try:
            tracker.apply(cert)
            result = "ok"
        except VerificationError as e:
            result = e.reason
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("SequenceGap") == 7
    assert tracker.current_trusted_state().sequence_number == 1
