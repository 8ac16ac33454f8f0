"""
Tests for transaction, events and object proofs.
"""

import tempfile

import pytest

from lightclient.checkpoint import CheckpointContents, CheckpointStore, ExecutionDigests
from lightclient.core.digest import digest_of
from lightclient.core.errors import CheckpointNotAvailable, DigestMismatch, SequenceGap
from lightclient.proof import (
    InclusionStatus,
    ObjectRef,
    ProofVerifier,
    TransactionEffects,
    TransactionEvents,
    check_inclusion,
    verify_effects,
    verify_events,
    verify_inclusion,
    verify_object,
)
from lightclient.tracker import ChainTracker

from .chain import ChainBuilder, tx_digests


def _effects(label, events=None, objects=()):
    return TransactionEffects(
        transaction_digest=digest_of({"tx": label}),
        status="success",
        events_digest=events.digest() if events else None,
        changed_objects=objects,
    )


def _chain_with(transactions):
    chain = ChainBuilder()
    cert = chain.next(transactions=transactions)
    return chain, cert.header, chain.contents[cert.sequence_number]


def test_included_pair():
    pair = tx_digests("a")
    _, header, contents = _chain_with([tx_digests("x"), pair])
    result = check_inclusion(pair.transaction_digest, pair.effects_digest, contents, header)
    assert result.status is InclusionStatus.INCLUDED
    assert result.included
    assert result.checkpoint == header.ref()
    assert verify_inclusion(pair.transaction_digest, pair.effects_digest, contents, header)


def test_absent_transaction_is_definite_negative():
    _, header, contents = _chain_with([tx_digests("x")])
    missing = tx_digests("nope")
    result = check_inclusion(missing.transaction_digest, missing.effects_digest, contents, header)
    assert result.status is InclusionStatus.ABSENT
    assert not result.included


def test_wrong_effects_is_mismatched():
    pair = tx_digests("a")
    _, header, contents = _chain_with([pair])
    result = check_inclusion(pair.transaction_digest, digest_of({"effects": "forged"}), contents, header)
    assert result.status is InclusionStatus.MISMATCHED
    assert not result.included


def test_tampered_contents_rejected_even_when_pair_present():
    pair = tx_digests("a")
    _, header, contents = _chain_with([pair])
    tampered = CheckpointContents(contents.transactions + (tx_digests("extra"),))
    with pytest.raises(DigestMismatch):
        check_inclusion(pair.transaction_digest, pair.effects_digest, tampered, header)


def test_empty_contents():
    _, header, contents = _chain_with([])
    pair = tx_digests("a")
    assert not verify_inclusion(pair.transaction_digest, pair.effects_digest, contents, header)


def test_result_to_dict():
    pair = tx_digests("a")
    _, header, contents = _chain_with([pair])
    data = check_inclusion(pair.transaction_digest, pair.effects_digest, contents, header).to_dict()
    assert data["status"] == "included"
    assert data["included"] is True
    assert data["checkpoint"]["sequence_number"] == 1


def test_effects_and_events():
    events = TransactionEvents([{"type": "Transfer", "amount": 5}])
    effects = _effects("pay", events=events)
    entry = ExecutionDigests(effects.transaction_digest, effects.digest())
    _, header, contents = _chain_with([entry])

    assert verify_effects(effects, contents, header).included
    verify_events(effects, events)

    with pytest.raises(DigestMismatch):
        verify_events(effects, TransactionEvents([{"type": "Transfer", "amount": 6}]))


def test_events_when_none_committed():
    effects = _effects("quiet")
    verify_events(effects, TransactionEvents([]))
    with pytest.raises(DigestMismatch):
        verify_events(effects, TransactionEvents([{"type": "Surprise"}]))


def test_forged_effects_not_included():
    effects = _effects("pay")
    entry = ExecutionDigests(effects.transaction_digest, effects.digest())
    _, header, contents = _chain_with([entry])
    forged = TransactionEffects(effects.transaction_digest, "failure")
    assert verify_effects(forged, contents, header).status is InclusionStatus.MISMATCHED


def test_object_proof():
    obj = ObjectRef(object_id="0xcoin", version=3, digest=digest_of({"coin": 3}))
    effects = _effects("mint", objects=(obj,))
    entry = ExecutionDigests(effects.transaction_digest, effects.digest())
    _, header, contents = _chain_with([entry])

    assert verify_object(obj, effects, contents, header)
    stale = ObjectRef(object_id="0xcoin", version=2, digest=obj.digest)
    assert not verify_object(stale, effects, contents, header)


def test_effects_roundtrip():
    obj = ObjectRef(object_id="0xa", version=1, digest=digest_of({"a": 1}))
    effects = _effects("t", events=TransactionEvents([{"k": "v"}]), objects=(obj,))
    restored = TransactionEffects.from_dict(effects.to_dict())
    assert restored == effects
    assert restored.digest() == effects.digest()


def _archived_chain(tmpdir):
    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    archive = CheckpointStore(tmpdir)
    pairs = {}
    for i in range(1, 5):
        pair = tx_digests(f"tx-{i}")
        pairs[i] = pair
        rotate = (2, 2, 2) if i == 2 else None
        cert = chain.next(transactions=[pair], rotate_to=rotate)
        tracker.apply(cert)
        archive.save(cert, chain.contents[i])
    return chain, tracker, archive, pairs


def test_proof_verifier_historical_checkpoints():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, tracker, archive, pairs = _archived_chain(tmpdir)
        verifier = ProofVerifier(tracker, archive)

        # epoch 0 checkpoint, verified against the superseded committee
        result = verifier.check_transaction(1, pairs[1].transaction_digest, pairs[1].effects_digest)
        assert result.included
        assert result.checkpoint.epoch == 0

        # epoch 1 checkpoint
        assert verifier.check_transaction(3, pairs[3].transaction_digest, pairs[3].effects_digest).included

        # latest trusted checkpoint
        latest = verifier.check_transaction(4, pairs[1].transaction_digest, pairs[1].effects_digest)
        assert latest.status is InclusionStatus.ABSENT


def test_proof_verifier_rejects_untrusted_and_missing():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, tracker, archive, pairs = _archived_chain(tmpdir)
        verifier = ProofVerifier(tracker, archive)

        with pytest.raises(SequenceGap):
            verifier.check_transaction(5, pairs[1].transaction_digest, pairs[1].effects_digest)
        with pytest.raises(CheckpointNotAvailable):
            verifier.check_transaction(0, pairs[1].transaction_digest, pairs[1].effects_digest)


def test_proof_verifier_detects_swapped_contents_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        chain, tracker, archive, pairs = _archived_chain(tmpdir)
        archive.save_contents(1, chain.contents[3])
        verifier = ProofVerifier(tracker, archive)
        with pytest.raises(DigestMismatch):
            verifier.check_transaction(1, pairs[3].transaction_digest, pairs[3].effects_digest)


def test_proof_verifier_effects_and_objects_in_earlier_epoch():
    coin = ObjectRef(object_id="0xcoin", version=7, digest=digest_of({"coin": 7}))
    effects = _effects("mint", objects=(coin,))
    entry = ExecutionDigests(effects.transaction_digest, effects.digest())

    chain = ChainBuilder()
    tracker = ChainTracker(chain.genesis)
    with tempfile.TemporaryDirectory() as tmpdir:
        archive = CheckpointStore(tmpdir)
        for seq, (transactions, rotate) in enumerate(
            [([entry], None), ([], (3, 3, 3)), ([tx_digests("later")], None)], start=1
        ):
            cert = chain.next(transactions=transactions, rotate_to=rotate)
            tracker.apply(cert)
            archive.save(cert, chain.contents[seq])
        verifier = ProofVerifier(tracker, archive)

        result = verifier.check_effects(1, effects)
        assert result.included
        assert result.checkpoint.epoch == 0
        assert verifier.check_effects(3, effects).status is InclusionStatus.ABSENT

        assert verifier.check_object(1, coin, effects)
        stale = ObjectRef(object_id="0xcoin", version=6, digest=coin.digest)
        assert not verifier.check_object(1, stale, effects)
        assert not verifier.check_object(3, coin, effects)

        with pytest.raises(SequenceGap):
            verifier.check_object(4, coin, effects)
