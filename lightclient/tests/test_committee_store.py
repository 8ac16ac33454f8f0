"""
Tests for committees and the epoch-indexed committee store.
"""

import pytest

from lightclient.checkpoint import generate_committee
from lightclient.committee import CommitteeStore
from lightclient.core.committee import Committee, CommitteeMember
from lightclient.core.errors import CommitteeNotFound, DuplicateEpoch, MalformedInput


def _member(validator_id, stake=1):
    return CommitteeMember(validator_id=validator_id, public_key="AAAA", stake=stake)


def test_committee_total_stake_and_lookup():
    committee = Committee(epoch=0, members=[_member("a", 3), _member("b", 5)])
    assert committee.total_stake == 8
    assert len(committee) == 2
    assert committee.member_at(1).validator_id == "b"
    assert committee.member_at(2) is None
    assert committee.member_at(-1) is None
    assert committee.index_of("a") == 0
    assert committee.index_of("zz") is None


def test_committee_rejects_duplicates_empty_and_zero_stake():
    with pytest.raises(MalformedInput):
        Committee(epoch=0, members=(_member("a"), _member("a")))
    with pytest.raises(MalformedInput):
        Committee(epoch=0, members=())
    with pytest.raises(MalformedInput):
        Committee(epoch=0, members=(_member("a", 0),))


def test_committee_from_dict_rejects_bad_stake():
    with pytest.raises(MalformedInput):
        Committee.from_dict({"epoch": 0, "members": [{"validator_id": "a", "public_key": "AAAA", "stake": True}]})
    with pytest.raises(MalformedInput):
        Committee.from_dict({"epoch": 0, "members": [{"validator_id": "a", "public_key": "AAAA", "stake": -1}]})


def test_committee_dict_roundtrip_preserves_digest():
    committee, _ = generate_committee(4, [10, 20, 30])
    restored = Committee.from_dict(committee.to_dict())
    assert restored == committee
    assert restored.digest() == committee.digest()


def test_get_missing_epoch_raises_not_found():
    store = CommitteeStore()
    with pytest.raises(CommitteeNotFound) as exc:
        store.get(7)
    assert exc.value.epoch == 7
    assert isinstance(exc.value, LookupError)
    assert store.find(7) is None


def test_insert_identical_is_noop():
    committee, _ = generate_committee(1, [1, 1])
    store = CommitteeStore()
    assert store.insert(committee) is True
    assert store.insert(committee) is False
    assert len(store) == 1
    assert store.get(1) == committee


def test_insert_conflicting_raises_duplicate_epoch():
    first, _ = generate_committee(1, [1, 1])
    second, _ = generate_committee(1, [1, 1])
    store = CommitteeStore()
    store.insert(first)
    with pytest.raises(DuplicateEpoch):
        store.insert(second)
    assert store.get(1) == first


def test_prune_epochs_latest_and_contains():
    store = CommitteeStore()
    for epoch in range(4):
        store.insert(generate_committee(epoch, [1])[0])
    assert store.epochs() == [0, 1, 2, 3]
    assert store.latest().epoch == 3

    assert store.prune(2) == 2
    assert store.epochs() == [2, 3]
    assert 1 not in store
    assert 2 in store
    assert store.prune(2) == 0


def test_remove_and_dict_roundtrip():
    store = CommitteeStore()
    store.insert(generate_committee(0, [1])[0])
    store.insert(generate_committee(1, [2, 3])[0])

    restored = CommitteeStore.from_dict(store.to_dict())
    assert restored.to_dict() == store.to_dict()

    restored.remove(1)
    restored.remove(9)
    assert restored.epochs() == [0]
