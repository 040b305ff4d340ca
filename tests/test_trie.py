import pytest

from conftest import make_ids
from uuidlookup.constants import MAX_DEPTH
from uuidlookup.trie import Internal, Leaf, LoadStatus, TrieIndex, key_for

A = "5d41402a-bc4b-4a76-b971-000000000001"
B = "5d41402a-bc4b-4a76-b971-000000000002"


def _walk_slots(node):
    for slot in node.slots.values():
        yield slot
        if isinstance(slot, Internal):
            yield from _walk_slots(slot.node)


def test_key_for_offsets():
    keys = [key_for(A, d) for d in range(MAX_DEPTH + 1)]
    assert keys == ["5d41", "402a", "bc4b", "4a76", "b971", "0000", "0000", "0001"]
    assert "-" not in "".join(keys)


def test_key_for_keeps_case():
    assert key_for(A.upper(), 0) == "5D41"


def test_every_inserted_id_is_found_and_others_are_not():
    ids = make_ids(5000, seed=1)
    absent = make_ids(500, seed=2)
    index = TrieIndex()
    for u in ids:
        index.insert(u)

    assert len(index) == len(ids)
    assert all(index.lookup(u) is not None for u in ids)
    assert all(u not in index for u in absent)
    assert index.root.size == len(ids)


def test_insertion_order_does_not_matter():
    ids = make_ids(300, seed=3)
    forward, backward = TrieIndex(), TrieIndex()
    for u in ids:
        forward.insert(u)
    for u in reversed(ids):
        backward.insert(u)
    assert all(u in forward and u in backward for u in ids)
    assert len(forward) == len(backward) == 300


def test_duplicates_store_one_record():
    index = TrieIndex()
    first = index.insert(A)
    assert index.insert_new(B) is True
    assert index.insert_new(A) is False
    assert index.insert(A) is first
    assert len(index) == 2
    assert index.stats()["duplicates"] == 2

    leaves = [s for s in _walk_slots(index.root) if isinstance(s, Leaf)]
    assert sorted(s.record.identifier for s in leaves) == [A, B]


def test_last_segment_collision_splits_down_to_max_depth():
    index = TrieIndex()
    index.insert(A)
    index.insert(B)

    assert index.counters.max_depth == MAX_DEPTH
    assert index.counters.splits == MAX_DEPTH
    assert index.counters.deepest.depth == MAX_DEPTH
    assert index.lookup(A).identifier == A
    assert index.lookup(B).identifier == B

    path = index.lookup_with_path(B)
    assert len(path) == MAX_DEPTH + 1
    assert all(isinstance(step.slot, Internal) for step in path[:-1])
    assert path[-1].full_match is True


def test_shared_prefix_is_not_a_match():
    index = TrieIndex()
    index.insert(A)
    # Same first segment, so the lookup ends on A's leaf at depth 0.
    other = "5d41ffff-0000-0000-0000-000000000000"
    assert index.lookup(other) is None
    path = index.lookup_with_path(other)
    assert len(path) == 1
    assert isinstance(path[0].slot, Leaf)
    assert path[0].full_match is False


def test_lookup_with_path_on_empty_slot():
    path = TrieIndex().lookup_with_path(A)
    assert len(path) == 1
    assert path[0].slot is None
    assert path[0].full_match is False


def test_case_variants_are_distinct_entries():
    index = TrieIndex()
    index.insert(A)
    assert A.upper() not in index
    index.insert(A.upper())
    assert len(index) == 2


@pytest.mark.parametrize("bad", ["", "not-a-uuid", A[:-1], A.replace("-", "_"), A + "0"])
def test_malformed_identifiers_are_rejected(bad):
    index = TrieIndex()
    with pytest.raises(ValueError):
        index.insert(bad)
    assert len(index) == 0


def test_new_index_is_empty():
    index = TrieIndex()
    assert index.status is LoadStatus.EMPTY
    assert index.processed == 0
    assert index.lookup(A) is None
