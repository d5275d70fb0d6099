import itertools
import random

import pytest

from maptree.nodes import ROOT, NodeStore
from maptree.reorder import (
    DropPosition,
    check_invariants,
    compact,
    is_descendant,
    move_many,
    move_one,
    normalize,
)
from maptree.tree import build, flatten

BEFORE, AFTER, INTO = DropPosition.BEFORE, DropPosition.AFTER, DropPosition.INTO


def _assert_consistent(store: NodeStore) -> None:
    assert check_invariants(store) == []


def test_is_descendant(nested_store: NodeStore) -> None:
    assert is_descendant(nested_store, 3, 1)
    assert is_descendant(nested_store, 3, 2)
    assert not is_descendant(nested_store, 1, 3)
    assert not is_descendant(nested_store, 1, 1)
    assert not is_descendant(nested_store, 7, 1)
    assert not is_descendant(nested_store, ROOT, 1)
    assert not is_descendant(nested_store, 42, 1)


def test_is_descendant_stops_on_existing_cycle(make_store) -> None:
    store = make_store({1: (2, 0), 2: (1, 0), 3: (ROOT, 0)})
    assert is_descendant(store, 1, 2)
    assert not is_descendant(store, 1, 3)


def test_single_move_before(make_store, local_order) -> None:
    store = make_store({1: (ROOT, 0), 2: (ROOT, 1), 3: (ROOT, 2)})
    result = move_one(store, 3, 1, BEFORE)
    assert (result[1].rank, result[3].rank, result[2].rank) == (1, 0, 2)
    assert local_order(result, ROOT) == [3, 1, 2]
    _assert_consistent(result)


def test_single_move_after(flat_store, local_order) -> None:
    result = move_one(flat_store, 1, 3, AFTER)
    assert local_order(result, ROOT) == [2, 3, 1, 4]
    result = move_one(flat_store, 4, 1, AFTER)
    assert local_order(result, ROOT) == [1, 4, 2, 3]


def test_single_move_into(make_store, local_order) -> None:
    store = make_store({1: (ROOT, 0), 2: (ROOT, 1), 3: (ROOT, 2)})
    result = move_one(store, 2, 1, INTO)
    assert (result[1].parent, result[1].rank) == (ROOT, 0)
    assert (result[2].parent, result[2].rank) == (1, 0)
    assert (result[3].parent, result[3].rank) == (ROOT, 1)
    _assert_consistent(result)


def test_move_into_appends(nested_store, local_order) -> None:
    result = move_one(nested_store, 7, 1, INTO)
    assert local_order(result, 1) == [2, 5, 7]
    assert local_order(result, 6) == []
    _assert_consistent(result)


def test_move_into_own_parent_moves_to_end(nested_store, local_order) -> None:
    result = move_one(nested_store, 2, 1, INTO)
    assert local_order(result, 1) == [5, 2]
    # Subtree travels with its root
    assert result[3].parent == 2


def test_move_last_child_into_own_parent(nested_store, local_order) -> None:
    result = move_one(nested_store, 5, 1, INTO)
    assert local_order(result, 1) == [2, 5]
    assert result[5].rank == 1
    _assert_consistent(result)


def test_move_across_groups(nested_store, local_order) -> None:
    result = move_one(nested_store, 3, 7, BEFORE)
    assert local_order(result, 6) == [3, 7]
    assert local_order(result, 2) == []
    _assert_consistent(result)


def test_move_payload_and_tombstones_untouched(nested_store) -> None:
    result = move_one(nested_store, 5, 6, INTO)
    assert result[5].payload == {"name": "Map5"}
    assert result.tombstones() == [4]
    # Only parent and rank change
    assert result[5].model_dump(exclude={"parent", "rank"}) == nested_store[
        5
    ].model_dump(exclude={"parent", "rank"})


@pytest.mark.parametrize("position", list(DropPosition))
@pytest.mark.parametrize(
    ("node", "target"),
    [(1, 1), (1, 2), (1, 3), (2, 3), (1, 5), (42, 1), (1, 42), (4, 1), (1, 4)],
)
def test_reject_is_noop(nested_store, node, target, position) -> None:
    result = move_one(nested_store, node, target, position)
    assert result == nested_store
    assert result is nested_store


def test_move_accepts_position_strings(flat_store, local_order) -> None:
    result = move_one(flat_store, 4, 1, "before")  # type: ignore[arg-type]
    assert local_order(result, ROOT) == [4, 1, 2, 3]


def test_move_does_not_mutate_input(flat_store) -> None:
    snapshot = flat_store.slots()
    move_one(flat_store, 4, 1, BEFORE)
    assert flat_store.slots() == snapshot


def test_batch_after_keeps_relative_order(flat_store, local_order) -> None:
    result = move_many(flat_store, {4, 2}, 1, AFTER)
    assert local_order(result, ROOT) == [1, 2, 4, 3]
    _assert_consistent(result)


def test_batch_before(flat_store, local_order) -> None:
    result = move_many(flat_store, [4, 2], 1, BEFORE)
    assert local_order(result, ROOT) == [2, 4, 1, 3]
    _assert_consistent(result)


def test_batch_into(nested_store, local_order) -> None:
    result = move_many(nested_store, [7, 3], 1, INTO)
    assert local_order(result, 1) == [2, 5, 3, 7]
    _assert_consistent(result)


def test_batch_uses_visual_snapshot(flat_store, local_order) -> None:
    # A snapshot that lists 4 above 2 decides the batch order
    result = move_many(flat_store, [2, 4], 1, AFTER, order=[1, 4, 3, 2])
    assert local_order(result, ROOT) == [1, 4, 2, 3]


def test_batch_ids_missing_from_snapshot_sort_last(nested_store, local_order) -> None:
    # 3 is hidden under collapsed 2 in the snapshot
    order = flatten(build(nested_store), {2})
    result = move_many(nested_store, [3, 7, 5], 6, INTO, order=order)
    assert local_order(result, 6) == [5, 7, 3]
    _assert_consistent(result)


def test_batch_drops_illegal_members(nested_store, local_order) -> None:
    # 1 is an ancestor of the target and 3 is the target itself
    result = move_many(nested_store, [1, 3, 7], 3, AFTER)
    assert local_order(result, 2) == [3, 7]
    assert result[1].parent == ROOT
    _assert_consistent(result)


def test_batch_all_illegal_is_noop(nested_store) -> None:
    assert move_many(nested_store, [1, 2], 3, BEFORE) is nested_store
    assert move_many(nested_store, [], 3, BEFORE) is nested_store
    assert move_many(nested_store, [42], 3, BEFORE) is nested_store


def test_batch_of_one_delegates(flat_store) -> None:
    assert move_many(flat_store, [3], 1, BEFORE) == move_one(flat_store, 3, 1, BEFORE)


def test_batch_with_parent_and_child(nested_store, local_order) -> None:
    result = move_many(nested_store, [2, 3], 6, AFTER)
    assert local_order(result, ROOT) == [1, 6, 2, 3]
    assert local_order(result, 2) == []
    _assert_consistent(result)


def test_compact_and_normalize(make_store, local_order) -> None:
    store = make_store({1: (ROOT, 5), 2: (ROOT, 2), 3: (1, 8), 4: (1, 8)})
    compacted = compact(store, ROOT)
    assert [(n.id, n.rank) for n in compacted.children(ROOT)] == [(2, 0), (1, 1)]
    assert compacted[3].rank == 8
    normalized = normalize(store)
    assert [(n.id, n.rank) for n in normalized.children(1)] == [(3, 0), (4, 1)]
    _assert_consistent(normalized)


def test_check_invariants_reports_problems(make_store) -> None:
    store = make_store({1: (ROOT, 0), 2: (ROOT, 0), 3: (9, 0), 4: (5, 0), 5: (4, 0)})
    problems = check_invariants(store)
    assert any("not dense" in p for p in problems)
    assert any("Parent 9 does not exist" in p for p in problems)
    assert any("Node 4 is its own ancestor" in p for p in problems)
    assert any("Node 5 is its own ancestor" in p for p in problems)


def test_random_moves_keep_invariants(make_store) -> None:
    rng = random.Random(1234)
    store = make_store(
        {
            1: (ROOT, 0),
            2: (ROOT, 1),
            3: (1, 0),
            4: (1, 1),
            5: (3, 0),
            6: (2, 0),
            7: (2, 1),
            8: (ROOT, 2),
        }
    )
    ids = list(store)
    positions = list(DropPosition)
    for _ in range(300):
        target = rng.choice(ids)
        batch = rng.sample(ids, rng.randint(1, 3))
        store = move_many(store, batch, target, rng.choice(positions))
        _assert_consistent(store)
        assert sorted(store) == ids


def test_every_single_move_keeps_invariants(nested_store) -> None:
    ids = list(nested_store)
    for node, target, position in itertools.product(ids, ids, DropPosition):
        result = move_one(nested_store, node, target, position)
        _assert_consistent(result)
        if node == target or is_descendant(nested_store, target, node):
            assert result is nested_store
