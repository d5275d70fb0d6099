"""Reparenting and drag-reorder engine for the map outline.

All public functions take a :class:`~maptree.nodes.NodeStore` and return a store. A move
that would put a node relative to itself or create a cycle is rejected by returning the
input store unchanged; no exception is raised for it. Every store returned satisfies the
two structural invariants of the outline:

- the ranks in each sibling group are exactly ``0, 1, ..., k - 1``;
- no node is its own ancestor.

A batch move is a sequence of single moves chosen so that the batch keeps its visual
order, and each single move leaves the store consistent before the next one starts.
"""

from __future__ import annotations

__all__ = [
    "DropPosition",
    "check_invariants",
    "compact",
    "is_descendant",
    "move_many",
    "move_one",
    "normalize",
]

import enum
import logging
import typing

from maptree.nodes import ROOT
from maptree.tree import build, flatten

if typing.TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from maptree.nodes import Node, NodeStore

logger = logging.getLogger(__name__)


class DropPosition(enum.Enum):
    """Where a dragged node lands relative to the drop target."""

    BEFORE = "before"
    AFTER = "after"
    INTO = "into"


def _ancestors(store: NodeStore, node_id: int) -> Iterator[int]:
    """Walk parent links upwards, starting from the parent of ``node_id``.

    Stops at the root, at a parent that is not live, or if a pre-existing cycle in
    externally supplied data is detected.
    """
    seen: set[int] = {node_id}
    node = store.get(node_id)
    while node is not None and node.parent != ROOT:
        parent = node.parent
        if parent in seen:
            return
        seen.add(parent)
        yield parent
        node = store.get(parent)


def is_descendant(store: NodeStore, node_id: int, ancestor_id: int) -> bool:
    """Return whether ``node_id`` lies in the subtree below ``ancestor_id``.

    A node is not considered a descendant of itself.
    """
    return any(a == ancestor_id for a in _ancestors(store, node_id))


def _renumber(nodes: Iterable[Node]) -> list[Node]:
    out: list[Node] = []
    for i, node in enumerate(nodes):
        out.append(node if node.rank == i else node.model_copy(update={"rank": i}))
    return out


def compact(store: NodeStore, parent: int) -> NodeStore:
    """Renumber the children of ``parent`` to ``0..m-1``, keeping their order."""
    return store.replace(*_renumber(store.children(parent)))


def normalize(store: NodeStore) -> NodeStore:
    """Compact every sibling group in the store."""
    for parent in sorted(store.parents()):
        store = compact(store, parent)
    return store


def _is_legal(
    store: NodeStore, node_id: int, target_id: int, position: DropPosition
) -> bool:
    if node_id not in store or target_id not in store:
        logger.debug("Rejected move of %s onto %s: unknown id", node_id, target_id)
        return False
    if node_id == target_id:
        logger.debug("Rejected move of %s onto itself", node_id)
        return False
    if is_descendant(store, target_id, node_id):
        logger.debug("Rejected move of %s onto its descendant %s", node_id, target_id)
        return False

    new_parent = target_id if position is DropPosition.INTO else store[target_id].parent
    if new_parent == node_id or is_descendant(store, new_parent, node_id):
        logger.debug("Rejected move of %s under %s: cycle", node_id, new_parent)
        return False
    return True


def move_one(
    store: NodeStore, node_id: int, target_id: int, position: DropPosition
) -> NodeStore:
    """Move a single node relative to a target node.

    Parameters
    ----------
    store
        The current store.
    node_id
        The node being moved.
    target_id
        The node the move is relative to.
    position
        `DropPosition.BEFORE` and `DropPosition.AFTER` make the node a sibling of the
        target placed right before or after it. `DropPosition.INTO` makes the node the
        last child of the target.

    Returns
    -------
    NodeStore
        The updated store, or ``store`` itself if the move is illegal.
    """
    position = DropPosition(position)
    if not _is_legal(store, node_id, target_id, position):
        return store

    node = store[node_id]

    # Detach from the old sibling group
    remaining = [n for n in store.children(node.parent) if n.id != node_id]
    store = store.replace(*_renumber(remaining))

    if position is DropPosition.INTO:
        rank = 1 + max(
            (n.rank for n in store.children(target_id) if n.id != node_id), default=-1
        )
        store = store.replace(
            node.model_copy(update={"parent": target_id, "rank": rank})
        )
    else:
        new_parent = store[target_id].parent
        siblings = [n for n in store.children(new_parent) if n.id != node_id]
        index = next(i for i, n in enumerate(siblings) if n.id == target_id)
        if position is DropPosition.AFTER:
            index += 1
        siblings.insert(index, node.model_copy(update={"parent": new_parent}))
        store = store.replace(*_renumber(siblings))

    logger.debug("Moved %d %s %d", node_id, position.value, target_id)
    return store


def move_many(
    store: NodeStore,
    node_ids: Iterable[int],
    target_id: int,
    position: DropPosition,
    order: Sequence[int] | None = None,
) -> NodeStore:
    """Move several nodes together, keeping their visual order.

    Nodes that cannot be moved onto the target (the target itself, or an ancestor of
    the target) are dropped from the batch; the rest of the batch still moves.

    Parameters
    ----------
    store
        The current store.
    node_ids
        The nodes being moved.
    target_id
        The node the move is relative to.
    position
        Where the batch lands relative to ``target_id``.
    order
        Visual order snapshot taken before the move, usually the flattened outline as
        displayed. Defaults to the fully expanded outline of ``store``. Ids missing from
        the snapshot sort after the listed ones.

    Returns
    -------
    NodeStore
        The updated store, or ``store`` itself if nothing could be moved.
    """
    position = DropPosition(position)
    batch = [
        n
        for n in dict.fromkeys(node_ids)
        if n in store and n != target_id and not is_descendant(store, target_id, n)
    ]
    if not batch:
        logger.debug("Rejected batch move onto %s: nothing to move", target_id)
        return store
    if len(batch) == 1:
        return move_one(store, batch[0], target_id, position)

    full_order = flatten(build(store))
    snapshot = {n: i for i, n in enumerate(order if order is not None else full_order)}
    fallback = {n: len(snapshot) + i for i, n in enumerate(full_order)}
    batch.sort(key=lambda n: snapshot.get(n, fallback.get(n, len(fallback))))

    if position is DropPosition.AFTER:
        batch.reverse()

    for node_id in batch:
        store = move_one(store, node_id, target_id, position)
    return store


def check_invariants(store: NodeStore) -> list[str]:
    """Describe every structural problem found in ``store``.

    Returns an empty list for a consistent store.
    """
    problems: list[str] = []
    for parent in sorted(store.parents()):
        ranks = sorted(n.rank for n in store.children(parent))
        if ranks != list(range(len(ranks))):
            problems.append(f"Ranks under {parent} are not dense: {ranks}")
        if parent != ROOT and parent not in store:
            problems.append(f"Parent {parent} does not exist")

    for node_id in store:
        node = store[node_id]
        chain: list[int] = [node_id]
        while node is not None and node.parent != ROOT:
            if node.parent == node_id:
                problems.append(f"Node {node_id} is its own ancestor")
                break
            if node.parent in chain:
                break
            chain.append(node.parent)
            node = store.get(node.parent)
    return problems
