"""Flat node store for the map outline.

The store is the single source of truth for the outline. Each live record is a
:class:`Node` holding its parent reference and its rank among siblings. Reserved ids
with no live record are kept as tombstones so that numeric ids stay stable for other
parts of a project that refer to them.

Stores are immutable values. Every mutating helper returns a new store and leaves the
input untouched, so the caller decides when to adopt the result.
"""

from __future__ import annotations

__all__ = ["ROOT", "Node", "NodeStore", "add_node", "remove_node"]

import logging
import typing

from pydantic import BaseModel, ConfigDict, Field

if typing.TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)

ROOT: int = 0
"""Parent value of top-level nodes."""


class Node(BaseModel):
    """A single outline entry.

    Only ``parent`` and ``rank`` are ever changed by the reorder engine; ``payload`` is
    carried along untouched.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    parent: int = Field(default=ROOT, ge=0)
    rank: int = Field(default=0, ge=0)
    payload: typing.Any = None


class NodeStore:
    """Immutable mapping from node id to a live :class:`Node` or a tombstone.

    Parameters
    ----------
    slots
        Mapping from id to node. A value of `None` marks a tombstone.

    """

    __slots__ = ("_slots",)

    def __init__(self, slots: Mapping[int, Node | None] | None = None) -> None:
        self._slots: dict[int, Node | None] = dict(slots or {})
        for key, node in self._slots.items():
            if node is not None and node.id != key:
                raise ValueError(f"Node {node.id} stored under id {key}")

    @classmethod
    def from_nodes(
        cls, nodes: Iterable[Node | None], tombstones: Iterable[int] = ()
    ) -> NodeStore:
        slots: dict[int, Node | None] = dict.fromkeys(tombstones)
        for node in nodes:
            if node is not None:
                slots[node.id] = node
        return cls(slots)

    def __contains__(self, node_id: object) -> bool:
        return self._slots.get(node_id) is not None  # type: ignore[call-overload]

    def __getitem__(self, node_id: int) -> Node:
        node = self._slots.get(node_id)
        if node is None:
            raise KeyError(node_id)
        return node

    def __iter__(self) -> Iterator[int]:
        return (k for k, v in sorted(self._slots.items()) if v is not None)

    def __len__(self) -> int:
        return sum(1 for v in self._slots.values() if v is not None)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeStore):
            return NotImplemented
        return self._slots == other._slots

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"NodeStore(live={len(self)}, tombstones={len(self.tombstones())})"

    def get(self, node_id: int) -> Node | None:
        return self._slots.get(node_id)

    def nodes(self) -> list[Node]:
        """Live nodes, ordered by id."""
        return [self._slots[k] for k in self]  # type: ignore[misc]

    def tombstones(self) -> list[int]:
        """Reserved ids without a live node, ordered by id."""
        return sorted(k for k, v in self._slots.items() if v is None)

    def slots(self) -> dict[int, Node | None]:
        """Copy of the underlying id mapping, tombstones included."""
        return dict(self._slots)

    def max_id(self) -> int:
        """Largest id ever assigned, counting tombstones."""
        return max(self._slots, default=ROOT)

    def children(self, parent: int) -> list[Node]:
        """Live nodes whose parent value is ``parent``, in sibling order."""
        return sorted(
            (n for n in self._slots.values() if n is not None and n.parent == parent),
            key=lambda n: (n.rank, n.id),
        )

    def parents(self) -> set[int]:
        """Distinct parent values that occur among live nodes."""
        return {n.parent for n in self._slots.values() if n is not None}

    def replace(self, *nodes: Node) -> NodeStore:
        """Return a new store with ``nodes`` put in place of their current slots."""
        slots = dict(self._slots)
        for node in nodes:
            slots[node.id] = node
        return NodeStore(slots)

    def with_tombstones(self, node_ids: Iterable[int]) -> NodeStore:
        """Return a new store where ``node_ids`` are tombstoned."""
        slots = dict(self._slots)
        for node_id in node_ids:
            slots[node_id] = None
        return NodeStore(slots)


def add_node(
    store: NodeStore, parent: int = ROOT, payload: typing.Any = None
) -> tuple[NodeStore, int]:
    """Append a new node to the end of a sibling group.

    Creation is not part of the reorder engine, but it has to preserve dense ranks: the
    new node gets the rank right after the current last sibling. Ids are never reused,
    so the new id is one past the largest id ever assigned, tombstones included.

    Parameters
    ----------
    store
        Current store.
    parent
        Parent of the new node. Use :data:`ROOT` for a top-level node.
    payload
        Opaque payload to attach.

    Returns
    -------
    store : NodeStore
        The new store.
    node_id : int
        Id of the created node.

    """
    if parent != ROOT and parent not in store:
        raise KeyError(f"Parent {parent} does not exist")
    node_id = store.max_id() + 1
    rank = max((n.rank for n in store.children(parent)), default=-1) + 1
    node = Node(id=node_id, parent=parent, rank=rank, payload=payload)
    logger.debug("Created node %d under %d at rank %d", node_id, parent, rank)
    return store.replace(node), node_id


def remove_node(store: NodeStore, node_id: int) -> NodeStore:
    """Tombstone a node together with its whole subtree.

    The vacated sibling group is recompacted so ranks stay dense. Unknown ids leave the
    store unchanged.
    """
    from maptree.reorder import compact

    node = store.get(node_id)
    if node is None:
        return store

    removed: list[int] = []
    stack = [node_id]
    while stack:
        current = stack.pop()
        if current in removed:
            continue
        removed.append(current)
        stack.extend(child.id for child in store.children(current))

    logger.debug("Removing nodes %s", removed)
    return compact(store.with_tombstones(removed), node.parent)
