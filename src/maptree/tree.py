"""Read-only forest views derived from a :class:`~maptree.nodes.NodeStore`."""

from __future__ import annotations

__all__ = ["TreeNode", "build", "flatten", "to_node_list", "walk"]

import collections
import dataclasses
import typing

from maptree.nodes import ROOT

if typing.TYPE_CHECKING:
    from collections.abc import Collection, Iterator

    from maptree.nodes import Node, NodeStore


@dataclasses.dataclass
class TreeNode:
    node: Node
    children: list[TreeNode] = dataclasses.field(default_factory=list)

    @property
    def id(self) -> int:
        return self.node.id


def _cycle_head(items: dict[int, TreeNode], node_id: int) -> int:
    """Lowest id on the parent cycle above an unreachable node."""
    path: list[int] = []
    while node_id not in path:
        path.append(node_id)
        node_id = items[node_id].node.parent
    return min(path[path.index(node_id) :])


def build(store: NodeStore) -> list[TreeNode]:
    """Group the live nodes of ``store`` into a forest.

    Siblings are sorted by rank. A node whose parent does not exist in the store is
    shown as a root, and so is the lowest id of every parent cycle, so that each live
    node appears exactly once. The stored parent values themselves are left alone.

    Parameters
    ----------
    store
        The node store. Tombstones are skipped.

    Returns
    -------
    list of TreeNode
        Root nodes in display order.
    """
    items: dict[int, TreeNode] = {node.id: TreeNode(node) for node in store.nodes()}
    roots: list[TreeNode] = []
    for item in items.values():
        parent = item.node.parent
        if parent != ROOT and parent in items:
            items[parent].children.append(item)
        else:
            roots.append(item)

    reached = {item.id for item, _ in walk(roots)}
    for node_id in sorted(items.keys() - reached):
        if node_id in reached:
            continue
        head = items[_cycle_head(items, node_id)]
        parent = items[head.node.parent]
        parent.children = [child for child in parent.children if child is not head]
        roots.append(head)
        reached.update(item.id for item, _ in walk([head]))

    def _key(item: TreeNode) -> tuple[int, int]:
        return (item.node.rank, item.node.id)

    for item in items.values():
        item.children.sort(key=_key)
    roots.sort(key=_key)
    return roots


def walk(
    forest: list[TreeNode], collapsed: Collection[int] = ()
) -> Iterator[tuple[TreeNode, int]]:
    """Yield ``(item, depth)`` pairs in pre-order.

    Children of items whose id is in ``collapsed`` are not visited.
    """
    stack: list[tuple[TreeNode, int]] = [(item, 0) for item in reversed(forest)]
    seen: set[int] = set()
    while stack:
        item, depth = stack.pop()
        if item.id in seen:  # pragma: no cover
            continue
        seen.add(item.id)
        yield item, depth
        if item.id not in collapsed:
            stack.extend((child, depth + 1) for child in reversed(item.children))


def flatten(forest: list[TreeNode], collapsed: Collection[int] = ()) -> list[int]:
    """Visible node ids in depth-first pre-order.

    Collapsed subtrees are skipped but still exist in the store.
    """
    return [item.id for item, _ in walk(forest, collapsed)]


def to_node_list(forest: list[TreeNode]) -> list[Node]:
    """Serialize a forest back into a flat pre-order list of nodes.

    Ranks are renumbered from the position of each node among its siblings in the
    forest, so the output always has dense ranks.
    """
    counters: collections.Counter[int] = collections.Counter()
    out: list[Node] = []
    for item, _ in walk(forest):
        parent = item.node.parent
        out.append(item.node.model_copy(update={"rank": counters[parent]}))
        counters[parent] += 1
    return out
