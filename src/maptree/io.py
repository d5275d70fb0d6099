"""Reading and writing ``MapInfos.json``.

``MapInfos.json`` is the map list of an RPG Maker MV/MZ project: a JSON array whose
index is the map id. Index 0 and deleted maps are ``null``. Each entry holds ``id``,
``parentId`` (0 for top-level maps) and ``order``, plus editor fields such as ``name``,
``expanded``, ``scrollX`` and ``scrollY`` that are kept as opaque payload.

The ``order`` field is written as a global pre-order position. It is monotonic within
every sibling group, which is all that is needed to recover the sibling ranks on load.
"""

from __future__ import annotations

__all__ = [
    "MapInfo",
    "MapInfosError",
    "MapInfosFile",
    "collapsed_ids",
    "read_map_infos",
    "store_from_map_infos",
    "store_to_map_infos",
    "with_fold_state",
    "write_map_infos",
]

import datetime
import json
import logging
import pathlib
import shutil
import typing

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from maptree.nodes import ROOT, Node, NodeStore
from maptree.reorder import normalize
from maptree.tree import build, walk

if typing.TYPE_CHECKING:
    from collections.abc import Collection, Sequence

logger = logging.getLogger(__name__)

_RESERVED_KEYS: tuple[str, ...] = ("id", "parentId", "order")


class MapInfosError(ValueError):
    """Raised when a map list cannot be interpreted."""


class MapInfo(BaseModel):
    """One entry of ``MapInfos.json``. Unknown fields are preserved."""

    model_config = ConfigDict(extra="allow")

    id: int = Field(ge=1)
    parentId: int = Field(default=ROOT, ge=0)  # noqa: N815
    order: int = Field(default=0)


def store_from_map_infos(entries: Sequence[typing.Any]) -> NodeStore:
    """Build a store from the decoded contents of ``MapInfos.json``.

    Parameters
    ----------
    entries
        The decoded JSON array. ``None`` slots become tombstones.

    Returns
    -------
    NodeStore
        Store with dense sibling ranks ordered by each entry's ``order``.

    Raises
    ------
    MapInfosError
        If the array or any entry is malformed.
    """
    if not isinstance(entries, list | tuple):
        raise MapInfosError("Map list must be a JSON array")

    nodes: list[Node] = []
    tombstones: list[int] = []
    for index, entry in enumerate(entries):
        if entry is None:
            if index != 0:
                tombstones.append(index)
            continue
        try:
            info = MapInfo.model_validate(entry)
        except ValidationError as exc:
            raise MapInfosError(f"Invalid entry at index {index}: {exc}") from exc
        if info.id != index:
            raise MapInfosError(f"Entry at index {index} has id {info.id}")

        payload = {
            k: v for k, v in info.model_dump().items() if k not in _RESERVED_KEYS
        }
        # Sibling order is recovered by normalize() below
        nodes.append(
            Node(
                id=info.id,
                parent=info.parentId,
                rank=max(info.order, 0),
                payload=payload,
            )
        )

    return normalize(NodeStore.from_nodes(nodes, tombstones))


def store_to_map_infos(store: NodeStore) -> list[dict[str, typing.Any] | None]:
    """Encode a store as the ``MapInfos.json`` array."""
    order = {item.id: i for i, (item, _) in enumerate(walk(build(store)), start=1)}
    out: list[dict[str, typing.Any] | None] = [None] * (store.max_id() + 1)
    for node in store.nodes():
        payload = node.payload if isinstance(node.payload, dict) else {}
        out[node.id] = {
            "id": node.id,
            **{k: v for k, v in payload.items() if k not in _RESERVED_KEYS},
            "order": order.get(node.id, 0),
            "parentId": node.parent,
        }
    return out


def collapsed_ids(store: NodeStore) -> set[int]:
    """Ids of nodes whose payload marks them as not expanded."""
    return {
        node.id
        for node in store.nodes()
        if isinstance(node.payload, dict) and node.payload.get("expanded") is False
    }


def with_fold_state(store: NodeStore, collapsed: Collection[int]) -> NodeStore:
    """Record the fold state in the ``expanded`` field of each payload.

    This is the inverse of :func:`collapsed_ids`. A missing field reads as expanded, so
    it is only added for collapsed maps. Payloads that are neither a dict nor `None`
    are left alone.
    """
    changed: list[Node] = []
    for node in store.nodes():
        if node.payload is not None and not isinstance(node.payload, dict):
            continue
        payload: dict[str, typing.Any] = node.payload or {}
        expanded = node.id not in collapsed
        if payload.get("expanded", True) is expanded:
            continue
        changed.append(
            node.model_copy(update={"payload": {**payload, "expanded": expanded}})
        )
    return store.replace(*changed) if changed else store


def read_map_infos(path: str | pathlib.Path) -> NodeStore:
    """Read a store from a ``MapInfos.json`` file."""
    path = pathlib.Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise MapInfosError(f"Failed to parse {path.name}: {exc}") from exc
    return store_from_map_infos(data)


def write_map_infos(
    path: str | pathlib.Path, store: NodeStore, indent: int | None = None
) -> None:
    """Write a store to a ``MapInfos.json`` file."""
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(store_to_map_infos(store), f, indent=indent, ensure_ascii=False)


class MapInfosFile:
    """Persistence collaborator that replaces the whole map list on every save.

    Parameters
    ----------
    path
        Location of ``MapInfos.json``.
    backup
        If `True`, an existing file is copied to a timestamped ``.bak`` file before it
        is overwritten.
    indent
        Indentation passed to :func:`json.dump`.

    """

    def __init__(
        self, path: str | pathlib.Path, backup: bool = True, indent: int | None = None
    ) -> None:
        self.path = pathlib.Path(path)
        self.backup = backup
        self.indent = indent

    def __repr__(self) -> str:
        return f"MapInfosFile({str(self.path)!r})"

    def __call__(self, store: NodeStore) -> None:
        self.save(store)

    def load(self) -> NodeStore:
        if not self.path.exists():
            return NodeStore()
        return read_map_infos(self.path)

    def _backup_path(self) -> pathlib.Path:
        timestamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        return self.path.with_name(f"{self.path.name}.bak-{timestamp}")

    def save(self, store: NodeStore) -> pathlib.Path | None:
        """Write ``store`` and return the backup path, if one was made."""
        backup_path: pathlib.Path | None = None
        if self.backup and self.path.exists():
            backup_path = self._backup_path()
            shutil.copy2(self.path, backup_path)
        write_map_infos(self.path, store, indent=self.indent)
        logger.info("Saved %d maps to %s", len(store), self.path)
        return backup_path
