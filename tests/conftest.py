import os
import pathlib
import typing

import pytest
from qtpy import QtCore

from maptree.nodes import ROOT, Node, NodeStore

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session", autouse=True)
def _isolated_settings(tmp_path_factory) -> None:
    """Keep QSettings and application data out of the user's home directory."""
    QtCore.QStandardPaths.setTestModeEnabled(True)
    settings_dir = tmp_path_factory.mktemp("settings")
    QtCore.QSettings.setPath(
        QtCore.QSettings.Format.IniFormat,
        QtCore.QSettings.Scope.UserScope,
        str(settings_dir),
    )


@pytest.fixture
def restore_options():
    from maptree.interactive._options import options

    options.restore()
    yield options
    options.restore()


def _make_store(
    layout: dict[int, tuple[int, int]],
    tombstones: typing.Iterable[int] = (),
    payloads: dict[int, typing.Any] | None = None,
) -> NodeStore:
    payloads = payloads or {}
    return NodeStore.from_nodes(
        (
            Node(id=i, parent=parent, rank=rank, payload=payloads.get(i))
            for i, (parent, rank) in layout.items()
        ),
        tombstones,
    )


@pytest.fixture
def make_store():
    """Build a store from ``{id: (parent, rank)}``."""
    return _make_store


def _local_order(store: NodeStore, parent: int) -> list[int]:
    return [n.id for n in store.children(parent)]


@pytest.fixture
def local_order():
    return _local_order


@pytest.fixture
def flat_store() -> NodeStore:
    """Four siblings ``[1, 2, 3, 4]`` at the top level."""
    return _make_store({1: (ROOT, 0), 2: (ROOT, 1), 3: (ROOT, 2), 4: (ROOT, 3)})


@pytest.fixture
def nested_store() -> NodeStore:
    """A small forest with a tombstone at id 4.

    ::

        1
        ├── 2
        │   └── 3
        └── 5
        6
        └── 7
    """
    return _make_store(
        {
            1: (ROOT, 0),
            2: (1, 0),
            3: (2, 0),
            5: (1, 1),
            6: (ROOT, 1),
            7: (6, 0),
        },
        tombstones=[4],
        payloads={i: {"name": f"Map{i}"} for i in (1, 2, 3, 5, 6, 7)},
    )


@pytest.fixture
def map_infos_path(tmp_path) -> pathlib.Path:
    path = tmp_path / "data" / "MapInfos.json"
    path.parent.mkdir()
    path.write_text(
        "[\n"
        "null,\n"
        '{"id":1,"expanded":true,"name":"World","order":1,"parentId":0,'
        '"scrollX":0,"scrollY":0},\n'
        '{"id":2,"expanded":false,"name":"Town","order":3,"parentId":1,'
        '"scrollX":10,"scrollY":5},\n'
        "null,\n"
        '{"id":4,"expanded":false,"name":"Cave","order":2,"parentId":1,'
        '"scrollX":0,"scrollY":0},\n'
        '{"id":5,"expanded":false,"name":"House","order":4,"parentId":2,'
        '"scrollX":0,"scrollY":0}\n'
        "]",
        encoding="utf-8",
    )
    return path
