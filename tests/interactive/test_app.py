import json
import sys

import pytest
from qtpy import QtWidgets

from maptree.interactive import app
from maptree.interactive.app import MapTreeWindow, main
from maptree.nodes import ROOT
from maptree.reorder import DropPosition


@pytest.fixture
def win(qtbot, map_infos_path, restore_options) -> MapTreeWindow:
    win = MapTreeWindow(map_infos_path)
    qtbot.addWidget(win)
    yield win
    win.outline.wait_for_saves()


def _saved(path) -> list:
    return json.loads(path.read_text(encoding="utf-8"))


def test_window_loads_file(win: MapTreeWindow, map_infos_path) -> None:
    assert win.windowTitle() == "Maps - MapInfos.json"
    assert list(win.outline.store) == [1, 2, 4, 5]
    # Collapsed state comes from the "expanded" flags
    assert win.outline.visible_order() == [1, 4, 2]
    assert not win.delete_action.isEnabled()


def test_move_is_saved(win: MapTreeWindow, map_infos_path, local_order) -> None:
    assert win.outline.move([2], 4, DropPosition.BEFORE)
    win.outline.wait_for_saves()

    entries = _saved(map_infos_path)
    assert [e and (e["id"], e["parentId"], e["order"]) for e in entries] == [
        None,
        (1, 0, 1),
        (2, 1, 2),
        None,
        (4, 1, 4),
        (5, 2, 3),
    ]
    assert entries[2]["scrollX"] == 10
    backups = list(map_infos_path.parent.glob("MapInfos.json.bak-*"))
    assert len(backups) == 1


def test_new_map(win: MapTreeWindow, map_infos_path, local_order) -> None:
    node_id = win.new_map()
    assert node_id == 6
    assert local_order(win.outline.store, ROOT) == [1, 6]
    assert win.outline.selection.current == 6
    assert win.delete_action.isEnabled()

    child_id = win.new_map()
    assert child_id == 7
    assert win.outline.store[7].parent == 6
    assert win.outline.store[7].payload["name"] == "MAP007"
    assert 6 not in win.outline.collapsed

    win.outline.wait_for_saves()
    assert _saved(map_infos_path)[7]["parentId"] == 6


def test_new_map_expands_parent(win: MapTreeWindow, map_infos_path) -> None:
    win.outline.selection.click(2)
    node_id = win.new_map()
    assert win.outline.store[node_id].parent == 2
    assert win.view.isExpanded(win.view.index_of(2))
    assert 5 in win.outline.visible_order()

    win.outline.wait_for_saves()
    entries = _saved(map_infos_path)
    assert entries[2]["expanded"] is True
    assert entries[4]["expanded"] is False


@pytest.mark.parametrize(
    ("answer", "removed"),
    [
        (QtWidgets.QMessageBox.StandardButton.Yes, True),
        (QtWidgets.QMessageBox.StandardButton.No, False),
    ],
)
def test_delete(win: MapTreeWindow, monkeypatch, answer, removed) -> None:
    monkeypatch.setattr(
        QtWidgets.QMessageBox, "question", lambda *args, **kwargs: answer
    )
    win.outline.selection.click(2)
    win.delete_action.trigger()
    assert (2 not in win.outline.store) is removed
    assert (5 not in win.outline.store) is removed


def test_persist_failure_shows_message(qtbot, win: MapTreeWindow, monkeypatch) -> None:
    def _fail(*args, **kwargs):
        raise PermissionError("read-only")

    monkeypatch.setattr(win.file, "save", _fail)
    with qtbot.waitSignal(win.outline.sigPersistFailed):
        win.outline.move([4], 2, DropPosition.AFTER)
    assert win.statusBar().currentMessage() == "Failed to save MapInfos.json"
    assert win.outline.store[4].parent == 1
    assert [n.id for n in win.outline.store.children(1)] == [2, 4]


def test_main(qtbot, monkeypatch, map_infos_path, restore_options) -> None:
    monkeypatch.setattr(app, "configure_logging", lambda: None)
    monkeypatch.setattr(sys, "argv", ["maptree", "--verbose", str(map_infos_path)])
    win = main(execute=False)
    qtbot.addWidget(win)
    assert win.file.path == map_infos_path
    assert win.isVisible()


def test_main_missing_file_starts_empty(
    qtbot, monkeypatch, tmp_path, restore_options
) -> None:
    monkeypatch.setattr(app, "configure_logging", lambda: None)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", ["maptree"])
    win = main(execute=False)
    qtbot.addWidget(win)
    assert win.file.path == tmp_path / "MapInfos.json"
    assert len(win.outline.store) == 0


def test_main_invalid_file(qtbot, monkeypatch, tmp_path, restore_options) -> None:
    path = tmp_path / "MapInfos.json"
    path.write_text('[null, {"id": 3}]', encoding="utf-8")
    shown: list[str] = []
    monkeypatch.setattr(app, "configure_logging", lambda: None)
    monkeypatch.setattr(sys, "argv", ["maptree", str(path)])
    monkeypatch.setattr(
        QtWidgets.QMessageBox,
        "critical",
        lambda parent, title, text, *args: shown.append(text),
    )
    with pytest.raises(SystemExit):
        main(execute=False)
    assert shown == ["Entry at index 1 has id 3"]
