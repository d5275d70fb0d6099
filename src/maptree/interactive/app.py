"""Standalone window for editing the map outline of a project.

The application can be started by running the script `maptree` from the command line,
optionally passing the path to a ``MapInfos.json`` file::

    maptree path/to/project/data/MapInfos.json

Every change is written back to the file immediately.
"""

from __future__ import annotations

__all__ = ["MapTreeWindow", "main"]

import logging
import pathlib
import sys
import typing

from qtpy import QtCore, QtGui, QtWidgets

import maptree
from maptree.interactive._logging import configure_logging
from maptree.interactive._modelview import MapTreeView
from maptree.interactive._options import OptionDialog, options
from maptree.interactive.outline import MapOutline
from maptree.io import MapInfosError, MapInfosFile, collapsed_ids
from maptree.nodes import ROOT

logger = logging.getLogger(__name__)


class MapTreeWindow(QtWidgets.QMainWindow):
    """Main window hosting a :class:`MapTreeView` bound to a ``MapInfos.json`` file.

    Parameters
    ----------
    path
        Location of ``MapInfos.json``. A missing file starts an empty outline that is
        created on the first change.

    """

    def __init__(
        self, path: str | pathlib.Path, parent: QtWidgets.QWidget | None = None
    ) -> None:
        super().__init__(parent)
        self.file = MapInfosFile(
            path,
            backup=options["io/backup"],
            indent=options["io/indent"] or None,
        )
        store = self.file.load()

        self.outline = MapOutline(
            store, persister=self.file, collapsed=collapsed_ids(store), parent=self
        )
        self.view = MapTreeView(self.outline, self)
        self.setCentralWidget(self.view)

        self.outline.sigDeleteRequested.connect(self._delete_requested)
        self.outline.sigPersistFailed.connect(self._persist_failed)
        self.outline.selection.sigSelectionChanged.connect(self._update_actions)

        self.new_action = QtGui.QAction("&New Map", self)
        self.new_action.setShortcut(QtGui.QKeySequence.StandardKey.New)
        self.new_action.triggered.connect(self.new_map)

        self.delete_action = QtGui.QAction("&Delete", self)
        self.delete_action.triggered.connect(self.outline.request_delete)

        self.settings_action = QtGui.QAction("&Settings...", self)
        self.settings_action.triggered.connect(self.show_settings)

        toolbar = self.addToolBar("Outline")
        toolbar.setObjectName("outline_toolbar")
        toolbar.setMovable(False)
        toolbar.addAction(self.new_action)
        toolbar.addAction(self.delete_action)
        toolbar.addSeparator()
        toolbar.addAction(self.settings_action)

        self.setWindowTitle(f"Maps - {self.file.path.name}")
        self.resize(280, 480)
        self._update_actions()

    @QtCore.Slot()
    @QtCore.Slot(list)
    def _update_actions(self, _ids=None) -> None:
        self.delete_action.setEnabled(bool(self.outline.selection.selection))

    @QtCore.Slot()
    def new_map(self) -> int:
        """Create a map under the current map, or at the top level."""
        parent = self.outline.selection.current
        if parent is not None:
            self.outline.set_collapsed(parent, False)
        next_id = self.outline.store.max_id() + 1
        node_id = self.outline.create(
            ROOT if parent is None else parent,
            {
                "name": f"MAP{next_id:03d}",
                "expanded": False,
                "scrollX": 0,
                "scrollY": 0,
            },
        )
        if parent is not None:
            self.view.expand(self.view.index_of(parent))
        self.outline.selection.click(node_id)
        return node_id

    @QtCore.Slot(list)
    def _delete_requested(self, ids: list[int]) -> None:
        ret = QtWidgets.QMessageBox.question(
            self,
            "Delete Maps",
            f"Delete {len(ids)} map(s) and their children?",
        )
        if ret == QtWidgets.QMessageBox.StandardButton.Yes:
            self.outline.remove(ids)

    @QtCore.Slot(str)
    def _persist_failed(self, message: str) -> None:
        self.statusBar().showMessage(f"Failed to save {self.file.path.name}", 5000)
        logger.error("Save failed: %s", message)

    @QtCore.Slot()
    def show_settings(self) -> None:
        dialog = OptionDialog(self)
        dialog.exec()

    def closeEvent(self, event: QtGui.QCloseEvent | None) -> None:
        self.outline.wait_for_saves(5000)
        super().closeEvent(event)


def main(execute: bool = True) -> MapTreeWindow:
    """Start the outline application.

    Running ``maptree`` from a shell will invoke this function.
    """
    args = [arg for arg in sys.argv[1:] if not arg.startswith("-")]
    path = pathlib.Path(args[0]) if args else pathlib.Path.cwd() / "MapInfos.json"

    qapp = typing.cast(
        "QtWidgets.QApplication | None", QtWidgets.QApplication.instance()
    )
    if not qapp:
        qapp = QtWidgets.QApplication(sys.argv)
        qapp.setStyle("Fusion")
        qapp.setApplicationName("maptree")
        qapp.setApplicationDisplayName("Map Outline")
        qapp.setApplicationVersion(maptree.__version__)

    configure_logging()

    try:
        win = MapTreeWindow(path)
    except MapInfosError as exc:
        logger.exception("Failed to open %s", path)
        QtWidgets.QMessageBox.critical(None, "Error", str(exc))
        raise SystemExit(1) from exc

    win.show()
    win.raise_()
    win.activateWindow()

    if execute:  # pragma: no cover
        qapp.exec()
    return win
