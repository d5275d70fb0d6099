"""Model-view architecture used for displaying the map outline."""

from __future__ import annotations

__all__ = ["MapTreeView"]

import logging
import typing
import weakref

from qtpy import QtCore, QtGui, QtWidgets

from maptree.interactive._options import options
from maptree.tree import TreeNode, walk

if typing.TYPE_CHECKING:
    from maptree.interactive.drag import Hover
    from maptree.interactive.outline import MapOutline
    from maptree.nodes import Node

logger = logging.getLogger(__name__)

_Action = QtWidgets.QAbstractItemView.CursorAction

_CURSOR_ACTIONS: dict[QtCore.Qt.Key, _Action] = {
    QtCore.Qt.Key.Key_Up: _Action.MoveUp,
    QtCore.Qt.Key.Key_Down: _Action.MoveDown,
    QtCore.Qt.Key.Key_Left: _Action.MoveLeft,
    QtCore.Qt.Key.Key_Right: _Action.MoveRight,
    QtCore.Qt.Key.Key_Home: _Action.MoveHome,
    QtCore.Qt.Key.Key_End: _Action.MoveEnd,
    QtCore.Qt.Key.Key_PageUp: _Action.MovePageUp,
    QtCore.Qt.Key.Key_PageDown: _Action.MovePageDown,
}

_TOGGLE_MODIFIERS = (
    QtCore.Qt.KeyboardModifier.ControlModifier | QtCore.Qt.KeyboardModifier.MetaModifier
)


def node_label(node: Node) -> str:
    """Display name of a map, falling back to its id."""
    name = node.payload.get("name") if isinstance(node.payload, dict) else None
    label = str(name) if name else f"Map {node.id}"
    if options["outline/show_ids"]:
        label = f"{node.id:03d}: {label}"
    return label


class _MapTreeModel(QtCore.QAbstractItemModel):
    """Read-only item model over the forest of a :class:`MapOutline`.

    The model is reset whenever the outline commits a new store; all edits go through
    the outline, never through ``setData`` or Qt's own drag and drop.
    """

    def __init__(self, outline: MapOutline, parent: QtCore.QObject | None = None):
        super().__init__(parent)
        self._outline = weakref.ref(outline)
        self._items: dict[int, TreeNode] = {}
        self._parents: dict[int, TreeNode | None] = {}
        self._rows: dict[int, int] = {}
        self._rebuild()
        outline.sigTreeChanged.connect(self._tree_changed)

    @property
    def outline(self) -> MapOutline:
        outline = self._outline()
        if outline:
            return outline
        raise LookupError("Parent was destroyed")

    def _rebuild(self) -> None:
        self._items.clear()
        self._parents.clear()
        self._rows.clear()
        for row, item in enumerate(self.outline.forest):
            self._parents[item.id] = None
            self._rows[item.id] = row
        for item, _ in walk(self.outline.forest):
            self._items[item.id] = item
            for row, child in enumerate(item.children):
                self._parents[child.id] = item
                self._rows[child.id] = row

    @QtCore.Slot(object)
    def _tree_changed(self, _store) -> None:
        self.beginResetModel()
        self._rebuild()
        self.endResetModel()

    def _children(self, parent: QtCore.QModelIndex) -> list[TreeNode]:
        if not parent.isValid():
            return self.outline.forest
        return typing.cast("TreeNode", parent.internalPointer()).children

    def node_id(self, index: QtCore.QModelIndex) -> int | None:
        if not index.isValid():
            return None
        return typing.cast("TreeNode", index.internalPointer()).id

    def index_of(self, node_id: int) -> QtCore.QModelIndex:
        """Get the model index of a map id."""
        item = self._items.get(node_id)
        if item is None:
            return QtCore.QModelIndex()
        return self.createIndex(self._rows[node_id], 0, item)

    def index(
        self, row: int, column: int, parent: QtCore.QModelIndex | None = None
    ) -> QtCore.QModelIndex:
        if parent is None:
            parent = QtCore.QModelIndex()
        if column != 0 or row < 0:
            return QtCore.QModelIndex()
        children = self._children(parent)
        if row >= len(children):
            return QtCore.QModelIndex()
        return self.createIndex(row, column, children[row])

    @typing.overload
    def parent(self, child: QtCore.QModelIndex) -> QtCore.QModelIndex: ...

    @typing.overload
    def parent(self) -> QtCore.QObject | None: ...

    def parent(
        self, child: QtCore.QModelIndex | None = None
    ) -> QtCore.QModelIndex | QtCore.QObject | None:
        if child is None:  # pragma: no branch
            return super().parent()

        if not child.isValid():
            return QtCore.QModelIndex()

        item = typing.cast("TreeNode", child.internalPointer())
        parent_item = self._parents.get(item.id)
        if parent_item is None:
            return QtCore.QModelIndex()
        return self.createIndex(self._rows[parent_item.id], 0, parent_item)

    def hasChildren(self, parent: QtCore.QModelIndex | None = None) -> bool:
        if parent is None:
            parent = QtCore.QModelIndex()
        return len(self._children(parent)) > 0

    def rowCount(self, parent: QtCore.QModelIndex | None = None) -> int:
        if parent is None:
            parent = QtCore.QModelIndex()
        if parent.column() > 0:
            return 0
        return len(self._children(parent))

    def columnCount(self, parent: QtCore.QModelIndex | None = None) -> int:
        return 1

    def data(
        self, index: QtCore.QModelIndex, role: int = QtCore.Qt.ItemDataRole.DisplayRole
    ) -> typing.Any:
        if not index.isValid():
            return None

        item = typing.cast("TreeNode", index.internalPointer())
        match role:
            case QtCore.Qt.ItemDataRole.DisplayRole:
                return node_label(item.node)

            case QtCore.Qt.ItemDataRole.ToolTipRole:
                return f"Map {item.id}"

            case QtCore.Qt.ItemDataRole.SizeHintRole:
                return QtCore.QSize(100, 22)

        return None

    def flags(self, index: QtCore.QModelIndex) -> QtCore.Qt.ItemFlag:
        if not index.isValid():
            return QtCore.Qt.ItemFlag.NoItemFlags
        return QtCore.Qt.ItemFlag.ItemIsSelectable | QtCore.Qt.ItemFlag.ItemIsEnabled


class MapTreeView(QtWidgets.QTreeView):
    """Sidebar tree of maps.

    Pointer and key input is translated into calls on the outline's selection and drag
    controllers; the Qt selection and expansion state only mirror those controllers.

    - Click selects a map, Ctrl-click toggles it and Shift-click selects a range.
    - The arrow, Home, End and page keys move the keyboard cursor and select the map
      under it. With Shift they extend the selection from the anchor, and with Ctrl they
      only move the cursor. Space selects the map under the cursor, or toggles it with
      Ctrl. Ctrl+A selects every visible map.
    - Pressing on a map and moving the pointer starts a drag. Releasing over a map drops
      the dragged maps before, after or into it, depending on the pointer height within
      the row. Releasing anywhere else cancels the drag.
    - Escape cancels a drag, or clears the selection when no drag is active.
    - Delete asks the outline to remove the selected maps.
    """

    def __init__(
        self, outline: MapOutline, parent: QtWidgets.QWidget | None = None
    ) -> None:
        super().__init__(parent)
        self._outline = outline

        self._model = _MapTreeModel(outline, self)
        self.setModel(self._model)

        self._selection_model = typing.cast(
            "QtCore.QItemSelectionModel", self.selectionModel()
        )

        self.setSelectionMode(
            QtWidgets.QAbstractItemView.SelectionMode.ExtendedSelection
        )
        self.setSelectionBehavior(
            QtWidgets.QAbstractItemView.SelectionBehavior.SelectRows
        )
        self.setDragEnabled(False)
        self.setAcceptDrops(False)
        self.setUniformRowHeights(True)
        self.setExpandsOnDoubleClick(False)
        self.setEditTriggers(self.EditTrigger.NoEditTriggers)
        self.setMouseTracking(True)
        self.setHeaderHidden(True)

        self._press_pos: QtCore.QPoint | None = None
        self._press_id: int | None = None

        outline.sigTreeChanged.connect(self._sync_from_outline)
        outline.sigExpandRequested.connect(self._expand_requested)
        outline.selection.sigSelectionChanged.connect(self._sync_selection)
        outline.drag.sigHoverChanged.connect(self._hover_changed)
        self.expanded.connect(self._index_expanded)
        self.collapsed.connect(self._index_collapsed)

        self._sync_from_outline()

    @property
    def outline(self) -> MapOutline:
        return self._outline

    def index_of(self, node_id: int) -> QtCore.QModelIndex:
        return self._model.index_of(node_id)

    def row_rect(self, node_id: int) -> QtCore.QRect:
        """Viewport rectangle of the row showing ``node_id``."""
        return self.visualRect(self.index_of(node_id))

    def _id_at(self, pos: QtCore.QPoint) -> int | None:
        return self._model.node_id(self.indexAt(pos))

    @QtCore.Slot()
    @QtCore.Slot(object)
    def _sync_from_outline(self, _store=None) -> None:
        collapsed = self._outline.collapsed
        self.blockSignals(True)
        try:
            for item, _ in walk(self._outline.forest):
                if item.children:
                    self.setExpanded(self.index_of(item.id), item.id not in collapsed)
        finally:
            self.blockSignals(False)
        self._sync_selection(self._outline.selection.ordered_selection())

    @QtCore.Slot(list)
    def _sync_selection(self, ids: list[int]) -> None:
        selection = QtCore.QItemSelection()
        for node_id in ids:
            index = self.index_of(node_id)
            if index.isValid():
                selection.select(index, index)
        self._selection_model.select(
            selection, QtCore.QItemSelectionModel.SelectionFlag.ClearAndSelect
        )
        current = self._outline.selection.current
        if current is not None:
            self._selection_model.setCurrentIndex(
                self.index_of(current),
                QtCore.QItemSelectionModel.SelectionFlag.NoUpdate,
            )

    @QtCore.Slot(int)
    def _expand_requested(self, node_id: int) -> None:
        index = self.index_of(node_id)
        if index.isValid():
            self.expand(index)

    @QtCore.Slot(QtCore.QModelIndex)
    def _index_expanded(self, index: QtCore.QModelIndex) -> None:
        node_id = self._model.node_id(index)
        if node_id is not None:
            self._outline.set_collapsed(node_id, False)

    @QtCore.Slot(QtCore.QModelIndex)
    def _index_collapsed(self, index: QtCore.QModelIndex) -> None:
        node_id = self._model.node_id(index)
        if node_id is not None:
            self._outline.set_collapsed(node_id, True)

    @QtCore.Slot(object)
    def _hover_changed(self, hover: Hover | None) -> None:
        viewport = self.viewport()
        if viewport is not None:  # pragma: no branch
            viewport.update()

    def mousePressEvent(self, event: QtGui.QMouseEvent | None) -> None:
        if event is None:  # pragma: no cover
            return
        pos = event.position().toPoint()
        index = self.indexAt(pos)
        if not index.isValid() or pos.x() < self.visualRect(index).left():
            # Blank area or branch indicator
            super().mousePressEvent(event)
            return
        if event.button() != QtCore.Qt.MouseButton.LeftButton:
            event.accept()
            return

        node_id = typing.cast("int", self._model.node_id(index))
        selection = self._outline.selection
        modifiers = event.modifiers()
        if modifiers & QtCore.Qt.KeyboardModifier.ShiftModifier:
            selection.extend(node_id)
        elif modifiers & _TOGGLE_MODIFIERS:
            selection.toggle(node_id)
        elif node_id not in selection.selection or len(selection.selection) == 1:
            selection.click(node_id)
        self._selection_model.setCurrentIndex(
            index, QtCore.QItemSelectionModel.SelectionFlag.NoUpdate
        )

        self._press_pos = pos
        self._press_id = node_id
        event.accept()

    def mouseMoveEvent(self, event: QtGui.QMouseEvent | None) -> None:
        if event is None:  # pragma: no cover
            return
        if not event.buttons() & QtCore.Qt.MouseButton.LeftButton:
            super().mouseMoveEvent(event)
            return

        pos = event.position().toPoint()
        drag = self._outline.drag
        if not drag.active:
            if self._press_pos is None or self._press_id is None:
                return
            distance = (pos - self._press_pos).manhattanLength()
            if distance < QtWidgets.QApplication.startDragDistance():
                return
            self._outline.start_drag(self._press_id)

        node_id = self._id_at(pos)
        if node_id is not None:
            rect = self.row_rect(node_id)
            fraction = (pos.y() - rect.top()) / max(rect.height(), 1)
            drag.hover(node_id, fraction)
        event.accept()

    def mouseReleaseEvent(self, event: QtGui.QMouseEvent | None) -> None:
        if event is None:  # pragma: no cover
            return
        drag = self._outline.drag
        press_id = self._press_id
        self._press_pos = None
        self._press_id = None
        if drag.active:
            drag.drop(self._id_at(event.position().toPoint()))
            event.accept()
            return
        if (
            press_id is not None
            and event.button() == QtCore.Qt.MouseButton.LeftButton
            and not event.modifiers()
            & (
                QtCore.Qt.KeyboardModifier.ShiftModifier
                | QtCore.Qt.KeyboardModifier.ControlModifier
                | QtCore.Qt.KeyboardModifier.MetaModifier
            )
        ):
            # Plain click on a member of a multi-selection selects only that map
            self._outline.selection.click(press_id)
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def mouseDoubleClickEvent(self, event: QtGui.QMouseEvent | None) -> None:
        if event is not None:
            event.accept()

    def selectionCommand(
        self, index: QtCore.QModelIndex, event: QtCore.QEvent | None = None
    ) -> QtCore.QItemSelectionModel.SelectionFlag:
        # Only the selection controller changes the selection
        return QtCore.QItemSelectionModel.SelectionFlag.NoUpdate

    def selectAll(self) -> None:
        self._outline.selection.select_all()

    def keyboardSearch(self, search: str | None) -> None:
        current = self.currentIndex()
        super().keyboardSearch(search)
        index = self.currentIndex()
        node_id = self._model.node_id(index)
        if node_id is not None and index != current:
            self._outline.selection.click(node_id)

    def _move_cursor(
        self, action: _Action, modifiers: QtCore.Qt.KeyboardModifier
    ) -> None:
        current = self.currentIndex()
        index = self.moveCursor(action, modifiers)
        node_id = self._model.node_id(index)
        if node_id is None or index == current:
            # Left and Right may only have folded the current map
            return
        self._selection_model.setCurrentIndex(
            index, QtCore.QItemSelectionModel.SelectionFlag.NoUpdate
        )
        self.scrollTo(index)

        selection = self._outline.selection
        if modifiers & QtCore.Qt.KeyboardModifier.ShiftModifier:
            selection.extend(node_id)
        elif not modifiers & _TOGGLE_MODIFIERS:
            selection.click(node_id)

    def keyPressEvent(self, event: QtGui.QKeyEvent | None) -> None:
        if event is None:  # pragma: no cover
            return
        if event.matches(QtGui.QKeySequence.StandardKey.SelectAll):
            self.selectAll()
            event.accept()
            return
        modifiers = event.modifiers()
        match event.key():
            case QtCore.Qt.Key.Key_Escape:
                self._press_pos = None
                self._press_id = None
                if self._outline.drag.active:
                    self._outline.drag.abort()
                else:
                    self._outline.selection.clear()
                event.accept()
            case QtCore.Qt.Key.Key_Delete | QtCore.Qt.Key.Key_Backspace:
                self._outline.request_delete()
                event.accept()
            case QtCore.Qt.Key.Key_Space:
                node_id = self._model.node_id(self.currentIndex())
                if node_id is not None and modifiers & _TOGGLE_MODIFIERS:
                    self._outline.selection.toggle(node_id)
                elif node_id is not None:
                    self._outline.selection.click(node_id)
                event.accept()
            case key if key in _CURSOR_ACTIONS:
                self._move_cursor(_CURSOR_ACTIONS[key], modifiers)
                event.accept()
            case _:
                super().keyPressEvent(event)

    def paintEvent(self, event: QtGui.QPaintEvent | None) -> None:
        super().paintEvent(event)
        hover = self._outline.drag.hover_state
        viewport = self.viewport()
        if hover is None or viewport is None:
            return
        rect = self.row_rect(hover.target_id)
        if not rect.isValid():
            return
        painter = QtGui.QPainter(viewport)
        painter.setPen(QtGui.QPen(self.palette().highlight().color(), 2))
        match hover.position.value:
            case "before":
                painter.drawLine(rect.topLeft(), rect.topRight())
            case "after":
                painter.drawLine(rect.bottomLeft(), rect.bottomRight())
            case _:
                painter.drawRect(rect.adjusted(1, 1, -1, -1))
        painter.end()
