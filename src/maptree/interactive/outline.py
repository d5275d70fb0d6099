"""Outline state shared by the sidebar widgets.

:class:`MapOutline` owns the current :class:`~maptree.nodes.NodeStore` and the set of
collapsed maps, and connects the selection and drag controllers to the reorder engine.
Every committed move replaces the store as a whole, is announced through
``sigTreeChanged`` and is handed to the persistence callable without waiting for it.
"""

from __future__ import annotations

__all__ = ["MapOutline"]

import logging
import typing

from qtpy import QtCore

from maptree.interactive._options import options
from maptree.interactive._persist import _StorePersister
from maptree.interactive.drag import DragController, MoveRequest
from maptree.interactive.selection import SelectionController
from maptree.io import with_fold_state
from maptree.nodes import ROOT, NodeStore, add_node, remove_node
from maptree.reorder import DropPosition, check_invariants, move_many
from maptree.tree import TreeNode, build, flatten

if typing.TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)


def _warn_inconsistent(store: NodeStore) -> None:
    for problem in check_invariants(store):
        logger.warning("Inconsistent map list: %s", problem)


class MapOutline(QtCore.QObject):
    """Editable outline of maps.

    Parameters
    ----------
    store
        Initial map store, usually supplied by the project loader.
    persister
        Callable that receives the whole store after each committed change, with the
        current fold state written to the ``expanded`` payload fields. It runs in a
        worker thread; its result is not awaited and a failure does not revert the
        in-memory store.
    collapsed
        Ids of maps whose children start hidden.
    parent
        Parent QObject.

    Signals
    -------
    sigTreeChanged(object)
        Emitted with the new store after it replaced the old one.
    sigExpandRequested(int)
        Emitted when maps are dropped into a collapsed map.
    sigDeleteRequested(list)
        Emitted with the selected ids, in display order, when deletion is requested.
    sigPersistFailed(str)
        Emitted with the formatted error when the persistence callable fails.

    """

    sigTreeChanged = QtCore.Signal(object)  #: :meta private:
    sigExpandRequested = QtCore.Signal(int)  #: :meta private:
    sigDeleteRequested = QtCore.Signal(list)  #: :meta private:
    sigPersistFailed = QtCore.Signal(str)  #: :meta private:

    def __init__(
        self,
        store: NodeStore | None = None,
        persister: Callable[[NodeStore], typing.Any] | None = None,
        collapsed: Iterable[int] = (),
        parent: QtCore.QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._store: NodeStore = NodeStore()
        self._forest: list[TreeNode] = []
        self._collapsed: set[int] = set(collapsed)

        self.selection = SelectionController(self.visible_order, self)
        self.drag = DragController(
            before=options["drag/before_fraction"],
            after=options["drag/after_fraction"],
            parent=self,
        )
        self.drag.sigDropRequested.connect(self._drop_requested)

        self._persister: _StorePersister | None = None
        if persister is not None:
            self._persister = _StorePersister(persister, self)
            self._persister.sigFailed.connect(self.sigPersistFailed)

        store = store if store is not None else NodeStore()
        _warn_inconsistent(store)
        self._adopt(store)

    @property
    def store(self) -> NodeStore:
        return self._store

    @property
    def forest(self) -> list[TreeNode]:
        return self._forest

    @property
    def collapsed(self) -> frozenset[int]:
        return frozenset(self._collapsed)

    def visible_order(self) -> list[int]:
        """Ids currently shown in the outline, top to bottom."""
        return flatten(self._forest, self._collapsed)

    def _adopt(self, store: NodeStore) -> None:
        self._store = store
        self._forest = build(store)
        self._collapsed &= set(store)
        self.selection.prune(store)

    def set_store(self, store: NodeStore) -> None:
        """Replace the store with externally supplied data without saving it."""
        _warn_inconsistent(store)
        self._adopt(store)
        self.sigTreeChanged.emit(store)

    def commit(self, store: NodeStore) -> bool:
        """Adopt ``store`` as the new state and save it.

        Returns `False` if ``store`` equals the current state.
        """
        if store == self._store:
            return False
        self._adopt(store)
        self.sigTreeChanged.emit(store)
        if self._persister is not None:
            self._persister.submit(with_fold_state(store, self._collapsed))
        return True

    def wait_for_saves(self, msecs: int = -1) -> bool:
        """Block until all pending saves have finished."""
        if self._persister is None:
            return True
        return self._persister.wait(msecs)

    def move(
        self, node_ids: Iterable[int], target_id: int, position: DropPosition | str
    ) -> bool:
        """Move maps relative to ``target_id``.

        Returns whether the outline changed. Illegal moves leave it untouched.
        """
        position = DropPosition(position)
        node_ids = list(node_ids)
        new_store = move_many(
            self._store, node_ids, target_id, position, order=self.visible_order()
        )
        if new_store == self._store:
            logger.debug("Move of %s onto %s had no effect", node_ids, target_id)
            return False

        expand = position is DropPosition.INTO and target_id in self._collapsed
        if expand:
            self._collapsed.discard(target_id)
        self.commit(new_store)
        if expand:
            self.sigExpandRequested.emit(target_id)
        return True

    @QtCore.Slot(object)
    def _drop_requested(self, request: MoveRequest) -> None:
        self.move(request.node_ids, request.target_id, request.position)

    def set_collapsed(self, node_id: int, collapsed: bool) -> None:
        if collapsed:
            self._collapsed.add(node_id)
        else:
            self._collapsed.discard(node_id)

    def toggle_collapsed(self, node_id: int) -> None:
        self.set_collapsed(node_id, node_id not in self._collapsed)

    def start_drag(self, node_id: int) -> None:
        self.drag.before = options["drag/before_fraction"]
        self.drag.after = options["drag/after_fraction"]
        self.drag.start(node_id, self.selection.selection)

    @QtCore.Slot()
    def request_delete(self) -> None:
        """Ask the removal collaborator to delete the selected maps."""
        ids = self.selection.ordered_selection()
        if ids:
            self.sigDeleteRequested.emit(ids)

    def create(self, parent: int = ROOT, payload: typing.Any = None) -> int:
        """Append a new map under ``parent`` and return its id."""
        store, node_id = add_node(self._store, parent, payload)
        self.commit(store)
        return node_id

    def remove(self, node_ids: Iterable[int]) -> None:
        """Delete maps along with their children."""
        store = self._store
        for node_id in node_ids:
            store = remove_node(store, node_id)
        self.commit(store)
