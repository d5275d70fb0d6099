"""Selection state for the outline sidebar."""

from __future__ import annotations

__all__ = ["SelectionController"]

import logging
import typing

from qtpy import QtCore

if typing.TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

logger = logging.getLogger(__name__)


class SelectionController(QtCore.QObject):
    """Track the selected maps and the anchor used for range selection.

    Parameters
    ----------
    order_provider
        Callable returning the ids currently visible in the outline, in display order.
        Range selection slices this sequence.
    parent
        Parent QObject.

    Signals
    -------
    sigSelectionChanged(list)
        Emitted with the selected ids in display order whenever the selection changes.
    sigCurrentChanged(object)
        Emitted with the id of the single selected map, or `None` when zero or several
        maps are selected.

    """

    sigSelectionChanged = QtCore.Signal(list)  #: :meta private:
    sigCurrentChanged = QtCore.Signal(object)  #: :meta private:

    def __init__(
        self,
        order_provider: Callable[[], Sequence[int]],
        parent: QtCore.QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._order_provider = order_provider
        self._selection: frozenset[int] = frozenset()
        self._anchor: int | None = None

    @property
    def selection(self) -> frozenset[int]:
        return self._selection

    @property
    def anchor(self) -> int | None:
        return self._anchor

    @property
    def current(self) -> int | None:
        """The selected id if exactly one map is selected, otherwise `None`."""
        if len(self._selection) == 1:
            return next(iter(self._selection))
        return None

    def ordered_selection(self) -> list[int]:
        """Selected ids in display order. Hidden ids follow, sorted by id."""
        order = {n: i for i, n in enumerate(self._order_provider())}
        return sorted(self._selection, key=lambda n: (order.get(n, len(order)), n))

    def _set(self, selection: Iterable[int]) -> None:
        selection = frozenset(selection)
        if selection == self._selection:
            return
        old_current = self.current
        self._selection = selection
        logger.debug("Selection changed to %s", sorted(selection))
        self.sigSelectionChanged.emit(self.ordered_selection())
        if self.current != old_current:
            self.sigCurrentChanged.emit(self.current)

    @QtCore.Slot(int)
    def click(self, node_id: int) -> None:
        """Select only ``node_id`` and make it the anchor."""
        self._anchor = node_id
        self._set({node_id})

    @QtCore.Slot(int)
    def toggle(self, node_id: int) -> None:
        """Add ``node_id`` to the selection or remove it."""
        selection = set(self._selection)
        if node_id in selection:
            selection.discard(node_id)
        else:
            selection.add(node_id)
        if len(selection) == 1:
            self._anchor = next(iter(selection))
        self._set(selection)

    @QtCore.Slot(int)
    def extend(self, node_id: int) -> None:
        """Select the visible range between the anchor and ``node_id``.

        Without a usable anchor this behaves like :meth:`click`.
        """
        order = list(self._order_provider())
        if (
            self._anchor is None
            or self._anchor not in order
            or node_id not in order
        ):
            self.click(node_id)
            return
        i, j = order.index(self._anchor), order.index(node_id)
        if i > j:
            i, j = j, i
        self._set(order[i : j + 1])

    @QtCore.Slot()
    def select_all(self) -> None:
        """Select every visible map.

        The anchor is kept if it is visible, otherwise the first visible map becomes the
        anchor.
        """
        order = list(self._order_provider())
        if not order:
            return
        if self._anchor not in order:
            self._anchor = order[0]
        self._set(order)

    @QtCore.Slot()
    def clear(self) -> None:
        self._set(())

    def prune(self, live_ids: Iterable[int]) -> None:
        """Forget ids that no longer exist."""
        live = set(live_ids)
        if self._anchor is not None and self._anchor not in live:
            self._anchor = None
        self._set(self._selection & live)
