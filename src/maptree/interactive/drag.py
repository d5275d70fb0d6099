"""Drag-and-drop gesture state for the outline sidebar."""

from __future__ import annotations

__all__ = ["DragController", "Hover", "MoveRequest", "hover_position"]

import dataclasses
import logging
import typing

from qtpy import QtCore

from maptree.reorder import DropPosition

if typing.TYPE_CHECKING:
    from collections.abc import Collection

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Hover:
    target_id: int
    position: DropPosition


@dataclasses.dataclass(frozen=True)
class MoveRequest:
    node_ids: tuple[int, ...]
    target_id: int
    position: DropPosition


def hover_position(
    fraction: float, before: float = 0.28, after: float = 0.72
) -> DropPosition:
    """Map the pointer height within a row to a drop position.

    Parameters
    ----------
    fraction
        Vertical pointer position inside the row; 0 is the top edge and 1 the bottom.
    before
        Positions strictly above this fraction drop before the row.
    after
        Positions strictly below this fraction drop after the row.
    """
    if fraction < before:
        return DropPosition.BEFORE
    if fraction > after:
        return DropPosition.AFTER
    return DropPosition.INTO


class DragController(QtCore.QObject):
    """Track the maps being dragged and where they would land.

    Signals
    -------
    sigHoverChanged(object)
        Emitted with the new :class:`Hover`, or `None` when the hover is cleared.
    sigDropRequested(object)
        Emitted with a :class:`MoveRequest` when a drop is accepted.
    sigAborted()
        Emitted when a drag ends without a drop.

    """

    sigHoverChanged = QtCore.Signal(object)  #: :meta private:
    sigDropRequested = QtCore.Signal(object)  #: :meta private:
    sigAborted = QtCore.Signal()  #: :meta private:

    def __init__(
        self,
        before: float = 0.28,
        after: float = 0.72,
        parent: QtCore.QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.before = before
        self.after = after
        self._drag_set: frozenset[int] = frozenset()
        self._hover: Hover | None = None

    @property
    def drag_set(self) -> frozenset[int]:
        return self._drag_set

    @property
    def hover_state(self) -> Hover | None:
        return self._hover

    @property
    def active(self) -> bool:
        return bool(self._drag_set)

    def start(self, node_id: int, selection: Collection[int] = ()) -> None:
        """Begin dragging ``node_id``.

        The whole selection is dragged if ``node_id`` is part of a multi-selection;
        otherwise only ``node_id`` is.
        """
        if node_id in selection and len(selection) > 1:
            self._drag_set = frozenset(selection)
        else:
            self._drag_set = frozenset({node_id})
        self._set_hover(None)
        logger.debug("Drag started with %s", sorted(self._drag_set))

    def hover(self, target_id: int, fraction: float) -> Hover | None:
        """Update the drop candidate from the pointer position over a row.

        Rows that are being dragged are ignored.
        """
        if not self.active or target_id in self._drag_set:
            return self._hover
        self._set_hover(
            Hover(target_id, hover_position(fraction, self.before, self.after))
        )
        return self._hover

    def drop(self, target_id: int | None) -> MoveRequest | None:
        """Finish the gesture over ``target_id``.

        The drop is only accepted when the latest hover refers to ``target_id``. In
        every other case the gesture is aborted.
        """
        hover = self._hover
        if not self.active or hover is None or hover.target_id != target_id:
            self.abort()
            return None

        request = MoveRequest(
            tuple(sorted(self._drag_set)), hover.target_id, hover.position
        )
        self._reset()
        logger.debug("Drop requested: %s", request)
        self.sigDropRequested.emit(request)
        return request

    @QtCore.Slot()
    def abort(self) -> None:
        """Discard the current gesture without moving anything."""
        if not self.active and self._hover is None:
            return
        self._reset()
        logger.debug("Drag aborted")
        self.sigAborted.emit()

    def _reset(self) -> None:
        self._drag_set = frozenset()
        self._set_hover(None)

    def _set_hover(self, hover: Hover | None) -> None:
        if hover != self._hover:
            self._hover = hover
            self.sigHoverChanged.emit(hover)
