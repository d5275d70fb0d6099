"""Background saving of committed map lists."""

from __future__ import annotations

__all__ = ["_StorePersister"]

import logging
import traceback
import typing

from qtpy import QtCore

if typing.TYPE_CHECKING:
    from collections.abc import Callable

    from maptree.nodes import NodeStore

logger = logging.getLogger(__name__)


class _StoreWriterSignals(QtCore.QObject):
    sigSaved = QtCore.Signal(object)
    sigFailed = QtCore.Signal(str)


class _StoreWriter(QtCore.QRunnable):
    """Hand one store to a persistence callable and report the outcome.

    - If the call returns normally, ``sigSaved`` is emitted with the store.
    - If the call raises, ``sigFailed`` is emitted with the formatted traceback.

    """

    def __init__(self, store: NodeStore, func: Callable[[NodeStore], typing.Any]):
        super().__init__()
        self.signals: _StoreWriterSignals = _StoreWriterSignals()
        self._store = store
        self._func = func

    def run(self) -> None:
        try:
            self._func(self._store)
        except Exception:
            logger.exception("Failed to save map list")
            self.signals.sigFailed.emit(traceback.format_exc())
        else:
            self.signals.sigSaved.emit(self._store)


class _StorePersister(QtCore.QObject):
    """Submit stores to a persistence callable without waiting for the result.

    Saves run on a private single-thread pool, so they reach the callable in the order
    they were submitted.

    Signals
    -------
    sigSaved(object)
        Emitted with the store after a successful save.
    sigFailed(str)
        Emitted with the formatted exception after a failed save.

    """

    sigSaved = QtCore.Signal(object)  #: :meta private:
    sigFailed = QtCore.Signal(str)  #: :meta private:

    def __init__(
        self,
        func: Callable[[NodeStore], typing.Any],
        parent: QtCore.QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._func = func
        self._threadpool = QtCore.QThreadPool(self)
        self._threadpool.setMaxThreadCount(1)

    def submit(self, store: NodeStore) -> None:
        writer = _StoreWriter(store, self._func)
        writer.signals.sigSaved.connect(self.sigSaved)
        writer.signals.sigFailed.connect(self.sigFailed)
        self._threadpool.start(writer)

    def wait(self, msecs: int = -1) -> bool:
        """Block until all submitted saves have finished."""
        return self._threadpool.waitForDone(msecs)
