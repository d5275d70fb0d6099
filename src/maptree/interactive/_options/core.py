"""Persistent storage of the outline options.

Options live in an INI file managed by `QtCore.QSettings`, one key per leaf option using
the same ``"group/field"`` path that `OptionManager` accepts, for instance
``drag/before_fraction``. The module-level instance `options` is shared by the whole
application.
"""

from __future__ import annotations

__all__ = ["OptionManager", "options", "read_settings", "write_settings"]

import logging
import threading
import typing

from pydantic import ValidationError
from qtpy import QtCore

from maptree.interactive._options.schema import AppOptions, nest_paths, option_paths

logger = logging.getLogger(__name__)


def read_settings(qsettings: QtCore.QSettings) -> AppOptions:
    """Read options from ``qsettings``.

    Missing keys take their default value. If the stored values do not validate as a
    whole, for instance after the INI file was edited by hand, the defaults are
    returned instead.
    """
    flat = {
        path: qsettings.value(path, default)
        for path, default in option_paths(AppOptions())
    }
    try:
        return AppOptions.model_validate(nest_paths(flat))
    except ValidationError:
        logger.warning("Stored options in %s are invalid", qsettings.fileName())
        return AppOptions()


def write_settings(opts: AppOptions, qsettings: QtCore.QSettings) -> None:
    for path, value in option_paths(opts):
        qsettings.setValue(path, value)


class OptionManager:
    """Typed access to the stored options.

    Examples
    --------
    >>> options["drag/before_fraction"]
    0.28
    >>> options["outline/show_ids"] = True

    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @property
    def qsettings(self) -> QtCore.QSettings:
        return QtCore.QSettings(
            QtCore.QSettings.Format.IniFormat,
            QtCore.QSettings.Scope.UserScope,
            "maptree",
            "outline",
        )

    @property
    def model(self) -> AppOptions:
        with self._lock:
            return read_settings(self.qsettings)

    @model.setter
    def model(self, opts: AppOptions) -> None:
        with self._lock:
            qsettings = self.qsettings
            write_settings(opts, qsettings)
            qsettings.sync()

    def restore(self) -> None:
        """Reset every option to its default value."""
        with self._lock:
            qsettings = self.qsettings
            qsettings.clear()
            write_settings(AppOptions(), qsettings)
            qsettings.sync()

    def get(self, name: str) -> typing.Any:
        """Value of the option at ``name``, or `None` if there is no such option."""
        return dict(option_paths(self.model)).get(name)

    def set(self, name: str, value: typing.Any) -> None:
        """Store a single option.

        Raises
        ------
        KeyError
            If ``name`` is not an option path.
        pydantic.ValidationError
            If the new value is rejected by the schema. Nothing is stored in that case.
        """
        with self._lock:
            flat = dict(option_paths(self.model))
            if name not in flat:
                raise KeyError(name)
            flat[name] = value
            self.model = AppOptions.model_validate(nest_paths(flat))

    def __getitem__(self, name: str) -> typing.Any:
        return self.get(name)

    def __setitem__(self, name: str, value: typing.Any) -> None:
        self.set(name, value)


options = OptionManager()
