"""Settings dialog generated from the option schema."""

from __future__ import annotations

__all__ = ["OptionDialog"]

import pyqtgraph.parametertree
from pydantic import ValidationError
from qtpy import QtCore, QtWidgets

from maptree.interactive._options.core import options
from maptree.interactive._options.schema import AppOptions
from maptree.interactive._options.tree import make_parameter, parameter_to_options

_Button = QtWidgets.QDialogButtonBox.StandardButton
_Answer = QtWidgets.QMessageBox.StandardButton


class OptionDialog(QtWidgets.QDialog):
    """Edit the stored options.

    Changes are only written by OK or Apply. Values that fail validation, such as a
    before zone that ends below the after zone, disable both buttons until fixed.
    """

    def __init__(self, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(parent)
        self.parameter: pyqtgraph.parametertree.Parameter | None = None
        self.tree = pyqtgraph.parametertree.ParameterTree(showHeader=False)

        buttons = QtWidgets.QDialogButtonBox(
            _Button.Ok | _Button.Cancel | _Button.Apply | _Button.RestoreDefaults
        )
        self.btn_ok = buttons.button(_Button.Ok)
        self.btn_apply = buttons.button(_Button.Apply)
        self.btn_restore = buttons.button(_Button.RestoreDefaults)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        self.btn_apply.clicked.connect(self.apply)
        self.btn_restore.clicked.connect(self.restore)

        layout = QtWidgets.QVBoxLayout(self)
        layout.addWidget(self.tree)
        layout.addWidget(buttons)
        self.setMinimumSize(420, 260)

        self._show_options(options.model)

    @property
    def current_options(self) -> AppOptions:
        """Options as currently shown.

        Raises `pydantic.ValidationError` if the shown values are inconsistent.
        """
        if self.parameter is None:  # pragma: no cover
            return AppOptions()
        return parameter_to_options(self.parameter)

    def _shown_options(self) -> AppOptions | None:
        try:
            return self.current_options
        except ValidationError:
            return None

    @property
    def valid(self) -> bool:
        return self._shown_options() is not None

    @property
    def modified(self) -> bool:
        """Whether the shown options differ from the stored ones."""
        shown = self._shown_options()
        return shown is None or shown != options.model

    @property
    def is_default(self) -> bool:
        return self._shown_options() == AppOptions()

    def _show_options(self, opts: AppOptions) -> None:
        if self.parameter is not None:
            self.parameter.sigTreeStateChanged.disconnect(self._refresh_buttons)
        self.parameter = make_parameter(opts)
        self.parameter.sigTreeStateChanged.connect(self._refresh_buttons)
        self.tree.setParameters(self.parameter, showTop=False)
        self._refresh_buttons()

    @QtCore.Slot()
    def _refresh_buttons(self) -> None:
        valid = self.valid
        modified = self.modified
        self.btn_ok.setEnabled(valid)
        self.btn_apply.setEnabled(valid and modified)
        self.btn_restore.setDisabled(self.is_default)
        if not valid:
            self.setWindowTitle("Settings (Invalid)")
        elif modified:
            self.setWindowTitle("Settings (Unsaved Changes)")
        else:
            self.setWindowTitle("Settings")

    @QtCore.Slot()
    def apply(self) -> None:
        """Store the shown options. Invalid values are not stored."""
        shown = self._shown_options()
        if shown is None:
            return
        options.model = shown
        self._show_options(shown)

    @QtCore.Slot()
    def restore(self) -> None:
        """Show the default options without storing them."""
        self._show_options(AppOptions())

    def accept(self) -> None:
        self.apply()
        super().accept()

    def reject(self) -> None:
        """Close the dialog, offering to store unsaved valid changes first."""
        if self.valid and self.modified:
            match QtWidgets.QMessageBox.question(
                self,
                "Unsaved Changes",
                "Save the changed settings before closing?",
                _Answer.Ok | _Answer.Discard | _Answer.Cancel,
            ):
                case _Answer.Cancel:
                    return
                case _Answer.Ok:
                    self.apply()
        super().reject()
