import pydantic
import pytest
from qtpy import QtWidgets

from maptree.interactive._options import OptionDialog, options
from maptree.interactive._options.schema import AppOptions, DragOptions


@pytest.fixture
def dialog(qtbot, restore_options):
    dlg = OptionDialog()
    qtbot.addWidget(dlg)
    return dlg


def _param(dialog: OptionDialog, group: str, name: str):
    return dialog.parameter.child(group, name)


def test_dialog_initial_settings(dialog: OptionDialog):
    # Should match current OptionManager settings
    assert dialog.current_options.model_dump() == options.model.model_dump()
    assert dialog.is_default
    assert not dialog.btn_restore.isEnabled()


def test_dialog_modified_property(dialog: OptionDialog):
    assert not dialog.modified
    _param(dialog, "outline", "show_ids").setValue(True)
    assert dialog.modified
    assert dialog.btn_apply.isEnabled()
    assert dialog.windowTitle() == "Settings (Unsaved Changes)"


def test_apply_saves_settings(dialog: OptionDialog):
    _param(dialog, "drag", "before_fraction").setValue(0.2)
    _param(dialog, "io", "indent").setValue(2)
    dialog.apply()

    assert options.model.drag.before_fraction == pytest.approx(0.2)
    assert options["io/indent"] == 2
    assert not dialog.modified
    assert not dialog.btn_apply.isEnabled()


def test_invalid_drag_zones(dialog: OptionDialog):
    _param(dialog, "drag", "before_fraction").setValue(0.9)
    assert not dialog.valid
    assert dialog.windowTitle() == "Settings (Invalid)"
    assert not dialog.btn_ok.isEnabled()
    assert not dialog.btn_apply.isEnabled()

    # Applying invalid values is a no-op
    dialog.apply()
    assert options.model.drag == DragOptions()

    _param(dialog, "drag", "before_fraction").setValue(0.3)
    assert dialog.valid
    assert dialog.btn_ok.isEnabled()


def test_restore_defaults(dialog: OptionDialog):
    _param(dialog, "outline", "show_ids").setValue(True)
    dialog.apply()
    dialog.restore()
    assert dialog.current_options.model_dump() == AppOptions().model_dump()
    dialog.accept()
    assert options.model == AppOptions()


@pytest.mark.parametrize(
    ("answer", "saved", "closed"),
    [
        (QtWidgets.QMessageBox.StandardButton.Cancel, False, False),
        (QtWidgets.QMessageBox.StandardButton.Discard, False, True),
        (QtWidgets.QMessageBox.StandardButton.Ok, True, True),
    ],
)
def test_reject_with_modifications(
    dialog: OptionDialog, monkeypatch, answer, saved, closed
):
    monkeypatch.setattr(
        QtWidgets.QMessageBox, "question", lambda *args, **kwargs: answer
    )
    dialog.show()
    _param(dialog, "outline", "show_ids").setValue(True)
    dialog.reject()

    assert options["outline/show_ids"] is saved
    assert dialog.isVisible() is not closed


def test_options_get_set(restore_options):
    assert options["drag/after_fraction"] == AppOptions().drag.after_fraction
    options["drag/after_fraction"] = 0.8
    assert options["drag/after_fraction"] == pytest.approx(0.8)
    assert options["drag/missing"] is None
    assert options["drag"] is None


def test_options_set_validates(restore_options):
    with pytest.raises(KeyError):
        options["drag/missing"] = 1
    with pytest.raises(pydantic.ValidationError):
        options["drag/before_fraction"] = 0.9
    assert options.model == AppOptions()


def test_invalid_stored_options_fall_back(restore_options, caplog):
    qsettings = options.qsettings
    qsettings.setValue("drag/before_fraction", 0.95)
    qsettings.sync()
    assert options.model == AppOptions()
    assert "invalid" in caplog.text
