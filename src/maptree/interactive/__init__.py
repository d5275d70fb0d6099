"""Qt sidebar for editing the map outline.

.. currentmodule:: maptree.interactive

The widgets in this module translate pointer and keyboard input into calls on the pure
outline engine in :mod:`maptree.reorder`. Selection and drag state live in small
controller objects that can be driven without a widget, which is also how the tests use
them.

.. rubric:: Modules

.. autosummary::
   :toctree: generated

   app
   drag
   outline
   selection

"""

try:
    import qtpy
except ImportError as e:
    raise ImportError(
        "The map outline sidebar needs a Qt6 binding. Install it with "
        "'pip install maptree[pyqt6]' or 'pip install maptree[pyside6]'."
    ) from e
else:
    if qtpy.QT5:
        raise ImportError(
            f"maptree requires Qt6, but qtpy selected {qtpy.API_NAME}. Install PyQt6 "
            "or PySide6, or set QT_API to one of them."
        )

import lazy_loader as _lazy

__getattr__, __dir__, __all__ = _lazy.attach_stub(__name__, __file__)
