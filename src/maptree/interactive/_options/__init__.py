"""User customization options for the outline sidebar.

To implement new options or modify existing ones, modify the pydantic schema in
`schema.py`. The options UI is automatically generated from the schema.
"""

__all__ = ["AppOptions", "OptionDialog", "OptionManager", "options"]

from maptree.interactive._options.core import OptionManager, options
from maptree.interactive._options.schema import AppOptions
from maptree.interactive._options.ui import OptionDialog
