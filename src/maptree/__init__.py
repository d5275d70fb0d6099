import typing
from importlib.metadata import version as _version

import lazy_loader as _lazy

# Lazy load submodules
__getattr__, __dir__, __all__ = _lazy.attach(
    __name__,
    submodules={"interactive", "io", "nodes", "reorder", "tree"},
)

try:
    __version__ = _version("maptree")
except Exception:
    __version__ = "0.0.0"


if typing.TYPE_CHECKING:
    from maptree import (  # noqa: F401
        interactive,
        io,
        nodes,
        reorder,
        tree,
    )
