"""Log file of the ``maptree`` application.

Saves of ``MapInfos.json`` are logged at INFO, failed saves and inconsistent map lists
at WARNING or above, and rejected moves at DEBUG. Records from every ``maptree`` module
go to ``maptree.log`` in the per-user application data directory. The file is rotated
at 2 MB and three old files are kept.
"""

from __future__ import annotations

__all__ = ["configure_logging", "get_log_file_path"]

import logging
import pathlib
from logging.handlers import RotatingFileHandler

from qtpy import QtCore

_HANDLER_NAME = "maptree-file"
_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
_MAX_BYTES = 2_000_000
_BACKUP_COUNT = 3


def _log_directory() -> pathlib.Path:
    location = QtCore.QStandardPaths.writableLocation(
        QtCore.QStandardPaths.StandardLocation.AppDataLocation
    )
    if not location:  # pragma: no cover
        location = str(pathlib.Path.home() / ".maptree" / "logs")

    path = pathlib.Path(location)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_log_file_path() -> pathlib.Path:
    """Return the path of ``maptree.log``."""
    return _log_directory() / "maptree.log"


def _installed_handler(root_logger: logging.Logger) -> RotatingFileHandler | None:
    for handler in root_logger.handlers:
        if handler.get_name() == _HANDLER_NAME and isinstance(
            handler, RotatingFileHandler
        ):
            return handler
    return None


def configure_logging(level: int = logging.INFO) -> RotatingFileHandler:
    """Send log records to the rotating ``maptree.log`` file.

    Python warnings are captured as well. Calling this more than once returns the
    handler installed by the first call unchanged.

    Parameters
    ----------
    level
        Lowest level written to the file. The root logger is lowered to this level if
        it is stricter.
    """
    root_logger = logging.getLogger()
    handler = _installed_handler(root_logger)
    if handler is not None:
        return handler

    log_path = get_log_file_path()
    handler = RotatingFileHandler(
        log_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
    )
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root_logger.addHandler(handler)
    if root_logger.level == logging.NOTSET or root_logger.level > level:
        root_logger.setLevel(level)
    root_logger.info("Writing map outline logs to %s", log_path)

    logging.captureWarnings(True)
    return handler
