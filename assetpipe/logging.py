"""Logging for assetpipe builds.

Console records go to stderr so that the build summary printed on stdout
stays clean. Transforms run on worker threads, so the file sink records
the thread name next to each message.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_LOGGER_NAME = "assetpipe"
CONSOLE_FORMAT = "[assetpipe] %(levelname)s %(message)s"
VERBOSE_CONSOLE_FORMAT = "[assetpipe] %(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``assetpipe.<name>``, or the package logger itself."""
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install the build's stderr handler and, when given, a file handler.

    Handlers from a previous call are closed first, so a single process may
    run several builds without duplicated records or leaked file handles.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(VERBOSE_CONSOLE_FORMAT if verbose else CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)
        # The file sink always keeps debug detail.
        logger.setLevel(logging.DEBUG)

    return logger


__all__ = ["configure_logging", "get_logger"]
