"""Logging setup for the librarian CLI.

Command results go to stdout; every log record goes to stderr so output stays
scriptable.
"""

from __future__ import annotations

import logging
import sys

_LOGGER_NAME = "librarian"
_FORMAT = "[librarian] %(levelname)s %(message)s"
_VERBOSE_FORMAT = "[librarian] %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``librarian`` hierarchy (``librarian.<name>``)."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(*, verbose: bool = False) -> logging.Logger:
    """Install a single stderr handler; ``verbose`` adds DEBUG records and logger names."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # One handler per process, even when main() runs repeatedly.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_VERBOSE_FORMAT if verbose else _FORMAT))
    logger.addHandler(handler)
    return logger


__all__ = ["configure_logging", "get_logger"]
