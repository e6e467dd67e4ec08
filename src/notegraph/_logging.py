"""stderr logging for the notegraph package, levelled by NOTEGRAPH_LOG_LEVEL."""

import logging
import os
import sys

PACKAGE_LOGGER = "notegraph"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _level_from_env() -> int:
    name = os.environ.get("NOTEGRAPH_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    # getLevelName() returns "Level X" for names it does not know
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Attach one stderr handler to the package logger; later calls do nothing."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    if logger.handlers:
        return

    level = _level_from_env()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
