"""Logging helpers shared by every depot module."""

import logging
import os

_ROOT_LOGGER_NAME = "depot"
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(os.environ.get("DEPOT_LOG_LEVEL", "WARNING").upper())
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the package root.

    The root "depot" logger gets one stream handler the first time any module
    asks for a logger. Level comes from DEPOT_LOG_LEVEL (default WARNING).

    Args:
        name: Usually the calling module's __name__

    Returns:
        Logger instance
    """
    _configure_root()
    return logging.getLogger(name)
