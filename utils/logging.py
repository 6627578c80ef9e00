"""Centralized logging setup for the project."""
from __future__ import annotations

import logging
import sys
from typing import List, Optional, Union

from config.settings import settings

_LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)

logger = logging.getLogger("richdiff")

# Handlers installed by configure_logging, replaced on the next call
_installed: List[logging.Handler] = []


def configure_logging(level: Union[int, str, None] = None, logfile: Optional[str] = None) -> logging.Logger:
    """Attach console (and optional file) handlers to the richdiff logger.

    When ``level`` is omitted the ``log_level`` setting is used. Calling it
    again replaces the handlers from the previous call.
    """
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        level = level.upper()

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if logfile:
        handlers.append(logging.FileHandler(logfile, encoding="utf-8"))

    while _installed:
        handler = _installed.pop()
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        _installed.append(handler)
    logger.setLevel(level)
    return logger
