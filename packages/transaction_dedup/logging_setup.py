"""Logging for the ``transaction_dedup`` package.

Library modules call ``get_logger("transaction_dedup.<module>")`` and never
attach handlers of their own. The CLI calls :func:`configure_logging` once at
startup; the level comes from ``TRANSACTION_DEDUP_LOG_LEVEL`` (default INFO).
"""

from __future__ import annotations

import logging
import os
import sys

_PKG_LOGGER_NAME = "transaction_dedup"
_LEVEL_ENV_VAR = "TRANSACTION_DEDUP_LOG_LEVEL"
_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


class _StderrHandler(logging.StreamHandler):
    """Stream handler bound to whatever ``sys.stderr`` is at emit time."""

    def __init__(self) -> None:
        super().__init__()

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, _value) -> None:
        pass


def _level_from_env() -> int:
    name = (os.getenv(_LEVEL_ENV_VAR) or "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Send package log records to stderr. Later calls are no-ops."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = _StderrHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(_level_from_env())
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return the logger ``name``; the package stays silent until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
