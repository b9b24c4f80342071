"""Logging configuration for the ``expense_tracker`` package.

Two helpers make up the public surface:

- ``configure_logging(...)``: attach one ``StreamHandler`` to the package
  logger (``"expense_tracker"``). Entrypoints call it once at startup; the CLI
  does so from its root callback.
- ``get_logger(name)``: return a child logger, making sure the package logger
  carries a ``NullHandler`` while nothing has been configured so library use
  stays silent.

Modules never attach handlers themselves; they call
``get_logger(__name__)`` and leave output decisions to the host application.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "expense_tracker"
_LEVEL_ENV = "EXPENSE_TRACKER_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


class _StderrHandler(logging.StreamHandler):
    """Stream handler that writes to whatever ``sys.stderr`` is at emit time."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self) -> IO[str]:
        return sys.stderr

    @stream.setter
    def stream(self, _value: IO[str]) -> None:
        pass


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
        return logging.INFO
    env_val = os.getenv(_LEVEL_ENV)
    if env_val:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
    force: bool = False,
) -> logging.Logger:
    """Configure the package logger and return it.

    Parameters
    ----------
    level:
        ``int`` level or level name (``"DEBUG"``). ``None`` reads
        ``EXPENSE_TRACKER_LOG_LEVEL`` and falls back to ``INFO``.
    fmt:
        Format string for the handler; defaults to
        ``"%(asctime)s %(name)s %(levelname)s %(message)s"``.
    stream:
        Destination stream. When omitted, records go to the current
        ``sys.stderr``, looked up on every emit.
    force:
        Replace a handler installed by an earlier call instead of keeping it.
    """

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is not None and not force:
        return logger

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler) or h is _handler:
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream) if stream is not None else _StderrHandler()
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Root handlers would print every record a second time.
    logger.propagate = False

    _handler = handler
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` with library-safe defaults."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
