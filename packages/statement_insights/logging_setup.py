"""Logging configuration for the ``statement_insights`` package.

Two helpers:

- ``configure_logging(...)`` installs one ``StreamHandler`` on the package
  logger (``"statement_insights"``). Entrypoints (the CLI, a host web app)
  call it once at startup; repeated calls are no-ops unless ``force=True``.
- ``get_logger(name)`` returns a child logger and makes sure the package logger
  carries a ``NullHandler`` until an entrypoint configures it.

Pipeline modules only ever call ``get_logger("statement_insights.<module>")``;
they never attach handlers themselves.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "statement_insights"
LEVEL_ENV_VAR = "STATEMENT_INSIGHTS_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None) -> int:
    """Map an int, a level name or a numeric string to a logging level.

    ``None`` consults ``STATEMENT_INSIGHTS_LOG_LEVEL`` and defaults to INFO.
    Unknown names also fall back to INFO.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV_VAR)
        if not level:
            return logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
    force: bool = False,
) -> logging.Logger:
    """Attach the package handler; returns the package logger."""

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None and not force:
        return logger

    for h in list(logger.handlers):
        # Drop the library-mode NullHandler and any handler from an earlier run.
        if isinstance(h, logging.NullHandler) or h is _handler:
            logger.removeHandler(h)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    # Host applications may also configure the root logger; avoid double output.
    logger.propagate = False
    _handler = handler
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` with library-safe defaults."""

    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]
