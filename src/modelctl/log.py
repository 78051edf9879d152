"""Logging setup for the command line.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed once per invocation by :func:`configure_logging`. Log records go
to stderr so they never mix with command output on stdout.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER = "modelctl"
TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class JsonLineFormatter(logging.Formatter):
    """Formatter that emits one JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            event["exception"] = self.formatException(record.exc_info)
        return json.dumps(event, sort_keys=True)


def level_for(verbosity: int, configured: str | None = None) -> int:
    """Pick the log level from ``-v`` count, falling back to a configured name.

    No flag and no configured level means warnings only.
    """
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    if configured:
        return _LEVELS.get(configured.lower(), logging.WARNING)
    return logging.WARNING


def configure_logging(
    verbosity: int = 0,
    level: str | None = None,
    fmt: str = "text",
) -> logging.Logger:
    """Install a single stderr handler on the ``modelctl`` logger.

    Args:
        verbosity: Number of ``-v`` flags.
        level: Level name from ``MODELCTL_LOG_LEVEL``, used without ``-v``.
        fmt: ``text`` or ``json``.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level_for(verbosity, level))
    logger.propagate = False
    return logger
