"""
Logging utilities for deptracker.

This module centralizes logger configuration, formatting, and retrieval
for the deptracker package. It is designed to be safe for libraries and
CLI usage, avoiding duplicate handlers and supporting optional colorized
output.
"""

from __future__ import annotations

import os
import sys
import logging
import threading
from typing import IO, Mapping, Optional

from deptracker.constants import (
    LOG_DATE_FORMAT,
    LOG_DEFAULT_FORMAT,
    LOG_VERBOSE_FORMAT,
)

_lock = threading.Lock()


class ColoredFormatter(logging.Formatter):
    """Logging formatter with optional ANSI color support."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str,
        *,
        datefmt: Optional[str] = None,
        use_color: bool = True,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if self.use_color and self._should_use_color():
            color = self.COLORS.get(levelname)
            if color:
                record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers may format the same record
            record.levelname = levelname

    @staticmethod
    def _should_use_color() -> bool:
        """Determine whether ANSI colors should be emitted."""
        if os.environ.get("NO_COLOR"):
            return False
        if os.environ.get("CI"):
            return False
        try:
            return sys.stderr.isatty()
        except (AttributeError, OSError):
            return False


def setup_logging(
    *,
    level: int = logging.INFO,
    verbose: bool = False,
    stream: Optional[IO[str]] = None,
) -> None:
    """Configure logging for deptracker.

    This function is safe to call multiple times; configuration is
    protected by a process-wide lock.

    Args:
        level: Logging level (e.g., ``logging.INFO``, ``logging.DEBUG``).
        verbose: Enable verbose formatting with timestamps.
        stream: Output stream; defaults to ``sys.stderr``.
    """
    with _lock:
        root_logger = logging.getLogger("deptracker")
        root_logger.handlers.clear()
        root_logger.setLevel(level)

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setLevel(level)

        fmt = LOG_VERBOSE_FORMAT if verbose else LOG_DEFAULT_FORMAT
        formatter = ColoredFormatter(
            fmt,
            datefmt=LOG_DATE_FORMAT,
            use_color=not os.environ.get("NO_COLOR"),
        )
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.propagate = False


def resolve_log_level(
    verbose: int = 0,
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    """Map CLI verbosity to a logging level.

    ``-v`` selects INFO and ``-vv`` selects DEBUG. A CI runner with step
    debugging enabled (``RUNNER_DEBUG=1``) always gets DEBUG.
    """
    env = os.environ if environ is None else environ
    if env.get("RUNNER_DEBUG") == "1" or verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger within the deptracker namespace.

    Args:
        name: Logger name. Use ``__name__`` for module-relative naming.

    Returns:
        A logger instance under the ``deptracker`` hierarchy.
    """
    if not name or name == "deptracker":
        logger = logging.getLogger("deptracker")
    elif name.startswith("deptracker."):
        logger = logging.getLogger(name)
    else:
        logger = logging.getLogger(f"deptracker.{name}")

    # Library-safe when logging is not configured
    if not logger.handlers and (not logger.parent or not logger.parent.handlers):
        logger.addHandler(logging.NullHandler())

    return logger

