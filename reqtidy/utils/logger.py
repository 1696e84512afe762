"""
Diagnostic logging for reqtidy.

All modules log under the ``reqtidy`` namespace. Until
:func:`setup_logging` runs that namespace only holds a ``NullHandler``, so
importing reqtidy as a library prints nothing. Results meant for the user
are printed by :mod:`reqtidy.utils.console`, not logged.
"""

from __future__ import annotations

import os
import sys
import copy
import logging
import threading
from typing import IO, Dict, Optional

from reqtidy.constants import (
    LOG_DATE_FORMAT,
    LOG_DEFAULT_FORMAT,
    LOG_VERBOSE_FORMAT,
)

ROOT_LOGGER_NAME = "reqtidy"

_logging_configured: bool = False
_lock = threading.Lock()

# -v count -> level; anything above the last entry is DEBUG
_VERBOSITY_LEVELS = (logging.WARNING, logging.INFO)


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps the level name in an ANSI color on terminals.

    Color is decided per record: ``use_color`` must be set, ``NO_COLOR``
    and ``CI`` must be unset and ``stream`` (or stderr) must be a TTY.
    """

    COLORS: Dict[str, str] = {
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
        stream: Optional[IO[str]] = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color
        self.stream = stream

    def format(self, record: logging.LogRecord) -> str:
        if self.use_color and record.levelname in self.COLORS:
            if self._should_use_color(self.stream):
                # The same record may reach other handlers
                record = copy.copy(record)
                record.levelname = (
                    f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
                )
        return super().format(record)

    @staticmethod
    def _should_use_color(stream: Optional[IO[str]] = None) -> bool:
        if any(os.environ.get(var) for var in ("NO_COLOR", "CI")):
            return False
        isatty = getattr(stream or sys.stderr, "isatty", None)
        if isatty is None:
            return False
        try:
            return bool(isatty())
        except (OSError, ValueError):
            return False


def level_for_verbosity(verbose: int) -> int:
    """Translate the number of ``-v`` flags into a logging level.

    >>> level_for_verbosity(0) == logging.WARNING
    True
    >>> level_for_verbosity(3) == logging.DEBUG
    True
    """
    if verbose < len(_VERBOSITY_LEVELS):
        return _VERBOSITY_LEVELS[max(verbose, 0)]
    return logging.DEBUG


def _install(handler: logging.Handler, level: int, configured: bool) -> None:
    global _logging_configured

    with _lock:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(level)
        root.propagate = not configured
        _logging_configured = configured


def setup_logging(
    *,
    level: int = logging.INFO,
    verbose: Optional[bool] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """Send reqtidy diagnostics at ``level`` and above to ``stream``.

    Calling it again replaces the previous handler rather than adding one.

    Args:
        level: Minimum level to emit.
        verbose: Include timestamps and logger names. Defaults to on at
            ``DEBUG``.
        stream: Destination; ``sys.stderr`` when omitted.
    """
    if verbose is None:
        verbose = level <= logging.DEBUG

    target = stream or sys.stderr
    handler = logging.StreamHandler(target)
    handler.setLevel(level)
    handler.setFormatter(
        ColoredFormatter(
            LOG_VERBOSE_FORMAT if verbose else LOG_DEFAULT_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            use_color=not os.environ.get("NO_COLOR"),
            stream=target,
        )
    )
    _install(handler, level, configured=True)


def disable_logging() -> None:
    """Drop the reqtidy handler and go quiet again."""
    _install(logging.NullHandler(), logging.NOTSET, configured=False)


def is_logging_configured() -> bool:
    return _logging_configured


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return ``reqtidy.<name>``; ``name`` may already carry the prefix."""
    if not name or name == ROOT_LOGGER_NAME:
        qualified = ROOT_LOGGER_NAME
    elif name.startswith(ROOT_LOGGER_NAME + "."):
        qualified = name
    else:
        qualified = f"{ROOT_LOGGER_NAME}.{name}"

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(qualified)
