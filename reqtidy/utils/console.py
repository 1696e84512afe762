"""
User-facing terminal output for reqtidy, rendered with Rich.

Everything a user is meant to read (removal lines, summaries, the
decision table, fatal errors) is printed here on stdout. Diagnostics go
through :mod:`reqtidy.utils.logger` on stderr instead, so ``--format json``
output stays machine-readable.

The console is created lazily and cached; call :func:`reconfigure_console`
after changing ``NO_COLOR`` so the next print picks it up.
"""

from __future__ import annotations

import os
import sys
import threading
from typing import Any, Dict, List, Mapping, Optional, Sequence

from rich.table import Table
from rich.theme import Theme
from rich.markup import escape
from rich.console import Console

REQTIDY_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "dim": "dim",
        "removed": "red",
        "kept": "green",
    }
)

_console: Optional[Console] = None
_console_lock = threading.Lock()


def _should_use_color() -> bool:
    """Color only on an interactive stdout, and never under NO_COLOR or CI."""
    if os.environ.get("NO_COLOR") or os.environ.get("CI"):
        return False
    try:
        return sys.stdout.isatty()
    except (AttributeError, OSError, ValueError):
        return False


def _get_console() -> Console:
    global _console

    with _console_lock:
        if _console is None:
            _console = Console(
                theme=REQTIDY_THEME,
                no_color=not _should_use_color(),
                highlight=False,
            )
        return _console


def reconfigure_console() -> None:
    """Drop the cached console so the next print re-detects color support."""
    global _console
    with _console_lock:
        _console = None


def get_raw_console() -> Console:
    """Return the shared Rich console (e.g. for blank lines or custom renderables)."""
    return _get_console()


def _status(prefix: str, message: str, style: str) -> None:
    # Messages may contain package extras like "pydantic[email]"
    _get_console().print(escape(f"{prefix} {message}"), style=style)


def print_success(message: str, *, prefix: str = "[OK]") -> None:
    _status(prefix, message, "success")


def print_error(message: str, *, prefix: str = "[ERROR]") -> None:
    _status(prefix, message, "error")


def print_warning(message: str, *, prefix: str = "[WARNING]") -> None:
    _status(prefix, message, "warning")


def print_removal(name: str, reason: str = "Not imported") -> None:
    """Print the diagnostic for one removed manifest entry.

    Example::

        Removing: six (Not imported)
    """
    _get_console().print(
        f"Removing: [removed]{escape(name)}[/removed] ({escape(reason)})"
    )


def print_table(
    data: Sequence[Mapping[str, Any]],
    *,
    headers: Optional[List[str]] = None,
    title: Optional[str] = None,
    column_styles: Optional[Dict[str, Dict[str, Any]]] = None,
) -> None:
    """Render rows of dictionaries as a table; nothing is printed for no rows.

    Args:
        data: Row mappings; missing keys render as empty cells.
        headers: Column order. Defaults to the keys of the first row.
        title: Table title.
        column_styles: Per-column ``style``, ``justify``, ``no_wrap`` and
            ``overflow`` settings, keyed by header.
    """
    if not data:
        return

    columns = headers if headers is not None else list(data[0])
    styles = column_styles or {}

    table = Table(title=title, header_style="bold")
    for header in columns:
        options = styles.get(header, {})
        table.add_column(
            header,
            style=options.get("style"),
            justify=options.get("justify", "default"),
            no_wrap=options.get("no_wrap", False),
            overflow=options.get("overflow", "fold"),
        )

    for row in data:
        table.add_row(*[str(row.get(header, "")) for header in columns])

    _get_console().print(table)
