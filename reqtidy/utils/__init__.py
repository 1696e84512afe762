"""
Utility helpers for reqtidy.

Console output (Rich), diagnostic logging and safe file access.
"""

from __future__ import annotations

from reqtidy.utils.logger import (
    disable_logging,
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)

from reqtidy.utils.filesystem import (
    create_timestamped_backup,
    iter_source_files,
    safe_read_file,
    safe_write_file,
    validate_path,
)

from reqtidy.utils.console import (
    get_raw_console,
    print_error,
    print_removal,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)

__all__ = [
    # Console
    "print_error",
    "print_table",
    "print_removal",
    "print_success",
    "print_warning",
    "get_raw_console",
    "reconfigure_console",
    # Logging
    "get_logger",
    "setup_logging",
    "disable_logging",
    "is_logging_configured",
    "level_for_verbosity",
    # Filesystem
    "safe_read_file",
    "safe_write_file",
    "create_timestamped_backup",
    "iter_source_files",
    "validate_path",
]
