"""
Centralized constants for reqtidy.

This module defines immutable configuration values used across reqtidy,
including manifest grammar, source discovery defaults, metadata-resolver
settings, and logging formats. All values are intended to be treated as
read-only and passed explicitly into the components that need them.
"""

import re
from typing import Final, FrozenSet, Pattern, Tuple

# ---------------------------------------------------------------------------
# Manifest defaults
# ---------------------------------------------------------------------------

#: Manifest file name looked up inside the project directory.
DEFAULT_MANIFEST_NAME: Final[str] = "requirements.txt"

#: Characters that terminate a package name on a manifest line
#: (comparators, markers, extras, direct references, comments, whitespace).
MANIFEST_NAME_DELIMITERS: Final[Pattern[str]] = re.compile(r"[<>=!~;\[@#\s]")

#: Valid project name (PEP 508 identifier).
PROJECT_NAME_PATTERN: Final[Pattern[str]] = re.compile(
    r"^([A-Z0-9]|[A-Z0-9][A-Z0-9._-]*[A-Z0-9])$", re.IGNORECASE
)

#: Leading name token of a requirement specifier, used when ``packaging``
#: rejects a specifier outright.
REQUIREMENT_NAME_PATTERN: Final[Pattern[str]] = re.compile(r"^\s*([A-Za-z0-9._-]+)")

#: Packages kept regardless of import analysis (development tooling and
#: servers that are run rather than imported).
DEFAULT_ALLOWLIST: Final[FrozenSet[str]] = frozenset(
    {
        "pytest",
        "black",
        "flake8",
        "mypy",
        "pylint",
        "ipython",
        "gunicorn",
        "uvicorn",
        "wheel",
        "setuptools",
        "pip",
        "tox",
    }
)

# ---------------------------------------------------------------------------
# Source discovery
# ---------------------------------------------------------------------------

#: Suffix of source files scanned for imports.
SOURCE_SUFFIX: Final[str] = ".py"

#: Directory names never descended into while scanning sources.
DEFAULT_EXCLUDE_DIRS: Final[FrozenSet[str]] = frozenset(
    {
        ".venv",
        "venv",
        ".git",
        ".hg",
        ".tox",
        ".nox",
        ".mypy_cache",
        ".pytest_cache",
        "__pycache__",
        "node_modules",
        "site-packages",
    }
)

#: Relative interpreter locations probed inside the project directory.
VENV_INTERPRETER_CANDIDATES: Final[Tuple[str, ...]] = (
    ".venv/bin/python",
    ".venv/Scripts/python.exe",
    "venv/bin/python",
    "venv/Scripts/python.exe",
)

# ---------------------------------------------------------------------------
# Metadata resolution
# ---------------------------------------------------------------------------

#: Seconds to wait for the metadata interpreter before giving up.
DEFAULT_METADATA_TIMEOUT: Final[float] = 60.0

#: First path segments in a distribution RECORD that are never importable.
METADATA_DIR_SUFFIXES: Final[Tuple[str, ...]] = (
    ".dist-info",
    ".egg-info",
    ".data",
)

# ---------------------------------------------------------------------------
# Configuration defaults
# ---------------------------------------------------------------------------

#: Create a timestamped backup before rewriting the manifest.
DEFAULT_BACKUP: Final[bool] = False

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed file size (in bytes) when reading manifests and sources.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
