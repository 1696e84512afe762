"""Configuration file support for reqtidy.

Settings live either in ``reqtidy.toml`` under a ``[reqtidy]`` table or in
the project's ``pyproject.toml`` under ``[tool.reqtidy]``::

    [tool.reqtidy]
    keep = ["celery", "psycopg2-binary"]
    exclude = ["scripts", "docs"]
    python = ".venv/bin/python"
    metadata_timeout = 30

The file is taken from ``--config``/``REQTIDY_CONFIG`` when given, else
``reqtidy.toml`` in the working directory, else a ``pyproject.toml`` there
that has the table. Values given on the command line override the file.
"""

from __future__ import annotations


import tomli as tomllib
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from dataclasses import asdict, dataclass, field, fields

from reqtidy.exceptions import ConfigError
from reqtidy.utils.logger import get_logger
from reqtidy.constants import (
    DEFAULT_BACKUP,
    DEFAULT_MANIFEST_NAME,
    DEFAULT_METADATA_TIMEOUT,
)

logger = get_logger("config")

CONFIG_FILE_NAME = "reqtidy.toml"
PYPROJECT_FILE_NAME = "pyproject.toml"


@dataclass
class ReqTidyConfig:
    """Settings read from a configuration file.

    Every field has a default, so an empty table is a valid configuration.

    Attributes:
        manifest: Manifest path relative to the project directory.
        keep: Package names never removed, on top of the built-in
            development-tooling list.
        exclude: Directory names skipped on top of the built-in ones.
        python: Interpreter whose installed distributions are inspected;
            ``None`` picks one automatically.
        metadata_timeout: Seconds allowed for the metadata interpreter.
        backup: Copy the manifest aside before rewriting it.
        source_path: File the settings came from, ``None`` for defaults.
    """

    manifest: str = DEFAULT_MANIFEST_NAME
    keep: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    python: Optional[str] = None
    metadata_timeout: float = DEFAULT_METADATA_TIMEOUT
    backup: bool = DEFAULT_BACKUP

    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return the user-facing options as a plain dict."""
        values = asdict(self)
        del values["source_path"]
        return values


def _option_names() -> List[str]:
    return [f.name for f in fields(ReqTidyConfig) if f.name != "source_path"]


# Validators raise ValueError with the text shown after the option name.


def _non_empty_string(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("must be a non-empty string")
    return value.strip()


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"must be a list of strings, got {type(value).__name__}")
    return [item.strip() for item in value if item.strip()]


def _positive_number(value: Any) -> float:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"must be a positive number, got {value!r}")
    return float(value)


def _boolean(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"must be a boolean, got {type(value).__name__}")
    return value


_VALIDATORS: Dict[str, Callable[[Any], Any]] = {
    "manifest": _non_empty_string,
    "keep": _string_list,
    "exclude": _string_list,
    "python": _non_empty_string,
    "metadata_timeout": _positive_number,
    "backup": _boolean,
}


def _read_toml(path: Path) -> Dict[str, Any]:
    """Parse ``path`` as TOML, reporting failures as :class:`ConfigError`."""
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        message = f"Invalid TOML in {path.name}: {exc}"
        cause: Exception = exc
    except OSError as exc:
        message = f"Cannot read configuration file {path}: {exc}"
        cause = exc
    raise ConfigError(message, config_path=str(path)) from cause


def _table_for(path: Path, document: Dict[str, Any]) -> Dict[str, Any]:
    if path.name == PYPROJECT_FILE_NAME:
        return document.get("tool", {}).get("reqtidy", {})
    return document.get("reqtidy", {})


def _pyproject_has_reqtidy_section(path: Path) -> bool:
    """Whether ``path`` declares ``[tool.reqtidy]``.

    An unparsable ``pyproject.toml`` counts as not declaring it; the file
    belongs to the project and is not reqtidy's to reject.
    """
    try:
        document = _read_toml(path)
    except ConfigError:
        return False
    return "reqtidy" in document.get("tool", {})


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Locate the configuration file, or return ``None`` if there is none.

    Raises:
        ConfigError: ``explicit_path`` was given but is not a file.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()
    candidate = cwd / CONFIG_FILE_NAME
    if candidate.is_file():
        logger.debug("Found %s", candidate)
        return candidate

    candidate = cwd / PYPROJECT_FILE_NAME
    if candidate.is_file() and _pyproject_has_reqtidy_section(candidate):
        logger.debug("Found [tool.reqtidy] in %s", candidate)
        return candidate

    logger.debug("No configuration file found")
    return None


def _parse_section(section: Dict[str, Any], *, config_path: str) -> ReqTidyConfig:
    """Validate a reqtidy table and build the matching :class:`ReqTidyConfig`.

    Raises:
        ConfigError: The table has unknown keys or a value of the wrong type.
            ``option`` names the offending key.
    """
    unknown = sorted(set(section) - set(_option_names()))
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(unknown)}",
            config_path=config_path,
        )

    values: Dict[str, Any] = {}
    for option, raw in section.items():
        try:
            values[option] = _VALIDATORS[option](raw)
        except ValueError as exc:
            raise ConfigError(
                f"{option} {exc}",
                config_path=config_path,
                option=option,
            ) from None
    return ReqTidyConfig(**values)


def load_config(config_path: Optional[Path] = None) -> ReqTidyConfig:
    """Return the configuration in effect, or defaults without a file.

    Args:
        config_path: File to use instead of discovery.

    Raises:
        ConfigError: The file cannot be read or parsed, or holds invalid
            settings.
    """
    resolved = discover_config_file(config_path)
    if resolved is None:
        return ReqTidyConfig()

    logger.info("Loading configuration from %s", resolved)
    section = _table_for(resolved, _read_toml(resolved))
    if not isinstance(section, dict):
        raise ConfigError("reqtidy settings must be a table", config_path=str(resolved))
    if not section:
        logger.debug("No reqtidy table in %s, using defaults", resolved.name)
        return ReqTidyConfig(source_path=resolved)

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved
    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config
