"""
File access for reqtidy.

The manifest is read and rewritten with newline translation disabled, so
lines reqtidy does not touch keep their exact bytes. Rewrites go through a
temporary sibling file that replaces the target only once fully written.
Every failure surfaces as :class:`~reqtidy.exceptions.FileOperationError`.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from datetime import datetime
from typing import AbstractSet, Iterator, NoReturn, Optional, Union

from reqtidy.utils.logger import get_logger
from reqtidy.exceptions import FileOperationError
from reqtidy.constants import DEFAULT_EXCLUDE_DIRS, MAX_FILE_SIZE, SOURCE_SUFFIX


logger = get_logger("filesystem")

PathLike = Union[str, Path]

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"


def _fail(
    message: str,
    path: PathLike,
    operation: str,
    cause: Optional[BaseException] = None,
) -> NoReturn:
    raise FileOperationError(
        message,
        file_path=str(path),
        operation=operation,
        original_error=cause,
    ) from cause


def _discard(temp_path: Path) -> None:
    try:
        temp_path.unlink()
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning("Could not remove temporary file %s: %s", temp_path, exc)
        return
    logger.debug("Removed temporary file %s", temp_path)


def _replace_contents(target: Path, content: str, encoding: str) -> None:
    fd, name = tempfile.mkstemp(
        dir=str(target.parent),
        prefix=f".{target.name}.",
        suffix=".tmp",
    )
    temp_path = Path(name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        if target.exists():
            shutil.copymode(target, temp_path)
        os.replace(temp_path, target)
    except (OSError, UnicodeEncodeError) as exc:
        _discard(temp_path)
        _fail(f"Atomic write failed: {exc}", target, "write", exc)


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
) -> str:
    """Return the text of ``file_path`` with its line terminators intact.

    Args:
        file_path: File to read.
        max_size: Size limit in bytes; ``None`` for no limit.
        encoding: Text encoding.

    Raises:
        FileOperationError: The file is missing, is not a regular file, is
            larger than ``max_size`` or cannot be decoded.
    """
    path = Path(file_path)
    if not path.exists():
        _fail(f"File not found: {path}", path, "read")
    if not path.is_file():
        _fail(f"Not a file: {path}", path, "read")

    path = path.resolve()
    size = path.stat().st_size
    if max_size is not None and size > max_size:
        _fail(f"File too large: {size} bytes (max {max_size})", path, "read")

    try:
        with open(path, "r", encoding=encoding, newline="") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        _fail(f"Failed to read file: {exc}", path, "read", exc)


def safe_write_file(
    file_path: PathLike,
    content: str,
    *,
    create_backup: bool = False,
    encoding: str = "utf-8",
) -> Optional[Path]:
    """Replace the contents of ``file_path`` atomically.

    ``content`` is written exactly as given, line terminators included.
    With ``create_backup`` an existing file is copied aside first and the
    copy's path is returned.
    """
    path = Path(file_path)
    backup = create_timestamped_backup(path) if create_backup and path.is_file() else None
    _replace_contents(path, content, encoding)
    return backup


def create_timestamped_backup(file_path: PathLike) -> Path:
    """Copy a file to ``{stem}.{timestamp}.backup{suffix}`` beside it."""
    path = Path(file_path)
    if not path.is_file():
        _fail(f"Cannot backup invalid file: {path}", path, "backup")

    stamp = datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
    backup_path = path.with_name(f"{path.stem}.{stamp}.backup{path.suffix}")
    try:
        shutil.copy2(path, backup_path)
    except OSError as exc:
        _fail(f"Failed to create backup: {exc}", path, "backup", exc)

    logger.debug("Backed up %s to %s", path.name, backup_path)
    return backup_path


def iter_source_files(
    directory: PathLike,
    *,
    suffix: str = SOURCE_SUFFIX,
    exclude_dirs: AbstractSet[str] = DEFAULT_EXCLUDE_DIRS,
) -> Iterator[Path]:
    """Yield files ending in ``suffix`` below ``directory``.

    Files of a directory come before its subdirectories, each group in
    name order. Directories named in ``exclude_dirs`` are pruned and
    unreadable ones skipped.
    """
    root = Path(directory)
    if not root.is_dir():
        return

    def skipped(exc: OSError) -> None:
        logger.debug("Skipping unreadable directory: %s", exc)

    for current, dirnames, filenames in os.walk(root, onerror=skipped):
        dirnames[:] = sorted(name for name in dirnames if name not in exclude_dirs)
        yield from (
            Path(current, name) for name in sorted(filenames) if name.endswith(suffix)
        )


def validate_path(path: PathLike, *, base_dir: Optional[PathLike] = None) -> Path:
    """Return ``path`` resolved, requiring it to sit inside ``base_dir`` if given."""
    resolved = Path(path).expanduser().resolve(strict=False)
    if base_dir is None:
        return resolved

    base = Path(base_dir).resolve(strict=False)
    if resolved != base and base not in resolved.parents:
        _fail(f"Path outside allowed base directory: {resolved}", path, "validate")
    return resolved
