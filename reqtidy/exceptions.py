"""
Exceptions raised by reqtidy.

Every error derives from :class:`ReqTidyError`, which carries a message
and a flat ``details`` mapping. ``str(error)`` renders both on one line,
which is what the CLI prints::

    Manifest not found: /src/app/requirements.txt (path=/src/app/requirements.txt, operation=read)

Only :class:`MetadataError` is recoverable: the resolver catches it and
continues without metadata. The others end the run with exit status 1.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

#: Longest captured subprocess output kept in ``details``.
MAX_DETAIL_LENGTH = 200


def _compact(**fields: Any) -> Dict[str, Any]:
    """Build a details mapping, dropping fields that are ``None``."""
    return {key: value for key, value in fields.items() if value is not None}


def _shorten(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    text = text.strip()
    if len(text) > MAX_DETAIL_LENGTH:
        return text[:MAX_DETAIL_LENGTH] + "..."
    return text


class ReqTidyError(Exception):
    """Base class for reqtidy errors.

    Args:
        message: Human-readable description.
        details: Extra context rendered after the message.
    """

    __slots__ = ("message", "details")

    def __init__(self, message: str, details: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


class ParseError(ReqTidyError):
    """The manifest is not a text requirements file."""

    __slots__ = ("line_number", "line_content", "file_path")

    def __init__(
        self,
        message: str,
        *,
        line_number: Optional[int] = None,
        line_content: Optional[str] = None,
        file_path: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            _compact(line=line_number, content=line_content, file=file_path),
        )
        self.line_number = line_number
        self.line_content = line_content
        self.file_path = file_path


class ConfigError(ReqTidyError):
    """A configuration file is missing, is not valid TOML or has a bad option."""

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        super().__init__(message, _compact(path=config_path, option=option))
        self.config_path = config_path
        self.option = option


class MetadataError(ReqTidyError):
    """The metadata interpreter could not be run or gave an unusable answer.

    ``stderr`` keeps the full captured output; ``details`` only a prefix.
    """

    __slots__ = ("interpreter", "returncode", "stderr")

    def __init__(
        self,
        message: str,
        *,
        interpreter: Optional[str] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            _compact(
                interpreter=interpreter,
                returncode=returncode,
                stderr=_shorten(stderr),
            ),
        )
        self.interpreter = interpreter
        self.returncode = returncode
        self.stderr = stderr


class FileOperationError(ReqTidyError):
    """Reading, writing, backing up or validating a file failed.

    Args:
        message: Error description.
        file_path: File involved.
        operation: ``read``, ``write``, ``backup`` or ``validate``.
        original_error: Underlying exception, if any.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            message,
            _compact(
                path=file_path,
                operation=operation,
                original_error=str(original_error) if original_error else None,
            ),
        )
        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error


class ManifestNotFoundError(FileOperationError):
    """The project directory has no manifest file."""

    __slots__ = ()

    def __init__(self, manifest_path: str) -> None:
        super().__init__(
            f"Manifest not found: {manifest_path}",
            file_path=manifest_path,
            operation="read",
        )
