"""Manifest parsing for reqtidy.

Splits ``requirements.txt`` content into :class:`ManifestEntry` values,
one per logical line: a line ending in a backslash is joined with the
lines that continue it, as pip does, so a requirement and its
``--hash`` options are kept or removed together. Lines end at ``\\n``
only. Only the package name is extracted from each requirement line;
version pins, markers and comments stay inside ``raw_line`` so the line
can be written back untouched.

Name grammar::

    name[extras] [comparator version] [; marker] [# comment]

The name is everything before the first delimiter matched by
:data:`~reqtidy.constants.MANIFEST_NAME_DELIMITERS`, trimmed of whitespace.

Typical usage::

    parser = ManifestParser()
    entries = parser.parse_string(content)
    names = [e.lookup_key for e in entries if e.is_requirement]
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Pattern, Union

from reqtidy.exceptions import ParseError
from reqtidy.utils import get_logger, safe_read_file
from reqtidy.models.manifest import LineKind, ManifestEntry
from reqtidy.constants import MANIFEST_NAME_DELIMITERS, PROJECT_NAME_PATTERN

logger = get_logger("core.manifest")

# str.splitlines also breaks on \x0b, \x0c, \x1c-\x1e, \x85, U+2028 and U+2029
_LINE_END = re.compile(r"(?<=\n)")


def _physical_lines(content: str) -> List[str]:
    lines = _LINE_END.split(content)
    if lines and not lines[-1]:
        lines.pop()
    return lines


def _continues(line: str) -> bool:
    return line.rstrip("\r\n").endswith("\\")


def _is_comment(line: str) -> bool:
    return line.lstrip().startswith("#")


class ManifestParser:
    """Parse manifest text into line entries.

    Args:
        delimiters: Pattern whose first match ends the package name.
        name_pattern: Pattern a package name must fully match; lines whose
            name does not match (URLs, local paths) are ``UNPARSED``.

    Example::

        >>> parser = ManifestParser()
        >>> entry = parser.parse_line("pydantic[email]==2.0  # models\\n", 0)
        >>> entry.name, entry.lookup_key
        ('pydantic', 'pydantic[email]')
    """

    def __init__(
        self,
        delimiters: Pattern[str] = MANIFEST_NAME_DELIMITERS,
        name_pattern: Pattern[str] = PROJECT_NAME_PATTERN,
    ) -> None:
        self.delimiters = delimiters
        self.name_pattern = name_pattern

    def parse_file(self, file_path: Union[str, Path]) -> List[ManifestEntry]:
        """Read and parse a manifest from disk.

        Raises:
            FileOperationError: The file does not exist or cannot be read.
            ParseError: The file is not a text manifest.
        """
        content = safe_read_file(file_path)
        entries = self.parse_string(content, file_path=str(file_path))
        logger.debug(
            "Parsed %s: %d line(s), %d requirement(s)",
            file_path,
            len(entries),
            sum(1 for e in entries if e.is_requirement),
        )
        return entries

    def parse_string(
        self, content: str, *, file_path: Optional[str] = None
    ) -> List[ManifestEntry]:
        """Parse manifest text, keeping each line's terminator.

        A non-comment line ending in ``\\`` absorbs the following lines up
        to and including the first one that does not, or a comment line.
        The entry's ``line_index`` is that of its first physical line.

        Raises:
            ParseError: A line contains a NUL byte.
        """
        entries = []
        group: List[str] = []
        start = 0
        for index, line in enumerate(_physical_lines(content)):
            if "\x00" in line:
                raise ParseError(
                    "Manifest contains binary data",
                    line_number=index + 1,
                    file_path=file_path,
                )
            if not group:
                start = index
            group.append(line)
            if _continues(line) and not _is_comment(line):
                continue
            entries.append(self.parse_line("".join(group), start))
            group = []

        # Trailing backslash on the last line
        if group:
            entries.append(self.parse_line("".join(group), start))
        return entries

    def parse_line(self, raw_line: str, line_index: int) -> ManifestEntry:
        """Classify one manifest line and extract its package name."""
        # A byte order mark survives decoding as U+FEFF
        stripped = raw_line.lstrip("\ufeff").strip()

        if not stripped:
            return ManifestEntry(raw_line, line_index, LineKind.BLANK)
        if stripped.startswith("#"):
            return ManifestEntry(raw_line, line_index, LineKind.COMMENT)
        if stripped.startswith("-"):
            return ManifestEntry(raw_line, line_index, LineKind.DIRECTIVE)

        name = self.parse_name(stripped)
        if name is None:
            logger.debug("Line %d has no package name: %s", line_index + 1, stripped)
            return ManifestEntry(raw_line, line_index, LineKind.UNPARSED)

        return ManifestEntry(
            raw_line,
            line_index,
            LineKind.REQUIREMENT,
            name=name,
            lookup_key=name + self._extras_suffix(stripped, name),
        )

    def parse_name(self, line: str) -> Optional[str]:
        """Return the package name of a requirement line, or ``None``."""
        match = self.delimiters.search(line)
        name = (line[: match.start()] if match else line).strip()
        if not name or not self.name_pattern.match(name):
            return None
        return name

    @staticmethod
    def _extras_suffix(line: str, name: str) -> str:
        """Return ``[extra,...]`` immediately following the name, if any."""
        rest = line[len(name) :].lstrip()
        if not rest.startswith("["):
            return ""
        end = rest.find("]")
        if end == -1:
            return ""
        return rest[: end + 1]
