"""
Manifest line data model for reqtidy.

A manifest is split into one :class:`ManifestEntry` per logical line (a
backslash-continued requirement and its continuation lines form one
entry) so that every entry maps to exactly one keep/remove decision and
kept entries can be written back unchanged.
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Optional


class LineKind(Enum):
    """Classification of a manifest line."""

    REQUIREMENT = "requirement"  # name[extras] [version] [; marker] [# comment]
    BLANK = "blank"
    COMMENT = "comment"  # comment-only line
    DIRECTIVE = "directive"  # -r, -c, -e, --index-url, ...
    UNPARSED = "unparsed"  # URLs, paths and anything without a valid name


@dataclass(frozen=True)
class ManifestEntry:
    """
    Represents a single logical line of a requirements manifest.

    Attributes:
        raw_line: Original text including line terminators and any
            continuation lines.
        line_index: Zero-based index of the first physical line.
        kind: Line classification.
        name: Plain package name (no extras) for requirement lines.
        lookup_key: Name including any bracketed extras suffix, e.g.
            ``pydantic[email]``; the key used for metadata lookups.
    """

    raw_line: str
    line_index: int
    kind: LineKind
    name: Optional[str] = None
    lookup_key: Optional[str] = None

    @property
    def is_requirement(self) -> bool:
        """Return True if this line declares a package."""
        return self.kind is LineKind.REQUIREMENT

    @property
    def line_number(self) -> int:
        """One-based line number, for messages."""
        return self.line_index + 1

    @property
    def text(self) -> str:
        """Line content without its terminator."""
        return self.raw_line.rstrip("\r\n")

    def __repr__(self) -> str:
        return (
            "ManifestEntry("
            f"line={self.line_number!r}, "
            f"kind={self.kind.value!r}, "
            f"name={self.name!r}, "
            f"lookup_key={self.lookup_key!r}"
            ")"
        )
