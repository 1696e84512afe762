"""
Import statement data model for reqtidy.

One :class:`ImportItem` is produced per import target found in a source
file. Items are immutable once built.
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Tuple

#: Module path used for ``from . import x`` style imports.
RELATIVE_SENTINEL = "."


class ImportKind(Enum):
    """Shape of the statement an import was read from."""

    DIRECT = "import"  # import a.b.c [as d]
    FROM = "from"  # from a.b import x [as y]


@dataclass(frozen=True)
class ImportItem:
    """
    A single imported module reference.

    Attributes:
        kind: Statement shape (plain ``import`` or ``from ... import``).
        module: Dotted module path as written, aliases resolved to the
            original name. Relative imports keep their leading dots.
        names: Imported symbol names for ``from`` imports, in source order.
    """

    kind: ImportKind
    module: str
    names: Tuple[str, ...] = ()

    @property
    def is_relative(self) -> bool:
        """Return True for ``from .x import y`` and ``from . import y``."""
        return self.module.startswith(RELATIVE_SENTINEL)

    @property
    def root(self) -> str:
        """First dot-separated segment of the module path."""
        return self.module.split(".", 1)[0]

    def __str__(self) -> str:
        if self.kind is ImportKind.DIRECT:
            return f"import {self.module}"
        return f"from {self.module} import {', '.join(self.names)}"
