"""Import extraction for reqtidy.

Walks a parsed Python syntax tree and returns the import statements it
contains as :class:`~reqtidy.models.ImportItem` values, in source order.

Only two statement shapes are recognised:

- ``import a.b.c as d`` — one :attr:`ImportKind.DIRECT` item per target,
  carrying the original dotted path (never the alias).
- ``from a.b import x, y as z`` — one :attr:`ImportKind.FROM` item carrying
  the module path and the original imported names. Relative imports keep
  their leading dots; ``from . import x`` uses the ``"."`` sentinel.

Every node is first reduced to a :class:`NodeKind` tag and the tree is
walked by an explicit recursive function, so the extraction rules do not
depend on the parser's own visitor dispatch. Imports nested in functions,
classes, ``try`` blocks and conditionals are found; dynamic imports
(``importlib.import_module``, ``__import__``) are not.

Typical usage::

    tree = parse_source(path.read_bytes(), filename=str(path))
    if tree is not None:
        for item in extract_imports(tree):
            print(item.kind, item.module, item.names)
"""

from __future__ import annotations

import ast
import warnings
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Union

from reqtidy.utils import get_logger
from reqtidy.exceptions import FileOperationError
from reqtidy.constants import MAX_FILE_SIZE
from reqtidy.models.imports import RELATIVE_SENTINEL, ImportItem, ImportKind

logger = get_logger("core.extractor")

__all__ = [
    "NodeKind",
    "node_kind",
    "parse_source",
    "extract_imports",
    "ImportExtractor",
]


class NodeKind(Enum):
    """Tag assigned to every syntax-tree node before traversal."""

    PLAIN_IMPORT = "plain_import"
    FROM_IMPORT = "from_import"
    OTHER = "other"


def node_kind(node: ast.AST) -> NodeKind:
    """Reduce a syntax-tree node to its :class:`NodeKind` tag."""
    if isinstance(node, ast.Import):
        return NodeKind.PLAIN_IMPORT
    if isinstance(node, ast.ImportFrom):
        return NodeKind.FROM_IMPORT
    return NodeKind.OTHER


def parse_source(
    source: Union[str, bytes],
    filename: str = "<unknown>",
) -> Optional[ast.Module]:
    """Parse Python source, returning ``None`` if it cannot be parsed.

    Malformed syntax, null bytes and undecodable byte strings are all
    treated the same way: the file contributes no imports.

    Args:
        source: File contents. Bytes are decoded by the parser according to
            the PEP 263 coding cookie.
        filename: Used only in log messages.

    Returns:
        The module node, or ``None`` on failure.
    """
    try:
        with warnings.catch_warnings():
            # Invalid escape sequences in old code are not our concern
            warnings.simplefilter("ignore", SyntaxWarning)
            warnings.simplefilter("ignore", DeprecationWarning)
            return ast.parse(source, filename=filename)
    except (SyntaxError, ValueError, UnicodeDecodeError, RecursionError) as exc:
        logger.debug("Skipping %s: cannot parse (%s)", filename, exc)
        return None


def _alias_names(aliases: Iterable[ast.alias]) -> List[str]:
    # alias.name is the original name; alias.asname is the binding
    return [alias.name for alias in aliases if alias.name]


def _from_module(node: ast.ImportFrom) -> str:
    dots = RELATIVE_SENTINEL * (node.level or 0)
    module = f"{dots}{node.module or ''}"
    return module or RELATIVE_SENTINEL


def extract_imports(tree: ast.AST) -> List[ImportItem]:
    """Return every import statement in ``tree``, depth-first, in source order.

    Args:
        tree: A parsed syntax tree (usually from :func:`parse_source`).

    Returns:
        List of :class:`ImportItem`, one per ``import`` target and one per
        ``from ... import`` statement.
    """
    items: List[ImportItem] = []

    def walk(node: ast.AST) -> None:
        kind = node_kind(node)

        if kind is NodeKind.PLAIN_IMPORT:
            for module in _alias_names(node.names):
                items.append(ImportItem(ImportKind.DIRECT, module))

        elif kind is NodeKind.FROM_IMPORT:
            items.append(
                ImportItem(
                    ImportKind.FROM,
                    _from_module(node),
                    tuple(_alias_names(node.names)),
                )
            )

        for child in ast.iter_child_nodes(node):
            walk(child)

    walk(tree)
    return items


class ImportExtractor:
    """Read source files from disk and extract their imports.

    Unreadable and unparsable files are skipped with a debug log entry;
    they never abort a scan.

    Args:
        max_size: Files larger than this many bytes are skipped.
    """

    def __init__(self, max_size: Optional[int] = MAX_FILE_SIZE) -> None:
        self.max_size = max_size
        self.files_parsed = 0
        self.files_skipped = 0

    def extract_file(self, path: Union[str, Path]) -> List[ImportItem]:
        """Return the imports of one source file (empty on any failure)."""
        path = Path(path)
        try:
            source = self._read(path)
        except FileOperationError as exc:
            logger.debug("Skipping %s: %s", path, exc)
            self.files_skipped += 1
            return []

        tree = parse_source(source, filename=str(path))
        if tree is None:
            self.files_skipped += 1
            return []

        try:
            items = extract_imports(tree)
        except RecursionError:
            logger.debug("Skipping %s: syntax tree too deep", path)
            self.files_skipped += 1
            return []

        self.files_parsed += 1
        return items

    def _read(self, path: Path) -> bytes:
        try:
            size = path.stat().st_size
            if self.max_size is not None and size > self.max_size:
                raise FileOperationError(
                    f"File too large: {size} bytes (max {self.max_size})",
                    file_path=str(path),
                    operation="read",
                )
            return path.read_bytes()
        except OSError as exc:
            raise FileOperationError(
                f"Failed to read file: {exc}",
                file_path=str(path),
                operation="read",
                original_error=exc,
            ) from exc
