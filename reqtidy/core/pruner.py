"""Unused-dependency pruning for reqtidy.

This module owns two responsibilities:

1. **Line decisions** — :class:`PruningEngine` decides, for every manifest
   line, whether it stays or goes, given resolved package metadata and the
   set of externally imported modules.
2. **Orchestration** — :func:`prune_project` reads the manifest, resolves
   metadata once, scans the sources, decides, and rewrites the manifest
   when (and only when) something was removed.

Decision order for a requirement line:

- names on the allow-list are always kept;
- names required by a directly used package are kept (one hop);
- names whose import surface (or a surface module's root) was imported
  are kept;
- names with no metadata at all are kept if an imported module has the
  same name, ignoring case;
- everything else is removed.

Blank lines, comments, ``-r``/``-e``/``--index-url`` style directives and
lines without a recognisable package name are always kept. Kept lines are
written back byte-for-byte in their original order, so running the engine
twice on an unchanged tree removes nothing the second time.

Typical usage::

    result = prune_project(Path("."), dry_run=True)
    for decision in result.removed:
        print(decision.entry.name)
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

from packaging.utils import canonicalize_name

from reqtidy.utils import get_logger, safe_write_file, validate_path
from reqtidy.exceptions import ManifestNotFoundError
from reqtidy.core.manifest import ManifestParser
from reqtidy.core.scanner import SourceScanner
from reqtidy.core.protector import DependencyProtector
from reqtidy.models.manifest import LineKind, ManifestEntry
from reqtidy.models.metadata import PackageMetadata
from reqtidy.core.resolver import (
    MetadataFetcher,
    PackageMetadataResolver,
    SubprocessMetadataFetcher,
    detect_interpreter,
)
from reqtidy.constants import (
    DEFAULT_ALLOWLIST,
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_MANIFEST_NAME,
    DEFAULT_METADATA_TIMEOUT,
)

logger = get_logger("core.pruner")

__all__ = [
    "DecisionReason",
    "LineDecision",
    "PruneResult",
    "PruningEngine",
    "prune_project",
]


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


class DecisionReason(Enum):
    """Why a manifest line was kept or removed."""

    BLANK = "blank"
    COMMENT = "comment"
    DIRECTIVE = "directive"
    UNPARSED = "unparsed"
    ALLOWLISTED = "allowlisted"
    PROTECTED = "protected"  # required by a directly used package
    IMPORTED = "imported"  # import surface matched
    NAME_MATCH = "name_match"  # no metadata, name matched an import
    UNUSED = "unused"


_LINE_KIND_REASONS = {
    LineKind.BLANK: DecisionReason.BLANK,
    LineKind.COMMENT: DecisionReason.COMMENT,
    LineKind.DIRECTIVE: DecisionReason.DIRECTIVE,
    LineKind.UNPARSED: DecisionReason.UNPARSED,
}


@dataclass(frozen=True)
class LineDecision:
    """Keep/remove decision for one manifest line."""

    entry: ManifestEntry
    keep: bool
    reason: DecisionReason


@dataclass
class PruneResult:
    """Complete outcome of one pruning run.

    Attributes:
        decisions: One decision per manifest line, in manifest order.
        imported: External module names found in the sources.
        protected: Package names protected by a directly used package.
        metadata: Resolved metadata keyed by manifest lookup key.
        manifest_path: Manifest the decisions apply to, if read from disk.
        written: Whether the manifest was rewritten.
        backup_path: Backup created before rewriting, if any.
    """

    decisions: List[LineDecision]
    imported: FrozenSet[str] = frozenset()
    protected: FrozenSet[str] = frozenset()
    metadata: Dict[str, PackageMetadata] = field(default_factory=dict)
    manifest_path: Optional[Path] = None
    written: bool = False
    backup_path: Optional[Path] = None

    @property
    def kept(self) -> List[LineDecision]:
        return [d for d in self.decisions if d.keep]

    @property
    def removed(self) -> List[LineDecision]:
        return [d for d in self.decisions if not d.keep]

    @property
    def removed_names(self) -> List[str]:
        """Plain names of removed entries, in manifest order."""
        return [d.entry.name for d in self.removed if d.entry.name]

    @property
    def changed(self) -> bool:
        """Return True if at least one line is removed."""
        return any(not d.keep for d in self.decisions)

    @property
    def content(self) -> str:
        """Rewritten manifest text: kept lines, verbatim, in order."""
        return "".join(d.entry.raw_line for d in self.decisions if d.keep)

    def summary(self) -> str:
        """Generate a short human-readable summary."""
        requirements = [d for d in self.decisions if d.entry.is_requirement]
        lines = [
            f"Packages declared: {len(requirements)}",
            f"Packages removed: {len(self.removed)}",
            f"Packages protected: "
            f"{sum(1 for d in self.decisions if d.reason is DecisionReason.PROTECTED)}",
        ]
        for name in self.removed_names:
            lines.append(f"  - {name}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class PruningEngine:
    """Decide which manifest lines to keep.

    The engine performs no I/O; :func:`prune_project` supplies it with
    parsed entries, metadata and the imported set.

    Args:
        allowlist: Package names always kept (compared case-insensitively).
        protector: Computes the one-hop protected set.
    """

    def __init__(
        self,
        allowlist: Iterable[str] = DEFAULT_ALLOWLIST,
        protector: Optional[DependencyProtector] = None,
    ) -> None:
        self.allowlist: FrozenSet[str] = frozenset(n.lower() for n in allowlist)
        self.protector = protector or DependencyProtector()

    def decide(
        self,
        entries: Iterable[ManifestEntry],
        metadata: Mapping[str, PackageMetadata],
        imported: AbstractSet[str],
    ) -> PruneResult:
        """Return one decision per entry, in order.

        Args:
            entries: Parsed manifest lines.
            metadata: Metadata keyed by :attr:`ManifestEntry.lookup_key`.
            imported: External module names seen in the sources.
        """
        imported = frozenset(imported)
        protected = self.protector.protect(metadata, imported)
        protected_canonical = frozenset(canonicalize_name(p) for p in protected)
        imported_lower = frozenset(m.lower() for m in imported)

        decisions = []
        for entry in entries:
            reason = self._reason(
                entry, metadata, imported, imported_lower, protected_canonical
            )
            keep = reason is not DecisionReason.UNUSED
            logger.debug("Line %d %s: %s", entry.line_number, reason.value, entry.text)
            decisions.append(LineDecision(entry, keep, reason))

        return PruneResult(
            decisions=decisions,
            imported=imported,
            protected=protected,
            metadata=dict(metadata),
        )

    def _reason(
        self,
        entry: ManifestEntry,
        metadata: Mapping[str, PackageMetadata],
        imported: FrozenSet[str],
        imported_lower: FrozenSet[str],
        protected_canonical: FrozenSet[str],
    ) -> DecisionReason:
        if not entry.is_requirement or not entry.name:
            return _LINE_KIND_REASONS.get(entry.kind, DecisionReason.UNPARSED)

        name = entry.name
        if name.lower() in self.allowlist:
            return DecisionReason.ALLOWLISTED

        if canonicalize_name(name) in protected_canonical:
            return DecisionReason.PROTECTED

        meta = metadata.get(entry.lookup_key or name)
        if meta is not None:
            if meta.matches(imported):
                return DecisionReason.IMPORTED
            return DecisionReason.UNUSED

        if name in imported or name.lower() in imported_lower:
            return DecisionReason.NAME_MATCH
        return DecisionReason.UNUSED


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def prune_project(
    project_dir: Union[str, Path] = ".",
    *,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
    fetcher: Optional[MetadataFetcher] = None,
    interpreter: Optional[str] = None,
    metadata_timeout: Optional[float] = DEFAULT_METADATA_TIMEOUT,
    allowlist: Iterable[str] = DEFAULT_ALLOWLIST,
    exclude_dirs: AbstractSet[str] = DEFAULT_EXCLUDE_DIRS,
    dry_run: bool = False,
    backup: bool = False,
) -> PruneResult:
    """Prune unused entries from a project's manifest.

    Args:
        project_dir: Project directory holding the manifest and sources.
        manifest_name: Manifest file name inside ``project_dir``.
        fetcher: Metadata capability. Defaults to a
            :class:`SubprocessMetadataFetcher` for the project interpreter.
        interpreter: Interpreter for the default fetcher (auto-detected
            when ``None``).
        metadata_timeout: Timeout for the default fetcher, in seconds.
        allowlist: Package names always kept.
        exclude_dirs: Directory names skipped while scanning.
        dry_run: Decide but never write.
        backup: Create a timestamped backup before rewriting.

    Returns:
        :class:`PruneResult` with every line decision.

    Raises:
        ManifestNotFoundError: No manifest in ``project_dir``.
        FileOperationError: The manifest lies outside ``project_dir`` or
            cannot be read or written.
        ParseError: The manifest is not a text file.
    """
    root = Path(project_dir).resolve()
    manifest_path = validate_path(root / manifest_name, base_dir=root)
    if not manifest_path.is_file():
        raise ManifestNotFoundError(str(manifest_path))

    # Read everything before anything can be written
    entries = ManifestParser().parse_file(manifest_path)
    lookup_keys = [e.lookup_key for e in entries if e.is_requirement and e.lookup_key]
    logger.info("Found %d package(s) in %s", len(lookup_keys), manifest_path)

    if fetcher is None:
        fetcher = SubprocessMetadataFetcher(
            detect_interpreter(root, interpreter),
            timeout=metadata_timeout,
        )
    metadata = PackageMetadataResolver(fetcher).resolve(lookup_keys)

    imported = SourceScanner(root, exclude_dirs=exclude_dirs).scan()

    result = PruningEngine(allowlist=allowlist).decide(entries, metadata, imported)
    result.manifest_path = manifest_path

    if not result.changed:
        logger.info("Nothing to remove from %s", manifest_path)
    elif dry_run:
        logger.info("Dry run: %s left unchanged", manifest_path)
    else:
        result.backup_path = safe_write_file(
            manifest_path, result.content, create_backup=backup
        )
        result.written = True
        logger.info(
            "Removed %d package(s) from %s", len(result.removed), manifest_path
        )

    return result
