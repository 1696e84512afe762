"""
Unified data model exports for reqtidy.

Example:
    >>> from reqtidy.models import ImportItem, ManifestEntry, PackageMetadata
"""

from __future__ import annotations

from reqtidy.models.imports import RELATIVE_SENTINEL, ImportItem, ImportKind
from reqtidy.models.manifest import LineKind, ManifestEntry
from reqtidy.models.metadata import PackageMetadata, module_root

__all__ = [
    "ImportItem",
    "ImportKind",
    "RELATIVE_SENTINEL",
    "LineKind",
    "ManifestEntry",
    "PackageMetadata",
    "module_root",
]
