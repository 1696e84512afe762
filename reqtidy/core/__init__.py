"""
Core functionality exports for reqtidy.

Importing from here keeps user-facing imports clean and stable:

    from reqtidy.core import PruningEngine, prune_project
"""

from __future__ import annotations

from reqtidy.core.manifest import ManifestParser
from reqtidy.core.scanner import SourceScanner
from reqtidy.core.classifier import ModuleClassifier
from reqtidy.core.protector import DependencyProtector
from reqtidy.core.extractor import ImportExtractor, NodeKind, extract_imports, parse_source
from reqtidy.core.resolver import (
    MetadataFetcher,
    PackageMetadataResolver,
    SubprocessMetadataFetcher,
    detect_interpreter,
)
from reqtidy.core.pruner import (
    DecisionReason,
    LineDecision,
    PruneResult,
    PruningEngine,
    prune_project,
)

__all__ = [
    "ManifestParser",
    "SourceScanner",
    "ModuleClassifier",
    "DependencyProtector",
    "ImportExtractor",
    "NodeKind",
    "extract_imports",
    "parse_source",
    "MetadataFetcher",
    "PackageMetadataResolver",
    "SubprocessMetadataFetcher",
    "detect_interpreter",
    "DecisionReason",
    "LineDecision",
    "PruneResult",
    "PruningEngine",
    "prune_project",
]
