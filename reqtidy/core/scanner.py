"""Source tree scanning for reqtidy.

Builds the *imported set*: every external module name imported anywhere
under the project directory, in both literal dotted form and root form.
The set is built once per run and frozen.
"""

from __future__ import annotations

from pathlib import Path
from typing import AbstractSet, FrozenSet, Optional, Set, Union

from reqtidy.utils import get_logger, iter_source_files
from reqtidy.core.classifier import ModuleClassifier
from reqtidy.core.extractor import ImportExtractor
from reqtidy.constants import DEFAULT_EXCLUDE_DIRS, SOURCE_SUFFIX

logger = get_logger("core.scanner")


class SourceScanner:
    """Walk a project's sources and collect externally imported modules.

    Args:
        project_root: Directory to scan; also the root local imports are
            resolved against.
        exclude_dirs: Directory names not descended into.
        extractor: Import extractor (a fresh one by default).
        classifier: Module classifier (one rooted at ``project_root`` by
            default).
    """

    def __init__(
        self,
        project_root: Union[str, Path],
        *,
        exclude_dirs: AbstractSet[str] = DEFAULT_EXCLUDE_DIRS,
        extractor: Optional[ImportExtractor] = None,
        classifier: Optional[ModuleClassifier] = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.exclude_dirs = frozenset(exclude_dirs)
        self.extractor = extractor or ImportExtractor()
        self.classifier = classifier or ModuleClassifier(self.project_root)

    def scan(self) -> FrozenSet[str]:
        """Return the imported set for the project."""
        imported: Set[str] = set()
        files = 0

        for path in iter_source_files(
            self.project_root,
            suffix=self.classifier.source_suffix or SOURCE_SUFFIX,
            exclude_dirs=self.exclude_dirs,
        ):
            files += 1
            for item in self.extractor.extract_file(path):
                imported.update(self.classifier.external_keys(item.module))

        logger.info(
            "Scanned %d file(s) (%d skipped), found %d external module name(s)",
            files,
            self.extractor.files_skipped,
            len(imported),
        )
        logger.debug("Imported set: %s", sorted(imported))
        return frozenset(imported)
