"""Local-vs-external module classification.

A module path is *local* when it is a relative import or when it names a
module or package inside the project directory::

    <root>/a/b/c.py
    <root>/a/b/c/__init__.py

Everything else is *external* and is recorded twice in the imported set,
once as the literal dotted path and once as its root segment, because a
distribution's import surface may be declared at either granularity.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Tuple, Union

from reqtidy.constants import SOURCE_SUFFIX
from reqtidy.models.imports import RELATIVE_SENTINEL
from reqtidy.models.metadata import module_root


class ModuleClassifier:
    """Classify module paths against a project root.

    Lookups are cached per module path; a classifier is meant to live for
    one scan of an unchanging tree.

    Args:
        project_root: Directory module paths are resolved against.
        source_suffix: Extension of source modules (``.py``).
    """

    def __init__(
        self,
        project_root: Union[str, Path],
        source_suffix: str = SOURCE_SUFFIX,
    ) -> None:
        self.project_root = Path(project_root).resolve()
        self.source_suffix = source_suffix
        self._cache: Dict[str, bool] = {}

    def is_local(self, module: str) -> bool:
        """Return True for relative imports and modules inside the project."""
        if module.startswith(RELATIVE_SENTINEL):
            return True

        cached = self._cache.get(module)
        if cached is None:
            cached = self._cache[module] = self._exists_in_project(module)
        return cached

    def _exists_in_project(self, module: str) -> bool:
        base = self.project_root.joinpath(*module.split("."))
        if base.with_name(base.name + self.source_suffix).is_file():
            return True
        return (base / f"__init__{self.source_suffix}").is_file()

    @staticmethod
    def root(module: str) -> str:
        """Return the first dot-separated segment of ``module``."""
        return module_root(module)

    def external_keys(self, module: str) -> Tuple[str, ...]:
        """Return the imported-set keys for ``module``.

        Empty for local modules; otherwise the literal path followed by its
        root (a single element when they coincide).
        """
        if not module or self.is_local(module):
            return ()
        root = self.root(module)
        if root == module:
            return (module,)
        return (module, root)

    def __repr__(self) -> str:
        return f"ModuleClassifier(project_root={os.fspath(self.project_root)!r})"
