"""
Installed-distribution metadata model for reqtidy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable


def module_root(module: str) -> str:
    """Return the first dot-separated segment of ``module``."""
    return module.split(".", 1)[0]


@dataclass(frozen=True)
class PackageMetadata:
    """
    What a manifest entry provides and what it needs.

    Attributes:
        import_surface: Module names the package can be imported as.
        direct_requires: Lower-cased names of the package's declared
            requirements (one hop only).
    """

    import_surface: FrozenSet[str] = field(default_factory=frozenset)
    direct_requires: FrozenSet[str] = field(default_factory=frozenset)

    def matches(self, imported: Iterable[str]) -> bool:
        """Return True if any surface module, or its root, was imported."""
        imported_set = imported if isinstance(imported, (set, frozenset)) else set(imported)
        for module in self.import_surface:
            if module in imported_set or module_root(module) in imported_set:
                return True
        return False
