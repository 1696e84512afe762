"""One-hop dependency protection.

A manifest entry that nothing imports directly may still be needed: the
``email-validator`` line exists because ``pydantic[email]`` requires it.
:class:`DependencyProtector` collects the declared requirements of every
*directly used* entry so the pruning engine can keep them.

Protection is deliberately a single hop. If ``A`` is imported, ``A``
requires ``B`` and ``B`` requires ``C``, then ``B`` is protected and ``C``
is not (unless ``C`` is also imported or required by another used entry).
"""

from __future__ import annotations

from typing import AbstractSet, FrozenSet, Mapping, Set

from reqtidy.utils import get_logger
from reqtidy.models.metadata import PackageMetadata

logger = get_logger("core.protector")


class DependencyProtector:
    """Compute the set of package names that must not be removed."""

    def protect(
        self,
        metadata: Mapping[str, PackageMetadata],
        imported: AbstractSet[str],
    ) -> FrozenSet[str]:
        """Return the lower-cased requirements of every directly used entry.

        Args:
            metadata: Resolved metadata keyed by manifest lookup key.
            imported: External module names seen in the sources.

        Returns:
            Frozen set of lower-cased package names.
        """
        protected: Set[str] = set()

        for name, meta in metadata.items():
            if not meta.matches(imported):
                continue
            if meta.direct_requires:
                logger.debug(
                    "%s is used; protecting %s", name, sorted(meta.direct_requires)
                )
            protected.update(req.lower() for req in meta.direct_requires)

        return frozenset(protected)
