"""
reqtidy — prune unused packages from requirements.txt

reqtidy scans a project's Python sources, asks the project's interpreter
which modules each declared distribution provides, and removes manifest
entries that nothing imports. Packages required by a directly used
package are kept, as are development tools that are run rather than
imported.

Typical usage::

    $ reqtidy prune            # current directory
    $ reqtidy prune path/to/project --dry-run
"""

from __future__ import annotations

from reqtidy.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "reqtidy Contributors"
__license__ = "Apache-2.0"
__description__ = "Remove unused dependencies from requirements.txt."

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

from reqtidy.core import PruningEngine, PruneResult, prune_project  # noqa: E402

__all__ = [
    "__version__",
    "PruningEngine",
    "PruneResult",
    "prune_project",
]
