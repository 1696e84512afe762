"""Prune command implementation for reqtidy.

Removes packages from ``requirements.txt`` that no source file imports.

The command orchestrates the core components through
:func:`~reqtidy.core.prune_project`:

1. **ManifestParser** — splits the manifest into lines.
2. **PackageMetadataResolver** — asks the project's interpreter, once, which
   modules every declared distribution provides and what it requires.
3. **SourceScanner** — parses every source file and collects external
   imports.
4. **PruningEngine** — keeps used, protected and allow-listed packages and
   drops the rest.

The manifest is only rewritten when at least one line is removed.

Typical usage::

    # Prune the project in the current directory
    $ reqtidy prune

    # Preview what would be removed
    $ reqtidy prune path/to/project --dry-run

    # Fail CI when the manifest has unused entries
    $ reqtidy prune --check

    # Keep a package that is only loaded dynamically
    $ reqtidy prune --keep celery --backup
"""

from __future__ import annotations

import sys
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from reqtidy.config import ReqTidyConfig
from reqtidy.exceptions import ReqTidyError
from reqtidy.context import pass_context, ReqTidyContext
from reqtidy.constants import DEFAULT_ALLOWLIST, DEFAULT_EXCLUDE_DIRS
from reqtidy.core import DecisionReason, PruneResult, prune_project
from reqtidy.utils import (
    get_logger,
    print_error,
    print_removal,
    print_success,
    print_table,
    print_warning,
    get_raw_console,
)

logger = get_logger("commands.prune")


@click.command()
@click.argument(
    "path",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
)
@click.option(
    "--manifest",
    "-m",
    help="Manifest file name inside PATH.  [default: requirements.txt]",
)
@click.option(
    "--dry-run",
    "-n",
    is_flag=True,
    help="Show what would be removed without rewriting the manifest.",
)
@click.option(
    "--check",
    is_flag=True,
    help="Like --dry-run, but exit with status 1 if anything would be removed.",
)
@click.option(
    "--backup/--no-backup",
    default=None,
    help="Create a timestamped backup before rewriting.",
)
@click.option(
    "--python",
    "python",
    metavar="PATH",
    help="Interpreter whose installed packages describe the project.",
)
@click.option(
    "--keep",
    "-k",
    multiple=True,
    metavar="NAME",
    help="Never remove this package (can be repeated).",
)
@click.option(
    "--exclude",
    "-e",
    multiple=True,
    metavar="DIR",
    help="Skip directories with this name while scanning (can be repeated).",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["simple", "json"], case_sensitive=False),
    default="simple",
    help="Output format.",
)
@pass_context
def prune(
    ctx: ReqTidyContext,
    path: Path,
    manifest: Optional[str],
    dry_run: bool,
    check: bool,
    backup: Optional[bool],
    python: Optional[str],
    keep: Tuple[str, ...],
    exclude: Tuple[str, ...],
    format: str,
) -> None:
    """Remove packages that are never imported from PATH's requirements.txt.

    Packages required by an imported package are kept, as are common
    development tools (pytest, black, mypy, ...) and anything passed with
    ``--keep``. Comments, blank lines and pip options are left untouched.

    Exits:
        0 on success, 1 on error or when ``--check`` finds unused packages.
    """
    config = ctx.effective_config

    try:
        result = _run(
            config,
            path,
            manifest=manifest,
            dry_run=dry_run or check,
            backup=backup,
            python=python,
            keep=keep,
            exclude=exclude,
        )
    except ReqTidyError as e:
        print_error(f"{e}")
        sys.exit(1)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        logger.exception("Error in prune command")
        sys.exit(1)

    if format == "json":
        _display_json(result)
    else:
        _display_simple(result, verbose=ctx.verbose)

    sys.exit(1 if check and result.changed else 0)


def _run(
    config: ReqTidyConfig,
    path: Path,
    *,
    manifest: Optional[str],
    dry_run: bool,
    backup: Optional[bool],
    python: Optional[str],
    keep: Tuple[str, ...],
    exclude: Tuple[str, ...],
) -> PruneResult:
    """Merge CLI options over configuration and run the pruning pipeline.

    Precedence is defaults < config file < command line; ``keep`` and
    ``exclude`` are additive.
    """
    allowlist = DEFAULT_ALLOWLIST | frozenset(config.keep) | frozenset(keep)
    exclude_dirs = DEFAULT_EXCLUDE_DIRS | frozenset(config.exclude) | frozenset(exclude)

    logger.info("Pruning %s", path)
    return prune_project(
        path,
        manifest_name=manifest or config.manifest,
        interpreter=python or config.python,
        metadata_timeout=config.metadata_timeout,
        allowlist=allowlist,
        exclude_dirs=exclude_dirs,
        dry_run=dry_run,
        backup=config.backup if backup is None else backup,
    )


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _display_simple(result: PruneResult, *, verbose: int = 0) -> None:
    """Print one line per removed package followed by a summary.

    With ``-v`` a table of every declared package and its decision is
    printed first.

    Example output::

        Removing: six (Not imported)

        [OK] Done! Removed 1 package(s).
    """
    if verbose > 0:
        _display_decision_table(result)

    for name in result.removed_names:
        print_removal(name)

    console = get_raw_console()
    if not result.changed:
        console.print()
        print_success("Everything looks clean.")
        return

    count = len(result.removed)
    console.print()
    if result.written:
        print_success(f"Done! Removed {count} package(s).")
        if result.backup_path:
            print_success(f"Backup written to {result.backup_path}")
    else:
        print_warning(f"Dry run: {count} package(s) would be removed.")


def _display_decision_table(result: PruneResult) -> None:
    """Render a table of requirement lines and why each was kept or removed."""
    labels = {
        DecisionReason.ALLOWLISTED: "kept (allow-list)",
        DecisionReason.PROTECTED: "kept (required by a used package)",
        DecisionReason.IMPORTED: "kept (imported)",
        DecisionReason.NAME_MATCH: "kept (name matches an import)",
        DecisionReason.UNUSED: "removed",
    }

    data: List[Dict[str, Any]] = []
    for decision in result.decisions:
        if not decision.entry.is_requirement:
            continue
        meta = result.metadata.get(decision.entry.lookup_key or "")
        data.append(
            {
                "Line": decision.entry.line_number,
                "Package": decision.entry.lookup_key,
                "Imports as": ", ".join(sorted(meta.import_surface)) if meta else "-",
                "Decision": labels.get(decision.reason, decision.reason.value),
            }
        )

    column_styles = {
        "Line": {"justify": "right", "style": "dim"},
        "Package": {"style": "bold cyan", "no_wrap": True},
        "Imports as": {"style": "dim"},
    }
    print_table(data, title="Manifest Decisions", column_styles=column_styles)


def _display_json(result: PruneResult) -> None:
    """Print a machine-readable report to stdout."""
    report = {
        "manifest": str(result.manifest_path) if result.manifest_path else None,
        "removed": result.removed_names,
        "protected": sorted(result.protected),
        "kept": [
            {"name": d.entry.name, "reason": d.reason.value}
            for d in result.decisions
            if d.keep and d.entry.is_requirement
        ],
        "written": result.written,
        "backup": str(result.backup_path) if result.backup_path else None,
    }
    click.echo(json.dumps(report, indent=2))
