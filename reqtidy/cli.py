"""
Command-line entry point for reqtidy.

The ``reqtidy`` group applies the global options (configuration file,
verbosity, color) once, stores the result in a :class:`ReqTidyContext`
and dispatches to a subcommand. :func:`main` turns whatever escapes the
group into a process exit status.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from reqtidy.config import ReqTidyConfig, load_config
from reqtidy.__version__ import VERSION_STRING, __version__
from reqtidy.context import ReqTidyContext
from reqtidy.exceptions import ConfigError, ReqTidyError
from reqtidy.utils.console import print_error, print_warning, reconfigure_console
from reqtidy.utils.logger import (
    disable_logging,
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)

logger = get_logger("cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def _apply_color_preference(color: Optional[bool]) -> bool:
    """Propagate ``--color/--no-color`` to the console and log formatter.

    Both honour the ``NO_COLOR`` convention, so an explicit flag is
    expressed through that variable. Without one the environment is left
    alone. Returns whether color is enabled.
    """
    if color is None:
        return not os.environ.get("NO_COLOR")
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()
    return color


def _load_config_or_exit(config_path: Optional[Path]) -> ReqTidyConfig:
    try:
        return load_config(config_path)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(EXIT_ERROR) from exc


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    envvar="REQTIDY_CONFIG",
    help="Configuration file (default: reqtidy.toml, then pyproject.toml).",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Show progress (-v) or debug output (-vv) on stderr.",
)
@click.option(
    "--color/--no-color",
    default=None,
    envvar="REQTIDY_COLOR",
    help="Force colored output on or off (default: auto, honouring NO_COLOR).",
)
@click.version_option(__version__, prog_name="reqtidy", message="%(prog)s %(version)s")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: Optional[bool],
) -> None:
    """Remove packages from requirements.txt that your code never imports.

    \b
    Examples:
      reqtidy prune                      prune ./requirements.txt
      reqtidy prune path/to/project -n   preview only
      reqtidy -v prune --keep celery     keep a dynamically loaded package
    """
    use_color = _apply_color_preference(color)
    setup_logging(level=level_for_verbosity(verbose))

    loaded = _load_config_or_exit(config)
    ctx.obj = ReqTidyContext(
        config_path=config or loaded.source_path,
        verbose=verbose,
        color=use_color,
        config=loaded,
    )

    logger.debug("%s (verbosity=%d, color=%s)", VERSION_STRING, verbose, use_color)
    if loaded.source_path:
        logger.debug("Configuration from %s: %s", loaded.source_path, loaded.to_log_dict())


from reqtidy.commands.prune import prune  # noqa: E402

cli.add_command(prune)


def main() -> int:
    """Run the CLI and return its exit status.

    ``0`` success, ``1`` reqtidy or unexpected error (and ``prune --check``
    with removable packages), ``2`` usage error, ``130`` interrupted.
    The stderr log handler installed by the group is removed on return.
    """
    try:
        return _dispatch()
    finally:
        disable_logging()


def _dispatch() -> int:
    try:
        cli(standalone_mode=False)
    except SystemExit as exc:
        # Commands report their own status through sys.exit
        if exc.code is None:
            return EXIT_OK
        return exc.code if isinstance(exc.code, int) else EXIT_ERROR
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except (click.exceptions.Abort, KeyboardInterrupt):
        print_warning("\nOperation cancelled by user")
        return EXIT_INTERRUPTED
    except ReqTidyError as exc:
        print_error(str(exc))
        logger.debug("Error details: %s", exc.details or "<none>", exc_info=True)
        return EXIT_ERROR
    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        # Failures before the group callback ran still get a traceback
        if not is_logging_configured():
            setup_logging(level=logging.WARNING)
        logger.exception("Unhandled exception in CLI")
        return EXIT_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
