"""Allow ``python -m reqtidy`` as an alias for the ``reqtidy`` command."""

from __future__ import annotations

import sys


def _print_startup_error(exc: ImportError) -> None:
    """Report on stderr that the CLI's dependencies are unavailable."""
    try:
        from reqtidy.__version__ import __version__ as version
    except ImportError:
        version = "<unknown>"

    sys.stderr.write(
        "reqtidy CLI could not be loaded.\n"
        f"Python version : {sys.version}\n"
        f"reqtidy version: {version}\n"
        "\n"
        f"ImportError: {exc}\n"
    )


def main() -> int:
    try:
        # click and rich are only needed once the CLI actually runs
        from reqtidy.cli import main as cli_main
    except ImportError as exc:
        _print_startup_error(exc)
        return 1
    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
