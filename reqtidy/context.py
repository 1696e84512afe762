"""
Per-invocation state shared between the ``reqtidy`` group and its commands.

The group callback builds one :class:`ReqTidyContext` from the global
options and stores it as ``click.Context.obj``; commands receive it through
:data:`pass_context`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from reqtidy.config import ReqTidyConfig


class ReqTidyContext:
    """Global options and loaded configuration for one CLI run.

    Attributes:
        config_path: Configuration file in effect, if any.
        verbose: Number of ``-v`` flags (0=WARNING, 1=INFO, 2+=DEBUG).
        color: Whether colored output was requested.
        config: Loaded configuration; ``None`` when a command is invoked
            without the group (e.g. directly in tests).
    """

    __slots__ = ("config_path", "verbose", "color", "config")

    def __init__(
        self,
        *,
        config_path: Optional[Path] = None,
        verbose: int = 0,
        color: bool = True,
        config: Optional[ReqTidyConfig] = None,
    ) -> None:
        self.config_path = config_path
        self.verbose = verbose
        self.color = color
        self.config = config

    @property
    def effective_config(self) -> ReqTidyConfig:
        """Loaded configuration, or defaults if none was loaded."""
        return self.config if self.config is not None else ReqTidyConfig()

    def __repr__(self) -> str:
        return (
            f"ReqTidyContext(config_path={self.config_path!r}, "
            f"verbose={self.verbose!r}, color={self.color!r})"
        )


#: Injects the :class:`ReqTidyContext`, creating a default one if missing.
pass_context = click.make_pass_decorator(ReqTidyContext, ensure=True)
