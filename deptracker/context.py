"""
Shared context object for deptracker CLI commands.

This module defines the global Click context used to share configuration
and runtime options across CLI subcommands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from deptracker.config import TrackerSettings


class DepTrackerContext:
    """Global context object for deptracker CLI commands.

    An instance of this class is created once per CLI invocation and
    passed to commands using Click's context mechanism.

    Attributes:
        config_path: Path to the deptracker configuration file, if any.
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG).
        color: Whether colored terminal output is enabled.
        settings: Settings merged from defaults, config file and
            environment. Commands apply their own options on top.
    """

    __slots__ = ("config_path", "verbose", "color", "settings")

    def __init__(self) -> None:
        self.config_path: Optional[Path] = None
        self.verbose: int = 0
        self.color: bool = True
        self.settings: TrackerSettings = TrackerSettings()


#: Click decorator for injecting :class:`DepTrackerContext` into commands.
pass_context = click.make_pass_decorator(DepTrackerContext, ensure=True)
