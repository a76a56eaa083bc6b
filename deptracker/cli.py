"""
Command-line interface for deptracker.

This module provides the main CLI entry point and handles global options,
configuration loading, and command registration.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from deptracker.__version__ import __version__
from deptracker.context import DepTrackerContext
from deptracker.config import apply_environment, load_config
from deptracker.exceptions import ConfigError, DepTrackerError
from deptracker.utils.logger import get_logger, resolve_log_level, setup_logging
from deptracker.utils.console import print_error, print_warning, reconfigure_console
from deptracker.commands.check import check
from deptracker.commands.sync import sync

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="DEPTRACKER_CONFIG",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv).",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="DEPTRACKER_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="deptracker",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """deptracker: one tracker ticket per outdated dependency.

    \b
    Available commands:
      deptracker sync              Create or reuse Jira tickets for outdated packages
      deptracker check             List outdated packages and their severity

    \b
    Examples:
      deptracker check package.json
      deptracker sync composer.json --dry-run
      deptracker -v sync requirements.txt --package requests

    Use ``deptracker COMMAND --help`` for command-specific options.
    """
    _configure_logging(verbose)

    try:
        settings = apply_environment(load_config(config))
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    deptracker_ctx = DepTrackerContext()
    deptracker_ctx.config_path = config or settings.source_path
    deptracker_ctx.color = color
    deptracker_ctx.verbose = verbose
    deptracker_ctx.settings = settings
    ctx.obj = deptracker_ctx

    # Respect NO_COLOR for downstream libraries
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    logger.debug("deptracker v%s", __version__)
    logger.debug("Config path: %s", deptracker_ctx.config_path)
    logger.debug("Settings: %s", settings.to_log_dict())
    logger.debug("Verbosity: %s | Color: %s", verbose, color)


def _configure_logging(verbose: int) -> None:
    """Configure logging level based on verbosity flags and RUNNER_DEBUG."""
    level = resolve_log_level(verbose)
    setup_logging(level=level, verbose=level == logging.DEBUG)
    logger.debug("Logging initialized at %s level", logging.getLevelName(level))


cli.add_command(check)
cli.add_command(sync)


def main() -> int:
    """Main entry point for the deptracker CLI.

    Returns:
        Exit code:
            0   Success
            1   Unhandled or application error
            2   Usage error (Click)
            130 Interrupted by user (Ctrl+C)
    """
    try:
        cli(standalone_mode=False)
        return 0

    except click.exceptions.Exit as exc:
        return exc.exit_code

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1

    except DepTrackerError as exc:
        print_error(str(exc))
        logger.debug(
            "DepTrackerError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except (KeyboardInterrupt, click.Abort):
        print_warning("\nOperation cancelled by user")
        return 130

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
