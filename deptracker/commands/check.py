"""Check command implementation for deptracker.

Runs the package manager's "list outdated" command for one manifest and
reports every outdated dependency with its update severity and the
ticket priority it would get. The tracker is never contacted, so no
credentials are needed.

Typical usage::

    $ deptracker check package.json
    $ deptracker check requirements.txt --format json > outdated.json
"""

from __future__ import annotations

import sys
import json
import click
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from deptracker.models import Dependency
from deptracker.exceptions import DepTrackerError
from deptracker.context import pass_context, DepTrackerContext
from deptracker.core import DependencyOrchestrator
from deptracker.commands.sync import resolve_file_argument
from deptracker.utils import (
    classify,
    get_logger,
    priority_for,
    print_error,
    print_success,
    print_table,
    print_warning,
    colorize_severity,
)

logger = get_logger("commands.check")


@click.command()
@click.argument(
    "file",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
    envvar="DEPENDENCY_FILE",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@pass_context
def check(ctx: DepTrackerContext, file: Optional[Path], format: str) -> None:
    """List outdated dependencies of a manifest.

    FILE is a ``composer.json``, ``package.json`` or ``requirements.txt``
    (default: ``$DEPENDENCY_FILE``). Relative paths are resolved against
    ``$GITHUB_WORKSPACE`` when it is set.

    Exits:
        0 on success (outdated or not), 1 if the dependency list could not
        be produced.
    """
    manifest = resolve_file_argument(file)

    try:
        dependencies = asyncio.run(DependencyOrchestrator().list_outdated(manifest))
    except DepTrackerError as e:
        print_error(f"{e}")
        sys.exit(1)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        logger.exception("Error in check command")
        sys.exit(1)

    if format == "json":
        _display_json(dependencies)
        return

    if not dependencies:
        print_success("All dependencies are up to date!")
        return

    _display_table(dependencies)
    logger.debug("Listed %d outdated dependencies for %s", len(dependencies), manifest)
    print_warning(f"\n{len(dependencies)} dependency(ies) have updates available")


def _row(dependency: Dependency) -> Dict[str, Any]:
    severity = classify(dependency.current_version, dependency.latest_version)
    return {
        "Package": dependency.name,
        "Current": dependency.current_version,
        "Latest": dependency.latest_version,
        "Update Type": colorize_severity(severity.value),
        "Priority": priority_for(severity),
    }


def _display_table(dependencies: List[Dependency]) -> None:
    column_styles: Dict[str, Dict[str, Any]] = {
        "Package": {"style": "bold cyan", "no_wrap": True},
        "Current": {"justify": "center", "style": "dim"},
        "Latest": {"justify": "center", "style": "bold green"},
        "Update Type": {"justify": "center"},
        "Priority": {"justify": "center"},
    }
    print_table(
        [_row(dep) for dep in dependencies],
        title=f"Outdated {dependencies[0].ecosystem.label} Dependencies",
        column_styles=column_styles,
    )


def _display_json(dependencies: List[Dependency]) -> None:
    """Print dependencies as a JSON array, with severity and priority."""
    payload = []
    for dep in dependencies:
        severity = classify(dep.current_version, dep.latest_version)
        entry = dep.to_json()
        entry["update_type"] = severity.value
        entry["priority"] = priority_for(severity)
        payload.append(entry)
    print(json.dumps(payload, indent=2))
