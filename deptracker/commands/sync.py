"""Sync command implementation for deptracker.

Reconciles the outdated dependencies of one manifest against Jira: for
every outdated package the command reuses an existing ticket or creates
a new one, never both, and never two tickets for the same update within
a run.

Settings come from (lowest to highest precedence) built-in defaults, the
configuration file, the ``JIRA_*``/``DRY_RUN``/``PACKAGES`` environment
variables, and the options below.

Typical usage::

    # Preview which tickets would be created
    $ deptracker sync composer.json --dry-run

    # Only handle two packages
    $ deptracker sync package.json -p lodash -p @scope/pkg

    # Machine-readable result map
    $ deptracker sync requirements.txt --format json
"""

from __future__ import annotations

import os
import sys
import json
import click
import asyncio
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from deptracker.config import TrackerSettings
from deptracker.exceptions import DepTrackerError
from deptracker.context import pass_context, DepTrackerContext
from deptracker.models import ReconciliationOutcome
from deptracker.core import DependencyOrchestrator, JiraClient, ReconciliationEngine
from deptracker.utils import (
    get_logger,
    print_error,
    print_success,
    print_table,
    print_warning,
    colorize_status,
    resolve_manifest_path,
)

logger = get_logger("commands.sync")


def resolve_file_argument(file: Optional[Path]) -> Path:
    """Resolve the FILE argument against ``$GITHUB_WORKSPACE``.

    Raises:
        click.UsageError: Neither FILE nor ``$DEPENDENCY_FILE`` was given.
    """
    if file is None or not str(file).strip():
        raise click.UsageError("Missing argument 'FILE' (or set DEPENDENCY_FILE)")
    return resolve_manifest_path(file, workspace=os.environ.get("GITHUB_WORKSPACE"))


@click.command()
@click.argument(
    "file",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
    envvar="DEPENDENCY_FILE",
)
@click.option("--jira-url", help="Jira site URL (overrides JIRA_URL).")
@click.option("--user-email", help="Jira account email (overrides JIRA_USER_EMAIL).")
@click.option("--project-key", help="Jira project key (overrides JIRA_PROJECT_KEY).")
@click.option("--issue-type", help="Issue type for new tickets (overrides JIRA_ISSUE_TYPE).")
@click.option(
    "--dry-run/--no-dry-run",
    default=None,
    help="Search for existing tickets but never create any.",
)
@click.option(
    "--package",
    "-p",
    "packages",
    multiple=True,
    help="Only process this package (repeatable; overrides PACKAGES).",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@pass_context
def sync(
    ctx: DepTrackerContext,
    file: Optional[Path],
    jira_url: Optional[str],
    user_email: Optional[str],
    project_key: Optional[str],
    issue_type: Optional[str],
    dry_run: Optional[bool],
    packages: Tuple[str, ...],
    format: str,
) -> None:
    """Create or reuse one Jira ticket per outdated dependency.

    FILE is a ``composer.json``, ``package.json`` or ``requirements.txt``
    (default: ``$DEPENDENCY_FILE``). Relative paths are resolved against
    ``$GITHUB_WORKSPACE`` when it is set.

    Exits:
        0 if every dependency was handled, 1 if the run failed or any
        dependency ended in ``processing_error``.
    """
    manifest = resolve_file_argument(file)

    try:
        settings = ctx.settings.merged(
            jira_url=jira_url,
            user_email=user_email,
            project_key=project_key,
            issue_type=issue_type,
            dry_run=dry_run,
            packages=packages or None,
        ).validate()
        logger.debug("Effective settings: %s", settings.to_log_dict())

        results = asyncio.run(_sync_async(settings, manifest))

    except DepTrackerError as e:
        print_error(f"{e}")
        sys.exit(1)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        logger.exception("Error in sync command")
        sys.exit(1)

    if format == "json":
        _display_json(results)
    else:
        _display_table(results, dry_run=settings.dry_run)

    failures = sum(1 for outcome in results.values() if outcome.is_error)
    sys.exit(1 if failures else 0)


async def _sync_async(
    settings: TrackerSettings,
    manifest: Path,
) -> Dict[str, ReconciliationOutcome]:
    """Run one reconciliation pass with a fresh client and ticket cache."""
    async with JiraClient(
        str(settings.jira_url),
        user_email=settings.user_email,
        api_token=settings.api_token,
        max_results=settings.max_results,
    ) as jira:
        engine = ReconciliationEngine(jira, settings)
        orchestrator = DependencyOrchestrator(engine)
        return await orchestrator.run(manifest, settings.packages)


# ---------------------------------------------------------------------------
# Display renderers
# ---------------------------------------------------------------------------


def _display_table(results: Dict[str, ReconciliationOutcome], *, dry_run: bool) -> None:
    if not results:
        print_success("All dependencies are up to date!")
        return

    data = [
        {
            "Package": name,
            "Status": colorize_status(outcome.status.value),
            "Outcome": outcome.kind.value.replace("_", " "),
            "Ticket": outcome.key or "-",
        }
        for name, outcome in results.items()
    ]
    column_styles: Dict[str, Dict[str, Any]] = {
        "Package": {"style": "bold cyan", "no_wrap": True},
        "Status": {"no_wrap": True},
        "Ticket": {"justify": "center", "style": "bold"},
    }
    print_table(
        data,
        title="Dependency Tickets" + (" (dry run)" if dry_run else ""),
        column_styles=column_styles,
    )

    failures = sum(1 for outcome in results.values() if outcome.is_error)
    if failures:
        print_warning(f"\n{failures} dependency(ies) could not be processed")
    else:
        print_success(f"\n{len(results)} dependency(ies) processed")


def _display_json(results: Dict[str, ReconciliationOutcome]) -> None:
    """Print the run-result map ``{name: {status, ticket_key, outcome}}``."""
    payload = {name: outcome.to_dict() for name, outcome in results.items()}
    print(json.dumps(payload, indent=2))
