"""Run orchestration for deptracker.

One run processes one manifest:

1. Validate the manifest and pick its :class:`~deptracker.models.Ecosystem`
   from the file name.
2. Run the ecosystem's fixed "list outdated" command next to the manifest.
3. Parse the output into :class:`~deptracker.models.Dependency` records.
4. Skip dependencies outside the optional allow-list, and hand the rest
   to the :class:`~deptracker.core.reconciler.ReconciliationEngine` one at
   a time, in the order the package manager reported them.

Anything that makes the dependency list itself untrustworthy (bad
manifest, failing listing command, undecodable pip output) aborts the
run before the tracker is touched. Failures that only concern one
dependency are recorded in the result map and the run continues.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from deptracker.core.parsers import get_parser
from deptracker.core.runner import CommandResult, CommandRunner
from deptracker.core.reconciler import ReconciliationEngine
from deptracker.exceptions import CommandError
from deptracker.models.dependency import Dependency, Ecosystem
from deptracker.models.outcome import ReconciliationOutcome
from deptracker.constants import NPM_REGISTRY_ERROR_CODES
from deptracker.utils.filesystem import validate_manifest
from deptracker.utils.logger import get_logger

logger = get_logger("orchestrator")

__all__ = ["DependencyOrchestrator"]


class DependencyOrchestrator:
    """Drive one manifest through listing, parsing, and reconciliation.

    Args:
        engine: Reconciliation engine for this run. Only needed by
            :meth:`run`; :meth:`list_outdated` works without it.
        runner: Command runner used for the listing command.
    """

    def __init__(
        self,
        engine: Optional[ReconciliationEngine] = None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self.engine = engine
        self.runner = runner or CommandRunner()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        manifest_path: Union[str, Path],
        name_filter: Iterable[str] = (),
    ) -> Dict[str, ReconciliationOutcome]:
        """Reconcile every outdated dependency of *manifest_path*.

        Args:
            manifest_path: Path to ``composer.json``, ``package.json`` or
                ``requirements.txt``.
            name_filter: Optional allow-list of package names. When
                non-empty, other dependencies are marked filtered out.

        Returns:
            Mapping of dependency name to outcome, in discovery order.

        Raises:
            ManifestError: The manifest is missing, unreadable, or
                unsupported.
            CommandError: The listing command failed.
            ParseError: pip output could not be decoded.
        """
        if self.engine is None:
            raise TypeError("run() requires a ReconciliationEngine")

        allowed = frozenset(name_filter)
        dependencies = await self.list_outdated(manifest_path)

        if not dependencies:
            logger.info("No outdated dependencies found")
            return {}

        results: Dict[str, ReconciliationOutcome] = {}
        for dependency in dependencies:
            if allowed and dependency.name not in allowed:
                logger.debug("Skipping %s: not in package filter", dependency.name)
                results[dependency.name] = ReconciliationOutcome.filtered_out()
                continue

            logger.info(
                "Processing %s (%s -> %s)",
                dependency.name,
                dependency.current_version,
                dependency.latest_version,
            )
            results[dependency.name] = await self._resolve(dependency)

        logger.info("Dependency check finished: %d dependencies processed", len(results))
        return results

    async def list_outdated(self, manifest_path: Union[str, Path]) -> List[Dependency]:
        """Return the outdated dependencies of *manifest_path* without reconciling.

        Raises:
            ManifestError: The manifest is missing, unreadable, or
                unsupported.
            CommandError: The listing command failed.
            ParseError: pip output could not be decoded.
        """
        manifest = validate_manifest(manifest_path)
        ecosystem = Ecosystem.from_manifest(manifest)
        logger.info("Detected %s project: %s", ecosystem.label, manifest)

        output = await self._list_outdated_output(ecosystem, manifest.parent)
        dependencies = get_parser(ecosystem).parse(output)
        logger.info(
            "Found %d outdated %s dependencies",
            len(dependencies),
            ecosystem.value,
        )
        return dependencies

    # ------------------------------------------------------------------
    # Listing command (private)
    # ------------------------------------------------------------------

    async def _list_outdated_output(self, ecosystem: Ecosystem, cwd: Path) -> str:
        """Run the listing command and return output that is safe to parse."""
        command = ecosystem.outdated_command
        logger.info("Checking for outdated dependencies: %s", " ".join(command))

        if ecosystem is Ecosystem.COMPOSER:
            return await self.runner.run_checked(command, cwd)

        result = await self.runner.run(command, cwd)
        if ecosystem is Ecosystem.NPM:
            return self._accept_npm_output(result)
        return self._accept_pip_output(result)

    @staticmethod
    def _accept_npm_output(result: CommandResult) -> str:
        # npm outdated exits 1 whenever something is outdated
        stdout, stderr = result.stdout, result.stderr

        if not result.succeeded and any(code in stderr for code in NPM_REGISTRY_ERROR_CODES):
            raise CommandError(
                "npm command failed, possibly due to a registry issue",
                command=result.command,
                exit_code=result.exit_code,
                stderr=stderr,
            )

        if not result.succeeded and not stdout.strip() and stderr.strip():
            raise CommandError(
                'npm "outdated" command failed',
                command=result.command,
                exit_code=result.exit_code,
                stderr=stderr,
            )

        if not stdout.strip():
            logger.info("No npm output, no outdated dependencies")
            return "{}"

        return stdout

    @staticmethod
    def _accept_pip_output(result: CommandResult) -> str:
        stdout, stderr = result.stdout, result.stderr

        if not result.succeeded and not stdout.strip() and stderr.strip():
            raise CommandError(
                "pip command failed",
                command=result.command,
                exit_code=result.exit_code,
                stderr=stderr,
            )

        if stderr.strip():
            logger.warning(
                "pip produced stderr output (exit code %d): %s",
                result.exit_code,
                stderr.strip(),
            )

        if not stdout.strip():
            logger.info("No pip output, no outdated dependencies")
            return "[]"

        return stdout

    # ------------------------------------------------------------------
    # Reconciliation (private)
    # ------------------------------------------------------------------

    async def _resolve(self, dependency: Dependency) -> ReconciliationOutcome:
        """Resolve one dependency, isolating unexpected failures."""
        assert self.engine is not None
        try:
            return await self.engine.resolve(dependency)
        except Exception:
            logger.exception("Unexpected error while processing %s", dependency.name)
            return ReconciliationOutcome.processing_error()
