"""Package-manager output parsers for deptracker.

Each parser turns the machine-readable output of one ecosystem's
"list outdated" command into :class:`~deptracker.models.Dependency`
records, preserving the order in which the tool reported them.

Parsers are lenient about individual entries: an incomplete or oddly
shaped entry is logged and dropped, never fatal. Composer and npm
parsers are lenient about the whole payload too and return an empty
list for undecodable output. The pip parser is strict because
``pip list --format=json`` is expected to be well formed; it raises
:class:`~deptracker.exceptions.ParseError` for undecodable output.

Typical usage::

    parser = get_parser(Ecosystem.NPM)
    dependencies = parser.parse(raw_stdout)
"""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Optional, Type

from deptracker.exceptions import ParseError
from deptracker.models.dependency import Dependency, Ecosystem
from deptracker.constants import COMPOSER_OUTDATED_STATUSES
from deptracker.utils.logger import get_logger

logger = get_logger("parsers")

__all__ = [
    "OutputParser",
    "ComposerOutputParser",
    "NpmOutputParser",
    "PipOutputParser",
    "get_parser",
]


class OutputParser:
    """Base class for ecosystem output parsers."""

    ecosystem: Ecosystem

    def parse(self, raw_output: str) -> List[Dependency]:
        raise NotImplementedError

    def _build(
        self,
        name: Any,
        current: Any,
        latest: Any,
    ) -> Optional[Dependency]:
        """Create a dependency, or ``None`` when a field is empty."""
        try:
            return Dependency(str(name), str(current), str(latest), self.ecosystem)
        except ValueError as exc:
            logger.warning(
                "Skipping %s entry %r with empty fields: %s",
                self.ecosystem.value,
                name,
                exc,
            )
            return None


class ComposerOutputParser(OutputParser):
    """Parse ``composer outdated --format=json``.

    Composer reports packages under ``locked`` (or ``installed`` on older
    releases) and flags each with a ``latest-status``. Only entries whose
    status is ``update-possible`` are returned.
    """

    ecosystem = Ecosystem.COMPOSER

    def parse(self, raw_output: str) -> List[Dependency]:
        try:
            data = json.loads(raw_output)
        except ValueError as exc:
            logger.error("Failed to decode Composer JSON output: %s", exc)
            return []

        packages = self._package_list(data)
        if packages is None:
            logger.warning(
                'Composer output does not contain a "locked" or "installed" array'
            )
            return []

        dependencies: List[Dependency] = []
        for package in packages:
            if not isinstance(package, dict):
                logger.warning("Skipping non-object Composer entry: %r", package)
                continue

            if package.get("latest-status") not in COMPOSER_OUTDATED_STATUSES:
                continue

            if not all(package.get(key) for key in ("name", "version", "latest")):
                logger.warning("Skipping incomplete Composer entry: %r", package)
                continue

            dependency = self._build(
                package["name"], package["version"], package["latest"]
            )
            if dependency is not None:
                dependencies.append(dependency)

        return dependencies

    @staticmethod
    def _package_list(data: Any) -> Optional[List[Any]]:
        if not isinstance(data, dict):
            return None
        for key in ("locked", "installed"):
            packages = data.get(key)
            if isinstance(packages, list):
                return packages
        return None


class NpmOutputParser(OutputParser):
    """Parse ``npm outdated --json``.

    The payload maps package names to ``{"current", "wanted", "latest"}``.
    npm may print notices before the JSON, so decoding starts at the first
    ``{``. Packages without a ``current`` version (not installed) and
    packages already at ``latest`` are skipped.
    """

    ecosystem = Ecosystem.NPM

    def parse(self, raw_output: str) -> List[Dependency]:
        start = raw_output.find("{")
        if start == -1:
            logger.error('Could not find starting brace "{" in npm output')
            return []

        try:
            data = json.loads(raw_output[start:])
        except ValueError as exc:
            logger.error("Failed to decode npm JSON output: %s", exc)
            return []

        if not isinstance(data, dict):
            logger.error("npm output is not a JSON object")
            return []

        dependencies: List[Dependency] = []
        for name, package in data.items():
            if not isinstance(package, dict):
                logger.warning(
                    "Skipping non-object npm entry %s (%s)",
                    name,
                    type(package).__name__,
                )
                continue

            current = package.get("current")
            latest = package.get("latest")

            if not latest:
                logger.warning("Skipping npm entry %s missing 'latest': %r", name, package)
                continue

            if not current:
                logger.debug("Skipping npm entry %s missing 'current'", name)
                continue

            if current == latest:
                logger.debug("Skipping npm entry %s already at %s", name, latest)
                continue

            dependency = self._build(name, current, latest)
            if dependency is not None:
                dependencies.append(dependency)

        return dependencies


class PipOutputParser(OutputParser):
    """Parse ``pip list --outdated --format=json``.

    Raises:
        ParseError: The output is not valid JSON or not a JSON array.
    """

    ecosystem = Ecosystem.PIP

    def parse(self, raw_output: str) -> List[Dependency]:
        if not raw_output.strip():
            logger.info("pip output is empty, assuming no outdated packages")
            return []

        try:
            data = json.loads(raw_output)
        except ValueError as exc:
            logger.error("Failed to decode pip JSON output: %s", exc)
            raise ParseError(
                f"Failed to decode pip JSON output: {exc}",
                ecosystem=self.ecosystem.value,
                output_preview=raw_output,
            ) from exc

        if not isinstance(data, list):
            raise ParseError(
                "Decoded pip JSON output is not an array",
                ecosystem=self.ecosystem.value,
                output_preview=raw_output,
            )

        dependencies: List[Dependency] = []
        for item in data:
            if not isinstance(item, dict) or not all(
                item.get(key) for key in ("name", "version", "latest_version")
            ):
                logger.warning("Skipping pip entry with missing fields: %r", item)
                continue

            dependency = self._build(item["name"], item["version"], item["latest_version"])
            if dependency is not None:
                dependencies.append(dependency)

        return dependencies


_PARSERS: Mapping[Ecosystem, Type[OutputParser]] = {
    Ecosystem.COMPOSER: ComposerOutputParser,
    Ecosystem.NPM: NpmOutputParser,
    Ecosystem.PIP: PipOutputParser,
}


def get_parser(ecosystem: Ecosystem) -> OutputParser:
    """Return a parser instance for *ecosystem*."""
    return _PARSERS[ecosystem]()
