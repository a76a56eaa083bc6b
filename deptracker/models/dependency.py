"""
Canonical dependency model for deptracker.

Every package manager reports outdated packages in its own shape. The
parsers in :mod:`deptracker.core.parsers` normalize those shapes into
:class:`Dependency` records tagged with an :class:`Ecosystem`.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from dataclasses import dataclass
from typing import Tuple, Union

from deptracker.exceptions import UnsupportedManifestError
from deptracker.constants import (
    MANIFEST_FILES,
    OUTDATED_COMMANDS,
    SUMMARY_TEMPLATE,
)


class Ecosystem(str, Enum):
    """Supported package-management toolchains."""

    COMPOSER = "composer"
    NPM = "npm"
    PIP = "pip"

    @property
    def label(self) -> str:
        """Capitalized name used in ticket summaries (``Composer``, ``Npm``)."""
        return self.value.capitalize()

    @property
    def manifest_name(self) -> str:
        """File name of the manifest that selects this ecosystem."""
        return MANIFEST_FILES[self.value]

    @property
    def outdated_command(self) -> Tuple[str, ...]:
        """Fixed command listing outdated packages as JSON."""
        return tuple(OUTDATED_COMMANDS[self.value])

    @classmethod
    def from_manifest(cls, path: Union[str, Path]) -> "Ecosystem":
        """Select the ecosystem strictly by manifest file name.

        Args:
            path: Path to ``composer.json``, ``package.json`` or
                ``requirements.txt``.

        Returns:
            The matching :class:`Ecosystem`.

        Raises:
            UnsupportedManifestError: The file name is not recognized.
        """
        file_name = Path(path).name
        for ecosystem in cls:
            if ecosystem.manifest_name == file_name:
                return ecosystem

        supported = ", ".join(f"'{e.manifest_name}'" for e in cls)
        raise UnsupportedManifestError(
            f"Unsupported dependency file: {file_name}. Only {supported} are supported",
            file_path=str(path),
        )


@dataclass(frozen=True)
class Dependency:
    """An outdated direct dependency reported by a package manager.

    Versions are kept exactly as reported; they are not required to be
    valid semantic versions.

    Attributes:
        name: Ecosystem-scoped package identifier (e.g. ``@scope/pkg``).
        current_version: Version installed or locked by the project.
        latest_version: Latest version known to the registry.
        ecosystem: Toolchain that reported the dependency.
    """

    name: str
    current_version: str
    latest_version: str
    ecosystem: Ecosystem

    def __post_init__(self) -> None:
        for attr in ("name", "current_version", "latest_version"):
            value = getattr(self, attr)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Dependency.{attr} must be a non-empty string")
        # Accept plain strings such as "npm"
        if not isinstance(self.ecosystem, Ecosystem):
            object.__setattr__(self, "ecosystem", Ecosystem(self.ecosystem))

    @property
    def summary(self) -> str:
        """Canonical ticket summary identifying this update."""
        return SUMMARY_TEMPLATE.format(
            ecosystem=self.ecosystem.label,
            name=self.name,
            current=self.current_version,
            latest=self.latest_version,
        )

    def to_json(self) -> dict:
        """Return a JSON-serializable representation."""
        return {
            "name": self.name,
            "current_version": self.current_version,
            "latest_version": self.latest_version,
            "ecosystem": self.ecosystem.value,
        }
