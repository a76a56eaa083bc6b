"""Configuration loader for deptracker.

Handles discovery, loading, parsing, and validation of run settings.
Supports two file formats:

- ``deptracker.toml``: settings under ``[deptracker]`` table
- ``pyproject.toml``: settings under ``[tool.deptracker]`` table

Discovery order:

1. Explicit path from ``--config`` or ``DEPTRACKER_CONFIG``
2. ``deptracker.toml`` in current directory
3. ``pyproject.toml`` with ``[tool.deptracker]`` section

Configuration precedence: defaults < config file < environment < CLI args.

The environment variables mirror the inputs of the CI action that runs
deptracker: ``JIRA_URL``, ``JIRA_USER_EMAIL``, ``JIRA_API_TOKEN``,
``JIRA_PROJECT_KEY``, ``JIRA_ISSUE_TYPE``, ``DRY_RUN`` and ``PACKAGES``
(space-separated allow-list). The API token is only ever read from the
environment, never from a file.

Typical usage::

    settings = load_config()                     # defaults + file
    settings = apply_environment(settings)       # + environment
    settings = settings.merged(dry_run=True)     # + CLI
    settings.validate()

Example (``deptracker.toml``)::

    [deptracker]
    jira_url = "https://example.atlassian.net"
    project_key = "OPS"
    issue_type = "Task"
    packages = ["symfony/console", "lodash"]
"""

from __future__ import annotations

import os
import tomli as tomllib
from pathlib import Path
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from deptracker.exceptions import ConfigError
from deptracker.utils.logger import get_logger
from deptracker.constants import (
    DEFAULT_DRY_RUN,
    DEFAULT_ISSUE_TYPE,
    DEFAULT_MAX_RESULTS,
)

logger = get_logger("config")

#: Environment variable → settings field.
ENVIRONMENT_VARIABLES: Dict[str, str] = {
    "JIRA_URL": "jira_url",
    "JIRA_USER_EMAIL": "user_email",
    "JIRA_API_TOKEN": "api_token",
    "JIRA_PROJECT_KEY": "project_key",
    "JIRA_ISSUE_TYPE": "issue_type",
    "DRY_RUN": "dry_run",
    "PACKAGES": "packages",
}

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass
class TrackerSettings:
    """Validated settings for one deptracker run.

    Attributes:
        jira_url: Jira site URL.
        user_email: Account email used for Basic auth.
        api_token: API token used for Basic auth (environment only).
        project_key: Project that tickets are searched in and created in.
        issue_type: Issue type name for created tickets.
        dry_run: Search only; never create tickets.
        packages: Optional allow-list of package names to process.
        max_results: Candidate issues fetched per duplicate search.
        source_path: Path to loaded config file, or ``None``.
    """

    jira_url: Optional[str] = None
    user_email: Optional[str] = None
    api_token: Optional[str] = field(default=None, repr=False)
    project_key: Optional[str] = None
    issue_type: str = DEFAULT_ISSUE_TYPE
    dry_run: bool = DEFAULT_DRY_RUN
    packages: Tuple[str, ...] = ()
    max_results: int = DEFAULT_MAX_RESULTS

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def merged(self, **overrides: Any) -> "TrackerSettings":
        """Return a copy with every non-``None`` override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if "packages" in changes:
            changes["packages"] = tuple(changes["packages"])
        return replace(self, **changes)

    def validate(self) -> "TrackerSettings":
        """Check that the settings are sufficient for a run.

        ``jira_url`` and ``project_key`` are always required because
        duplicate detection searches the tracker even in dry-run mode.
        Credentials and issue type are only required when tickets may
        actually be created.

        Returns:
            ``self``, for chaining.

        Raises:
            ConfigError: A required setting is missing or invalid.
        """
        required = ["jira_url", "project_key"]
        if not self.dry_run:
            required += ["user_email", "api_token", "issue_type"]

        missing = [name for name in required if not getattr(self, name)]
        if missing:
            raise ConfigError(
                f"Missing required settings: {', '.join(missing)}",
                config_path=str(self.source_path) if self.source_path else None,
            )

        if not str(self.jira_url).startswith(("http://", "https://")):
            raise ConfigError(
                f"jira_url must be an http(s) URL, got {self.jira_url!r}",
                option="jira_url",
            )

        if self.max_results <= 0:
            raise ConfigError(
                f"max_results must be positive, got {self.max_results}",
                option="max_results",
            )

        return self

    def to_log_dict(self) -> Dict[str, Any]:
        """Return settings for debug logging, with the API token masked."""
        return {
            "jira_url": self.jira_url,
            "user_email": self.user_email,
            "api_token": "***" if self.api_token else None,
            "project_key": self.project_key,
            "issue_type": self.issue_type,
            "dry_run": self.dry_run,
            "packages": list(self.packages),
            "max_results": self.max_results,
        }


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Search order:

    1. ``explicit_path`` (from ``--config`` or ``DEPTRACKER_CONFIG``)
    2. ``deptracker.toml`` in current directory
    3. ``pyproject.toml`` with ``[tool.deptracker]`` section in current directory

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    deptracker_toml = cwd / "deptracker.toml"
    if deptracker_toml.is_file():
        logger.debug("Found deptracker.toml: %s", deptracker_toml)
        return deptracker_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.is_file() and _pyproject_has_deptracker_section(pyproject_toml):
        logger.debug("Found [tool.deptracker] in pyproject.toml: %s", pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found")
    return None


def _pyproject_has_deptracker_section(path: Path) -> bool:
    """Check if pyproject.toml contains a [tool.deptracker] section.

    Parse errors are ignored so that a broken pyproject.toml simply
    falls back to defaults.
    """
    try:
        raw = _read_toml(path)
    except ConfigError:
        return False
    return "deptracker" in raw.get("tool", {})


def load_config(config_path: Optional[Path] = None) -> TrackerSettings:
    """Load and validate deptracker settings from a configuration file.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        :class:`TrackerSettings` with values from file or defaults. The
        result is type-checked but not yet validated for completeness;
        call :meth:`TrackerSettings.validate` once all sources are merged.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return TrackerSettings()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == "pyproject.toml":
        section = raw.get("tool", {}).get("deptracker", {})
    else:
        section = raw.get("deptracker", {})

    if not section:
        logger.debug("Config file found but no deptracker section; using defaults")
        return TrackerSettings(source_path=resolved)

    settings = _parse_section(section, config_path=str(resolved))
    settings.source_path = resolved

    logger.debug("Loaded configuration: %s", settings.to_log_dict())
    return settings


def apply_environment(
    settings: TrackerSettings,
    environ: Optional[Mapping[str, str]] = None,
) -> TrackerSettings:
    """Overlay environment variables onto *settings*.

    Empty variables are ignored.

    Args:
        settings: Settings loaded from defaults and config file.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        A new :class:`TrackerSettings` with environment values applied.
    """
    env = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}

    for variable, name in ENVIRONMENT_VARIABLES.items():
        value = env.get(variable, "").strip()
        if not value:
            continue
        if name == "dry_run":
            overrides[name] = value.lower() in _TRUE_VALUES
        elif name == "packages":
            overrides[name] = tuple(value.split())
        else:
            overrides[name] = value

    if overrides:
        logger.debug("Environment overrides: %s", sorted(overrides))
    return settings.merged(**overrides)


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or contains invalid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> TrackerSettings:
    """Parse and validate the ``[deptracker]`` or ``[tool.deptracker]`` table.

    Rejects unknown keys and type mismatches. ``api_token`` is rejected
    outright so secrets never end up in committed files.

    Raises:
        ConfigError: Unknown keys or incorrect types.
    """
    known = {f.name for f in fields(TrackerSettings)} - {"source_path", "api_token"}

    if "api_token" in section:
        raise ConfigError(
            "api_token must not be stored in a configuration file; "
            "set JIRA_API_TOKEN instead",
            config_path=config_path,
            option="api_token",
        )

    unknown = set(section.keys()) - known
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=config_path,
        )

    values: Dict[str, Any] = {}

    for name in ("jira_url", "user_email", "project_key", "issue_type"):
        if name in section:
            val = section[name]
            if not isinstance(val, str):
                raise ConfigError(
                    f"{name} must be a string, got {type(val).__name__}",
                    config_path=config_path,
                    option=name,
                )
            values[name] = val

    if "dry_run" in section:
        val = section["dry_run"]
        if not isinstance(val, bool):
            raise ConfigError(
                f"dry_run must be a boolean, got {type(val).__name__}",
                config_path=config_path,
                option="dry_run",
            )
        values["dry_run"] = val

    if "packages" in section:
        val = section["packages"]
        if not isinstance(val, list) or not all(isinstance(item, str) for item in val):
            raise ConfigError(
                "packages must be a list of strings",
                config_path=config_path,
                option="packages",
            )
        values["packages"] = tuple(val)

    if "max_results" in section:
        val = section["max_results"]
        # bool is a subclass of int
        if not isinstance(val, int) or isinstance(val, bool):
            raise ConfigError(
                f"max_results must be an integer, got {type(val).__name__}",
                config_path=config_path,
                option="max_results",
            )
        values["max_results"] = val

    return TrackerSettings(**values)
