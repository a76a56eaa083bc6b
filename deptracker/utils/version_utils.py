"""
Version comparison utilities for deptracker.

This module classifies how large an update is and maps that severity to
a tracker priority. Version strings come straight from package managers
and are frequently not strict semantic versions (``dev-main``,
``1.2``, ``v5.4.38``); anything outside ``MAJOR.MINOR.PATCH`` degrades
to :attr:`UpdateSeverity.UNKNOWN` rather than raising.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Tuple

from packaging.version import InvalidVersion, Version, parse

from deptracker.constants import SEVERITY_PRIORITIES
from deptracker.utils.logger import get_logger

logger = get_logger("version_utils")

_SEMVER_CORE = re.compile(r"^\d+\.\d+\.\d+$")


class UpdateSeverity(str, Enum):
    """How disruptive an update from one version to another is expected to be."""

    MAJOR = "MAJOR"
    MINOR = "MINOR"
    PATCH = "PATCH"
    UNKNOWN = "UNKNOWN"


def classify(current_version: str, latest_version: str) -> UpdateSeverity:
    """Determine the semantic update severity between two versions.

    Both strings are normalized by stripping a leading ``v`` and any
    ``-``-delimited pre-release or build suffix. Only ``X.Y.Z`` versions
    are classified; everything else, and any pair where *latest* is not
    strictly newer than *current*, is ``UNKNOWN``.

    Args:
        current_version: Version currently in use.
        latest_version: Version available upstream.

    Returns:
        The :class:`UpdateSeverity` of the update.

    Examples:
        >>> classify("1.0.0", "2.0.0")
        <UpdateSeverity.MAJOR: 'MAJOR'>
        >>> classify("v5.4.38", "v5.4.39")
        <UpdateSeverity.PATCH: 'PATCH'>
        >>> classify("1.0.0", "0.9.0")
        <UpdateSeverity.UNKNOWN: 'UNKNOWN'>
    """
    current = normalize_version(current_version)
    latest = normalize_version(latest_version)

    if not _SEMVER_CORE.match(current) or not _SEMVER_CORE.match(latest):
        logger.debug(
            "Non-semver versions %r -> %r (newer: %s); severity unknown",
            current_version,
            latest_version,
            _is_newer(current, latest),
        )
        return UpdateSeverity.UNKNOWN

    if not _is_newer(current, latest):
        return UpdateSeverity.UNKNOWN

    current_major, current_minor, _ = _split(current)
    latest_major, latest_minor, _ = _split(latest)

    if current_major != latest_major:
        return UpdateSeverity.MAJOR

    if current_minor != latest_minor:
        return UpdateSeverity.MINOR

    return UpdateSeverity.PATCH


def priority_for(severity: UpdateSeverity) -> str:
    """Return the tracker priority name for *severity*."""
    return SEVERITY_PRIORITIES[severity.value]


def normalize_version(value: str) -> str:
    """Strip a leading ``v`` and any ``-``-delimited suffix from *value*."""
    core = value.strip().split("-", 1)[0]
    return core.lstrip("v")


def _is_newer(current: str, latest: str) -> Optional[bool]:
    """Return whether *latest* orders after *current*, or ``None`` if unparseable."""
    try:
        return _parse_version(latest) > _parse_version(current)
    except InvalidVersion:
        return None


def _parse_version(value: str) -> Version:
    """Parse a version string into a PEP 440 Version object."""
    parsed = parse(value)
    if not isinstance(parsed, Version):
        raise InvalidVersion(value)
    return parsed


def _split(value: str) -> Tuple[int, int, int]:
    """Split a normalized ``X.Y.Z`` string into integers."""
    major, minor, patch = (int(part) for part in value.split("."))
    return major, minor, patch
