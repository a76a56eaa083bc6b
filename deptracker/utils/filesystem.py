"""
Filesystem utilities for deptracker.

deptracker never writes to disk; it only needs to locate and validate the
dependency manifest before a run. All filesystem problems are normalized
to :class:`~deptracker.exceptions.ManifestError`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union

from deptracker.utils.logger import get_logger
from deptracker.exceptions import ManifestError

logger = get_logger("filesystem")

PathLike = Union[str, Path]


def resolve_manifest_path(
    path: PathLike,
    *,
    workspace: Optional[PathLike] = None,
) -> Path:
    """Resolve a manifest path, optionally relative to a workspace root.

    Relative paths are joined onto *workspace* when one is given (e.g.
    ``GITHUB_WORKSPACE`` inside a CI job), otherwise onto the current
    directory.

    Args:
        path: Manifest path as configured.
        workspace: Optional directory that relative paths are anchored to.

    Returns:
        Absolute path to the manifest (not yet validated).
    """
    candidate = Path(path).expanduser()
    if not candidate.is_absolute() and workspace:
        candidate = Path(workspace) / str(path).lstrip("/")
    return candidate.resolve(strict=False)


def validate_manifest(path: PathLike) -> Path:
    """Ensure the manifest exists, is a regular file, and is readable.

    Args:
        path: Path to the dependency manifest.

    Returns:
        The resolved manifest path.

    Raises:
        ManifestError: The path is missing, not a file, or unreadable.
    """
    resolved = Path(path).resolve(strict=False)

    if not resolved.exists():
        raise ManifestError(
            f"Dependency file not found: {path}",
            file_path=str(resolved),
        )
    if not resolved.is_file():
        raise ManifestError(
            f"Dependency file is not a regular file: {path}",
            file_path=str(resolved),
        )
    if not os.access(resolved, os.R_OK):
        raise ManifestError(
            f"Dependency file is not readable: {path}",
            file_path=str(resolved),
        )

    logger.debug("Validated dependency file: %s", resolved)
    return resolved
