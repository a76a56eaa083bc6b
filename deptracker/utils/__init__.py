"""
Utility helpers for deptracker.

This package provides reusable utilities used across deptracker, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Manifest path helpers
- Async HTTP client utilities
- Version classification helpers

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from deptracker.utils.filesystem import resolve_manifest_path, validate_manifest

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from deptracker.utils.logger import (
    get_logger,
    resolve_log_level,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from deptracker.utils.console import (
    colorize_severity,
    colorize_status,
    print_error,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# HTTP utilities
# ---------------------------------------------------------------------------

from deptracker.utils.http import HTTPClient

# ---------------------------------------------------------------------------
# Version utilities
# ---------------------------------------------------------------------------

from deptracker.utils.version_utils import UpdateSeverity, classify, priority_for

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    # Console
    "print_error",
    "print_table",
    "print_success",
    "print_warning",
    "reconfigure_console",
    "colorize_severity",
    "colorize_status",
    # Logging
    "get_logger",
    "setup_logging",
    "resolve_log_level",
    # Filesystem
    "resolve_manifest_path",
    "validate_manifest",
    # HTTP
    "HTTPClient",
    # Version utilities
    "UpdateSeverity",
    "classify",
    "priority_for",
]
