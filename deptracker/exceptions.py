"""
Custom exception hierarchy for deptracker.

This module defines structured exception types used across deptracker.
All exceptions inherit from :class:`DepTrackerError` and support optional
structured metadata via the ``details`` attribute to improve diagnostics
and logging.

Run-level failures (bad manifest, unsupported ecosystem, failing listing
command, unparseable pip output) propagate to the CLI. Tracker failures
are raised by the client and converted into per-dependency outcomes by
the reconciliation engine.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional, Sequence


class DepTrackerError(Exception):
    """Base exception for all deptracker errors.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


def _truncate(text: str, max_length: int = 200) -> str:
    """Truncate long text for safe logging or error reporting."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


class ConfigError(DepTrackerError):
    """Raised when configuration is missing, malformed, or invalid.

    Args:
        message: Error description.
        config_path: Configuration file involved, if any.
        option: Name of the offending option, if any.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "config", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option


class ManifestError(DepTrackerError):
    """Raised when the dependency manifest is missing or unreadable.

    Args:
        message: Error description.
        file_path: Path to the manifest.
    """

    __slots__ = ("file_path",)

    def __init__(self, message: str, *, file_path: Optional[str] = None) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)

        super().__init__(message, details)

        self.file_path = file_path


class UnsupportedManifestError(ManifestError):
    """Raised when a manifest file name maps to no known ecosystem."""


class CommandError(DepTrackerError):
    """Raised when a package-manager listing command fails.

    Args:
        message: Error description.
        command: Command and arguments that were executed.
        exit_code: Process exit code, if the process ran.
        stderr: Captured standard error, truncated for safety.
    """

    __slots__ = ("command", "exit_code", "stderr")

    def __init__(
        self,
        message: str,
        *,
        command: Optional[Sequence[str]] = None,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        if command is not None:
            details["command"] = " ".join(command)
        _add_if(details, "exit_code", exit_code)
        if stderr:
            details["stderr"] = _truncate(stderr.strip())

        super().__init__(message, details)

        self.command = list(command) if command is not None else None
        self.exit_code = exit_code
        self.stderr = stderr


class ParseError(DepTrackerError):
    """Raised when package-manager output cannot be decoded.

    Args:
        message: Error description.
        ecosystem: Ecosystem whose output was being parsed.
        output_preview: Beginning of the raw output.
    """

    __slots__ = ("ecosystem", "output_preview")

    def __init__(
        self,
        message: str,
        *,
        ecosystem: Optional[str] = None,
        output_preview: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "ecosystem", ecosystem)
        if output_preview is not None:
            details["output"] = _truncate(output_preview)

        super().__init__(message, details)

        self.ecosystem = ecosystem
        self.output_preview = output_preview


class NetworkError(DepTrackerError):
    """Raised when HTTP or network operations fail.

    Args:
        message: Error description.
        url: URL being accessed.
        status_code: HTTP status code, if available.
        response_body: Raw response body, truncated for safety.
    """

    __slots__ = ("url", "status_code", "response_body")

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "url", url)
        _add_if(details, "status_code", status_code)

        if response_body is not None:
            details["response"] = _truncate(response_body)

        super().__init__(message, details)

        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class TrackerError(NetworkError):
    """Raised for failures related to the issue tracker API.

    Args:
        message: Error description.
        operation: Tracker operation that failed (``search`` / ``create``).
        **kwargs: Additional arguments forwarded to ``NetworkError``.
    """

    __slots__ = ("operation",)

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)

        self.operation = operation
        if operation is not None:
            self.details["operation"] = operation
