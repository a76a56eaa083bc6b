"""
Centralized constants for deptracker.

This module defines immutable configuration values used across deptracker,
including network settings, listing commands, ticket policy, and logging
formats. All values are intended to be treated as read-only.
"""

from typing import Final, FrozenSet, Mapping, Sequence, Tuple

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = (
    "deptracker/{version} (https://github.com/deptracker/deptracker)"
)

# ---------------------------------------------------------------------------
# Jira endpoints
# ---------------------------------------------------------------------------

#: REST API prefix appended to the configured Jira base URL.
JIRA_API_PREFIX: Final[str] = "/rest/api/3/"

#: Enhanced JQL search endpoint (relative to :data:`JIRA_API_PREFIX`).
JIRA_SEARCH_ENDPOINT: Final[str] = "search/jql"

#: Issue creation endpoint (relative to :data:`JIRA_API_PREFIX`).
JIRA_ISSUE_ENDPOINT: Final[str] = "issue"

#: Fields requested from the search endpoint.
JIRA_SEARCH_FIELDS: Final[str] = "summary,status"

#: Default number of candidate issues fetched per duplicate search.
DEFAULT_MAX_RESULTS: Final[int] = 20

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

# ---------------------------------------------------------------------------
# Subprocess configuration
# ---------------------------------------------------------------------------

#: Timeout (seconds) for package-manager listing commands.
DEFAULT_COMMAND_TIMEOUT: Final[float] = 300.0

#: Fixed "list outdated" command per ecosystem.
OUTDATED_COMMANDS: Final[Mapping[str, Sequence[str]]] = {
    "composer": ("composer", "outdated", "--format=json"),
    "npm": ("npm", "outdated", "--json"),
    "pip": ("pip", "list", "--outdated", "--format=json"),
}

#: Manifest file name for each ecosystem.
MANIFEST_FILES: Final[Mapping[str, str]] = {
    "composer": "composer.json",
    "npm": "package.json",
    "pip": "requirements.txt",
}

#: npm error codes that indicate a registry or network failure.
NPM_REGISTRY_ERROR_CODES: Final[Tuple[str, ...]] = (
    "code E404",
    "code ENOTFOUND",
    "code ECONNREFUSED",
    "code ETIMEDOUT",
    "code EAI_AGAIN",
)

#: Composer ``latest-status`` values that mark a package as outdated.
COMPOSER_OUTDATED_STATUSES: Final[FrozenSet[str]] = frozenset({"update-possible"})

# ---------------------------------------------------------------------------
# Ticket policy
# ---------------------------------------------------------------------------

#: Jira priority name for each update severity.
SEVERITY_PRIORITIES: Final[Mapping[str, str]] = {
    "MAJOR": "Emergency",
    "MINOR": "High",
    "PATCH": "Medium",
    "UNKNOWN": "Low",
}

#: Label attached to every ticket created by deptracker.
TICKET_LABEL: Final[str] = "outdated-dependency"

#: Summary template shared by ticket creation and duplicate search.
SUMMARY_TEMPLATE: Final[str] = "Update {ecosystem} package {name} from {current} to {latest}"

#: Remediation sentence placed at the end of every ticket body.
REMEDIATION_TEXT: Final[str] = "Please update the package and test accordingly."

#: Status names treated as closed regardless of status category.
CLOSED_STATUS_NAMES: Final[FrozenSet[str]] = frozenset({"closed", "resolved"})

#: Status category keys treated as closed.
CLOSED_STATUS_CATEGORIES: Final[FrozenSet[str]] = frozenset({"done"})

# ---------------------------------------------------------------------------
# Configuration defaults
# ---------------------------------------------------------------------------

#: Default Jira issue type for created tickets.
DEFAULT_ISSUE_TYPE: Final[str] = "Task"

#: Dry-run is off unless explicitly requested.
DEFAULT_DRY_RUN: Final[bool] = False

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
