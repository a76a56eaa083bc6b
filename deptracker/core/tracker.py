"""Issue tracker client for deptracker.

The reconciliation engine depends only on the :class:`IssueTracker`
protocol: a fuzzy text search scoped to a project, and issue creation.
:class:`JiraClient` implements it against the Jira Cloud REST API v3.

Both operations raise :class:`~deptracker.exceptions.TrackerError` on any
failure (transport error, non-success status, undecodable body), so the
engine has a single failure signal to react to.

Typical usage::

    async with JiraClient(
        "https://example.atlassian.net",
        user_email="bot@example.com",
        api_token=token,
    ) as jira:
        issues = await jira.search("OPS", "Update Npm package left-pad from 1.0.0 to 1.1.0")
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from deptracker.exceptions import NetworkError, TrackerError
from deptracker.utils.http import HTTPClient, decode_json_object
from deptracker.utils.logger import get_logger
from deptracker.constants import (
    CLOSED_STATUS_CATEGORIES,
    CLOSED_STATUS_NAMES,
    DEFAULT_MAX_RESULTS,
    JIRA_API_PREFIX,
    JIRA_ISSUE_ENDPOINT,
    JIRA_SEARCH_ENDPOINT,
    JIRA_SEARCH_FIELDS,
)

logger = get_logger("tracker")

__all__ = [
    "IssueRequest",
    "IssueTracker",
    "JiraClient",
    "TrackerIssue",
    "build_search_jql",
]

# Characters with special meaning in Jira's Lucene text search
_LUCENE_SPECIAL = re.compile(r'([+\-!(){}\[\]^"~*?:\\/&|])')


@dataclass(frozen=True)
class TrackerIssue:
    """A search hit returned by the tracker.

    Attributes:
        key: Issue key (e.g. ``OPS-42``).
        summary: Issue summary as stored by the tracker.
        status: Workflow status name, if reported.
        status_category: Status category key (``new``, ``indeterminate``,
            ``done``), if reported.
    """

    key: str
    summary: str
    status: Optional[str] = None
    status_category: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        """Whether the issue is closed, resolved, or in the done category."""
        if self.status and self.status.strip().lower() in CLOSED_STATUS_NAMES:
            return True
        if self.status_category and self.status_category.strip().lower() in CLOSED_STATUS_CATEGORIES:
            return True
        return False


@dataclass(frozen=True)
class IssueRequest:
    """Everything needed to create one ticket."""

    project_key: str
    issue_type: str
    summary: str
    description: Dict[str, Any]
    priority: str
    labels: Tuple[str, ...] = field(default_factory=tuple)

    def to_payload(self) -> Dict[str, Any]:
        """Return the Jira ``POST /issue`` request body."""
        return {
            "fields": {
                "project": {"key": self.project_key},
                "issuetype": {"name": self.issue_type},
                "summary": self.summary,
                "description": self.description,
                "priority": {"name": self.priority},
                "labels": list(self.labels),
            }
        }


class IssueTracker(Protocol):
    """Capability consumed by the reconciliation engine."""

    async def search(self, project_key: str, query_text: str) -> List[TrackerIssue]:
        ...

    async def create_issue(self, request: IssueRequest) -> str:
        ...


def build_search_jql(project_key: str, text: str) -> str:
    """Build a JQL query matching issues whose summary contains *text*.

    The text is searched as a quoted phrase with Lucene operators escaped,
    then quoted once more as a JQL string literal, so
    ``a/b`` is sent to Jira as ``summary ~ "\\"a\\\\/b\\""``.
    """
    phrase = _LUCENE_SPECIAL.sub(r"\\\1", text)
    return (
        f'project = "{_jql_literal(project_key)}" '
        f'AND summary ~ "\\"{_jql_literal(phrase)}\\"" '
        "ORDER BY created DESC"
    )


def _jql_literal(value: str) -> str:
    """Escape backslashes and double quotes for a JQL string literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


class JiraClient:
    """Jira Cloud REST v3 implementation of :class:`IssueTracker`.

    Args:
        base_url: Jira site URL, e.g. ``https://example.atlassian.net``.
        user_email: Account email for Basic auth.
        api_token: API token for Basic auth.
        max_results: Candidate issues fetched per search.
        http_client: Pre-built :class:`HTTPClient` (mainly for tests).
    """

    def __init__(
        self,
        base_url: str,
        *,
        user_email: Optional[str] = None,
        api_token: Optional[str] = None,
        max_results: int = DEFAULT_MAX_RESULTS,
        http_client: Optional[HTTPClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.max_results = max_results

        if http_client is None:
            auth: Optional[Tuple[str, str]] = None
            if user_email and api_token:
                auth = (user_email, api_token)
            else:
                logger.debug("Jira credentials not provided; sending anonymous requests")
            http_client = HTTPClient(
                base_url=self.base_url + JIRA_API_PREFIX,
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                auth=auth,
            )
        self.http = http_client

    async def __aenter__(self) -> "JiraClient":
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.close()

    # ------------------------------------------------------------------
    # IssueTracker
    # ------------------------------------------------------------------

    async def search(self, project_key: str, query_text: str) -> List[TrackerIssue]:
        """Search *project_key* for issues whose summary matches *query_text*.

        Raises:
            TrackerError: The request failed or the body is undecodable.
        """
        jql = build_search_jql(project_key, query_text)
        params = {
            "jql": jql,
            "fields": JIRA_SEARCH_FIELDS,
            "maxResults": self.max_results,
        }

        try:
            response = await self.http.get(JIRA_SEARCH_ENDPOINT, params=params)
            data = decode_json_object(response, JIRA_SEARCH_ENDPOINT)
        except NetworkError as exc:
            logger.warning("Jira search failed: %s (jql: %s)", exc, jql)
            raise TrackerError(
                f"Jira search failed: {exc.message}",
                operation="search",
                url=exc.url,
                status_code=exc.status_code,
                response_body=exc.response_body,
            ) from exc

        raw_issues = data.get("issues", [])
        if not isinstance(raw_issues, list):
            raise TrackerError(
                "Jira search response has a malformed 'issues' field",
                operation="search",
                status_code=response.status_code,
                response_body=response.text,
            )

        issues = _parse_issues(raw_issues)
        logger.debug("Jira search returned %d issue(s) for jql: %s", len(issues), jql)
        return issues

    async def create_issue(self, request: IssueRequest) -> str:
        """Create an issue and return its key.

        The request is never retried: a replayed POST could create a
        second ticket.

        Raises:
            TrackerError: Creation failed or the response carries no key.
        """
        try:
            response = await self.http.post(
                JIRA_ISSUE_ENDPOINT,
                json=request.to_payload(),
                retries=0,
            )
            data = decode_json_object(response, JIRA_ISSUE_ENDPOINT)
        except NetworkError as exc:
            raise TrackerError(
                f"Jira issue creation failed: {exc.message}",
                operation="create",
                url=exc.url,
                status_code=exc.status_code,
                response_body=exc.response_body,
            ) from exc

        key = data.get("key")
        if not isinstance(key, str) or not key:
            raise TrackerError(
                "Jira issue created but key not found in response",
                operation="create",
                status_code=response.status_code,
                response_body=response.text,
            )
        return key


def _parse_issues(raw_issues: Sequence[Any]) -> List[TrackerIssue]:
    """Convert raw search hits, dropping entries without key or summary."""
    issues: List[TrackerIssue] = []
    for raw in raw_issues:
        if not isinstance(raw, dict):
            continue
        fields = raw.get("fields") or {}
        key = raw.get("key")
        summary = fields.get("summary") if isinstance(fields, dict) else None
        if not isinstance(key, str) or not isinstance(summary, str):
            logger.debug("Ignoring search hit without key/summary: %r", raw)
            continue

        status = fields.get("status") or {}
        status_name: Optional[str] = None
        category: Optional[str] = None
        if isinstance(status, dict):
            status_name = status.get("name")
            status_category = status.get("statusCategory") or {}
            if isinstance(status_category, dict):
                category = status_category.get("key") or status_category.get("name")

        issues.append(
            TrackerIssue(
                key=key,
                summary=summary,
                status=status_name,
                status_category=category,
            )
        )
    return issues
