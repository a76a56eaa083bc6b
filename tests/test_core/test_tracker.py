"""Unit tests for deptracker.core.tracker module.

Requests are served by :class:`httpx.MockTransport`, so the tests see the
exact JQL, headers and payloads that would reach Jira.
"""

from __future__ import annotations

import json
from typing import Callable, List
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from deptracker.core.tracker import (
    IssueRequest,
    JiraClient,
    TrackerIssue,
    build_search_jql,
)
from deptracker.exceptions import TrackerError
from deptracker.utils.http import HTTPClient

Handler = Callable[[httpx.Request], httpx.Response]


def _jira(handler: Handler, seen: List[httpx.Request], **kwargs) -> JiraClient:
    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http = HTTPClient(
        base_url="https://example.atlassian.net/rest/api/3/",
        transport=httpx.MockTransport(recording),
    )
    return JiraClient("https://example.atlassian.net", http_client=http, **kwargs)


def _request() -> IssueRequest:
    return IssueRequest(
        project_key="OPS",
        issue_type="Task",
        summary="Update Npm package lodash from 4.17.0 to 5.0.0",
        description={"type": "doc", "version": 1, "content": []},
        priority="Emergency",
        labels=("outdated-dependency", "npm"),
    )


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("deptracker.utils.http.asyncio.sleep", new=AsyncMock()):
        yield


@pytest.mark.unit
class TestBuildSearchJql:
    """Tests for build_search_jql."""

    def test_plain_summary(self) -> None:
        jql = build_search_jql("OPS", "Update Pip package requests from 2.30.0 to 2.31.0")

        assert jql == (
            'project = "OPS" AND summary ~ '
            '"\\"Update Pip package requests from 2.30.0 to 2.31.0\\"" '
            "ORDER BY created DESC"
        )

    def test_lucene_specials_escaped(self) -> None:
        """Test scoped names and version operators cannot break the query."""
        jql = build_search_jql("OPS", "@scope/pkg-a (1.0.0)")

        # "/" "-" "(" ")" get a Lucene backslash, which JQL then doubles
        assert 'summary ~ "\\"@scope\\\\/pkg\\\\-a \\\\(1.0.0\\\\)\\""' in jql

    def test_project_key_quoted(self) -> None:
        jql = build_search_jql('O"PS', "x")

        assert jql.startswith('project = "O\\"PS"')


@pytest.mark.unit
class TestTrackerIssue:
    """Tests for TrackerIssue.is_closed."""

    @pytest.mark.parametrize(
        "status,category,closed",
        [
            ("To Do", "new", False),
            ("In Progress", "indeterminate", False),
            ("Closed", None, True),
            ("Resolved", None, True),
            ("Shipped", "done", True),
            (None, None, False),
        ],
    )
    def test_is_closed(self, status, category, closed: bool) -> None:
        issue = TrackerIssue("OPS-1", "summary", status=status, status_category=category)

        assert issue.is_closed is closed


@pytest.mark.unit
class TestIssueRequest:
    """Tests for IssueRequest.to_payload."""

    def test_payload_shape(self) -> None:
        payload = _request().to_payload()

        assert payload == {
            "fields": {
                "project": {"key": "OPS"},
                "issuetype": {"name": "Task"},
                "summary": "Update Npm package lodash from 4.17.0 to 5.0.0",
                "description": {"type": "doc", "version": 1, "content": []},
                "priority": {"name": "Emergency"},
                "labels": ["outdated-dependency", "npm"],
            }
        }


@pytest.mark.unit
class TestJiraClientSearch:
    """Tests for JiraClient.search."""

    @pytest.mark.asyncio
    async def test_search_request_and_parsing(self) -> None:
        seen: List[httpx.Request] = []
        body = {
            "issues": [
                {
                    "key": "OPS-1",
                    "fields": {
                        "summary": "Update Npm package lodash from 4.17.0 to 5.0.0",
                        "status": {"name": "Done", "statusCategory": {"key": "done"}},
                    },
                },
                {"key": "OPS-2", "fields": {"summary": "Other", "status": {"name": "To Do"}}},
                {"key": "OPS-3", "fields": {}},
            ]
        }

        async with _jira(lambda r: httpx.Response(200, json=body), seen, max_results=5) as jira:
            issues = await jira.search("OPS", "Update Npm package lodash from 4.17.0 to 5.0.0")

        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/api/3/search/jql"
        assert request.url.params["fields"] == "summary,status"
        assert request.url.params["maxResults"] == "5"
        assert request.url.params["jql"].startswith('project = "OPS" AND summary ~')

        assert issues == [
            TrackerIssue(
                "OPS-1",
                "Update Npm package lodash from 4.17.0 to 5.0.0",
                status="Done",
                status_category="done",
            ),
            TrackerIssue("OPS-2", "Other", status="To Do", status_category=None),
        ]

    @pytest.mark.asyncio
    async def test_search_without_issues_field(self) -> None:
        async with _jira(lambda r: httpx.Response(200, json={}), []) as jira:
            assert await jira.search("OPS", "x") == []

    @pytest.mark.asyncio
    async def test_search_http_error(self) -> None:
        async with _jira(lambda r: httpx.Response(401, text="Unauthorized"), []) as jira:
            with pytest.raises(TrackerError) as exc_info:
                await jira.search("OPS", "x")

        assert exc_info.value.details["operation"] == "search"
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_search_dropped_connection(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.RemoteProtocolError("Server disconnected", request=request)

        async with _jira(handler, []) as jira:
            with pytest.raises(TrackerError) as exc_info:
                await jira.search("OPS", "x")

        assert exc_info.value.details["operation"] == "search"

    @pytest.mark.asyncio
    async def test_search_malformed_issues(self) -> None:
        async with _jira(lambda r: httpx.Response(200, json={"issues": "nope"}), []) as jira:
            with pytest.raises(TrackerError, match="malformed"):
                await jira.search("OPS", "x")

    @pytest.mark.asyncio
    async def test_search_invalid_json(self) -> None:
        async with _jira(lambda r: httpx.Response(200, text="<html>"), []) as jira:
            with pytest.raises(TrackerError):
                await jira.search("OPS", "x")


@pytest.mark.unit
class TestJiraClientCreate:
    """Tests for JiraClient.create_issue."""

    @pytest.mark.asyncio
    async def test_create_returns_key(self) -> None:
        seen: List[httpx.Request] = []

        async with _jira(lambda r: httpx.Response(201, json={"id": "1", "key": "OPS-9"}), seen) as jira:
            key = await jira.create_issue(_request())

        assert key == "OPS-9"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/rest/api/3/issue"
        assert json.loads(seen[0].content) == _request().to_payload()

    @pytest.mark.asyncio
    async def test_create_is_never_retried(self) -> None:
        """Test a failing POST is sent exactly once."""
        seen: List[httpx.Request] = []

        async with _jira(lambda r: httpx.Response(503), seen) as jira:
            with pytest.raises(TrackerError) as exc_info:
                await jira.create_issue(_request())

        assert len(seen) == 1
        assert exc_info.value.details["operation"] == "create"

    @pytest.mark.asyncio
    async def test_create_dropped_connection_sent_once(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.RemoteProtocolError("Server disconnected", request=request)

        async with _jira(handler, seen) as jira:
            with pytest.raises(TrackerError):
                await jira.create_issue(_request())

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_create_without_key(self) -> None:
        async with _jira(lambda r: httpx.Response(201, json={"id": "1"}), []) as jira:
            with pytest.raises(TrackerError, match="key not found"):
                await jira.create_issue(_request())


@pytest.mark.unit
class TestJiraClientConstruction:
    """Tests for the default HTTP client JiraClient builds."""

    def test_builds_authenticated_client(self) -> None:
        jira = JiraClient(
            "https://example.atlassian.net/",
            user_email="bot@example.com",
            api_token="token",
        )

        assert jira.http.base_url == "https://example.atlassian.net/rest/api/3/"
        assert jira.http.auth == ("bot@example.com", "token")
        assert jira.http.headers["Accept"] == "application/json"

    def test_without_credentials(self) -> None:
        jira = JiraClient("https://example.atlassian.net")

        assert jira.http.auth is None
