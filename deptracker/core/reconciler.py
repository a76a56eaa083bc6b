"""Ticket reconciliation engine for deptracker.

Given one outdated :class:`~deptracker.models.Dependency`, the engine
decides whether the tracker already holds a ticket for that update,
whether a new ticket must be created, or whether the run has to skip
the dependency. Ticket creation is neither transactional nor idempotent
and the tracker's search index may lag behind writes, so the engine
leans towards *not* creating:

1. **Run-scoped cache**: every canonical summary is resolved at most
   once per run. Later dependencies with the same summary reuse the
   first outcome without touching the network.
2. **Fuzzy search, exact logical match**: the tracker is searched with
   a phrase query, then candidates are compared after normalization
   (case-folding, punctuation and whitespace collapsing) so edits made
   by humans or by the tracker do not hide an existing ticket.
3. **Closed tickets are reused**: a closed or resolved ticket for the
   same update is referenced rather than duplicated.
4. **Search failure skips creation**: when the search cannot be
   trusted, the dependency is reported as unverifiable instead of
   risking a duplicate.

Typical usage::

    async with JiraClient(settings.jira_url, ...) as jira:
        engine = ReconciliationEngine(jira, settings)
        outcome = await engine.resolve(dependency)
"""

from __future__ import annotations

import re
import asyncio
from typing import Any, Dict, Iterator, List, Optional

from deptracker.config import TrackerSettings
from deptracker.exceptions import DepTrackerError
from deptracker.models.dependency import Dependency
from deptracker.models.outcome import ReconciliationOutcome
from deptracker.core.tracker import IssueRequest, IssueTracker, TrackerIssue
from deptracker.constants import REMEDIATION_TEXT, TICKET_LABEL
from deptracker.utils.logger import get_logger
from deptracker.utils.version_utils import UpdateSeverity, classify, priority_for

logger = get_logger("reconciler")

__all__ = [
    "ReconciliationEngine",
    "TicketCache",
    "build_description",
    "normalize_summary",
]

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_summary(summary: str) -> str:
    """Reduce a summary to its logical form for comparison.

    Lower-cases the text, collapses every run of non-alphanumeric
    characters into a single space, and trims the result.

    Example::

        >>> normalize_summary("Update  NPM package @scope/pkg from 1.0.0 to 2.0.0 ")
        'update npm package scope pkg from 1 0 0 to 2 0 0'
    """
    return _NON_ALNUM.sub(" ", summary.lower()).strip()


class TicketCache:
    """Outcomes resolved during one run, keyed by canonical summary.

    Each summary gets its own :class:`asyncio.Lock` so that concurrent
    resolutions of the same summary are serialized while unrelated
    summaries proceed independently.
    """

    def __init__(self) -> None:
        self._outcomes: Dict[str, ReconciliationOutcome] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, summary: str) -> Optional[ReconciliationOutcome]:
        return self._outcomes.get(summary)

    def put(self, summary: str, outcome: ReconciliationOutcome) -> ReconciliationOutcome:
        self._outcomes[summary] = outcome
        return outcome

    def lock_for(self, summary: str) -> asyncio.Lock:
        lock = self._locks.get(summary)
        if lock is None:
            lock = self._locks[summary] = asyncio.Lock()
        return lock

    def __contains__(self, summary: object) -> bool:
        return summary in self._outcomes

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[str]:
        return iter(self._outcomes)


def build_description(dependency: Dependency, severity: UpdateSeverity) -> Dict[str, Any]:
    """Build the Atlassian Document Format body for a new ticket."""

    def paragraph(*content: Dict[str, Any]) -> Dict[str, Any]:
        return {"type": "paragraph", "content": list(content)}

    def text(value: str, *, strong: bool = False) -> Dict[str, Any]:
        node: Dict[str, Any] = {"type": "text", "text": value}
        if strong:
            node["marks"] = [{"type": "strong"}]
        return node

    ecosystem = dependency.ecosystem.value
    return {
        "type": "doc",
        "version": 1,
        "content": [
            paragraph(
                text(f"The {ecosystem} package "),
                text(dependency.name, strong=True),
                text(" is outdated."),
            ),
            paragraph(text(f"Current version: {dependency.current_version}")),
            paragraph(text(f"Latest version: {dependency.latest_version}")),
            paragraph(text(f"Update type: {severity.value}")),
            paragraph(text(REMEDIATION_TEXT)),
        ],
    }


class ReconciliationEngine:
    """Ensure at most one tracker ticket per outdated dependency update.

    The engine owns its :class:`TicketCache`; create one engine per run.

    Args:
        tracker: Issue tracker capability (search + create).
        settings: Validated run settings (project, issue type, dry-run).
        cache: Optional pre-built cache (mainly for tests).
    """

    def __init__(
        self,
        tracker: IssueTracker,
        settings: TrackerSettings,
        cache: Optional[TicketCache] = None,
    ) -> None:
        self.tracker = tracker
        self.settings = settings
        self.cache = cache if cache is not None else TicketCache()

    async def resolve(self, dependency: Dependency) -> ReconciliationOutcome:
        """Find, create, or skip the ticket for *dependency*.

        Every outcome is cached under the dependency's canonical summary,
        including failures: a create that timed out may still have
        succeeded on the tracker side, so it is never re-issued in the
        same run.

        Args:
            dependency: The outdated dependency to reconcile.

        Returns:
            The :class:`ReconciliationOutcome` for this dependency.
        """
        summary = dependency.summary

        cached = self.cache.get(summary)
        if cached is not None:
            logger.debug("Reusing outcome for %r: %s", summary, cached.kind.value)
            return cached

        async with self.cache.lock_for(summary):
            # Another coroutine may have resolved it while we waited
            cached = self.cache.get(summary)
            if cached is not None:
                return cached

            outcome = await self._reconcile(dependency, summary)
            return self.cache.put(summary, outcome)

    # ------------------------------------------------------------------
    # Reconciliation steps (private)
    # ------------------------------------------------------------------

    async def _reconcile(
        self,
        dependency: Dependency,
        summary: str,
    ) -> ReconciliationOutcome:
        try:
            candidates = await self.tracker.search(self.settings.project_key, summary)
        except DepTrackerError as exc:
            logger.warning(
                "Cannot verify existing tickets for %s; skipping creation: %s",
                dependency.name,
                exc,
            )
            return ReconciliationOutcome.search_unavailable()

        existing = self._select_existing(summary, candidates)
        if existing is not None:
            logger.info(
                "Found existing %s ticket %s for %s",
                "closed" if existing.is_closed else "open",
                existing.key,
                dependency.name,
            )
            return ReconciliationOutcome.existing(existing.key)

        if self.settings.dry_run:
            logger.info("[Dry Run] Would create ticket: %s", summary)
            return ReconciliationOutcome.would_create()

        return await self._create(dependency, summary)

    @staticmethod
    def _select_existing(
        summary: str,
        candidates: List[TrackerIssue],
    ) -> Optional[TrackerIssue]:
        """Pick the ticket to reuse: first open logical match, else first closed one."""
        target = normalize_summary(summary)
        matches = [c for c in candidates if normalize_summary(c.summary) == target]

        if candidates and not matches:
            logger.debug(
                "Search returned %d issue(s) but none match %r",
                len(candidates),
                summary,
            )

        for issue in matches:
            if not issue.is_closed:
                return issue

        # Referenced as-is; the ticket is not reopened
        return matches[0] if matches else None

    async def _create(
        self,
        dependency: Dependency,
        summary: str,
    ) -> ReconciliationOutcome:
        severity = classify(dependency.current_version, dependency.latest_version)
        request = IssueRequest(
            project_key=self.settings.project_key,
            issue_type=self.settings.issue_type,
            summary=summary,
            description=build_description(dependency, severity),
            priority=priority_for(severity),
            labels=(TICKET_LABEL, dependency.ecosystem.value),
        )

        logger.info("Creating ticket: %s (priority %s)", summary, request.priority)
        try:
            key = await self.tracker.create_issue(request)
        except DepTrackerError as exc:
            logger.error("Failed to create ticket for %s: %s", dependency.name, exc)
            return ReconciliationOutcome.creation_failed()

        logger.info("Created ticket %s for %s", key, dependency.name)
        return ReconciliationOutcome.created(key)
