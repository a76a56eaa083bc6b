"""
Core functionality exports for deptracker.

This module provides convenient access to the core subsystems of deptracker.
Importing from here keeps user-facing imports clean and stable:

    from deptracker.core import DependencyOrchestrator, ReconciliationEngine
"""

from __future__ import annotations

from deptracker.core.runner import CommandResult, CommandRunner
from deptracker.core.orchestrator import DependencyOrchestrator
from deptracker.core.reconciler import ReconciliationEngine, TicketCache
from deptracker.core.tracker import IssueRequest, IssueTracker, JiraClient, TrackerIssue
from deptracker.core.parsers import (
    ComposerOutputParser,
    NpmOutputParser,
    PipOutputParser,
    get_parser,
)

__all__ = [
    "CommandResult",
    "CommandRunner",
    "ComposerOutputParser",
    "DependencyOrchestrator",
    "IssueRequest",
    "IssueTracker",
    "JiraClient",
    "NpmOutputParser",
    "PipOutputParser",
    "ReconciliationEngine",
    "TicketCache",
    "TrackerIssue",
    "get_parser",
]
