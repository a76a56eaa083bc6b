"""
Unified data model exports for deptracker.

This module re-exports all core data models to provide a stable and
convenient public API. Users can import models directly from
``deptracker.models`` instead of individual submodules.

Example:
    >>> from deptracker.models import Dependency, Ecosystem, ReconciliationOutcome
"""

from __future__ import annotations

from deptracker.models.dependency import Dependency, Ecosystem
from deptracker.models.outcome import OutcomeKind, ReconciliationOutcome, ResultStatus

__all__ = [
    "Dependency",
    "Ecosystem",
    "OutcomeKind",
    "ReconciliationOutcome",
    "ResultStatus",
]
