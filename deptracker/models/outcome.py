"""
Reconciliation outcome model for deptracker.

Each dependency processed in a run ends with exactly one
:class:`ReconciliationOutcome`. The outcome kind keeps "created" and
"found" distinguishable, while :attr:`ReconciliationOutcome.status`
collapses kinds into the coarser run-result statuses reported to users.
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Dict, Optional


class OutcomeKind(str, Enum):
    """What the reconciliation engine decided for one dependency."""

    EXISTING_TICKET = "existing_ticket"
    CREATED = "created"
    WOULD_CREATE = "would_create"
    SEARCH_UNAVAILABLE = "search_unavailable"
    CREATION_FAILED = "creation_failed"
    FILTERED_OUT = "filtered_out"
    PROCESSING_ERROR = "processing_error"


class ResultStatus(str, Enum):
    """Run-result status reported per dependency."""

    FILTERED_OUT = "filtered_out"
    DRY_RUN_WOULD_CREATE = "dry_run_would_create"
    TICKET_CREATED = "ticket_created"
    PROCESSING_ERROR = "processing_error"


_STATUS_BY_KIND: Dict[OutcomeKind, ResultStatus] = {
    OutcomeKind.EXISTING_TICKET: ResultStatus.TICKET_CREATED,
    OutcomeKind.CREATED: ResultStatus.TICKET_CREATED,
    OutcomeKind.WOULD_CREATE: ResultStatus.DRY_RUN_WOULD_CREATE,
    OutcomeKind.SEARCH_UNAVAILABLE: ResultStatus.PROCESSING_ERROR,
    OutcomeKind.CREATION_FAILED: ResultStatus.PROCESSING_ERROR,
    OutcomeKind.FILTERED_OUT: ResultStatus.FILTERED_OUT,
    OutcomeKind.PROCESSING_ERROR: ResultStatus.PROCESSING_ERROR,
}

_KEYED_KINDS = frozenset({OutcomeKind.EXISTING_TICKET, OutcomeKind.CREATED})


@dataclass(frozen=True)
class ReconciliationOutcome:
    """Tagged result of reconciling one dependency against the tracker.

    Attributes:
        kind: The decision taken.
        key: Ticket key; set only for ``EXISTING_TICKET`` and ``CREATED``.
    """

    kind: OutcomeKind
    key: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind in _KEYED_KINDS and not self.key:
            raise ValueError(f"{self.kind.value} outcome requires a ticket key")
        if self.kind not in _KEYED_KINDS and self.key is not None:
            raise ValueError(f"{self.kind.value} outcome cannot carry a ticket key")

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def existing(cls, key: str) -> "ReconciliationOutcome":
        return cls(OutcomeKind.EXISTING_TICKET, key)

    @classmethod
    def created(cls, key: str) -> "ReconciliationOutcome":
        return cls(OutcomeKind.CREATED, key)

    @classmethod
    def would_create(cls) -> "ReconciliationOutcome":
        return cls(OutcomeKind.WOULD_CREATE)

    @classmethod
    def search_unavailable(cls) -> "ReconciliationOutcome":
        return cls(OutcomeKind.SEARCH_UNAVAILABLE)

    @classmethod
    def creation_failed(cls) -> "ReconciliationOutcome":
        return cls(OutcomeKind.CREATION_FAILED)

    @classmethod
    def filtered_out(cls) -> "ReconciliationOutcome":
        return cls(OutcomeKind.FILTERED_OUT)

    @classmethod
    def processing_error(cls) -> "ReconciliationOutcome":
        return cls(OutcomeKind.PROCESSING_ERROR)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def status(self) -> ResultStatus:
        """Coarse run-result status for this outcome."""
        return _STATUS_BY_KIND[self.kind]

    @property
    def is_error(self) -> bool:
        return self.status is ResultStatus.PROCESSING_ERROR

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Return the run-result entry ``{status, ticket_key, outcome}``."""
        return {
            "status": self.status.value,
            "ticket_key": self.key,
            "outcome": self.kind.value,
        }
