"""State machine for a single export job.

Hierarchy of states::

    CREATED → VALIDATING → MATCHING → STREAMING → WRITING → FINALIZED
                  │            │          │          │
                  └────────────┴──────────┴──────────┴──→ FAILED
                                          └──→ ABORTED   (record cap reached)

FINALIZED, FAILED and ABORTED are terminal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from facility_history.core.exceptions import InvalidTransitionError
from facility_history.models.utils import generate_id

logger = logging.getLogger(__name__)


class JobStatus(StrEnum):
    CREATED = "created"
    VALIDATING = "validating"
    MATCHING = "matching"
    STREAMING = "streaming"
    WRITING = "writing"
    FINALIZED = "finalized"
    FAILED = "failed"
    ABORTED = "aborted"


TERMINAL_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.FINALIZED, JobStatus.FAILED, JobStatus.ABORTED}
)

_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.CREATED: frozenset({JobStatus.VALIDATING, JobStatus.FAILED}),
    JobStatus.VALIDATING: frozenset({JobStatus.MATCHING, JobStatus.FAILED}),
    JobStatus.MATCHING: frozenset({JobStatus.STREAMING, JobStatus.FAILED}),
    JobStatus.STREAMING: frozenset(
        {JobStatus.WRITING, JobStatus.ABORTED, JobStatus.FAILED}
    ),
    JobStatus.WRITING: frozenset({JobStatus.FINALIZED, JobStatus.FAILED}),
}


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class ExportJob:
    """Per-request bookkeeping: counters, cap and lifecycle status."""

    record_cap: int
    id: str = field(default_factory=generate_id)
    status: JobStatus = JobStatus.CREATED
    processed_count: int = 0
    batch_count: int = 0
    skipped_count: int = 0
    error_message: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def advance(self, status: JobStatus) -> None:
        allowed = _TRANSITIONS.get(self.status, frozenset())
        if status not in allowed:
            raise InvalidTransitionError(
                f"Export job {self.id}: cannot move from {self.status} to {status}"
            )
        logger.debug("[%s] %s -> %s", self.id, self.status, status)
        self.status = status
        if status in TERMINAL_STATUSES:
            self.finished_at = _utc_now()

    def fail(self, message: str) -> None:
        self.error_message = message
        self.advance(JobStatus.FAILED)

    def abort(self, message: str) -> None:
        self.error_message = message
        self.advance(JobStatus.ABORTED)

    def would_exceed_cap(self, incoming: int) -> bool:
        return self.processed_count + incoming > self.record_cap
