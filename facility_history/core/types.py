from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Any

from facility_history.models.facility import Facility


class WindowPolicy(StrEnum):
    """Which default window applies when no dates are given."""

    BULK_EXPORT = "bulk_export"
    INSPECTION = "inspection"


@dataclass(frozen=True)
class ExportRequest:
    """Parameters of an export as received from the host."""

    query: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    days: int | None = None


@dataclass(frozen=True)
class ExportWindow:
    """Closed interval ``[start, end]`` of timezone-aware instants."""

    start: datetime
    end: datetime

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end

    def start_date(self) -> date:
        return self.start.date()

    def end_date(self) -> date:
        return self.end.date()


@dataclass(frozen=True)
class HistoryCursor:
    """Keyset position inside one facility's newest-first history."""

    recorded_at: datetime
    entry_id: str


@dataclass
class HistoryPage:
    """One page of raw history records for a single facility.

    ``records`` are the store's loosely typed documents, newest first.
    ``next_cursor`` is ``None`` when the facility has no more records in
    the window.
    """

    facility: Facility
    records: list[dict[str, Any]]
    next_cursor: HistoryCursor | None = None

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ArtifactLocator:
    """How the host can fetch a generated artifact."""

    artifact_id: str
    file_name: str
    content_type: str
    uri: str
    expires_at: datetime
    inline: bool


@dataclass
class ExportResult:
    """Result returned from :meth:`FacilityHistory.export_history`."""

    job_id: str
    status: str
    message: str
    window: ExportWindow | None = None
    facilities: list[str] = field(default_factory=list)
    records_exported: int = 0
    rows_skipped: int = 0
    batches_written: int = 0
    artifact: ArtifactLocator | None = None

    @property
    def partial(self) -> bool:
        return self.status == "aborted"
