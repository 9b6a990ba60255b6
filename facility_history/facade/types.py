"""Public return types for the facility_history API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from facility_history.artifacts.store import ARTIFACT_TTL, LocatorMode
from facility_history.core.types import ExportWindow
from facility_history.export.matching import CANDIDATE_LIMIT, MIN_SCORE
from facility_history.export.streaming import PAGE_SIZE, RECORD_CAP
from facility_history.export.writer import BATCH_SIZE
from facility_history.models import Facility, HistoryEntry

DEFAULT_TIMEZONE = "America/Sao_Paulo"
DEFAULT_WORK_DIR = "~/.cache/facility-history/exports"


@dataclass
class ExportSettings:
    """Tunables shared by every request served by one process."""

    timezone: str = DEFAULT_TIMEZONE
    page_size: int = PAGE_SIZE
    batch_size: int = BATCH_SIZE
    record_cap: int = RECORD_CAP
    match_threshold: float = MIN_SCORE
    match_limit: int = CANDIDATE_LIMIT
    artifact_ttl: timedelta = ARTIFACT_TTL
    locator: LocatorMode = LocatorMode.INLINE
    work_dir: Path = field(default_factory=lambda: Path(DEFAULT_WORK_DIR))
    uploads_base_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExportSettings:
        settings = cls()
        for key in (
            "timezone",
            "page_size",
            "batch_size",
            "record_cap",
            "match_limit",
        ):
            if data.get(key) is not None:
                setattr(settings, key, data[key])
        if data.get("match_threshold") is not None:
            settings.match_threshold = float(data["match_threshold"])
        if data.get("artifact_ttl_seconds") is not None:
            settings.artifact_ttl = timedelta(
                seconds=float(data["artifact_ttl_seconds"])
            )
        if data.get("locator"):
            settings.locator = LocatorMode(data["locator"])
        if data.get("work_dir"):
            settings.work_dir = Path(data["work_dir"])
        if data.get("uploads_base_url"):
            settings.uploads_base_url = str(data["uploads_base_url"]).rstrip("/")
        return settings


@dataclass
class TodaySummary:
    """Result from :meth:`FacilityHistory.today_summary`."""

    total: int
    with_records: int

    @property
    def without_records(self) -> int:
        return self.total - self.with_records


@dataclass
class InspectedEntry:
    """One history entry with the facility it belongs to."""

    facility: Facility
    entry: HistoryEntry
    operator_label: str | None = None


@dataclass
class InspectionResult:
    """Result from :meth:`FacilityHistory.inspect_facility`."""

    query: str
    window: ExportWindow
    facilities: list[Facility] = field(default_factory=list)
    entries: list[InspectedEntry] = field(default_factory=list)
    truncated: bool = False


@dataclass
class PhotoSet:
    """Entry and exit photo links of a facility's latest cleaning."""

    facility: Facility
    recorded_at: datetime
    entry_url: str | None = None
    exit_url: str | None = None


@dataclass
class PhotoResult:
    """Result from :meth:`FacilityHistory.find_photos`."""

    window: ExportWindow
    explicit_range: bool
    photos: list[PhotoSet] = field(default_factory=list)
