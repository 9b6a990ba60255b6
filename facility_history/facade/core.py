"""Main facade for the facility_history library."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import aclosing
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as SchemaValidationError

from facility_history.artifacts.scheduler import AsyncioScheduler, TaskScheduler
from facility_history.artifacts.store import EphemeralArtifactStore
from facility_history.config import parse_config
from facility_history.core.exceptions import CapExceededError, FacilityHistoryError
from facility_history.core.types import (
    ExportRequest,
    ExportResult,
    ExportWindow,
    WindowPolicy,
)
from facility_history.export.formatting import OperatorLabelCache
from facility_history.export.pipeline import ExportPipeline
from facility_history.export.streaming import HistoryStreamer
from facility_history.export.window import TimeWindowPlanner
from facility_history.facade.types import (
    ExportSettings,
    InspectedEntry,
    InspectionResult,
    PhotoResult,
    PhotoSet,
    TodaySummary,
)
from facility_history.models import ExportJob, Facility, FacilityMatch, HistoryEntry

if TYPE_CHECKING:
    from facility_history.storage.base import StorageBackend
    from facility_history.store.base import Store

logger = logging.getLogger(__name__)

INSPECTION_ROW_LIMIT = 200
UPLOADS_PATH = "bin/uploads"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class FacilityHistory:
    """Main entry point for the facility_history library.

    Built once per process; holds the record store, the blob storage,
    the deletion scheduler and the artifact store, and serves every host
    operation on top of them.

    Usage::

        history = FacilityHistory.from_config({
            "storage": {"provider": "disk", "config": {"base_path": "./data"}},
            "store": {"provider": "memory", "config": {"path": "dump.json"}},
            "export": {"timezone": "America/Sao_Paulo"},
        })
        await history.init()
        result = await history.export_history("SALA 28", days=7)
    """

    def __init__(
        self,
        storage: StorageBackend,
        store: Store,
        *,
        settings: ExportSettings | None = None,
        scheduler: TaskScheduler | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._storage = storage
        self._store = store
        self.settings = settings or ExportSettings()
        self.planner = TimeWindowPlanner(self.settings.timezone, clock=clock)
        self.artifacts = EphemeralArtifactStore(
            storage,
            scheduler or AsyncioScheduler(),
            work_dir=self.settings.work_dir,
            ttl=self.settings.artifact_ttl,
            locator=self.settings.locator,
            clock=clock,
        )
        self.pipeline = ExportPipeline(
            store,
            self.artifacts,
            self.planner,
            page_size=self.settings.page_size,
            batch_size=self.settings.batch_size,
            record_cap=self.settings.record_cap,
            match_threshold=self.settings.match_threshold,
            match_limit=self.settings.match_limit,
        )

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        *,
        scheduler: TaskScheduler | None = None,
    ) -> FacilityHistory:
        """Construct an instance from a configuration dict."""
        storage, store = parse_config(config)
        settings = ExportSettings.from_dict(config.get("export", {}))
        return cls(storage, store, settings=settings, scheduler=scheduler)

    @property
    def store(self) -> Store:
        return self._store

    async def init(self) -> None:
        """Prepare the store and clear artifacts left by a previous run."""
        await self._store.init()
        await self.artifacts.sweep()

    async def close(self) -> None:
        await self.artifacts.close()
        await self._store.close()

    async def __aenter__(self) -> FacilityHistory:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Facilities ───────────────────────────────────────────────────

    async def list_facilities(self) -> list[Facility]:
        return await self._store.list_facilities()

    async def today_summary(self) -> TodaySummary:
        """Count facilities with and without a record today."""
        facilities = await self._store.list_facilities()
        with_records = await self._store.count_facilities_with_history(
            self.planner.day_window()
        )
        return TodaySummary(total=len(facilities), with_records=with_records)

    # ── History ──────────────────────────────────────────────────────

    async def inspect_facility(
        self,
        query: str,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> InspectionResult:
        """Recent history of every facility matching *query*, newest first.

        Without dates the window is the trailing 12 hours.  The newest
        ``INSPECTION_ROW_LIMIT`` entries across all matches are returned.
        """
        window = self.planner.plan(
            start_date=start_date, end_date=end_date, policy=WindowPolicy.INSPECTION
        )
        matches = await self.pipeline.resolver.resolve(query)

        collected: list[tuple[Facility, HistoryEntry]] = []
        truncated = False
        for match in matches:
            recent, more = await self._recent_history(
                match, window, INSPECTION_ROW_LIMIT
            )
            collected.extend((match.facility, entry) for entry in recent)
            truncated = truncated or more

        collected.sort(key=lambda item: (item[1].recorded_at, item[1].id), reverse=True)
        if len(collected) > INSPECTION_ROW_LIMIT:
            del collected[INSPECTION_ROW_LIMIT:]
            truncated = True
        operators = OperatorLabelCache(self._store)
        entries = [
            InspectedEntry(
                facility=facility,
                entry=entry,
                operator_label=await operators.resolve(entry.operator_ref),
            )
            for facility, entry in collected
        ]
        return InspectionResult(
            query=query,
            window=window,
            facilities=[m.facility for m in matches],
            entries=entries,
            truncated=truncated,
        )

    async def _recent_history(
        self, match: FacilityMatch, window: ExportWindow, limit: int
    ) -> tuple[list[HistoryEntry], bool]:
        """Newest *limit* entries of one facility, and whether older ones exist."""
        streamer = HistoryStreamer(
            self._store,
            page_size=min(self.settings.page_size, limit),
            record_cap=self.settings.record_cap,
        )
        job = ExportJob(record_cap=self.settings.record_cap)
        entries: list[HistoryEntry] = []
        try:
            async with aclosing(streamer.stream([match], window, job)) as pages:
                async for page in pages:
                    entries.extend(page.entries)
                    if len(entries) > limit:
                        return entries[:limit], True
        except CapExceededError:
            return entries[:limit], True
        return entries, False

    async def find_photos(
        self,
        query: str,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> PhotoResult:
        """Photo links of the latest entry per matching facility.

        Without dates the window is today.
        """
        base_url = self.settings.uploads_base_url
        if not base_url:
            raise FacilityHistoryError("UPLOADS_BASE_URL não está configurado")

        explicit = bool(start_date or end_date)
        if explicit:
            window = self.planner.plan(
                start_date=start_date,
                end_date=end_date,
                policy=WindowPolicy.INSPECTION,
            )
        else:
            window = self.planner.day_window()
        matches = await self.pipeline.resolver.resolve(query)

        result = PhotoResult(window=window, explicit_range=explicit)
        for match in matches:
            page = await self._store.fetch_history_page(match.facility, window, limit=1)
            if not page.records:
                continue
            try:
                latest = HistoryEntry.model_validate(
                    {**page.records[0], "facility_id": match.facility.id}
                )
            except SchemaValidationError as exc:
                logger.warning(
                    "Latest entry of %s is malformed: %s",
                    match.facility.id,
                    exc.errors(include_url=False),
                )
                continue
            if not (latest.started_photo or latest.finished_photo):
                continue
            result.photos.append(
                PhotoSet(
                    facility=match.facility,
                    recorded_at=latest.recorded_at,
                    entry_url=_photo_url(base_url, latest.started_photo),
                    exit_url=_photo_url(base_url, latest.finished_photo),
                )
            )
        return result

    # ── Export ───────────────────────────────────────────────────────

    async def export_history(
        self,
        query: str | None = None,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
        days: int | None = None,
    ) -> ExportResult:
        """Export matching history to a spreadsheet artifact.

        Without a query every facility is exported; a blank query is
        rejected by the resolver.
        """
        request = ExportRequest(
            query=query,
            start_date=start_date or None,
            end_date=end_date or None,
            days=days,
        )
        return await self.pipeline.run(request)

    async def open_artifact(self, artifact_id: str) -> bytes:
        return await self.artifacts.open(artifact_id)

    async def sweep(self) -> int:
        return await self.artifacts.sweep()


def _photo_url(base_url: str, photo: str | None) -> str | None:
    if not photo:
        return None
    return f"{base_url}/{UPLOADS_PATH}/{photo}"
