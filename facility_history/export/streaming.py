from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from pydantic import ValidationError as SchemaValidationError

from facility_history.core.exceptions import CapExceededError
from facility_history.core.types import ExportWindow, HistoryCursor, HistoryPage
from facility_history.models import ExportJob, Facility, FacilityMatch, HistoryEntry
from facility_history.store.base import Store

logger = logging.getLogger(__name__)

PAGE_SIZE = 500
RECORD_CAP = 50_000


@dataclass
class StreamedPage:
    """A validated page handed downstream, newest entry first."""

    facility: Facility
    entries: list[HistoryEntry]
    retrieved: int
    skipped: int = 0

    def __len__(self) -> int:
        return len(self.entries)


class HistoryStreamer:
    """Pages through the history of resolved facilities under a record cap.

    Facilities are visited in the order given; within a facility the
    store returns entries newest first.  Every page is yielded before the
    next one is requested, so callers can write and flush as they go.

    The cap counts records retrieved from the store (valid or not) and is
    checked at page boundaries: a page that would take the running total
    past ``record_cap`` is not forwarded and :class:`CapExceededError` is
    raised instead.
    """

    def __init__(
        self,
        store: Store,
        *,
        page_size: int = PAGE_SIZE,
        record_cap: int = RECORD_CAP,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._store = store
        self.page_size = page_size
        self.record_cap = record_cap

    async def stream(
        self,
        matches: list[FacilityMatch],
        window: ExportWindow,
        job: ExportJob,
    ) -> AsyncIterator[StreamedPage]:
        for match in matches:
            cursor: HistoryCursor | None = None
            while True:
                page = await self._store.fetch_history_page(
                    match.facility, window, limit=self.page_size, cursor=cursor
                )
                if not page.records:
                    break

                if job.would_exceed_cap(len(page)):
                    logger.warning(
                        "[%s] Record cap %d reached after %d records",
                        job.id,
                        job.record_cap,
                        job.processed_count,
                    )
                    raise CapExceededError(job.record_cap, job.processed_count)

                job.processed_count += len(page)
                streamed = self._validate(page)
                job.skipped_count += streamed.skipped
                yield streamed

                if page.next_cursor is None:
                    break
                cursor = page.next_cursor

    def _validate(self, page: HistoryPage) -> StreamedPage:
        entries: list[HistoryEntry] = []
        skipped = 0
        for raw in page.records:
            try:
                entry = HistoryEntry.model_validate(
                    {**raw, "facility_id": page.facility.id}
                )
            except SchemaValidationError as exc:
                skipped += 1
                logger.warning(
                    "Skipping malformed history entry %s of %s: %s",
                    raw.get("_id", raw.get("id")),
                    page.facility.id,
                    exc.errors(include_url=False),
                )
                continue
            entries.append(entry)
        return StreamedPage(
            facility=page.facility,
            entries=entries,
            retrieved=len(page.records),
            skipped=skipped,
        )
