from __future__ import annotations

import asyncio
import logging
from zoneinfo import ZoneInfo

from facility_history.artifacts.store import EphemeralArtifactStore
from facility_history.core.exceptions import CapExceededError, FacilityHistoryError
from facility_history.core.types import (
    ExportRequest,
    ExportResult,
    ExportWindow,
    WindowPolicy,
)
from facility_history.export.formatting import RecordFormatter
from facility_history.export.matching import CANDIDATE_LIMIT, MIN_SCORE, MatchResolver
from facility_history.export.streaming import PAGE_SIZE, RECORD_CAP, HistoryStreamer
from facility_history.export.window import DATE_FORMAT, TimeWindowPlanner
from facility_history.export.writer import (
    BATCH_SIZE,
    XLSX_CONTENT_TYPE,
    SpreadsheetWriter,
)
from facility_history.models import ExportJob, FacilityMatch, JobStatus
from facility_history.store.base import Store

logger = logging.getLogger(__name__)

NO_RECORDS_MESSAGE = "Nenhum registro encontrado para o período selecionado."


def _period(window: ExportWindow) -> str:
    return f"{window.start:{DATE_FORMAT}} a {window.end:{DATE_FORMAT}}"


class ExportPipeline:
    """Runs one export request end to end.

    Each call to :meth:`run` owns a fresh :class:`ExportJob`, formatter
    and writer; only the store and the artifact store are shared between
    concurrent runs.

    Validation, matching and storage failures mark the job failed and are
    re-raised.  Hitting the record cap aborts the job but still publishes
    the rows written so far, flagged as partial.
    """

    def __init__(
        self,
        store: Store,
        artifacts: EphemeralArtifactStore,
        planner: TimeWindowPlanner,
        *,
        page_size: int = PAGE_SIZE,
        batch_size: int = BATCH_SIZE,
        record_cap: int = RECORD_CAP,
        match_threshold: float = MIN_SCORE,
        match_limit: int = CANDIDATE_LIMIT,
    ) -> None:
        self._store = store
        self._artifacts = artifacts
        self.planner = planner
        self.resolver = MatchResolver(
            store, min_score=match_threshold, candidate_limit=match_limit
        )
        self.streamer = HistoryStreamer(
            store, page_size=page_size, record_cap=record_cap
        )
        self.batch_size = batch_size
        self.record_cap = record_cap

    @property
    def timezone(self) -> ZoneInfo:
        return self.planner.tz

    async def run(self, request: ExportRequest) -> ExportResult:
        job = ExportJob(record_cap=self.record_cap)
        logger.info("[%s] Export requested: %s", job.id, request)
        try:
            return await self._run(job, request)
        except FacilityHistoryError as exc:
            if not job.is_terminal:
                job.fail(exc.message)
            logger.warning("[%s] Export failed: %s", job.id, exc.message)
            raise
        except Exception as exc:
            if not job.is_terminal:
                job.fail(str(exc))
            logger.error("[%s] Export failed unexpectedly: %s", job.id, exc)
            raise

    async def _run(self, job: ExportJob, request: ExportRequest) -> ExportResult:
        await self._artifacts.sweep()

        job.advance(JobStatus.VALIDATING)
        window = self.planner.plan_request(request, WindowPolicy.BULK_EXPORT)

        job.advance(JobStatus.MATCHING)
        matches = await self._match(request.query)

        job.advance(JobStatus.STREAMING)
        logger.info(
            "[%s] Streaming %d facility(ies) from %s to %s",
            job.id,
            len(matches),
            window.start.isoformat(),
            window.end.isoformat(),
        )
        formatter = RecordFormatter(self._store, timezone=self.timezone)
        writer = SpreadsheetWriter(self._artifacts.work_dir, batch_size=self.batch_size)
        published = False
        try:
            capped: CapExceededError | None = None
            try:
                async for page in self.streamer.stream(matches, window, job):
                    rows, skipped = await formatter.format_entries(
                        page.facility, page.entries
                    )
                    job.skipped_count += skipped
                    await asyncio.to_thread(writer.add_rows, rows)
            except CapExceededError as exc:
                capped = exc

            facilities = [m.facility.name for m in matches]
            if capped is not None:
                job.abort(capped.message)
            else:
                job.advance(JobStatus.WRITING)
            result = await self._deliver(job, window, facilities, writer, capped)
            published = result.artifact is not None
            if job.status is JobStatus.WRITING:
                job.advance(JobStatus.FINALIZED)
            result.status = job.status.value
            return result
        finally:
            if not published:
                await asyncio.to_thread(writer.discard)

    async def _match(self, query: str | None) -> list[FacilityMatch]:
        if query is None:
            return await self.resolver.resolve_all()
        return await self.resolver.resolve(query)

    async def _deliver(
        self,
        job: ExportJob,
        window: ExportWindow,
        facilities: list[str],
        writer: SpreadsheetWriter,
        capped: CapExceededError | None,
    ) -> ExportResult:
        exported = writer.rows_written + writer.pending_rows
        result = ExportResult(
            job_id=job.id,
            status=job.status.value,
            message=NO_RECORDS_MESSAGE,
            window=window,
            facilities=facilities,
            rows_skipped=job.skipped_count,
        )
        if exported == 0 and capped is None:
            logger.info("[%s] Nothing to export", job.id)
            return result

        path = await asyncio.to_thread(writer.close)
        job.batch_count = writer.batches_flushed
        result.artifact = await self._artifacts.publish(
            path, content_type=XLSX_CONTENT_TYPE
        )
        result.records_exported = writer.rows_written
        result.batches_written = job.batch_count

        lines = []
        if capped is not None:
            lines.append(
                f"Exportação parcial: {capped.message} "
                f"O arquivo contém apenas os primeiros {writer.rows_written} registros."
            )
        else:
            lines.append(
                f"Exportação concluída: {writer.rows_written} registros exportados."
            )
        lines.append(f"Período: {_period(window)}")
        if job.skipped_count:
            lines.append(f"Registros ignorados: {job.skipped_count}")
        lines.append(f"Arquivo: {writer.file_name}")
        result.message = "\n".join(lines)
        logger.info(
            "[%s] Exported %d rows in %d batch(es) to %s",
            job.id,
            writer.rows_written,
            job.batch_count,
            writer.file_name,
        )
        return result
