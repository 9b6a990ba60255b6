from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Row, Select, func, select, tuple_
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.sql import text
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from facility_history.core.exceptions import StorageError
from facility_history.core.types import ExportWindow, HistoryCursor, HistoryPage
from facility_history.db.models import Base, FacilityRow, HistoryEntryRow, OperatorRow
from facility_history.models import Facility, FacilityMatch
from facility_history.store.base import Store

logger = logging.getLogger(__name__)


class PostgresStore(Store):
    """Store backed by PostgreSQL via SQLAlchemy + asyncpg.

    Name matching uses ``pg_trgm``'s ``word_similarity``, which is
    already normalised to ``[0, 1]``.  Transient connection errors are
    retried; anything else surfaces as :class:`StorageError`.
    """

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 20,
    ) -> None:
        url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{database}"
        self._engine = create_async_engine(
            url,
            echo=False,
            pool_size=pool_size,
            max_overflow=max_overflow,
        )
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def init(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.execute(text("CREATE EXTENSION IF NOT EXISTS pg_trgm"))
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(str(exc)) from exc

    async def reset(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await self.init()

    async def close(self) -> None:
        await self._engine.dispose()

    async def add_facility(self, document: dict[str, Any]) -> None:
        """Insert one facility with its embedded history (used for seeding)."""
        async with self._session_factory() as session:
            row = FacilityRow(
                id=str(document.get("_id", document.get("id"))),
                name=document["name"],
                code=document.get("code"),
                area_type=document.get("areaType", document.get("area_type")),
            )
            for raw in document.get("history") or []:
                entry = HistoryEntryRow(
                    recorded_at=raw.get("date", raw.get("recorded_at")),
                    start_time=raw.get("startTime"),
                    end_time=raw.get("endTime"),
                    paper_towel=bool(raw.get("paperTowel")),
                    toilet_paper=bool(raw.get("toiletPaper")),
                    soap=bool(raw.get("soap")),
                    hand_sanitizer=bool(raw.get("handSanitizer")),
                    concurrent=bool(raw.get("concurrent")),
                    terminal=bool(raw.get("terminal")),
                    observations=raw.get("observations"),
                    created_by=raw.get("createdBy"),
                    started_photo=raw.get("startedPhoto"),
                    finished_photo=raw.get("finishedPhoto"),
                )
                if raw.get("_id") is not None:
                    entry.id = str(raw["_id"])
                row.history.append(entry)
            session.add(row)
            await session.commit()

    async def add_operator(self, operator_ref: str, email: str) -> None:
        async with self._session_factory() as session:
            session.add(OperatorRow(id=operator_ref, email=email))
            await session.commit()

    # ── Query helpers ────────────────────────────────────────────────

    @retry(
        retry=retry_if_exception_type((OperationalError, InterfaceError, OSError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential_jitter(initial=0.5, max=5),
        reraise=True,
    )
    async def _fetch(self, stmt: Select) -> Sequence[Row]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.all()

    async def _rows(self, stmt: Select) -> Sequence[Row]:
        try:
            return await self._fetch(stmt)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Facility store query failed: %s", exc)
            raise StorageError(str(exc)) from exc

    # ── Facilities ───────────────────────────────────────────────────

    async def list_facilities(self) -> list[Facility]:
        rows = await self._rows(select(FacilityRow).order_by(FacilityRow.name))
        return [Facility.model_validate(row.to_document()) for (row,) in rows]

    async def search_facilities(
        self, query: str, *, limit: int = 3
    ) -> list[FacilityMatch]:
        score = func.word_similarity(query, FacilityRow.name).label("score")
        stmt = (
            select(FacilityRow, score)
            .order_by(score.desc(), FacilityRow.name)
            .limit(limit)
        )
        rows = await self._rows(stmt)
        return [
            FacilityMatch(
                facility=Facility.model_validate(row.to_document()),
                score=float(value),
            )
            for row, value in rows
        ]

    # ── History ──────────────────────────────────────────────────────

    async def fetch_history_page(
        self,
        facility: Facility,
        window: ExportWindow,
        *,
        limit: int,
        cursor: HistoryCursor | None = None,
    ) -> HistoryPage:
        stmt = select(HistoryEntryRow).where(
            HistoryEntryRow.facility_id == facility.id,
            HistoryEntryRow.recorded_at >= window.start,
            HistoryEntryRow.recorded_at <= window.end,
        )
        if cursor is not None:
            stmt = stmt.where(
                tuple_(HistoryEntryRow.recorded_at, HistoryEntryRow.id)
                < tuple_(cursor.recorded_at, cursor.entry_id)
            )
        stmt = stmt.order_by(
            HistoryEntryRow.recorded_at.desc(), HistoryEntryRow.id.desc()
        ).limit(limit + 1)

        entries = [row for (row,) in await self._rows(stmt)]
        next_cursor = None
        if len(entries) > limit:
            entries = entries[:limit]
            last = entries[-1]
            next_cursor = HistoryCursor(recorded_at=last.recorded_at, entry_id=last.id)
        return HistoryPage(
            facility=facility,
            records=[entry.to_document() for entry in entries],
            next_cursor=next_cursor,
        )

    async def count_facilities_with_history(self, window: ExportWindow) -> int:
        stmt = select(func.count(func.distinct(HistoryEntryRow.facility_id))).where(
            HistoryEntryRow.recorded_at >= window.start,
            HistoryEntryRow.recorded_at <= window.end,
        )
        rows = await self._rows(stmt)
        return int(rows[0][0]) if rows else 0

    # ── Operators ────────────────────────────────────────────────────

    async def get_operator_label(self, operator_ref: str) -> str | None:
        stmt = select(OperatorRow.email).where(OperatorRow.id == operator_ref)
        rows = await self._rows(stmt)
        return rows[0][0] if rows else None
