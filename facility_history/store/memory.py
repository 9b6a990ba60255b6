from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaValidationError
from rapidfuzz import fuzz, process, utils

from facility_history.core.types import ExportWindow, HistoryCursor, HistoryPage
from facility_history.models import Facility, FacilityMatch
from facility_history.store.base import Store

logger = logging.getLogger(__name__)

_INSTANT = TypeAdapter(datetime)

_DATE_KEYS = ("date", "recorded_at", "timestamp")


def _entry_instant(raw: dict[str, Any]) -> datetime | None:
    for key in _DATE_KEYS:
        if raw.get(key) is None:
            continue
        try:
            instant = _INSTANT.validate_python(raw[key])
        except SchemaValidationError:
            return None
        return instant if instant.tzinfo else instant.replace(tzinfo=UTC)
    return None


class InMemoryStore(Store):
    """Store backed by plain Python structures.

    Accepts facility documents in their original shape: each document
    embeds its ``history`` array and operators live in a separate
    ``users`` list.  History entries without an identifier get a stable
    ``"<facility id>:<position>"`` one.  Entries whose date cannot be
    read are invisible to date-filtered queries, as in the source store.

    Name matching uses ``rapidfuzz``'s token-set ratio scaled to
    ``[0, 1]``.
    """

    def __init__(
        self,
        facilities: list[dict[str, Any]] | None = None,
        operators: list[dict[str, Any]] | None = None,
    ) -> None:
        self._facilities: dict[str, Facility] = {}
        self._history: dict[str, list[tuple[datetime, str, dict[str, Any]]]] = {}
        self._operators: dict[str, str] = {}
        self.operator_lookups = 0

        for document in facilities or []:
            self.add_facility(document)
        for operator in operators or []:
            ref = operator.get("_id", operator.get("id"))
            email = operator.get("email")
            if ref is not None and email:
                self._operators[str(ref)] = email

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> InMemoryStore:
        """Build from ``{"path": "dump.json"}`` or inline ``items``/``users``."""
        path = config.get("path")
        if path:
            data = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
        else:
            data = config
        return cls(facilities=data.get("items", []), operators=data.get("users", []))

    def add_facility(self, document: dict[str, Any]) -> Facility | None:
        try:
            facility = Facility.model_validate(document)
        except SchemaValidationError as exc:
            logger.warning("Skipping malformed facility document: %s", exc)
            return None

        entries: list[tuple[datetime, str, dict[str, Any]]] = []
        for position, raw in enumerate(document.get("history") or []):
            record = dict(raw)
            record.setdefault("_id", record.get("id") or f"{facility.id}:{position}")
            record["_id"] = str(record["_id"])
            instant = _entry_instant(record)
            if instant is None:
                continue
            entries.append((instant, record["_id"], record))
        entries.sort(key=lambda e: (e[0], e[1]), reverse=True)

        self._facilities[facility.id] = facility
        self._history[facility.id] = entries
        return facility

    # ── Lifecycle ────────────────────────────────────────────────────

    async def init(self) -> None:
        pass

    async def close(self) -> None:
        pass

    # ── Facilities ───────────────────────────────────────────────────

    async def list_facilities(self) -> list[Facility]:
        return sorted(self._facilities.values(), key=lambda f: (f.name, f.id))

    async def search_facilities(
        self, query: str, *, limit: int = 3
    ) -> list[FacilityMatch]:
        choices = {fid: f.name for fid, f in self._facilities.items()}
        ranked = process.extract(
            query,
            choices,
            scorer=fuzz.token_set_ratio,
            processor=utils.default_process,
            limit=limit,
        )
        return [
            FacilityMatch(facility=self._facilities[fid], score=score / 100.0)
            for _name, score, fid in ranked
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
        matching = [
            (instant, entry_id, raw)
            for instant, entry_id, raw in self._history.get(facility.id, [])
            if window.contains(instant)
            and (
                cursor is None
                or (instant, entry_id) < (cursor.recorded_at, cursor.entry_id)
            )
        ]
        page = matching[:limit]
        next_cursor = None
        if len(matching) > limit:
            last_instant, last_id, _ = page[-1]
            next_cursor = HistoryCursor(recorded_at=last_instant, entry_id=last_id)
        return HistoryPage(
            facility=facility,
            records=[dict(raw) for _, _, raw in page],
            next_cursor=next_cursor,
        )

    async def count_facilities_with_history(self, window: ExportWindow) -> int:
        return sum(
            1
            for entries in self._history.values()
            if any(window.contains(instant) for instant, _, _ in entries)
        )

    # ── Operators ────────────────────────────────────────────────────

    async def get_operator_label(self, operator_ref: str) -> str | None:
        self.operator_lookups += 1
        return self._operators.get(operator_ref)
