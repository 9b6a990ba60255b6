from __future__ import annotations

import logging
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

from facility_history.core.exceptions import FormattingError
from facility_history.models import AreaType, Facility, HistoryEntry
from facility_history.store.base import Store

logger = logging.getLogger(__name__)

FormattedRow = tuple[str, ...]

TIMESTAMP_FORMAT = "%d/%m/%Y, %H:%M:%S"
YES = "Sim"
NO = "Não"
NOT_AVAILABLE = "N/A"
UNKNOWN_OPERATOR = "Desconhecido"
NO_CODE = "Sem código"
NO_NAME = "Sem nome"


@dataclass(frozen=True)
class Column:
    header: str
    width: int


COLUMNS: tuple[Column, ...] = (
    Column("Local", 30),
    Column("Código", 15),
    Column("Área", 15),
    Column("Data", 20),
    Column("Início", 10),
    Column("Fim", 10),
    Column("Papel Toalha", 12),
    Column("Papel Higiênico", 15),
    Column("Sabão", 10),
    Column("Sanitizante", 15),
    Column("Concorrente", 12),
    Column("Terminal", 10),
    Column("Criado por", 25),
    Column("Observações", 50),
)

HEADERS: FormattedRow = tuple(column.header for column in COLUMNS)

AREA_LABELS: dict[AreaType, str] = {
    AreaType.CRITICAL: "Crítica",
    AreaType.SEMI_CRITICAL: "Semicrítica",
    AreaType.NON_CRITICAL: "Não Crítica",
    AreaType.UNSPECIFIED: "Não Especificada",
}


def yes_no(flag: bool) -> str:
    return YES if flag else NO


def _clean(text: str | None) -> str:
    if not text:
        return ""
    return ILLEGAL_CHARACTERS_RE.sub("", text)


class OperatorLabelCache:
    """Per-job memo of operator reference → display label.

    Each reference hits the store at most once, including references
    that resolve to nothing.
    """

    def __init__(self, store: Store) -> None:
        self._store = store
        self._labels: dict[str, str | None] = {}

    def __len__(self) -> int:
        return len(self._labels)

    async def resolve(self, operator_ref: str | None) -> str | None:
        if not operator_ref:
            return None
        if operator_ref not in self._labels:
            self._labels[operator_ref] = await self._store.get_operator_label(
                operator_ref
            )
        return self._labels[operator_ref]


class RecordFormatter:
    """Projects history entries into fixed-column spreadsheet rows.

    Build one formatter per job: the operator cache lives as long as the
    formatter does.
    """

    def __init__(self, store: Store, *, timezone: str | ZoneInfo) -> None:
        self.tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
        self.operators = OperatorLabelCache(store)

    async def format_entry(self, facility: Facility, entry: HistoryEntry) -> FormattedRow:
        label = await self.operators.resolve(entry.operator_ref)
        try:
            return self._project(facility, entry, label)
        except (ValueError, TypeError, OverflowError) as exc:
            raise FormattingError(entry.id, str(exc)) from exc

    async def format_entries(
        self, facility: Facility, entries: list[HistoryEntry]
    ) -> tuple[list[FormattedRow], int]:
        """Format a page, dropping entries that fail.

        Returns ``(rows, skipped)``.
        """
        rows: list[FormattedRow] = []
        skipped = 0
        for entry in entries:
            try:
                rows.append(await self.format_entry(facility, entry))
            except FormattingError as exc:
                skipped += 1
                logger.warning("%s", exc.message)
        return rows, skipped

    def format_timestamp(self, entry: HistoryEntry) -> str:
        return entry.recorded_at.astimezone(self.tz).strftime(TIMESTAMP_FORMAT)

    def _project(
        self, facility: Facility, entry: HistoryEntry, label: str | None
    ) -> FormattedRow:
        return (
            _clean(facility.name) or NO_NAME,
            _clean(facility.code) or NO_CODE,
            AREA_LABELS.get(facility.area_type, AREA_LABELS[AreaType.UNSPECIFIED]),
            self.format_timestamp(entry),
            _clean(entry.start_time) or NOT_AVAILABLE,
            _clean(entry.end_time) or NOT_AVAILABLE,
            yes_no(entry.paper_towel),
            yes_no(entry.toilet_paper),
            yes_no(entry.soap),
            yes_no(entry.hand_sanitizer),
            yes_no(entry.concurrent),
            yes_no(entry.terminal),
            _clean(label or entry.operator_ref) or UNKNOWN_OPERATOR,
            _clean(entry.observations),
        )
