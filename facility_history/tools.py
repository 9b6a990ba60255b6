"""Host-facing operations.

Each operation takes a :class:`FacilityHistory` and returns a
:class:`ToolResult`; none of them raises.  Errors meant for the caller
are reported verbatim, storage and unexpected failures get a generic
message and a log entry.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import ParamSpec

from facility_history.core.exceptions import FacilityHistoryError, StorageError
from facility_history.core.types import ArtifactLocator, ExportWindow
from facility_history.export.formatting import NOT_AVAILABLE, TIMESTAMP_FORMAT
from facility_history.export.window import DATE_FORMAT
from facility_history.facade import FacilityHistory, InspectedEntry

logger = logging.getLogger(__name__)

P = ParamSpec("P")

DEFAULT_CATEGORY = "Outros"
NO_OBSERVATION = "Nenhuma observação"
CHECK = "✔"
CROSS = "✖"
RETRY_LATER = "Tente novamente mais tarde."

_CATEGORY_RE = re.compile(r"^(.*?)(?:\((.*?)\))?\s*$")


@dataclass
class ToolResult:
    text: str
    artifact: ArtifactLocator | None = None
    is_error: bool = False


def _reports_errors(
    action: str,
) -> Callable[[Callable[P, Awaitable[ToolResult]]], Callable[P, Awaitable[ToolResult]]]:
    """Turn exceptions raised by a tool into an error :class:`ToolResult`."""

    def decorator(
        fn: Callable[P, Awaitable[ToolResult]],
    ) -> Callable[P, Awaitable[ToolResult]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> ToolResult:
            try:
                return await fn(*args, **kwargs)
            except StorageError as exc:
                logger.error("%s failed: %s", fn.__name__, exc.message)
                return ToolResult(f"Erro ao {action}. {RETRY_LATER}", is_error=True)
            except FacilityHistoryError as exc:
                return ToolResult(f"Erro ao {action}: {exc.message}", is_error=True)
            except Exception:
                logger.exception("%s failed", fn.__name__)
                return ToolResult(f"Erro ao {action}. {RETRY_LATER}", is_error=True)

        return wrapper

    return decorator


def split_category(name: str) -> tuple[str, str]:
    """``"SALA 28 (BANHEIRO)"`` → ``("SALA 28", "BANHEIRO")``."""
    match = _CATEGORY_RE.match(name)
    if match is None:
        return name.strip(), DEFAULT_CATEGORY
    base = match.group(1).strip() or name.strip()
    category = (match.group(2) or "").strip() or DEFAULT_CATEGORY
    return base, category


def _period(window: ExportWindow, *, with_time: bool = False) -> str:
    fmt = f"{DATE_FORMAT} %H:%M" if with_time else DATE_FORMAT
    return f"{window.start:{fmt}} a {window.end:{fmt}}"


def _cell(text: str | None) -> str:
    if not text:
        return ""
    return text.replace("|", "\\|").replace("\r", " ").replace("\n", " ")


@_reports_errors("buscar salas")
async def list_facilities(history: FacilityHistory) -> ToolResult:
    facilities = await history.list_facilities()
    if not facilities:
        return ToolResult("Nenhuma sala encontrada no banco de dados")

    by_category: dict[str, list[str]] = {}
    for facility in facilities:
        base, category = split_category(facility.name)
        names = by_category.setdefault(category, [])
        if base not in names:
            names.append(base)

    lines = [f"Total de salas: {len(facilities)}", ""]
    for category, names in by_category.items():
        lines.append(f"{category} ({len(names)}): {', '.join(names)}")
    return ToolResult("\n".join(lines))


@_reports_errors("gerar resumo do dia")
async def today_summary(history: FacilityHistory) -> ToolResult:
    summary = await history.today_summary()
    if summary.total == 0:
        return ToolResult("Nenhuma sala encontrada no banco de dados")
    return ToolResult(
        f"Total de Salas: {summary.total}\n"
        f"Com Registros Hoje: {summary.with_records}\n"
        f"Sem Registros Hoje: {summary.without_records}"
    )


@_reports_errors("exportar registros")
async def export_history(
    history: FacilityHistory,
    query: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    days: int | None = None,
) -> ToolResult:
    result = await history.export_history(
        query, start_date=start_date, end_date=end_date, days=days
    )
    text = result.message
    if result.artifact is not None:
        text += (
            f"\n\nO arquivo está disponível para download até "
            f"{result.artifact.expires_at.astimezone(history.planner.tz):%H:%M}."
        )
    return ToolResult(text, artifact=result.artifact)


def _supplies(item: InspectedEntry) -> str:
    entry = item.entry
    marks = (
        ("Papel Toalha", entry.paper_towel),
        ("Papel Higiênico", entry.toilet_paper),
        ("Sabão", entry.soap),
        ("Sanitizante", entry.hand_sanitizer),
    )
    return ", ".join(f"{label} {CHECK if flag else CROSS}" for label, flag in marks)


def render_history_table(history: FacilityHistory, items: list[InspectedEntry]) -> str:
    headers = ("Sala", "Data", "Início", "Fim", "Suprimentos", "Observações", "Criado por")
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("---" for _ in headers) + "|",
    ]
    for item in items:
        recorded = item.entry.recorded_at.astimezone(history.planner.tz)
        cells = (
            _cell(item.facility.name),
            recorded.strftime(TIMESTAMP_FORMAT),
            _cell(item.entry.start_time) or NOT_AVAILABLE,
            _cell(item.entry.end_time) or NOT_AVAILABLE,
            _supplies(item),
            _cell(item.entry.observations) or NO_OBSERVATION,
            _cell(item.operator_label) or NOT_AVAILABLE,
        )
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines)


@_reports_errors("buscar registros")
async def facility_history(
    history: FacilityHistory,
    query: str,
    start_date: str | None = None,
    end_date: str | None = None,
) -> ToolResult:
    result = await history.inspect_facility(
        query, start_date=start_date, end_date=end_date
    )
    period = _period(result.window, with_time=not (start_date or end_date))
    names = ", ".join(f.name for f in result.facilities)
    if not result.entries:
        return ToolResult(f"Nenhum registro encontrado para {names} no período de {period}.")

    parts = [
        f"Registros completos – {query}",
        f"Salas: {names}",
        f"Período: {period}",
        "",
        render_history_table(history, result.entries),
    ]
    if result.truncated:
        parts.append("")
        parts.append(
            f"Exibindo apenas os {len(result.entries)} registros mais recentes. "
            "Use a exportação para obter o histórico completo."
        )
    return ToolResult("\n".join(parts))


@_reports_errors("buscar fotos de limpeza")
async def cleaning_photos(
    history: FacilityHistory,
    query: str,
    start_date: str | None = None,
    end_date: str | None = None,
) -> ToolResult:
    result = await history.find_photos(query, start_date=start_date, end_date=end_date)
    if result.explicit_range:
        range_text = f"no período de {_period(result.window)}"
    else:
        range_text = f"para hoje ({result.window.start:{DATE_FORMAT}})"

    if not result.photos:
        return ToolResult(f"Nenhuma foto de limpeza encontrada {range_text}")

    blocks = []
    for photo in result.photos:
        recorded = photo.recorded_at.astimezone(history.planner.tz)
        lines = [
            f"Sala: {photo.facility.name}",
            f"Data: {recorded.strftime(TIMESTAMP_FORMAT)}",
            "Fotos:",
        ]
        if photo.entry_url:
            lines.append(f"- Entrada: {photo.entry_url}")
        if photo.exit_url:
            lines.append(f"- Saída: {photo.exit_url}")
        blocks.append("\n".join(lines))

    return ToolResult(
        f"Fotos de limpeza encontradas {range_text}:\n\n"
        + "\n---\n".join(blocks)
        + "\n\nA busca retorna apenas os registros mais recentes para os dias "
        "selecionados. Se estiver procurando algo específico, indique o dia e "
        "horário desejado."
    )
