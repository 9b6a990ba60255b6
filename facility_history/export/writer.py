from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from types import TracebackType
from typing import Any

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from facility_history.export.formatting import COLUMNS, Column, FormattedRow
from facility_history.models.utils import unique_file_name

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
)
SHEET_TITLE = "Histórico de Limpeza"
EXPORT_BASE_NAME = "limpeza_export"
BATCH_SIZE = 1000


def _new_sheet(columns: tuple[Column, ...]) -> tuple[Workbook, Any]:
    workbook = Workbook(write_only=True)
    sheet = workbook.create_sheet(SHEET_TITLE)
    for index, column in enumerate(columns, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = column.width

    header = []
    for column in columns:
        cell = WriteOnlyCell(sheet, value=column.header)
        cell.font = Font(bold=True)
        header.append(cell)
    sheet.append(header)
    return workbook, sheet


def _save(workbook: Workbook, path: Path) -> None:
    tmp_path = path.with_name(f".{path.name}.tmp")
    workbook.save(tmp_path)
    os.replace(tmp_path, path)


class SpreadsheetWriter:
    """Writes rows to an ``.xlsx`` file in fixed-size batches.

    Rows go into a single ``openpyxl`` write-only workbook, which streams
    them to a temporary file, so only the current batch is held in
    memory.  Each flush also saves that batch, with the header, as a
    checkpoint workbook next to the target.  Checkpoints open on their
    own and together hold every row flushed so far; :meth:`close` saves
    the full workbook and removes them.

    Methods block on disk I/O.  Async callers run them with
    ``asyncio.to_thread``.

    Usage::

        with SpreadsheetWriter(work_dir) as writer:
            writer.add_rows(rows)
        path = writer.path
    """

    def __init__(
        self,
        directory: str | Path,
        *,
        batch_size: int = BATCH_SIZE,
        file_name: str | None = None,
        columns: tuple[Column, ...] = COLUMNS,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.path = self.directory / (
            file_name or unique_file_name(EXPORT_BASE_NAME, ".xlsx")
        )
        self.batch_size = batch_size
        self.columns = columns
        self.rows_written = 0
        self.batches_flushed = 0
        self.checkpoints: list[Path] = []
        self._buffer: list[FormattedRow] = []
        self._workbook, self._sheet = _new_sheet(columns)
        self._closed = False

    @property
    def file_name(self) -> str:
        return self.path.name

    @property
    def pending_rows(self) -> int:
        return len(self._buffer)

    def __enter__(self) -> SpreadsheetWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()

    def add_rows(self, rows: Iterable[FormattedRow]) -> None:
        if self._closed:
            raise RuntimeError(f"{self.path.name} is already closed")
        for row in rows:
            if len(row) != len(self.columns):
                raise ValueError(
                    f"Row has {len(row)} values, expected {len(self.columns)}"
                )
            self._buffer.append(row)
            if len(self._buffer) >= self.batch_size:
                self.flush()

    def flush(self) -> None:
        """Append buffered rows to the workbook and checkpoint them."""
        if not self._buffer:
            return
        checkpoint, sheet = _new_sheet(self.columns)
        for row in self._buffer:
            self._sheet.append(row)
            sheet.append(row)
        self.batches_flushed += 1
        path = self.path.with_name(
            f".{self.path.stem}.part{self.batches_flushed:04d}.xlsx"
        )
        _save(checkpoint, path)
        self.checkpoints.append(path)
        self.rows_written += len(self._buffer)
        self._buffer.clear()
        logger.debug(
            "Flushed batch %d of %s (%d rows)",
            self.batches_flushed,
            self.path.name,
            self.rows_written,
        )

    def close(self) -> Path:
        """Flush what is left, save the workbook and return its path."""
        if self._closed:
            return self.path
        self.flush()
        if not self.batches_flushed:
            # header-only workbook
            self.batches_flushed = 1
        _save(self._workbook, self.path)
        self._remove_checkpoints()
        self._closed = True
        return self.path

    def discard(self) -> None:
        """Drop buffered rows and remove every file written so far."""
        self._buffer.clear()
        if not self._closed:
            self._closed = True
            # saving releases the workbook's temporary file
            _save(self._workbook, self.path)
        self._remove_checkpoints()
        self.path.unlink(missing_ok=True)

    def _remove_checkpoints(self) -> None:
        for path in self.checkpoints:
            path.unlink(missing_ok=True)
        self.checkpoints.clear()
