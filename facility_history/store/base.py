from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType

from facility_history.core.types import ExportWindow, HistoryCursor, HistoryPage
from facility_history.models import Facility, FacilityMatch


class Store(ABC):
    """Read-only view over the facility document store.

    Implementations must override every ``@abstractmethod``.  Facility
    records are returned validated; history records are returned as the
    store's raw documents so the caller decides what to do with entries
    that fail validation.
    """

    # ── Lifecycle ────────────────────────────────────────────────────

    @abstractmethod
    async def init(self) -> None:
        """Create tables / indices (idempotent)."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release any held resources (connections, file handles)."""
        ...

    async def __aenter__(self) -> Store:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ── Facilities ───────────────────────────────────────────────────

    @abstractmethod
    async def list_facilities(self) -> list[Facility]:
        """Return every facility ordered by name."""
        ...

    @abstractmethod
    async def search_facilities(
        self, query: str, *, limit: int = 3
    ) -> list[FacilityMatch]:
        """Rank facilities by how well their name matches *query*.

        Scores are normalised to ``[0, 1]``.  At most *limit* candidates
        are returned, best first.
        """
        ...

    # ── History ──────────────────────────────────────────────────────

    @abstractmethod
    async def fetch_history_page(
        self,
        facility: Facility,
        window: ExportWindow,
        *,
        limit: int,
        cursor: HistoryCursor | None = None,
    ) -> HistoryPage:
        """Return up to *limit* raw history records inside *window*.

        Records are ordered newest first (ties broken by descending id)
        and start strictly after *cursor* when one is given.
        """
        ...

    @abstractmethod
    async def count_facilities_with_history(self, window: ExportWindow) -> int:
        """Count facilities with at least one history entry in *window*."""
        ...

    # ── Operators ────────────────────────────────────────────────────

    @abstractmethod
    async def get_operator_label(self, operator_ref: str) -> str | None:
        """Return the display label (e-mail) of an operator, or ``None``."""
        ...
