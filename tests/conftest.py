from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from facility_history.facade import ExportSettings, FacilityHistory
from facility_history.storage.disk import DiskStorage
from facility_history.store.memory import InMemoryStore
from facility_history.testing.fakes import FrozenClock, ManualScheduler
from facility_history.testing.store_test_kit import SEED_FACILITIES, SEED_OPERATORS

# 12:00 in São Paulo
NOW = datetime(2026, 3, 10, 15, 0, tzinfo=UTC)


def history_doc(entry_id: str, instant: datetime, **extra: Any) -> dict[str, Any]:
    """A raw history entry in the document store's camelCase shape."""
    return {
        "_id": entry_id,
        "date": instant,
        "startTime": "08:00",
        "endTime": "08:30",
        "paperTowel": True,
        "toiletPaper": True,
        "soap": False,
        "handSanitizer": True,
        "concurrent": True,
        "terminal": False,
        "observations": "ok",
        "createdBy": "u1",
        **extra,
    }


def facility_doc(
    facility_id: str,
    name: str,
    history: list[dict[str, Any]] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    return {
        "_id": facility_id,
        "name": name,
        "code": extra.pop("code", None),
        "areaType": extra.pop("areaType", "critica"),
        "history": history or [],
        **extra,
    }


def bulk_history(prefix: str, count: int, *, start: datetime = NOW) -> list[dict]:
    """*count* entries one minute apart, newest first."""
    return [
        history_doc(f"{prefix}-{i:06d}", start - timedelta(minutes=i))
        for i in range(count)
    ]


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture()
def scheduler(clock: FrozenClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore(facilities=SEED_FACILITIES, operators=SEED_OPERATORS)


@pytest.fixture()
def storage(tmp_path: Path) -> DiskStorage:
    return DiskStorage(str(tmp_path / "storage"))


@pytest.fixture()
def settings(tmp_path: Path) -> ExportSettings:
    return ExportSettings(
        work_dir=tmp_path / "work",
        uploads_base_url="https://uploads.example.com",
    )


@pytest.fixture()
def make_history(
    storage: DiskStorage,
    settings: ExportSettings,
    scheduler: ManualScheduler,
    clock: FrozenClock,
):
    """Build a facade over any store with the shared test doubles."""

    def _make(store: InMemoryStore, **overrides: Any) -> FacilityHistory:
        for key, value in overrides.items():
            setattr(settings, key, value)
        return FacilityHistory(
            storage, store, settings=settings, scheduler=scheduler, clock=clock
        )

    return _make


@pytest.fixture()
def history(make_history, store: InMemoryStore) -> FacilityHistory:
    return make_history(store)
