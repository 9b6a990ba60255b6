from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from facility_history.core.types import ExportWindow
from facility_history.store.memory import InMemoryStore
from facility_history.testing.store_test_kit import MARCH_10, StoreTestKit
from tests.conftest import facility_doc, history_doc


class TestInMemoryStore(StoreTestKit):
    @pytest.fixture()
    def store(self) -> InMemoryStore:
        return InMemoryStore(
            facilities=self.seed_facilities, operators=self.seed_operators
        )


# ── Loading ──────────────────────────────────────────────────────────


async def test_from_config_reads_json_dump(tmp_path: Path) -> None:
    dump = {
        "items": [
            {
                "_id": "65f0",
                "name": "SALA 1",
                "history": [
                    {"_id": "e1", "date": "2026-03-10T12:00:00Z", "createdBy": "u1"}
                ],
            }
        ],
        "users": [{"_id": "u1", "email": "ana@example.com"}],
    }
    path = tmp_path / "dump.json"
    path.write_text(json.dumps(dump), encoding="utf-8")

    store = InMemoryStore.from_config({"path": str(path)})
    [facility] = await store.list_facilities()
    page = await store.fetch_history_page(facility, MARCH_10, limit=10)
    assert [r["_id"] for r in page.records] == ["e1"]
    assert await store.get_operator_label("u1") == "ana@example.com"


async def test_from_config_inline_items() -> None:
    store = InMemoryStore.from_config({"items": [facility_doc("a", "SALA 1")]})
    assert [f.name for f in await store.list_facilities()] == ["SALA 1"]


async def test_malformed_facility_skipped() -> None:
    store = InMemoryStore(facilities=[{"_id": "x"}, facility_doc("a", "SALA 1")])
    assert [f.id for f in await store.list_facilities()] == ["a"]


async def test_entries_without_readable_date_are_invisible() -> None:
    instant = datetime(2026, 3, 10, 12, tzinfo=UTC)
    store = InMemoryStore(
        facilities=[
            facility_doc(
                "a",
                "SALA 1",
                [
                    history_doc("ok", instant),
                    history_doc("garbled", instant, date="ontem"),
                    {"_id": "undated", "soap": True},
                ],
            )
        ]
    )
    [facility] = await store.list_facilities()
    page = await store.fetch_history_page(facility, MARCH_10, limit=10)
    assert [r["_id"] for r in page.records] == ["ok"]


async def test_naive_dates_read_as_utc() -> None:
    store = InMemoryStore(
        facilities=[
            facility_doc("a", "SALA 1", [history_doc("e1", datetime(2026, 3, 10, 23, 30))])
        ]
    )
    [facility] = await store.list_facilities()
    window = ExportWindow(
        start=datetime(2026, 3, 10, 23, tzinfo=UTC),
        end=datetime(2026, 3, 10, 23, 59, tzinfo=UTC),
    )
    page = await store.fetch_history_page(facility, window, limit=10)
    assert len(page) == 1


async def test_missing_entry_ids_are_generated() -> None:
    instant = datetime(2026, 3, 10, 12, tzinfo=UTC)
    store = InMemoryStore(
        facilities=[facility_doc("a", "SALA 1", [{"date": instant}, {"date": instant}])]
    )
    [facility] = await store.list_facilities()
    page = await store.fetch_history_page(facility, MARCH_10, limit=10)
    assert sorted(r["_id"] for r in page.records) == ["a:0", "a:1"]


async def test_operator_lookups_counted(store: InMemoryStore) -> None:
    await store.get_operator_label("u1")
    await store.get_operator_label("u1")
    assert store.operator_lookups == 2
