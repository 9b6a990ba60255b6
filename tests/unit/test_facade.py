from __future__ import annotations

from datetime import timedelta

import pytest

from facility_history import tools
from facility_history.core.exceptions import ValidationError
from facility_history.facade import FacilityHistory
from facility_history.facade.core import INSPECTION_ROW_LIMIT
from facility_history.store.memory import InMemoryStore
from tests.conftest import NOW, bulk_history, facility_doc


@pytest.fixture()
def busy_pair(make_history) -> FacilityHistory:
    # "(A)" sorts first but only holds older entries
    store = InMemoryStore(
        facilities=[
            facility_doc(
                "a", "SALA 5 (A)", bulk_history("a", 250, start=NOW - timedelta(hours=1))
            ),
            facility_doc("b", "SALA 5 (B)", bulk_history("b", 10)),
        ]
    )
    return make_history(store)


async def test_inspection_keeps_newest_across_facilities(busy_pair: FacilityHistory):
    result = await busy_pair.inspect_facility("SALA 5")

    assert [f.name for f in result.facilities] == ["SALA 5 (A)", "SALA 5 (B)"]
    assert result.truncated
    assert len(result.entries) == INSPECTION_ROW_LIMIT
    assert [e.entry.id for e in result.entries[:10]] == [
        f"b-{i:06d}" for i in range(10)
    ]
    assert result.entries[-1].entry.id == f"a-{INSPECTION_ROW_LIMIT - 11:06d}"
    stamps = [e.entry.recorded_at for e in result.entries]
    assert stamps == sorted(stamps, reverse=True)


async def test_inspection_under_limit_is_not_truncated(make_history):
    store = InMemoryStore(
        facilities=[
            facility_doc("a", "SALA 5 (A)", bulk_history("a", INSPECTION_ROW_LIMIT)),
        ]
    )
    result = await make_history(store, page_size=50).inspect_facility("SALA 5")
    assert len(result.entries) == INSPECTION_ROW_LIMIT
    assert not result.truncated


async def test_blank_export_query_rejected(busy_pair: FacilityHistory):
    with pytest.raises(ValidationError) as excinfo:
        await busy_pair.export_history("   ")
    assert excinfo.value.field == "query"


async def test_blank_export_query_reported_by_tool(busy_pair: FacilityHistory):
    result = await tools.export_history(busy_pair, "   ")
    assert result.is_error
    assert result.artifact is None
    assert result.text.startswith("Erro ao exportar registros: query:")
