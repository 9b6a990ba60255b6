from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from facility_history.models import AreaType, Facility, HistoryEntry
from facility_history.models.utils import unique_file_name


class TestFacility:
    def test_document_keys(self):
        facility = Facility.model_validate(
            {"_id": 42, "name": "SALA 1", "code": "  ", "areaType": "naocritica"}
        )
        assert facility.id == "42"
        assert facility.code is None
        assert facility.area_type is AreaType.NON_CRITICAL

    def test_snake_case_keys(self):
        facility = Facility.model_validate(
            {"id": "a", "name": "SALA 1", "area_type": "critica", "code": "S1"}
        )
        assert facility.area_type is AreaType.CRITICAL
        assert facility.code == "S1"

    @pytest.mark.parametrize("value", ["desconhecida", None, 3])
    def test_unknown_area_type(self, value):
        facility = Facility.model_validate({"_id": "a", "name": "x", "areaType": value})
        assert facility.area_type is AreaType.UNSPECIFIED

    def test_name_required(self):
        with pytest.raises(ValidationError):
            Facility.model_validate({"_id": "a"})


class TestHistoryEntry:
    def test_document_keys(self):
        entry = HistoryEntry.model_validate(
            {
                "_id": "e1",
                "date": "2026-03-10T12:00:00Z",
                "startTime": "08:00",
                "paperTowel": True,
                "handSanitizer": None,
                "createdBy": 7,
                "startedPhoto": "in.jpg",
                "unexpected": "ignored",
            }
        )
        assert entry.recorded_at == datetime(2026, 3, 10, 12, tzinfo=UTC)
        assert entry.start_time == "08:00"
        assert entry.paper_towel
        assert entry.hand_sanitizer is False
        assert entry.operator_ref == "7"
        assert entry.started_photo == "in.jpg"

    def test_missing_flags_default_false(self):
        entry = HistoryEntry.model_validate(
            {"_id": "e1", "date": datetime(2026, 3, 10, tzinfo=UTC)}
        )
        assert not any(
            (
                entry.paper_towel,
                entry.toilet_paper,
                entry.soap,
                entry.hand_sanitizer,
                entry.concurrent,
                entry.terminal,
            )
        )

    def test_naive_instant_is_utc(self):
        entry = HistoryEntry.model_validate(
            {"_id": "e1", "date": datetime(2026, 3, 10, 12)}
        )
        assert entry.recorded_at.tzinfo is UTC

    def test_aware_instant_kept(self):
        offset = timezone(timedelta(hours=-3))
        entry = HistoryEntry.model_validate(
            {"_id": "e1", "date": datetime(2026, 3, 10, 9, tzinfo=offset)}
        )
        assert entry.recorded_at == datetime(2026, 3, 10, 12, tzinfo=UTC)

    def test_bad_flag_rejected(self):
        with pytest.raises(ValidationError):
            HistoryEntry.model_validate(
                {"_id": "e1", "date": datetime(2026, 3, 10), "soap": "perhaps"}
            )

    def test_date_required(self):
        with pytest.raises(ValidationError):
            HistoryEntry.model_validate({"_id": "e1"})


def test_unique_file_name():
    first = unique_file_name("historico_limpeza", "xlsx")
    second = unique_file_name("historico_limpeza", ".xlsx")
    assert re.fullmatch(r"historico_limpeza_\d+_[0-9a-f]{8}\.xlsx", first)
    assert first != second
