from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from facility_history.storage.disk import DiskStorage


@pytest.fixture()
def disk(tmp_path: Path) -> DiskStorage:
    return DiskStorage(str(tmp_path / "blobs"))


class TestDiskStorage:
    def test_write_and_read(self, disk: DiskStorage):
        disk.write("exports/a.xlsx", b"data")
        assert disk.read("exports/a.xlsx") == b"data"
        assert disk.exists("exports/a.xlsx")

    def test_read_missing_raises(self, disk: DiskStorage):
        with pytest.raises(FileNotFoundError):
            disk.read("exports/none.xlsx")

    def test_list_keys_skips_partial_writes(self, disk: DiskStorage, tmp_path: Path):
        disk.write("exports/b.xlsx", b"b")
        disk.write("exports/a.xlsx", b"a")
        disk.write("other/c.xlsx", b"c")
        (tmp_path / "blobs" / "exports" / ".d.xlsx.partial").write_bytes(b"")
        assert disk.list_keys("exports") == ["exports/a.xlsx", "exports/b.xlsx"]
        assert disk.list_keys("missing") == []

    def test_delete_is_idempotent(self, disk: DiskStorage):
        disk.write("exports/a.xlsx", b"a")
        disk.delete("exports/a.xlsx")
        disk.delete("exports/a.xlsx")
        assert not disk.exists("exports/a.xlsx")

    def test_created_at_is_aware(self, disk: DiskStorage):
        disk.write("exports/a.xlsx", b"a")
        created = disk.created_at("exports/a.xlsx")
        assert created.tzinfo is not None
        assert abs(datetime.now(UTC) - created) < timedelta(minutes=1)

    def test_resolve_uri_is_file_uri(self, disk: DiskStorage):
        disk.write("exports/a.xlsx", b"a")
        uri = disk.resolve_uri("exports/a.xlsx", expires_in=timedelta(minutes=5))
        assert uri.startswith("file://")
        assert uri.endswith("exports/a.xlsx")
