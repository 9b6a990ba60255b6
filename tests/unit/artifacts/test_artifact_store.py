from __future__ import annotations

import base64
import os
from datetime import timedelta
from pathlib import Path

import pytest

from facility_history.artifacts import ArtifactState, EphemeralArtifactStore, LocatorMode
from facility_history.core.exceptions import ArtifactNotFoundError, StorageError
from facility_history.storage.disk import DiskStorage
from facility_history.testing.fakes import FrozenClock, ManualScheduler
from tests.conftest import NOW

CONTENT_TYPE = "application/octet-stream"


@pytest.fixture()
def artifacts(
    storage: DiskStorage, scheduler: ManualScheduler, clock: FrozenClock, tmp_path: Path
) -> EphemeralArtifactStore:
    return EphemeralArtifactStore(
        storage, scheduler, work_dir=tmp_path / "work", clock=clock
    )


def _work_file(artifacts: EphemeralArtifactStore, name: str, data: bytes) -> Path:
    path = artifacts.work_dir / name
    path.write_bytes(data)
    return path


def _age(path: Path, delta: timedelta) -> None:
    stamp = (NOW - delta).timestamp()
    os.utime(path, (stamp, stamp))


async def test_readable_before_ttl_gone_after(
    artifacts: EphemeralArtifactStore, scheduler: ManualScheduler, storage: DiskStorage
):
    locator = await artifacts.publish(
        _work_file(artifacts, "a.xlsx", b"payload"), content_type=CONTENT_TYPE
    )

    assert await scheduler.advance(timedelta(minutes=4)) == 0
    assert await artifacts.open(locator.artifact_id) == b"payload"

    assert await scheduler.advance(timedelta(minutes=2)) == 1
    with pytest.raises(ArtifactNotFoundError):
        await artifacts.open(locator.artifact_id)
    assert not storage.exists(locator.artifact_id)
    assert artifacts.deleted_count == 1


async def test_deleted_exactly_once(
    artifacts: EphemeralArtifactStore, scheduler: ManualScheduler
):
    locator = await artifacts.publish(
        _work_file(artifacts, "a.xlsx", b"x"), content_type=CONTENT_TYPE
    )
    await scheduler.advance(timedelta(minutes=6))
    await scheduler.advance(timedelta(minutes=6))
    await artifacts.expire(locator.artifact_id)
    await artifacts.sweep()
    assert artifacts.deleted_count == 1
    assert scheduler.pending == 0


async def test_read_after_ttl_fails_before_timer_fires(
    artifacts: EphemeralArtifactStore, clock: FrozenClock
):
    locator = await artifacts.publish(
        _work_file(artifacts, "a.xlsx", b"x"), content_type=CONTENT_TYPE
    )
    clock.advance(timedelta(minutes=5))
    with pytest.raises(ArtifactNotFoundError):
        await artifacts.open(locator.artifact_id)
    assert artifacts.deleted_count == 1


async def test_open_unknown_artifact(artifacts: EphemeralArtifactStore):
    with pytest.raises(ArtifactNotFoundError):
        await artifacts.open("exports/missing.xlsx")


async def test_publish_moves_work_file(
    artifacts: EphemeralArtifactStore, storage: DiskStorage
):
    path = _work_file(artifacts, "a.xlsx", b"x")
    locator = await artifacts.publish(path, content_type=CONTENT_TYPE)
    assert not path.exists()
    assert locator.artifact_id == "exports/a.xlsx"
    assert storage.read("exports/a.xlsx") == b"x"
    artifact = artifacts.get(locator.artifact_id)
    assert artifact is not None
    assert artifact.state is ArtifactState.PENDING
    assert locator.expires_at == NOW + timedelta(minutes=5)


async def test_inline_locator_embeds_content(artifacts: EphemeralArtifactStore):
    locator = await artifacts.publish(
        _work_file(artifacts, "a.xlsx", b"hello"), content_type=CONTENT_TYPE
    )
    assert locator.inline
    assert locator.uri == f"data:{CONTENT_TYPE};base64," + base64.b64encode(
        b"hello"
    ).decode()


async def test_url_locator_points_at_storage(
    storage: DiskStorage, scheduler: ManualScheduler, clock: FrozenClock, tmp_path: Path
):
    artifacts = EphemeralArtifactStore(
        storage,
        scheduler,
        work_dir=tmp_path / "work",
        locator=LocatorMode.URL,
        clock=clock,
    )
    locator = await artifacts.publish(
        _work_file(artifacts, "a.xlsx", b"x"), content_type=CONTENT_TYPE
    )
    assert not locator.inline
    assert locator.uri.startswith("file://")
    assert locator.uri.endswith("/exports/a.xlsx")


class _UndeletableStorage(DiskStorage):
    def delete(self, key: str) -> None:
        raise OSError("permission denied")


async def test_failed_deletion_is_logged_not_raised(
    scheduler: ManualScheduler, clock: FrozenClock, tmp_path: Path, caplog
):
    storage = _UndeletableStorage(str(tmp_path / "storage"))
    artifacts = EphemeralArtifactStore(
        storage, scheduler, work_dir=tmp_path / "work", clock=clock
    )
    locator = await artifacts.publish(
        _work_file(artifacts, "a.xlsx", b"x"), content_type=CONTENT_TYPE
    )
    assert await scheduler.advance(timedelta(minutes=6)) == 1
    assert artifacts.deleted_count == 0
    assert "Failed to delete artifact" in caplog.text
    with pytest.raises(ArtifactNotFoundError):
        await artifacts.open(locator.artifact_id)


class _ReadOnlyStorage(DiskStorage):
    def write(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise OSError("read-only file system")


async def test_upload_failure_raises_storage_error(
    scheduler: ManualScheduler, clock: FrozenClock, tmp_path: Path
):
    artifacts = EphemeralArtifactStore(
        _ReadOnlyStorage(str(tmp_path / "storage")),
        scheduler,
        work_dir=tmp_path / "work",
        clock=clock,
    )
    path = _work_file(artifacts, "a.xlsx", b"x")
    with pytest.raises(StorageError):
        await artifacts.publish(path, content_type=CONTENT_TYPE)
    assert path.exists()
    assert scheduler.pending == 0


async def test_sweep_removes_stale_leftovers(
    artifacts: EphemeralArtifactStore, storage: DiskStorage, tmp_path: Path
):
    storage.write("exports/old.xlsx", b"old")
    storage.write("exports/fresh.xlsx", b"fresh")
    _age(tmp_path / "storage" / "exports" / "old.xlsx", timedelta(minutes=10))
    _age(tmp_path / "storage" / "exports" / "fresh.xlsx", timedelta(minutes=1))
    stale_work = _work_file(artifacts, "abandoned.xlsx.tmp", b"")
    _age(stale_work, timedelta(hours=1))
    fresh_work = _work_file(artifacts, "running.xlsx.tmp", b"")
    _age(fresh_work, timedelta(seconds=30))

    assert await artifacts.sweep() == 1
    assert storage.list_keys("exports") == ["exports/fresh.xlsx"]
    assert not stale_work.exists()
    assert fresh_work.exists()


async def test_sweep_expires_known_artifacts_past_ttl(
    artifacts: EphemeralArtifactStore, clock: FrozenClock, storage: DiskStorage
):
    locator = await artifacts.publish(
        _work_file(artifacts, "a.xlsx", b"x"), content_type=CONTENT_TYPE
    )
    assert await artifacts.sweep() == 0
    assert storage.exists(locator.artifact_id)
    clock.advance(timedelta(minutes=5))
    assert await artifacts.sweep() == 1
    assert artifacts.get(locator.artifact_id) is None
    assert artifacts.deleted_count == 1


async def test_close_cancels_pending_deletions(
    artifacts: EphemeralArtifactStore, scheduler: ManualScheduler
):
    await artifacts.publish(
        _work_file(artifacts, "a.xlsx", b"x"), content_type=CONTENT_TYPE
    )
    assert scheduler.pending == 1
    await artifacts.close()
    assert scheduler.pending == 0
