from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from pathlib import Path

from facility_history.artifacts.scheduler import TaskScheduler
from facility_history.core.exceptions import ArtifactNotFoundError, StorageError
from facility_history.core.types import ArtifactLocator
from facility_history.storage.base import StorageBackend

logger = logging.getLogger(__name__)

ARTIFACT_TTL = timedelta(minutes=5)
ARTIFACT_PREFIX = "exports"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ArtifactState(StrEnum):
    PENDING = "pending"
    DELETED = "deleted"


class LocatorMode(StrEnum):
    INLINE = "inline"
    URL = "url"


@dataclass
class Artifact:
    id: str
    file_name: str
    content_type: str
    created_at: datetime
    ttl: timedelta
    state: ArtifactState = ArtifactState.PENDING

    @property
    def expires_at(self) -> datetime:
        return self.created_at + self.ttl

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class EphemeralArtifactStore:
    """Publishes generated files and deletes them once their TTL elapses.

    Deletion is driven by the scheduler, not by the request that created
    the artifact or by anyone reading it.  Each artifact is deleted at
    most once; a failed deletion is logged and left to the next
    :meth:`sweep`.  Reads after the TTL fail even if the timer has not
    fired yet.
    """

    def __init__(
        self,
        storage: StorageBackend,
        scheduler: TaskScheduler,
        *,
        work_dir: str | Path,
        ttl: timedelta = ARTIFACT_TTL,
        prefix: str = ARTIFACT_PREFIX,
        locator: LocatorMode | str = LocatorMode.INLINE,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._storage = storage
        self._scheduler = scheduler
        self.work_dir = Path(work_dir).expanduser()
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self.ttl = ttl
        self.prefix = prefix.strip("/")
        self.locator = LocatorMode(locator)
        self._clock = clock
        self._artifacts: dict[str, Artifact] = {}
        self.deleted_count = 0

    def get(self, artifact_id: str) -> Artifact | None:
        return self._artifacts.get(artifact_id)

    async def publish(self, path: str | Path, *, content_type: str) -> ArtifactLocator:
        """Upload a finished file, schedule its deletion, return its locator."""
        path = Path(path)
        key = f"{self.prefix}/{path.name}"
        data = path.read_bytes()
        try:
            await asyncio.to_thread(
                self._storage.write, key, data, content_type=content_type
            )
        except Exception as exc:
            logger.error("Failed to upload artifact %s: %s", key, exc)
            raise StorageError(f"could not store {path.name}") from exc
        path.unlink(missing_ok=True)

        artifact = Artifact(
            id=key,
            file_name=path.name,
            content_type=content_type,
            created_at=self._clock(),
            ttl=self.ttl,
        )
        self._artifacts[key] = artifact
        self._scheduler.schedule(
            self.ttl.total_seconds(),
            lambda: self.expire(key),
            name=f"delete-artifact:{key}",
        )
        logger.info(
            "Published %s (%d bytes), expires at %s",
            key,
            len(data),
            artifact.expires_at.isoformat(),
        )
        return ArtifactLocator(
            artifact_id=key,
            file_name=artifact.file_name,
            content_type=content_type,
            uri=self._uri(artifact, data),
            expires_at=artifact.expires_at,
            inline=self.locator is LocatorMode.INLINE,
        )

    async def open(self, artifact_id: str) -> bytes:
        artifact = self._artifacts.get(artifact_id)
        if artifact is None or artifact.state is ArtifactState.DELETED:
            raise ArtifactNotFoundError(artifact_id)
        if artifact.is_expired(self._clock()):
            await self.expire(artifact_id)
            raise ArtifactNotFoundError(artifact_id)
        try:
            return await asyncio.to_thread(self._storage.read, artifact_id)
        except FileNotFoundError:
            raise ArtifactNotFoundError(artifact_id) from None

    async def expire(self, artifact_id: str) -> None:
        """Delete an artifact now.  Safe to call any number of times."""
        artifact = self._artifacts.pop(artifact_id, None)
        if artifact is None or artifact.state is ArtifactState.DELETED:
            return
        artifact.state = ArtifactState.DELETED
        try:
            await asyncio.to_thread(self._storage.delete, artifact_id)
        except Exception:
            logger.exception("Failed to delete artifact %s", artifact_id)
            return
        self.deleted_count += 1
        logger.info("Deleted artifact %s", artifact_id)

    async def sweep(self) -> int:
        """Remove artifacts and work files older than the TTL.

        Catches leftovers of a previous process that died before its
        timers fired.  Returns the number of stored artifacts removed.
        """
        now = self._clock()
        removed = 0
        try:
            keys = await asyncio.to_thread(self._storage.list_keys, self.prefix)
        except Exception:
            logger.exception("Artifact sweep could not list %s", self.prefix)
            keys = []

        for key in keys:
            if key in self._artifacts:
                if self._artifacts[key].is_expired(now):
                    await self.expire(key)
                    removed += 1
                continue
            try:
                created = await asyncio.to_thread(self._storage.created_at, key)
                if now - created < self.ttl:
                    continue
                await asyncio.to_thread(self._storage.delete, key)
            except FileNotFoundError:
                continue
            except Exception:
                logger.exception("Artifact sweep failed on %s", key)
                continue
            removed += 1

        for path in self.work_dir.iterdir():
            if not path.is_file():
                continue
            try:
                modified = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
                if now - modified >= self.ttl:
                    path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove stale work file %s: %s", path, exc)

        if removed:
            logger.info("Swept %d stale artifact(s)", removed)
        return removed

    async def close(self) -> None:
        await self._scheduler.shutdown()

    def _uri(self, artifact: Artifact, data: bytes) -> str:
        if self.locator is LocatorMode.INLINE:
            payload = base64.b64encode(data).decode()
            return f"data:{artifact.content_type};base64,{payload}"
        return self._storage.resolve_uri(artifact.id, expires_in=self.ttl)
