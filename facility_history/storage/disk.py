from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

from facility_history.storage.base import StorageBackend


class DiskStorage(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, base_path: str) -> None:
        self._base = Path(base_path).expanduser()
        self._base.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        return self._base / key

    # ---- interface ----

    def write(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        path = self._resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.partial")
        tmp.write_bytes(data)
        tmp.replace(path)

    def read(self, key: str) -> bytes:
        return self._resolve(key).read_bytes()

    def list_keys(self, prefix: str) -> list[str]:
        prefix_path = self._resolve(prefix)
        if not prefix_path.exists():
            return []
        if prefix_path.is_file():
            return [prefix]
        keys: list[str] = []
        for p in prefix_path.rglob("*"):
            if p.is_file() and not p.name.startswith("."):
                keys.append(p.relative_to(self._base).as_posix())
        return sorted(keys)

    def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()

    def delete(self, key: str) -> None:
        self._resolve(key).unlink(missing_ok=True)

    def created_at(self, key: str) -> datetime:
        return datetime.fromtimestamp(self._resolve(key).stat().st_mtime, tz=UTC)

    def resolve_uri(self, key: str, *, expires_in: timedelta | None = None) -> str:
        return self._resolve(key).resolve().as_uri()
