from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta


class StorageBackend(ABC):
    """Abstract base class for artifact blob storage."""

    @abstractmethod
    def write(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        """Write data to the given key."""
        ...

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Read data from the given key.

        Raises ``FileNotFoundError`` when the key does not exist.
        """
        ...

    @abstractmethod
    def list_keys(self, prefix: str) -> list[str]:
        """List all keys with the given prefix."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if the key exists."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the given key (no-op when it is already gone)."""
        ...

    @abstractmethod
    def created_at(self, key: str) -> datetime:
        """Return when the key was written, as an aware UTC datetime."""
        ...

    @abstractmethod
    def resolve_uri(self, key: str, *, expires_in: timedelta | None = None) -> str:
        """Return a URI suitable for external consumption.

        Backends that can sign URLs honour *expires_in*.
        """
        ...
