from __future__ import annotations

from typing import Any, Generic, TypeVar

from facility_history.storage.base import StorageBackend
from facility_history.store.base import Store

T = TypeVar("T")


class _Registry(Generic[T]):
    """Lazily-populated factory registry.

    Each backend module registers itself via :meth:`register`.
    :meth:`build` resolves a provider name to a factory, calling
    ``factory.from_config(config)`` if available, otherwise
    ``factory(**config)``.
    """

    def __init__(self, label: str) -> None:
        self._label = label
        self._factories: dict[str, type[T]] = {}
        self._defaults_loaded = False

    def register(self, name: str, cls: type[T]) -> None:
        self._factories[name] = cls

    @property
    def names(self) -> list[str]:
        self._ensure_defaults()
        return list(self._factories)

    def build(self, provider: str, config: dict[str, Any]) -> T:
        self._ensure_defaults()
        factory = self._factories.get(provider)
        if factory is None:
            raise ValueError(
                f"Unknown {self._label} provider '{provider}'. "
                f"Available: {list(self._factories)}"
            )
        if hasattr(factory, "from_config"):
            return factory.from_config(config)  # type: ignore[return-value]
        return factory(**config)  # type: ignore[return-value]

    def _ensure_defaults(self) -> None:
        if not self._defaults_loaded:
            self._load_defaults()
            self._defaults_loaded = True

    def _load_defaults(self) -> None:
        """Override point: subclasses populate built-in factories here."""


class _StorageRegistry(_Registry[StorageBackend]):
    def _load_defaults(self) -> None:
        from facility_history.storage.disk import DiskStorage

        self.register("disk", DiskStorage)

        try:
            from facility_history.storage.gcs import GCSStorage

            self.register("gcs", GCSStorage)
        except ImportError:
            pass


class _StoreRegistry(_Registry[Store]):
    def _load_defaults(self) -> None:
        from facility_history.store.memory import InMemoryStore

        self.register("memory", InMemoryStore)

        try:
            from facility_history.store.postgres import PostgresStore

            self.register("postgres", PostgresStore)
        except ImportError:
            pass


# Singleton instances
storage_registry = _StorageRegistry("storage")
store_registry = _StoreRegistry("store")


def parse_config(config: dict[str, Any]) -> tuple[StorageBackend, Store]:
    """Parse a user config dict and return ``(storage, store)``.

    Expected shape::

        {
            "storage": {"provider": "disk", "config": {"base_path": "/tmp"}},
            "store": {"provider": "memory", "config": {"path": "dump.json"}},
        }

    If no ``store`` key is present, defaults to an empty in-memory store.
    The ``db`` key is accepted as an alias for ``store``.
    """
    storage_cfg = config.get("storage", {})
    store_cfg = config.get("store") or config.get("db", {})

    storage = storage_registry.build(
        storage_cfg.get("provider", "disk"),
        storage_cfg.get("config", {"base_path": "./data"}),
    )
    store = store_registry.build(
        store_cfg.get("provider", "memory"),
        store_cfg.get("config", {}),
    )
    return storage, store
