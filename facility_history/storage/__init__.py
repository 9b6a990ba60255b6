from facility_history.storage.base import StorageBackend
from facility_history.storage.disk import DiskStorage

__all__ = [
    "StorageBackend",
    "DiskStorage",
]
