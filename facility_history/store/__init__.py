from facility_history.store.base import Store
from facility_history.store.memory import InMemoryStore

__all__ = [
    "InMemoryStore",
    "Store",
]
