from .memory_store import InMemoryKeyValueStore
from .fallback_store import FallbackKeyValueStore

__all__ = [
    "InMemoryKeyValueStore",
    "FallbackKeyValueStore",
]
