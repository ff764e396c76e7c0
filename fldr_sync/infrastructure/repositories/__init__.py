"""Server-side repository adapters for the reference remote store."""

from .in_memory_fldr_repository import InMemoryFldrRepository

__all__ = ["InMemoryFldrRepository"]
