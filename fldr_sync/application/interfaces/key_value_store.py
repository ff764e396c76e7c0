"""Abstract port for the host's durable key-value storage."""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Port for synchronous, process-restart-surviving string storage.

    Implementations raise ``StorageUnavailableError`` when the host denies
    persistence (quota exceeded, disk gone, database locked...).
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Removing an absent key is not an error."""
        ...

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with ``prefix``."""
        ...
