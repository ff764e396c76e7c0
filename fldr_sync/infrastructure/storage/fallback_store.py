"""Degrading KeyValueStore — falls back to memory when the host denies persistence."""

import logging

from fldr_sync.application.interfaces import KeyValueStore
from fldr_sync.domain.exceptions import StorageUnavailableError
from fldr_sync.infrastructure.storage.memory_store import InMemoryKeyValueStore

logger = logging.getLogger(__name__)


class FallbackKeyValueStore(KeyValueStore):
    """Wraps a durable store; on its first failure switches to memory for the session.

    Whatever the primary can still list and read is copied into the memory
    store at switch time so cached records stay visible. ``degraded`` tells
    the health check that nothing written from then on is durable.
    """

    def __init__(self, primary: KeyValueStore):
        self._primary = primary
        self._fallback: InMemoryKeyValueStore | None = None
        self.failure: StorageUnavailableError | None = None

    @classmethod
    def memory_only(cls, error: StorageUnavailableError) -> "FallbackKeyValueStore":
        """A store that is degraded from the start (the durable store never opened)."""
        store = cls(InMemoryKeyValueStore())
        store.failure = error
        store._fallback = InMemoryKeyValueStore()
        return store

    @property
    def degraded(self) -> bool:
        return self._fallback is not None

    @property
    def active(self) -> KeyValueStore:
        return self._fallback if self._fallback is not None else self._primary

    def _degrade(self, error: StorageUnavailableError) -> InMemoryKeyValueStore:
        logger.warning(
            "Local storage unavailable (%s) — continuing in memory-only mode for this session",
            error,
        )
        self.failure = error
        self._fallback = InMemoryKeyValueStore(self._salvage())
        return self._fallback

    def _salvage(self) -> dict[str, str]:
        salvaged: dict[str, str] = {}
        try:
            for key in self._primary.keys():
                value = self._primary.get(key)
                if value is not None:
                    salvaged[key] = value
        except StorageUnavailableError as e:
            logger.warning("Could not copy local entries into memory: %s", e)
        return salvaged

    def get(self, key: str) -> str | None:
        if self._fallback is not None:
            return self._fallback.get(key)
        try:
            return self._primary.get(key)
        except StorageUnavailableError as e:
            return self._degrade(e).get(key)

    def set(self, key: str, value: str) -> None:
        if self._fallback is not None:
            self._fallback.set(key, value)
            return
        try:
            self._primary.set(key, value)
        except StorageUnavailableError as e:
            self._degrade(e).set(key, value)

    def delete(self, key: str) -> None:
        if self._fallback is not None:
            self._fallback.delete(key)
            return
        try:
            self._primary.delete(key)
        except StorageUnavailableError as e:
            self._degrade(e).delete(key)

    def keys(self, prefix: str = "") -> list[str]:
        if self._fallback is not None:
            return self._fallback.keys(prefix)
        try:
            return self._primary.keys(prefix)
        except StorageUnavailableError as e:
            return self._degrade(e).keys(prefix)

    def close(self) -> None:
        close = getattr(self._primary, "close", None)
        if close is not None:
            close()
