"""Storage health monitoring for the durable local store."""

import json
import logging
from datetime import datetime, timezone

from fldr_sync.application.interfaces import KeyValueStore
from fldr_sync.application.services.storage_layout import StorageLayout
from fldr_sync.domain.entities import StorageHealth
from fldr_sync.domain.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


class StorageHealthService:
    """Probes the local store and keeps lightweight diagnostics in it."""

    def __init__(self, store: KeyValueStore, layout: StorageLayout | None = None):
        self._store = store
        self._layout = layout or StorageLayout()

    @property
    def degraded(self) -> bool:
        """True once the store has fallen back to memory for this session."""
        return bool(getattr(self._store, "degraded", False))

    def check(self) -> StorageHealth:
        """Write/remove a probe key, count the list snapshot, persist the result."""
        now = datetime.now(timezone.utc)
        try:
            self._store.set(self._layout.probe_key, "test")
            self._store.delete(self._layout.probe_key)

            cached = self._store.get(self._layout.list_key)
            cache_count = len(json.loads(cached)) if cached else 0

            health = StorageHealth(
                last_check=now,
                last_write=now,
                cache_count=cache_count,
                is_working=True,
                degraded=self.degraded,
            )
            self._store.set(self._layout.health_key, json.dumps(health.to_dict()))
            return health
        except (StorageUnavailableError, json.JSONDecodeError, TypeError) as e:
            logger.error("Storage health check failed: %s", e)
            return StorageHealth(
                last_check=now,
                last_write=None,
                cache_count=0,
                is_working=False,
                degraded=self.degraded,
            )

    def last_health(self) -> StorageHealth | None:
        """The most recently persisted health check, if any."""
        try:
            raw = self._store.get(self._layout.health_key)
            return StorageHealth.from_dict(json.loads(raw)) if raw else None
        except (StorageUnavailableError, json.JSONDecodeError, TypeError, ValueError) as e:
            logger.error("Failed to read storage health: %s", e)
            return None

    def describe(self) -> dict[str, int]:
        """Size in bytes of every key the engine owns."""
        sizes: dict[str, int] = {}
        for key in self._store.keys(self._layout.namespace):
            if not self._layout.owns(key):
                continue
            value = self._store.get(key) or ""
            sizes[key] = len(value.encode("utf-8"))

        total = sum(sizes.values())
        logger.debug("Storage keys: %s", sorted(sizes))
        for key, size in sorted(sizes.items()):
            logger.debug("  - %s: %.2f KB", key, size / 1024)
        logger.debug("Total local storage: %.2f KB", total / 1024)
        return sizes
