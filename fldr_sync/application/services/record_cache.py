"""Record cache — per-id "last known good" copies in the local store."""

import json
import logging

from fldr_sync.application.interfaces import KeyValueStore
from fldr_sync.application.services.storage_layout import StorageLayout
from fldr_sync.domain.entities import CacheEntry, RecordData

logger = logging.getLogger(__name__)


class RecordCache:
    """Stores one full record per id. ``put`` always overwrites, never merges."""

    def __init__(self, store: KeyValueStore, layout: StorageLayout | None = None):
        self._store = store
        self._layout = layout or StorageLayout()

    def get(self, record_id: str) -> RecordData | None:
        entry = self.get_entry(record_id)
        return entry.record if entry else None

    def get_entry(self, record_id: str) -> CacheEntry | None:
        """Return the cache entry, or None on a miss or unreadable value."""
        raw = self._store.get(self._layout.record_key(record_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Cached fldr %s is corrupted — treating as a miss", record_id)
            return None
        if not isinstance(data, dict):
            logger.warning("Cached fldr %s is not an object — treating as a miss", record_id)
            return None
        return CacheEntry.from_dict(record_id, data)

    def put(self, record_id: str, record: RecordData) -> CacheEntry:
        entry = CacheEntry(record_id=record_id, record=record)
        self._store.set(self._layout.record_key(record_id), json.dumps(entry.to_dict()))
        return entry

    def remove(self, record_id: str) -> None:
        self._store.delete(self._layout.record_key(record_id))

    def list_known_ids(self) -> set[str]:
        prefix = self._layout.record_prefix
        return {self._layout.record_id_from_key(k) for k in self._store.keys(prefix)}

    def clear(self) -> int:
        """Remove every cache entry. Returns how many were removed."""
        ids = self.list_known_ids()
        for record_id in ids:
            self.remove(record_id)
        return len(ids)
