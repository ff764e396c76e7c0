"""Pending-write queue — ordered, durable log of unconfirmed updates.

The whole queue is persisted as a single JSON value. Items are never
deduplicated or collapsed: replay order is enqueue order and the last
applied write wins.
"""

import json
import logging

from fldr_sync.application.interfaces import KeyValueStore
from fldr_sync.application.services.storage_layout import StorageLayout
from fldr_sync.domain.entities import PendingWrite, RecordData, WriteKind

logger = logging.getLogger(__name__)


class PendingWriteQueue:
    """FIFO of PendingWrite items backed by one local-store key."""

    def __init__(self, store: KeyValueStore, layout: StorageLayout | None = None):
        self._store = store
        self._layout = layout or StorageLayout()

    def _load(self) -> list[PendingWrite]:
        raw = self._store.get(self._layout.queue_key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.error("Sync queue is corrupted — ignoring its contents")
            return []

        items: list[PendingWrite] = []
        for item_data in data if isinstance(data, list) else []:
            try:
                items.append(PendingWrite.from_dict(item_data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping corrupted sync queue item: %s", e)
        return items

    def _persist(self, items: list[PendingWrite]) -> None:
        if not items:
            self._store.delete(self._layout.queue_key)
            return
        self._store.set(
            self._layout.queue_key, json.dumps([item.to_dict() for item in items])
        )

    def enqueue(
        self,
        record_id: str,
        updates: RecordData,
        kind: WriteKind = WriteKind.PATCH,
    ) -> PendingWrite:
        """Append an item. Never merges with earlier items for the same id."""
        item = PendingWrite(record_id=record_id, updates=dict(updates), kind=kind)
        items = self._load()
        items.append(item)
        self._persist(items)
        logger.debug(
            "Queued %s for fldr %s: %s (queue size %d)",
            kind.value, record_id, sorted(updates), len(items),
        )
        return item

    def snapshot(self) -> list[PendingWrite]:
        """Read-only, ordered copy of the queue."""
        return self._load()

    def clear(self) -> None:
        """Remove the whole queue in one write."""
        self._store.delete(self._layout.queue_key)

    def drain(self, replayed: list[PendingWrite]) -> None:
        """Remove a fully replayed snapshot.

        Items appended after the snapshot was taken stay queued.
        """
        replayed_ids = {item.item_id for item in replayed}
        remaining = [item for item in self._load() if item.item_id not in replayed_ids]
        self._persist(remaining)

    def is_empty(self) -> bool:
        return not self._load()

    def pending_ids(self) -> set[str]:
        return {item.record_id for item in self._load()}

    def items_for(self, record_id: str) -> list[PendingWrite]:
        return [item for item in self._load() if item.record_id == record_id]

    def __len__(self) -> int:
        return len(self._load())
