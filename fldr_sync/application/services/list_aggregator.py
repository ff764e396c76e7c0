"""List aggregator — the cached full collection behind listing screens.

Refresh merge rules (cached vs. remote):
    1. remote empty, cached non-empty  → keep cached untouched (an empty
       remote answer is suspect, not authoritative)
    2. both non-empty                  → map seeded from cached; remote wins
       per id; local-only ids survive; remote-only ids are appended
    3. cached empty, remote non-empty  → adopt remote
    4. both empty                      → no write
"""

import json
import logging
from collections.abc import Awaitable, Callable

from fldr_sync.application.interfaces import KeyValueStore
from fldr_sync.application.services.storage_layout import StorageLayout
from fldr_sync.domain.entities import RecordData

logger = logging.getLogger(__name__)

RemoteFetcher = Callable[[], Awaitable[list[RecordData]]]


def merge_snapshots(
    cached: list[RecordData], remote: list[RecordData]
) -> list[RecordData] | None:
    """Apply the refresh merge rules. Returns None when nothing should be written."""
    if not remote:
        return None
    if not cached:
        return list(remote)

    merged: dict[str, RecordData] = {r["id"]: r for r in cached}
    for record in remote:
        merged[record["id"]] = record
    return list(merged.values())


class ListSnapshotStore:
    """Reads and writes the list snapshot key."""

    def __init__(self, store: KeyValueStore, layout: StorageLayout | None = None):
        self._store = store
        self._layout = layout or StorageLayout()

    def load(self) -> list[RecordData]:
        raw = self._store.get(self._layout.list_key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("List snapshot is corrupted — treating as empty")
            return []
        if not isinstance(data, list):
            return []
        return [r for r in data if isinstance(r, dict) and r.get("id")]

    def exists(self) -> bool:
        return self._store.get(self._layout.list_key) is not None

    def save(self, records: list[RecordData]) -> None:
        self._store.set(self._layout.list_key, json.dumps(records))

    def clear(self) -> None:
        self._store.delete(self._layout.list_key)


class ListAggregator:
    """Maintains the list snapshot with the same loss-avoidance rules as the record cache."""

    def __init__(self, snapshot_store: ListSnapshotStore, fetch_remote: RemoteFetcher):
        self._snapshots = snapshot_store
        self._fetch_remote = fetch_remote

    def get_all(self) -> list[RecordData]:
        return self._snapshots.load()

    async def refresh(self) -> list[RecordData]:
        """Fetch the remote collection and merge it into the snapshot.

        Errors from the fetcher propagate; the snapshot is left untouched.
        """
        remote = await self._fetch_remote()
        cached = self._snapshots.load()
        merged = merge_snapshots(cached, remote)

        if merged is None:
            if cached:
                logger.warning(
                    "Remote returned no fldrs but %d are cached — keeping the cache",
                    len(cached),
                )
            return cached

        self._snapshots.save(merged)
        logger.debug(
            "List snapshot refreshed: cached=%d remote=%d merged=%d",
            len(cached), len(remote), len(merged),
        )
        return merged

    def upsert(self, record: RecordData) -> None:
        """Insert or replace one record in place (local write/create)."""
        records = self._snapshots.load()
        for index, existing in enumerate(records):
            if existing["id"] == record["id"]:
                records[index] = record
                break
        else:
            records.append(record)
        self._snapshots.save(records)

    def replace(self, record: RecordData) -> bool:
        """Replace a record already in the snapshot. Returns False if absent."""
        records = self._snapshots.load()
        for index, existing in enumerate(records):
            if existing["id"] == record["id"]:
                records[index] = record
                self._snapshots.save(records)
                return True
        return False

    def remove(self, record_id: str) -> None:
        records = self._snapshots.load()
        kept = [r for r in records if r["id"] != record_id]
        if len(kept) != len(records):
            self._snapshots.save(kept)

    def rebuild(self, records: list[RecordData]) -> None:
        """Recreate a lost snapshot from surviving cache entries."""
        if records and not self._snapshots.load():
            logger.info("Rebuilding list snapshot from %d cached fldrs", len(records))
            self._snapshots.save(records)

    def clear(self) -> None:
        self._snapshots.clear()
