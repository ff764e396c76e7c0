"""Reconciliation engine — offline-first reads and writes over the remote store.

Per-record states (client view):
    UNKNOWN ──read──▶ CACHED ──write fails / offline──▶ DIRTY ──flush──▶ CACHED

Rules:
    - read:   cached value returns at once; when online a background remote
              read revalidates it (stale-while-revalidate). With no cache
              entry the read blocks on the remote, or reports None.
    - write:  merged into the cache synchronously before any network call,
              then patched remotely; any failure parks the same patch in the
              pending-write queue.
              A local write makes answers to requests sent before it stale;
              they are dropped instead of cached.
    - flush:  replays the whole queue in order; drains it only when every
              item succeeded, then re-reads each affected record.
              A patch the remote answers with "not found" is recreated from
              the cached record, or dropped when that lacks the create fields.

Remote unavailability is never raised to callers. Only ``RemoteStoreError``
is absorbed; shape errors from the normalizer propagate.
"""

import asyncio
import copy
import logging
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fldr_sync.application.interfaces import KeyValueStore, RemoteRecordStore
from fldr_sync.application.schemas.fldr import FldrCreate, FldrPatch
from fldr_sync.application.services.connectivity_monitor import ConnectivityMonitor
from fldr_sync.application.services.list_aggregator import ListAggregator, ListSnapshotStore
from fldr_sync.application.services.pending_write_queue import PendingWriteQueue
from fldr_sync.application.services.record_cache import RecordCache
from fldr_sync.application.services.record_events import RecordEventBroadcaster
from fldr_sync.application.services.schema_normalizer import normalize
from fldr_sync.application.services.storage_health import StorageHealthService
from fldr_sync.application.services.storage_layout import StorageLayout
from fldr_sync.domain.entities import (
    PendingWrite,
    RecordData,
    RecordEvent,
    RecordEventKind,
    StorageHealth,
    SyncState,
    WriteKind,
    promoted_status,
)
from fldr_sync.domain.exceptions import EntityNotFoundError, RemoteStoreError
from fldr_sync.infrastructure.logging.colored_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
sync_log = SyncLogger("fldr_sync.sync")

# Fields a replayed patch must carry before it can fall back to a create
_CREATE_REQUIRED = tuple(
    name for name, field in FldrCreate.model_fields.items() if field.is_required()
)


class ReconciliationEngine:
    """Orchestrates record cache, pending-write queue and list snapshot.

    The only component with sync policy. Single event loop, no locks: every
    local-store access completes before the next suspension point.
    """

    def __init__(
        self,
        *,
        remote: RemoteRecordStore,
        store: KeyValueStore,
        monitor: ConnectivityMonitor,
        layout: StorageLayout | None = None,
        events: RecordEventBroadcaster | None = None,
        auto_flush: bool = True,
    ) -> None:
        layout = layout or StorageLayout()
        self._remote = remote
        self._monitor = monitor
        self.cache = RecordCache(store, layout)
        self.queue = PendingWriteQueue(store, layout)
        self.lists = ListAggregator(ListSnapshotStore(store, layout), self._fetch_remote_list)
        self.health = StorageHealthService(store, layout)
        self.events = events or RecordEventBroadcaster()

        self._revalidations: dict[str, asyncio.Task] = {}
        self._generations: dict[str, int] = {}
        self._watchers: dict[str, int] = {}
        self._list_refresh: asyncio.Task | None = None
        self._flush_task: asyncio.Task | None = None
        self._unsubscribe = monitor.on_online(self._on_online) if auto_flush else None

    # ── Observable flags ────────────────────────────────────────────

    @property
    def is_online(self) -> bool:
        return self._monitor.is_online

    @property
    def has_unsynced_changes(self) -> bool:
        return not self.queue.is_empty()

    def state_of(self, record_id: str) -> SyncState:
        if record_id in self.queue.pending_ids():
            return SyncState.DIRTY
        if self.cache.get(record_id) is not None:
            return SyncState.CACHED
        return SyncState.UNKNOWN

    # ── Reads ───────────────────────────────────────────────────────

    async def read(self, record_id: str) -> RecordData | None:
        """Return the best local value; None means nothing safe to show."""
        cached = self.cache.get(record_id)
        if cached is not None:
            record, changed = normalize(cached)
            if changed:
                # Self-healing write-back of a stale stored shape
                sync_log.detail(f"Upgraded stored shape of fldr {record_id}")
                self.cache.put(record_id, record)
            if self.is_online:
                self._revalidate(record_id)
            return record

        if not self.is_online:
            logger.info("Fldr %s not cached and offline — not found locally", record_id)
            return None

        generation = self._generations.get(record_id, 0)
        try:
            remote = await self._remote.get_record(record_id)
        except RemoteStoreError as e:
            sync_log.step_warning(SyncStage.REMOTE, f"Read of fldr {record_id} failed", error=e)
            return None
        if remote is None:
            return None
        if self._generations.get(record_id, 0) != generation:
            return self.cache.get(record_id)
        return self._accept_remote(record_id, remote)

    async def read_all(self) -> list[RecordData]:
        """Return the list snapshot; refresh it in the background when online."""
        records = self.lists.get_all()
        if not records:
            records = self._records_from_cache()
            self.lists.rebuild(records)

        if records:
            if self.is_online:
                self._refresh_list_in_background()
            return records

        if not self.is_online:
            return []
        return await self.refresh_all()

    async def refresh_all(self) -> list[RecordData]:
        """Blocking list refresh. Falls back to the snapshot on failure."""
        try:
            return await self.lists.refresh()
        except RemoteStoreError as e:
            sync_log.step_warning(SyncStage.LIST, "List refresh failed — using snapshot", error=e)
            return self.lists.get_all()

    # ── Writes ──────────────────────────────────────────────────────

    async def write(self, record_id: str, updates: RecordData | FldrPatch) -> RecordData:
        """Apply a partial update optimistically, then push it or queue it."""
        patch = updates.to_updates() if isinstance(updates, FldrPatch) else dict(updates)
        patch.pop("id", None)

        # Responses to requests sent before this write no longer apply
        self._cancel_revalidation(record_id)
        generation = self._touch(record_id)

        base = self.cache.get(record_id)
        merged, _ = normalize({**(base or {}), **patch, "id": record_id})
        # Segment ids are assigned here once, so every replay sends the same values
        for name in patch:
            patch[name] = copy.deepcopy(merged[name])

        # Promotion rides along in the same write; an uncached record's status is unknown
        promoted = promoted_status(merged) if base is not None else None
        if promoted is not None:
            patch["status"] = promoted.value
            merged["status"] = promoted.value
            sync_log.detail(f"Fldr {record_id} promoted to {promoted.value}")

        self.cache.put(record_id, merged)
        self.lists.upsert(merged)
        self._publish(RecordEventKind.UPDATED, record_id, merged)

        if not self.is_online:
            self._defer(record_id, patch, reason="offline")
            return merged

        if record_id in self.queue.pending_ids():
            # Older writes are still queued; keep replay order
            self._defer(record_id, patch, reason="earlier writes pending")
            self._start_flush()
            return merged

        try:
            canonical = await self._remote.patch_record(record_id, patch)
        except EntityNotFoundError:
            self._defer(record_id, patch, reason="not yet on the remote")
            self._start_flush()
            return merged
        except RemoteStoreError as e:
            self._defer(record_id, patch, reason=str(e))
            return merged

        if self._generations.get(record_id) != generation:
            # A later local write owns the cache now
            return self.cache.get(record_id) or merged
        return self._accept_remote(record_id, canonical) or merged

    async def create(self, initial: RecordData | FldrCreate) -> RecordData:
        """Create a record remotely, or locally with a client id when that fails."""
        if isinstance(initial, FldrCreate):
            data: dict[str, Any] = initial.model_dump(mode="json", exclude_none=True)
        else:
            data = dict(initial)

        if self.is_online:
            try:
                created = await self._remote.create_record(data)
            except RemoteStoreError as e:
                sync_log.step_warning(SyncStage.REMOTE, "Create failed — creating locally", error=e)
            else:
                record, _ = normalize(created)
                self.cache.put(record["id"], record)
                self.lists.upsert(record)
                self._publish(RecordEventKind.UPDATED, record["id"], record)
                return record

        now = datetime.now(timezone.utc).isoformat()
        record, _ = normalize({
            "created_at": now,
            "updated_at": now,
            **data,
            "id": data.get("id") or str(uuid4()),
        })
        self._touch(record["id"])
        self.cache.put(record["id"], record)
        self.lists.upsert(record)
        self._publish(RecordEventKind.UPDATED, record["id"], record)
        self._defer(record["id"], record, reason="created offline")
        return record

    async def delete(self, record_id: str) -> bool:
        """Delete locally at once; remotely now or on the next flush."""
        self._cancel_revalidation(record_id)
        self._touch(record_id)
        self.cache.remove(record_id)
        self.lists.remove(record_id)
        self._publish(RecordEventKind.DELETED, record_id, None)

        dirty = record_id in self.queue.pending_ids()
        if self.is_online and not dirty:
            try:
                await self._remote.delete_record(record_id)
                return True
            except RemoteStoreError as e:
                sync_log.step_warning(SyncStage.REMOTE, f"Delete of fldr {record_id} failed", error=e)
                self._defer(record_id, {}, kind=WriteKind.DELETE, reason=str(e))
                return True

        if not self.is_online:
            self._defer(record_id, {}, kind=WriteKind.DELETE, reason="offline")
        else:
            self._defer(record_id, {}, kind=WriteKind.DELETE, reason="earlier writes pending")
            self._start_flush()
        return True

    def _touch(self, record_id: str) -> int:
        """Mark a local change; remote answers to earlier requests become stale."""
        generation = self._generations.get(record_id, 0) + 1
        self._generations[record_id] = generation
        return generation

    def _defer(
        self,
        record_id: str,
        updates: RecordData,
        *,
        reason: str,
        kind: WriteKind = WriteKind.PATCH,
    ) -> PendingWrite:
        item = self.queue.enqueue(record_id, updates, kind=kind)
        sync_log.step_warning(
            SyncStage.QUEUE,
            f"Queued {kind.value} for fldr {record_id}",
            reason=reason,
            fields=", ".join(sorted(updates)) or "-",
        )
        return item

    # ── Flush ───────────────────────────────────────────────────────

    async def flush(self) -> bool:
        """Replay the pending-write queue. True when it was fully drained.

        Only one flush runs at a time; a second caller awaits the first.
        """
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = asyncio.create_task(self._flush_once())
        return await asyncio.shield(self._flush_task)

    def _on_online(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Back online outside an event loop — flush deferred")
            return
        self._start_flush()

    def _start_flush(self) -> None:
        if self._flush_task is not None and not self._flush_task.done():
            return
        self._flush_task = asyncio.create_task(self._flush_once())
        self._flush_task.add_done_callback(self._log_task_failure)

    async def _flush_once(self) -> bool:
        # Writes queued while a pass runs are picked up by the next pass
        while self.is_online:
            items = self.queue.snapshot()
            if not items:
                return True

            sync_log.step_start(SyncStage.FLUSH, f"Syncing {len(items)} queued changes...")
            for item in items:
                sync_log.detail(
                    f"{item.kind.value} fldr {item.record_id}",
                    fields=", ".join(sorted(item.updates)) or "-",
                )
                try:
                    await self._replay(item)
                except RemoteStoreError as e:
                    # Nothing is removed; the next flush replays from the start
                    sync_log.step_error(SyncStage.FLUSH, "Failed to sync queued changes", error=e)
                    return False

            self.queue.drain(items)
            sync_log.step_complete(SyncStage.FLUSH, "Sync queue cleared", replayed=len(items))

            with sync_log.timed_step(SyncStage.REMOTE, "Re-reading synced fldrs"):
                await self._resync_after_flush(items)
            self._publish(RecordEventKind.SYNCED, None, None)
        return False

    async def _replay(self, item: PendingWrite) -> None:
        if item.kind is WriteKind.DELETE:
            await self._remote.delete_record(item.record_id)
            return
        try:
            await self._remote.patch_record(item.record_id, item.updates)
        except EntityNotFoundError:
            # Created offline or gone remotely: recreate from the cached record
            base = self.cache.get(item.record_id) or {}
            body = {**base, **item.updates, "id": item.record_id}
            missing = [name for name in _CREATE_REQUIRED if not body.get(name)]
            if missing:
                sync_log.step_error(
                    SyncStage.FLUSH,
                    f"Fldr {item.record_id} is not on the remote and lacks {', '.join(missing)}"
                    " to be created; dropping its queued patch",
                )
                return
            await self._remote.create_record(body)

    async def _resync_after_flush(self, items: list[PendingWrite]) -> None:
        last_kind: dict[str, WriteKind] = {}
        for item in items:
            last_kind[item.record_id] = item.kind

        for record_id, kind in last_kind.items():
            if kind is WriteKind.DELETE or self.cache.get(record_id) is None:
                continue
            generation = self._generations.get(record_id, 0)
            try:
                remote = await self._remote.get_record(record_id)
            except RemoteStoreError as e:
                sync_log.step_warning(SyncStage.REMOTE, f"Post-flush read of fldr {record_id} failed", error=e)
                continue
            if self._generations.get(record_id, 0) != generation:
                logger.debug("Post-flush read of fldr %s superseded by a local write", record_id)
                continue
            if remote is not None:
                self._accept_remote(record_id, remote, kind=RecordEventKind.SYNCED)

    # ── Remote values ───────────────────────────────────────────────

    def _accept_remote(
        self,
        record_id: str,
        remote: RecordData,
        *,
        kind: RecordEventKind = RecordEventKind.UPDATED,
    ) -> RecordData | None:
        """Normalize, layer pending local writes on top, cache and announce."""
        record, _ = normalize(remote)
        record = self._overlay_pending(record)
        if record is None:
            return None
        self.cache.put(record_id, record)
        self.lists.replace(record)
        self._publish(kind, record_id, record)
        return record

    def _overlay_pending(self, record: RecordData) -> RecordData | None:
        """Apply still-queued patches for the record; None if it is pending deletion."""
        for item in self.queue.items_for(record["id"]):
            if item.kind is WriteKind.DELETE:
                return None
            record = {**record, **item.updates}
        return record

    async def _fetch_remote_list(self) -> list[RecordData]:
        remote = await self._remote.list_records()
        records = []
        for raw in remote:
            record = self._overlay_pending(normalize(raw)[0])
            if record is not None:
                records.append(record)
        return records

    def _records_from_cache(self) -> list[RecordData]:
        records = []
        for record_id in sorted(self.cache.list_known_ids()):
            record = self.cache.get(record_id)
            if record is not None:
                records.append(record)
        return records

    # ── Background tasks ────────────────────────────────────────────

    def _revalidate(self, record_id: str) -> None:
        task = self._revalidations.get(record_id)
        if task is not None and not task.done():
            return
        task = asyncio.create_task(self._revalidate_once(record_id))
        self._revalidations[record_id] = task
        task.add_done_callback(self._log_task_failure)
        task.add_done_callback(lambda t: self._forget_revalidation(record_id, t))

    def _forget_revalidation(self, record_id: str, task: asyncio.Task) -> None:
        if self._revalidations.get(record_id) is task:
            del self._revalidations[record_id]

    async def _revalidate_once(self, record_id: str) -> None:
        generation = self._generations.get(record_id, 0)
        try:
            remote = await self._remote.get_record(record_id)
        except RemoteStoreError as e:
            logger.debug("Revalidation of fldr %s failed: %s", record_id, e)
            return
        if self._generations.get(record_id, 0) != generation:
            logger.debug("Dropping revalidation of fldr %s: written locally meanwhile", record_id)
            return
        if remote is None:
            logger.debug("Fldr %s unknown to the remote — keeping local copy", record_id)
            return
        if self.cache.get(record_id) is None:
            # Deleted or cleared while the request was in flight
            return
        self._accept_remote(record_id, remote)

    def _cancel_revalidation(self, record_id: str) -> None:
        task = self._revalidations.pop(record_id, None)
        if task is not None and not task.done():
            task.cancel()

    def _refresh_list_in_background(self) -> None:
        if self._list_refresh is not None and not self._list_refresh.done():
            return
        self._list_refresh = asyncio.create_task(self.refresh_all())
        self._list_refresh.add_done_callback(self._log_task_failure)

    @staticmethod
    def _log_task_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background sync task failed", exc_info=exc)

    # ── Subscriptions ───────────────────────────────────────────────

    def _publish(self, kind: RecordEventKind, record_id: str | None, record: RecordData | None) -> None:
        self.events.publish(RecordEvent(kind=kind, record_id=record_id, record=record))

    async def subscribe(self) -> AsyncGenerator[RecordEvent, None]:
        """Every record event, for as long as the consumer iterates."""
        async for event in self.events.subscribe():
            yield event

    async def watch(self, record_id: str) -> AsyncGenerator[RecordData | None, None]:
        """Yield the record now and after every change; None once it is deleted.

        The record's background revalidation is bound to the watch: when the
        last watcher leaves, an in-flight revalidation is cancelled.
        """
        queue = self.events.open_queue()
        self._watchers[record_id] = self._watchers.get(record_id, 0) + 1
        try:
            current = await self.read(record_id)
            if current is not None:
                yield current
            while True:
                event = await queue.get()
                if event is None:
                    return
                if event.record_id != record_id:
                    continue
                yield event.record
                if event.kind is RecordEventKind.DELETED:
                    return
        finally:
            self.events.close_queue(queue)
            remaining = self._watchers.get(record_id, 1) - 1
            if remaining <= 0:
                self._watchers.pop(record_id, None)
                self._cancel_revalidation(record_id)
            else:
                self._watchers[record_id] = remaining

    # ── Maintenance ─────────────────────────────────────────────────

    def clear_all_local_data(self) -> None:
        """User-triggered reset: drop cache, queue and list snapshot."""
        for record_id in list(self._revalidations):
            self._cancel_revalidation(record_id)
        pending = len(self.queue)
        removed = self.cache.clear()
        self.queue.clear()
        self.lists.clear()
        logger.warning(
            "Cleared all local data: %d cached fldrs, %d unsynced writes discarded",
            removed, pending,
        )

    def health_check(self) -> StorageHealth:
        health = self.health.check()
        health.pending_writes = len(self.queue)
        health.online = self.is_online
        return health

    async def close(self) -> None:
        """Stop background work and disconnect subscribers."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks = [t for t in self._revalidations.values() if not t.done()]
        for task in (self._list_refresh, self._flush_task):
            if task is not None and not task.done():
                tasks.append(task)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._revalidations.clear()
        await self.events.shutdown()
