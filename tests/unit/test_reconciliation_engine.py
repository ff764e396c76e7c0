"""Unit tests for the ReconciliationEngine, against a fake remote store."""

import asyncio

import pytest

from fldr_sync.application.schemas import FldrCreate, FldrPatch
from fldr_sync.application.services import FldrService, ReconciliationEngine, WriteScheduler
from fldr_sync.domain.entities import RecordEventKind, SyncState, WriteKind
from fldr_sync.domain.exceptions import RecordShapeError
from fldr_sync.infrastructure.repositories import InMemoryFldrRepository

from conftest import FakeRemoteStore, make_fldr, settle


def drain_events(queue) -> list:
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


# ── Scenarios ──


@pytest.mark.asyncio
async def test_offline_write_is_synced_after_reconnect(engine, remote, monitor):
    monitor.set_online(False)

    await engine.write("r1", {"title": "Trip A"})
    local = await engine.read("r1")

    assert local["title"] == "Trip A"
    assert engine.has_unsynced_changes
    assert remote.count("patch") == 0

    monitor.set_online(True)
    assert await engine.flush() is True

    assert remote.records["r1"]["title"] == "Trip A"
    assert engine.queue.is_empty()
    assert engine.state_of("r1") is SyncState.CACHED


@pytest.mark.asyncio
async def test_empty_remote_list_keeps_snapshot(engine, remote):
    records = await engine.read_all()
    assert len(records) == 2

    remote.list_result = []
    await engine.refresh_all()

    assert [r["id"] for r in await engine.read_all()] == ["r1", "r2"]
    await settle()


@pytest.mark.asyncio
async def test_legacy_cached_record_is_upgraded_and_written_back(engine, monitor):
    monitor.set_online(False)
    engine.cache.put("r1", make_fldr("r1", flight_info={"flight_number": "UA12"}))

    record = await engine.read("r1")

    assert isinstance(record["flight_info"], list)
    segment_id = record["flight_info"][0]["id"]
    assert segment_id
    assert engine.cache.get("r1") == record

    again = await engine.read("r1")
    assert again["flight_info"][0]["id"] == segment_id


@pytest.mark.asyncio
async def test_debounced_edits_produce_one_write(engine, remote):
    await engine.read("r2")
    scheduler = WriteScheduler(engine.write, quiet_period=0.02)

    scheduler.schedule("r2", {"notes": "a"})
    scheduler.schedule("r2", {"notes": "ab"})
    scheduler.schedule("r2", {"notes": "abc"})
    await asyncio.sleep(0.1)
    await scheduler.aclose()

    assert remote.count("patch") == 1
    assert remote.records["r2"]["notes"] == "abc"
    await settle()


@pytest.mark.asyncio
async def test_lodging_detail_promotes_status(engine, remote):
    await engine.read("r1")

    result = await engine.write("r1", {"hotel_info": {"name": "Hotel Roma"}})

    assert result["status"] == "ready"
    assert engine.cache.get("r1")["status"] == "ready"
    assert remote.records["r1"]["status"] == "ready"
    await settle()


@pytest.mark.asyncio
async def test_promotion_is_queued_with_the_offline_write(engine, monitor):
    monitor.set_online(False)
    engine.cache.put("r1", make_fldr("r1"))

    await engine.write("r1", {"venue_info": {"address": "1 Main St"}})

    [item] = engine.queue.snapshot()
    assert item.updates["status"] == "ready"


@pytest.mark.asyncio
async def test_promotion_only_applies_to_incomplete(engine, monitor):
    monitor.set_online(False)
    engine.cache.put("r1", make_fldr("r1", status="active"))

    result = await engine.write("r1", {"hotel_info": {"name": "Hotel Roma"}})

    assert result["status"] == "active"


# ── Reads ──


@pytest.mark.asyncio
async def test_cached_read_returns_stale_then_revalidates(engine, remote):
    engine.cache.put("r1", make_fldr("r1", title="stale"))
    events = engine.events.open_queue()

    first = await engine.read("r1")
    assert first["title"] == "stale"

    await settle()
    assert engine.cache.get("r1")["title"] == "Trip r1"
    kinds = [(e.kind, e.record_id) for e in drain_events(events)]
    assert (RecordEventKind.UPDATED, "r1") in kinds


class SlowReadRemote(FakeRemoteStore):
    """Remote whose reads capture the current value, then wait for ``read_gate``."""

    def __init__(self, records):
        super().__init__(records)
        self.read_gate = asyncio.Event()

    async def get_record(self, record_id):
        value = await super().get_record(record_id)
        await self.read_gate.wait()
        return value


@pytest.fixture
def slow_remote() -> SlowReadRemote:
    return SlowReadRemote([make_fldr("r1")])


@pytest.mark.asyncio
async def test_revalidation_in_flight_cannot_roll_back_a_write(slow_remote, store, monitor):
    engine = ReconciliationEngine(remote=slow_remote, store=store, monitor=monitor)
    engine.cache.put("r1", make_fldr("r1"))
    await engine.read("r1")
    await settle()

    assert (await engine.write("r1", {"title": "New"}))["title"] == "New"
    slow_remote.read_gate.set()
    await settle()

    assert slow_remote.records["r1"]["title"] == "New"
    assert engine.cache.get("r1")["title"] == "New"
    assert [r["title"] for r in engine.lists.get_all()] == ["New"]
    await engine.close()


@pytest.mark.asyncio
async def test_blocking_read_answer_is_dropped_after_a_write(slow_remote, store, monitor):
    engine = ReconciliationEngine(remote=slow_remote, store=store, monitor=monitor)
    reading = asyncio.create_task(engine.read("r1"))
    await settle()

    await engine.write("r1", {"title": "New"})
    slow_remote.read_gate.set()

    assert (await reading)["title"] == "New"
    assert engine.cache.get("r1")["title"] == "New"
    await engine.close()


@pytest.mark.asyncio
async def test_post_flush_read_cannot_roll_back_a_later_write(slow_remote, store, monitor):
    engine = ReconciliationEngine(remote=slow_remote, store=store, monitor=monitor)
    engine.cache.put("r1", make_fldr("r1"))
    monitor.set_online(False)
    await engine.write("r1", {"title": "A"})

    monitor.set_online(True)
    await settle()
    assert engine.queue.is_empty()

    await engine.write("r1", {"title": "B"})
    slow_remote.read_gate.set()

    assert await engine.flush() is True
    assert slow_remote.records["r1"]["title"] == "B"
    assert engine.cache.get("r1")["title"] == "B"
    await engine.close()


@pytest.mark.asyncio
async def test_cached_read_offline_does_not_touch_remote(engine, remote, monitor):
    engine.cache.put("r1", make_fldr("r1"))
    monitor.set_online(False)

    assert (await engine.read("r1"))["id"] == "r1"
    await settle()
    assert remote.calls == []


@pytest.mark.asyncio
async def test_uncached_read_blocks_on_remote_and_caches(engine, remote):
    record = await engine.read("r2")

    assert record["date_start"] == "2026-12-01"
    assert engine.cache.get("r2") == record
    assert engine.state_of("r2") is SyncState.CACHED


@pytest.mark.asyncio
async def test_uncached_read_offline_is_not_found(engine, monitor):
    monitor.set_online(False)
    assert await engine.read("r1") is None
    assert engine.state_of("r1") is SyncState.UNKNOWN


@pytest.mark.asyncio
async def test_uncached_read_with_failing_remote_is_not_found(engine, remote):
    remote.fail = True
    assert await engine.read("r1") is None


@pytest.mark.asyncio
async def test_read_of_unknown_record_is_not_found(engine):
    assert await engine.read("nope") is None


@pytest.mark.asyncio
async def test_corrupt_remote_record_raises(engine, remote):
    remote.records["bad"] = {"id": "bad", "status": "archived"}
    with pytest.raises(RecordShapeError):
        await engine.read("bad")


# ── Writes ──


@pytest.mark.asyncio
async def test_write_is_visible_before_remote_answers(engine, remote):
    await engine.read("r1")
    remote.gate = asyncio.Event()

    pending = asyncio.create_task(engine.write("r1", {"notes": "hello"}))
    await asyncio.sleep(0)

    assert engine.cache.get("r1")["notes"] == "hello"
    assert (await engine.read("r1"))["notes"] == "hello"
    assert engine.cache.get("r1")["title"] == "Trip r1"

    remote.gate.set()
    await pending
    await settle()


@pytest.mark.asyncio
async def test_successful_write_caches_server_value(engine, remote):
    await engine.read("r1")

    result = await engine.write("r1", FldrPatch(notes="from patch"))

    assert result["notes"] == "from patch"
    assert "updated_at" in result
    assert engine.cache.get("r1") == result
    assert engine.queue.is_empty()


@pytest.mark.asyncio
async def test_failed_write_is_queued(engine, remote):
    await engine.read("r1")
    remote.fail = True

    await engine.write("r1", {"title": "Offline title"})

    [item] = engine.queue.snapshot()
    assert item.record_id == "r1"
    assert item.updates == {"title": "Offline title"}
    assert engine.state_of("r1") is SyncState.DIRTY
    assert engine.cache.get("r1")["title"] == "Offline title"


@pytest.mark.asyncio
async def test_write_ignores_id_in_patch(engine, monitor):
    monitor.set_online(False)
    engine.cache.put("r1", make_fldr("r1"))

    result = await engine.write("r1", {"id": "other", "notes": "x"})

    assert result["id"] == "r1"
    assert "id" not in engine.queue.snapshot()[0].updates


@pytest.mark.asyncio
async def test_write_updates_list_snapshot(engine):
    await engine.read_all()
    await settle()

    await engine.write("r1", {"title": "Renamed"})

    titles = {r["id"]: r["title"] for r in engine.lists.get_all()}
    assert titles["r1"] == "Renamed"


@pytest.mark.asyncio
async def test_write_while_dirty_keeps_replay_order(engine, remote, monitor):
    monitor.set_online(False)
    engine.cache.put("r1", make_fldr("r1"))
    await engine.write("r1", {"title": "A"})

    remote.fail_patch_ids = {"r1"}
    monitor.set_online(True)
    assert await engine.flush() is False

    await engine.write("r1", {"title": "B", "notes": "n"})
    await settle()
    assert [i.updates.get("title") for i in engine.queue.snapshot()] == ["A", "B"]

    remote.fail_patch_ids.clear()
    assert await engine.flush() is True
    assert remote.records["r1"]["title"] == "B"
    assert remote.records["r1"]["notes"] == "n"


@pytest.mark.asyncio
async def test_queued_flight_segments_carry_stable_ids(engine, monitor):
    monitor.set_online(False)
    engine.cache.put("r1", make_fldr("r1"))

    await engine.write("r1", {"flight_info": {"flight_number": "UA1"}})

    updates = engine.queue.snapshot()[0].updates
    segments = updates["flight_info"]
    assert len(segments) == 1 and segments[0]["id"]
    assert engine.cache.get("r1")["flight_info"] == segments

    service = FldrService(InMemoryFldrRepository([make_fldr("r1")]))
    first = await service.update_record("r1", dict(updates))
    second = await service.update_record("r1", dict(updates))
    assert first["flight_info"] == second["flight_info"] == segments


@pytest.mark.asyncio
async def test_write_to_uncached_record_joins_list_snapshot(engine, monitor):
    await engine.read_all()
    await settle()
    monitor.set_online(False)

    await engine.write("r9", {"title": "New trip", "date_start": "2027-01-05"})

    assert "r9" in {r["id"] for r in await engine.read_all()}
    assert engine.cache.get("r9")["notes"] == ""
    assert engine.queue.snapshot()[0].updates == {"title": "New trip", "date_start": "2027-01-05"}


@pytest.mark.asyncio
async def test_write_to_record_missing_remotely_is_flushed_at_once(engine, remote):
    await engine.write("r9", {"title": "New trip", "date_start": "2027-01-05"})
    await settle()

    assert remote.records["r9"]["title"] == "New trip"
    assert remote.count("create") == 1
    assert not engine.has_unsynced_changes


# ── Flush ──


@pytest.mark.asyncio
async def test_failed_flush_leaves_queue_untouched(engine, remote, monitor):
    monitor.set_online(False)
    await engine.write("r1", {"title": "A"})
    await engine.write("r2", {"title": "B"})
    before = engine.queue.snapshot()

    remote.fail_patch_ids = {"r2"}
    monitor.set_online(True)

    assert await engine.flush() is False
    assert [i.item_id for i in engine.queue.snapshot()] == [i.item_id for i in before]
    assert engine.has_unsynced_changes


@pytest.mark.asyncio
async def test_replaying_applied_items_is_idempotent(engine, remote, monitor):
    monitor.set_online(False)
    await engine.write("r1", {"title": "A", "notes": "n1"})
    await engine.write("r2", {"title": "B"})

    remote.fail_patch_ids = {"r2"}
    monitor.set_online(True)
    assert await engine.flush() is False
    after_first = {k: v for k, v in remote.records["r1"].items() if k != "updated_at"}

    remote.fail_patch_ids.clear()
    assert await engine.flush() is True
    after_second = {k: v for k, v in remote.records["r1"].items() if k != "updated_at"}

    assert after_first == after_second
    assert remote.records["r2"]["title"] == "B"
    assert engine.queue.is_empty()


@pytest.mark.asyncio
async def test_flush_resyncs_affected_records(engine, remote, monitor):
    monitor.set_online(False)
    engine.cache.put("r1", make_fldr("r1"))
    await engine.write("r1", {"notes": "offline"})
    remote.records["r1"]["title"] = "Changed elsewhere"

    monitor.set_online(True)
    await engine.flush()

    cached = engine.cache.get("r1")
    assert cached["title"] == "Changed elsewhere"
    assert cached["notes"] == "offline"


@pytest.mark.asyncio
async def test_flush_offline_does_nothing(engine, remote, monitor):
    monitor.set_online(False)
    await engine.write("r1", {"title": "A"})

    assert await engine.flush() is False
    assert remote.calls == []


@pytest.mark.asyncio
async def test_flush_with_empty_queue_succeeds(engine, remote):
    assert await engine.flush() is True
    assert remote.calls == []


@pytest.mark.asyncio
async def test_concurrent_flushes_share_one_run(remote, store, monitor):
    engine = ReconciliationEngine(remote=remote, store=store, monitor=monitor, auto_flush=False)
    monitor.set_online(False)
    await engine.write("r1", {"title": "A"})
    monitor.set_online(True)

    remote.gate = asyncio.Event()
    first = asyncio.create_task(engine.flush())
    second = asyncio.create_task(engine.flush())
    await settle()
    remote.gate.set()

    assert await first is True
    assert await second is True
    assert remote.count("patch") == 1


@pytest.mark.asyncio
async def test_flush_publishes_synced_event(engine, monitor):
    monitor.set_online(False)
    await engine.write("r1", {"title": "A"})
    events = engine.events.open_queue()

    monitor.set_online(True)
    await engine.flush()

    kinds = [e.kind for e in drain_events(events)]
    assert kinds[-1] is RecordEventKind.SYNCED


@pytest.mark.asyncio
async def test_pending_patches_overlay_revalidated_value(engine, remote, monitor):
    engine.cache.put("r1", make_fldr("r1"))
    monitor.set_online(False)
    await engine.write("r1", {"notes": "local"})

    remote.fail_patch_ids = {"r1"}
    monitor.set_online(True)
    await engine.flush()

    await engine.read("r1")
    await settle()

    assert engine.cache.get("r1")["notes"] == "local"
    assert engine.state_of("r1") is SyncState.DIRTY


@pytest.mark.asyncio
async def test_uncreatable_patch_does_not_block_later_items(engine, remote, monitor):
    monitor.set_online(False)
    await engine.write("ghost", {"title": "Trip A"})
    created = await engine.create(FldrCreate(title="Trip B", date_start="2027-03-01"))

    monitor.set_online(True)
    assert await engine.flush() is True

    assert "ghost" not in remote.records
    assert remote.records[created["id"]]["title"] == "Trip B"
    assert engine.queue.is_empty()
    assert engine.cache.get("ghost")["title"] == "Trip A"


# ── Create / delete ──


@pytest.mark.asyncio
async def test_create_online(engine, remote):
    record = await engine.create(FldrCreate(title="New trip", date_start="2027-01-10"))

    assert record["id"] in remote.records
    assert record["status"] == "incomplete"
    assert engine.cache.get(record["id"]) == record
    assert record["id"] in {r["id"] for r in engine.lists.get_all()}


@pytest.mark.asyncio
async def test_create_offline_uses_client_id_and_replays_as_create(engine, remote, monitor):
    monitor.set_online(False)

    record = await engine.create({"title": "Offline trip", "date_start": "2027-02-01"})

    record_id = record["id"]
    assert record_id not in remote.records
    assert engine.state_of(record_id) is SyncState.DIRTY
    assert [r["id"] for r in await engine.read_all()] == [record_id]

    monitor.set_online(True)
    assert await engine.flush() is True

    assert remote.records[record_id]["title"] == "Offline trip"
    assert engine.queue.is_empty()


@pytest.mark.asyncio
async def test_create_falls_back_locally_when_remote_fails(engine, remote):
    remote.fail = True

    record = await engine.create({"title": "Try", "date_start": "2027-02-01"})

    assert record["created_at"]
    assert engine.state_of(record["id"]) is SyncState.DIRTY


@pytest.mark.asyncio
async def test_delete_online(engine, remote):
    await engine.read_all()
    await settle()
    events = engine.events.open_queue()

    assert await engine.delete("r1") is True

    assert "r1" not in remote.records
    assert engine.cache.get("r1") is None
    assert [r["id"] for r in engine.lists.get_all()] == ["r2"]
    assert [e.kind for e in drain_events(events)] == [RecordEventKind.DELETED]


@pytest.mark.asyncio
async def test_delete_offline_is_replayed(engine, remote, monitor):
    await engine.read("r1")
    monitor.set_online(False)

    await engine.delete("r1")

    [item] = engine.queue.snapshot()
    assert item.kind is WriteKind.DELETE
    assert "r1" in remote.records

    monitor.set_online(True)
    assert await engine.flush() is True
    assert "r1" not in remote.records


@pytest.mark.asyncio
async def test_delete_of_unknown_remote_record_is_success(engine, remote, monitor):
    monitor.set_online(False)
    await engine.delete("ghost")
    monitor.set_online(True)

    assert await engine.flush() is True


# ── Lists ──


@pytest.mark.asyncio
async def test_read_all_first_time_blocks_on_remote(engine, remote):
    records = await engine.read_all()

    assert [r["id"] for r in records] == ["r1", "r2"]
    assert remote.count("list") == 1


@pytest.mark.asyncio
async def test_read_all_offline_without_data_is_empty(engine, remote, monitor):
    monitor.set_online(False)
    assert await engine.read_all() == []
    assert remote.calls == []


@pytest.mark.asyncio
async def test_read_all_rebuilds_lost_snapshot_from_cache(engine, monitor):
    monitor.set_online(False)
    engine.cache.put("r1", make_fldr("r1"))

    records = await engine.read_all()

    assert [r["id"] for r in records] == ["r1"]
    assert engine.lists.get_all() == records


@pytest.mark.asyncio
async def test_refresh_all_failure_returns_snapshot(engine, remote):
    await engine.read_all()
    remote.fail = True

    records = await engine.refresh_all()
    assert len(records) == 2


@pytest.mark.asyncio
async def test_list_refresh_keeps_offline_created_records(engine, remote, monitor):
    await engine.read_all()
    monitor.set_online(False)
    created = await engine.create({"title": "Local", "date_start": "2027-03-01"})

    refreshed = await engine.lists.refresh()

    assert created["id"] in {r["id"] for r in refreshed}


# ── Subscriptions ──


@pytest.mark.asyncio
async def test_watch_yields_current_value_then_updates(engine, monitor):
    monitor.set_online(False)
    engine.cache.put("r1", make_fldr("r1"))

    watcher = engine.watch("r1")
    first = await anext(watcher)
    assert first["title"] == "Trip r1"

    await engine.write("r1", {"notes": "x"})
    second = await anext(watcher)
    assert second["notes"] == "x"

    await engine.delete("r1")
    assert await anext(watcher) is None
    with pytest.raises(StopAsyncIteration):
        await anext(watcher)


@pytest.mark.asyncio
async def test_last_watcher_leaving_cancels_revalidation(engine, remote):
    engine.cache.put("r1", make_fldr("r1", title="stale"))
    remote.gate = asyncio.Event()

    watcher = engine.watch("r1")
    await anext(watcher)
    await watcher.aclose()

    remote.gate.set()
    await settle()
    assert engine.cache.get("r1")["title"] == "stale"


@pytest.mark.asyncio
async def test_subscribe_ends_on_close(engine):
    received = []

    async def consume():
        async for event in engine.subscribe():
            received.append(event)

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0)
    await engine.write("r1", {"title": "A"})
    await engine.close()
    await asyncio.wait_for(consumer, timeout=1)

    assert received and received[0].record_id == "r1"


# ── Maintenance ──


@pytest.mark.asyncio
async def test_clear_all_local_data(engine, store, monitor):
    await engine.read_all()
    await settle()
    monitor.set_online(False)
    await engine.write("r1", {"title": "A"})

    engine.clear_all_local_data()

    assert engine.cache.list_known_ids() == set()
    assert engine.queue.is_empty()
    assert engine.lists.get_all() == []
    assert store.keys("git") == []


@pytest.mark.asyncio
async def test_health_check_reports_queue_and_connectivity(engine, monitor):
    await engine.read_all()
    await settle()
    monitor.set_online(False)
    await engine.write("r1", {"title": "A"})

    health = engine.health_check()

    assert health.is_working is True
    assert health.cache_count == 2
    assert health.pending_writes == 1
    assert health.online is False
    assert health.degraded is False
