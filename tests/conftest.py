"""Shared fixtures: an in-memory local store and a fake remote store."""

import asyncio
import copy
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from fldr_sync.application.interfaces import RemoteRecordStore
from fldr_sync.application.services import ConnectivityMonitor, ReconciliationEngine
from fldr_sync.domain.entities import RecordData
from fldr_sync.domain.exceptions import EntityNotFoundError, RemoteStoreError
from fldr_sync.infrastructure.storage import InMemoryKeyValueStore


def make_fldr(record_id: str = "r1", **fields) -> RecordData:
    record = {
        "id": record_id,
        "title": f"Trip {record_id}",
        "date_start": "2026-11-02",
        "status": "incomplete",
    }
    record.update(fields)
    return record


class FakeRemoteStore(RemoteRecordStore):
    """In-memory remote store. ``fail`` makes every call a transport error."""

    def __init__(self, records: list[RecordData] | None = None):
        self.records: dict[str, RecordData] = {r["id"]: copy.deepcopy(r) for r in records or []}
        self.calls: list[tuple[str, str | None]] = []
        self.fail = False
        self.fail_patch_ids: set[str] = set()
        self.list_result: list[RecordData] | None = None
        self.gate: asyncio.Event | None = None

    @property
    def provider_name(self) -> str:
        return "fake"

    async def _enter(self, operation: str, record_id: str | None) -> None:
        self.calls.append((operation, record_id))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RemoteStoreError(0, "connection refused", self.provider_name)

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    async def list_records(self) -> list[RecordData]:
        await self._enter("list", None)
        if self.list_result is not None:
            return copy.deepcopy(self.list_result)
        return [copy.deepcopy(r) for r in self.records.values()]

    async def get_record(self, record_id: str) -> RecordData | None:
        await self._enter("get", record_id)
        record = self.records.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def create_record(self, initial: RecordData) -> RecordData:
        await self._enter("create", initial.get("id"))
        now = datetime.now(timezone.utc).isoformat()
        record = {"status": "incomplete", "created_at": now, **initial, "updated_at": now}
        record["id"] = initial.get("id") or str(uuid4())
        self.records[record["id"]] = record
        return copy.deepcopy(record)

    async def patch_record(self, record_id: str, updates: RecordData) -> RecordData:
        await self._enter("patch", record_id)
        if record_id in self.fail_patch_ids:
            raise RemoteStoreError(500, "internal error", self.provider_name)
        if record_id not in self.records:
            raise EntityNotFoundError("Fldr", record_id)
        self.records[record_id] = {
            **self.records[record_id],
            **copy.deepcopy(updates),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        return copy.deepcopy(self.records[record_id])

    async def delete_record(self, record_id: str) -> bool:
        await self._enter("delete", record_id)
        return self.records.pop(record_id, None) is not None

    async def ping(self) -> bool:
        self.calls.append(("ping", None))
        return not self.fail


async def settle(rounds: int = 10) -> None:
    """Let background tasks started by the engine run to completion."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore([make_fldr("r1"), make_fldr("r2", date_start="2026-12-01")])


@pytest.fixture
def monitor() -> ConnectivityMonitor:
    return ConnectivityMonitor(initial_online=True)


@pytest.fixture
def engine(remote, store, monitor) -> ReconciliationEngine:
    return ReconciliationEngine(remote=remote, store=store, monitor=monitor)
