"""In-memory implementation of the FldrRepository port.

Backs the reference remote store. Records are kept as plain dicts and copied
on the way in and out, so callers never share state with the repository.
"""

import asyncio
import copy

from fldr_sync.application.interfaces import FldrRepository
from fldr_sync.domain.entities import RecordData


class InMemoryFldrRepository(FldrRepository):
    """Concrete repository — a dict keyed by fldr id."""

    def __init__(self, initial: list[RecordData] | None = None):
        self._records: dict[str, RecordData] = {}
        self._lock = asyncio.Lock()
        for record in initial or []:
            self._records[record["id"]] = copy.deepcopy(record)

    async def get_by_id(self, record_id: str) -> RecordData | None:
        record = self._records.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def get_all(self) -> list[RecordData]:
        return [copy.deepcopy(r) for r in self._records.values()]

    async def save(self, record: RecordData) -> RecordData:
        async with self._lock:
            self._records[record["id"]] = copy.deepcopy(record)
        return copy.deepcopy(record)

    async def delete(self, record_id: str) -> bool:
        async with self._lock:
            return self._records.pop(record_id, None) is not None

    def __len__(self) -> int:
        return len(self._records)
