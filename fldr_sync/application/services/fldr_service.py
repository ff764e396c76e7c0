"""Application service (use case) for fldr operations on the remote side."""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fldr_sync.application.interfaces import FldrRepository
from fldr_sync.application.schemas.fldr import FldrCreate, FldrPatch
from fldr_sync.application.services.schema_normalizer import normalize
from fldr_sync.domain.entities import FldrStatus, RecordData
from fldr_sync.domain.exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)

_SERVER_FIELDS = ("id", "created_at", "updated_at")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FldrService:
    """Orchestrates fldr CRUD logic. Depends on the repository port (DI)."""

    def __init__(self, repository: FldrRepository):
        self._repository = repository

    async def get_record(self, record_id: str) -> RecordData:
        record = await self._repository.get_by_id(record_id)
        if record is None:
            raise EntityNotFoundError("Fldr", record_id)
        return record

    async def list_records(self) -> list[RecordData]:
        records = await self._repository.get_all()
        return sorted(records, key=lambda r: r.get("date_start") or "")

    async def create_record(self, data: FldrCreate) -> RecordData:
        """Create a fldr, keeping a client-assigned id when one is given.

        Creating an id that already exists applies the payload as a patch,
        so a replayed offline create is idempotent.
        """
        values = data.model_dump(mode="json", exclude_none=True)
        record_id = values.pop("id", None) or str(uuid4())

        existing = await self._repository.get_by_id(record_id)
        if existing is not None:
            logger.info("Create for existing fldr %s — applying as update", record_id)
            return await self._apply(existing, values)

        now = _now()
        values.setdefault("status", FldrStatus.INCOMPLETE.value)
        for name in _SERVER_FIELDS:
            values.pop(name, None)
        record, _ = normalize({**values, "id": record_id, "created_at": now, "updated_at": now})
        saved = await self._repository.save(record)
        logger.info("Created fldr %s (%s)", record_id, saved.get("title"))
        return saved

    async def update_record(self, record_id: str, data: FldrPatch | dict[str, Any]) -> RecordData:
        """Shallow-merge the patch into the stored fldr."""
        existing = await self.get_record(record_id)
        updates = data.to_updates() if isinstance(data, FldrPatch) else dict(data)
        return await self._apply(existing, updates)

    async def delete_record(self, record_id: str) -> bool:
        exists = await self._repository.get_by_id(record_id)
        if exists is None:
            raise EntityNotFoundError("Fldr", record_id)
        return await self._repository.delete(record_id)

    async def _apply(self, existing: RecordData, updates: dict[str, Any]) -> RecordData:
        for name in _SERVER_FIELDS:
            updates.pop(name, None)
        merged, _ = normalize({**existing, **updates, "updated_at": _now()})
        return await self._repository.save(merged)
