"""Domain entities for the offline sync engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from .fldr import RecordData


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> datetime:
    """Accept ISO strings and epoch milliseconds (older queue format)."""
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return _utcnow()


class SyncState(str, Enum):
    """Per-record sync state from the client's point of view."""

    UNKNOWN = "unknown"  # Never read
    CACHED = "cached"    # Local copy, nothing pending
    DIRTY = "dirty"      # Local copy with at least one unconfirmed write


class WriteKind(str, Enum):
    """What a queued item replays against the remote store."""

    PATCH = "patch"
    DELETE = "delete"


@dataclass
class CacheEntry:
    """Last known good local copy of one record."""

    record_id: str
    record: RecordData
    written_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {"record": self.record, "written_at": self.written_at.isoformat()}

    @classmethod
    def from_dict(cls, record_id: str, data: dict[str, Any]) -> "CacheEntry":
        # Entries written before the envelope existed hold the bare record
        if "record" not in data:
            return cls(record_id=record_id, record=data)
        return cls(
            record_id=record_id,
            record=data["record"],
            written_at=_parse_ts(data.get("written_at")),
        )


@dataclass
class PendingWrite:
    """A queued, not-yet-confirmed update for one record.

    ``updates`` is a complete replacement value for every field it names,
    never a diff, so replaying an item twice leaves the same result.
    """

    record_id: str
    updates: RecordData
    kind: WriteKind = WriteKind.PATCH
    enqueued_at: datetime = field(default_factory=_utcnow)
    item_id: str = field(default_factory=lambda: str(uuid4()))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "item_id": self.item_id,
            "fldrId": self.record_id,
            "updates": self.updates,
            "kind": self.kind.value,
            "timestamp": self.enqueued_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingWrite":
        """Deserialize from dictionary."""
        return cls(
            record_id=data["fldrId"],
            updates=data.get("updates") or {},
            kind=WriteKind(data.get("kind", WriteKind.PATCH.value)),
            enqueued_at=_parse_ts(data.get("timestamp")),
            item_id=data.get("item_id") or str(uuid4()),
        )


@dataclass
class StorageHealth:
    """Diagnostics about the durable local store."""

    last_check: datetime
    last_write: datetime | None
    cache_count: int
    is_working: bool
    degraded: bool = False
    pending_writes: int | None = None
    online: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_check": self.last_check.isoformat(),
            "last_write": self.last_write.isoformat() if self.last_write else None,
            "cache_count": self.cache_count,
            "is_working": self.is_working,
            "degraded": self.degraded,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StorageHealth":
        last_write = data.get("last_write")
        return cls(
            last_check=_parse_ts(data.get("last_check")),
            last_write=_parse_ts(last_write) if last_write else None,
            cache_count=int(data.get("cache_count", 0)),
            is_working=bool(data.get("is_working", False)),
            degraded=bool(data.get("degraded", False)),
        )


class RecordEventKind(str, Enum):
    UPDATED = "updated"
    DELETED = "deleted"
    SYNCED = "synced"


@dataclass
class RecordEvent:
    """Notification that the engine's view of a record changed."""

    kind: RecordEventKind
    record_id: str | None
    record: RecordData | None = None
    occurred_at: datetime = field(default_factory=_utcnow)
