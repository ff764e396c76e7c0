from .fldr import (
    DEFAULTED_FIELDS,
    OPTIONAL_FIELDS,
    FldrStatus,
    RecordData,
    has_key_info,
    promoted_status,
)
from .sync import (
    CacheEntry,
    PendingWrite,
    RecordEvent,
    RecordEventKind,
    StorageHealth,
    SyncState,
    WriteKind,
)

__all__ = [
    "DEFAULTED_FIELDS",
    "OPTIONAL_FIELDS",
    "FldrStatus",
    "RecordData",
    "has_key_info",
    "promoted_status",
    "CacheEntry",
    "PendingWrite",
    "RecordEvent",
    "RecordEventKind",
    "StorageHealth",
    "SyncState",
    "WriteKind",
]
