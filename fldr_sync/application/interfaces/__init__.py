from .key_value_store import KeyValueStore
from .remote_record_store import RemoteRecordStore
from .fldr_repository import FldrRepository

__all__ = [
    "KeyValueStore",
    "RemoteRecordStore",
    "FldrRepository",
]
