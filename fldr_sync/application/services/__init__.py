from .schema_normalizer import normalize, normalize_many
from .storage_layout import StorageLayout
from .record_cache import RecordCache
from .pending_write_queue import PendingWriteQueue
from .list_aggregator import ListAggregator, ListSnapshotStore, merge_snapshots
from .connectivity_monitor import ConnectivityMonitor, ConnectivityProbe
from .write_scheduler import WriteScheduler
from .record_events import RecordEventBroadcaster
from .storage_health import StorageHealthService
from .reconciliation_engine import ReconciliationEngine
from .fldr_service import FldrService

__all__ = [
    "normalize",
    "normalize_many",
    "StorageLayout",
    "RecordCache",
    "PendingWriteQueue",
    "ListAggregator",
    "ListSnapshotStore",
    "merge_snapshots",
    "ConnectivityMonitor",
    "ConnectivityProbe",
    "WriteScheduler",
    "RecordEventBroadcaster",
    "StorageHealthService",
    "ReconciliationEngine",
    "FldrService",
]
