"""Key naming for everything the sync engine persists locally."""

from dataclasses import dataclass


@dataclass(frozen=True)
class StorageLayout:
    """Namespaced keys inside the durable local store.

    Layout (``git`` namespace):
        git_offline_fldrs_<id>   — one cache entry per record
        git_sync_queue           — the pending-write queue
        git-fldrs                — the list snapshot
        git-storage-health       — diagnostics
    """

    namespace: str = "git"

    @property
    def record_prefix(self) -> str:
        return f"{self.namespace}_offline_fldrs_"

    def record_key(self, record_id: str) -> str:
        return f"{self.record_prefix}{record_id}"

    def record_id_from_key(self, key: str) -> str:
        return key[len(self.record_prefix):]

    @property
    def queue_key(self) -> str:
        return f"{self.namespace}_sync_queue"

    @property
    def list_key(self) -> str:
        return f"{self.namespace}-fldrs"

    @property
    def health_key(self) -> str:
        return f"{self.namespace}-storage-health"

    @property
    def probe_key(self) -> str:
        return f"__{self.namespace}_storage_test__"

    def owns(self, key: str) -> bool:
        """True for every key this layout writes (used by clear/describe)."""
        return key.startswith(self.record_prefix) or key in (
            self.queue_key,
            self.list_key,
            self.health_key,
        )
