"""Abstract port (interface) for the remote system of record."""

from abc import ABC, abstractmethod

from fldr_sync.domain.entities import RecordData


class RemoteRecordStore(ABC):
    """Port for the HTTP-addressable record service.

    Every method raises ``RemoteStoreError`` when the request cannot be
    completed — the engine treats that exactly like being offline.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short name used in logs and errors."""
        ...

    @abstractmethod
    async def list_records(self) -> list[RecordData]:
        """GET the full, ordered collection."""
        ...

    @abstractmethod
    async def get_record(self, record_id: str) -> RecordData | None:
        """GET one record. Returns None when the remote reports not found."""
        ...

    @abstractmethod
    async def create_record(self, initial: RecordData) -> RecordData:
        """POST a new record and return it with its assigned id."""
        ...

    @abstractmethod
    async def patch_record(self, record_id: str, updates: RecordData) -> RecordData:
        """PATCH a record and return the canonical merged value.

        Raises ``EntityNotFoundError`` when the remote has no such record.
        """
        ...

    @abstractmethod
    async def delete_record(self, record_id: str) -> bool:
        """DELETE a record. Returns False when it was already gone."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the remote answers its health check."""
        ...
