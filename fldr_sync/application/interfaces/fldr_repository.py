"""Abstract repository interface (port) for server-side fldr persistence."""

from abc import ABC, abstractmethod

from fldr_sync.domain.entities import RecordData


class FldrRepository(ABC):
    """Port for fldr persistence behind the reference remote store."""

    @abstractmethod
    async def get_by_id(self, record_id: str) -> RecordData | None:
        """Retrieve a single fldr by id."""
        ...

    @abstractmethod
    async def get_all(self) -> list[RecordData]:
        """Retrieve every fldr."""
        ...

    @abstractmethod
    async def save(self, record: RecordData) -> RecordData:
        """Insert or replace a fldr and return it."""
        ...

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Delete a fldr. Returns True if deleted, False if not found."""
        ...
