"""SQLAlchemy ORM model for durable local key-value entries."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fldr_sync.infrastructure.database.base import Base


class LocalEntryModel(Base):
    """ORM model — maps to the 'local_entries' table."""

    __tablename__ = "local_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<LocalEntryModel(key='{self.key}', size={len(self.value)})>"
