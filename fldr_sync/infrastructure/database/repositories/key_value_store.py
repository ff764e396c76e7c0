"""Concrete KeyValueStore backed by a SQLAlchemy table."""

import logging

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import SQLAlchemyError

from fldr_sync.application.interfaces import KeyValueStore
from fldr_sync.domain.exceptions import StorageUnavailableError
from fldr_sync.infrastructure.database.models import LocalEntryModel
from fldr_sync.infrastructure.database.session import create_session_factory

logger = logging.getLogger(__name__)


class SQLAlchemyKeyValueStore(KeyValueStore):
    """Implements the KeyValueStore port with one short session per call.

    Every call commits before returning, so an entry survives a process
    restart as soon as ``set`` returns.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory = create_session_factory(engine)

    def get(self, key: str) -> str | None:
        try:
            with self._session_factory() as session:
                model = session.get(LocalEntryModel, key)
                return model.value if model else None
        except SQLAlchemyError as e:
            raise StorageUnavailableError("read", key, e) from e

    def set(self, key: str, value: str) -> None:
        try:
            with self._session_factory.begin() as session:
                model = session.get(LocalEntryModel, key)
                if model is None:
                    session.add(LocalEntryModel(key=key, value=value))
                else:
                    model.value = value
        except SQLAlchemyError as e:
            raise StorageUnavailableError("write", key, e) from e

    def delete(self, key: str) -> None:
        try:
            with self._session_factory.begin() as session:
                session.execute(delete(LocalEntryModel).where(LocalEntryModel.key == key))
        except SQLAlchemyError as e:
            raise StorageUnavailableError("delete", key, e) from e

    def keys(self, prefix: str = "") -> list[str]:
        stmt = select(LocalEntryModel.key).order_by(LocalEntryModel.key)
        if prefix:
            stmt = stmt.where(LocalEntryModel.key.startswith(prefix, autoescape=True))
        try:
            with self._session_factory() as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise StorageUnavailableError("list", prefix, e) from e

    def close(self) -> None:
        self._engine.dispose()
