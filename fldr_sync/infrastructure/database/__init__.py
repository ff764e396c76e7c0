from .base import Base
from .session import create_local_engine, create_session_factory
from .models import LocalEntryModel
from .repositories import SQLAlchemyKeyValueStore

__all__ = [
    "Base",
    "create_local_engine",
    "create_session_factory",
    "LocalEntryModel",
    "SQLAlchemyKeyValueStore",
]
