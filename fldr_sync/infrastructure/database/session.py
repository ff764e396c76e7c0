"""SQLAlchemy engine and session configuration for the durable local store.

The sync engine treats local storage as synchronous, so this uses a plain
(non-async) engine. SQLite is the default host store.
"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fldr_sync.infrastructure.database.base import Base


def create_local_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for ``url`` and make sure the tables exist."""
    kwargs: dict = {"echo": echo, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url == "sqlite://":
            # One shared connection, otherwise every session sees a new empty DB
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)
    Base.metadata.create_all(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, class_=Session, expire_on_commit=False)
