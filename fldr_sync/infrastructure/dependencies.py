"""Dependency wiring — connects infrastructure adapters to the application layer.

Two consumers:
    - the reference remote store (FastAPI ``Depends`` providers below)
    - a host embedding the sync engine (``build_sync_engine``)
"""

import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from functools import lru_cache

import httpx
from fastapi import Depends

from fldr_sync.application.interfaces import FldrRepository, KeyValueStore
from fldr_sync.application.services.connectivity_monitor import (
    ConnectivityMonitor,
    ConnectivityProbe,
)
from fldr_sync.application.services.fldr_service import FldrService
from fldr_sync.application.services.reconciliation_engine import ReconciliationEngine
from fldr_sync.application.services.storage_layout import StorageLayout
from fldr_sync.application.services.write_scheduler import WriteScheduler
from fldr_sync.config import Settings, get_settings
from fldr_sync.domain.exceptions import StorageUnavailableError
from fldr_sync.infrastructure.database import SQLAlchemyKeyValueStore, create_local_engine
from fldr_sync.infrastructure.remote import HttpRecordStore
from fldr_sync.infrastructure.repositories import InMemoryFldrRepository
from fldr_sync.infrastructure.storage import FallbackKeyValueStore

logger = logging.getLogger(__name__)


# ── Reference remote store ──────────────────────────────────────────


@lru_cache
def get_fldr_repository() -> FldrRepository:
    """Process-wide repository; the reference store keeps fldrs in memory."""
    return InMemoryFldrRepository()


async def get_fldr_service(
    repository: FldrRepository = Depends(get_fldr_repository),
) -> AsyncGenerator[FldrService, None]:
    """Provides a FldrService instance with its repository wired up."""
    yield FldrService(repository)


# ── Sync engine (client side) ───────────────────────────────────────


@dataclass
class SyncComponents:
    """Everything a host needs to run the engine; ``aclose`` tears it down."""

    engine: ReconciliationEngine
    scheduler: WriteScheduler
    monitor: ConnectivityMonitor
    probe: ConnectivityProbe | None
    remote: HttpRecordStore
    store: KeyValueStore
    http_client: httpx.AsyncClient

    async def start(self) -> None:
        if self.probe is not None:
            await self.probe.start()
            await self.probe.check_now()

    async def aclose(self) -> None:
        await self.scheduler.aclose()
        if self.probe is not None:
            await self.probe.stop()
        await self.engine.close()
        await self.http_client.aclose()
        close = getattr(self.store, "close", None)
        if close is not None:
            close()


def build_local_store(settings: Settings) -> KeyValueStore:
    """Durable SQLAlchemy store wrapped so that a denied host store degrades to memory."""
    try:
        engine = create_local_engine(settings.local_store_url, echo=False)
    except Exception as e:
        logger.warning(
            "Could not open local store at %s (%s) — using memory only",
            settings.local_store_url, e,
        )
        return FallbackKeyValueStore.memory_only(StorageUnavailableError("open", None, e))
    return FallbackKeyValueStore(SQLAlchemyKeyValueStore(engine))


def build_sync_engine(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    store: KeyValueStore | None = None,
) -> SyncComponents:
    """Wire the reconciliation engine from settings.

    ``http_client`` and ``store`` may be injected (tests, hosts with their
    own transport); otherwise they are built from ``settings``.
    """
    settings = settings or get_settings()
    client = http_client or httpx.AsyncClient(timeout=settings.remote_timeout)
    remote = HttpRecordStore(
        settings.remote_base_url,
        timeout=settings.remote_timeout,
        http_client=client,
    )
    monitor = ConnectivityMonitor(initial_online=True)
    local_store = store if store is not None else build_local_store(settings)

    engine = ReconciliationEngine(
        remote=remote,
        store=local_store,
        monitor=monitor,
        layout=StorageLayout(settings.storage_namespace),
    )
    scheduler = WriteScheduler(engine.write, quiet_period=settings.write_quiet_period)

    probe = None
    if settings.connectivity_check_interval > 0:
        probe = ConnectivityProbe(monitor, remote, interval=settings.connectivity_check_interval)

    logger.info(
        "Sync engine wired: remote=%s store=%s namespace=%s",
        settings.remote_base_url, type(local_store).__name__, settings.storage_namespace,
    )
    return SyncComponents(
        engine=engine,
        scheduler=scheduler,
        monitor=monitor,
        probe=probe,
        remote=remote,
        store=local_store,
        http_client=client,
    )
