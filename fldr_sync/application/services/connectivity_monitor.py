"""Connectivity monitoring — edge-triggered online/offline signal.

The host reports connectivity through ``set_online``; listeners registered
with ``on_online`` / ``on_offline`` run only when the signal actually flips.
``ConnectivityProbe`` can drive the signal from the remote store's health
endpoint when the host has no signal of its own.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from fldr_sync.application.interfaces import RemoteRecordStore

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ConnectivityState(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass
class ConnectivityChange:
    """One recorded edge."""

    state: ConnectivityState
    at: datetime


class ConnectivityMonitor:
    """Holds the current online flag and fans out edges to listeners.

    Example:
        >>> monitor = ConnectivityMonitor(initial_online=False)
        >>> unsubscribe = monitor.on_online(lambda: print("back online"))
        >>> monitor.set_online(True)
        back online
    """

    def __init__(self, initial_online: bool = True, max_history: int = 50) -> None:
        self._online = initial_online
        self._online_listeners: list[Listener] = []
        self._offline_listeners: list[Listener] = []
        self._online_event = asyncio.Event()
        if initial_online:
            self._online_event.set()
        self._history: list[ConnectivityChange] = []
        self._max_history = max_history

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def state(self) -> ConnectivityState:
        return ConnectivityState.ONLINE if self._online else ConnectivityState.OFFLINE

    def set_online(self, online: bool) -> None:
        """Feed the host's signal. Listeners fire only on a change."""
        if online == self._online:
            return

        self._online = online
        change = ConnectivityChange(self.state, datetime.now(timezone.utc))
        self._history.append(change)
        del self._history[: -self._max_history]
        logger.info("Connectivity changed: %s", change.state.value)

        if online:
            self._online_event.set()
        else:
            self._online_event.clear()

        for listener in list(self._online_listeners if online else self._offline_listeners):
            try:
                listener()
            except Exception:
                logger.exception("Connectivity listener failed")

    def on_online(self, listener: Listener) -> Callable[[], None]:
        """Register a down→up listener. Returns an unsubscribe callable."""
        return self._register(self._online_listeners, listener)

    def on_offline(self, listener: Listener) -> Callable[[], None]:
        """Register an up→down listener. Returns an unsubscribe callable."""
        return self._register(self._offline_listeners, listener)

    @staticmethod
    def _register(listeners: list[Listener], listener: Listener) -> Callable[[], None]:
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    async def wait_until_online(self) -> None:
        """Suspend until the signal is up (returns at once when it already is)."""
        await self._online_event.wait()

    def get_history(self, last_n: int = 10) -> list[ConnectivityChange]:
        return self._history[-last_n:]


class ConnectivityProbe:
    """Asyncio task that pings the remote store and feeds the monitor.

    Runs inside the host's event loop; ``start`` / ``stop`` bracket its life.
    """

    def __init__(
        self,
        monitor: ConnectivityMonitor,
        remote: RemoteRecordStore,
        interval: float = 30.0,
    ) -> None:
        self._monitor = monitor
        self._remote = remote
        self._interval = interval
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the probing loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("ConnectivityProbe started (every %.1fs)", self._interval)

    async def stop(self) -> None:
        """Stop the probing loop and wait for it to exit."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("ConnectivityProbe stopped")

    async def check_now(self) -> bool:
        """Ping once and update the monitor."""
        try:
            reachable = await self._remote.ping()
        except Exception as e:
            logger.debug("Connectivity ping failed: %s", e)
            reachable = False
        self._monitor.set_online(reachable)
        return reachable

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.check_now()
            except asyncio.CancelledError:
                break
            await asyncio.sleep(self._interval)
