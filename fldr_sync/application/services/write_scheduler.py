"""Write scheduler — debounces rapid local edits into one write per quiet period.

Each write-stream (by default the record id) has at most one armed timer.
A new ``schedule`` call for the stream cancels that timer and arms a fresh
one; when a timer fires, the latest update given for the stream is handed
to the dispatch callable. Once dispatched, a write runs to completion even
if newer edits arrive — those simply produce the next write.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from fldr_sync.domain.entities import RecordData

logger = logging.getLogger(__name__)

Dispatch = Callable[[str, RecordData], Awaitable[Any]]

DEFAULT_QUIET_PERIOD = 1.0  # seconds


@dataclass
class _Pending:
    record_id: str
    updates: RecordData
    handle: asyncio.TimerHandle


class WriteScheduler:
    """Cancel-and-restart debounce in front of the engine's ``write``."""

    def __init__(self, dispatch: Dispatch, quiet_period: float = DEFAULT_QUIET_PERIOD):
        self._dispatch = dispatch
        self._quiet_period = quiet_period
        self._pending: dict[str, _Pending] = {}
        self._in_flight: set[asyncio.Task] = set()

    @property
    def quiet_period(self) -> float:
        return self._quiet_period

    @property
    def pending_streams(self) -> list[str]:
        return list(self._pending)

    def schedule(self, record_id: str, updates: RecordData, *, stream: str | None = None) -> None:
        """Arm (or re-arm) the stream's timer with the latest update."""
        key = stream or record_id
        previous = self._pending.pop(key, None)
        if previous is not None:
            previous.handle.cancel()

        loop = asyncio.get_running_loop()
        handle = loop.call_later(self._quiet_period, self._fire, key)
        self._pending[key] = _Pending(record_id=record_id, updates=dict(updates), handle=handle)

    def _fire(self, key: str) -> None:
        pending = self._pending.pop(key, None)
        if pending is None:
            return
        task = asyncio.create_task(self._run(pending.record_id, pending.updates))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run(self, record_id: str, updates: RecordData) -> None:
        try:
            await self._dispatch(record_id, updates)
        except Exception:
            logger.exception("Debounced write for fldr %s failed", record_id)

    def flush_pending(self) -> int:
        """Fire every armed timer now. Returns how many writes were dispatched."""
        keys = list(self._pending)
        for key in keys:
            self._pending[key].handle.cancel()
            self._fire(key)
        return len(keys)

    def cancel_all(self) -> None:
        """Drop every armed timer without dispatching."""
        for pending in self._pending.values():
            pending.handle.cancel()
        self._pending.clear()

    async def aclose(self) -> None:
        """Dispatch anything still armed and wait for in-flight writes."""
        self.flush_pending()
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
