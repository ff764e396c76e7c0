"""Record event broadcaster — in-process fan-out of record updates."""

import asyncio
import logging
from collections.abc import AsyncGenerator

from fldr_sync.domain.entities import RecordEvent

logger = logging.getLogger(__name__)


class RecordEventBroadcaster:
    """Delivers RecordEvents to every subscriber.

    Each subscriber gets its own bounded asyncio.Queue. Publishing pushes
    the event to all queues; a subscriber that falls too far behind is
    disconnected rather than blocking the engine.
    """

    def __init__(self, max_queue_size: int = 100) -> None:
        self._queues: list[asyncio.Queue[RecordEvent | None]] = []
        self._max_queue_size = max_queue_size

    def open_queue(self) -> asyncio.Queue[RecordEvent | None]:
        """Register a subscriber queue right away (events are buffered from now)."""
        queue: asyncio.Queue[RecordEvent | None] = asyncio.Queue(self._max_queue_size)
        self._queues.append(queue)
        return queue

    def close_queue(self, queue: asyncio.Queue[RecordEvent | None]) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    async def subscribe(self) -> AsyncGenerator[RecordEvent, None]:
        """Yield events until shutdown. Unsubscribes when the consumer stops."""
        queue = self.open_queue()
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
        finally:
            self.close_queue(queue)

    def publish(self, event: RecordEvent) -> None:
        """Push an event to all subscribers without suspending."""
        dead_queues: list[asyncio.Queue[RecordEvent | None]] = []

        for queue in self._queues:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                dead_queues.append(queue)
                logger.warning("Record event subscriber queue full — disconnecting")

        for q in dead_queues:
            self._queues.remove(q)
            self._close(q)

    async def shutdown(self) -> None:
        """Disconnect all subscribers."""
        for queue in self._queues:
            self._close(queue)
        self._queues.clear()

    @staticmethod
    def _close(queue: asyncio.Queue[RecordEvent | None]) -> None:
        # Make room for the sentinel so the subscriber loop can exit
        while queue.full():
            queue.get_nowait()
        queue.put_nowait(None)

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)
