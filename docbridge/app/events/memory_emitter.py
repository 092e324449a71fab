from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, List

from docbridge.app.events.models import BridgeEvent, TERMINAL_EVENT_TYPES
from docbridge.app.events.emitter import BridgeEventEmitter

logger = logging.getLogger(__name__)


class MemoryQueueEventEmitter(BridgeEventEmitter):
    """
    In-memory async event emitter for progress subscribers.

    Properties:
    - single-consumer
    - ordering follows emission order
    - closes after the first terminal event of an operation
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[BridgeEvent | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: BridgeEvent) -> None:
        if self._closed:
            return

        try:
            await self._queue.put(event)
        except Exception as exc:
            logger.warning("Dropping bridge event %s: %s", event.event_type, exc)
            return

        if event.event_type in TERMINAL_EVENT_TYPES:
            await self.close()

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._queue.put(None)

    async def stream(self) -> AsyncIterator[BridgeEvent]:
        """
        Async generator yielding emitted events in order.
        """
        while True:
            event = await self._queue.get()
            if event is None:
                break
            yield event

    async def drain(self) -> List[BridgeEvent]:
        """
        Collect every event up to the terminal one.
        """
        return [event async for event in self.stream()]
