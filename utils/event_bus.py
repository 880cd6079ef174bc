"""
Simple asynchronous event bus decoupling inventory services from side channels
such as the reorder notification webhook.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from models.events import InventoryEvent

logger_event_bus = logging.getLogger(__name__)

EventCallback = Callable[[InventoryEvent], Coroutine[Any, Any, None]]


class EventBus:
    """In-process pub/sub for inventory events."""

    def __init__(self):
        self.subscribers: dict[str, list[EventCallback]] = {}
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, event_type: str, callback: EventCallback) -> None:
        """Subscribe to an event type."""
        if not callable(callback):
            raise TypeError("Callback must be a callable async function.")
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        if callback not in self.subscribers[event_type]:  # Avoid duplicate subscriptions
            self.subscribers[event_type].append(callback)
            logger_event_bus.debug(f"Callback {_name(callback)} subscribed to {event_type}")
        else:
            logger_event_bus.warning(f"Callback {_name(callback)} already subscribed to {event_type}")

    def unsubscribe(self, event_type: str, callback: EventCallback) -> None:
        """Unsubscribe a specific callback from an event type."""
        if event_type in self.subscribers:
            try:
                self.subscribers[event_type].remove(callback)
                logger_event_bus.debug(f"Callback {_name(callback)} unsubscribed from {event_type}")
                if not self.subscribers[event_type]:  # Clean up empty list
                    del self.subscribers[event_type]
            except ValueError:
                logger_event_bus.warning(f"Callback {_name(callback)} not found for event type {event_type}")

    async def publish(self, event: InventoryEvent) -> None:
        """Publish an event and wait for every subscriber to finish."""
        if not isinstance(event, InventoryEvent):
            logger_event_bus.error(f"Attempted to publish invalid event type: {type(event)}")
            return

        logger_event_bus.info(f"Event published: {event.event_type} from {event.source.value}")
        callbacks = list(self.subscribers.get(event.event_type, []))
        if not callbacks:
            return
        tasks = [asyncio.create_task(callback(event)) for callback in callbacks]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for callback, result in zip(callbacks, results):
            if isinstance(result, Exception):
                logger_event_bus.error(
                    f"Error in subscriber callback '{_name(callback)}' for event {event.event_type}: {result}",
                    exc_info=False,
                )

    def publish_nowait(self, event: InventoryEvent) -> asyncio.Task | None:
        """
        Schedule delivery of an event without waiting for subscribers.

        Must be called from a running event loop. The returned task is also
        tracked so that `drain()` can await outstanding deliveries on shutdown.
        """
        if not isinstance(event, InventoryEvent):
            logger_event_bus.error(f"Attempted to publish invalid event type: {type(event)}")
            return None
        task = asyncio.create_task(self.publish(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for all events scheduled with `publish_nowait` to be delivered."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_count(self) -> int:
        return len(self._pending)


def _name(callback: Any) -> str:
    return getattr(callback, "__name__", type(callback).__name__)
