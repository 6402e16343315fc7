"""Booking reconciliation broadcast.

A named, payload-less publish/subscribe channel telling every read view
that booking state changed somewhere and it should re-fetch. Delivery is
fire-and-forget: every listener subscribed at publish time is invoked once,
late subscribers get nothing, and nothing is queued.

One bus is created per process and injected where needed (see api.deps).
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Set, Union

logger = logging.getLogger(__name__)

BOOKING_UPDATED_EVENT = "classes:booking-updated"

Listener = Callable[[], Union[None, Awaitable[None]]]


class BookingEventBus:
    """Observer registry for the booking-updated pulse.

    Sync listeners run inline during ``publish``. Coroutine listeners are
    scheduled as tasks on the running loop; ``drain`` awaits them.
    """

    def __init__(self, name: str = BOOKING_UPDATED_EVENT) -> None:
        self.name = name
        self._listeners: List[Listener] = []
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass  # already removed

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish(self) -> int:
        """Invoke every current listener once. Returns how many were invoked."""
        listeners = list(self._listeners)
        logger.debug("Publishing %s to %d listeners", self.name, len(listeners))

        for listener in listeners:
            try:
                result = listener()
            except Exception as e:
                logger.warning("Listener for %s failed: %s", self.name, e)
                continue
            if inspect.isawaitable(result):
                self._schedule(result)

        return len(listeners)

    def _schedule(self, awaitable: Awaitable[None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop; dropping async listener for %s", self.name)
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = loop.create_task(self._run(awaitable))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run(self, awaitable: Awaitable[None]) -> None:
        try:
            await awaitable
        except Exception as e:
            logger.warning("Async listener for %s failed: %s", self.name, e)

    async def drain(self) -> None:
        """Wait for async listeners scheduled by earlier publishes."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
