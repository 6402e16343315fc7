"""Read-path view that stays in sync with booking mutations.

Each view owns its own copy of the data. It subscribes to the booking bus
when mounted and re-fetches on every pulse. There is no cancellation: when
refreshes overlap, whichever finishes last wins.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from backend.errors import GymFlowError
from backend.services.booking_events import BookingEventBus

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ViewStatus(str, Enum):
    loading = "loading"
    error = "error"
    success = "success"


class LiveView(Generic[T]):
    """Holds loading / error / data for one async loader.

    Args:
        loader: Coroutine function fetching fresh data.
        events: Booking bus to follow while mounted.
        initial: Data shown before the first successful fetch.
        error_message: Fallback text when the loader fails without one.
    """

    def __init__(
        self,
        loader: Callable[[], Awaitable[T]],
        events: BookingEventBus,
        initial: T,
        error_message: str = "No se pudieron cargar los datos",
    ) -> None:
        self._loader = loader
        self._events = events
        self._error_message = error_message
        self._unsubscribe: Optional[Callable[[], None]] = None

        self.data: T = initial
        self.loading = True
        self.error: Optional[str] = None

    @property
    def status(self) -> ViewStatus:
        if self.loading:
            return ViewStatus.loading
        if self.error is not None:
            return ViewStatus.error
        return ViewStatus.success

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    async def refresh(self) -> None:
        self.loading = True
        self.error = None
        try:
            self.data = await self._loader()
        except GymFlowError as e:
            logger.warning("View refresh failed: %s", e.message)
            self.error = e.message
        except Exception as e:
            logger.warning("View refresh failed: %s", e)
            self.error = str(e) or self._error_message
        finally:
            self.loading = False

    async def mount(self) -> None:
        """Start following booking updates and load once."""
        if self._unsubscribe is None:
            self._unsubscribe = self._events.subscribe(self.refresh)
        await self.refresh()

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
