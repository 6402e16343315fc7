"""Demand signals read path."""

from datetime import datetime
from typing import Dict, Iterable, Optional

from application.models.classes import BookingStatus, DemandSignal
from application.ports.classes_repository import ClassesRepository
from application.use_cases.common import utcnow
from backend.errors import external_call
from backend.services.demand import DEMAND_WINDOW, compute_demand_signals

DEMAND_FAILURE_MESSAGE = "No se pudo cargar la demanda de las clases"

_COUNTED_STATUSES = [
    BookingStatus.booked.value,
    BookingStatus.confirmed.value,
    BookingStatus.attended.value,
]


class GetDemandSignals:
    """Recent vs. prior booking volume for a set of classes."""

    def __init__(self, repo: ClassesRepository) -> None:
        self._repo = repo

    async def execute(
        self, class_ids: Iterable[str], now: Optional[datetime] = None
    ) -> Dict[str, DemandSignal]:
        unique_ids = list(dict.fromkeys(c for c in class_ids if c))
        if not unique_ids:
            return {}

        now = now or utcnow()
        with external_call(DEMAND_FAILURE_MESSAGE):
            session_rows = await self._repo.list_session_class_ids(unique_ids)
            session_to_class = {row["id"]: row["class_id"] for row in session_rows}
            bookings = []
            if session_to_class:
                bookings = await self._repo.list_recent_bookings(
                    list(session_to_class),
                    since=now - DEMAND_WINDOW * 2,
                    statuses=_COUNTED_STATUSES,
                )

        return compute_demand_signals(unique_ids, session_to_class, bookings, now)
