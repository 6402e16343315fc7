"""A trainer's own sessions for a week, with the member roster."""

from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import List, Optional

from application.models.classes import ClassBooking, SessionWithAvailability
from application.ports.auth_provider import AuthProvider
from application.ports.classes_repository import ClassesRepository
from application.use_cases.common import end_of_day, resolve_user_id, start_of_day
from backend.errors import AuthenticationRequired, external_call
from backend.services.availability import compute_availability
from backend.services.entity_normalizer import normalize_class_booking, normalize_class_session

TRAINER_FAILURE_MESSAGE = "No se pudieron cargar tus sesiones"


@dataclass
class TrainerSession:
    session: SessionWithAvailability
    bookings: List[ClassBooking] = field(default_factory=list)


class ListTrainerSessions:
    def __init__(self, repo: ClassesRepository, auth: AuthProvider, tz: Optional[tzinfo] = None) -> None:
        self._repo = repo
        self._auth = auth
        self._tz = tz

    async def execute(self, week_start: date, week_end: date) -> List[TrainerSession]:
        """Sessions taught by the current user, availability from the roster.

        Raises AuthenticationRequired for anonymous callers.
        """
        trainer_id = await resolve_user_id(self._auth)
        if not trainer_id:
            raise AuthenticationRequired("Usuario no autenticado")

        with external_call(TRAINER_FAILURE_MESSAGE):
            rows = await self._repo.list_trainer_sessions(
                trainer_id,
                starts_from=start_of_day(week_start, self._tz),
                starts_to=end_of_day(week_end, self._tz),
            )

        result: List[TrainerSession] = []
        for row in rows:
            session = normalize_class_session(row)
            bookings = [normalize_class_booking(b) for b in row.get("class_bookings") or []]
            result.append(
                TrainerSession(
                    session=compute_availability(session, bookings),
                    bookings=bookings,
                )
            )
        return result
