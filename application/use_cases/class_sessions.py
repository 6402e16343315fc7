"""Session availability read paths (per class and per week)."""

import logging
from datetime import date, datetime, tzinfo
from typing import Dict, List, Optional, Sequence

from application.models.classes import (
    ClassBooking,
    ClassesFilters,
    ClassSession,
    SessionWithAvailability,
    UserIdentity,
    WeekSessions,
)
from application.ports.auth_provider import AuthProvider
from application.ports.classes_repository import ClassesRepository
from application.use_cases.common import end_of_day, resolve_user_id, start_of_day
from backend.errors import external_call
from backend.services.availability import availability_from_count, pick_my_booking
from backend.services.class_filters import filter_sessions
from backend.services.entity_normalizer import TrainerDirectory, normalize_class_booking

logger = logging.getLogger(__name__)

SESSIONS_FAILURE_MESSAGE = "No se pudieron cargar las sesiones"
WEEK_FAILURE_MESSAGE = "No se pudieron cargar las clases"


async def annotate_sessions(
    repo: ClassesRepository,
    sessions: Sequence[ClassSession],
    user_id: Optional[str],
) -> List[SessionWithAvailability]:
    """Attach booked counts and the caller's own booking to each session."""
    if not sessions:
        return []

    session_ids = [s.id for s in sessions]
    counts = await repo.get_booking_counts(session_ids)

    mine: Dict[str, List[ClassBooking]] = {}
    if user_id:
        rows = await repo.list_user_bookings_for_sessions(user_id, session_ids)
        for booking in (normalize_class_booking(row) for row in rows):
            mine.setdefault(booking.session_id, []).append(booking)

    return [
        availability_from_count(
            session,
            counts.get(session.id, 0),
            pick_my_booking(mine.get(session.id, []), user_id) if user_id else None,
        )
        for session in sessions
    ]


class ListClassSessions:
    """Sessions of one class, annotated for the current user."""

    def __init__(self, repo: ClassesRepository, auth: AuthProvider) -> None:
        self._repo = repo
        self._auth = auth
        self._directory = TrainerDirectory(repo)

    async def execute(
        self,
        class_id: str,
        starts_from: Optional[datetime] = None,
        starts_to: Optional[datetime] = None,
    ) -> List[SessionWithAvailability]:
        user_id = await resolve_user_id(self._auth)

        with external_call(SESSIONS_FAILURE_MESSAGE):
            rows = await self._repo.list_sessions(
                class_ids=[class_id], starts_from=starts_from, starts_to=starts_to
            )
            sessions = await self._directory.enrich_sessions(rows)
            return await annotate_sessions(self._repo, sessions, user_id)


class ListWeekSessions:
    """All sessions between two days (inclusive), filtered, plus trainers.

    Args:
        repo: ClassesRepository.
        auth: AuthProvider for the caller's own bookings.
        tz: Gym timezone for day boundaries and weekday/time facets.
    """

    def __init__(self, repo: ClassesRepository, auth: AuthProvider, tz: Optional[tzinfo] = None) -> None:
        self._repo = repo
        self._auth = auth
        self._tz = tz
        self._directory = TrainerDirectory(repo)

    async def execute(self, week_start: date, week_end: date, filters: ClassesFilters) -> WeekSessions:
        user_id = await resolve_user_id(self._auth)

        with external_call(WEEK_FAILURE_MESSAGE):
            rows = await self._repo.list_sessions(
                starts_from=start_of_day(week_start, self._tz),
                starts_to=end_of_day(week_end, self._tz),
            )
            sessions = await self._directory.enrich_sessions(rows)
            annotated = await annotate_sessions(self._repo, sessions, user_id)
            trainer_rows = await self._repo.list_trainers()

        trainers = [UserIdentity.model_validate(row) for row in trainer_rows if row.get("user_id")]
        filtered = filter_sessions(annotated, filters, self._tz)
        logger.debug("Week %s..%s: %d/%d sessions after filters", week_start, week_end, len(filtered), len(annotated))
        return WeekSessions(sessions=filtered, trainers=trainers)
