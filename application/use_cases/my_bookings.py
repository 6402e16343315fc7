"""The signed-in member's own bookings: upcoming strip, today's class, stats."""

from datetime import datetime, timedelta, tzinfo
from typing import List, Optional

from application.models.classes import BookingStatus, ClassBooking, TodayClasses, UserClassStats
from application.ports.auth_provider import AuthProvider
from application.ports.classes_repository import ClassesRepository, ORDER_BY_SESSION_START
from application.use_cases.common import end_of_day, resolve_user_id, start_of_day, utcnow
from backend.errors import external_call
from backend.services.entity_normalizer import TrainerDirectory, dig

UPCOMING_FAILURE_MESSAGE = "No se pudieron cargar tus reservas"
TODAY_FAILURE_MESSAGE = "No se pudieron cargar tus clases de hoy"
STATS_FAILURE_MESSAGE = "No se pudo cargar tu historial en esta clase"

UPCOMING_STATUSES = [BookingStatus.booked.value, BookingStatus.confirmed.value]
HISTORY_STATUSES = [
    BookingStatus.booked.value,
    BookingStatus.confirmed.value,
    BookingStatus.attended.value,
]
HISTORY_WINDOW = timedelta(days=90)
HISTORY_LIMIT = 50


class ListMyUpcomingBookings:
    """Upcoming booked/confirmed bookings of the current user."""

    def __init__(self, repo: ClassesRepository, auth: AuthProvider, limit: int = 5) -> None:
        self._repo = repo
        self._auth = auth
        self._limit = limit
        self._directory = TrainerDirectory(repo)

    async def execute(
        self, class_id: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[ClassBooking]:
        user_id = await resolve_user_id(self._auth)
        if not user_id:
            return []

        with external_call(UPCOMING_FAILURE_MESSAGE):
            rows = await self._repo.list_upcoming_bookings(
                user_id,
                since=now or utcnow(),
                statuses=UPCOMING_STATUSES,
                limit=self._limit,
                class_id=class_id,
            )
        return await self._directory.enrich_bookings(rows)


class ListMyBookingHistory:
    """Recent and upcoming bookings used to infer the user's preferences.

    Newest bookings first, so the cap keeps the most recent ones.
    """

    def __init__(self, repo: ClassesRepository, auth: AuthProvider) -> None:
        self._repo = repo
        self._auth = auth
        self._directory = TrainerDirectory(repo)

    async def execute(self, now: Optional[datetime] = None) -> List[ClassBooking]:
        user_id = await resolve_user_id(self._auth)
        if not user_id:
            return []

        with external_call(UPCOMING_FAILURE_MESSAGE):
            rows = await self._repo.list_upcoming_bookings(
                user_id,
                since=(now or utcnow()) - HISTORY_WINDOW,
                statuses=HISTORY_STATUSES,
                limit=HISTORY_LIMIT,
                descending=True,
            )
        return await self._directory.enrich_bookings(rows)


class GetMyTodayClass:
    """Today's first booked class and the next few upcoming ones."""

    def __init__(self, repo: ClassesRepository, auth: AuthProvider, tz: Optional[tzinfo] = None) -> None:
        self._repo = repo
        self._auth = auth
        self._tz = tz
        self._directory = TrainerDirectory(repo)

    async def execute(self, now: Optional[datetime] = None) -> TodayClasses:
        user_id = await resolve_user_id(self._auth)
        if not user_id:
            return TodayClasses()

        now = now or utcnow()
        today = (now.astimezone(self._tz) if self._tz else now).date()
        day_start = start_of_day(today, self._tz)
        day_end = end_of_day(today, self._tz)

        with external_call(TODAY_FAILURE_MESSAGE):
            rows = await self._repo.list_upcoming_bookings(
                user_id,
                since=day_start,
                statuses=UPCOMING_STATUSES,
                limit=4,
                order_by=ORDER_BY_SESSION_START,
            )
        bookings = await self._directory.enrich_bookings(rows)
        bookings = [b for b in bookings if b.session]

        today_class = next((b for b in bookings if day_start <= b.session.starts_at <= day_end), None)
        return TodayClasses(today_class=today_class, upcoming=bookings[:3])


class GetUserClassStats:
    """How many times the current user attended one class, and when last."""

    def __init__(self, repo: ClassesRepository, auth: AuthProvider) -> None:
        self._repo = repo
        self._auth = auth

    async def execute(self, class_id: str) -> UserClassStats:
        user_id = await resolve_user_id(self._auth)
        if not user_id:
            return UserClassStats()

        with external_call(STATS_FAILURE_MESSAGE):
            rows = await self._repo.list_attended_bookings(user_id, class_id)

        if not rows:
            return UserClassStats()

        latest = rows[0]
        return UserClassStats(
            attended_count=len(rows),
            last_attended_at=dig(latest, ("class_sessions", "starts_at")) or latest.get("booked_at"),
        )
