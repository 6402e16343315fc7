"""Class catalog and list read paths."""

import logging
from datetime import datetime, timedelta, tzinfo
from typing import Dict, List, Optional

from application.models.classes import (
    ClassListItem,
    GymClass,
    SessionSummary,
    SessionWithAvailability,
)
from application.ports.auth_provider import AuthProvider
from application.ports.classes_repository import ClassesRepository
from application.use_cases.class_sessions import annotate_sessions
from application.use_cases.common import resolve_user_id, utcnow
from backend.errors import NotFoundError, external_call
from backend.services.entity_normalizer import TrainerDirectory, normalize_class_session

logger = logging.getLogger(__name__)

CATALOG_FAILURE_MESSAGE = "No se pudo cargar el catálogo de clases"
CLASSES_FAILURE_MESSAGE = "No se pudieron cargar las clases"
CLASS_FAILURE_MESSAGE = "No se pudo cargar la clase"
CLASS_NOT_FOUND_MESSAGE = "Clase no encontrada"

DEFAULT_TRAINER_NAME = "Entrenador asignado"
SESSIONS_PER_CLASS = 3
FALLBACK_SESSIONS_LIMIT = 300


class ListClassesCatalog:
    """Classes ordered by title, with trainer identity backfilled."""

    def __init__(self, repo: ClassesRepository) -> None:
        self._repo = repo
        self._directory = TrainerDirectory(repo)

    async def execute(
        self,
        search: Optional[str] = None,
        level: Optional[str] = None,
        only_active: bool = True,
    ) -> List[GymClass]:
        with external_call(CATALOG_FAILURE_MESSAGE):
            rows = await self._repo.list_classes(search=search, level=level, only_active=only_active)
        return await self._directory.enrich_classes(rows)


class GetClassBySlug:
    def __init__(self, repo: ClassesRepository) -> None:
        self._repo = repo
        self._directory = TrainerDirectory(repo)

    async def execute(self, slug: str) -> GymClass:
        """Raises NotFoundError when no class has this slug."""
        if not slug or not slug.strip():
            raise NotFoundError("Clase no válida")

        with external_call(CLASS_FAILURE_MESSAGE):
            row = await self._repo.get_class_by_slug(slug)
        if row is None:
            raise NotFoundError(CLASS_NOT_FOUND_MESSAGE)

        [gym_class] = await self._directory.enrich_classes([row])
        return gym_class


def summarize_session(
    session: SessionWithAvailability,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> SessionSummary:
    my_booking = session.my_booking
    diff_seconds = (session.starts_at - now).total_seconds()
    local_start = session.starts_at.astimezone(tz) if tz else session.starts_at
    local_now = now.astimezone(tz) if tz else now

    return SessionSummary(
        id=session.id,
        starts_at=session.starts_at,
        ends_at=session.ends_at,
        total_spots=session.effective_capacity,
        booked_spots=session.booked_count,
        remaining_spots=session.remaining_spots,
        occupancy_ratio=session.occupancy_ratio,
        is_cancelled=session.is_cancelled,
        has_my_booking=my_booking is not None and not my_booking.is_cancelled,
        my_booking_status=my_booking.status.value if my_booking else None,
        starts_in_minutes=int(diff_seconds // 60) if diff_seconds > 0 else None,
        starts_today=local_start.date() == local_now.date(),
        availability_state=session.availability_state,
    )


def build_list_item(gym_class: GymClass, sessions: List[SessionSummary]) -> ClassListItem:
    next_sessions = sessions[:SESSIONS_PER_CLASS]
    first_available = next(
        (s for s in next_sessions if not s.is_cancelled and s.remaining_spots > 0), None
    )
    trainer_name = gym_class.trainer.full_name if gym_class.trainer else ""

    return ClassListItem(
        **gym_class.model_dump(exclude={"trainer"}),
        trainer=gym_class.trainer,
        trainer_name=trainer_name or DEFAULT_TRAINER_NAME,
        next_sessions=next_sessions,
        available_spots=first_available.remaining_spots if first_available else 0,
        has_my_booking=any(s.has_my_booking for s in next_sessions),
        next_my_session=next((s for s in next_sessions if s.has_my_booking), None),
    )


class ListClassesWithSessions:
    """Class list items with their next upcoming sessions.

    Looks ``days_ahead`` days forward; when that window is empty it takes
    any future sessions instead so the list is never blank for a gym that
    schedules far ahead.
    """

    def __init__(
        self,
        repo: ClassesRepository,
        auth: AuthProvider,
        tz: Optional[tzinfo] = None,
        days_ahead: int = 14,
    ) -> None:
        self._repo = repo
        self._auth = auth
        self._tz = tz
        self._days_ahead = days_ahead
        self._catalog = ListClassesCatalog(repo)

    async def execute(
        self,
        search: Optional[str] = None,
        level: Optional[str] = None,
        only_active: bool = True,
        days_ahead: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[ClassListItem]:
        classes = await self._catalog.execute(search=search, level=level, only_active=only_active)
        if not classes:
            return []

        now = now or utcnow()
        until = now + timedelta(days=days_ahead or self._days_ahead)
        class_ids = [c.id for c in classes]
        user_id = await resolve_user_id(self._auth)

        with external_call(CLASSES_FAILURE_MESSAGE):
            rows = await self._repo.list_sessions(class_ids=class_ids, starts_from=now, starts_to=until)
            if not rows:
                logger.debug("No sessions in the next window, falling back to any future sessions")
                rows = await self._repo.list_sessions(
                    class_ids=class_ids, starts_from=now, limit=FALLBACK_SESSIONS_LIMIT
                )
            sessions = [normalize_class_session(row) for row in rows]
            annotated = await annotate_sessions(self._repo, sessions, user_id)

        by_class: Dict[str, List[SessionSummary]] = {}
        for session in annotated:
            by_class.setdefault(session.class_id, []).append(summarize_session(session, now, self._tz))

        return [build_list_item(c, by_class.get(c.id, [])) for c in classes]
