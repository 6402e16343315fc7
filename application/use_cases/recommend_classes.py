"""Personalized class recommendations for the current user."""

from datetime import datetime
from typing import Mapping, Optional, Sequence

from application.models.classes import (
    ClassListItem,
    DemandSignal,
    RecommendationContext,
    RecommendationResult,
)
from application.ports.auth_provider import AuthProvider
from application.ports.classes_repository import ClassesRepository
from application.use_cases.common import resolve_user
from application.use_cases.my_bookings import ListMyBookingHistory
from backend.services.recommendations import (
    RECOMMENDATION_LIMIT,
    context_from_metadata,
    infer_context,
    recommend_classes,
)


class RecommendClasses:
    """Rank candidate classes using metadata and booking history.

    Anonymous callers get the popularity fallback.
    """

    def __init__(self, repo: ClassesRepository, auth: AuthProvider) -> None:
        self._auth = auth
        self._history = ListMyBookingHistory(repo, auth)

    async def execute(
        self,
        classes: Sequence[ClassListItem],
        signals: Mapping[str, DemandSignal],
        now: Optional[datetime] = None,
        limit: int = RECOMMENDATION_LIMIT,
    ) -> RecommendationResult:
        user = await resolve_user(self._auth)
        explicit = context_from_metadata(user.metadata) if user else RecommendationContext()
        history = await self._history.execute(now=now) if user else []

        context = infer_context(explicit, history, classes)
        return recommend_classes(classes, signals, context, limit=limit)
