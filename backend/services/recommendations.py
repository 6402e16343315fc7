"""Class recommendations from implicit signals.

Preference comes from the user's own metadata first (goal, level) and
otherwise from a majority vote over the classes they have booked. With no
signal at all the ranking falls back to popularity and says so.
"""

from collections import Counter
from typing import Any, Iterable, List, Mapping, Optional, Sequence, TypeVar

from application.models.classes import (
    ClassBooking,
    ClassKind,
    ClassLevel,
    ClassListItem,
    DemandSignal,
    DemandTrend,
    RecommendationContext,
    RecommendationResult,
    SortMode,
)
from backend.services.class_filters import infer_class_kind, sort_classes
from backend.services.demand import default_signal

RECOMMENDATION_LIMIT = 4

T = TypeVar("T")


def context_from_metadata(metadata: Optional[Mapping[str, Any]]) -> RecommendationContext:
    """Read ``goal`` (or ``objective``) and a valid ``level`` from user metadata."""
    metadata = metadata or {}

    goal = metadata.get("goal")
    if not isinstance(goal, str):
        goal = metadata.get("objective")
    if not isinstance(goal, str) or not goal.strip():
        goal = None

    level = metadata.get("level")
    preferred_level = ClassLevel(level) if isinstance(level, str) and level in ClassLevel.__members__ else None

    return RecommendationContext(preferred_level=preferred_level, target_goal=goal)


def _majority(values: Iterable[T]) -> Optional[T]:
    # Counter.most_common keeps first-seen order among equal counts
    counts = Counter(values)
    return counts.most_common(1)[0][0] if counts else None


def infer_context(
    explicit: RecommendationContext,
    my_bookings: Sequence[ClassBooking],
    classes: Sequence[ClassListItem],
) -> RecommendationContext:
    """Fill in preferred kind/level from the user's booking history.

    Only bookings whose class is among ``classes`` count. An explicit level
    from metadata wins over the inferred one.
    """
    if not my_bookings:
        return explicit

    by_id = {item.id: item for item in classes}
    kinds: List[ClassKind] = []
    levels: List[ClassLevel] = []

    for booking in my_bookings:
        class_id = booking.session.class_id if booking.session else None
        item = by_id.get(class_id or "")
        if item is None:
            continue
        kinds.append(infer_class_kind(item.title, item.description))
        if item.level is not None:
            levels.append(item.level)

    return RecommendationContext(
        preferred_level=explicit.preferred_level or _majority(levels),
        preferred_kind=_majority(kinds),
        target_goal=explicit.target_goal,
    )


def is_fallback(context: RecommendationContext) -> bool:
    return not context.preferred_kind and not context.preferred_level and not context.target_goal


def personal_score(item: ClassListItem, signal: DemandSignal, context: RecommendationContext) -> int:
    score = 6 if item.has_my_booking else 0
    if context.preferred_level and item.level == context.preferred_level:
        score += 4
    if context.preferred_kind and infer_class_kind(item.title, item.description) == context.preferred_kind:
        score += 4
    score += signal.recent_bookings
    if signal.trend == DemandTrend.up:
        score += 2
    return score


def recommend_classes(
    classes: Sequence[ClassListItem],
    signals: Mapping[str, DemandSignal],
    context: RecommendationContext,
    limit: int = RECOMMENDATION_LIMIT,
) -> RecommendationResult:
    """Rank candidate classes for one user and keep the top ``limit``."""
    fallback = is_fallback(context)
    if not classes:
        return RecommendationResult(recommendations=[], fallback_to_popular=fallback, context=context)

    if fallback:
        ranked = sort_classes(classes, signals, SortMode.recommended)
    else:

        def key(item: ClassListItem):
            signal = signals.get(item.id) or default_signal(item.id)
            first = item.first_session
            starts = first.starts_at.timestamp() if first else float("inf")
            return (-personal_score(item, signal, context), starts)

        ranked = sorted(classes, key=key)

    return RecommendationResult(
        recommendations=ranked[:limit],
        fallback_to_popular=fallback,
        context=context,
    )
