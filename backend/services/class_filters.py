"""Filter & sort engine for sessions and class list items.

All functions are pure: the same inputs always give the same output, so
applying a filter set twice is a no-op the second time.

Time-of-day and weekday facets are evaluated in the gym's timezone when one
is given, otherwise in the timezone the instant carries.
"""

import re
import unicodedata
from datetime import datetime, tzinfo
from typing import Dict, Iterable, List, Mapping, Optional, Union

from application.models.classes import (
    AdvancedClassesFilters,
    AvailabilityState,
    CalendarClassItem,
    ClassesFilters,
    ClassKind,
    ClassListItem,
    DemandSignal,
    DemandTrend,
    DurationBand,
    SessionWithAvailability,
    SortMode,
    TimeBand,
)
from backend.services.demand import default_signal

_MOBILITY_RE = re.compile(r"(movilidad|mobility|yoga|pilates|stretch|estira)")
_CARDIO_RE = re.compile(r"(cardio|hiit|spinning|cycle|running|zumba)")

BOOKABLE_STATES = frozenset({AvailabilityState.available, AvailabilityState.few_left})


def infer_class_kind(title: str, description: Optional[str] = None) -> ClassKind:
    """Classify a class from its free text. Mobility wins over cardio."""
    text = f"{title or ''} {description or ''}".lower()
    if _MOBILITY_RE.search(text):
        return ClassKind.mobility
    if _CARDIO_RE.search(text):
        return ClassKind.cardio
    return ClassKind.strength


def _local(instant: datetime, tz: Optional[tzinfo]) -> datetime:
    return instant.astimezone(tz) if tz is not None else instant


def weekday_sunday_first(instant: datetime, tz: Optional[tzinfo] = None) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (_local(instant, tz).weekday() + 1) % 7


def matches_search(title: str, description: Optional[str], search: str) -> bool:
    needle = (search or "").strip().lower()
    if not needle:
        return True
    return needle in (title or "").lower() or needle in (description or "").lower()


def matches_time_band(
    starts_at: datetime, band: Union[TimeBand, str], tz: Optional[tzinfo] = None
) -> bool:
    band = TimeBand(band)
    if band == TimeBand.all:
        return True
    hour = _local(starts_at, tz).hour
    if band == TimeBand.morning:
        return 6 <= hour < 12
    if band == TimeBand.afternoon:
        return 12 <= hour < 18
    return hour >= 18 or hour < 6


def matches_duration(duration_min: int, band: Union[DurationBand, str]) -> bool:
    band = DurationBand(band)
    if band == DurationBand.all:
        return True
    if band == DurationBand.short:
        return duration_min < 40
    if band == DurationBand.medium:
        return 40 <= duration_min <= 60
    return duration_min > 60


def matches_kind(title: str, description: Optional[str], kind: Union[ClassKind, str]) -> bool:
    if kind == "all":
        return True
    return infer_class_kind(title, description) == ClassKind(kind)


def is_bookable(state: AvailabilityState) -> bool:
    return state in BOOKABLE_STATES


def session_matches(
    session: SessionWithAvailability,
    filters: ClassesFilters,
    tz: Optional[tzinfo] = None,
) -> bool:
    gym_class = session.gym_class
    title = gym_class.title if gym_class else ""
    description = gym_class.description if gym_class else None

    if not matches_search(title, description, filters.search):
        return False
    if filters.level != "all":
        level = gym_class.level.value if gym_class and gym_class.level else None
        if level != filters.level:
            return False
    if filters.trainer_user_id != "all":
        if not gym_class or gym_class.trainer_user_id != filters.trainer_user_id:
            return False
    if filters.day != "all" and weekday_sunday_first(session.starts_at, tz) != filters.day:
        return False
    if not matches_time_band(session.starts_at, filters.time_band, tz):
        return False
    if gym_class and not matches_duration(gym_class.duration_min, filters.duration):
        return False
    if not matches_kind(title, description, filters.class_kind):
        return False
    if filters.only_available and not is_bookable(session.availability_state):
        return False
    return True


def filter_sessions(
    sessions: Iterable[SessionWithAvailability],
    filters: ClassesFilters,
    tz: Optional[tzinfo] = None,
) -> List[SessionWithAvailability]:
    """Keep sessions passing every facet, preserving input order."""
    return [s for s in sessions if session_matches(s, filters, tz)]


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


def locale_title_key(title: str) -> str:
    """Accent- and case-insensitive collation key ("Ágil" == "agil")."""
    decomposed = unicodedata.normalize("NFKD", title or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def _first_start_timestamp(item: ClassListItem) -> float:
    first = item.first_session
    return first.starts_at.timestamp() if first else float("inf")


def sort_score(item: ClassListItem, signal: DemandSignal, mode: Union[SortMode, str]) -> float:
    """Higher is better for every mode."""
    mode = SortMode(mode)
    first = item.first_session
    occupancy = first.occupancy_ratio if first else 0.0
    trending = signal.trend == DemandTrend.up

    if mode == SortMode.popular:
        return signal.recent_bookings * 10 + (3 if trending else 0)
    if mode == SortMode.closest:
        return -_first_start_timestamp(item)
    if mode == SortMode.least_occupied:
        return -occupancy
    return (8 if item.has_my_booking else 0) + signal.recent_bookings + (3 if trending else 0) - occupancy * 2


def sort_classes(
    items: Iterable[ClassListItem],
    signals: Mapping[str, DemandSignal],
    mode: Union[SortMode, str],
) -> List[ClassListItem]:
    """Descending score, ties broken by collated title."""

    def key(item: ClassListItem):
        signal = signals.get(item.id) or default_signal(item.id)
        return (-sort_score(item, signal, mode), locale_title_key(item.title), item.title)

    return sorted(items, key=key)


def class_matches(
    item: ClassListItem,
    filters: AdvancedClassesFilters,
    tz: Optional[tzinfo] = None,
) -> bool:
    first = item.first_session
    if first is None:
        return False
    if filters.trainer != "all" and item.trainer_name != filters.trainer:
        return False
    if not matches_time_band(first.starts_at, filters.time_band, tz):
        return False
    if not matches_duration(item.duration_min, filters.duration):
        return False
    if not matches_kind(item.title, item.description, filters.class_kind):
        return False
    if filters.only_available and not any(is_bookable(s.availability_state) for s in item.next_sessions):
        return False
    return True


def filter_and_sort_classes(
    items: Iterable[ClassListItem],
    signals: Mapping[str, DemandSignal],
    filters: AdvancedClassesFilters,
    tz: Optional[tzinfo] = None,
) -> List[ClassListItem]:
    """Apply class-level facets then rank by ``filters.sort_by``.

    Classes with no upcoming session are dropped.
    """
    filtered = [item for item in items if class_matches(item, filters, tz)]
    return sort_classes(filtered, signals, filters.sort_by)


def group_by_weekday(
    items: Iterable[ClassListItem], tz: Optional[tzinfo] = None
) -> Dict[int, List[CalendarClassItem]]:
    """Bucket the non-cancelled upcoming sessions of each class by weekday."""
    buckets: Dict[int, List[CalendarClassItem]] = {day: [] for day in range(7)}

    for item in items:
        for session in item.next_sessions:
            if session.is_cancelled:
                continue
            buckets[weekday_sunday_first(session.starts_at, tz)].append(
                CalendarClassItem(
                    session_id=session.id,
                    class_id=item.id,
                    slug=item.slug,
                    title=item.title,
                    trainer_name=item.trainer_name,
                    starts_at=session.starts_at,
                    total_spots=session.total_spots,
                    remaining_spots=session.remaining_spots,
                    has_my_booking=session.has_my_booking,
                )
            )

    for day in buckets:
        buckets[day].sort(key=lambda entry: entry.starts_at)
    return buckets
