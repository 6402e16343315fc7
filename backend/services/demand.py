"""Demand signals: recent vs. prior booking volume per class."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

from application.models.classes import DemandSignal, DemandTrend

DEMAND_WINDOW = timedelta(days=7)
HIGH_DEMAND_THRESHOLD = 8
POPULAR_THRESHOLD = 3

LABEL_HIGH_DEMAND = "Muy demandada"
LABEL_POPULAR = "↑ Popular esta semana"
LABEL_STEADY = "Estable"


def as_utc(value: datetime) -> datetime:
    """Treat naive instants as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _parse_instant(value: Any) -> Optional[datetime]:
    if isinstance(value, str) and value:
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return as_utc(value)
    return None


def classify_trend(recent: int, previous: int) -> DemandTrend:
    if recent > previous:
        return DemandTrend.up
    if recent < previous:
        return DemandTrend.down
    return DemandTrend.steady


def demand_label(recent: int, trend: DemandTrend) -> str:
    if recent >= HIGH_DEMAND_THRESHOLD:
        return LABEL_HIGH_DEMAND
    if trend == DemandTrend.up and recent >= POPULAR_THRESHOLD:
        return LABEL_POPULAR
    return LABEL_STEADY


def compute_demand_signals(
    class_ids: Iterable[str],
    session_to_class: Mapping[str, str],
    bookings: Iterable[Mapping[str, Any]],
    now: datetime,
) -> Dict[str, DemandSignal]:
    """Count bookings per class in the last window and the one before it.

    Every requested class gets a signal, zeros when nothing is known.
    Bookings for unknown sessions or without a timestamp are ignored.
    """
    now = as_utc(now)
    recent: Dict[str, int] = {}
    previous: Dict[str, int] = {}

    for booking in bookings:
        class_id = session_to_class.get(booking.get("session_id") or "")
        booked_at = _parse_instant(booking.get("booked_at"))
        if not class_id or booked_at is None:
            continue

        age = now - booked_at
        if age <= DEMAND_WINDOW:
            recent[class_id] = recent.get(class_id, 0) + 1
        elif age <= DEMAND_WINDOW * 2:
            previous[class_id] = previous.get(class_id, 0) + 1

    signals: Dict[str, DemandSignal] = {}
    for class_id in dict.fromkeys(c for c in class_ids if c):
        r = recent.get(class_id, 0)
        p = previous.get(class_id, 0)
        trend = classify_trend(r, p)
        signals[class_id] = DemandSignal(
            class_id=class_id,
            recent_bookings=r,
            previous_bookings=p,
            trend=trend,
            label=demand_label(r, trend),
        )
    return signals


def default_signal(class_id: str) -> DemandSignal:
    return DemandSignal(class_id=class_id)
