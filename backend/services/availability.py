"""Session availability calculator.

Pure functions turning a session plus its bookings into a
SessionWithAvailability. The absolute remaining-spots threshold below is the
single few-left rule used by every view.
"""

from typing import Iterable, Optional

from application.models.classes import (
    AvailabilityState,
    ClassBooking,
    ClassSession,
    SessionWithAvailability,
)

FEW_LEFT_THRESHOLD = 3


def remaining_spots(effective_capacity: int, booked_count: int) -> int:
    return max(0, effective_capacity - booked_count)


def occupancy_ratio(effective_capacity: int, booked_count: int) -> float:
    """Booked share of capacity, clamped to [0, 1].

    A capacity of zero divides by one instead.
    """
    ratio = booked_count / max(1, effective_capacity)
    return min(1.0, max(0.0, ratio))


def resolve_availability_state(
    *,
    is_cancelled: bool,
    remaining: int,
    my_booking: Optional[ClassBooking],
) -> AvailabilityState:
    """First match wins: cancelled, booked, full, few_left, available."""
    if is_cancelled:
        return AvailabilityState.cancelled
    if my_booking is not None and not my_booking.is_cancelled:
        return AvailabilityState.booked
    if remaining <= 0:
        return AvailabilityState.full
    if remaining <= FEW_LEFT_THRESHOLD:
        return AvailabilityState.few_left
    return AvailabilityState.available


def availability_from_count(
    session: ClassSession,
    booked_count: int,
    my_booking: Optional[ClassBooking] = None,
) -> SessionWithAvailability:
    """Annotate a session whose active booking count is already known."""
    capacity = session.effective_capacity
    booked_count = max(0, booked_count)
    remaining = remaining_spots(capacity, booked_count)

    return SessionWithAvailability(
        **session.model_dump(exclude={"gym_class"}),
        gym_class=session.gym_class,
        booked_count=booked_count,
        remaining_spots=remaining,
        occupancy_ratio=occupancy_ratio(capacity, booked_count),
        my_booking=my_booking,
        availability_state=resolve_availability_state(
            is_cancelled=session.is_cancelled,
            remaining=remaining,
            my_booking=my_booking,
        ),
    )


def compute_availability(
    session: ClassSession,
    bookings: Iterable[ClassBooking],
    user_id: Optional[str] = None,
) -> SessionWithAvailability:
    """Annotate a session from its booking rows.

    Only bookings for this session are considered. ``user_id`` None means an
    anonymous view with no personal booking state.
    """
    session_bookings = [b for b in bookings if b.session_id == session.id]
    booked_count = sum(1 for b in session_bookings if b.is_active)

    my_booking = pick_my_booking(session_bookings, user_id) if user_id else None
    return availability_from_count(session, booked_count, my_booking)


def pick_my_booking(bookings: Iterable[ClassBooking], user_id: str) -> Optional[ClassBooking]:
    """The user's booking row, preferring one that is not cancelled."""
    mine = [b for b in bookings if b.user_id == user_id]
    return next((b for b in mine if not b.is_cancelled), mine[0] if mine else None)
