"""Tests for backend.services.availability."""

from datetime import datetime, timedelta, timezone

import pytest

from application.models.classes import (
    AvailabilityState,
    BookingStatus,
    ClassBooking,
    ClassSession,
    GymClass,
)
from backend.services.availability import (
    FEW_LEFT_THRESHOLD,
    availability_from_count,
    compute_availability,
    occupancy_ratio,
    pick_my_booking,
    remaining_spots,
    resolve_availability_state,
)

START = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)


def make_session(capacity=10, override=None, cancelled=False, session_id="s-1"):
    gym_class = GymClass(id="c-1", title="Fuerza", capacity=capacity, duration_min=50)
    return ClassSession(
        id=session_id,
        class_id="c-1",
        starts_at=START,
        ends_at=START + timedelta(minutes=50),
        capacity_override=override,
        is_cancelled=cancelled,
        gym_class=gym_class,
    )


def make_booking(user_id, status="booked", session_id="s-1", booking_id=None):
    return ClassBooking(
        id=booking_id or f"b-{user_id}",
        session_id=session_id,
        user_id=user_id,
        status=status,
    )


def bookings_for(count, status="booked"):
    return [make_booking(f"member-{i}", status=status) for i in range(count)]


class TestScenarios:
    def test_few_left_when_two_spots_remain(self):
        result = compute_availability(make_session(capacity=10), bookings_for(8), user_id="me")

        assert result.remaining_spots == 2
        assert result.availability_state == AvailabilityState.few_left

    def test_own_booking_wins_over_full(self):
        bookings = bookings_for(9) + [make_booking("me")]

        result = compute_availability(make_session(capacity=10), bookings, user_id="me")

        assert result.availability_state == AvailabilityState.booked
        assert result.remaining_spots == 0
        assert result.my_booking is not None
        assert result.my_booking.user_id == "me"

    def test_cancelled_session(self):
        result = compute_availability(make_session(cancelled=True), [], user_id="me")

        assert result.availability_state == AvailabilityState.cancelled
        assert result.booked_count == 0


class TestCounting:
    def test_only_booked_and_attended_hold_spots(self):
        bookings = [
            make_booking("a", "booked"),
            make_booking("b", "attended"),
            make_booking("c", "cancelled"),
            make_booking("d", "no_show"),
            make_booking("e", "confirmed"),
        ]

        result = compute_availability(make_session(capacity=10), bookings)

        assert result.booked_count == 2
        assert result.remaining_spots == 8

    def test_bookings_for_other_sessions_are_ignored(self):
        bookings = [make_booking("a", session_id="s-2"), make_booking("b")]

        result = compute_availability(make_session(), bookings)

        assert result.booked_count == 1

    def test_upper_case_cancelled_status_is_not_active(self):
        result = compute_availability(make_session(), [make_booking("a", status="CANCELLED")])

        assert result.booked_count == 0

    def test_capacity_override_takes_precedence(self):
        result = compute_availability(make_session(capacity=20, override=4), bookings_for(2))

        assert result.remaining_spots == 2
        assert result.availability_state == AvailabilityState.few_left

    def test_override_of_zero_is_respected(self):
        result = compute_availability(make_session(capacity=20, override=0), [])

        assert result.remaining_spots == 0
        assert result.availability_state == AvailabilityState.full

    def test_anonymous_view_has_no_personal_state(self):
        result = compute_availability(make_session(), [make_booking("me")], user_id=None)

        assert result.my_booking is None
        assert result.availability_state == AvailabilityState.available

    def test_cancelled_own_booking_does_not_mark_booked(self):
        result = compute_availability(make_session(), [make_booking("me", status="cancelled")], user_id="me")

        assert result.my_booking is not None
        assert result.my_booking.status == BookingStatus.cancelled
        assert result.availability_state == AvailabilityState.available

    def test_keeps_the_class_relation(self):
        result = compute_availability(make_session(), [])

        assert result.gym_class is not None
        assert result.effective_capacity == 10


class TestAvailabilityBounds:
    @pytest.mark.parametrize("capacity", [0, 1, 3, 10])
    @pytest.mark.parametrize("booked", [0, 1, 3, 10, 15])
    def test_remaining_plus_booked_bounded_by_capacity(self, capacity, booked):
        result = availability_from_count(make_session(capacity=capacity), booked)

        assert result.remaining_spots >= 0
        assert result.remaining_spots == max(0, capacity - booked)
        assert 0.0 <= result.occupancy_ratio <= 1.0

    def test_overbooked_session_is_clamped(self):
        assert remaining_spots(5, 7) == 0
        assert occupancy_ratio(5, 7) == 1.0

    def test_zero_capacity_divides_by_one(self):
        assert occupancy_ratio(0, 0) == 0.0
        assert occupancy_ratio(0, 1) == 1.0

    def test_negative_count_is_treated_as_zero(self):
        result = availability_from_count(make_session(capacity=10), -2)

        assert result.booked_count == 0
        assert result.remaining_spots == 10


class TestStatePrecedence:
    def test_cancelled_beats_everything(self):
        state = resolve_availability_state(
            is_cancelled=True, remaining=0, my_booking=make_booking("me")
        )
        assert state == AvailabilityState.cancelled

    def test_booked_beats_full(self):
        state = resolve_availability_state(
            is_cancelled=False, remaining=0, my_booking=make_booking("me")
        )
        assert state == AvailabilityState.booked

    @pytest.mark.parametrize(
        "remaining, expected",
        [
            (0, AvailabilityState.full),
            (1, AvailabilityState.few_left),
            (FEW_LEFT_THRESHOLD, AvailabilityState.few_left),
            (FEW_LEFT_THRESHOLD + 1, AvailabilityState.available),
        ],
    )
    def test_threshold_bands(self, remaining, expected):
        state = resolve_availability_state(is_cancelled=False, remaining=remaining, my_booking=None)
        assert state == expected


class TestPickMyBooking:
    def test_prefers_non_cancelled_row(self):
        bookings = [
            make_booking("me", status="cancelled", booking_id="old"),
            make_booking("me", status="booked", booking_id="new"),
        ]

        assert pick_my_booking(bookings, "me").id == "new"

    def test_falls_back_to_cancelled_row(self):
        bookings = [make_booking("me", status="cancelled", booking_id="old")]

        assert pick_my_booking(bookings, "me").id == "old"

    def test_none_when_user_has_no_rows(self):
        assert pick_my_booking([make_booking("other")], "me") is None
