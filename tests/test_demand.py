"""Tests for backend.services.demand."""

from datetime import datetime, timedelta, timezone

import pytest

from application.models.classes import DemandTrend
from backend.services.demand import (
    LABEL_HIGH_DEMAND,
    LABEL_POPULAR,
    LABEL_STEADY,
    classify_trend,
    compute_demand_signals,
    demand_label,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
SESSION_TO_CLASS = {"s-1": "c-1", "s-2": "c-1", "s-3": "c-2"}


def booked(session_id, days_ago):
    return {"session_id": session_id, "booked_at": (NOW - timedelta(days=days_ago)).isoformat()}


class TestComputeDemandSignals:
    def test_splits_recent_and_previous_windows(self):
        bookings = [booked("s-1", 1), booked("s-2", 6), booked("s-1", 8), booked("s-3", 13), booked("s-3", 20)]

        signals = compute_demand_signals(["c-1", "c-2"], SESSION_TO_CLASS, bookings, NOW)

        assert signals["c-1"].recent_bookings == 2
        assert signals["c-1"].previous_bookings == 1
        assert signals["c-1"].trend == DemandTrend.up
        assert signals["c-2"].recent_bookings == 0
        assert signals["c-2"].previous_bookings == 1
        assert signals["c-2"].trend == DemandTrend.down

    def test_every_requested_class_gets_a_signal(self):
        signals = compute_demand_signals(["c-9", "", "c-9"], {}, [], NOW)

        assert list(signals) == ["c-9"]
        assert signals["c-9"].label == LABEL_STEADY
        assert signals["c-9"].trend == DemandTrend.steady

    def test_ignores_unknown_sessions_and_missing_timestamps(self):
        bookings = [booked("s-404", 1), {"session_id": "s-1", "booked_at": None}, {"session_id": "s-1"}]

        signals = compute_demand_signals(["c-1"], SESSION_TO_CLASS, bookings, NOW)

        assert signals["c-1"].recent_bookings == 0

    def test_accepts_z_suffix_and_naive_now(self):
        bookings = [{"session_id": "s-1", "booked_at": "2026-03-01T12:00:00Z"}]

        signals = compute_demand_signals(["c-1"], SESSION_TO_CLASS, bookings, NOW.replace(tzinfo=None))

        assert signals["c-1"].recent_bookings == 1


class TestLabels:
    @pytest.mark.parametrize(
        "recent, trend, expected",
        [
            (8, DemandTrend.down, LABEL_HIGH_DEMAND),
            (3, DemandTrend.up, LABEL_POPULAR),
            (2, DemandTrend.up, LABEL_STEADY),
            (5, DemandTrend.steady, LABEL_STEADY),
        ],
    )
    def test_label_rules(self, recent, trend, expected):
        assert demand_label(recent, trend) == expected

    def test_classify_trend(self):
        assert classify_trend(2, 1) == DemandTrend.up
        assert classify_trend(1, 2) == DemandTrend.down
        assert classify_trend(1, 1) == DemandTrend.steady
