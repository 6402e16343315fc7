"""
Metrics definitions for the classes API.

Booking actions are the only calls that change state, so they are the ones
counted and timed. Reads are covered by the FastAPI and HTTPX spans.
"""

from typing import Optional

from opentelemetry import metrics

# Meter name
_METER_NAME = "classes-api"


def _get_meter() -> metrics.Meter:
    """Get the metrics meter instance."""
    return metrics.get_meter(_METER_NAME)


class BookingMetrics:
    """
    Centralized booking metrics.

    All metrics are lazily initialized on first access.
    """

    _booking_actions_total: Optional[metrics.Counter] = None
    _booking_action_seconds: Optional[metrics.Histogram] = None

    @classmethod
    def booking_actions_total(cls) -> metrics.Counter:
        """Counter for booking actions by action and outcome."""
        if cls._booking_actions_total is None:
            cls._booking_actions_total = _get_meter().create_counter(
                name="booking_actions_total",
                description="Booking actions by action (book, cancel, attendance) and outcome",
                unit="1",
            )
        return cls._booking_actions_total

    @classmethod
    def booking_action_seconds(cls) -> metrics.Histogram:
        """Histogram for booking procedure round-trip duration."""
        if cls._booking_action_seconds is None:
            cls._booking_action_seconds = _get_meter().create_histogram(
                name="booking_action_seconds",
                description="Duration of booking procedure calls",
                unit="s",
            )
        return cls._booking_action_seconds

    @classmethod
    def reset(cls) -> None:
        """Drop cached instruments so the next access binds to the current provider."""
        cls._booking_actions_total = None
        cls._booking_action_seconds = None
