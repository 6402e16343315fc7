"""
OpenTelemetry observability package for the classes API.

Usage:
    from backend.observability import (
        configure_observability,
        shutdown_observability,
        get_tracer,
        BookingMetrics,
    )

    # Initialize in application startup
    configure_observability(settings)

    # Record a booking action
    BookingMetrics.booking_actions_total().add(1, {"action": "book", "outcome": "ok"})
"""

from backend.observability.config import configure_observability, shutdown_observability
from backend.observability.tracing import get_tracer
from backend.observability.metrics import BookingMetrics

__all__ = [
    # Configuration
    "configure_observability",
    "shutdown_observability",
    # Tracing
    "get_tracer",
    # Metrics
    "BookingMetrics",
]
