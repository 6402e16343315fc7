"""Tracer lookup for the classes API."""

from typing import Optional

from opentelemetry import trace

# Default tracer name
_DEFAULT_TRACER_NAME = "classes-api"


def get_tracer(name: Optional[str] = None) -> trace.Tracer:
    """
    Get an OpenTelemetry tracer instance.

    Args:
        name: Optional tracer name. Defaults to "classes-api".

    Returns:
        Tracer instance for creating spans.
    """
    return trace.get_tracer(name or _DEFAULT_TRACER_NAME)
