"""
OpenTelemetry SDK configuration and initialization.

Configures TracerProvider, MeterProvider, and auto-instrumentation
for FastAPI, HTTPX (the Supabase client's transport), and logging.
"""

import logging
from typing import TYPE_CHECKING, Optional

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from backend.observability.metrics import BookingMetrics

if TYPE_CHECKING:
    from backend.settings import Settings

logger = logging.getLogger(__name__)

# Track initialization state
_initialized = False


def configure_observability(settings: "Settings") -> None:
    """
    Configure OpenTelemetry SDK with tracing, metrics, and auto-instrumentation.

    Without an OTLP endpoint spans and metrics go to the console.

    Args:
        settings: Application settings with OTel configuration.
    """
    global _initialized

    if _initialized:
        logger.debug("OpenTelemetry already initialized, skipping")
        return

    if not settings.otel_enabled:
        logger.info("OpenTelemetry disabled via settings")
        return

    try:
        resource_attributes = {
            SERVICE_NAME: settings.otel_service_name,
            SERVICE_VERSION: "1.0.0",
            "deployment.environment": settings.environment,
        }
        if settings.render_git_commit:
            resource_attributes["service.instance.id"] = settings.render_git_commit
        resource = Resource.create(resource_attributes)

        tracer_provider = TracerProvider(
            resource=resource,
            sampler=TraceIdRatioBased(settings.otel_traces_sample_rate),
        )
        _configure_span_exporter(tracer_provider, settings.otel_exporter_otlp_endpoint)
        trace.set_tracer_provider(tracer_provider)

        _configure_meter_provider(
            resource,
            settings.otel_exporter_otlp_endpoint,
            settings.otel_metrics_export_interval_ms,
        )

        _configure_auto_instrumentation(settings.otel_log_correlation)

        _initialized = True
        logger.info(
            "OpenTelemetry initialized: service=%s, sample_rate=%.2f, endpoint=%s",
            settings.otel_service_name,
            settings.otel_traces_sample_rate,
            settings.otel_exporter_otlp_endpoint or "console",
        )

    except Exception as e:
        logger.error("Failed to initialize OpenTelemetry: %s", e)


def _configure_span_exporter(tracer_provider: TracerProvider, endpoint: Optional[str]) -> None:
    if endpoint:
        span_exporter = OTLPSpanExporter(endpoint=endpoint.rstrip("/") + "/v1/traces")
        tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
    else:
        tracer_provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))


def _configure_meter_provider(
    resource: Resource,
    endpoint: Optional[str],
    metrics_interval_ms: int,
) -> None:
    """Configure MeterProvider with a periodic reader."""
    if endpoint:
        metric_exporter = OTLPMetricExporter(endpoint=endpoint.rstrip("/") + "/v1/metrics")
    else:
        metric_exporter = ConsoleMetricExporter()

    reader = PeriodicExportingMetricReader(
        metric_exporter,
        export_interval_millis=metrics_interval_ms,
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))
    # Instruments created before this point are bound to the no-op provider
    BookingMetrics.reset()


def _configure_auto_instrumentation(log_correlation: bool) -> None:
    """Configure auto-instrumentation for FastAPI, HTTPX, and logging."""
    FastAPIInstrumentor().instrument()
    logger.debug("FastAPI auto-instrumentation enabled")

    HTTPXClientInstrumentor().instrument()
    logger.debug("HTTPX auto-instrumentation enabled")

    if log_correlation:
        LoggingInstrumentor().instrument(set_logging_format=True)
        logger.debug("Logging auto-instrumentation enabled")


def shutdown_observability() -> None:
    """Shutdown OpenTelemetry providers gracefully."""
    global _initialized

    if not _initialized:
        return

    try:
        tracer_provider = trace.get_tracer_provider()
        if hasattr(tracer_provider, "shutdown"):
            tracer_provider.shutdown()

        meter_provider = metrics.get_meter_provider()
        if hasattr(meter_provider, "shutdown"):
            meter_provider.shutdown()

        _initialized = False
        logger.info("OpenTelemetry shutdown complete")
    except Exception as e:
        logger.error("Error during OpenTelemetry shutdown: %s", e)
