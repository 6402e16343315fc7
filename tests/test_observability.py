"""
Unit tests for backend/observability.

Tests OTel SDK configuration, shutdown, and wiring into the app factory.
Global providers are replaced with mocks so nothing leaks into other tests.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

import backend.main
from backend.observability import BookingMetrics, config
from backend.observability.config import configure_observability, shutdown_observability
from backend.settings import Settings


def _settings(**overrides) -> Settings:
    values = {"environment": "test", "_env_file": None}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def reset_otel_state():
    """Reset initialization state between tests."""
    original_initialized = config._initialized
    config._initialized = False

    yield

    config._initialized = original_initialized


@pytest.fixture
def otel_globals(monkeypatch, reset_otel_state):
    """Capture providers instead of installing them globally."""
    trace_api = MagicMock()
    metrics_api = MagicMock()
    instrumentation = MagicMock()
    monkeypatch.setattr(config, "trace", trace_api)
    monkeypatch.setattr(config, "metrics", metrics_api)
    monkeypatch.setattr(config, "_configure_auto_instrumentation", instrumentation)

    yield trace_api, metrics_api, instrumentation

    for call in trace_api.set_tracer_provider.call_args_list:
        call.args[0].shutdown()
    for call in metrics_api.set_meter_provider.call_args_list:
        call.args[0].shutdown()


class TestConfigureObservability:
    """Tests for configure_observability() function."""

    def test_disabled_via_settings(self, otel_globals):
        """OTel should not initialize when otel_enabled=False."""
        trace_api, _, instrumentation = otel_globals

        configure_observability(_settings(otel_enabled=False))

        assert config._initialized is False
        trace_api.set_tracer_provider.assert_not_called()
        instrumentation.assert_not_called()

    def test_enabled_initializes(self, otel_globals):
        trace_api, metrics_api, instrumentation = otel_globals

        configure_observability(
            _settings(otel_enabled=True, otel_service_name="test-service", otel_log_correlation=False)
        )

        assert config._initialized is True
        [tracer_provider] = trace_api.set_tracer_provider.call_args[0]
        assert isinstance(tracer_provider, TracerProvider)
        assert tracer_provider.resource.attributes["service.name"] == "test-service"
        [meter_provider] = metrics_api.set_meter_provider.call_args[0]
        assert isinstance(meter_provider, MeterProvider)
        instrumentation.assert_called_once_with(False)

    def test_idempotent_initialization(self, otel_globals):
        """Calling configure_observability twice should be safe."""
        trace_api, _, _ = otel_globals
        settings = _settings(otel_enabled=True)

        configure_observability(settings)
        configure_observability(settings)

        assert config._initialized is True
        assert trace_api.set_tracer_provider.call_count == 1

    def test_otlp_endpoint_gets_signal_paths(self, otel_globals, monkeypatch):
        span_exporter = MagicMock(return_value=InMemorySpanExporter())
        meter_provider = MagicMock()
        monkeypatch.setattr(config, "OTLPSpanExporter", span_exporter)
        monkeypatch.setattr(config, "_configure_meter_provider", meter_provider)

        configure_observability(
            _settings(otel_enabled=True, otel_exporter_otlp_endpoint="http://collector:4318/")
        )

        span_exporter.assert_called_once_with(endpoint="http://collector:4318/v1/traces")
        assert meter_provider.call_args[0][1] == "http://collector:4318/"

    def test_failure_is_logged_not_raised(self, otel_globals, caplog):
        trace_api, _, _ = otel_globals
        trace_api.set_tracer_provider.side_effect = RuntimeError("provider already set")

        configure_observability(_settings(otel_enabled=True))

        assert config._initialized is False
        assert "Failed to initialize OpenTelemetry" in caplog.text
        trace_api.set_tracer_provider.side_effect = None
        trace_api.set_tracer_provider.reset_mock()


class TestShutdownObservability:
    def test_noop_when_not_initialized(self, otel_globals):
        trace_api, _, _ = otel_globals

        shutdown_observability()

        trace_api.get_tracer_provider.assert_not_called()

    def test_shuts_down_providers(self, otel_globals):
        trace_api, metrics_api, _ = otel_globals
        configure_observability(_settings(otel_enabled=True))

        shutdown_observability()

        assert config._initialized is False
        trace_api.get_tracer_provider.return_value.shutdown.assert_called_once()
        metrics_api.get_meter_provider.return_value.shutdown.assert_called_once()


class TestBookingMetrics:
    def test_instruments_are_cached(self):
        BookingMetrics.reset()

        counter = BookingMetrics.booking_actions_total()

        assert BookingMetrics.booking_actions_total() is counter
        assert hasattr(counter, "add")
        assert hasattr(BookingMetrics.booking_action_seconds(), "record")

    def test_reset_drops_cached_instruments(self):
        BookingMetrics.booking_actions_total()

        BookingMetrics.reset()

        assert BookingMetrics._booking_actions_total is None
        assert BookingMetrics._booking_action_seconds is None


class TestAppFactory:
    def test_configures_and_shuts_down(self, test_settings, monkeypatch):
        configure = MagicMock()
        shutdown = MagicMock()
        monkeypatch.setattr(backend.main, "configure_observability", configure)
        monkeypatch.setattr(backend.main, "shutdown_observability", shutdown)

        app = backend.main.create_app(settings=test_settings)
        configure.assert_called_once_with(test_settings)

        with TestClient(app):
            shutdown.assert_not_called()
        shutdown.assert_called_once()
