"""
Tests for observability: OpenTelemetry tracing and Prometheus metrics.
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest
from observability.metrics import get_metrics_text, telemetry
from observability.tracing import (
    TelemetryConfig,
    create_span,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
)


class TestTracingSetup:
    """Test tracing setup and configuration"""

    def test_setup_tracing(self):
        """Test setting up tracing with service name"""
        tracer = setup_tracing("test-service", console_export=False)

        assert tracer is not None
        assert get_tracer() is tracer

        shutdown_tracing()

    def test_get_tracer_without_setup(self):
        """Unconfigured tracing falls back to the global tracer"""
        shutdown_tracing()
        assert get_tracer() is not None

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("OTEL_SERVICE_NAME", "router-under-test")
        monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317")
        monkeypatch.setenv("SWARM_TRACE_CONSOLE", "true")

        config = TelemetryConfig.from_env()

        assert config.service_name == "router-under-test"
        assert config.otlp_endpoint == "http://collector:4317"
        assert config.console_export is True

    def test_config_defaults(self, monkeypatch):
        monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
        monkeypatch.delenv("SWARM_TRACE_CONSOLE", raising=False)

        config = TelemetryConfig.from_env()

        assert config.otlp_endpoint is None
        assert config.console_export is False


class TestSpans:
    """Test span creation"""

    def test_create_span(self):
        with create_span("plan_execution", {"max_agents": 5, "skipped": None}) as span:
            assert span is not None

    def test_span_propagates_exceptions(self):
        with pytest.raises(ValueError):
            with create_span("failing"):
                raise ValueError("boom")


class TestMetrics:
    """Test Prometheus metrics exposition"""

    def test_selection_counter_exposed(self):
        telemetry.record_selection("ANALYSIS", exploration=False)

        text = get_metrics_text()

        assert "swarm_routing_selections_total" in text
        assert 'capability="ANALYSIS"' in text

    def test_cortex_gauges_exposed(self):
        telemetry.set_confidence(0.7)
        telemetry.set_buffer_size(12)
        telemetry.record_cortex_pass("applied")

        text = get_metrics_text()

        assert "swarm_cortex_confidence 0.7" in text
        assert "swarm_cortex_buffer_size 12.0" in text
        assert 'swarm_cortex_passes_total{result="applied"}' in text
