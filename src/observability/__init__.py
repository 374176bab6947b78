"""
Observability module for tracing and metrics.

Provides OpenTelemetry tracing and Prometheus metrics for routing and
cortex learning.
"""

from .tracing import (
    TelemetryConfig,
    setup_tracing,
    setup_tracing_from_config,
    create_span,
    get_tracer,
    shutdown_tracing
)
from .metrics import telemetry, get_metrics_text

__all__ = [
    'TelemetryConfig',
    'setup_tracing',
    'setup_tracing_from_config',
    'create_span',
    'get_tracer',
    'shutdown_tracing',
    'telemetry',
    'get_metrics_text'
]
