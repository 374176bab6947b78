"""Prometheus metrics for adaptive routing and the learning cortex

Exposes selection, outcome and cortex-learning counters so an external
dashboard can scrape routing behavior.
"""

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    REGISTRY,
)
import time
from functools import wraps


# ============================================================================
# ROUTING METRICS
# ============================================================================

routing_selections_total = Counter(
    "swarm_routing_selections_total",
    "Total number of capability selections",
    ["capability", "mode"],  # mode: explore / exploit
)

routing_outcomes_total = Counter(
    "swarm_routing_outcomes_total",
    "Total number of reported stage outcomes",
    ["capability", "result"],  # result: success / failure
)

routing_no_eligible_total = Counter(
    "swarm_routing_no_eligible_total",
    "Selections that found no eligible capability",
)

plan_stages = Histogram(
    "swarm_plan_stages",
    "Number of stages per execution plan",
    buckets=[1, 2, 3, 4, 5, 8, 13],
)

selection_latency = Histogram(
    "swarm_selection_latency_seconds",
    "Time to select a capability",
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1],
)

# ============================================================================
# CORTEX METRICS
# ============================================================================

cortex_passes_total = Counter(
    "swarm_cortex_passes_total",
    "Total number of cortex re-optimization passes",
    ["result"],  # result: applied / skipped / failed
)

cortex_buffer_size = Gauge(
    "swarm_cortex_buffer_size",
    "Experiences currently buffered by the cortex",
)

cortex_confidence = Gauge(
    "swarm_cortex_confidence",
    "Confidence of the cortex in its learned weights",
)

system_info = Info("swarm_cortex_system", "System information")


# ============================================================================
# HELPERS
# ============================================================================


def track_time(histogram):
    """
    Decorator to automatically track execution time.

    Args:
        histogram: Prometheus Histogram to record time

    Example:
        @track_time(selection_latency)
        def select_next_agent(context):
            ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                histogram.observe(time.time() - start_time)

        return wrapper

    return decorator


class TelemetryRecorder:
    """
    Records routing and cortex events into the Prometheus registry.
    """

    def __init__(self):
        self.start_time = time.time()
        self._update_system_info()

    def _update_system_info(self):
        import platform

        system_info.info(
            {
                "version": "0.1.0",
                "platform": platform.system(),
                "python_version": platform.python_version(),
            }
        )

    def record_selection(self, capability: str, exploration: bool):
        """Record a capability selection."""
        mode = "explore" if exploration else "exploit"
        routing_selections_total.labels(capability=capability, mode=mode).inc()

    def record_no_eligible(self):
        routing_no_eligible_total.inc()

    def record_outcome(self, capability: str, success: bool):
        """Record a reported stage outcome."""
        result = "success" if success else "failure"
        routing_outcomes_total.labels(capability=capability, result=result).inc()

    def record_plan(self, stage_count: int):
        plan_stages.observe(stage_count)

    def record_cortex_pass(self, result: str):
        """
        Record a re-optimization pass.

        Args:
            result: 'applied', 'skipped' or 'failed'
        """
        cortex_passes_total.labels(result=result).inc()

    def set_buffer_size(self, size: int):
        cortex_buffer_size.set(size)

    def set_confidence(self, confidence: float):
        cortex_confidence.set(confidence)

    def get_metrics(self) -> bytes:
        """
        Get metrics in Prometheus format.

        Returns:
            Metrics as bytes in Prometheus exposition format
        """
        return generate_latest(REGISTRY)


# Global telemetry recorder instance
telemetry = TelemetryRecorder()


def get_metrics_text() -> str:
    """Prometheus exposition text for all registered metrics"""
    return telemetry.get_metrics().decode("utf-8")
