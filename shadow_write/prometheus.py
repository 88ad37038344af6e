"""
Shadow Write - Prometheus Metric Sink.

Exports harness metric events as Prometheus series:

    shadow_write_success_total{entity_type, operation}
    shadow_write_failure_total{entity_type, operation, error_kind}
    shadow_write_duration_seconds{entity_type, operation}   (histogram)
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, REGISTRY

from .models import MetricEventType, ShadowWriteMetricEvent
from .sinks import MetricSink


logger = logging.getLogger(__name__)


DURATION_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)


class PrometheusMetricSink(MetricSink):
    """Metric sink backed by prometheus_client collectors."""

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        namespace: str = "",
    ):
        self.registry = registry if registry is not None else REGISTRY

        self.successes = Counter(
            "shadow_write_success",
            "Shadow writes that reached the shadow store",
            ["entity_type", "operation"],
            namespace=namespace,
            registry=self.registry,
        )
        self.failures = Counter(
            "shadow_write_failure",
            "Shadow writes that failed, by real or injected cause",
            ["entity_type", "operation", "error_kind"],
            namespace=namespace,
            registry=self.registry,
        )
        self.duration = Histogram(
            "shadow_write_duration_seconds",
            "Duration of the shadow write attempt",
            ["entity_type", "operation"],
            namespace=namespace,
            buckets=DURATION_BUCKETS,
            registry=self.registry,
        )

    def emit(self, event: ShadowWriteMetricEvent) -> None:
        entity_type = event.entity_type
        operation = event.operation.value

        if event.type is MetricEventType.SHADOW_WRITE_SUCCESS:
            self.successes.labels(entity_type, operation).inc(event.value)
        elif event.type is MetricEventType.SHADOW_WRITE_FAILURE:
            error_kind = event.labels.get("error_kind", "unknown")
            self.failures.labels(entity_type, operation, error_kind).inc(event.value)
        elif event.type is MetricEventType.SHADOW_WRITE_DURATION:
            # Events carry milliseconds
            self.duration.labels(entity_type, operation).observe(event.value / 1000.0)
        else:
            logger.warning(f"SHADOW: Unknown metric event type {event.type}")
