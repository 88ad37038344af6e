"""
Shadow Write Harness Module.

============================================================
PURPOSE
============================================================
Rehearse a live migration by dual-writing every mutation to
a canonical (primary) store and a shadow store:

- The primary write is authoritative. Its errors propagate.
- The shadow write goes through the fault injector. Its
  errors are captured, classified, recorded and metered,
  never propagated.
- Reads come from the primary only.

============================================================
USAGE
============================================================

    from fault_injection import FaultInjector
    from shadow_write import (
        ShadowWriteHarness,
        InMemoryStore,
        InMemoryFailureRecorder,
        InMemoryMetricSink,
    )

    harness = ShadowWriteHarness(
        entity_type="Listing",
        fault_injector=FaultInjector.create(enabled=True, fail_rate=0.1, seed="rehearsal"),
        on_shadow_failure=InMemoryFailureRecorder(),
        on_metric=InMemoryMetricSink(),
    )

    result = await harness.create(primary, shadow, {"id": "l-1", "title": "Loft"})
    assert result.canonical["id"] == "l-1"

    metrics = harness.get_metrics()
    assert metrics.is_consistent()

============================================================
"""

from .models import (
    ShadowOperation,
    ShadowErrorKind,
    MetricEventType,
    classify_shadow_error,
    ShadowWriteContext,
    ShadowWriteResult,
    ShadowFailureRecord,
    ShadowWriteMetricEvent,
    ShadowWriteMetrics,
)

from .stores import (
    ShadowStore,
    InMemoryStore,
    EntityNotFoundError,
    entity_id_of,
)

from .sinks import (
    ShadowFailureRecorder,
    LoggingFailureRecorder,
    InMemoryFailureRecorder,
    MetricSink,
    NoOpMetricSink,
    LoggingMetricSink,
    InMemoryMetricSink,
)

from .harness import (
    ShadowWriteHarness,
    create_shadow_write_harness,
)

from .prometheus import PrometheusMetricSink


__all__ = [
    # Models
    "ShadowOperation",
    "ShadowErrorKind",
    "MetricEventType",
    "classify_shadow_error",
    "ShadowWriteContext",
    "ShadowWriteResult",
    "ShadowFailureRecord",
    "ShadowWriteMetricEvent",
    "ShadowWriteMetrics",

    # Stores
    "ShadowStore",
    "InMemoryStore",
    "EntityNotFoundError",
    "entity_id_of",

    # Callbacks
    "ShadowFailureRecorder",
    "LoggingFailureRecorder",
    "InMemoryFailureRecorder",
    "MetricSink",
    "NoOpMetricSink",
    "LoggingMetricSink",
    "InMemoryMetricSink",
    "PrometheusMetricSink",

    # Harness
    "ShadowWriteHarness",
    "create_shadow_write_harness",
]
