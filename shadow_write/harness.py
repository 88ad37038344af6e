"""
Shadow Write Harness.

============================================================
PURPOSE
============================================================
Dual-write orchestration with fault injection:

1. Canonical write to the primary store (must succeed)
2. Shadow write to the secondary store (may fail under chaos)
3. Every shadow failure is recorded and metered
4. Reads always come from the primary

============================================================
ERROR UNIVERSES
============================================================
PRIMARY errors propagate unchanged and abort the call.
SHADOW errors (real or injected) are captured, classified,
recorded, metered and suppressed. The caller's success signal
is governed by the primary write alone.

============================================================
USAGE
============================================================
    harness = ShadowWriteHarness(
        entity_type="Listing",
        on_shadow_failure=SqlFailureRecorder(ShadowFailureRepository(session)),
        on_metric=PrometheusMetricSink(),
    )

    result = await harness.create(
        primary_store,
        shadow_store,
        listing,
        ShadowWriteContext(request_id=request_id),
    )

============================================================
"""

import inspect
import logging
import threading
import time
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, TypeVar

from fault_injection import FaultInjector, FaultScope, get_fault_injector

from .models import (
    MetricEventType,
    ShadowErrorKind,
    ShadowFailureRecord,
    ShadowOperation,
    ShadowWriteContext,
    ShadowWriteMetricEvent,
    ShadowWriteMetrics,
    ShadowWriteResult,
    classify_shadow_error,
)
from .sinks import MetricSink, ShadowFailureRecorder
from .stores import ShadowStore, entity_id_of


logger = logging.getLogger(__name__)


T = TypeVar("T")


class ShadowWriteHarness(Generic[T]):
    """
    Orchestrates dual writes against a primary and a shadow store.

    Holds no state across operations apart from its own metrics,
    which are updated under a lock so the conservation invariants
    hold even when the harness is shared between threads.
    """

    def __init__(
        self,
        entity_type: str,
        fault_injector: Optional[FaultInjector] = None,
        on_shadow_failure: Optional[ShadowFailureRecorder] = None,
        on_metric: Optional[MetricSink] = None,
    ):
        """
        Initialize the harness.

        Args:
            entity_type: Entity name used in operation labels and metrics
            fault_injector: Injector for the shadow path (default: process-wide)
            on_shadow_failure: Receives one record per shadow failure
            on_metric: Receives success/failure and duration events
        """
        self._entity_type = entity_type
        self._fault_injector = fault_injector if fault_injector is not None else get_fault_injector()
        self._on_shadow_failure = on_shadow_failure
        self._on_metric = on_metric

        self._lock = threading.Lock()
        self._reset_counters()

    @property
    def entity_type(self) -> str:
        return self._entity_type

    @property
    def fault_injector(self) -> FaultInjector:
        return self._fault_injector

    # =========================================================
    # OPERATIONS
    # =========================================================

    async def create(
        self,
        primary: ShadowStore[T],
        shadow: ShadowStore[T],
        data: T,
        context: Optional[ShadowWriteContext] = None,
    ) -> ShadowWriteResult[T]:
        """
        Create with dual-write.

        The shadow store receives the canonical entity returned by
        the primary, so both carry the same id.
        """
        canonical = await primary.create(data)

        return await self._shadow_write(
            operation=ShadowOperation.CREATE,
            entity_id=entity_id_of(canonical),
            canonical=canonical,
            shadow_call=lambda: shadow.create(canonical),
            context=context,
        )

    async def update(
        self,
        primary: ShadowStore[T],
        shadow: ShadowStore[T],
        entity_id: str,
        data: Mapping[str, Any],
        context: Optional[ShadowWriteContext] = None,
    ) -> ShadowWriteResult[T]:
        """Update with dual-write."""
        canonical = await primary.update(entity_id, data)

        return await self._shadow_write(
            operation=ShadowOperation.UPDATE,
            entity_id=entity_id,
            canonical=canonical,
            shadow_call=lambda: shadow.update(entity_id, data),
            context=context,
        )

    async def delete(
        self,
        primary: ShadowStore[T],
        shadow: ShadowStore[T],
        entity_id: str,
        context: Optional[ShadowWriteContext] = None,
    ) -> ShadowWriteResult[None]:
        """Delete with dual-write. canonical is always None."""
        await primary.delete(entity_id)

        return await self._shadow_write(
            operation=ShadowOperation.DELETE,
            entity_id=entity_id,
            canonical=None,
            shadow_call=lambda: shadow.delete(entity_id),
            context=context,
        )

    async def read(self, primary: ShadowStore[T], entity_id: str) -> Optional[T]:
        """Read from the primary store. The shadow store serves no reads."""
        return await primary.find_by_id(entity_id)

    # =========================================================
    # METRICS
    # =========================================================

    def get_metrics(self) -> ShadowWriteMetrics:
        """Get an immutable snapshot of the metrics."""
        with self._lock:
            return ShadowWriteMetrics(
                total_writes=self._total_writes,
                shadow_successes=self._shadow_successes,
                shadow_failures=self._shadow_failures,
                injected_faults=self._injected_faults,
                real_errors=self._real_errors,
                avg_shadow_duration_ms=self._avg_shadow_duration_ms,
            )

    def reset_metrics(self) -> None:
        """Zero all counters and the duration accumulator."""
        with self._lock:
            self._reset_counters()

    def _reset_counters(self) -> None:
        self._total_writes = 0
        self._shadow_successes = 0
        self._shadow_failures = 0
        self._injected_faults = 0
        self._real_errors = 0
        self._total_shadow_duration_ms = 0.0
        self._avg_shadow_duration_ms = 0.0

    def _update_metrics(
        self,
        error_kind: Optional[ShadowErrorKind],
        duration_ms: float,
    ) -> None:
        with self._lock:
            self._total_writes += 1
            if error_kind is None:
                self._shadow_successes += 1
            else:
                self._shadow_failures += 1
                if error_kind is ShadowErrorKind.INJECTED:
                    self._injected_faults += 1
                else:
                    self._real_errors += 1
            # Exact cumulative mean, not a moving average
            self._total_shadow_duration_ms += duration_ms
            self._avg_shadow_duration_ms = self._total_shadow_duration_ms / self._total_writes

    # =========================================================
    # SHADOW PATH
    # =========================================================

    async def _shadow_write(
        self,
        operation: ShadowOperation,
        entity_id: str,
        canonical: Any,
        shadow_call: Callable[[], Awaitable[Any]],
        context: Optional[ShadowWriteContext],
    ) -> ShadowWriteResult:
        label = f"{self._entity_type}:{operation.value}"
        shadow_error: Optional[Exception] = None
        error_kind: Optional[ShadowErrorKind] = None
        fault_id: Optional[str] = None

        start = time.perf_counter()
        try:
            await self._fault_injector.wrap_async(
                FaultScope.SHADOW_WRITE_ONLY, label, shadow_call
            )
        except Exception as e:
            shadow_error = e
            error_kind = classify_shadow_error(e)
            if error_kind is ShadowErrorKind.INJECTED:
                fault_id = e.fault_id
        duration_ms = (time.perf_counter() - start) * 1000.0

        self._update_metrics(error_kind, duration_ms)

        if shadow_error is None:
            logger.debug(f"SHADOW: {label} {entity_id} ok ({duration_ms:.2f}ms)")
        else:
            if error_kind is ShadowErrorKind.REAL:
                logger.warning(
                    f"SHADOW: {label} {entity_id} failed with a real error: {shadow_error!r}"
                )
            else:
                logger.debug(f"SHADOW: {label} {entity_id} failed by injected fault {fault_id}")

            await self._record_failure(
                ShadowFailureRecord(
                    entity_type=self._entity_type,
                    entity_id=entity_id,
                    operation=operation,
                    error=shadow_error,
                    error_kind=error_kind,
                    fault_id=fault_id,
                    request_id=context.request_id if context else None,
                    primary_success=True,
                )
            )

        self._emit_metrics(operation, error_kind, duration_ms)

        return ShadowWriteResult(
            canonical=canonical,
            shadow_success=shadow_error is None,
            shadow_error=shadow_error,
            fault_id=fault_id,
            shadow_duration_ms=duration_ms,
            error_kind=error_kind,
        )

    async def _record_failure(self, failure: ShadowFailureRecord) -> None:
        if self._on_shadow_failure is None:
            return
        try:
            outcome = self._on_shadow_failure.record(failure)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            # Never let failure recording break the flow
            logger.exception(
                f"SHADOW: Failed to record shadow failure for "
                f"{failure.entity_type}:{failure.operation.value} {failure.entity_id}"
            )

    def _emit_metrics(
        self,
        operation: ShadowOperation,
        error_kind: Optional[ShadowErrorKind],
        duration_ms: float,
    ) -> None:
        if self._on_metric is None:
            return

        labels = {"entity_type": self._entity_type, "operation": operation.value}
        if error_kind is None:
            outcome = ShadowWriteMetricEvent(
                type=MetricEventType.SHADOW_WRITE_SUCCESS,
                entity_type=self._entity_type,
                operation=operation,
                value=1,
                labels=labels,
            )
        else:
            outcome = ShadowWriteMetricEvent(
                type=MetricEventType.SHADOW_WRITE_FAILURE,
                entity_type=self._entity_type,
                operation=operation,
                value=1,
                labels={**labels, "error_kind": error_kind.value},
            )

        self._on_metric.emit(outcome)
        self._on_metric.emit(
            ShadowWriteMetricEvent(
                type=MetricEventType.SHADOW_WRITE_DURATION,
                entity_type=self._entity_type,
                operation=operation,
                value=duration_ms,
                labels=labels,
            )
        )


def create_shadow_write_harness(
    entity_type: str,
    fault_injector: Optional[FaultInjector] = None,
    on_shadow_failure: Optional[ShadowFailureRecorder] = None,
    on_metric: Optional[MetricSink] = None,
) -> ShadowWriteHarness:
    """Factory function for creating a shadow write harness."""
    return ShadowWriteHarness(
        entity_type=entity_type,
        fault_injector=fault_injector,
        on_shadow_failure=on_shadow_failure,
        on_metric=on_metric,
    )
