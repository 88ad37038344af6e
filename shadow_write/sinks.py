"""
Shadow Write - Failure Recorders and Metric Sinks.

============================================================
PURPOSE
============================================================
The two optional callbacks of the harness, as one-method
capabilities so implementations are interchangeable:

- ShadowFailureRecorder.record(failure)
    May be sync or async. Exceptions are swallowed by the harness.
- MetricSink.emit(event)
    Sync. Exceptions are NOT guarded by the harness.

============================================================
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Awaitable, Dict, List, Optional, Tuple, Union

from .models import (
    MetricEventType,
    ShadowFailureRecord,
    ShadowOperation,
    ShadowWriteMetricEvent,
)


logger = logging.getLogger(__name__)


# ============================================================
# FAILURE RECORDERS
# ============================================================

class ShadowFailureRecorder(ABC):
    """Receives one record per observed shadow failure."""

    @abstractmethod
    def record(self, failure: ShadowFailureRecord) -> Union[None, Awaitable[None]]:
        """Record a shadow failure."""
        pass


class LoggingFailureRecorder(ShadowFailureRecorder):
    """Writes shadow failures to the log."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def record(self, failure: ShadowFailureRecord) -> None:
        level = logging.INFO if failure.is_injected else logging.WARNING
        self._log.log(
            level,
            f"SHADOW: {failure.entity_type}:{failure.operation.value} "
            f"failed for {failure.entity_id} ({failure.error_kind.value}): {failure.error}",
            extra={"shadow_failure": failure.to_dict()},
        )


class InMemoryFailureRecorder(ShadowFailureRecorder):
    """Keeps shadow failures in memory."""

    def __init__(self):
        self.records: List[ShadowFailureRecord] = []

    def record(self, failure: ShadowFailureRecord) -> None:
        self.records.append(failure)

    def injected(self) -> List[ShadowFailureRecord]:
        return [r for r in self.records if r.is_injected]

    def real(self) -> List[ShadowFailureRecord]:
        return [r for r in self.records if not r.is_injected]

    def clear(self) -> None:
        self.records.clear()


# ============================================================
# METRIC SINKS
# ============================================================

class MetricSink(ABC):
    """Receives shadow write metric events."""

    @abstractmethod
    def emit(self, event: ShadowWriteMetricEvent) -> None:
        """Emit a metric event."""
        pass


class NoOpMetricSink(MetricSink):
    """Discards all events."""

    def emit(self, event: ShadowWriteMetricEvent) -> None:
        pass


class LoggingMetricSink(MetricSink):
    """Logs metric events at DEBUG."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def emit(self, event: ShadowWriteMetricEvent) -> None:
        self._log.debug(
            f"SHADOW: metric {event.type.value} "
            f"{event.entity_type}:{event.operation.value}={event.value}"
        )


class InMemoryMetricSink(MetricSink):
    """
    Keeps every event and aggregates values per
    (event type, entity type, operation).
    """

    def __init__(self):
        self.events: List[ShadowWriteMetricEvent] = []
        self._totals: Dict[Tuple[MetricEventType, str, ShadowOperation], float] = defaultdict(float)

    def emit(self, event: ShadowWriteMetricEvent) -> None:
        self.events.append(event)
        self._totals[(event.type, event.entity_type, event.operation)] += event.value

    def total(
        self,
        event_type: MetricEventType,
        entity_type: Optional[str] = None,
        operation: Optional[ShadowOperation] = None,
    ) -> float:
        """Sum of event values, optionally filtered."""
        return sum(
            value
            for (etype, entity, op), value in self._totals.items()
            if etype is event_type
            and (entity_type is None or entity == entity_type)
            and (operation is None or op is operation)
        )

    def clear(self) -> None:
        self.events.clear()
        self._totals.clear()
