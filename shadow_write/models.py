"""
Shadow Write Models.

============================================================
PURPOSE
============================================================
Data models for the dual-write harness.

- ShadowWriteResult: what a harness call returns
- ShadowFailureRecord: one per observed shadow failure
- ShadowWriteMetricEvent: pushed to the metric sink
- ShadowWriteMetrics: aggregate counters snapshot

INVARIANTS (ShadowWriteMetrics):
- shadow_failures == injected_faults + real_errors
- shadow_successes + shadow_failures == total_writes

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from fault_injection import InjectedFaultException


T = TypeVar("T")


# ============================================================
# ENUMS
# ============================================================

class ShadowOperation(str, Enum):
    """Mutations that are dual-written."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ShadowErrorKind(str, Enum):
    """Classification of a shadow failure."""
    INJECTED = "injected"   # Simulated by the fault injector
    REAL = "real"           # Raised by the shadow store itself


class MetricEventType(str, Enum):
    """Metric events emitted per harness call."""
    SHADOW_WRITE_SUCCESS = "shadow_write_success"
    SHADOW_WRITE_FAILURE = "shadow_write_failure"
    SHADOW_WRITE_DURATION = "shadow_write_duration"


def classify_shadow_error(error: BaseException) -> ShadowErrorKind:
    """
    Classify a shadow failure.

    Only the fault injector's own exception type counts as injected.
    Everything else is a real shadow store defect.
    """
    if isinstance(error, InjectedFaultException):
        return ShadowErrorKind.INJECTED
    return ShadowErrorKind.REAL


# ============================================================
# CONTEXT & RESULTS
# ============================================================

@dataclass(frozen=True)
class ShadowWriteContext:
    """Caller context carried into failure records."""
    request_id: Optional[str] = None
    user_id: Optional[str] = None
    organization_id: Optional[str] = None


@dataclass
class ShadowWriteResult(Generic[T]):
    """Result of one dual-write call."""
    canonical: T
    shadow_success: bool
    shadow_error: Optional[BaseException] = None
    fault_id: Optional[str] = None          # Only for injected failures
    shadow_duration_ms: float = 0.0
    error_kind: Optional[ShadowErrorKind] = None


@dataclass(frozen=True)
class ShadowFailureRecord:
    """
    Record of a shadow write failure.

    primary_success is always True: the primary write completes
    before the shadow write is attempted.
    """
    entity_type: str
    entity_id: str
    operation: ShadowOperation
    error: BaseException
    error_kind: ShadowErrorKind
    fault_id: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    primary_success: bool = True

    @property
    def is_injected(self) -> bool:
        return self.error_kind is ShadowErrorKind.INJECTED

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation."""
        return {
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "operation": self.operation.value,
            "error_type": type(self.error).__name__,
            "error_message": str(self.error),
            "error_kind": self.error_kind.value,
            "fault_id": self.fault_id,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "primary_success": self.primary_success,
        }


@dataclass(frozen=True)
class ShadowWriteMetricEvent:
    """Metric event for shadow writes."""
    type: MetricEventType
    entity_type: str
    operation: ShadowOperation
    value: float
    labels: Dict[str, str] = field(default_factory=dict)


# ============================================================
# AGGREGATE METRICS
# ============================================================

@dataclass(frozen=True)
class ShadowWriteMetrics:
    """Immutable snapshot of harness metrics."""
    total_writes: int = 0
    shadow_successes: int = 0
    shadow_failures: int = 0
    injected_faults: int = 0
    real_errors: int = 0
    avg_shadow_duration_ms: float = 0.0

    @property
    def shadow_failure_rate(self) -> float:
        return self.shadow_failures / self.total_writes if self.total_writes else 0.0

    def is_consistent(self) -> bool:
        """Check both conservation invariants."""
        return (
            self.shadow_failures == self.injected_faults + self.real_errors
            and self.shadow_successes + self.shadow_failures == self.total_writes
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_writes": self.total_writes,
            "shadow_successes": self.shadow_successes,
            "shadow_failures": self.shadow_failures,
            "injected_faults": self.injected_faults,
            "real_errors": self.real_errors,
            "avg_shadow_duration_ms": self.avg_shadow_duration_ms,
            "shadow_failure_rate": self.shadow_failure_rate,
        }
