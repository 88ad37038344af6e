"""
Fault Injection Models.

============================================================
PURPOSE
============================================================
Data models for controlled fault injection.

- FaultScope: which operation categories may be failed
- FaultInjectorConfig: immutable per-injector configuration
- FaultCheckResult: outcome of a single fault check
- FaultStats: read-only snapshot of injector counters

============================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


# ============================================================
# FAULT SCOPES
# ============================================================

class FaultScope(str, Enum):
    """Operation categories a fault injector may affect."""
    SHADOW_WRITE_ONLY = "shadow_write_only"   # Only shadow-store writes
    ALL_WRITES = "all_writes"                 # Shadow writes and all writes
    READS = "reads"                           # Everything, reads included

    @classmethod
    def parse(cls, value: Union["FaultScope", str]) -> "FaultScope":
        """Coerce a string or scope into a FaultScope."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())

    def covers(self, target: Union["FaultScope", str]) -> bool:
        """
        Check whether an injector configured with this scope may fail
        an operation checked under ``target``.

        Containment, not equality:
            shadow_write_only -> shadow_write_only
            all_writes        -> shadow_write_only, all_writes
            reads             -> all three
        """
        target = FaultScope.parse(target)
        return _SCOPE_RANK[target] <= _SCOPE_RANK[self]


_SCOPE_RANK: Dict[FaultScope, int] = {
    FaultScope.SHADOW_WRITE_ONLY: 0,
    FaultScope.ALL_WRITES: 1,
    FaultScope.READS: 2,
}


# ============================================================
# CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class FaultInjectorConfig:
    """
    Configuration for a FaultInjector.

    Immutable once built. Safe by default: disabled, zero fail rate,
    shadow writes only.
    """
    enabled: bool = False
    fail_rate: float = 0.0
    seed: Optional[str] = None
    scope: FaultScope = FaultScope.SHADOW_WRITE_ONLY

    def __post_init__(self) -> None:
        """Validate fail rate and coerce scope."""
        try:
            rate = float(self.fail_rate)
        except (TypeError, ValueError) as e:
            raise ValueError(f"fail_rate must be a number, got {self.fail_rate!r}") from e
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"fail_rate must be within [0, 1], got {rate}")
        object.__setattr__(self, "fail_rate", rate)
        object.__setattr__(self, "enabled", bool(self.enabled))
        object.__setattr__(self, "scope", FaultScope.parse(self.scope))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enabled": self.enabled,
            "fail_rate": self.fail_rate,
            "seed": self.seed,
            "scope": self.scope.value,
        }


# ============================================================
# CHECK RESULTS
# ============================================================

@dataclass(frozen=True)
class FaultCheckResult:
    """Outcome of a single fault check."""
    should_fail: bool
    fault_id: str       # Empty unless should_fail
    reason: str         # Which rule decided the outcome


@dataclass(frozen=True)
class FaultStats:
    """Snapshot of fault injector counters."""
    checks: int
    faults: int

    @property
    def fault_rate(self) -> float:
        return self.faults / self.checks if self.checks > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "checks": self.checks,
            "faults": self.faults,
            "fault_rate": self.fault_rate,
        }
