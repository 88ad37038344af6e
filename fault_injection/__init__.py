"""
Controlled Fault Injection Module.

============================================================
PURPOSE
============================================================
Deterministic, seedable decision engine that simulates
shadow-side failures so failure handling, alerting and
reconciliation tooling can be rehearsed before a migration.

============================================================
SAFETY
============================================================
1. Disabled unless CHAOS_ENABLED=true
2. Construction FAILS if enabled while APP_ENV=production
3. Scoped to shadow writes unless configured otherwise
4. Injected faults raise InjectedFaultException, never a
   generic error, so they can't be mistaken for real ones

============================================================
USAGE
============================================================

    from fault_injection import FaultInjector, FaultScope

    injector = FaultInjector.create(enabled=True, fail_rate=0.1, seed="gameday")
    injector.maybe_inject_fault(FaultScope.SHADOW_WRITE_ONLY, "Listing:create")

============================================================
"""

from .models import (
    FaultScope,
    FaultInjectorConfig,
    FaultCheckResult,
    FaultStats,
)

from .exceptions import (
    ChaosException,
    ChaosProductionError,
    InjectedFaultException,
)

from .config import (
    load_config_from_env,
    get_runtime_environment,
    is_production_environment,
    enforce_production_guard,
)

from .injector import (
    FaultInjector,
    generate_fault_id,
    get_fault_injector,
    reset_fault_injector,
    check_shadow_write_fault,
    maybe_fault_shadow_write,
)


__all__ = [
    # Models
    "FaultScope",
    "FaultInjectorConfig",
    "FaultCheckResult",
    "FaultStats",

    # Exceptions
    "ChaosException",
    "ChaosProductionError",
    "InjectedFaultException",

    # Configuration
    "load_config_from_env",
    "get_runtime_environment",
    "is_production_environment",
    "enforce_production_guard",

    # Injector
    "FaultInjector",
    "generate_fault_id",
    "get_fault_injector",
    "reset_fault_injector",
    "check_shadow_write_fault",
    "maybe_fault_shadow_write",
]
