"""
Fault Injector.

============================================================
PURPOSE
============================================================
Answers one question: "should this operation fail right now?"

SAFETY GUARANTEES:
- SAFE-BY-DEFAULT: Disabled unless CHAOS_ENABLED=true
- PRODUCTION-BLOCKED: Construction fails if enabled in production
- SCOPED: Only shadow writes are affected by default
- DETERMINISTIC: A seed reproduces the exact decision sequence

============================================================
USAGE
============================================================
    injector = FaultInjector.create()

    result = injector.check(FaultScope.SHADOW_WRITE_ONLY, "Listing:create")
    if result.should_fail:
        ...

    # Or raise directly
    injector.maybe_inject_fault(FaultScope.SHADOW_WRITE_ONLY, "Listing:create")

============================================================
"""

import functools
import inspect
import itertools
import logging
import random
import secrets
import threading
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from .config import enforce_production_guard, load_config_from_env
from .exceptions import InjectedFaultException
from .models import FaultCheckResult, FaultInjectorConfig, FaultScope, FaultStats


logger = logging.getLogger(__name__)


T = TypeVar("T")
ScopeLike = Union[FaultScope, str]


# Process-wide sequence so fault ids never collide across instances
_fault_sequence = itertools.count(1)
_fault_sequence_lock = threading.Lock()

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_fault_id() -> str:
    """Generate a fault id unique within this process."""
    with _fault_sequence_lock:
        sequence = next(_fault_sequence)
    timestamp = _to_base36(int(time.time() * 1000))
    return f"fault_{timestamp}_{_to_base36(sequence).rjust(4, '0')}_{secrets.token_hex(2)}"


class FaultInjector:
    """
    Controlled, deterministic fault injection.

    Configuration is fixed at construction. Every construction path,
    including direct instantiation, runs the production guard.
    """

    def __init__(self, config: FaultInjectorConfig):
        """
        Initialize the injector.

        Raises:
            ChaosProductionError: If config is enabled in production
        """
        enforce_production_guard(config)

        self._config = config
        # Unseeded Random() draws its seed from OS entropy
        self._rng = random.Random(config.seed) if config.seed is not None else random.Random()
        self._lock = threading.Lock()
        self._check_counter = 0
        self._fault_counter = 0

        if config.enabled:
            logger.warning(
                f"CHAOS: Fault injection ENABLED "
                f"(scope={config.scope.value}, fail_rate={config.fail_rate}, "
                f"seeded={config.seed is not None})"
            )

    # =========================================================
    # CONSTRUCTION
    # =========================================================

    @classmethod
    def create(
        cls,
        enabled: Optional[bool] = None,
        fail_rate: Optional[float] = None,
        seed: Optional[str] = None,
        scope: Optional[ScopeLike] = None,
    ) -> "FaultInjector":
        """
        Create an injector from the environment, with explicit overrides.

        Any argument left as None falls back to the environment value.

        Raises:
            ChaosProductionError: If the merged config is enabled in production
        """
        env_config = load_config_from_env()
        config = FaultInjectorConfig(
            enabled=env_config.enabled if enabled is None else enabled,
            fail_rate=env_config.fail_rate if fail_rate is None else fail_rate,
            seed=env_config.seed if seed is None else seed,
            scope=env_config.scope if scope is None else scope,
        )
        return cls(config)

    @classmethod
    def create_for_test(cls, config: FaultInjectorConfig) -> "FaultInjector":
        """
        Create an injector from explicit config, bypassing the environment.

        Only for test suites. Production is still blocked.
        """
        return cls(config)

    # =========================================================
    # DECISIONS
    # =========================================================

    def check(self, target_scope: ScopeLike, operation: str) -> FaultCheckResult:
        """
        Check if a fault should be injected.

        Args:
            target_scope: Scope of the operation being checked
            operation: Human-readable operation label (for logging)

        Returns:
            FaultCheckResult describing the decision
        """
        target = FaultScope.parse(target_scope)

        with self._lock:
            self._check_counter += 1

            if not self._config.enabled:
                return FaultCheckResult(False, "", "chaos_disabled")

            if not self._config.scope.covers(target):
                return FaultCheckResult(
                    False, "", f"scope_mismatch:{self._config.scope.value}"
                )

            roll = self._rng.random()
            rate = self._config.fail_rate

            if roll >= rate:
                return FaultCheckResult(False, "", f"passed:rate={rate}:roll={roll:.4f}")

            self._fault_counter += 1

        fault_id = generate_fault_id()
        logger.info(
            f"CHAOS: Injecting fault {fault_id} into {operation} "
            f"({target.value}, roll={roll:.4f} < rate={rate})"
        )
        return FaultCheckResult(True, fault_id, f"fault_injected:rate={rate}:roll={roll:.4f}")

    def maybe_inject_fault(self, target_scope: ScopeLike, operation: str) -> None:
        """
        Check and raise if a fault should be injected.

        Raises:
            InjectedFaultException: If the check decides to fail
        """
        result = self.check(target_scope, operation)
        if result.should_fail:
            raise InjectedFaultException(result.fault_id, target_scope, operation)

    # =========================================================
    # WRAPPERS
    # =========================================================

    async def wrap_async(
        self,
        target_scope: ScopeLike,
        operation: str,
        fn: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run an async operation behind a fault check.

        The check happens before fn is called, so an injected fault
        means fn never runs.
        """
        self.maybe_inject_fault(target_scope, operation)
        return await fn()

    def wrap_sync(
        self,
        target_scope: ScopeLike,
        operation: str,
        fn: Callable[[], T],
    ) -> T:
        """Run a sync operation behind a fault check."""
        self.maybe_inject_fault(target_scope, operation)
        return fn()

    def injection_point(self, target_scope: ScopeLike, operation: str):
        """
        Decorator marking a function as a fault injection point.

        Usage:
            @injector.injection_point(FaultScope.ALL_WRITES, "ledger:append")
            async def append(entry):
                ...
        """
        def decorator(func):
            if inspect.iscoroutinefunction(func):
                @functools.wraps(func)
                async def async_wrapper(*args: Any, **kwargs: Any):
                    self.maybe_inject_fault(target_scope, operation)
                    return await func(*args, **kwargs)

                async_wrapper._injection_point = operation
                return async_wrapper

            @functools.wraps(func)
            def wrapper(*args: Any, **kwargs: Any):
                self.maybe_inject_fault(target_scope, operation)
                return func(*args, **kwargs)

            wrapper._injection_point = operation
            return wrapper

        return decorator

    # =========================================================
    # INTROSPECTION
    # =========================================================

    def get_config(self) -> FaultInjectorConfig:
        """Get the (immutable) configuration."""
        return self._config

    def get_stats(self) -> FaultStats:
        """Get a snapshot of check and fault counters."""
        with self._lock:
            return FaultStats(checks=self._check_counter, faults=self._fault_counter)

    def reset_stats(self) -> None:
        """Reset counters. Configuration and RNG state are untouched."""
        with self._lock:
            self._check_counter = 0
            self._fault_counter = 0

    def is_enabled(self) -> bool:
        """Check if fault injection is enabled."""
        return self._config.enabled


# ============================================================
# PROCESS-WIDE INSTANCE
# ============================================================

_global_injector: Optional[FaultInjector] = None
_global_lock = threading.Lock()


def get_fault_injector() -> FaultInjector:
    """
    Get or lazily create the process-wide FaultInjector.

    Built from the environment on first use.

    Raises:
        ChaosProductionError: If CHAOS_ENABLED=true in production
    """
    global _global_injector
    with _global_lock:
        if _global_injector is None:
            _global_injector = FaultInjector.create()
        return _global_injector


def reset_fault_injector() -> None:
    """Drop the process-wide FaultInjector. Test suites only."""
    global _global_injector
    with _global_lock:
        _global_injector = None


def check_shadow_write_fault(operation: str) -> FaultCheckResult:
    """Check the process-wide injector for a shadow write fault."""
    return get_fault_injector().check(FaultScope.SHADOW_WRITE_ONLY, operation)


def maybe_fault_shadow_write(operation: str) -> None:
    """
    Raise a shadow write fault from the process-wide injector if due.

    Raises:
        InjectedFaultException: If fault injection triggers
    """
    get_fault_injector().maybe_inject_fault(FaultScope.SHADOW_WRITE_ONLY, operation)
