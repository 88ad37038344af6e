"""
Fault Injection - Configuration.

============================================================
ENVIRONMENT VARIABLES
============================================================
CHAOS_ENABLED     "true" enables injection (default: disabled)
CHAOS_FAIL_RATE   Probability in [0, 1] (invalid -> 0)
CHAOS_SEED        Optional deterministic seed
CHAOS_SCOPE       shadow_write_only | all_writes | reads
                  (invalid -> shadow_write_only)

APP_ENV           Runtime environment. "production" or "prod"
                  marks a production runtime. ENVIRONMENT is
                  consulted when APP_ENV is unset.

============================================================
SAFETY
============================================================
Every injector construction passes through
enforce_production_guard(). There is no override.

============================================================
"""

import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv

from .exceptions import ChaosProductionError
from .models import FaultInjectorConfig, FaultScope


# Load environment variables (never overrides the process environment)
load_dotenv()

logger = logging.getLogger(__name__)


ENV_ENABLED = "CHAOS_ENABLED"
ENV_FAIL_RATE = "CHAOS_FAIL_RATE"
ENV_SEED = "CHAOS_SEED"
ENV_SCOPE = "CHAOS_SCOPE"
ENV_RUNTIME = ("APP_ENV", "ENVIRONMENT")

PRODUCTION_ENVIRONMENTS = frozenset({"production", "prod"})


def _parse_fail_rate(raw: Optional[str]) -> float:
    """Parse a fail rate, clamping anything invalid to 0."""
    if raw is None or not raw.strip():
        return 0.0
    try:
        rate = float(raw)
    except ValueError:
        logger.warning(f"CHAOS: Ignoring unparseable {ENV_FAIL_RATE}={raw!r}, using 0")
        return 0.0
    if not 0.0 <= rate <= 1.0:
        logger.warning(f"CHAOS: {ENV_FAIL_RATE}={raw!r} outside [0, 1], using 0")
        return 0.0
    return rate


def _parse_scope(raw: Optional[str]) -> FaultScope:
    """Parse a scope, defaulting to shadow_write_only."""
    if not raw:
        return FaultScope.SHADOW_WRITE_ONLY
    try:
        return FaultScope.parse(raw)
    except ValueError:
        logger.warning(f"CHAOS: Unknown {ENV_SCOPE}={raw!r}, using shadow_write_only")
        return FaultScope.SHADOW_WRITE_ONLY


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> FaultInjectorConfig:
    """
    Load fault injector configuration from environment variables.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        FaultInjectorConfig with safe defaults for anything missing
    """
    env = os.environ if environ is None else environ
    return FaultInjectorConfig(
        enabled=env.get(ENV_ENABLED, "false").strip().lower() == "true",
        fail_rate=_parse_fail_rate(env.get(ENV_FAIL_RATE)),
        seed=env.get(ENV_SEED) or None,
        scope=_parse_scope(env.get(ENV_SCOPE)),
    )


def get_runtime_environment(environ: Optional[Mapping[str, str]] = None) -> str:
    """Get the runtime environment name (lowercased, may be empty)."""
    env = os.environ if environ is None else environ
    for key in ENV_RUNTIME:
        value = env.get(key)
        if value and value.strip():
            return value.strip().lower()
    return ""


def is_production_environment(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Check if the runtime environment is production."""
    return get_runtime_environment(environ) in PRODUCTION_ENVIRONMENTS


def enforce_production_guard(
    config: FaultInjectorConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> None:
    """
    HARD SAFETY GUARD: never allow enabled chaos in production.

    Raises:
        ChaosProductionError: If config is enabled in a production runtime
    """
    if config.enabled and is_production_environment(environ):
        runtime = get_runtime_environment(environ)
        logger.critical(
            f"CHAOS: Refusing to build an enabled fault injector in '{runtime}'"
        )
        raise ChaosProductionError(runtime)
