"""
Shared test fixtures.

Every test starts from a clean chaos environment: no CHAOS_*
variables, no runtime environment and no process-wide injector.
"""

import pytest

from fault_injection import reset_fault_injector


CHAOS_ENV_VARS = (
    "CHAOS_ENABLED",
    "CHAOS_FAIL_RATE",
    "CHAOS_SEED",
    "CHAOS_SCOPE",
    "APP_ENV",
    "ENVIRONMENT",
    "SHADOW_HARNESS_DATABASE_URL",
    "DATABASE_URL",
)


@pytest.fixture(autouse=True)
def clean_chaos_environment(monkeypatch):
    for name in CHAOS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_fault_injector()
    yield
    reset_fault_injector()
