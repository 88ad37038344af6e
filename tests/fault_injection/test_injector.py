"""
Tests for the Fault Injection Module.

============================================================
TEST COVERAGE
============================================================
1. Scope and config models
2. Environment configuration
3. Production guard
4. Decisions (determinism, rate, scope, disabled)
5. Wrappers and injection points
6. Stats and the process-wide instance
============================================================
"""

import logging
import re
from unittest.mock import AsyncMock, Mock

import pytest

from fault_injection import (
    ChaosException,
    ChaosProductionError,
    FaultInjector,
    FaultInjectorConfig,
    FaultScope,
    FaultStats,
    InjectedFaultException,
    check_shadow_write_fault,
    enforce_production_guard,
    generate_fault_id,
    get_fault_injector,
    get_runtime_environment,
    is_production_environment,
    load_config_from_env,
    maybe_fault_shadow_write,
    reset_fault_injector,
)


FAULT_ID_PATTERN = re.compile(r"^fault_[0-9a-z]+_[0-9a-z]{4,}_[0-9a-f]{4}$")


# ============================================================
# FIXTURES
# ============================================================

def make_injector(**overrides) -> FaultInjector:
    config = {
        "enabled": True,
        "fail_rate": 0.5,
        "seed": "unit-test",
        "scope": FaultScope.SHADOW_WRITE_ONLY,
    }
    config.update(overrides)
    return FaultInjector.create_for_test(FaultInjectorConfig(**config))


@pytest.fixture
def always_fail():
    """Injector that fails every in-scope check."""
    return make_injector(fail_rate=1.0)


@pytest.fixture
def never_fail():
    """Enabled injector with a zero fail rate."""
    return make_injector(fail_rate=0.0)


@pytest.fixture
def disabled():
    return FaultInjector.create_for_test(FaultInjectorConfig())


# ============================================================
# MODEL TESTS
# ============================================================

class TestModels:
    """Test fault injection data models."""

    def test_scope_values(self):
        assert FaultScope.SHADOW_WRITE_ONLY.value == "shadow_write_only"
        assert FaultScope.ALL_WRITES.value == "all_writes"
        assert FaultScope.READS.value == "reads"

    def test_scope_parse(self):
        assert FaultScope.parse("ALL_WRITES") is FaultScope.ALL_WRITES
        assert FaultScope.parse(FaultScope.READS) is FaultScope.READS
        with pytest.raises(ValueError):
            FaultScope.parse("everything")

    @pytest.mark.parametrize(
        "configured,target,expected",
        [
            (FaultScope.SHADOW_WRITE_ONLY, FaultScope.SHADOW_WRITE_ONLY, True),
            (FaultScope.SHADOW_WRITE_ONLY, FaultScope.ALL_WRITES, False),
            (FaultScope.SHADOW_WRITE_ONLY, FaultScope.READS, False),
            (FaultScope.ALL_WRITES, FaultScope.SHADOW_WRITE_ONLY, True),
            (FaultScope.ALL_WRITES, FaultScope.ALL_WRITES, True),
            (FaultScope.ALL_WRITES, FaultScope.READS, False),
            (FaultScope.READS, FaultScope.SHADOW_WRITE_ONLY, True),
            (FaultScope.READS, FaultScope.ALL_WRITES, True),
            (FaultScope.READS, FaultScope.READS, True),
        ],
    )
    def test_scope_containment(self, configured, target, expected):
        assert configured.covers(target) is expected

    def test_config_defaults_are_safe(self):
        config = FaultInjectorConfig()
        assert config.enabled is False
        assert config.fail_rate == 0.0
        assert config.seed is None
        assert config.scope is FaultScope.SHADOW_WRITE_ONLY

    @pytest.mark.parametrize("rate", [-0.1, 1.01, float("nan")])
    def test_config_rejects_invalid_rate(self, rate):
        with pytest.raises(ValueError):
            FaultInjectorConfig(fail_rate=rate)

    def test_config_coerces_scope_string(self):
        config = FaultInjectorConfig(scope="reads")
        assert config.scope is FaultScope.READS

    def test_config_is_immutable(self):
        config = FaultInjectorConfig()
        with pytest.raises(Exception):
            config.enabled = True

    def test_stats_fault_rate(self):
        assert FaultStats(checks=0, faults=0).fault_rate == 0.0
        assert FaultStats(checks=4, faults=1).fault_rate == 0.25

    def test_exception_hierarchy(self):
        error = InjectedFaultException("fault_x", "all_writes", "Listing:create")
        assert isinstance(error, ChaosException)
        assert error.scope is FaultScope.ALL_WRITES
        assert error.operation == "Listing:create"
        assert "fault_x" in str(error)
        assert issubclass(ChaosProductionError, ChaosException)


# ============================================================
# CONFIGURATION TESTS
# ============================================================

class TestEnvironmentConfig:
    """Test loading configuration from environment variables."""

    def test_defaults_when_unset(self):
        config = load_config_from_env({})
        assert config == FaultInjectorConfig()

    def test_reads_all_variables(self):
        config = load_config_from_env({
            "CHAOS_ENABLED": "true",
            "CHAOS_FAIL_RATE": "0.25",
            "CHAOS_SEED": "gameday-1",
            "CHAOS_SCOPE": "all_writes",
        })
        assert config.enabled is True
        assert config.fail_rate == 0.25
        assert config.seed == "gameday-1"
        assert config.scope is FaultScope.ALL_WRITES

    @pytest.mark.parametrize("raw,expected", [("TRUE", True), ("True", True), ("yes", False), ("1", False)])
    def test_enabled_only_for_true(self, raw, expected):
        assert load_config_from_env({"CHAOS_ENABLED": raw}).enabled is expected

    @pytest.mark.parametrize("raw", ["abc", "1.5", "-0.2", "nan", "inf"])
    def test_invalid_fail_rate_becomes_zero(self, raw):
        assert load_config_from_env({"CHAOS_FAIL_RATE": raw}).fail_rate == 0.0

    def test_invalid_scope_falls_back(self):
        config = load_config_from_env({"CHAOS_SCOPE": "bogus"})
        assert config.scope is FaultScope.SHADOW_WRITE_ONLY

    def test_empty_seed_is_none(self):
        assert load_config_from_env({"CHAOS_SEED": ""}).seed is None

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("CHAOS_ENABLED", "true")
        monkeypatch.setenv("CHAOS_FAIL_RATE", "0.3")
        config = load_config_from_env()
        assert config.enabled is True
        assert config.fail_rate == 0.3

    def test_runtime_environment(self):
        assert get_runtime_environment({}) == ""
        assert get_runtime_environment({"APP_ENV": " Staging "}) == "staging"
        assert get_runtime_environment({"ENVIRONMENT": "prod"}) == "prod"
        assert get_runtime_environment({"APP_ENV": "dev", "ENVIRONMENT": "prod"}) == "dev"

    @pytest.mark.parametrize(
        "environ,expected",
        [
            ({"APP_ENV": "production"}, True),
            ({"APP_ENV": "PROD"}, True),
            ({"ENVIRONMENT": "production"}, True),
            ({"APP_ENV": "staging"}, False),
            ({}, False),
        ],
    )
    def test_is_production(self, environ, expected):
        assert is_production_environment(environ) is expected


# ============================================================
# PRODUCTION GUARD TESTS
# ============================================================

class TestProductionGuard:
    """Enabled chaos must never be constructed in production."""

    def test_guard_raises_for_enabled_config(self):
        with pytest.raises(ChaosProductionError):
            enforce_production_guard(
                FaultInjectorConfig(enabled=True, fail_rate=0.1),
                {"APP_ENV": "production"},
            )

    def test_guard_allows_disabled_config(self):
        enforce_production_guard(FaultInjectorConfig(), {"APP_ENV": "production"})

    def test_guard_logs_critical(self, caplog):
        with caplog.at_level(logging.CRITICAL, logger="fault_injection.config"):
            with pytest.raises(ChaosProductionError):
                enforce_production_guard(
                    FaultInjectorConfig(enabled=True),
                    {"APP_ENV": "production"},
                )
        assert any(r.levelno == logging.CRITICAL for r in caplog.records)

    def test_create_blocked_in_production(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        with pytest.raises(ChaosProductionError):
            FaultInjector.create(enabled=True, fail_rate=0.1)

    def test_create_for_test_blocked_in_production(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        with pytest.raises(ChaosProductionError):
            FaultInjector.create_for_test(FaultInjectorConfig(enabled=True))

    def test_direct_construction_blocked_in_production(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "prod")
        with pytest.raises(ChaosProductionError):
            FaultInjector(FaultInjectorConfig(enabled=True, fail_rate=0.5))

    def test_disabled_injector_allowed_in_production(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        injector = FaultInjector.create()
        assert injector.is_enabled() is False

    def test_global_injector_blocked_in_production(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("CHAOS_ENABLED", "true")
        with pytest.raises(ChaosProductionError):
            get_fault_injector()


# ============================================================
# DECISION TESTS
# ============================================================

class TestDecisions:
    """Test FaultInjector.check."""

    def test_create_merges_overrides_over_environment(self, monkeypatch):
        monkeypatch.setenv("CHAOS_ENABLED", "true")
        monkeypatch.setenv("CHAOS_FAIL_RATE", "0.25")
        monkeypatch.setenv("CHAOS_SCOPE", "reads")
        injector = FaultInjector.create(seed="override")
        config = injector.get_config()
        assert config.enabled is True
        assert config.fail_rate == 0.25
        assert config.seed == "override"
        assert config.scope is FaultScope.READS

    def test_disabled_never_fails(self, disabled):
        result = disabled.check(FaultScope.SHADOW_WRITE_ONLY, "Listing:create")
        assert result.should_fail is False
        assert result.fault_id == ""
        assert result.reason == "chaos_disabled"

    def test_disabled_checks_are_counted(self, disabled):
        for _ in range(3):
            disabled.check(FaultScope.SHADOW_WRITE_ONLY, "Listing:create")
        assert disabled.get_stats() == FaultStats(checks=3, faults=0)

    def test_scope_mismatch(self, always_fail):
        result = always_fail.check(FaultScope.ALL_WRITES, "Listing:create")
        assert result.should_fail is False
        assert result.reason == "scope_mismatch:shadow_write_only"

    def test_wider_scope_covers_narrower(self):
        injector = make_injector(fail_rate=1.0, scope=FaultScope.READS)
        for target in FaultScope:
            assert injector.check(target, "op").should_fail is True

    def test_rate_one_always_fails(self, always_fail):
        results = [always_fail.check("shadow_write_only", "op") for _ in range(50)]
        assert all(r.should_fail for r in results)
        assert all(r.reason.startswith("fault_injected:rate=1.0:roll=") for r in results)
        assert all(FAULT_ID_PATTERN.match(r.fault_id) for r in results)

    def test_rate_zero_never_fails(self, never_fail):
        results = [never_fail.check("shadow_write_only", "op") for _ in range(50)]
        assert not any(r.should_fail for r in results)
        assert all(r.reason.startswith("passed:rate=0.0:roll=") for r in results)

    def test_same_seed_same_sequence(self):
        first = make_injector(seed="replay")
        second = make_injector(seed="replay")
        a = [first.check("shadow_write_only", "op") for _ in range(200)]
        b = [second.check("shadow_write_only", "op") for _ in range(200)]
        assert [r.should_fail for r in a] == [r.should_fail for r in b]
        assert [r.reason for r in a] == [r.reason for r in b]

    def test_different_seeds_diverge(self):
        first = make_injector(seed="seed-a")
        second = make_injector(seed="seed-b")
        a = [first.check("shadow_write_only", "op").should_fail for _ in range(200)]
        b = [second.check("shadow_write_only", "op").should_fail for _ in range(200)]
        assert a != b

    def test_out_of_scope_checks_do_not_consume_draws(self):
        first = make_injector(seed="draws")
        second = make_injector(seed="draws")
        for _ in range(10):
            second.check(FaultScope.READS, "read")
        a = [first.check("shadow_write_only", "op").should_fail for _ in range(50)]
        b = [second.check("shadow_write_only", "op").should_fail for _ in range(50)]
        assert a == b

    def test_observed_rate_close_to_configured(self):
        injector = make_injector(fail_rate=0.3, seed="rate-accuracy")
        for _ in range(10_000):
            injector.check("shadow_write_only", "op")
        stats = injector.get_stats()
        assert stats.checks == 10_000
        assert abs(stats.fault_rate - 0.3) <= 0.05

    def test_unseeded_injector_still_decides(self):
        injector = make_injector(seed=None, fail_rate=1.0)
        assert injector.check("shadow_write_only", "op").should_fail is True

    def test_fault_ids_unique(self):
        ids = {generate_fault_id() for _ in range(1000)}
        assert len(ids) == 1000
        assert all(FAULT_ID_PATTERN.match(i) for i in ids)

    def test_fault_ids_unique_across_instances(self):
        first = make_injector(fail_rate=1.0, seed="same")
        second = make_injector(fail_rate=1.0, seed="same")
        a = {first.check("shadow_write_only", "op").fault_id for _ in range(100)}
        b = {second.check("shadow_write_only", "op").fault_id for _ in range(100)}
        assert len(a | b) == 200


# ============================================================
# WRAPPER TESTS
# ============================================================

class TestWrappers:
    """Test raising helpers, wrappers and injection points."""

    def test_maybe_inject_fault_raises(self, always_fail):
        with pytest.raises(InjectedFaultException) as exc_info:
            always_fail.maybe_inject_fault(FaultScope.SHADOW_WRITE_ONLY, "Listing:update")
        error = exc_info.value
        assert FAULT_ID_PATTERN.match(error.fault_id)
        assert error.scope is FaultScope.SHADOW_WRITE_ONLY
        assert error.operation == "Listing:update"

    def test_maybe_inject_fault_passes(self, never_fail):
        assert never_fail.maybe_inject_fault(FaultScope.SHADOW_WRITE_ONLY, "op") is None

    @pytest.mark.asyncio
    async def test_wrap_async_returns_result(self, never_fail):
        fn = AsyncMock(return_value={"id": "1"})
        result = await never_fail.wrap_async(FaultScope.SHADOW_WRITE_ONLY, "op", fn)
        assert result == {"id": "1"}
        fn.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wrap_async_skips_fn_on_fault(self, always_fail):
        fn = AsyncMock()
        with pytest.raises(InjectedFaultException):
            await always_fail.wrap_async(FaultScope.SHADOW_WRITE_ONLY, "op", fn)
        fn.assert_not_called()

    @pytest.mark.asyncio
    async def test_wrap_async_propagates_fn_errors(self, never_fail):
        fn = AsyncMock(side_effect=RuntimeError("store down"))
        with pytest.raises(RuntimeError, match="store down"):
            await never_fail.wrap_async(FaultScope.SHADOW_WRITE_ONLY, "op", fn)

    def test_wrap_sync(self, never_fail, always_fail):
        fn = Mock(return_value=42)
        assert never_fail.wrap_sync(FaultScope.SHADOW_WRITE_ONLY, "op", fn) == 42

        fn.reset_mock()
        with pytest.raises(InjectedFaultException):
            always_fail.wrap_sync(FaultScope.SHADOW_WRITE_ONLY, "op", fn)
        fn.assert_not_called()

    def test_injection_point_sync(self, always_fail):
        calls = []

        @always_fail.injection_point(FaultScope.SHADOW_WRITE_ONLY, "ledger:append")
        def append(entry):
            calls.append(entry)

        with pytest.raises(InjectedFaultException):
            append("x")
        assert calls == []
        assert append._injection_point == "ledger:append"
        assert append.__name__ == "append"

    @pytest.mark.asyncio
    async def test_injection_point_async(self, never_fail):
        @never_fail.injection_point(FaultScope.SHADOW_WRITE_ONLY, "ledger:append")
        async def append(entry):
            return entry * 2

        assert await append(21) == 42


# ============================================================
# STATS & GLOBAL INSTANCE TESTS
# ============================================================

class TestStatsAndGlobal:
    """Test counters and the process-wide injector."""

    def test_stats_count_checks_and_faults(self, always_fail):
        for _ in range(5):
            always_fail.check("shadow_write_only", "op")
        always_fail.check("all_writes", "op")
        assert always_fail.get_stats() == FaultStats(checks=6, faults=5)

    def test_reset_stats(self, always_fail):
        always_fail.check("shadow_write_only", "op")
        always_fail.reset_stats()
        assert always_fail.get_stats() == FaultStats(checks=0, faults=0)
        assert always_fail.is_enabled() is True

    def test_global_injector_is_singleton(self):
        assert get_fault_injector() is get_fault_injector()

    def test_reset_replaces_global_injector(self):
        first = get_fault_injector()
        reset_fault_injector()
        assert get_fault_injector() is not first

    def test_global_injector_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CHAOS_ENABLED", "true")
        monkeypatch.setenv("CHAOS_FAIL_RATE", "1")
        assert check_shadow_write_fault("Listing:create").should_fail is True
        with pytest.raises(InjectedFaultException):
            maybe_fault_shadow_write("Listing:create")

    def test_global_injector_disabled_by_default(self):
        assert check_shadow_write_fault("Listing:create").reason == "chaos_disabled"
        maybe_fault_shadow_write("Listing:create")
