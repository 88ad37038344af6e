"""
Chaos Game Day Runner.

============================================================
PURPOSE
============================================================
Reproducible rehearsal of shadow write failures:

1. Pre-flight safety checks (never production)
2. Seeded workload through one ShadowWriteHarness
3. Verification of primary state, metrics and failure records
4. JSON artifacts under <artifacts-dir>/<run id>/

Exit codes:
  0 - PASSED
  1 - FAILED (verification or runtime error)
  2 - Pre-flight safety violation

============================================================
USAGE
============================================================
python -m scripts.chaos_gameday
python -m scripts.chaos_gameday --fail-rate 0.2 --seed gameday-42
python -m scripts.chaos_gameday --database-url sqlite:///./gameday.db

============================================================
"""

import argparse
import asyncio
import json
import logging
import secrets
import sys
import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from fault_injection import (
    ChaosProductionError,
    FaultInjector,
    FaultInjectorConfig,
    FaultScope,
    enforce_production_guard,
    get_runtime_environment,
    is_production_environment,
)
from shadow_write import (
    InMemoryFailureRecorder,
    InMemoryMetricSink,
    InMemoryStore,
    ShadowFailureRecorder,
    ShadowStore,
    ShadowWriteContext,
    ShadowWriteHarness,
)


logger = logging.getLogger(__name__)


SAFE_MAX_FAIL_RATE = 0.3
PRODUCTION_MARKER = ".production"

EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_SAFETY_VIOLATION = 2


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="chaos-gameday",
        description="Rehearse shadow write failures with seeded fault injection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                   # 200 writes at 10%% fail rate
  %(prog)s --fail-rate 0.25 --seed replay-1  # Reproduce a previous run
  %(prog)s --database-url sqlite:///./gd.db  # Use SQL stores
        """
    )

    # --------------------------------------------------------
    # Chaos Options
    # --------------------------------------------------------
    chaos_group = parser.add_argument_group("Chaos Options")

    chaos_group.add_argument(
        "--fail-rate",
        type=float,
        default=0.1,
        help=f"Fault injection rate, 0.0-{SAFE_MAX_FAIL_RATE} (default: 0.1)",
    )

    chaos_group.add_argument(
        "--seed",
        type=str,
        default=None,
        help="Deterministic seed (default: gameday-<epoch>)",
    )

    chaos_group.add_argument(
        "--scope",
        type=str,
        choices=[s.value for s in FaultScope],
        default=FaultScope.SHADOW_WRITE_ONLY.value,
        help="Fault scope (default: shadow_write_only)",
    )

    # --------------------------------------------------------
    # Workload Options
    # --------------------------------------------------------
    workload_group = parser.add_argument_group("Workload Options")

    workload_group.add_argument(
        "--writes",
        type=int,
        default=200,
        help="Number of entities to create (default: 200)",
    )

    workload_group.add_argument(
        "--entity-type",
        type=str,
        default="Listing",
        help="Entity type label (default: Listing)",
    )

    workload_group.add_argument(
        "--database-url",
        type=str,
        default=None,
        metavar="URL",
        help="Use SQL stores at this URL instead of in-memory stores",
    )

    # --------------------------------------------------------
    # Output Options
    # --------------------------------------------------------
    output_group = parser.add_argument_group("Output Options")

    output_group.add_argument(
        "--artifacts-dir",
        type=str,
        default="artifacts/chaos_gameday",
        metavar="PATH",
        help="Artifact root directory (default: artifacts/chaos_gameday)",
    )

    output_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    return parser


def validate_args(args: argparse.Namespace) -> List[str]:
    """Validate non-safety arguments."""
    errors = []
    if args.writes < 1:
        errors.append("--writes must be at least 1")
    if not args.entity_type.strip():
        errors.append("--entity-type must not be empty")
    return errors


# ============================================================
# PRE-FLIGHT
# ============================================================

def preflight_checks(fail_rate: float, root: Optional[Path] = None) -> List[str]:
    """
    Run the safety checks.

    Returns:
        List of safety violations (empty means safe to run)
    """
    violations = []

    if is_production_environment():
        violations.append(
            f"Cannot run chaos in production (environment={get_runtime_environment()})"
        )

    marker = (root or Path.cwd()) / PRODUCTION_MARKER
    if marker.exists():
        violations.append(f"Production marker file found: {marker}")

    if not 0.0 <= fail_rate <= SAFE_MAX_FAIL_RATE:
        violations.append(
            f"Fail rate {fail_rate} outside safe range 0.0-{SAFE_MAX_FAIL_RATE}"
        )

    if not verify_production_guard():
        violations.append("Production guard did not block an enabled injector")

    return violations


def verify_production_guard() -> bool:
    """Check that an enabled config is refused in a simulated production runtime."""
    probe = FaultInjectorConfig(enabled=True, fail_rate=0.1)
    try:
        enforce_production_guard(probe, {"APP_ENV": "production"})
    except ChaosProductionError:
        return True
    return False


# ============================================================
# WORKLOAD & VERIFICATION
# ============================================================

@dataclass
class GameDayOutcome:
    """What a workload run produced."""
    created_ids: List[str] = field(default_factory=list)
    updated_ids: List[str] = field(default_factory=list)
    deleted_ids: List[str] = field(default_factory=list)
    shadow_failures: int = 0
    checks: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c["passed"] for c in self.checks)

    def observe(self, result) -> None:
        if not result.shadow_success:
            self.shadow_failures += 1

    def add_check(self, name: str, passed: bool, detail: str = "") -> None:
        self.checks.append({"name": name, "passed": passed, "detail": detail})
        if passed:
            logger.info(f"  [OK] {name}")
        else:
            logger.error(f"  [!!] {name}: {detail}")


async def run_workload(
    harness: ShadowWriteHarness,
    primary: ShadowStore,
    shadow: ShadowStore,
    writes: int,
    run_id: str,
) -> GameDayOutcome:
    """Create every entity, update every second one, delete every fifth one."""
    outcome = GameDayOutcome()

    for i in range(writes):
        context = ShadowWriteContext(request_id=f"{run_id}-{i}")
        entity = {"id": f"{run_id}-{i:05d}", "sequence": i, "status": "draft"}

        result = await harness.create(primary, shadow, entity, context)
        entity_id = result.canonical["id"]
        outcome.created_ids.append(entity_id)
        outcome.observe(result)

        if i % 2 == 1:
            result = await harness.update(
                primary, shadow, entity_id, {"status": "published"}, context
            )
            outcome.updated_ids.append(entity_id)
            outcome.observe(result)

        if i % 5 == 4:
            result = await harness.delete(primary, shadow, entity_id, context)
            outcome.deleted_ids.append(entity_id)
            outcome.observe(result)

    return outcome


async def verify_outcome(
    outcome: GameDayOutcome,
    harness: ShadowWriteHarness,
    primary: ShadowStore,
    recorded_failures: Optional[int],
) -> None:
    """Append verification checks to the outcome."""
    deleted = set(outcome.deleted_ids)
    updated = set(outcome.updated_ids)

    missing = []
    stale = []
    for entity_id in outcome.created_ids:
        if entity_id in deleted:
            continue
        entity = await harness.read(primary, entity_id)
        if entity is None:
            missing.append(entity_id)
        elif entity_id in updated and entity.get("status") != "published":
            stale.append(entity_id)
    outcome.add_check(
        "primary holds every surviving entity",
        not missing,
        f"missing: {missing[:5]}",
    )
    outcome.add_check(
        "primary holds every update",
        not stale,
        f"stale: {stale[:5]}",
    )

    lingering = [e for e in outcome.deleted_ids if await primary.find_by_id(e) is not None]
    outcome.add_check(
        "primary dropped every deleted entity",
        not lingering,
        f"lingering: {lingering[:5]}",
    )

    metrics = harness.get_metrics()
    expected_writes = len(outcome.created_ids) + len(outcome.updated_ids) + len(outcome.deleted_ids)
    outcome.add_check(
        "metrics are conserved",
        metrics.is_consistent() and metrics.total_writes == expected_writes,
        f"{metrics.to_dict()} vs {expected_writes} writes",
    )
    outcome.add_check(
        "metrics match observed shadow failures",
        metrics.shadow_failures == outcome.shadow_failures,
        f"{metrics.shadow_failures} != {outcome.shadow_failures}",
    )

    if recorded_failures is not None:
        outcome.add_check(
            "one failure record per shadow failure",
            recorded_failures == metrics.shadow_failures,
            f"{recorded_failures} records != {metrics.shadow_failures} failures",
        )


# ============================================================
# ARTIFACTS
# ============================================================

def generate_run_id() -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"gameday_{timestamp}_{secrets.token_hex(2)}"


def write_artifact(directory: Path, name: str, payload: Dict[str, Any]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
    return path


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(args: argparse.Namespace, run_id: str, artifact_dir: Path) -> int:
    """
    Build stores, run the workload, verify and write the summary.

    Returns:
        Exit code
    """
    config = FaultInjectorConfig(
        enabled=True,
        fail_rate=args.fail_rate,
        seed=args.seed,
        scope=args.scope,
    )
    injector = FaultInjector(config)
    metric_sink = InMemoryMetricSink()

    with ExitStack() as stack:
        sql_failures = None
        if args.database_url:
            from storage import (
                ShadowFailureRepository,
                SqlEntityStore,
                SqlFailureRecorder,
                create_all_tables,
                create_database_engine,
                get_session_factory,
            )

            engine = create_database_engine(args.database_url)
            stack.callback(engine.dispose)
            create_all_tables(engine)
            session = get_session_factory(engine)()
            stack.callback(session.close)

            primary = SqlEntityStore(session, f"{run_id}:primary", args.entity_type)
            shadow = SqlEntityStore(session, f"{run_id}:shadow", args.entity_type)
            sql_failures = ShadowFailureRepository(session)
            recorder: ShadowFailureRecorder = SqlFailureRecorder(sql_failures)
        else:
            primary = InMemoryStore(name="primary")
            shadow = InMemoryStore(name="shadow")
            recorder = InMemoryFailureRecorder()

        harness = ShadowWriteHarness(
            entity_type=args.entity_type,
            fault_injector=injector,
            on_shadow_failure=recorder,
            on_metric=metric_sink,
        )

        started = time.perf_counter()
        outcome = await run_workload(harness, primary, shadow, args.writes, run_id)
        elapsed_s = time.perf_counter() - started

        if sql_failures is not None:
            recorded = sum(
                len(sql_failures.list_for_entity(args.entity_type, entity_id))
                for entity_id in outcome.created_ids
            )
        else:
            recorded = len(recorder.records)

        logger.info("Verifying outcome...")
        await verify_outcome(outcome, harness, primary, recorded)

    metrics = harness.get_metrics()
    status = "PASSED" if outcome.passed else "FAILED"
    summary = {
        "run_id": run_id,
        "status": status,
        "finished_at": datetime.now(timezone.utc).isoformat(),
        "elapsed_seconds": round(elapsed_s, 3),
        "config": config.to_dict(),
        "workload": {
            "entity_type": args.entity_type,
            "store": "sql" if args.database_url else "memory",
            "creates": len(outcome.created_ids),
            "updates": len(outcome.updated_ids),
            "deletes": len(outcome.deleted_ids),
        },
        "metrics": metrics.to_dict(),
        "injector": injector.get_stats().to_dict(),
        "checks": outcome.checks,
    }
    path = write_artifact(artifact_dir, "summary.json", summary)

    print()
    print("=" * 60)
    print(f"  GAME DAY {status}")
    print("=" * 60)
    print(f"  Writes:           {metrics.total_writes}")
    print(f"  Shadow failures:  {metrics.shadow_failures} "
          f"(injected={metrics.injected_faults}, real={metrics.real_errors})")
    print(f"  Failure rate:     {metrics.shadow_failure_rate:.2%}")
    print(f"  Summary:          {path}")
    print("=" * 60)

    return EXIT_PASSED if outcome.passed else EXIT_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return EXIT_FAILED

    if args.seed is None:
        args.seed = f"gameday-{int(time.time())}"

    violations = preflight_checks(args.fail_rate)
    if violations:
        for violation in violations:
            logger.critical(f"SAFETY VIOLATION: {violation}")
        return EXIT_SAFETY_VIOLATION
    logger.info("Pre-flight safety checks passed")

    run_id = generate_run_id()
    artifact_dir = Path(args.artifacts_dir) / run_id
    write_artifact(artifact_dir, "config.json", {
        "run_id": run_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "config": {
            "fail_rate": args.fail_rate,
            "seed": args.seed,
            "scope": args.scope,
            "writes": args.writes,
            "entity_type": args.entity_type,
            "database": (args.database_url or "memory").split("@")[-1],
        },
        "environment": {"runtime": get_runtime_environment() or "development"},
    })

    print_banner(args, run_id)

    try:
        return asyncio.run(async_main(args, run_id, artifact_dir))
    except ChaosProductionError as e:
        logger.critical(f"SAFETY VIOLATION: {e}")
        return EXIT_SAFETY_VIOLATION
    except Exception as e:
        logger.error(f"Game day aborted: {e}", exc_info=True)
        return EXIT_FAILED


def print_banner(args: argparse.Namespace, run_id: str) -> None:
    """Print startup banner."""
    print()
    print("=" * 60)
    print("  CHAOS GAME DAY")
    print("=" * 60)
    print(f"  Run ID:     {run_id}")
    print(f"  Fail Rate:  {args.fail_rate}")
    print(f"  Seed:       {args.seed}")
    print(f"  Scope:      {args.scope}")
    print(f"  Writes:     {args.writes}")
    print(f"  Store:      {'sql' if args.database_url else 'memory'}")
    print("=" * 60)
    print()


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
