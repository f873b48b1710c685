"""Roll provider weights back to FAL when recent routing looks unhealthy."""

from __future__ import annotations

import argparse
import asyncio
import sys

from genrouter.config import load_settings
from genrouter.db.db_init import create_db_engine, create_session_factory, init_db
from genrouter.logging import configure_logging
from genrouter.repositories.analytics_repository import AnalyticsLogRepository
from genrouter.repositories.feature_flag_repository import FeatureFlagRepository
from genrouter.routing.cost_guard import CostGuard, CostGuardResult


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check routing failure rate and p95 latency.")
    parser.add_argument("--database-url", help="Override GEN_DATABASE_URL.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report the verdict without touching the weights flag.",
    )
    return parser.parse_args(argv)


def format_result(result: CostGuardResult) -> str:
    metrics = result.metrics
    rate = (
        f"{metrics.failure_rate_percent:.2f}%"
        if metrics.failure_rate_percent is not None
        else "n/a"
    )
    p95 = f"{metrics.p95_latency_ms}ms" if metrics.p95_latency_ms is not None else "n/a"
    line = f"events={metrics.sample_size}, failure_rate={rate}, p95={p95}"
    if not result.triggered:
        return f"cost guard ok: {line}"
    action = "weights rolled back to fal" if result.weights_rolled_back else "dry run, weights unchanged"
    return f"cost guard triggered ({action}): {line}; " + "; ".join(result.reasons)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    configure_logging(service="cost-guard")
    settings = load_settings()
    url = args.database_url or settings.database_url
    if not url:
        print("cost guard failed: GEN_DATABASE_URL is not set", file=sys.stderr)
        return 2
    try:
        engine = create_db_engine(url)
        init_db(engine)
        session_factory = create_session_factory(engine)
        guard = CostGuard(
            events=AnalyticsLogRepository(session_factory),
            flags=FeatureFlagRepository(session_factory),
            failure_rate_threshold=settings.cost_guard_failure_rate_percent,
            p95_latency_threshold_ms=settings.cost_guard_p95_latency_ms,
            window_minutes=settings.cost_guard_window_minutes,
        )
        result = asyncio.run(guard.check(apply=not args.dry_run))
    except Exception as exc:
        print(f"cost guard failed: {exc}", file=sys.stderr)
        return 2
    print(format_result(result))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
