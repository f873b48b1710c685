"""Automatic rollback of provider weights when routing degrades.

The guard reads the trailing window of ``gen_route`` events. A failure rate
above the threshold or a p95 latency above the threshold rewrites the
``GEN_PROVIDER_WEIGHTS`` flag to the compiled default (all traffic to FAL)
and records an ``auto_downgrade`` analytics event.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Protocol

import structlog

from ..domain.clock import Clock, utcnow
from ..domain.models import ProviderWeights
from .telemetry import ROUTING_EVENT
from .weights import WEIGHTS_FLAG_KEY, WeightResolver, dump_weights

logger = structlog.get_logger(__name__)

AUTO_DOWNGRADE_EVENT = "auto_downgrade"


class RouteEventLog(Protocol):
    def list_events_since(self, event_type: str, since: datetime) -> list[dict[str, Any]]:
        """Payloads of ``event_type`` recorded at or after ``since``."""

    def insert(self, event_type: str, data: dict[str, Any], user_id: str | None = None) -> None:
        """Append one event."""


class FlagWriter(Protocol):
    def set_flag(self, flag_key: str, value: str | None) -> None:
        """Create or overwrite a feature flag."""


@dataclass(slots=True)
class RouteMetrics:
    sample_size: int
    failure_rate_percent: float | None
    p95_latency_ms: int | None


@dataclass(slots=True)
class CostGuardResult:
    triggered: bool
    metrics: RouteMetrics
    reasons: list[str] = field(default_factory=list)
    weights_rolled_back: bool = False


def compute_route_metrics(events: Iterable[dict[str, Any]]) -> RouteMetrics:
    """Failure rate and p95 latency over routing event payloads.

    A routing event counts as failed when it carries an error. Only positive
    numeric latencies take part in the percentile.
    """

    total = 0
    failures = 0
    latencies: list[int] = []
    for data in events:
        total += 1
        if data.get("error") is not None:
            failures += 1
        latency = data.get("latency_ms")
        if isinstance(latency, (int, float)) and not isinstance(latency, bool) and latency > 0:
            latencies.append(int(latency))

    failure_rate = failures / total * 100 if total else None
    p95 = None
    if latencies:
        latencies.sort()
        p95 = latencies[int(len(latencies) * 0.95)]
    return RouteMetrics(sample_size=total, failure_rate_percent=failure_rate, p95_latency_ms=p95)


class CostGuard:
    """Check routing health over a trailing window and roll back weights."""

    def __init__(
        self,
        *,
        events: RouteEventLog,
        flags: FlagWriter,
        failure_rate_threshold: float = 2.0,
        p95_latency_threshold_ms: int = 8000,
        window_minutes: int = 30,
        clock: Clock | None = None,
        resolver: WeightResolver | None = None,
    ) -> None:
        self._events = events
        self._flags = flags
        self._failure_rate_threshold = failure_rate_threshold
        self._p95_latency_threshold_ms = p95_latency_threshold_ms
        self._window = timedelta(minutes=window_minutes)
        self._clock = clock or utcnow
        self._resolver = resolver

    async def check(self, *, apply: bool = True) -> CostGuardResult:
        """Evaluate the window; with ``apply`` the rollback is written."""

        since = self._clock() - self._window
        rows = await asyncio.to_thread(self._events.list_events_since, ROUTING_EVENT, since)
        metrics = compute_route_metrics(rows)
        reasons = self._reasons(metrics)
        result = CostGuardResult(triggered=bool(reasons), metrics=metrics, reasons=reasons)
        if not reasons:
            logger.debug("cost_guard.ok", **asdict(metrics))
            return result

        logger.warning("cost_guard.triggered", reasons=reasons, apply=apply, **asdict(metrics))
        if apply:
            await asyncio.to_thread(self._roll_back, result)
            result.weights_rolled_back = True
            if self._resolver is not None:
                self._resolver.invalidate()
        return result

    def _reasons(self, metrics: RouteMetrics) -> list[str]:
        reasons = []
        rate = metrics.failure_rate_percent
        if rate is not None and rate > self._failure_rate_threshold:
            reasons.append(
                f"Failure rate {rate:.2f}% exceeds threshold {self._failure_rate_threshold}%"
            )
        p95 = metrics.p95_latency_ms
        if p95 is not None and p95 > self._p95_latency_threshold_ms:
            reasons.append(
                f"P95 latency {p95}ms exceeds threshold {self._p95_latency_threshold_ms}ms"
            )
        return reasons

    def _roll_back(self, result: CostGuardResult) -> None:
        self._flags.set_flag(WEIGHTS_FLAG_KEY, dump_weights(ProviderWeights.default()))
        self._events.insert(
            AUTO_DOWNGRADE_EVENT,
            {
                "triggered_by": "auto",
                "reason": "; ".join(result.reasons),
                "metrics": asdict(result.metrics),
                "actions": {"provider_weights_rolled_back": True},
                "timestamp": self._clock().isoformat(),
            },
        )


__all__ = [
    "AUTO_DOWNGRADE_EVENT",
    "CostGuard",
    "CostGuardResult",
    "RouteMetrics",
    "compute_route_metrics",
]
