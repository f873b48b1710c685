"""Service composition helpers."""

from __future__ import annotations

import random
from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..config import GenerationSettings, load_settings
from ..db.db_init import create_db_engine, create_session_factory, init_db
from ..domain.clock import Clock, utcnow
from ..domain.models import ProviderName
from ..jobs.job_refresher import JobRefresher
from ..jobs.job_store import InMemoryJobStore, JobStore
from ..providers.providers_base import ProviderDriver
from ..providers.providers_factory import create_drivers
from ..providers.providers_mock import MockJobRegistry
from ..repositories.analytics_repository import AnalyticsLogRepository
from ..repositories.feature_flag_repository import (
    FeatureFlagRepository,
    FeatureFlagWeightSource,
)
from ..repositories.job_repository import SqlAlchemyJobStore
from ..routing.cost_guard import CostGuard
from ..routing.orchestrator import FailoverOrchestrator
from ..routing.selector import ProviderSelector
from ..routing.telemetry import LoggingTelemetrySink, TelemetryEmitter, TelemetrySink
from ..routing.weights import WeightResolver, WeightSource
from ..workers.refresh_worker import RefreshWorker
from .generation_service import GenerationService
from .health_service import HealthService

_ENGINE_CACHE: dict[str, Engine] = {}


@dataclass(slots=True)
class GenerationContainer:
    """Everything one process needs to serve generation requests."""

    settings: GenerationSettings
    drivers: dict[ProviderName, ProviderDriver]
    store: JobStore
    telemetry: TelemetryEmitter
    weights: WeightResolver
    selector: ProviderSelector
    orchestrator: FailoverOrchestrator
    refresher: JobRefresher
    worker: RefreshWorker | None
    generation: GenerationService
    health: HealthService
    session_factory: sessionmaker[Session] | None = None
    cost_guard: CostGuard | None = None


def _get_engine(dsn: str) -> Engine:
    engine = _ENGINE_CACHE.get(dsn)
    if engine is None:
        engine = create_db_engine(dsn)
        init_db(engine)
        _ENGINE_CACHE[dsn] = engine
    return engine


def build_container(
    settings: GenerationSettings | None = None,
    *,
    clock: Clock | None = None,
    rng: random.Random | None = None,
    drivers: dict[ProviderName, ProviderDriver] | None = None,
    session_factory: sessionmaker[Session] | None = None,
    telemetry_sink: TelemetrySink | None = None,
) -> GenerationContainer:
    """Wire drivers, store, routing and services from ``settings``.

    With ``database_url`` (or an explicit ``session_factory``) jobs, weights
    and telemetry go through SQLAlchemy; otherwise jobs live in memory and
    telemetry is logged.
    """

    settings = settings or load_settings()
    clock = clock or utcnow
    secrets = settings.secret_values()

    if session_factory is None and settings.database_url:
        session_factory = create_session_factory(_get_engine(settings.database_url))

    if drivers is None:
        drivers = create_drivers(settings, clock=clock, mock_registry=MockJobRegistry())

    store: JobStore
    weight_source: WeightSource | None = None
    analytics: AnalyticsLogRepository | None = None
    flags: FeatureFlagRepository | None = None
    if session_factory is not None:
        store = SqlAlchemyJobStore(session_factory, clock=clock)
        analytics = AnalyticsLogRepository(session_factory, clock=clock)
        flags = FeatureFlagRepository(session_factory)
        weight_source = FeatureFlagWeightSource(flags)
        sink: TelemetrySink = telemetry_sink or analytics
    else:
        store = InMemoryJobStore(clock=clock)
        sink = telemetry_sink or LoggingTelemetrySink()

    telemetry = TelemetryEmitter(sink)
    weights = WeightResolver(
        override=settings.provider_weights,
        source=weight_source,
        ttl_seconds=settings.weights_cache_ttl_seconds,
    )
    selector = ProviderSelector(weights, primary=settings.parsed_primary(), rng=rng)
    orchestrator = FailoverOrchestrator(
        drivers=drivers,
        telemetry=telemetry,
        failover_enabled=settings.failover,
    )
    refresher = JobRefresher(store=store, drivers=drivers, secrets=secrets)
    worker = (
        RefreshWorker(refresher, queue_size=settings.refresh_queue_size)
        if settings.progress_refresh == "background"
        else None
    )
    generation = GenerationService(
        store=store,
        orchestrator=orchestrator,
        selector=selector,
        refresher=refresher,
        mode=settings.mode,
        worker=worker,
        debug_errors=settings.debug_errors,
        secrets=secrets,
    )
    health = HealthService(drivers=drivers, telemetry=telemetry, secrets=secrets)
    cost_guard = None
    if analytics is not None and flags is not None:
        cost_guard = CostGuard(
            events=analytics,
            flags=flags,
            failure_rate_threshold=settings.cost_guard_failure_rate_percent,
            p95_latency_threshold_ms=settings.cost_guard_p95_latency_ms,
            window_minutes=settings.cost_guard_window_minutes,
            clock=clock,
            resolver=weights,
        )
    return GenerationContainer(
        settings=settings,
        drivers=drivers,
        store=store,
        telemetry=telemetry,
        weights=weights,
        selector=selector,
        orchestrator=orchestrator,
        refresher=refresher,
        worker=worker,
        generation=generation,
        health=health,
        session_factory=session_factory,
        cost_guard=cost_guard,
    )


__all__ = ["GenerationContainer", "build_container"]
