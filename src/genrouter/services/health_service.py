"""Provider health probes; informational only, never gate routing."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping

import structlog

from ..domain.models import REAL_PROVIDERS, ProviderHealth, ProviderName
from ..exceptions import redact_secrets
from ..providers.providers_base import ProviderDriver
from ..routing.telemetry import TelemetryEmitter

logger = structlog.get_logger(__name__)


class HealthService:
    """Probe providers concurrently and record the results as telemetry."""

    def __init__(
        self,
        *,
        drivers: Mapping[ProviderName, ProviderDriver],
        telemetry: TelemetryEmitter | None = None,
        secrets: Iterable[str] = (),
    ) -> None:
        self._drivers = dict(drivers)
        self._telemetry = telemetry
        self._secrets = tuple(secrets)

    async def probe(self, provider: ProviderName) -> ProviderHealth:
        driver = self._drivers.get(provider)
        if driver is None:
            return ProviderHealth(ok=False, latency_ms=None, error="Provider not configured")
        try:
            health = await driver.check_health()
        except Exception as exc:
            health = ProviderHealth(
                ok=False,
                latency_ms=None,
                error=redact_secrets(str(exc) or exc.__class__.__name__, self._secrets),
            )
        logger.info(
            "provider.health",
            provider=provider.value,
            ok=health.ok,
            latency_ms=health.latency_ms,
            error=health.error,
        )
        if self._telemetry is not None:
            self._telemetry.emit_health(provider, health)
        return health

    async def probe_all(
        self, providers: Iterable[ProviderName] = REAL_PROVIDERS
    ) -> dict[ProviderName, ProviderHealth]:
        targets = list(providers)
        results = await asyncio.gather(*(self.probe(provider) for provider in targets))
        return dict(zip(targets, results))


__all__ = ["HealthService"]
