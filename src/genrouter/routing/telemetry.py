"""Fire-and-forget telemetry for routing outcomes and health probes."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import structlog

from ..domain.models import ProviderHealth, ProviderName, RoutingOutcome

logger = structlog.get_logger(__name__)

ROUTING_EVENT = "gen_route"
HEALTH_EVENT = "provider_health"


class TelemetrySink(ABC):
    """Destination for telemetry events (analytics table, log stream)."""

    @abstractmethod
    async def write(
        self, event_type: str, data: dict[str, Any], *, user_id: str | None = None
    ) -> None:
        """Persist one event."""


class LoggingTelemetrySink(TelemetrySink):
    """Emit telemetry as structured log lines."""

    async def write(
        self, event_type: str, data: dict[str, Any], *, user_id: str | None = None
    ) -> None:
        logger.info("telemetry.event", event_type=event_type, user_id=user_id, **data)


class TelemetryEmitter:
    """Schedule sink writes without awaiting them.

    Failures are logged and swallowed; they never reach the caller.
    """

    def __init__(self, sink: TelemetrySink) -> None:
        self._sink = sink
        self._pending: set[asyncio.Task[None]] = set()

    def emit(
        self, event_type: str, data: dict[str, Any], *, user_id: str | None = None
    ) -> None:
        task = asyncio.get_running_loop().create_task(
            self._write(event_type, data, user_id=user_id)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def emit_routing(self, outcome: RoutingOutcome, *, user_id: str | None = None) -> None:
        self.emit(ROUTING_EVENT, outcome.as_event(), user_id=user_id)

    def emit_health(self, provider: ProviderName, health: ProviderHealth) -> None:
        self.emit(
            HEALTH_EVENT,
            {
                "provider": provider.value,
                "ok": health.ok,
                "latency_ms": health.latency_ms,
                "error": health.error,
            },
        )

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _write(
        self, event_type: str, data: dict[str, Any], *, user_id: str | None
    ) -> None:
        try:
            await self._sink.write(event_type, data, user_id=user_id)
        except Exception as exc:
            logger.warning(
                "telemetry.write_failed",
                event_type=event_type,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )


__all__ = [
    "HEALTH_EVENT",
    "LoggingTelemetrySink",
    "ROUTING_EVENT",
    "TelemetryEmitter",
    "TelemetrySink",
]
