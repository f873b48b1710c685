"""Run a generation against the primary provider, failing over once if allowed."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import structlog

from ..domain.models import (
    GenerationRequest,
    ProviderName,
    ProviderSubmission,
    RoutingOutcome,
)
from ..exceptions import CompositeFailoverError, ConfigError, ProviderError
from ..providers.providers_base import ProviderDriver
from .telemetry import TelemetryEmitter

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class RoutedSubmission:
    """Submission together with the provider that actually accepted it."""

    provider: ProviderName
    submission: ProviderSubmission
    outcome: RoutingOutcome


def alternate_for(provider: ProviderName) -> ProviderName | None:
    """The other real provider; the mock has none."""
    if provider is ProviderName.FAL:
        return ProviderName.RUNWARE
    if provider is ProviderName.RUNWARE:
        return ProviderName.FAL
    if provider is ProviderName.MOCK:
        return None
    raise ValueError(f"Unsupported provider '{provider}'")


class FailoverOrchestrator:
    """Dispatch one request, with at most one extra attempt on the alternate.

    Each adapter applies its own timeout and retry budget first; failover is
    a second, whole-operation attempt. Configuration errors never fail over.
    Every path emits a routing event.
    """

    def __init__(
        self,
        *,
        drivers: Mapping[ProviderName, ProviderDriver],
        telemetry: TelemetryEmitter,
        failover_enabled: bool = False,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._drivers = dict(drivers)
        self._telemetry = telemetry
        self._failover_enabled = failover_enabled
        self._monotonic = monotonic

    async def run(
        self,
        request: GenerationRequest,
        primary: ProviderName,
        *,
        request_id: str,
        user_id: str | None = None,
    ) -> RoutedSubmission:
        started = self._monotonic()
        try:
            submission = await self._driver(primary).generate(request)
        except ConfigError as exc:
            self._emit(request_id, primary, primary, 1, False, started, exc, user_id)
            raise
        except ProviderError as primary_error:
            alternate = alternate_for(primary)
            if not self._failover_enabled or alternate is None:
                self._emit(request_id, primary, primary, 1, False, started, primary_error, user_id)
                raise
            logger.warning(
                "routing.failover",
                request_id=request_id,
                primary=primary.value,
                fallback=alternate.value,
                error=str(primary_error),
            )
            return await self._run_fallback(
                request,
                primary=primary,
                alternate=alternate,
                primary_error=primary_error,
                request_id=request_id,
                started=started,
                user_id=user_id,
            )
        except Exception as exc:
            # Not a classified provider failure: record it, but do not fail over.
            self._emit(request_id, primary, primary, 1, False, started, exc, user_id)
            logger.error(
                "routing.unexpected_error",
                request_id=request_id,
                provider=primary.value,
                error_type=exc.__class__.__name__,
            )
            raise

        outcome = self._emit(request_id, primary, primary, 1, False, started, None, user_id)
        return RoutedSubmission(provider=primary, submission=submission, outcome=outcome)

    async def _run_fallback(
        self,
        request: GenerationRequest,
        *,
        primary: ProviderName,
        alternate: ProviderName,
        primary_error: ProviderError,
        request_id: str,
        started: float,
        user_id: str | None,
    ) -> RoutedSubmission:
        try:
            submission = await self._driver(alternate).generate(request)
        except Exception as fallback_error:
            self._emit(request_id, primary, alternate, 2, True, started, fallback_error, user_id)
            logger.error(
                "routing.fallback_failed",
                request_id=request_id,
                fallback=alternate.value,
                error=str(fallback_error),
            )
            raise CompositeFailoverError(
                primary_provider=primary.value,
                primary_error=primary_error,
                fallback_provider=alternate.value,
                fallback_error=fallback_error,
            ) from fallback_error

        outcome = self._emit(request_id, primary, alternate, 2, True, started, None, user_id)
        return RoutedSubmission(provider=alternate, submission=submission, outcome=outcome)

    def _emit(
        self,
        request_id: str,
        primary: ProviderName,
        chosen: ProviderName,
        attempts: int,
        fallback_used: bool,
        started: float,
        error: BaseException | None,
        user_id: str | None,
    ) -> RoutingOutcome:
        outcome = RoutingOutcome(
            request_id=request_id,
            primary_provider=primary,
            chosen_provider=chosen,
            attempts=attempts,
            fallback_used=fallback_used,
            latency_ms=int((self._monotonic() - started) * 1000),
            error=str(error) if error is not None else None,
        )
        self._telemetry.emit_routing(outcome, user_id=user_id)
        return outcome

    def _driver(self, provider: ProviderName) -> ProviderDriver:
        driver = self._drivers.get(provider)
        if driver is None:
            raise ConfigError(f"No driver configured for provider '{provider.value}'")
        return driver


__all__ = ["FailoverOrchestrator", "RoutedSubmission", "alternate_for"]
