"""Factory for provider drivers."""

from __future__ import annotations

from ..config import GenerationSettings
from ..domain.clock import Clock, utcnow
from ..domain.models import ProviderName
from .providers_base import ProviderDriver, RetryPolicy
from .providers_fal import FalDriver
from .providers_mock import MockDriver, MockJobRegistry
from .providers_runware import RunwareDriver


def retry_policy_from(settings: GenerationSettings) -> RetryPolicy:
    return RetryPolicy(
        timeout_seconds=settings.timeout_seconds,
        retries=settings.retry,
        backoff_seconds=settings.retry_backoff_seconds,
    )


def create_driver(
    name: ProviderName | str,
    settings: GenerationSettings,
    *,
    clock: Clock | None = None,
    mock_registry: MockJobRegistry | None = None,
) -> ProviderDriver:
    """Instantiate provider driver by name."""
    provider = ProviderName(str(getattr(name, "value", name)).lower())
    if provider is ProviderName.FAL:
        return FalDriver(
            api_key=_secret(settings.fal_api_key),
            api_url=settings.fal_api_url.rstrip("/"),
            model_id=settings.fal_model_id,
            policy=retry_policy_from(settings),
            poll_interval_seconds=settings.poll_interval_seconds,
            poll_max_attempts=settings.poll_max_attempts,
            poll_deadline_seconds=settings.poll_deadline_seconds,
            health_timeout_seconds=settings.health_timeout_seconds,
        )
    if provider is ProviderName.RUNWARE:
        return RunwareDriver(
            api_key=_secret(settings.runware_api_key),
            api_url=settings.runware_api_url.rstrip("/"),
            policy=retry_policy_from(settings),
            health_timeout_seconds=settings.health_timeout_seconds,
        )
    if provider is ProviderName.MOCK:
        return MockDriver(
            registry=mock_registry or MockJobRegistry(),
            clock=clock or utcnow,
            duration_seconds=settings.mock_duration_seconds,
        )
    raise ValueError(f"Unsupported provider '{name}'")


def create_drivers(
    settings: GenerationSettings,
    *,
    clock: Clock | None = None,
    mock_registry: MockJobRegistry | None = None,
) -> dict[ProviderName, ProviderDriver]:
    """Build one driver per member of the closed provider set."""
    return {
        provider: create_driver(
            provider, settings, clock=clock, mock_registry=mock_registry
        )
        for provider in ProviderName
    }


def _secret(value) -> str | None:
    if value is None:
        return None
    secret = value.get_secret_value()
    return secret or None
