"""Runtime configuration for the generation router.

Defaults follow the production rollout: mock mode unless a real provider is
explicitly enabled, an 8 second hard timeout per outbound call, two retries
with doubling backoff and failover switched off. Provider credentials are read
from their conventional environment variables (``FAL_API_KEY``,
``RUNWARE_API_KEY``); everything else uses the ``GEN_`` prefix.
"""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.models import ProviderName
from .exceptions import ConfigError

GenerationMode = Literal["mock", "router", "fal", "runware"]
RefreshMode = Literal["inline", "background"]


class GenerationSettings(BaseSettings):
    """Pydantic settings container for routing, adapters and the job store."""

    model_config = SettingsConfigDict(env_prefix="GEN_", extra="ignore")

    mode: GenerationMode = Field(
        default="mock",
        description=(
            "Which adapter serves new requests: the cost-free mock, the weighted "
            "router, or a single real provider."
        ),
    )
    provider_weights: str | None = Field(
        default=None,
        description='Explicit JSON override such as {"fal": 0.3, "runware": 0.7}.',
    )
    provider_primary: str | None = Field(
        default=None,
        description="Provider selected deterministically while its weight is nonzero.",
    )
    timeout_seconds: float = Field(
        default=8.0,
        gt=0.0,
        description="Hard wall-clock bound for every outbound provider call.",
    )
    retry: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retries for transient failures on top of the first attempt.",
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Base delay before the first retry; doubles per attempt.",
    )
    failover: bool = Field(
        default=False,
        description="Retry the whole operation once against the alternate provider.",
    )
    poll_interval_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Delay between status polls for polling providers.",
    )
    poll_max_attempts: int = Field(
        default=30,
        ge=1,
        description="Upper bound on status polls per generation.",
    )
    poll_deadline_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Overall polling deadline per generation.",
    )
    weights_cache_ttl_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="TTL of the resolved provider weights shared across callers.",
    )
    mock_duration_seconds: float = Field(
        default=90.0,
        gt=0.0,
        description="Simulated duration of a mock generation.",
    )
    health_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Timeout applied to provider health probes.",
    )
    progress_refresh: RefreshMode = Field(
        default="inline",
        description="Refresh non-terminal jobs inline or via the background worker.",
    )
    refresh_queue_size: int = Field(
        default=100,
        ge=1,
        description="Capacity of the background refresh queue.",
    )
    debug_errors: bool = Field(
        default=False,
        description="Expose redacted failure causes instead of the generic message.",
    )
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL for the job store, feature flags and analytics.",
    )
    cost_guard_failure_rate_percent: float = Field(
        default=2.0,
        ge=0.0,
        description="Routing failure rate (percent) above which weights roll back to FAL.",
    )
    cost_guard_p95_latency_ms: int = Field(
        default=8000,
        gt=0,
        description="p95 routing latency above which weights roll back to FAL.",
    )
    cost_guard_window_minutes: int = Field(
        default=30,
        gt=0,
        description="Trailing window of routing events the cost guard inspects.",
    )

    fal_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("fal_api_key", "FAL_API_KEY"),
    )
    fal_api_url: str = Field(
        default="https://queue.fal.run",
        validation_alias=AliasChoices("fal_api_url", "FAL_API_URL"),
    )
    fal_model_id: str = Field(
        default="fal-ai/flux/schnell",
        validation_alias=AliasChoices("fal_model_id", "FAL_MODEL_ID"),
    )
    runware_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("runware_api_key", "RUNWARE_API_KEY"),
    )
    runware_api_url: str = Field(
        default="https://api.runware.ai/v1",
        validation_alias=AliasChoices("runware_api_url", "RUNWARE_API_URL"),
    )

    def parsed_primary(self) -> ProviderName | None:
        """Return the configured explicit primary, validated against real providers."""

        if not self.provider_primary:
            return None
        value = self.provider_primary.strip().lower()
        if value == ProviderName.FAL.value:
            return ProviderName.FAL
        if value == ProviderName.RUNWARE.value:
            return ProviderName.RUNWARE
        raise ConfigError(f"Unsupported primary provider '{self.provider_primary}'")

    def secret_values(self) -> tuple[str, ...]:
        """Plain API key values, used only for redaction."""

        values = []
        for secret in (self.fal_api_key, self.runware_api_key):
            if secret is not None and secret.get_secret_value():
                values.append(secret.get_secret_value())
        return tuple(values)


def load_settings() -> GenerationSettings:
    """Load configuration from the environment."""

    return GenerationSettings()


__all__ = ["GenerationSettings", "GenerationMode", "RefreshMode", "load_settings"]
