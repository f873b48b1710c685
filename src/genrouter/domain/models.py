"""Domain records for generation routing and job lifecycle.

Jobs are owned by the job store; adapters only return submissions, progress
reports and result listings which the store then persists. Routing outcomes
and health probes are ephemeral telemetry records, never durable job state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ProviderName(str, Enum):
    """Closed set of adapters the router can dispatch to."""

    FAL = "fal"
    RUNWARE = "runware"
    MOCK = "mock"

    @property
    def is_real(self) -> bool:
        return self is not ProviderName.MOCK


REAL_PROVIDERS: tuple[ProviderName, ...] = (ProviderName.FAL, ProviderName.RUNWARE)


class JobStatus(str, Enum):
    """Canonical job states shared by every adapter."""

    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """Provider-agnostic generation input, immutable once submitted."""

    files: tuple[str, ...]
    style: str
    template: str
    resolution: int | None = None
    steps: int | None = None
    grayscale_ratio: float | None = None


@dataclass(slots=True)
class Job:
    """Lifecycle record for one generation request."""

    id: str
    provider: ProviderName
    status: JobStatus
    progress: int
    created_at: datetime
    updated_at: datetime
    error_message: str | None = None
    result_urls: tuple[str, ...] = ()
    request_id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True, slots=True)
class ProviderWeights:
    """Relative traffic share between the two real providers."""

    fal: float
    runware: float

    @classmethod
    def default(cls) -> "ProviderWeights":
        return cls(fal=1.0, runware=0.0)

    def normalized(self) -> "ProviderWeights":
        """Return weights summing to 1; zero/zero resolves to the default."""

        fal = max(0.0, float(self.fal))
        runware = max(0.0, float(self.runware))
        total = fal + runware
        if total <= 0:
            return ProviderWeights.default()
        return ProviderWeights(fal=fal / total, runware=runware / total)

    def weight_for(self, provider: ProviderName) -> float:
        if provider is ProviderName.FAL:
            return self.fal
        if provider is ProviderName.RUNWARE:
            return self.runware
        return 0.0


@dataclass(slots=True)
class RoutingOutcome:
    """Telemetry describing which provider served a request."""

    request_id: str
    primary_provider: ProviderName
    chosen_provider: ProviderName
    attempts: int
    fallback_used: bool
    latency_ms: int
    error: str | None = None

    def as_event(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "primary_provider": self.primary_provider.value,
            "provider": self.chosen_provider.value,
            "attempts": self.attempts,
            "fallback_used": self.fallback_used,
            "latency_ms": self.latency_ms,
            "error": self.error,
        }


@dataclass(slots=True)
class ProviderHealth:
    """Result of a lightweight connectivity probe; informational only."""

    ok: bool
    latency_ms: int | None
    error: str | None = None


@dataclass(slots=True)
class ProviderSubmission:
    """What an adapter returns from ``generate``."""

    job_ref: str
    status: JobStatus
    progress: int | None = None
    result_urls: tuple[str, ...] = ()
    message: str | None = None


@dataclass(slots=True)
class ProviderProgress:
    """Status report in the provider's native vocabulary."""

    status: str
    progress: int | None = None
    message: str | None = None
    result_urls: tuple[str, ...] = ()


@dataclass(slots=True)
class ProviderResults:
    """Artefact listing returned by ``get_results``."""

    images: tuple[str, ...]
    payment_status: str = "free"


@dataclass(slots=True)
class ProgressSnapshot:
    """Caller-facing progress view of a job."""

    job_id: str
    status: JobStatus
    progress: int
    message: str
    error_message: str | None = None


@dataclass(slots=True)
class ResultsSnapshot:
    """Caller-facing result listing of a job."""

    job_id: str
    images: tuple[str, ...] = field(default_factory=tuple)
    payment_status: str = "free"


__all__ = [
    "GenerationRequest",
    "Job",
    "JobStatus",
    "ProgressSnapshot",
    "ProviderHealth",
    "ProviderName",
    "ProviderProgress",
    "ProviderResults",
    "ProviderSubmission",
    "ProviderWeights",
    "REAL_PROVIDERS",
    "ResultsSnapshot",
    "RoutingOutcome",
]
