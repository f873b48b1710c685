"""Scripted provider drivers and telemetry sinks for unit and integration tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from genrouter.domain.models import (
    GenerationRequest,
    JobStatus,
    ProviderHealth,
    ProviderName,
    ProviderProgress,
    ProviderResults,
    ProviderSubmission,
)
from genrouter.providers.providers_base import ProviderDriver
from genrouter.routing.telemetry import TelemetrySink


@dataclass
class ScriptedDriver(ProviderDriver):
    """Driver replaying queued outcomes; exceptions in a queue are raised."""

    name: ProviderName
    submissions: list[Any] = field(default_factory=list)
    reports: list[Any] = field(default_factory=list)
    images: tuple[str, ...] = ("https://cdn.genrouter.test/result.jpg",)
    generate_calls: int = 0
    progress_calls: int = 0
    results_calls: int = 0

    async def generate(self, request: GenerationRequest) -> ProviderSubmission:
        self.generate_calls += 1
        if not self.submissions:
            return ProviderSubmission(
                job_ref=f"ref-{self.generate_calls}", status=JobStatus.QUEUED, progress=0
            )
        outcome = self.submissions.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def get_progress(self, job_ref: str) -> ProviderProgress:
        self.progress_calls += 1
        if not self.reports:
            raise AssertionError(f"unexpected status query for {job_ref}")
        outcome = self.reports.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def get_results(self, job_ref: str, *, paid: bool = False) -> ProviderResults:
        self.results_calls += 1
        return ProviderResults(images=self.images, payment_status="paid" if paid else "free")

    async def check_health(self) -> ProviderHealth:
        return ProviderHealth(ok=True, latency_ms=1)


class RecordingSink(TelemetrySink):
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any], str | None]] = []

    async def write(
        self, event_type: str, data: dict[str, Any], *, user_id: str | None = None
    ) -> None:
        self.events.append((event_type, dict(data), user_id))


class FailingSink(TelemetrySink):
    def __init__(self) -> None:
        self.calls = 0

    async def write(
        self, event_type: str, data: dict[str, Any], *, user_id: str | None = None
    ) -> None:
        self.calls += 1
        raise RuntimeError("analytics store unavailable")
