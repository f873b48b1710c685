"""Cost-free mock driver driven by a simulated clock.

A mock job walks through the same lifecycle as a real one: processing with
progress 0→10 during the first tenth of the simulated duration, 10→95 until
nine tenths, then succeeded at 100.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from ..domain.clock import Clock, utcnow
from ..domain.models import (
    GenerationRequest,
    JobStatus,
    ProviderHealth,
    ProviderName,
    ProviderProgress,
    ProviderResults,
    ProviderSubmission,
)
from .providers_base import ProviderDriver

logger = logging.getLogger(__name__)

LOCAL_PREVIEW_IMAGES = (
    "/assets/mock/family1.jpg",
    "/assets/mock/family2.jpg",
)
PLACEHOLDER_URL = "https://picsum.photos/1024/1024?random={job_ref}-{index}"


@dataclass(slots=True)
class MockJobState:
    job_ref: str
    created_at: datetime
    request: GenerationRequest | None = None


class MockJobRegistry:
    """Arena of simulated jobs; one instance per driver, never a module global."""

    def __init__(self) -> None:
        self._jobs: dict[str, MockJobState] = {}

    def add(self, state: MockJobState) -> None:
        self._jobs[state.job_ref] = state

    def get(self, job_ref: str) -> MockJobState | None:
        return self._jobs.get(job_ref)

    def __len__(self) -> int:
        return len(self._jobs)

    def evict_started_before(self, cutoff: datetime) -> int:
        """Drop simulations created before ``cutoff``; returns how many went."""
        stale = [ref for ref, state in self._jobs.items() if state.created_at < cutoff]
        for ref in stale:
            del self._jobs[ref]
        return len(stale)


def simulate_progress(elapsed_seconds: float, duration_seconds: float) -> ProviderProgress:
    """Apply the mock timing law for ``elapsed_seconds`` into the simulation."""

    if duration_seconds <= 0:
        raise ValueError("duration_seconds must be positive")
    elapsed = max(0.0, elapsed_seconds)
    if elapsed < 0.1 * duration_seconds:
        return ProviderProgress(
            status="running",
            progress=math.floor(10 * elapsed / duration_seconds),
            message="Processing images...",
        )
    if elapsed < 0.9 * duration_seconds:
        progress = math.floor(
            10 + 80 * (elapsed - 0.1 * duration_seconds) / (0.8 * duration_seconds)
        )
        return ProviderProgress(
            status="running",
            progress=min(95, progress),
            message="Generating your family mosaic...",
        )
    return ProviderProgress(status="succeeded", progress=100, message="Generation complete!")


def created_from_ref(job_ref: str) -> datetime | None:
    """Recover the creation time encoded in refs issued by :class:`MockDriver`."""
    prefix, sep, _ = job_ref.partition("_")
    if not sep or not prefix.isdigit():
        return None
    return datetime.fromtimestamp(int(prefix) / 1000, tz=timezone.utc)


def mock_preview_urls(job_ref: str, count: int = 3) -> tuple[str, ...]:
    """Local preview assets first, placeholder service for the remainder."""

    urls = []
    for index in range(count):
        if index < len(LOCAL_PREVIEW_IMAGES):
            urls.append(LOCAL_PREVIEW_IMAGES[index])
        else:
            urls.append(PLACEHOLDER_URL.format(job_ref=job_ref, index=index))
    return tuple(urls)


@dataclass(slots=True)
class MockDriver(ProviderDriver):
    """Drop-in substitute for any real driver; performs no network I/O."""

    registry: MockJobRegistry = field(default_factory=MockJobRegistry)
    clock: Clock = field(default_factory=lambda: utcnow)
    duration_seconds: float = 90.0
    preview_count: int = 3
    log: logging.Logger = field(default_factory=lambda: logger)

    name = ProviderName.MOCK

    async def generate(self, request: GenerationRequest) -> ProviderSubmission:
        now = self.clock()
        # A simulation has settled after 0.9 of the duration; keep a full duration.
        self.registry.evict_started_before(now - timedelta(seconds=self.duration_seconds))
        job_ref = f"{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:7]}"
        self.registry.add(MockJobState(job_ref=job_ref, created_at=now, request=request))
        self.log.info("mock.job.created", extra={"job_ref": job_ref})
        return ProviderSubmission(
            job_ref=job_ref,
            status=JobStatus.QUEUED,
            progress=0,
            message="Job queued...",
        )

    async def get_progress(self, job_ref: str) -> ProviderProgress:
        state = self.registry.get(job_ref)
        created_at = state.created_at if state is not None else created_from_ref(job_ref)
        if created_at is None:
            # Unknown refs (e.g. after a restart) start a fresh simulation.
            self.registry.add(MockJobState(job_ref=job_ref, created_at=self.clock()))
            return ProviderProgress(status="queued", progress=0, message="Job queued...")
        elapsed = (self.clock() - created_at).total_seconds()
        return simulate_progress(elapsed, self.duration_seconds)

    async def get_results(self, job_ref: str, *, paid: bool = False) -> ProviderResults:
        return ProviderResults(
            images=mock_preview_urls(job_ref, self.preview_count),
            payment_status="paid" if paid else "free",
        )

    async def check_health(self) -> ProviderHealth:
        return ProviderHealth(ok=True, latency_ms=0)


__all__ = [
    "MockDriver",
    "MockJobRegistry",
    "MockJobState",
    "created_from_ref",
    "mock_preview_urls",
    "simulate_progress",
]
