"""Job state store: the single owner of job records.

Once a job reaches ``succeeded`` or ``failed`` its record never changes
again; later writes are logged and ignored.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import replace

from ..domain.clock import Clock, utcnow
from ..domain.models import Job, JobStatus, ProviderName
from ..exceptions import JobNotFoundError
from .progress_normalizer import canonical_progress

logger = logging.getLogger(__name__)


class JobStore(ABC):
    """Persistence contract shared by the in-memory and SQL stores."""

    @abstractmethod
    async def create(
        self,
        job_id: str,
        provider: ProviderName,
        *,
        status: JobStatus = JobStatus.QUEUED,
        progress: int = 0,
        request_id: str | None = None,
    ) -> Job:
        """Persist a new job record; ``job_id`` must be unused."""

    @abstractmethod
    async def get(self, job_id: str) -> Job:
        """Return the job or raise :class:`JobNotFoundError`."""

    @abstractmethod
    async def find_by_request_id(self, request_id: str) -> Job | None:
        """Return the job created for ``request_id``, if any."""

    @abstractmethod
    async def update(
        self,
        job_id: str,
        *,
        status: JobStatus | None = None,
        progress: int | None = None,
        error_message: str | None = None,
        result_urls: tuple[str, ...] | None = None,
    ) -> Job:
        """Apply a state change unless the job is already terminal."""


def apply_update(
    job: Job,
    *,
    status: JobStatus | None,
    progress: int | None,
    error_message: str | None,
    result_urls: tuple[str, ...] | None,
    now,
) -> Job:
    """Return ``job`` with the change applied, enforcing the write-once rule."""

    if job.is_terminal:
        logger.info(
            "job_store.update.ignored",
            extra={"job_id": job.id, "status": job.status.value},
        )
        return job
    new_status = status or job.status
    return replace(
        job,
        status=new_status,
        progress=canonical_progress(
            new_status, job.progress if progress is None else progress
        ),
        error_message=error_message if error_message is not None else job.error_message,
        result_urls=tuple(result_urls) if result_urls is not None else job.result_urls,
        updated_at=now,
    )


class InMemoryJobStore(JobStore):
    """Arena of job records keyed by id, private to one service instance."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utcnow
        self._jobs: dict[str, Job] = {}
        self._by_request: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        job_id: str,
        provider: ProviderName,
        *,
        status: JobStatus = JobStatus.QUEUED,
        progress: int = 0,
        request_id: str | None = None,
    ) -> Job:
        async with self._lock:
            if job_id in self._jobs:
                raise ValueError(f"Job '{job_id}' already exists")
            now = self._clock()
            job = Job(
                id=job_id,
                provider=provider,
                status=status,
                progress=canonical_progress(status, progress),
                created_at=now,
                updated_at=now,
                request_id=request_id,
            )
            self._jobs[job_id] = job
            if request_id is not None:
                self._by_request.setdefault(request_id, job_id)
        logger.info(
            "job_store.created",
            extra={"job_id": job_id, "provider": provider.value, "status": status.value},
        )
        return replace(job)

    async def get(self, job_id: str) -> Job:
        async with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job '{job_id}' not found")
        return replace(job)

    async def find_by_request_id(self, request_id: str) -> Job | None:
        async with self._lock:
            job_id = self._by_request.get(request_id)
            job = self._jobs.get(job_id) if job_id is not None else None
        return replace(job) if job is not None else None

    async def update(
        self,
        job_id: str,
        *,
        status: JobStatus | None = None,
        progress: int | None = None,
        error_message: str | None = None,
        result_urls: tuple[str, ...] | None = None,
    ) -> Job:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(f"Job '{job_id}' not found")
            updated = apply_update(
                job,
                status=status,
                progress=progress,
                error_message=error_message,
                result_urls=result_urls,
                now=self._clock(),
            )
            self._jobs[job_id] = updated
        return replace(updated)

    def __len__(self) -> int:
        return len(self._jobs)


__all__ = ["InMemoryJobStore", "JobStore", "apply_update"]
