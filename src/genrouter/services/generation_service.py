"""Generation facade: submit, query progress and list results."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from ..config import GenerationMode
from ..domain.job_ids import make_job_id
from ..domain.models import (
    GenerationRequest,
    Job,
    JobStatus,
    ProgressSnapshot,
    ProviderName,
    ProviderSubmission,
    ResultsSnapshot,
)
from ..exceptions import (
    GENERIC_FAILURE_MESSAGE,
    ConfigError,
    DuplicateSubmissionError,
    describe_failure,
    redact_secrets,
)
from ..jobs.job_refresher import JobRefresher
from ..jobs.job_store import JobStore
from ..jobs.progress_normalizer import STATUS_MESSAGES
from ..routing.orchestrator import FailoverOrchestrator
from ..routing.selector import ProviderSelector
from ..workers.refresh_worker import RefreshWorker

logger = logging.getLogger(__name__)


class GenerationService:
    """Entry point used by the web layer.

    ``generate`` routes a request and records the job. ``get_progress`` and
    ``get_results`` answer from the store and only contact the provider for
    jobs that are not terminal yet, either inline or through the refresh
    worker.
    """

    def __init__(
        self,
        *,
        store: JobStore,
        orchestrator: FailoverOrchestrator,
        selector: ProviderSelector,
        refresher: JobRefresher,
        mode: GenerationMode = "mock",
        worker: RefreshWorker | None = None,
        debug_errors: bool = False,
        secrets: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._selector = selector
        self._refresher = refresher
        self._mode = mode
        self._worker = worker
        self._debug_errors = debug_errors
        self._secrets = tuple(secrets)
        self._in_flight: set[str] = set()

    async def generate(
        self,
        request: GenerationRequest,
        *,
        request_id: str | None = None,
        user_id: str | None = None,
    ) -> Job:
        """Route ``request`` to a provider and persist the resulting job.

        A repeated ``request_id`` returns the job created for it; a concurrent
        duplicate raises :class:`DuplicateSubmissionError` instead of causing
        a second paid submission.
        """

        request_id = request_id or uuid.uuid4().hex
        if request_id in self._in_flight:
            raise DuplicateSubmissionError(
                f"Request '{request_id}' already has a submission in flight"
            )

        self._in_flight.add(request_id)
        try:
            existing = await self._store.find_by_request_id(request_id)
            if existing is not None:
                return existing
            primary = await self._primary_provider()
            routed = await self._orchestrator.run(
                request, primary, request_id=request_id, user_id=user_id
            )
            job_id = make_job_id(routed.provider, routed.submission.job_ref)
            job = await self._store.create(job_id, routed.provider, request_id=request_id)
            job = await self._apply_submission(job, routed.submission)
        finally:
            self._in_flight.discard(request_id)

        logger.info(
            "generation.job.created",
            extra={
                "job_id": job.id,
                "provider": job.provider.value,
                "status": job.status.value,
                "request_id": request_id,
                "fallback_used": routed.outcome.fallback_used,
            },
        )
        return job

    async def get_progress(self, job_id: str) -> ProgressSnapshot:
        job = await self._current(job_id)
        return ProgressSnapshot(
            job_id=job.id,
            status=job.status,
            progress=job.progress,
            message=STATUS_MESSAGES[job.status],
            error_message=self._public_error(job),
        )

    async def get_results(self, job_id: str, *, paid: bool = False) -> ResultsSnapshot:
        job = await self._current(job_id)
        images = job.result_urls if job.status is JobStatus.SUCCEEDED else ()
        return ResultsSnapshot(
            job_id=job.id,
            images=images,
            payment_status="paid" if paid else "free",
        )

    async def _current(self, job_id: str) -> Job:
        job = await self._store.get(job_id)
        if job.is_terminal:
            return job
        if self._worker is not None:
            self._worker.enqueue(job.id)
            return job
        return await self._refresher.refresh(job.id)

    async def _primary_provider(self) -> ProviderName:
        if self._mode == "mock":
            return ProviderName.MOCK
        if self._mode == "fal":
            return ProviderName.FAL
        if self._mode == "runware":
            return ProviderName.RUNWARE
        if self._mode == "router":
            return await self._selector.select()
        raise ConfigError(f"Unsupported generation mode '{self._mode}'")

    async def _apply_submission(self, job: Job, submission: ProviderSubmission) -> Job:
        if submission.status is JobStatus.QUEUED and not submission.progress:
            return job
        if submission.status is JobStatus.FAILED:
            return await self._store.update(
                job.id,
                status=JobStatus.FAILED,
                error_message=redact_secrets(
                    submission.message or GENERIC_FAILURE_MESSAGE, self._secrets
                ),
            )
        return await self._store.update(
            job.id,
            status=submission.status,
            progress=submission.progress,
            result_urls=submission.result_urls or None,
        )

    def _public_error(self, job: Job) -> str | None:
        if job.status is not JobStatus.FAILED:
            return None
        return describe_failure(
            job.error_message, debug=self._debug_errors, secrets=self._secrets
        )


__all__ = ["GenerationService"]
