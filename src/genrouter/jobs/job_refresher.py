"""Refresh a non-terminal job from its provider and persist the outcome."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from ..domain.job_ids import parse_job_id
from ..domain.models import Job, JobStatus, ProviderName
from ..exceptions import GenerationError, describe_failure, redact_secrets
from ..providers.providers_base import ProviderDriver
from .job_store import JobStore
from .progress_normalizer import normalize_failure, normalize_progress

logger = logging.getLogger(__name__)


class JobRefresher:
    """Query the owning provider once and write the normalized state.

    Terminal jobs are returned from the store without touching the provider.
    Any error during a refresh marks the job ``failed`` so no job can stay
    queued forever.
    """

    def __init__(
        self,
        *,
        store: JobStore,
        drivers: Mapping[ProviderName, ProviderDriver],
        secrets: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._drivers = dict(drivers)
        self._secrets = tuple(secrets)

    async def refresh(self, job_id: str) -> Job:
        job = await self._store.get(job_id)
        if job.is_terminal:
            return job

        provider, job_ref = parse_job_id(job.id)
        driver = self._driver_for(provider)
        try:
            report = await driver.get_progress(job_ref)
            normalized = normalize_progress(provider, report)
            result_urls = report.result_urls
            if normalized.status is JobStatus.SUCCEEDED and not result_urls:
                results = await driver.get_results(job_ref)
                result_urls = results.images
        except GenerationError as exc:
            return await self._mark_failed(job, exc)
        except Exception as exc:
            logger.exception("job.refresh.unexpected_error", extra={"job_id": job.id})
            return await self._mark_failed(job, exc)

        if normalized.status is JobStatus.FAILED:
            return await self._store.update(
                job.id,
                status=JobStatus.FAILED,
                error_message=redact_secrets(
                    report.message or f"{provider.value} reported failure", self._secrets
                ),
            )
        return await self._store.update(
            job.id,
            status=normalized.status,
            progress=normalized.progress,
            result_urls=result_urls if normalized.status is JobStatus.SUCCEEDED else None,
        )

    async def _mark_failed(self, job: Job, exc: BaseException) -> Job:
        normalized = normalize_failure(exc)
        message = describe_failure(exc, debug=True, secrets=self._secrets)
        logger.warning(
            "job.refresh.failed %s",
            message,
            extra={"job_id": job.id, "provider": job.provider.value},
        )
        return await self._store.update(
            job.id,
            status=normalized.status,
            progress=normalized.progress,
            error_message=message,
        )

    def _driver_for(self, provider: ProviderName) -> ProviderDriver:
        driver = self._drivers.get(provider)
        if driver is None:
            raise ValueError(f"Unsupported provider '{provider.value}'")
        return driver


__all__ = ["JobRefresher"]
