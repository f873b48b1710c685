"""SQLAlchemy-backed job state store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.db_models import GenerationJobModel
from ..domain.clock import Clock, utcnow
from ..domain.models import Job, JobStatus, ProviderName
from ..exceptions import JobNotFoundError
from ..jobs.job_store import JobStore, apply_update
from ..jobs.progress_normalizer import canonical_progress

logger = logging.getLogger(__name__)


class SqlAlchemyJobStore(JobStore):
    """Persist job records in the ``jobs`` table.

    Blocking session work runs in a worker thread. The terminal check and the
    write happen in one transaction, so a terminal row is never rewritten.
    """

    def __init__(
        self, session_factory: Callable[[], Session], *, clock: Clock | None = None
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or utcnow

    async def create(
        self,
        job_id: str,
        provider: ProviderName,
        *,
        status: JobStatus = JobStatus.QUEUED,
        progress: int = 0,
        request_id: str | None = None,
    ) -> Job:
        return await asyncio.to_thread(
            self._create_sync, job_id, provider, status, progress, request_id
        )

    async def get(self, job_id: str) -> Job:
        return await asyncio.to_thread(self._get_sync, job_id)

    async def find_by_request_id(self, request_id: str) -> Job | None:
        return await asyncio.to_thread(self._find_by_request_sync, request_id)

    async def update(
        self,
        job_id: str,
        *,
        status: JobStatus | None = None,
        progress: int | None = None,
        error_message: str | None = None,
        result_urls: tuple[str, ...] | None = None,
    ) -> Job:
        return await asyncio.to_thread(
            self._update_sync, job_id, status, progress, error_message, result_urls
        )

    def _create_sync(
        self,
        job_id: str,
        provider: ProviderName,
        status: JobStatus,
        progress: int,
        request_id: str | None,
    ) -> Job:
        now = self._clock()
        model = GenerationJobModel(
            id=job_id,
            provider=provider.value,
            status=status.value,
            progress=canonical_progress(status, progress),
            error_message=None,
            result_urls=[],
            request_id=request_id,
            created_at=now,
            updated_at=now,
        )
        with self._session_factory() as session:
            session.add(model)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ValueError(f"Job '{job_id}' already exists") from exc
            return self._to_domain(model)

    def _get_sync(self, job_id: str) -> Job:
        with self._session_factory() as session:
            model = session.get(GenerationJobModel, job_id)
            if model is None:
                raise JobNotFoundError(f"Job '{job_id}' not found")
            return self._to_domain(model)

    def _find_by_request_sync(self, request_id: str) -> Job | None:
        stmt = (
            select(GenerationJobModel)
            .where(GenerationJobModel.request_id == request_id)
            .order_by(GenerationJobModel.created_at)
            .limit(1)
        )
        with self._session_factory() as session:
            model = session.scalars(stmt).first()
            return self._to_domain(model) if model is not None else None

    def _update_sync(
        self,
        job_id: str,
        status: JobStatus | None,
        progress: int | None,
        error_message: str | None,
        result_urls: tuple[str, ...] | None,
    ) -> Job:
        with self._session_factory() as session:
            model = session.get(GenerationJobModel, job_id, with_for_update=True)
            if model is None:
                raise JobNotFoundError(f"Job '{job_id}' not found")
            current = self._to_domain(model)
            updated = apply_update(
                current,
                status=status,
                progress=progress,
                error_message=error_message,
                result_urls=result_urls,
                now=self._clock(),
            )
            if updated is current:
                return current
            model.status = updated.status.value
            model.progress = updated.progress
            model.error_message = updated.error_message
            model.result_urls = list(updated.result_urls)
            model.updated_at = updated.updated_at
            session.commit()
            return updated

    @staticmethod
    def _to_domain(model: GenerationJobModel) -> Job:
        return Job(
            id=model.id,
            provider=ProviderName(model.provider),
            status=JobStatus(model.status),
            progress=model.progress,
            created_at=_aware(model.created_at),
            updated_at=_aware(model.updated_at),
            error_message=model.error_message,
            result_urls=tuple(model.result_urls or ()),
            request_id=model.request_id,
        )


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


__all__ = ["SqlAlchemyJobStore"]
