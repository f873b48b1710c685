"""Map provider-native status vocabularies onto the canonical job states.

Terminal states always report progress 100: it signals that the attempt has
concluded, not how good the outcome was. A provider that no longer knows a
job (404 / other 4xx on a status query) yields ``failed``, never ``queued``,
so a dropped job cannot be polled forever.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from ..domain.models import JobStatus, ProviderName, ProviderProgress
from ..exceptions import (
    ConfigError,
    GenerationError,
    NotFoundError,
    ProviderRequestError,
    ProviderUnavailableError,
)

logger = structlog.get_logger(__name__)

RUNNING_PROGRESS_ESTIMATE = 50

FAL_STATUSES: dict[str, JobStatus] = {
    "in_queue": JobStatus.QUEUED,
    "queued": JobStatus.QUEUED,
    "pending": JobStatus.QUEUED,
    "in_progress": JobStatus.PROCESSING,
    "processing": JobStatus.PROCESSING,
    "running": JobStatus.PROCESSING,
    "completed": JobStatus.SUCCEEDED,
    "success": JobStatus.SUCCEEDED,
    "succeeded": JobStatus.SUCCEEDED,
    "ok": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
    "cancelled": JobStatus.FAILED,
    "canceled": JobStatus.FAILED,
}

RUNWARE_STATUSES: dict[str, JobStatus] = {
    "queued": JobStatus.QUEUED,
    "pending": JobStatus.QUEUED,
    "running": JobStatus.PROCESSING,
    "processing": JobStatus.PROCESSING,
    "succeeded": JobStatus.SUCCEEDED,
    "success": JobStatus.SUCCEEDED,
    "completed": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
}

MOCK_STATUSES: dict[str, JobStatus] = {
    "queued": JobStatus.QUEUED,
    "running": JobStatus.PROCESSING,
    "succeeded": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
}

STATUS_MESSAGES: dict[JobStatus, str] = {
    JobStatus.QUEUED: "Job queued...",
    JobStatus.PROCESSING: "Processing your images...",
    JobStatus.SUCCEEDED: "Generation complete!",
    JobStatus.FAILED: "Generation failed",
}


@dataclass(frozen=True, slots=True)
class NormalizedProgress:
    status: JobStatus
    progress: int
    message: str


def vocabulary_for(provider: ProviderName) -> dict[str, JobStatus]:
    if provider is ProviderName.FAL:
        return FAL_STATUSES
    if provider is ProviderName.RUNWARE:
        return RUNWARE_STATUSES
    if provider is ProviderName.MOCK:
        return MOCK_STATUSES
    raise ValueError(f"Unsupported provider '{provider}'")


def clamp_progress(value: int | float | None) -> int:
    if value is None:
        return 0
    return max(0, min(100, int(value)))


def canonical_progress(status: JobStatus, progress: int | float | None) -> int:
    """Progress value consistent with ``status``."""

    if status.is_terminal:
        return 100
    if progress is None:
        return RUNNING_PROGRESS_ESTIMATE if status is JobStatus.PROCESSING else 0
    return clamp_progress(progress)


def normalize_progress(provider: ProviderName, report: ProviderProgress) -> NormalizedProgress:
    """Translate an adapter status report into the canonical taxonomy."""

    native = (report.status or "").strip().lower()
    status = vocabulary_for(provider).get(native)
    if status is None:
        logger.warning("progress.unknown_status", provider=provider.value, status=report.status)
        status = JobStatus.PROCESSING
    return NormalizedProgress(
        status=status,
        progress=canonical_progress(status, report.progress),
        message=report.message if report.message and not status.is_terminal else STATUS_MESSAGES[status],
    )


def normalize_failure(exc: BaseException) -> NormalizedProgress:
    """Status for a job whose refresh raised ``exc``: always terminal ``failed``."""

    if isinstance(exc, NotFoundError):
        reason = "not_found"
    elif isinstance(exc, ProviderRequestError):
        reason = "rejected"
    elif isinstance(exc, ProviderUnavailableError):
        reason = "unreachable"
    elif isinstance(exc, ConfigError):
        reason = "config"
    elif isinstance(exc, GenerationError):
        reason = "error"
    else:
        reason = "unexpected"
    logger.info("progress.failure_normalized", reason=reason, error_type=exc.__class__.__name__)
    return NormalizedProgress(
        status=JobStatus.FAILED,
        progress=100,
        message=STATUS_MESSAGES[JobStatus.FAILED],
    )


__all__ = [
    "FAL_STATUSES",
    "MOCK_STATUSES",
    "NormalizedProgress",
    "RUNWARE_STATUSES",
    "STATUS_MESSAGES",
    "canonical_progress",
    "clamp_progress",
    "normalize_failure",
    "normalize_progress",
    "vocabulary_for",
]
