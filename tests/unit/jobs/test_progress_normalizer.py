from __future__ import annotations

import pytest

from genrouter.domain.models import JobStatus, ProviderName, ProviderProgress
from genrouter.exceptions import (
    ConfigError,
    NotFoundError,
    ProviderRequestError,
    ProviderUnavailableError,
)
from genrouter.jobs.progress_normalizer import normalize_failure, normalize_progress


@pytest.mark.parametrize(
    ("provider", "native", "expected"),
    [
        (ProviderName.FAL, "IN_QUEUE", JobStatus.QUEUED),
        (ProviderName.FAL, "IN_PROGRESS", JobStatus.PROCESSING),
        (ProviderName.FAL, "COMPLETED", JobStatus.SUCCEEDED),
        (ProviderName.FAL, "FAILED", JobStatus.FAILED),
        (ProviderName.RUNWARE, "pending", JobStatus.QUEUED),
        (ProviderName.RUNWARE, "running", JobStatus.PROCESSING),
        (ProviderName.RUNWARE, "completed", JobStatus.SUCCEEDED),
        (ProviderName.RUNWARE, "error", JobStatus.FAILED),
        (ProviderName.MOCK, "queued", JobStatus.QUEUED),
        (ProviderName.MOCK, "running", JobStatus.PROCESSING),
        (ProviderName.MOCK, "succeeded", JobStatus.SUCCEEDED),
    ],
)
def test_vocabularies_map_to_canonical_states(provider, native, expected) -> None:
    assert normalize_progress(provider, ProviderProgress(status=native)).status is expected


@pytest.mark.parametrize("native", ["COMPLETED", "FAILED"])
def test_terminal_states_always_report_full_progress(native) -> None:
    normalized = normalize_progress(ProviderName.FAL, ProviderProgress(status=native, progress=12))

    assert normalized.progress == 100


def test_running_without_number_is_estimated() -> None:
    normalized = normalize_progress(ProviderName.RUNWARE, ProviderProgress(status="running"))

    assert normalized.status is JobStatus.PROCESSING
    assert normalized.progress == 50


def test_progress_is_clamped() -> None:
    high = normalize_progress(ProviderName.MOCK, ProviderProgress(status="running", progress=140))
    low = normalize_progress(ProviderName.MOCK, ProviderProgress(status="queued", progress=-5))

    assert high.progress == 100
    assert low.progress == 0


def test_unknown_vocabulary_is_processing() -> None:
    normalized = normalize_progress(ProviderName.FAL, ProviderProgress(status="WARMING_UP"))

    assert normalized.status is JobStatus.PROCESSING


def test_terminal_message_is_canonical() -> None:
    normalized = normalize_progress(
        ProviderName.MOCK, ProviderProgress(status="succeeded", message="done!!")
    )

    assert normalized.message == "Generation complete!"


@pytest.mark.parametrize(
    "exc",
    [
        NotFoundError("gone", provider="fal"),
        ProviderRequestError("bad", provider="runware", status_code=410),
        ProviderUnavailableError("down", provider="fal", attempts=3),
        ConfigError("no key"),
        RuntimeError("bug"),
    ],
)
def test_every_refresh_failure_is_terminal_failed(exc) -> None:
    normalized = normalize_failure(exc)

    assert normalized.status is JobStatus.FAILED
    assert normalized.progress == 100
