from __future__ import annotations

import pytest

from genrouter.domain.models import JobStatus, ProviderName
from genrouter.exceptions import JobNotFoundError
from genrouter.jobs.job_store import InMemoryJobStore


@pytest.mark.asyncio
async def test_create_and_get(simulated_clock):
    store = InMemoryJobStore(clock=simulated_clock)

    created = await store.create("mock_1", ProviderName.MOCK, request_id="req-1")
    fetched = await store.get("mock_1")

    assert fetched == created
    assert fetched.status is JobStatus.QUEUED
    assert fetched.progress == 0
    assert fetched.created_at == simulated_clock()
    assert fetched.request_id == "req-1"


@pytest.mark.asyncio
async def test_duplicate_create_rejected():
    store = InMemoryJobStore()
    await store.create("fal_a", ProviderName.FAL)

    with pytest.raises(ValueError):
        await store.create("fal_a", ProviderName.FAL)


@pytest.mark.asyncio
async def test_unknown_job_raises():
    store = InMemoryJobStore()

    with pytest.raises(JobNotFoundError):
        await store.get("fal_missing")
    with pytest.raises(JobNotFoundError):
        await store.update("fal_missing", status=JobStatus.FAILED)


@pytest.mark.asyncio
async def test_non_terminal_updates_and_clamp(simulated_clock):
    store = InMemoryJobStore(clock=simulated_clock)
    await store.create("rw_a", ProviderName.RUNWARE)

    simulated_clock.advance(5)
    job = await store.update("rw_a", status=JobStatus.PROCESSING, progress=130)

    assert job.status is JobStatus.PROCESSING
    assert job.progress == 100
    assert job.updated_at == simulated_clock()

    job = await store.update("rw_a", progress=40)
    assert job.progress == 40


@pytest.mark.asyncio
async def test_terminal_record_is_write_once(simulated_clock):
    store = InMemoryJobStore(clock=simulated_clock)
    await store.create("fal_b", ProviderName.FAL)
    terminal = await store.update(
        "fal_b", status=JobStatus.SUCCEEDED, progress=80, result_urls=("https://cdn/1.jpg",)
    )

    assert terminal.progress == 100

    simulated_clock.advance(30)
    after = await store.update(
        "fal_b", status=JobStatus.PROCESSING, progress=10, error_message="late"
    )

    assert after == terminal
    assert await store.get("fal_b") == terminal


@pytest.mark.asyncio
async def test_failed_forces_full_progress():
    store = InMemoryJobStore()
    await store.create("mock_c", ProviderName.MOCK, status=JobStatus.PROCESSING, progress=35)

    job = await store.update("mock_c", status=JobStatus.FAILED, error_message="gone")

    assert job.progress == 100
    assert job.error_message == "gone"


@pytest.mark.asyncio
async def test_returned_records_are_copies():
    store = InMemoryJobStore()
    job = await store.create("mock_d", ProviderName.MOCK)

    job.status = JobStatus.SUCCEEDED

    assert (await store.get("mock_d")).status is JobStatus.QUEUED


@pytest.mark.asyncio
async def test_find_by_request_id_returns_first_job_for_request():
    store = InMemoryJobStore()
    first = await store.create("fal_a", ProviderName.FAL, request_id="client-1")
    await store.create("rw_b", ProviderName.RUNWARE, request_id="client-1")
    await store.update("fal_a", status=JobStatus.PROCESSING, progress=20)

    found = await store.find_by_request_id("client-1")

    assert found.id == first.id
    assert found.progress == 20
    assert await store.find_by_request_id("client-2") is None
