from __future__ import annotations

import pytest

from genrouter.domain.models import GenerationRequest, JobStatus
from genrouter.exceptions import ConfigError, NotFoundError, ProviderRequestError
from genrouter.providers.providers_base import RetryPolicy
from genrouter.providers.providers_runware import RunwareDriver
from tests.helpers.http import DummyHTTPResponse, configure_httpx


async def no_sleep(seconds: float) -> None:
    return None


def make_driver(**overrides) -> RunwareDriver:
    params = dict(
        api_key="rw-secret",
        api_url="https://api.runware.test/v1",
        policy=RetryPolicy(timeout_seconds=1.0, retries=2, backoff_seconds=0.0),
        sleep=no_sleep,
    )
    params.update(overrides)
    return RunwareDriver(**params)


@pytest.mark.asyncio
async def test_generate_returns_terminal_submission(monkeypatch, generation_request):
    calls = configure_httpx(
        monkeypatch,
        [
            DummyHTTPResponse(
                200,
                {"data": [{"taskUUID": "task-1", "imageURL": "https://im.runware.test/1.jpg"}]},
            )
        ],
        [],
    )

    submission = await make_driver().generate(generation_request)

    assert submission.job_ref == "task-1"
    assert submission.status is JobStatus.SUCCEEDED
    assert submission.progress == 100
    assert submission.result_urls == ("https://im.runware.test/1.jpg",)

    _, url, headers, payload = calls[0]
    assert url == "https://api.runware.test/v1"
    assert headers["Authorization"] == "Bearer rw-secret"
    task = payload[0]
    assert task["taskType"] == "imageInference"
    assert task["deliveryMethod"] == "sync"
    assert task["model"] == "runware:101@1"
    assert task["width"] == 1024 and task["height"] == 1024
    assert task["imageURL"] == "https://images.photos.test/family.jpg"


@pytest.mark.asyncio
async def test_retries_reuse_the_same_task_uuid(monkeypatch, generation_request):
    calls = configure_httpx(
        monkeypatch,
        [
            DummyHTTPResponse(503, text="overloaded"),
            DummyHTTPResponse(200, {"data": [{"imageURL": "https://im.runware.test/2.jpg"}]}),
        ],
        [],
    )

    submission = await make_driver().generate(generation_request)

    uuids = {call[3][0]["taskUUID"] for call in calls}
    assert len(calls) == 2
    assert len(uuids) == 1
    assert submission.job_ref in uuids


@pytest.mark.asyncio
async def test_unmapped_template_is_config_error(monkeypatch):
    calls = configure_httpx(monkeypatch, [], [])
    request = GenerationRequest(files=(), style="anime", template="wedding")

    with pytest.raises(ConfigError):
        await make_driver().generate(request)

    assert calls == []


@pytest.mark.asyncio
async def test_missing_key_is_config_error(monkeypatch, generation_request):
    configure_httpx(monkeypatch, [], [])

    with pytest.raises(ConfigError):
        await make_driver(api_key=None).generate(generation_request)


@pytest.mark.asyncio
async def test_empty_data_is_request_error(monkeypatch, generation_request):
    configure_httpx(monkeypatch, [DummyHTTPResponse(200, {"data": []})], [])

    with pytest.raises(ProviderRequestError):
        await make_driver().generate(generation_request)


@pytest.mark.asyncio
async def test_placeholder_image_url_is_not_forwarded(monkeypatch):
    calls = configure_httpx(
        monkeypatch, [DummyHTTPResponse(200, {"data": [{"imageURL": "https://x/y.jpg"}]})], []
    )
    request = GenerationRequest(
        files=("https://example.com/upload.jpg",), style="realistic", template="christmas"
    )

    await make_driver().generate(request)

    assert "imageURL" not in calls[0][3][0]


@pytest.mark.asyncio
async def test_get_progress_and_results(monkeypatch):
    body = {"status": "succeeded", "progress": 100, "resultUrls": ["https://im/3.jpg"]}
    calls = configure_httpx(
        monkeypatch, [], [DummyHTTPResponse(200, body), DummyHTTPResponse(200, body)]
    )
    driver = make_driver()

    report = await driver.get_progress("task-3")
    results = await driver.get_results("task-3", paid=True)

    assert report.status == "succeeded"
    assert report.result_urls == ("https://im/3.jpg",)
    assert results.images == ("https://im/3.jpg",)
    assert results.payment_status == "paid"
    assert calls[0][1] == "https://api.runware.test/v1/jobs/task-3"


@pytest.mark.asyncio
async def test_get_progress_unknown_job_raises_not_found(monkeypatch):
    configure_httpx(monkeypatch, [], [DummyHTTPResponse(404, {"error": "no such job"})])

    with pytest.raises(NotFoundError):
        await make_driver().get_progress("task-404")


@pytest.mark.asyncio
async def test_health_check_accepts_missing_endpoint(monkeypatch):
    configure_httpx(monkeypatch, [], [DummyHTTPResponse(404, text="")])

    health = await make_driver().check_health()

    assert health.ok is True
    assert "404" in (health.error or "")


@pytest.mark.asyncio
async def test_health_check_redacts_bearer_token(monkeypatch):
    configure_httpx(
        monkeypatch, [], [DummyHTTPResponse(500, text="echo Bearer rw-secret")]
    )

    health = await make_driver().check_health()

    assert health.ok is False
    assert "rw-secret" not in (health.error or "")
