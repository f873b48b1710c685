"""FAL provider driver: queue submission followed by bounded status polling."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..domain.models import (
    GenerationRequest,
    JobStatus,
    ProviderHealth,
    ProviderName,
    ProviderProgress,
    ProviderResults,
    ProviderSubmission,
)
from ..exceptions import (
    ConfigError,
    GenerationError,
    NotFoundError,
    ProviderRequestError,
    TransientError,
    describe_failure,
    redact_secrets,
)
from ..jobs.progress_normalizer import normalize_progress
from .providers_base import (
    ProviderDriver,
    RetryPolicy,
    Sleep,
    call_with_retry,
    raise_for_provider_status,
    transient_from_transport,
)
from .templates import build_prompt

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FalDriver(ProviderDriver):
    """Call the FAL queue API and poll until the task settles or the bound hits."""

    api_key: str | None
    api_url: str = "https://queue.fal.run"
    model_id: str = "fal-ai/flux/schnell"
    health_url_base: str = "https://fal.ai/models"
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    poll_interval_seconds: float = 2.0
    poll_max_attempts: int = 30
    poll_deadline_seconds: float = 60.0
    health_timeout_seconds: float = 5.0
    sleep: Sleep = field(default_factory=lambda: asyncio.sleep)
    log: logging.Logger = field(default_factory=lambda: logger)

    name = ProviderName.FAL

    async def generate(self, request: GenerationRequest) -> ProviderSubmission:
        api_key = self._require_credentials()
        payload = self._build_payload(request)

        request_id = await call_with_retry(
            lambda: self._submit(payload, api_key=api_key),
            policy=self.policy,
            provider=self.name,
            label="submit",
            sleep=self.sleep,
            log=self.log,
        )
        self.log.info(
            "fal.queue.submitted",
            extra={"request_id": request_id, "model_id": self.model_id},
        )
        return await self._poll_until_settled(request_id, api_key=api_key)

    async def get_progress(self, job_ref: str) -> ProviderProgress:
        api_key = self._require_credentials()
        return await call_with_retry(
            lambda: self._fetch_status(job_ref, api_key=api_key),
            policy=self.policy,
            provider=self.name,
            label="status",
            sleep=self.sleep,
            log=self.log,
        )

    async def get_results(self, job_ref: str, *, paid: bool = False) -> ProviderResults:
        api_key = self._require_credentials()
        data = await call_with_retry(
            lambda: self._fetch_response(job_ref, api_key=api_key),
            policy=self.policy,
            provider=self.name,
            label="results",
            sleep=self.sleep,
            log=self.log,
        )
        return ProviderResults(
            images=extract_result_urls(data),
            payment_status="paid" if paid else "free",
        )

    async def check_health(self) -> ProviderHealth:
        if not self.api_key:
            return ProviderHealth(ok=False, latency_ms=None, error="FAL_API_KEY not configured")
        if not self.model_id:
            return ProviderHealth(ok=False, latency_ms=None, error="FAL_MODEL_ID not configured")

        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.health_timeout_seconds) as client:
                response = await asyncio.wait_for(
                    client.get(
                        f"{self.health_url_base}/{self.model_id}",
                        headers=self._headers(self.api_key),
                    ),
                    timeout=self.health_timeout_seconds,
                )
        except asyncio.TimeoutError:
            return ProviderHealth(
                ok=False, latency_ms=_elapsed_ms(started), error="Health check timeout"
            )
        except httpx.HTTPError as exc:
            return ProviderHealth(
                ok=False,
                latency_ms=_elapsed_ms(started),
                error=redact_secrets(str(exc) or exc.__class__.__name__, [self.api_key]),
            )

        latency_ms = _elapsed_ms(started)
        # 404 still proves the API answered; the model page may just be missing.
        if 200 <= response.status_code < 300 or response.status_code == 404:
            return ProviderHealth(ok=True, latency_ms=latency_ms)
        return ProviderHealth(
            ok=False,
            latency_ms=latency_ms,
            error=f"Health check failed: {response.status_code}",
        )

    async def _poll_until_settled(self, request_id: str, *, api_key: str) -> ProviderSubmission:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.poll_deadline_seconds
        last = ProviderProgress(status="IN_QUEUE", progress=0)

        for attempt in range(1, self.poll_max_attempts + 1):
            if loop.time() >= deadline:
                break
            try:
                last = await asyncio.wait_for(
                    self._fetch_status(request_id, api_key=api_key),
                    timeout=self.policy.timeout_seconds,
                )
            except NotFoundError:
                # The queue may not expose a fresh request yet.
                self.log.info(
                    "fal.poll.not_visible",
                    extra={"request_id": request_id, "attempt": attempt},
                )
            except (TransientError, asyncio.TimeoutError) as exc:
                self.log.warning(
                    "fal.poll.transient_error %s",
                    exc,
                    extra={"request_id": request_id, "attempt": attempt},
                )
            except GenerationError as exc:
                # The request is already accepted and billed: record it, never fail over.
                message = describe_failure(exc, debug=True, secrets=[self.api_key])
                self.log.warning(
                    "fal.poll.rejected %s",
                    message,
                    extra={"request_id": request_id, "attempt": attempt},
                )
                return ProviderSubmission(
                    job_ref=request_id,
                    status=JobStatus.FAILED,
                    progress=100,
                    message=message,
                )
            else:
                normalized = normalize_progress(self.name, last)
                if normalized.status is JobStatus.SUCCEEDED:
                    return await self._completed_submission(request_id)
                if normalized.status is JobStatus.FAILED:
                    self.log.warning(
                        "fal.task.failed",
                        extra={"request_id": request_id, "detail": last.message},
                    )
                    return ProviderSubmission(
                        job_ref=request_id,
                        status=JobStatus.FAILED,
                        progress=100,
                        message=last.message or "FAL task failed",
                    )
            await self.sleep(self.poll_interval_seconds)

        normalized = normalize_progress(self.name, last)
        self.log.info(
            "fal.poll.bound_reached",
            extra={"request_id": request_id, "status": normalized.status.value},
        )
        return ProviderSubmission(
            job_ref=request_id,
            status=normalized.status,
            progress=normalized.progress,
            message=last.message,
        )

    async def _completed_submission(self, request_id: str) -> ProviderSubmission:
        try:
            results = await self.get_results(request_id)
        except GenerationError as exc:
            # The task is paid for; leave it non-terminal so a later refresh collects it.
            self.log.warning(
                "fal.results.unavailable %s",
                redact_secrets(str(exc), [self.api_key]),
                extra={"request_id": request_id},
            )
            return ProviderSubmission(
                job_ref=request_id, status=JobStatus.PROCESSING, progress=95
            )
        return ProviderSubmission(
            job_ref=request_id,
            status=JobStatus.SUCCEEDED,
            progress=100,
            result_urls=results.images,
        )

    async def _submit(self, payload: dict[str, Any], *, api_key: str) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.policy.timeout_seconds) as client:
                response = await client.post(
                    f"{self.api_url}/{self.model_id}",
                    headers=self._headers(api_key),
                    json=payload,
                )
        except httpx.HTTPError as exc:
            raise transient_from_transport(exc, provider=self.name, label="submit") from exc
        raise_for_provider_status(response, provider=self.name, label="submit")
        body = self._json_body(response, label="submit")
        if not isinstance(body, dict):
            raise ProviderRequestError(
                "FAL submit returned an unexpected body", provider=self.name.value
            )
        request_id = body.get("request_id") or body.get("id")
        if not request_id:
            raise ProviderRequestError(
                "FAL API did not return request_id", provider=self.name.value
            )
        return str(request_id)

    async def _fetch_status(self, request_id: str, *, api_key: str) -> ProviderProgress:
        data = await self._get_json(
            f"{self.api_url}/{self.model_id}/requests/{request_id}/status",
            api_key=api_key,
            label="status",
        )
        progress = data.get("progress")
        return ProviderProgress(
            status=str(data.get("status") or data.get("state") or ""),
            progress=int(progress) if isinstance(progress, (int, float)) else None,
            message=data.get("error") or data.get("message"),
        )

    async def _fetch_response(self, request_id: str, *, api_key: str) -> dict[str, Any]:
        return await self._get_json(
            f"{self.api_url}/{self.model_id}/requests/{request_id}",
            api_key=api_key,
            label="results",
        )

    async def _get_json(self, url: str, *, api_key: str, label: str) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.policy.timeout_seconds) as client:
                response = await client.get(url, headers=self._headers(api_key))
        except httpx.HTTPError as exc:
            raise transient_from_transport(exc, provider=self.name, label=label) from exc
        raise_for_provider_status(response, provider=self.name, label=label)
        data = self._json_body(response, label=label)
        return data if isinstance(data, dict) else {}

    def _json_body(self, response: httpx.Response, *, label: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise TransientError(
                f"fal {label} returned a non-JSON body", provider=self.name.value
            ) from exc

    def _build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "prompt": build_prompt(request.style, request.template),
            "num_images": 1,
            "image_size": (
                f"{request.resolution}x{request.resolution}"
                if request.resolution
                else "1024x1024"
            ),
            "num_inference_steps": request.steps or 28,
            "guidance_scale": 3.5,
        }
        if request.files:
            payload["image_url"] = request.files[0]
        if request.grayscale_ratio:
            payload["grayscale_ratio"] = request.grayscale_ratio
        return payload

    def _require_credentials(self) -> str:
        if not self.api_key:
            raise ConfigError("FAL_API_KEY is not configured")
        if not self.model_id:
            raise ConfigError("FAL_MODEL_ID is not configured")
        return self.api_key

    @staticmethod
    def _headers(api_key: str) -> dict[str, str]:
        return {"Authorization": f"Key {api_key}", "Content-Type": "application/json"}


def extract_result_urls(data: dict[str, Any]) -> tuple[str, ...]:
    """Collect image URLs from the shapes FAL uses for finished requests."""

    urls: list[Any] = []
    for key in ("images", "output", "result"):
        value = data.get(key)
        if isinstance(value, list):
            urls.extend(item.get("url") if isinstance(item, dict) else item for item in value)
            break
        if isinstance(value, str):
            urls.append(value)
            break
        if key == "images" and data.get("image_url"):
            urls.append(data["image_url"])
            break
    return tuple(url for url in urls if isinstance(url, str) and url)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
