"""Runware provider driver: one synchronous inference call per generation."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

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
from ..exceptions import ConfigError, ProviderRequestError, TransientError, redact_secrets
from .providers_base import (
    ProviderDriver,
    RetryPolicy,
    Sleep,
    call_with_retry,
    raise_for_provider_status,
    transient_from_transport,
)
from .templates import RunwareTemplate, resolve_runware_template

logger = logging.getLogger(__name__)

_PLACEHOLDER_HOSTS = ("example.com", "localhost")


@dataclass(slots=True)
class RunwareDriver(ProviderDriver):
    """Call the Runware HTTP API with ``deliveryMethod=sync``."""

    api_key: str | None
    api_url: str = "https://api.runware.ai/v1"
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    health_timeout_seconds: float = 5.0
    sleep: Sleep = field(default_factory=lambda: asyncio.sleep)
    log: logging.Logger = field(default_factory=lambda: logger)

    name = ProviderName.RUNWARE

    async def generate(self, request: GenerationRequest) -> ProviderSubmission:
        template = resolve_runware_template(request.template, request.style)
        if template is None:
            raise ConfigError(
                "Runware template not configured for "
                f"template={request.template}, style={request.style}"
            )
        api_key = self._require_credentials()

        # One taskUUID for every retry so the provider can deduplicate.
        task_uuid = str(uuid.uuid4())
        task = self._build_task(request, template=template, task_uuid=task_uuid)
        self.log.info(
            "runware.request.start",
            extra={
                "task_uuid": task_uuid,
                "template_id": template.id,
                "model": task["model"],
                "width": task["width"],
                "height": task["height"],
                "steps": task["steps"],
            },
        )

        data = await call_with_retry(
            lambda: self._infer([task], api_key=api_key),
            policy=self.policy,
            provider=self.name,
            label="inference",
            sleep=self.sleep,
            log=self.log,
        )
        entries = data.get("data")
        if not isinstance(entries, list) or not entries:
            raise ProviderRequestError(
                "Runware API returned empty data", provider=self.name.value
            )
        result = entries[0] if isinstance(entries[0], dict) else {}
        image_url = result.get("imageURL") or result.get("imageUrl")
        job_ref = str(result.get("taskUUID") or task_uuid)
        self.log.info(
            "runware.request.success",
            extra={"task_uuid": job_ref, "has_image": bool(image_url)},
        )
        return ProviderSubmission(
            job_ref=job_ref,
            status=JobStatus.SUCCEEDED,
            progress=100,
            result_urls=(image_url,) if image_url else (),
        )

    async def get_progress(self, job_ref: str) -> ProviderProgress:
        api_key = self._require_credentials()
        data = await call_with_retry(
            lambda: self._get_job(job_ref, api_key=api_key),
            policy=self.policy,
            provider=self.name,
            label="status",
            sleep=self.sleep,
            log=self.log,
        )
        progress = data.get("progress")
        urls = data.get("resultUrls") or data.get("result_urls") or []
        return ProviderProgress(
            status=str(data.get("status") or ""),
            progress=int(progress) if isinstance(progress, (int, float)) else None,
            message=data.get("error") or data.get("message"),
            result_urls=tuple(url for url in urls if isinstance(url, str)),
        )

    async def get_results(self, job_ref: str, *, paid: bool = False) -> ProviderResults:
        report = await self.get_progress(job_ref)
        images = report.result_urls if report.status.lower() in ("succeeded", "completed") else ()
        return ProviderResults(images=images, payment_status="paid" if paid else "free")

    async def check_health(self) -> ProviderHealth:
        if not self.api_key:
            return ProviderHealth(
                ok=False, latency_ms=None, error="RUNWARE_API_KEY not configured"
            )

        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.health_timeout_seconds) as client:
                response = await asyncio.wait_for(
                    client.get(
                        f"{self.api_url}/health",
                        headers={"Authorization": f"Bearer {self.api_key}"},
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
        if 200 <= response.status_code < 300:
            return ProviderHealth(ok=True, latency_ms=latency_ms)
        if response.status_code in (400, 404):
            return ProviderHealth(
                ok=True,
                latency_ms=latency_ms,
                error=(
                    f"Health endpoint unavailable ({response.status_code}), "
                    "but API key configured"
                ),
            )
        detail = f"HTTP {response.status_code}"
        text = response.text or ""
        if text and len(text) < 200:
            detail = f"{detail}: {text[:100]}"
        return ProviderHealth(
            ok=False,
            latency_ms=latency_ms,
            error=redact_secrets(detail, [self.api_key]),
        )

    async def _infer(self, payload: list[dict[str, Any]], *, api_key: str) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.policy.timeout_seconds) as client:
                response = await client.post(
                    self.api_url, headers=self._headers(api_key), json=payload
                )
        except httpx.HTTPError as exc:
            raise transient_from_transport(exc, provider=self.name, label="inference") from exc
        if response.status_code >= 400:
            self.log.error(
                "runware.response.error status=%s",
                response.status_code,
                extra={
                    "status_code": response.status_code,
                    "x_request_id": response.headers.get("x-request-id"),
                },
            )
        raise_for_provider_status(response, provider=self.name, label="inference")
        return self._json_body(response, label="inference")

    async def _get_job(self, job_ref: str, *, api_key: str) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.policy.timeout_seconds) as client:
                response = await client.get(
                    f"{self.api_url}/jobs/{job_ref}", headers=self._headers(api_key)
                )
        except httpx.HTTPError as exc:
            raise transient_from_transport(exc, provider=self.name, label="status") from exc
        raise_for_provider_status(response, provider=self.name, label="status")
        return self._json_body(response, label="status")

    def _json_body(self, response: httpx.Response, *, label: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise TransientError(
                f"runware {label} returned a non-JSON body", provider=self.name.value
            ) from exc
        return data if isinstance(data, dict) else {}

    def _build_task(
        self, request: GenerationRequest, *, template: RunwareTemplate, task_uuid: str
    ) -> dict[str, Any]:
        width = request.resolution or template.width
        height = request.resolution or template.height
        task: dict[str, Any] = {
            "taskType": "imageInference",
            "taskUUID": task_uuid,
            "positivePrompt": template.base_prompt,
            "negativePrompt": template.negative_prompt,
            "model": template.model_id,
            "width": width,
            "height": height,
            "steps": request.steps or 24,
            "numberResults": 1,
            "outputType": "URL",
            "outputFormat": "JPG",
            "CFGScale": 7.5,
            "deliveryMethod": "sync",
        }
        image_url = _public_image_url(request.files)
        if image_url:
            task["imageURL"] = image_url
        return task

    def _require_credentials(self) -> str:
        if not self.api_key:
            raise ConfigError("RUNWARE_API_KEY is not configured")
        return self.api_key

    @staticmethod
    def _headers(api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}


def _public_image_url(files: tuple[str, ...]) -> str | None:
    if not files:
        return None
    parsed = urlparse(files[0])
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    if any(host in parsed.hostname for host in _PLACEHOLDER_HOSTS):
        return None
    return files[0]


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
