"""Abstract provider driver definition and the shared call envelope."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from ..domain.models import (
    GenerationRequest,
    ProviderHealth,
    ProviderName,
    ProviderProgress,
    ProviderResults,
    ProviderSubmission,
)
from ..exceptions import (
    ConfigError,
    NotFoundError,
    ProviderRequestError,
    ProviderUnavailableError,
    TransientError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

TRANSIENT_STATUS_CODES = frozenset({408, 425, 429})


@dataclass(slots=True)
class RetryPolicy:
    """Timeout and retry budget applied to each outbound provider call."""

    timeout_seconds: float = 8.0
    retries: int = 2
    backoff_seconds: float = 1.0

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1`` (doubles every attempt)."""
        return self.backoff_seconds * (2**attempt)


class ProviderDriver(ABC):
    """Base interface for generation provider drivers."""

    name: ProviderName

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> ProviderSubmission:
        """Submit ``request`` and return the provider job reference."""

    @abstractmethod
    async def get_progress(self, job_ref: str) -> ProviderProgress:
        """Query the provider once for the status of ``job_ref``."""

    @abstractmethod
    async def get_results(self, job_ref: str, *, paid: bool = False) -> ProviderResults:
        """Return artefact references for a finished job."""

    @abstractmethod
    async def check_health(self) -> ProviderHealth:
        """Run a lightweight connectivity probe; must never raise."""


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    provider: ProviderName,
    label: str,
    sleep: Sleep = asyncio.sleep,
    log: logging.Logger = logger,
) -> T:
    """Run ``operation`` under a hard timeout, retrying transient failures.

    Each attempt is cancelled after ``policy.timeout_seconds``. Only
    :class:`TransientError` (and timeouts) are retried; anything else
    propagates immediately. Exhausting the budget raises
    :class:`ProviderUnavailableError` chained to the last transient error.
    """

    attempt = 0
    while True:
        try:
            return await asyncio.wait_for(operation(), timeout=policy.timeout_seconds)
        except asyncio.TimeoutError as exc:
            error: TransientError = TransientError(
                f"{provider.value} {label} timed out after {policy.timeout_seconds:.1f}s",
                provider=provider.value,
            )
            error.__cause__ = exc
        except TransientError as exc:
            error = exc

        if attempt >= policy.retries:
            raise ProviderUnavailableError(
                f"{provider.value} {label} failed after {attempt + 1} attempt(s): {error}",
                provider=provider.value,
                attempts=attempt + 1,
            ) from error

        delay = policy.delay_for(attempt)
        attempt += 1
        log.warning(
            "%s.%s.retry attempt=%s delay=%.2f error=%s",
            provider.value,
            label,
            attempt,
            delay,
            error,
            extra={"provider": provider.value, "attempt": attempt},
        )
        await sleep(delay)


def raise_for_provider_status(
    response: httpx.Response, *, provider: ProviderName, label: str
) -> None:
    """Translate a non-2xx provider response into the error taxonomy."""

    status = response.status_code
    if 200 <= status < 300:
        return
    detail = _response_detail(response)
    message = f"{provider.value} {label} failed with status {status}"
    if detail:
        message = f"{message}: {detail}"
    if status in (401, 403):
        raise ConfigError(f"{message} (check API credentials)")
    if status == 404:
        raise NotFoundError(message, provider=provider.value)
    if status >= 500 or status in TRANSIENT_STATUS_CODES:
        raise TransientError(message, provider=provider.value)
    raise ProviderRequestError(message, provider=provider.value, status_code=status)


def transient_from_transport(
    exc: httpx.HTTPError, *, provider: ProviderName, label: str
) -> TransientError:
    """Wrap an httpx transport failure as a retriable error."""

    error = TransientError(
        f"{provider.value} {label} network error: {exc.__class__.__name__}",
        provider=provider.value,
    )
    error.__cause__ = exc
    return error


def _response_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return (response.text or "")[:200]
    if isinstance(data, dict):
        errors = data.get("errors")
        if isinstance(errors, list) and errors:
            return "; ".join(
                f"{item.get('code') or 'ERROR'}: {item.get('message') or 'Unknown'}"
                for item in errors
                if isinstance(item, dict)
            )
        for key in ("error", "message", "detail"):
            value = data.get(key)
            if value:
                return str(value)[:200]
    return str(data)[:200]


__all__ = [
    "ProviderDriver",
    "RetryPolicy",
    "Sleep",
    "call_with_retry",
    "raise_for_provider_status",
    "transient_from_transport",
]
