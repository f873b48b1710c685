"""Error taxonomy shared by adapters, routing and the job store."""

from __future__ import annotations

import re
from typing import Iterable

__all__ = [
    "GenerationError",
    "ConfigError",
    "ProviderError",
    "TransientError",
    "ProviderUnavailableError",
    "ProviderRequestError",
    "NotFoundError",
    "CompositeFailoverError",
    "DuplicateSubmissionError",
    "JobNotFoundError",
    "GENERIC_FAILURE_MESSAGE",
    "redact_secrets",
    "describe_failure",
]

GENERIC_FAILURE_MESSAGE = "Generation failed"

_TOKEN_PATTERNS = (
    re.compile(r"(Bearer\s+)[\w\-.~+/=:]+", re.IGNORECASE),
    re.compile(r"(Key\s+)[\w\-.~+/=:]+"),
    re.compile(r"((?:api[_-]?key|token)[\"']?\s*[:=]\s*[\"']?)[\w\-.~+/=:]+", re.IGNORECASE),
)


class GenerationError(Exception):
    """Base class for routing and lifecycle errors."""


class ConfigError(GenerationError):
    """Deployment defect: missing credentials or unknown template mapping.

    Never retried and never triggers failover.
    """


class ProviderError(GenerationError):
    """Failure attributed to a single provider adapter."""

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class TransientError(ProviderError):
    """Timeout, 5xx or network failure; retried within the adapter budget."""


class ProviderUnavailableError(ProviderError):
    """Raised once an adapter has exhausted its retry budget."""

    def __init__(
        self, message: str, *, provider: str | None = None, attempts: int = 1
    ) -> None:
        super().__init__(message, provider=provider)
        self.attempts = attempts


class ProviderRequestError(ProviderError):
    """Non-transient provider rejection (4xx other than 404, malformed body)."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, provider=provider)
        self.status_code = status_code


class NotFoundError(ProviderError):
    """Provider reports that it does not know the job reference."""


class CompositeFailoverError(GenerationError):
    """Both the primary and the fallback provider failed."""

    def __init__(
        self,
        *,
        primary_provider: str,
        primary_error: BaseException,
        fallback_provider: str,
        fallback_error: BaseException,
    ) -> None:
        super().__init__(
            f"Both providers failed. Primary ({primary_provider}): {primary_error}, "
            f"Fallback ({fallback_provider}): {fallback_error}"
        )
        self.primary_provider = primary_provider
        self.primary_error = primary_error
        self.fallback_provider = fallback_provider
        self.fallback_error = fallback_error


class DuplicateSubmissionError(GenerationError):
    """A submission with the same request id is already in flight."""


class JobNotFoundError(GenerationError, KeyError):
    """Job id is unknown to the store or carries no known provider prefix."""

    def __str__(self) -> str:  # KeyError quotes its argument otherwise
        return str(self.args[0]) if self.args else ""


def redact_secrets(text: str, secrets: Iterable[str | None] = ()) -> str:
    """Strip bearer/key tokens and any literal secret values from ``text``."""

    redacted = text
    for secret in secrets:
        if secret:
            redacted = redacted.replace(secret, "***")
    for pattern in _TOKEN_PATTERNS:
        redacted = pattern.sub(r"\1***", redacted)
    return redacted


def describe_failure(
    failure: BaseException | str | None,
    *,
    debug: bool = False,
    secrets: Iterable[str | None] = (),
) -> str:
    """Return the user-visible failure text for an exception or stored message.

    Outside debug mode callers only ever see :data:`GENERIC_FAILURE_MESSAGE`.
    """

    if not debug or not failure:
        return GENERIC_FAILURE_MESSAGE
    if isinstance(failure, BaseException):
        failure = str(failure) or failure.__class__.__name__
    return redact_secrets(failure, secrets)
