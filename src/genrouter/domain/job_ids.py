"""Job id scheme: ``<provider prefix><native provider reference>``.

The prefix is assigned once, from the provider that actually accepted the
submission, and later progress/result queries dispatch on it alone.
"""

from __future__ import annotations

from ..exceptions import JobNotFoundError
from .models import ProviderName

JOB_ID_PREFIXES: dict[ProviderName, str] = {
    ProviderName.FAL: "fal_",
    ProviderName.RUNWARE: "rw_",
    ProviderName.MOCK: "mock_",
}


def make_job_id(provider: ProviderName, job_ref: str) -> str:
    """Compose the public job id for ``job_ref`` returned by ``provider``."""

    if not job_ref:
        raise ValueError("job_ref must be a non-empty string")
    return f"{JOB_ID_PREFIXES[provider]}{job_ref}"


def parse_job_id(job_id: str) -> tuple[ProviderName, str]:
    """Split ``job_id`` into its provider and native reference."""

    for provider, prefix in JOB_ID_PREFIXES.items():
        if job_id.startswith(prefix) and len(job_id) > len(prefix):
            return provider, job_id[len(prefix):]
    raise JobNotFoundError(f"Job id '{job_id}' has no known provider prefix")


__all__ = ["JOB_ID_PREFIXES", "make_job_id", "parse_job_id"]
