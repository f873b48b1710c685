"""Domain records, job id scheme and clocks for the generation router."""

from .clock import Clock, SimulatedClock, utcnow
from .job_ids import JOB_ID_PREFIXES, make_job_id, parse_job_id
from .models import (
    REAL_PROVIDERS,
    GenerationRequest,
    Job,
    JobStatus,
    ProgressSnapshot,
    ProviderHealth,
    ProviderName,
    ProviderProgress,
    ProviderResults,
    ProviderSubmission,
    ProviderWeights,
    ResultsSnapshot,
    RoutingOutcome,
)

__all__ = [
    "Clock",
    "GenerationRequest",
    "JOB_ID_PREFIXES",
    "Job",
    "JobStatus",
    "ProgressSnapshot",
    "ProviderHealth",
    "ProviderName",
    "ProviderProgress",
    "ProviderResults",
    "ProviderSubmission",
    "ProviderWeights",
    "REAL_PROVIDERS",
    "ResultsSnapshot",
    "RoutingOutcome",
    "SimulatedClock",
    "make_job_id",
    "parse_job_id",
    "utcnow",
]
