"""Job lifecycle: state store, refresh and progress normalization."""

from .job_refresher import JobRefresher
from .job_store import InMemoryJobStore, JobStore
from .progress_normalizer import NormalizedProgress, normalize_failure, normalize_progress

__all__ = [
    "InMemoryJobStore",
    "JobRefresher",
    "JobStore",
    "NormalizedProgress",
    "normalize_failure",
    "normalize_progress",
]
