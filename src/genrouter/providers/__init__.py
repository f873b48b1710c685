"""Provider drivers for the external generation backends and the mock."""

from .providers_base import ProviderDriver, RetryPolicy, call_with_retry
from .providers_fal import FalDriver
from .providers_mock import MockDriver, MockJobRegistry
from .providers_runware import RunwareDriver

__all__ = [
    "FalDriver",
    "MockDriver",
    "MockJobRegistry",
    "ProviderDriver",
    "RetryPolicy",
    "RunwareDriver",
    "call_with_retry",
]
