"""SQLAlchemy repositories for jobs, feature flags and analytics."""

from .analytics_repository import AnalyticsLogRepository
from .feature_flag_repository import FeatureFlagRepository, FeatureFlagWeightSource
from .job_repository import SqlAlchemyJobStore

__all__ = [
    "AnalyticsLogRepository",
    "FeatureFlagRepository",
    "FeatureFlagWeightSource",
    "SqlAlchemyJobStore",
]
