"""Database models and initialization."""

from .db_init import create_db_engine, create_session_factory, init_db
from .db_models import AnalyticsLogModel, Base, FeatureFlagModel, GenerationJobModel

__all__ = [
    "AnalyticsLogModel",
    "Base",
    "FeatureFlagModel",
    "GenerationJobModel",
    "create_db_engine",
    "create_session_factory",
    "init_db",
]
