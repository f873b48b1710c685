"""Persistence layer for feature flags (remote provider weights)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ..db.db_models import FeatureFlagModel
from ..routing.weights import WEIGHTS_FLAG_KEY


class FeatureFlagRepository:
    """Manage feature_flags records."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get_flag(self, flag_key: str) -> str | None:
        with self._session_factory() as session:
            model = session.get(FeatureFlagModel, flag_key)
            if model is None:
                return None
            return model.flag_value_text

    def set_flag(self, flag_key: str, value: str | None) -> None:
        with self._session_factory() as session:
            model = session.get(FeatureFlagModel, flag_key)
            now = datetime.now(timezone.utc)
            if model is None:
                session.add(
                    FeatureFlagModel(flag_key=flag_key, flag_value_text=value, updated_at=now)
                )
            else:
                model.flag_value_text = value
                model.updated_at = now
            session.commit()


class FeatureFlagWeightSource:
    """Read the provider weights document from the feature_flags table."""

    def __init__(
        self, repository: FeatureFlagRepository, *, flag_key: str = WEIGHTS_FLAG_KEY
    ) -> None:
        self._repository = repository
        self._flag_key = flag_key

    async def fetch_weights(self) -> str | None:
        return await asyncio.to_thread(self._repository.get_flag, self._flag_key)


__all__ = ["FeatureFlagRepository", "FeatureFlagWeightSource"]
