"""Persistence layer for analytics_logs telemetry events."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from ..db.db_models import AnalyticsLogModel
from ..domain.clock import Clock, utcnow
from ..routing.telemetry import TelemetrySink


class AnalyticsLogRepository(TelemetrySink):
    """Append telemetry events to ``analytics_logs``."""

    def __init__(
        self, session_factory: Callable[[], Session], *, clock: Clock | None = None
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or utcnow

    async def write(
        self, event_type: str, data: dict[str, Any], *, user_id: str | None = None
    ) -> None:
        await asyncio.to_thread(self.insert, event_type, data, user_id)

    def insert(self, event_type: str, data: dict[str, Any], user_id: str | None = None) -> None:
        with self._session_factory() as session:
            session.add(
                AnalyticsLogModel(
                    event_type=event_type,
                    event_data=dict(data),
                    user_id=user_id,
                    created_at=self._clock(),
                )
            )
            session.commit()

    def list_events(self, event_type: str) -> list[dict[str, Any]]:
        with self._session_factory() as session:
            rows = (
                session.query(AnalyticsLogModel)
                .filter(AnalyticsLogModel.event_type == event_type)
                .order_by(AnalyticsLogModel.id)
                .all()
            )
            return [dict(row.event_data) for row in rows]

    def list_events_since(self, event_type: str, since: datetime) -> list[dict[str, Any]]:
        """Event payloads of ``event_type`` recorded at or after ``since``."""
        with self._session_factory() as session:
            rows = (
                session.query(AnalyticsLogModel)
                .filter(
                    AnalyticsLogModel.event_type == event_type,
                    AnalyticsLogModel.created_at >= since,
                )
                .order_by(AnalyticsLogModel.id)
                .all()
            )
            return [dict(row.event_data) for row in rows]


__all__ = ["AnalyticsLogRepository"]
