from __future__ import annotations

import pytest
from sqlalchemy import select

from genrouter.db.db_models import AnalyticsLogModel
from genrouter.repositories.analytics_repository import AnalyticsLogRepository
from genrouter.routing.telemetry import ROUTING_EVENT, TelemetryEmitter


@pytest.mark.asyncio
async def test_emitted_events_are_persisted(session_factory):
    repository = AnalyticsLogRepository(session_factory)
    telemetry = TelemetryEmitter(repository)

    telemetry.emit(ROUTING_EVENT, {"provider": "fal", "attempts": 1}, user_id="user-7")
    telemetry.emit("provider_health", {"provider": "runware", "ok": True})
    await telemetry.drain()

    assert repository.list_events(ROUTING_EVENT) == [{"provider": "fal", "attempts": 1}]
    with session_factory() as session:
        rows = session.scalars(select(AnalyticsLogModel).order_by(AnalyticsLogModel.id)).all()
    assert sorted(rows, key=lambda row: row.event_type)[0].user_id == "user-7"
    assert len(rows) == 2


def test_list_events_since_honours_the_window(session_factory, simulated_clock):
    repository = AnalyticsLogRepository(session_factory, clock=simulated_clock)
    repository.insert(ROUTING_EVENT, {"request_id": "old"})
    simulated_clock.advance(3600)
    cutoff = simulated_clock()
    repository.insert(ROUTING_EVENT, {"request_id": "new"})
    repository.insert("provider_health", {"provider": "fal"})

    assert repository.list_events_since(ROUTING_EVENT, cutoff) == [{"request_id": "new"}]
