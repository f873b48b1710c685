from __future__ import annotations

import pytest

from genrouter.config import GenerationSettings
from genrouter.db.db_init import create_db_engine, create_session_factory, init_db
from genrouter.domain.clock import SimulatedClock
from genrouter.domain.models import GenerationRequest

_ENV_VARS = (
    "GEN_MODE",
    "GEN_PROVIDER_WEIGHTS",
    "GEN_PROVIDER_PRIMARY",
    "GEN_FAILOVER",
    "GEN_DATABASE_URL",
    "GEN_PROGRESS_REFRESH",
    "GEN_DEBUG_ERRORS",
    "FAL_API_KEY",
    "FAL_MODEL_ID",
    "RUNWARE_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def simulated_clock() -> SimulatedClock:
    return SimulatedClock()


@pytest.fixture
def settings() -> GenerationSettings:
    return GenerationSettings()


@pytest.fixture
def generation_request() -> GenerationRequest:
    return GenerationRequest(
        files=("https://images.photos.test/family.jpg",),
        style="realistic",
        template="christmas",
    )


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    return create_session_factory(engine)
