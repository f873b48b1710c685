from __future__ import annotations

import pytest

from genrouter.config import GenerationSettings
from genrouter.domain.models import ProviderName
from genrouter.providers import FalDriver, MockDriver, RunwareDriver
from genrouter.providers.providers_factory import create_driver, create_drivers, retry_policy_from
from genrouter.providers.templates import build_prompt, resolve_runware_template


def test_create_drivers_covers_closed_provider_set(simulated_clock):
    settings = GenerationSettings(fal_api_key="fal-secret", timeout_seconds=3, retry=1)

    drivers = create_drivers(settings, clock=simulated_clock)

    assert set(drivers) == set(ProviderName)
    assert isinstance(drivers[ProviderName.FAL], FalDriver)
    assert isinstance(drivers[ProviderName.RUNWARE], RunwareDriver)
    assert isinstance(drivers[ProviderName.MOCK], MockDriver)
    assert drivers[ProviderName.FAL].api_key == "fal-secret"
    assert drivers[ProviderName.RUNWARE].api_key is None
    assert drivers[ProviderName.FAL].policy.timeout_seconds == 3
    assert drivers[ProviderName.MOCK].clock is simulated_clock


def test_retry_policy_from_settings():
    policy = retry_policy_from(GenerationSettings(retry=4, retry_backoff_seconds=0.5))

    assert policy.retries == 4
    assert policy.backoff_seconds == 0.5
    assert policy.timeout_seconds == 8.0


def test_create_driver_accepts_names_and_rejects_unknown(settings):
    assert isinstance(create_driver("RUNWARE", settings), RunwareDriver)
    with pytest.raises(ValueError):
        create_driver("gemini", settings)


def test_prompt_templates():
    prompt = build_prompt("anime", "birthday")

    assert "anime style" in prompt
    assert "birthday party" in prompt
    assert resolve_runware_template("christmas", "realistic").model_id == "runware:101@1"
    assert resolve_runware_template("wedding", "anime") is None
