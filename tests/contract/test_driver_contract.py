"""Every driver built by the factory honours the same adapter contract."""

from __future__ import annotations

import pytest

from genrouter.domain.models import REAL_PROVIDERS, JobStatus, ProviderName
from genrouter.exceptions import ConfigError
from genrouter.providers.providers_base import ProviderDriver
from genrouter.providers.providers_factory import create_drivers

pytestmark = pytest.mark.contract


def test_factory_builds_a_driver_per_provider(settings, simulated_clock):
    drivers = create_drivers(settings, clock=simulated_clock)

    for provider, driver in drivers.items():
        assert isinstance(driver, ProviderDriver)
        assert driver.name is provider


@pytest.mark.asyncio
@pytest.mark.parametrize("provider", REAL_PROVIDERS)
async def test_missing_credentials_are_config_errors(settings, generation_request, provider):
    driver = create_drivers(settings)[provider]

    with pytest.raises(ConfigError):
        await driver.generate(generation_request)


@pytest.mark.asyncio
@pytest.mark.parametrize("provider", list(ProviderName))
async def test_health_check_never_raises_without_credentials(settings, provider):
    health = await create_drivers(settings)[provider].check_health()

    if provider is ProviderName.MOCK:
        assert health.ok is True
    else:
        assert health.ok is False
        assert "not configured" in health.error


@pytest.mark.asyncio
async def test_mock_driver_follows_lifecycle_contract(settings, generation_request, simulated_clock):
    driver = create_drivers(settings, clock=simulated_clock)[ProviderName.MOCK]

    submission = await driver.generate(generation_request)
    simulated_clock.advance(settings.mock_duration_seconds)
    report = await driver.get_progress(submission.job_ref)
    results = await driver.get_results(submission.job_ref)

    assert submission.status is JobStatus.QUEUED
    assert report.status == "succeeded"
    assert report.progress == 100
    assert len(results.images) == 3
