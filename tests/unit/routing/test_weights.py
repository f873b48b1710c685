from __future__ import annotations

import pytest

from genrouter.domain.models import ProviderWeights
from genrouter.routing.weights import WeightResolver, dump_weights, parse_weights


class CountingSource:
    def __init__(self, value: str | None = None, error: Exception | None = None) -> None:
        self.value = value
        self.error = error
        self.calls = 0

    async def fetch_weights(self) -> str | None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value


class FakeMonotonic:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_parse_weights_normalizes() -> None:
    weights = parse_weights('{"fal": 1, "runware": 3}')

    assert weights == ProviderWeights(fal=0.25, runware=0.75)


def test_parse_weights_zero_total_is_default() -> None:
    assert parse_weights({"fal": 0, "runware": 0}) == ProviderWeights.default()


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2]",
        '{"fal": "lots"}',
        '{"fal": Infinity, "runware": 1}',
        '{"fal": NaN, "runware": 1}',
    ],
)
def test_parse_weights_rejects_malformed(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_weights(raw)


def test_dump_weights_round_trips() -> None:
    weights = ProviderWeights(fal=0.4, runware=0.6)

    assert parse_weights(dump_weights(weights)) == weights


@pytest.mark.asyncio
async def test_override_takes_precedence_over_remote():
    source = CountingSource('{"fal": 0, "runware": 1}')
    resolver = WeightResolver(override='{"fal": 0.3, "runware": 0.7}', source=source)

    weights = await resolver.resolve()

    assert weights.fal == pytest.approx(0.3)
    assert weights.runware == pytest.approx(0.7)
    assert source.calls == 0


@pytest.mark.asyncio
async def test_remote_used_without_override():
    resolver = WeightResolver(source=CountingSource('{"fal": 0, "runware": 1}'))

    assert await resolver.resolve() == ProviderWeights(fal=0.0, runware=1.0)


@pytest.mark.asyncio
async def test_default_when_nothing_configured():
    assert await WeightResolver().resolve() == ProviderWeights(fal=1.0, runware=0.0)


@pytest.mark.asyncio
async def test_invalid_override_falls_back_to_default():
    resolver = WeightResolver(override="{broken")

    assert await resolver.resolve() == ProviderWeights.default()


@pytest.mark.asyncio
async def test_remote_failure_falls_back_to_default():
    resolver = WeightResolver(source=CountingSource(error=RuntimeError("db down")))

    assert await resolver.resolve() == ProviderWeights.default()


@pytest.mark.asyncio
async def test_cache_is_shared_until_ttl_expires():
    source = CountingSource('{"fal": 1, "runware": 1}')
    clock = FakeMonotonic()
    resolver = WeightResolver(source=source, ttl_seconds=5.0, monotonic=clock)

    await resolver.resolve()
    clock.now += 4.9
    await resolver.resolve()
    assert source.calls == 1

    source.value = '{"fal": 0, "runware": 1}'
    clock.now += 0.2
    weights = await resolver.resolve()

    assert source.calls == 2
    assert weights == ProviderWeights(fal=0.0, runware=1.0)


@pytest.mark.asyncio
async def test_default_result_is_cached_too():
    source = CountingSource(None)
    clock = FakeMonotonic()
    resolver = WeightResolver(source=source, ttl_seconds=5.0, monotonic=clock)

    await resolver.resolve()
    await resolver.resolve()

    assert source.calls == 1


@pytest.mark.asyncio
async def test_non_finite_override_falls_back_to_default():
    resolver = WeightResolver(override='{"fal": 1, "runware": Infinity}')

    assert await resolver.resolve() == ProviderWeights.default()
