from __future__ import annotations

import random

import pytest

from genrouter.domain.models import ProviderName, ProviderWeights
from genrouter.routing.selector import ProviderSelector, choose
from genrouter.routing.weights import WeightResolver


class ExplodingRandom(random.Random):
    def random(self) -> float:
        raise AssertionError("selection should not consume randomness")


def test_choose_uses_fal_share_as_threshold() -> None:
    weights = ProviderWeights(fal=0.3, runware=0.7)

    assert choose(weights, 0.0) is ProviderName.FAL
    assert choose(weights, 0.29) is ProviderName.FAL
    assert choose(weights, 0.31) is ProviderName.RUNWARE
    assert choose(weights, 0.99) is ProviderName.RUNWARE


@pytest.mark.asyncio
async def test_weighted_selection_converges():
    resolver = WeightResolver(override='{"fal": 0.3, "runware": 0.7}')
    selector = ProviderSelector(resolver, rng=random.Random(20240101))

    picks = [await selector.select() for _ in range(10_000)]

    fal_count = picks.count(ProviderName.FAL)
    assert 2800 <= fal_count <= 3200
    assert picks.count(ProviderName.RUNWARE) == 10_000 - fal_count


@pytest.mark.asyncio
async def test_default_weights_always_pick_fal():
    selector = ProviderSelector(WeightResolver(), rng=random.Random(7))

    picks = {await selector.select() for _ in range(200)}

    assert picks == {ProviderName.FAL}


@pytest.mark.asyncio
async def test_explicit_primary_wins_while_weighted():
    resolver = WeightResolver(override='{"fal": 0.1, "runware": 0.9}')
    selector = ProviderSelector(resolver, primary=ProviderName.FAL, rng=ExplodingRandom())

    assert await selector.select() is ProviderName.FAL


@pytest.mark.asyncio
async def test_primary_with_zero_weight_falls_back_to_draw():
    selector = ProviderSelector(
        WeightResolver(), primary=ProviderName.RUNWARE, rng=random.Random(3)
    )

    assert await selector.select() is ProviderName.FAL


def test_mock_cannot_be_primary() -> None:
    with pytest.raises(ValueError):
        ProviderSelector(WeightResolver(), primary=ProviderName.MOCK)
