"""Weighted choice of the primary provider for a new request."""

from __future__ import annotations

import random

import structlog

from ..domain.models import ProviderName, ProviderWeights
from .weights import WeightResolver

logger = structlog.get_logger(__name__)


def choose(weights: ProviderWeights, draw: float) -> ProviderName:
    """Map a uniform draw in ``[0, 1)`` onto a provider."""

    normalized = weights.normalized()
    if draw < normalized.fal:
        return ProviderName.FAL
    return ProviderName.RUNWARE


class ProviderSelector:
    """Pick ``fal`` or ``runware`` from the resolved weights.

    An explicit ``primary`` is returned as-is while its normalized weight is
    nonzero; otherwise one draw from ``rng`` decides.
    """

    def __init__(
        self,
        weights: WeightResolver,
        *,
        primary: ProviderName | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if primary is not None and not primary.is_real:
            raise ValueError(f"Primary provider must be a real provider, got '{primary.value}'")
        self._weights = weights
        self._primary = primary
        self._rng = rng or random.Random()

    async def select(self) -> ProviderName:
        weights = (await self._weights.resolve()).normalized()
        if self._primary is not None and weights.weight_for(self._primary) > 0:
            return self._primary
        provider = choose(weights, self._rng.random())
        logger.debug(
            "routing.provider_selected",
            provider=provider.value,
            fal=weights.fal,
            runware=weights.runware,
        )
        return provider


__all__ = ["ProviderSelector", "choose"]
