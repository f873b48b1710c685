"""Provider weight resolution with a short shared cache.

Precedence: explicit override (``GEN_PROVIDER_WEIGHTS``), then the remote
source (the ``GEN_PROVIDER_WEIGHTS`` feature flag), then the compiled
default ``{"fal": 1, "runware": 0}``. Resolution never raises.
"""

from __future__ import annotations

import json
import math
import time
from collections.abc import Callable, Mapping
from typing import Any, Protocol

import structlog

from ..domain.models import ProviderWeights

logger = structlog.get_logger(__name__)

WEIGHTS_FLAG_KEY = "GEN_PROVIDER_WEIGHTS"


class WeightSource(Protocol):
    """Remote provider of the raw weights document."""

    async def fetch_weights(self) -> str | None:
        """Return the raw JSON weights document, or ``None`` when unset."""


def parse_weights(raw: str | Mapping[str, Any]) -> ProviderWeights:
    """Parse a ``{"fal": x, "runware": y}`` document into normalized weights.

    Raises :class:`ValueError` for malformed input.
    """

    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid provider weights JSON: {exc.msg}") from exc
    else:
        data = raw
    if not isinstance(data, Mapping):
        raise ValueError("Provider weights must be a JSON object")

    values: dict[str, float] = {}
    for key in ("fal", "runware"):
        value = data.get(key) or 0
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Weight for '{key}' must be a number")
        try:
            number = float(value)
        except OverflowError as exc:
            raise ValueError(f"Weight for '{key}' must be finite") from exc
        if not math.isfinite(number):
            raise ValueError(f"Weight for '{key}' must be finite")
        values[key] = number
    return ProviderWeights(fal=values["fal"], runware=values["runware"]).normalized()


def dump_weights(weights: ProviderWeights) -> str:
    return json.dumps({"fal": weights.fal, "runware": weights.runware})


class WeightResolver:
    """Resolve and cache provider weights.

    Concurrent callers share one cached value; refreshes that race simply
    overwrite each other, so staleness is bounded by ``ttl_seconds``.
    """

    def __init__(
        self,
        *,
        override: str | None = None,
        source: WeightSource | None = None,
        ttl_seconds: float = 5.0,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._override = override or None
        self._source = source
        self._ttl_seconds = max(0.0, ttl_seconds)
        self._monotonic = monotonic
        self._cached: ProviderWeights | None = None
        self._cached_at = 0.0

    async def resolve(self) -> ProviderWeights:
        now = self._monotonic()
        if self._cached is not None and now - self._cached_at < self._ttl_seconds:
            return self._cached

        weights = await self._load()
        self._cached = weights
        self._cached_at = now
        return weights

    def invalidate(self) -> None:
        self._cached = None

    async def _load(self) -> ProviderWeights:
        raw, origin = await self._raw_document()
        if not raw:
            return ProviderWeights.default()
        try:
            weights = parse_weights(raw)
        except ValueError as exc:
            logger.warning("routing.weights.invalid", origin=origin, error=str(exc))
            return ProviderWeights.default()
        logger.debug(
            "routing.weights.resolved",
            origin=origin,
            fal=weights.fal,
            runware=weights.runware,
        )
        return weights

    async def _raw_document(self) -> tuple[str | None, str]:
        if self._override:
            return self._override, "override"
        if self._source is None:
            return None, "default"
        try:
            return await self._source.fetch_weights(), "remote"
        except Exception as exc:
            logger.warning(
                "routing.weights.remote_failed",
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            return None, "default"


__all__ = [
    "WEIGHTS_FLAG_KEY",
    "WeightResolver",
    "WeightSource",
    "dump_weights",
    "parse_weights",
]
