"""Write the GEN_PROVIDER_WEIGHTS feature flag read by the router."""

from __future__ import annotations

import argparse
import sys

from genrouter.config import load_settings
from genrouter.db.db_init import create_db_engine, create_session_factory, init_db
from genrouter.domain.models import ProviderWeights
from genrouter.repositories.feature_flag_repository import FeatureFlagRepository
from genrouter.routing.weights import WEIGHTS_FLAG_KEY, dump_weights


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Update provider traffic weights.")
    parser.add_argument("--fal", type=float, required=True, help="Relative weight for FAL.")
    parser.add_argument("--runware", type=float, required=True, help="Relative weight for Runware.")
    parser.add_argument("--database-url", help="Override GEN_DATABASE_URL.")
    return parser.parse_args(argv)


def update_weights(repository: FeatureFlagRepository, *, fal: float, runware: float) -> ProviderWeights:
    """Normalize and store the weights; returns what was written."""
    if fal < 0 or runware < 0:
        raise ValueError("weights must be non-negative")
    if fal + runware <= 0:
        raise ValueError("at least one weight must be positive")
    weights = ProviderWeights(fal=fal, runware=runware).normalized()
    repository.set_flag(WEIGHTS_FLAG_KEY, dump_weights(weights))
    return weights


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    url = args.database_url or load_settings().database_url
    if not url:
        print("update failed: GEN_DATABASE_URL is not set", file=sys.stderr)
        return 2
    engine = create_db_engine(url)
    init_db(engine)
    repository = FeatureFlagRepository(create_session_factory(engine))
    try:
        weights = update_weights(repository, fal=args.fal, runware=args.runware)
    except ValueError as exc:
        print(f"update failed: {exc}", file=sys.stderr)
        return 2
    print(f"provider weights updated, fal={weights.fal:.2f}, runware={weights.runware:.2f}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
