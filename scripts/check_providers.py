"""Probe provider health and print a one-line summary per provider."""

from __future__ import annotations

import argparse
import asyncio
import sys

from genrouter.config import load_settings
from genrouter.domain.models import REAL_PROVIDERS, ProviderHealth, ProviderName
from genrouter.logging import configure_logging
from genrouter.providers.providers_factory import create_drivers
from genrouter.services.health_service import HealthService


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check connectivity to generation providers.")
    parser.add_argument(
        "--provider",
        choices=[provider.value for provider in REAL_PROVIDERS],
        action="append",
        help="Limit the check to one provider (repeatable).",
    )
    return parser.parse_args(argv)


async def run_checks(providers: list[ProviderName]) -> dict[ProviderName, ProviderHealth]:
    settings = load_settings()
    service = HealthService(drivers=create_drivers(settings), secrets=settings.secret_values())
    return await service.probe_all(providers)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    configure_logging(service="check-providers")
    providers = [ProviderName(value) for value in args.provider] if args.provider else list(REAL_PROVIDERS)
    results = asyncio.run(run_checks(providers))
    healthy = True
    for provider, health in results.items():
        status = "ok" if health.ok else "down"
        latency = f"{health.latency_ms}ms" if health.latency_ms is not None else "n/a"
        line = f"{provider.value}: {status}, latency={latency}"
        if health.error:
            line = f"{line}, note={health.error}"
        print(line)
        healthy = healthy and health.ok
    return 0 if healthy else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
