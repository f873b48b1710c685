"""Logging configuration for the generation router."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import structlog

from .exceptions import redact_secrets

PACKAGE_LOGGER = "genrouter"


def redacting_processor(secrets: Iterable[str | None] = ()):
    """structlog processor masking provider keys in string fields."""

    known = tuple(secret for secret in secrets if secret)

    def processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str):
                event_dict[key] = redact_secrets(value, known)
        return event_dict

    return processor


def configure_logging(
    level: int = logging.INFO,
    *,
    service: str = PACKAGE_LOGGER,
    secrets: Iterable[str | None] = (),
) -> None:
    """Configure stdlib logging and structlog JSON output.

    Every structlog event carries ``service``; provider keys never reach the
    rendered output.
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            redacting_processor(secrets),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=service)
