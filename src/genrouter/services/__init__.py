"""Generation services and their composition."""

from .container import GenerationContainer, build_container
from .generation_service import GenerationService
from .health_service import HealthService

__all__ = [
    "GenerationContainer",
    "GenerationService",
    "HealthService",
    "build_container",
]
