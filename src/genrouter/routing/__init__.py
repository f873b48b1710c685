"""Provider selection, failover and routing telemetry."""

from .cost_guard import CostGuard, CostGuardResult, compute_route_metrics
from .orchestrator import FailoverOrchestrator, RoutedSubmission, alternate_for
from .selector import ProviderSelector, choose
from .telemetry import LoggingTelemetrySink, TelemetryEmitter, TelemetrySink
from .weights import WeightResolver, WeightSource, parse_weights

__all__ = [
    "CostGuard",
    "CostGuardResult",
    "FailoverOrchestrator",
    "LoggingTelemetrySink",
    "ProviderSelector",
    "RoutedSubmission",
    "TelemetryEmitter",
    "TelemetrySink",
    "WeightResolver",
    "WeightSource",
    "alternate_for",
    "choose",
    "compute_route_metrics",
    "parse_weights",
]
