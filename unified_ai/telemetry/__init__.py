"""
Unified AI - Telemetry Module

Request lifecycle notifications and the built-in handlers that consume them.

Usage:
    from unified_ai.telemetry import MetricsCollector, TelemetryDispatcher

    metrics = MetricsCollector()
    ai = UnifiedAI(config, telemetry_handlers=[metrics])
    ...
    metrics.get_metrics("openai").error_rate
"""

from .handler import (
    ErrorTelemetry,
    RequestTelemetry,
    ResponseTelemetry,
    TelemetryDispatcher,
    TelemetryHandler,
)
from .logging_handler import (
    JSONFormatter,
    LoggingTelemetryHandler,
    configure_logging,
    get_request_id,
    reset_request_id,
    set_request_id,
)
from .metrics import MetricsCollector, ProviderMetrics
from .store import TelemetryStore

__all__ = [
    # Contract
    "TelemetryHandler",
    "TelemetryDispatcher",
    "RequestTelemetry",
    "ResponseTelemetry",
    "ErrorTelemetry",
    # Logging
    "JSONFormatter",
    "LoggingTelemetryHandler",
    "configure_logging",
    "get_request_id",
    "set_request_id",
    "reset_request_id",
    # Handlers
    "MetricsCollector",
    "ProviderMetrics",
    "TelemetryStore",
]
