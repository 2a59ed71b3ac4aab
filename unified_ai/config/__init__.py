"""
Unified AI - Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config, reset_config
from .schemas import (
    Environment,
    LogFormat,
    LogLevel,
    ProviderConfig,
    RetrySettings,
    TelemetrySettings,
    UnifiedAIConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    # Main config
    "UnifiedAIConfig",
    # Enums
    "Environment",
    "LogLevel",
    "LogFormat",
    # Config sections
    "ProviderConfig",
    "RetrySettings",
    "TelemetrySettings",
]
