"""
Unified AI - Configuration Schemas

Typed configuration models using Pydantic for validation and type safety.
The orchestrator consumes a UnifiedAIConfig; how it is built (env, .env,
code) is up to the caller.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    TEXT = "text"


class ProviderConfig(BaseModel):
    """Configuration for a single provider."""

    id: str = Field(..., min_length=1, description="Provider id (e.g. 'openai', 'anthropic')")
    api_key: str | None = Field(default=None, description="API key for the provider")
    headers: dict[str, str] = Field(default_factory=dict, description="Extra static headers sent on every request")
    base_url: str | None = Field(default=None, description="Custom base URL (optional)")
    default_model: str | None = Field(default=None, description="Model used when a request names none")
    timeout: float = Field(default=30.0, ge=1.0, description="Request timeout in seconds")
    enabled: bool = Field(default=True, description="Whether this provider is enabled")
    settings: dict[str, Any] = Field(default_factory=dict, description="Free-form provider settings")

    @field_validator("id")
    @classmethod
    def normalize_id(cls, v: str) -> str:
        return v.lower().strip()

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")


class RetrySettings(BaseModel):
    """Retry policy settings."""

    max_attempts: int = Field(default=3, ge=1, description="Total attempts including the first call")
    initial_delay: float = Field(default=0.1, ge=0.0, description="Delay before the first retry in seconds")
    max_delay: float = Field(default=30.0, ge=0.0, description="Maximum delay between attempts in seconds")
    multiplier: float = Field(default=2.0, gt=0.0, description="Exponential backoff multiplier")
    jitter: bool = Field(default=True, description="Add random jitter to delays")

    @model_validator(mode="after")
    def validate_delays(self) -> "RetrySettings":
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        return self


class TelemetrySettings(BaseModel):
    """Built-in telemetry handlers."""

    log_requests: bool = Field(default=True, description="Log request lifecycle events")
    collect_metrics: bool = Field(default=True, description="Aggregate per-provider metrics in memory")
    store_path: str | None = Field(default=None, description="SQLite path for persisted telemetry events")


class UnifiedAIConfig(BaseModel):
    """Main configuration."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Log output format")
    default_provider: str | None = Field(default=None, description="Provider used when a call names none")
    providers: dict[str, ProviderConfig] = Field(default_factory=dict, description="Provider configurations")
    retry: RetrySettings = Field(default_factory=RetrySettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    @field_validator("providers", mode="before")
    @classmethod
    def fill_provider_ids(cls, v: Any) -> Any:
        """Allow provider entries without an explicit id (taken from the key)."""
        if isinstance(v, dict):
            filled = {}
            for key, value in v.items():
                if isinstance(value, dict) and "id" not in value:
                    value = {**value, "id": key}
                filled[key] = value
            return filled
        return v

    @model_validator(mode="after")
    def validate_default_provider(self) -> "UnifiedAIConfig":
        if self.default_provider is not None:
            self.default_provider = self.default_provider.lower().strip()
            if self.default_provider not in self.providers:
                raise ValueError(
                    f"default_provider '{self.default_provider}' is not configured "
                    f"(configured: {', '.join(sorted(self.providers)) or 'none'})"
                )
        return self

    def enabled_providers(self) -> list[ProviderConfig]:
        """Provider configs that are enabled."""
        return [p for p in self.providers.values() if p.enabled]
