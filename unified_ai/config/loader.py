"""
Unified AI - Configuration Loader

Loads and validates configuration from environment variables and .env files.
Provides a cached configuration instance for applications that want one;
the orchestrator itself only ever receives a config object.
"""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .schemas import UnifiedAIConfig

logger = logging.getLogger(__name__)

_config_instance: UnifiedAIConfig | None = None

# Provider id -> environment variable prefix(es), first match wins
_PROVIDER_ENV_PREFIXES: dict[str, tuple[str, ...]] = {
    "openai": ("OPENAI",),
    "anthropic": ("ANTHROPIC",),
    "google": ("GOOGLE", "GEMINI"),
    "cohere": ("COHERE",),
    "mistral": ("MISTRAL",),
    "xai": ("XAI",),
}


def _env(prefixes: tuple[str, ...], suffix: str) -> str | None:
    for prefix in prefixes:
        value = os.getenv(f"{prefix}_{suffix}")
        if value:
            return value
    return None


def _provider_from_env(provider_id: str, prefixes: tuple[str, ...]) -> dict[str, Any] | None:
    """Provider section for one provider, or None when no API key is set."""
    api_key = _env(prefixes, "API_KEY")
    if not api_key:
        return None
    return {
        "id": provider_id,
        "api_key": api_key,
        "base_url": _env(prefixes, "BASE_URL"),
        "default_model": _env(prefixes, "MODEL"),
        "timeout": float(_env(prefixes, "TIMEOUT") or "30.0"),
        "settings": {
            "fetch_models_on_init": (_env(prefixes, "FETCH_MODELS") or "false").lower() == "true",
        },
    }


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> UnifiedAIConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in the working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated UnifiedAIConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    try:
        providers: dict[str, Any] = {}
        for provider_id, prefixes in _PROVIDER_ENV_PREFIXES.items():
            section = _provider_from_env(provider_id, prefixes)
            if section is not None:
                providers[provider_id] = section

        config_dict: dict[str, Any] = {
            "environment": os.getenv("ENVIRONMENT", "development"),
            "log_level": os.getenv("UNIFIED_AI_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO")).upper(),
            "log_format": os.getenv("UNIFIED_AI_LOG_FORMAT", "json").lower(),
            "default_provider": os.getenv("UNIFIED_AI_DEFAULT_PROVIDER") or None,
            "providers": providers,
            "retry": {
                "max_attempts": int(os.getenv("UNIFIED_AI_MAX_ATTEMPTS", "3")),
                "initial_delay": float(os.getenv("UNIFIED_AI_INITIAL_DELAY", "0.1")),
                "max_delay": float(os.getenv("UNIFIED_AI_MAX_DELAY", "30.0")),
                "multiplier": float(os.getenv("UNIFIED_AI_BACKOFF_MULTIPLIER", "2.0")),
                "jitter": os.getenv("UNIFIED_AI_RETRY_JITTER", "true").lower() == "true",
            },
            "telemetry": {
                "log_requests": os.getenv("UNIFIED_AI_LOG_REQUESTS", "true").lower() == "true",
                "collect_metrics": os.getenv("UNIFIED_AI_COLLECT_METRICS", "true").lower() == "true",
                "store_path": os.getenv("UNIFIED_AI_TELEMETRY_DB") or None,
            },
        }
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric environment value: {e}", details={"error": str(e)}) from e

    try:
        _config_instance = UnifiedAIConfig(**config_dict)
        logger.info(
            f"Configuration loaded successfully (environment: {_config_instance.environment.value})",
            extra={
                "environment": _config_instance.environment.value,
                "providers": sorted(_config_instance.providers),
            },
        )
        return _config_instance
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors(), "config_dict_keys": list(config_dict.keys())},
            exc_info=True,
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables and configuration.",
            details={"validation_errors": e.errors()},
        ) from e


def get_config() -> UnifiedAIConfig:
    """
    Get the current configuration instance, loading it on first access.
    """
    if _config_instance is None:
        return load_config()
    return _config_instance


def reload_config(env_file: str | None = None) -> UnifiedAIConfig:
    """Force reload configuration."""
    return load_config(env_file=env_file, reload=True)


def reset_config() -> None:
    """Drop the cached configuration (used by tests)."""
    global _config_instance
    _config_instance = None
