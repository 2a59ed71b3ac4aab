"""
Provider Factory

Maps provider ids to adapter classes and builds adapter instances from
configuration. Instances are owned by whoever asked for them (normally the
UnifiedAI orchestrator's registry); the factory keeps no global state.
"""

import logging

from ..config.schemas import ProviderConfig
from ..errors import AiError, ClientError, ConfigurationError, ErrorCode
from ..transport import Transport
from .anthropic import AnthropicProvider
from .base import BaseProvider
from .cohere import CohereProvider
from .google import GoogleProvider
from .openai import OpenAIProvider
from .openai_compatible import MistralProvider, OpenAICompatibleProvider, XaiProvider

logger = logging.getLogger(__name__)


class ProviderFactory:
    """Factory for creating AI model provider adapters."""

    # Registry of available providers
    _PROVIDERS: dict[str, type[BaseProvider]] = {
        "openai": OpenAIProvider,
        "anthropic": AnthropicProvider,
        "google": GoogleProvider,
        "gemini": GoogleProvider,
        "cohere": CohereProvider,
        "mistral": MistralProvider,
        "xai": XaiProvider,
        "openai_compatible": OpenAICompatibleProvider,
    }

    @classmethod
    def provider_class(cls, provider_type: str) -> type[BaseProvider]:
        """
        Look up the adapter class for a provider type.

        Raises:
            ClientError: PROVIDER_NOT_FOUND for unknown types
        """
        key = provider_type.lower().strip().replace("-", "_")
        try:
            return cls._PROVIDERS[key]
        except KeyError:
            supported = ", ".join(cls._PROVIDERS)
            raise ClientError(
                f"Unsupported provider: {provider_type}. Supported providers: {supported}",
                ErrorCode.PROVIDER_NOT_FOUND,
                provider=provider_type,
            ) from None

    @classmethod
    def create_provider(cls, config: ProviderConfig, transport: Transport | None = None) -> BaseProvider:
        """
        Create a provider instance.

        The adapter class comes from settings["type"] when given (so several
        differently configured instances of one provider can coexist under
        distinct ids), otherwise from the config id.

        Args:
            config: Provider configuration
            transport: Optional shared transport

        Returns:
            Provider instance (not yet initialized)

        Raises:
            ClientError: If the provider type is not supported
            ConfigurationError: If the adapter rejects its configuration
        """
        provider_type = config.settings.get("type") or config.id
        provider_class = cls.provider_class(provider_type)

        try:
            instance = provider_class(config, transport)
        except AiError:
            raise
        except (TypeError, ValueError) as e:
            logger.error(
                f"Invalid configuration for {config.id} provider: {e}",
                extra={"provider": config.id, "config_keys": list(config.model_dump().keys()), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Invalid configuration for {config.id}: {e}",
                details={"provider": config.id, "error": str(e)},
            ) from e

        logger.info(
            f"Created {provider_type} provider instance '{config.id}'",
            extra={"provider": config.id, "type": provider_type, "has_api_key": bool(config.api_key)},
        )
        return instance

    @classmethod
    def get_supported_providers(cls) -> list[str]:
        """
        Get list of supported provider types.

        Returns:
            List of provider type names
        """
        return list(cls._PROVIDERS.keys())
