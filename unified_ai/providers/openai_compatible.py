"""
OpenAI-Compatible Provider Implementation

Provides integration with OpenAI-compatible API endpoints (e.g., LM Studio,
Ollama, vLLM) plus presets for hosted services that speak the same protocol
(Mistral, xAI). All of them reuse the OpenAI mapper under their own
provider id.
"""

import logging

from ..config.schemas import ProviderConfig
from ..errors import ConfigurationError
from ..models import Operation, ProviderCapabilities
from ..transport import Transport
from .openai import OpenAIMapper, OpenAIProvider
from .policy import ParameterPolicy

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(OpenAIProvider):
    """
    OpenAI-compatible API provider implementation.

    Works with any service that speaks the OpenAI wire protocol.
    base_url is required; an API key is optional since many local servers
    don't check one. Capabilities default to chat, streaming and embeddings
    and can be widened through settings["capabilities"].
    """

    PROVIDER_TYPE = "openai_compatible"
    DEFAULT_BASE_URL = None
    DEFAULT_MODEL = None
    DEFAULT_OPERATION_MODELS: dict[Operation, str] = {}
    REQUIRES_API_KEY = False
    MODEL_PREFIXES = ()
    INCLUDE_STREAM_USAGE = False

    def __init__(self, config: ProviderConfig, transport: Transport | None = None) -> None:
        super().__init__(config, transport)
        logger.debug(f"OpenAI-compatible provider {self.id} at {self.base_url}", extra={"provider": self.id})

    def _validate_config(self) -> None:
        """Validate OpenAI-compatible provider configuration."""
        if not self.base_url:
            raise ConfigurationError(
                f"base_url is required for {self.name} provider. Example: http://localhost:1234/v1",
                details={"provider": self.config.id},
            )
        super()._validate_config()

    def _build_mapper(self) -> OpenAIMapper:
        # Reasoning-model restrictions are OpenAI-specific
        return OpenAIMapper(
            self.id,
            chat_policy=ParameterPolicy(),
            responses_policy=ParameterPolicy(),
            include_stream_usage=self.INCLUDE_STREAM_USAGE,
        )

    @property
    def name(self) -> str:
        return "OpenAI-compatible"

    def default_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_chat=True,
            supports_streaming=True,
            supports_embedding=True,
            dynamic_models=True,
        )


class MistralProvider(OpenAICompatibleProvider):
    """Mistral AI (chat, streaming, embeddings)."""

    PROVIDER_TYPE = "mistral"
    DEFAULT_BASE_URL = "https://api.mistral.ai/v1"
    DEFAULT_MODEL = "mistral-large-latest"
    DEFAULT_OPERATION_MODELS = {Operation.EMBEDDING: "mistral-embed"}
    REQUIRES_API_KEY = True

    @property
    def name(self) -> str:
        return "Mistral"

    def default_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_chat=True,
            supports_streaming=True,
            supports_embedding=True,
            fallback_models=(
                "mistral-large-latest",
                "mistral-medium-latest",
                "mistral-small-latest",
                "codestral-latest",
                "mistral-embed",
            ),
            dynamic_models=True,
        )


class XaiProvider(OpenAICompatibleProvider):
    """xAI Grok (chat, streaming, image generation)."""

    PROVIDER_TYPE = "xai"
    DEFAULT_BASE_URL = "https://api.x.ai/v1"
    DEFAULT_MODEL = "grok-4"
    DEFAULT_OPERATION_MODELS = {Operation.IMAGE: "grok-2-image"}
    REQUIRES_API_KEY = True
    MODEL_PREFIXES = ("grok",)
    INCLUDE_STREAM_USAGE = True

    @property
    def name(self) -> str:
        return "xAI"

    def default_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_chat=True,
            supports_streaming=True,
            supports_image_generation=True,
            fallback_models=("grok-4", "grok-3", "grok-3-mini", "grok-2-image"),
            dynamic_models=True,
        )
