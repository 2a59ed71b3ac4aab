"""
Anthropic Provider

Adapter for the Anthropic Messages API (chat and streaming chat).
"""

import logging
from collections.abc import AsyncIterator, Mapping

from ...config.schemas import ProviderConfig
from ...models import ChatRequest, ChatResponse, ChatStreamEvent, ProviderCapabilities
from ...transport import Transport
from ..base import BaseProvider
from .mapper import AnthropicMapper

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2023-06-01"

FALLBACK_MODELS = (
    "claude-opus-4-1",
    "claude-opus-4-0",
    "claude-sonnet-4-5",
    "claude-sonnet-4-0",
    "claude-haiku-4-5",
    "claude-3-7-sonnet-latest",
    "claude-3-5-haiku-latest",
)


class AnthropicProvider(BaseProvider):
    """
    Anthropic provider implementation.

    Authenticates with x-api-key and pins the API version through the
    anthropic-version header (settings["anthropic_version"] overrides it).
    """

    PROVIDER_TYPE = "anthropic"
    DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
    DEFAULT_MODEL = "claude-sonnet-4-5"
    AUTH_HEADER = "x-api-key"
    MODELS_PATH = "models"
    MODEL_PREFIXES = ("claude-",)

    def __init__(self, config: ProviderConfig, transport: Transport | None = None) -> None:
        super().__init__(config, transport)
        self.mapper = AnthropicMapper(self.id)
        self.api_version = str(config.settings.get("anthropic_version", DEFAULT_API_VERSION))

    @property
    def name(self) -> str:
        return "Anthropic"

    def default_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_chat=True,
            supports_streaming=True,
            fallback_models=FALLBACK_MODELS,
            dynamic_models=True,
        )

    def _headers(self, extra: Mapping[str, str] | None = None, json_body: bool = True) -> dict[str, str]:
        return super()._headers({"anthropic-version": self.api_version, **(extra or {})}, json_body)

    async def chat(self, request: ChatRequest) -> ChatResponse:
        body = self._map(self.mapper.map_chat_request, request, self.default_model)
        data = await self._request_json("POST", "messages", body)
        return self._map(self.mapper.map_chat_response, data, body["model"])

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatStreamEvent]:
        body = self._map(self.mapper.map_chat_request, request, self.default_model, stream=True)
        async for event in self._stream_chat("messages", body, self.mapper.decode_stream):
            yield event
