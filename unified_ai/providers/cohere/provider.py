"""
Cohere Provider

Adapter for the Cohere v2 chat and embed endpoints.
"""

import logging
from collections.abc import AsyncIterator

from ...config.schemas import ProviderConfig
from ...models import (
    ChatRequest,
    ChatResponse,
    ChatStreamEvent,
    EmbeddingRequest,
    EmbeddingResponse,
    Operation,
    ProviderCapabilities,
)
from ...transport import Transport
from ..base import BaseProvider
from .mapper import CohereMapper

logger = logging.getLogger(__name__)

FALLBACK_MODELS = (
    "command-a-03-2025",
    "command-r-plus-08-2024",
    "command-r-08-2024",
    "command-r7b-12-2024",
    "embed-english-v3.0",
    "embed-multilingual-v3.0",
    "embed-v4.0",
)


class CohereProvider(BaseProvider):
    """Cohere provider implementation."""

    PROVIDER_TYPE = "cohere"
    DEFAULT_BASE_URL = "https://api.cohere.com"
    DEFAULT_MODEL = "command-a-03-2025"
    DEFAULT_OPERATION_MODELS = {Operation.EMBEDDING: "embed-english-v3.0"}
    MODELS_PATH = "v1/models"
    MODEL_PREFIXES = ("command", "embed", "rerank", "c4ai")

    def __init__(self, config: ProviderConfig, transport: Transport | None = None) -> None:
        super().__init__(config, transport)
        self.mapper = CohereMapper(self.id)

    @property
    def name(self) -> str:
        return "Cohere"

    def default_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_chat=True,
            supports_streaming=True,
            supports_embedding=True,
            fallback_models=FALLBACK_MODELS,
            dynamic_models=True,
        )

    async def chat(self, request: ChatRequest) -> ChatResponse:
        body = self._map(self.mapper.map_chat_request, request, self.default_model)
        data = await self._request_json("POST", "v2/chat", body)
        return self._map(self.mapper.map_chat_response, data, body["model"])

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatStreamEvent]:
        body = self._map(self.mapper.map_chat_request, request, self.default_model, stream=True)
        async for event in self._stream_chat("v2/chat", body, self.mapper.decode_stream):
            yield event

    async def embed(self, request: EmbeddingRequest) -> EmbeddingResponse:
        body = self._map(self.mapper.map_embedding_request, request, self.default_model_for(Operation.EMBEDDING))
        data = await self._request_json("POST", "v2/embed", body)
        return self._map(self.mapper.map_embedding_response, data, body["model"])
