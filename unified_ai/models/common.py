"""
Unified AI - Common Model Types

Roles, messages, token usage, operation kinds and the per-provider
capability descriptor.
"""

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from ..errors import ErrorCode


class Role(str, Enum):
    """Unified chat roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"


class Operation(str, Enum):
    """Operations a provider may support."""

    CHAT = "chat"
    STREAMING = "streaming"
    EMBEDDING = "embedding"
    IMAGE = "image"
    TTS = "tts"
    STT = "stt"
    VIDEO = "video"
    VIDEO_ANALYSIS = "video_analysis"

    @property
    def not_supported_code(self) -> ErrorCode:
        return _NOT_SUPPORTED_CODES[self]


_NOT_SUPPORTED_CODES: dict[Operation, ErrorCode] = {
    Operation.CHAT: ErrorCode.CHAT_NOT_SUPPORTED,
    Operation.STREAMING: ErrorCode.STREAMING_NOT_SUPPORTED,
    Operation.EMBEDDING: ErrorCode.EMBEDDING_NOT_SUPPORTED,
    Operation.IMAGE: ErrorCode.IMAGE_GENERATION_NOT_SUPPORTED,
    Operation.TTS: ErrorCode.TTS_NOT_SUPPORTED,
    Operation.STT: ErrorCode.STT_NOT_SUPPORTED,
    Operation.VIDEO: ErrorCode.VIDEO_GENERATION_NOT_SUPPORTED,
    Operation.VIDEO_ANALYSIS: ErrorCode.VIDEO_ANALYSIS_NOT_SUPPORTED,
}


class Message(BaseModel):
    """A single chat message."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(..., description="Speaker role")
    content: str = Field(default="", description="Message text")
    name: str | None = Field(default=None, description="Optional participant name")
    meta: dict[str, Any] | None = Field(
        default=None, description="Provider-specific extras (e.g. 'images' for multimodal input)"
    )


class Usage(BaseModel):
    """Normalized token usage. Missing counters default to zero."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def fill_total(cls, data: Any) -> Any:
        """Default total_tokens to prompt + completion."""
        if isinstance(data, dict):
            data = {k: (0 if v is None else v) for k, v in data.items()}
            if not data.get("total_tokens"):
                data["total_tokens"] = data.get("prompt_tokens", 0) + data.get("completion_tokens", 0)
        return data

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


# camelCase aliases accepted by ProviderCapabilities.from_dict
_CAPABILITY_ALIASES: dict[str, str] = {
    "supportsChat": "supports_chat",
    "supportsEmbedding": "supports_embedding",
    "supportsImageGeneration": "supports_image_generation",
    "supportsTTS": "supports_tts",
    "supportsTts": "supports_tts",
    "supportsSTT": "supports_stt",
    "supportsStt": "supports_stt",
    "supportsVideoGeneration": "supports_video_generation",
    "supportsVideoAnalysis": "supports_video_analysis",
    "supportsStreaming": "supports_streaming",
    "fallbackModels": "fallback_models",
    "dynamicModels": "dynamic_models",
    "cacheTtl": "cache_ttl",
}

_OPERATION_FLAGS: dict[Operation, str] = {
    Operation.CHAT: "supports_chat",
    Operation.STREAMING: "supports_streaming",
    Operation.EMBEDDING: "supports_embedding",
    Operation.IMAGE: "supports_image_generation",
    Operation.TTS: "supports_tts",
    Operation.STT: "supports_stt",
    Operation.VIDEO: "supports_video_generation",
    Operation.VIDEO_ANALYSIS: "supports_video_analysis",
}


class ProviderCapabilities(BaseModel):
    """
    Capability Descriptor for one provider.

    Static operation flags plus a fallback model list and a refreshable
    dynamic model list. The dynamic list is only ever replaced as a whole
    (update_models), so readers never observe a partially updated list.
    """

    supports_chat: bool = Field(default=False)
    supports_embedding: bool = Field(default=False)
    supports_image_generation: bool = Field(default=False)
    supports_tts: bool = Field(default=False)
    supports_stt: bool = Field(default=False)
    supports_video_generation: bool = Field(default=False)
    supports_video_analysis: bool = Field(default=False)
    supports_streaming: bool = Field(default=False)
    fallback_models: tuple[str, ...] = Field(default=(), description="Static model list used when no refresh is cached")
    dynamic_models: bool = Field(default=False, description="Whether the provider exposes a model listing endpoint")
    cache_ttl: float = Field(default=24 * 3600, gt=0, description="Seconds a refreshed model list stays valid")

    _models: tuple[str, ...] | None = PrivateAttr(default=None)
    _updated_at: float | None = PrivateAttr(default=None)

    def supports(self, operation: Operation | str) -> bool:
        """Check whether an operation is supported."""
        try:
            op = Operation(operation)
        except ValueError:
            return False
        return bool(getattr(self, _OPERATION_FLAGS[op]))

    def update_models(self, models: list[str] | tuple[str, ...]) -> None:
        """Atomically replace the cached dynamic model list."""
        self._models, self._updated_at = tuple(models), time.monotonic()

    @property
    def has_valid_cache(self) -> bool:
        if self._models is None or self._updated_at is None:
            return False
        return (time.monotonic() - self._updated_at) < self.cache_ttl

    @property
    def supported_models(self) -> list[str]:
        """Cached dynamic models while fresh, otherwise the fallback list."""
        models = self._models
        if models and self.has_valid_cache:
            return list(models)
        return list(self.fallback_models)

    def supports_model(self, model: str) -> bool:
        return model in self.supported_models

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProviderCapabilities":
        """Build from a dict using snake_case or camelCase keys."""
        normalized = {_CAPABILITY_ALIASES.get(key, key): value for key, value in data.items()}
        return cls(**normalized)

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump()
        data["fallback_models"] = list(self.fallback_models)
        return data
