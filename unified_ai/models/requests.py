"""
Unified AI - Request Models

Provider-agnostic requests, one per operation. All requests are immutable
once constructed; provider-specific extensions travel in provider_options,
keyed by provider id, and are validated lazily by each mapper.
"""

import copy
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .common import Message


class _Request(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str | None = Field(default=None, description="Model identifier (falls back to the provider default)")
    provider_options: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Provider-specific options keyed by provider id",
    )

    def options_for(self, provider_id: str) -> dict[str, Any]:
        """Deep copy of the option bag for one provider (empty if absent)."""
        options = self.provider_options.get(provider_id)
        return copy.deepcopy(options) if isinstance(options, dict) else {}


class ChatRequest(_Request):
    """Chat completion request."""

    messages: tuple[Message, ...] = Field(..., description="Conversation so far")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    n: int | None = Field(default=None, ge=1)
    stop: tuple[str, ...] | None = Field(default=None)
    user: str | None = Field(default=None)

    @field_validator("messages")
    @classmethod
    def validate_messages(cls, v: tuple[Message, ...]) -> tuple[Message, ...]:
        if not v:
            raise ValueError("messages must not be empty")
        return v


class EmbeddingRequest(_Request):
    """Embedding request for one or more inputs."""

    inputs: tuple[str, ...] = Field(..., description="Texts to embed")

    @field_validator("inputs")
    @classmethod
    def validate_inputs(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("inputs must not be empty")
        return v


class ImageSize(str, Enum):
    """Supported image sizes."""

    S256 = "256x256"
    S512 = "512x512"
    S1024 = "1024x1024"
    PORTRAIT = "1024x1792"
    LANDSCAPE = "1792x1024"

    @property
    def width(self) -> int:
        return int(self.value.split("x")[0])

    @property
    def height(self) -> int:
        return int(self.value.split("x")[1])


class ImageRequest(_Request):
    """Image generation request."""

    prompt: str = Field(..., min_length=1)
    size: ImageSize | None = Field(default=None)
    n: int | None = Field(default=None, ge=1, le=10)
    quality: str | None = Field(default=None, description="e.g. 'standard', 'hd'")
    style: str | None = Field(default=None, description="e.g. 'vivid', 'natural'")


class TtsRequest(_Request):
    """Text-to-speech request."""

    text: str = Field(..., min_length=1)
    voice: str | None = Field(default=None)
    speed: float | None = Field(default=None, ge=0.25, le=4.0)
    response_format: str | None = Field(default=None, description="Audio codec, e.g. 'mp3', 'wav'")


class SttRequest(_Request):
    """Speech-to-text request."""

    audio: bytes = Field(..., description="Raw audio bytes")
    language: str | None = Field(default=None)
    prompt: str | None = Field(default=None)
    filename: str = Field(default="audio.wav", description="Filename sent with multipart uploads")
    mime_type: str = Field(default="audio/wav")

    @field_validator("audio")
    @classmethod
    def validate_audio(cls, v: bytes) -> bytes:
        if not v:
            raise ValueError("audio must not be empty")
        return v


class VideoRequest(_Request):
    """Video generation request."""

    prompt: str = Field(..., min_length=1)
    duration: int | None = Field(default=None, gt=0, description="Clip length in seconds")
    aspect_ratio: str | None = Field(default=None, description="e.g. '16:9'")
    size: str | None = Field(default=None, description="e.g. '1280x720'")
    frame_rate: int | None = Field(default=None, gt=0)
    quality: str | None = Field(default=None)
    seed: int | None = Field(default=None)


class VideoAnalysisRequest(_Request):
    """Multimodal video analysis request."""

    video_url: str | None = Field(default=None)
    video_base64: str | None = Field(default=None)
    mime_type: str = Field(default="video/mp4")
    features: tuple[str, ...] = Field(
        default=("objects", "scenes", "actions", "text", "labels"),
        description="Analysis features to extract",
    )
    language: str | None = Field(default=None)
    confidence_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    prompt: str | None = Field(default=None, description="Extra instructions for the analysis")

    @model_validator(mode="after")
    def validate_source(self) -> "VideoAnalysisRequest":
        if (self.video_url is None) == (self.video_base64 is None):
            raise ValueError("exactly one of video_url or video_base64 is required")
        return self
