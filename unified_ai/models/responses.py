"""
Unified AI - Response Models

Provider-agnostic responses. Every response carries the producing provider,
normalized usage where applicable, and an open metadata bag holding wire
fields that have no unified equivalent.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import Message, Usage


class _Response(BaseModel):
    model_config = ConfigDict(frozen=True)


class ChatChoice(_Response):
    index: int = 0
    message: Message
    finish_reason: str | None = None


class ChatResponse(_Response):
    """Chat completion result."""

    id: str
    choices: tuple[ChatChoice, ...] = ()
    usage: Usage = Field(default_factory=Usage)
    model: str
    provider: str
    timestamp: datetime | None = Field(default=None, description="Creation time reported by the provider")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        """Content of the first choice, or an empty string."""
        return self.choices[0].message.content if self.choices else ""


class ChatStreamEvent(_Response):
    """
    One streaming chat event.

    Content events carry a delta; the single terminal event has done=True
    and carries final metadata (usage, model, response id when known).
    """

    delta: str | None = None
    done: bool = False
    metadata: dict[str, Any] | None = None


class EmbeddingData(_Response):
    vector: tuple[float, ...]
    dimension: int
    index: int = 0


class EmbeddingResponse(_Response):
    embeddings: tuple[EmbeddingData, ...] = ()
    model: str
    provider: str
    usage: Usage = Field(default_factory=Usage)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ImageAsset(_Response):
    """Generated image, delivered as a URL or as base64 data."""

    url: str | None = None
    base64: str | None = None
    width: int | None = None
    height: int | None = None
    revised_prompt: str | None = None
    mime_type: str | None = None

    @model_validator(mode="after")
    def validate_payload(self) -> "ImageAsset":
        if self.url is None and self.base64 is None:
            raise ValueError("image asset needs a url or base64 data")
        return self


class ImageResponse(_Response):
    assets: tuple[ImageAsset, ...] = ()
    model: str
    provider: str
    timestamp: datetime | None = Field(default=None, description="Creation time reported by the provider")
    metadata: dict[str, Any] = Field(default_factory=dict)


class AudioResponse(_Response):
    """Synthesized speech."""

    data: bytes
    format: str
    model: str
    provider: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class TranscriptionSegment(_Response):
    start: float
    end: float
    text: str


class TranscriptionResponse(_Response):
    text: str
    language: str | None = None
    duration: float | None = None
    segments: tuple[TranscriptionSegment, ...] = ()
    model: str
    provider: str
    usage: Usage = Field(default_factory=Usage)
    metadata: dict[str, Any] = Field(default_factory=dict)


class VideoJobStatus(str, Enum):
    """Lifecycle of an asynchronous video job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (VideoJobStatus.COMPLETED, VideoJobStatus.FAILED)


class VideoJob(_Response):
    """
    Provider-side video generation job.

    Terminal states (completed, failed) are final; the poller stops at the
    first terminal status it observes.
    """

    id: str
    status: VideoJobStatus
    progress: float | None = None
    error: str | None = None
    asset_url: str | None = Field(default=None, description="Download location reported by the provider")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class VideoAsset(_Response):
    url: str | None = None
    base64: str | None = None
    mime_type: str = "video/mp4"
    width: int | None = None
    height: int | None = None
    duration: float | None = None
    frame_rate: int | None = None
    revised_prompt: str | None = None

    @model_validator(mode="after")
    def validate_payload(self) -> "VideoAsset":
        if self.url is None and self.base64 is None:
            raise ValueError("video asset needs a url or base64 data")
        return self


class VideoResponse(_Response):
    job_id: str
    assets: tuple[VideoAsset, ...] = ()
    model: str
    provider: str
    timestamp: datetime | None = Field(default=None, description="Creation time reported by the provider")
    metadata: dict[str, Any] = Field(default_factory=dict)


class DetectedObject(_Response):
    label: str
    confidence: float | None = None
    start_time: float | None = None
    end_time: float | None = None
    bounding_box: dict[str, float] | None = None


class SceneSegment(_Response):
    start_time: float
    end_time: float
    description: str | None = None
    labels: tuple[str, ...] = ()


class DetectedAction(_Response):
    action: str
    confidence: float | None = None
    start_time: float | None = None
    end_time: float | None = None


class DetectedText(_Response):
    text: str
    confidence: float | None = None
    start_time: float | None = None
    end_time: float | None = None


class VideoAnalysisResponse(_Response):
    objects: tuple[DetectedObject, ...] = ()
    scenes: tuple[SceneSegment, ...] = ()
    actions: tuple[DetectedAction, ...] = ()
    text: tuple[DetectedText, ...] = ()
    labels: tuple[str, ...] = ()
    summary: str | None = None
    model: str
    provider: str
    usage: Usage = Field(default_factory=Usage)
    metadata: dict[str, Any] = Field(default_factory=dict)
