"""
Unified AI - Data Models

Provider-agnostic request/response records and the capability descriptor.
"""

from .common import Message, Operation, ProviderCapabilities, Role, Usage
from .requests import (
    ChatRequest,
    EmbeddingRequest,
    ImageRequest,
    ImageSize,
    SttRequest,
    TtsRequest,
    VideoAnalysisRequest,
    VideoRequest,
)
from .responses import (
    AudioResponse,
    ChatChoice,
    ChatResponse,
    ChatStreamEvent,
    DetectedAction,
    DetectedObject,
    DetectedText,
    EmbeddingData,
    EmbeddingResponse,
    ImageAsset,
    ImageResponse,
    SceneSegment,
    TranscriptionResponse,
    TranscriptionSegment,
    VideoAnalysisResponse,
    VideoAsset,
    VideoJob,
    VideoJobStatus,
    VideoResponse,
)

__all__ = [
    # Common
    "Role",
    "Message",
    "Usage",
    "Operation",
    "ProviderCapabilities",
    # Requests
    "ChatRequest",
    "EmbeddingRequest",
    "ImageRequest",
    "ImageSize",
    "TtsRequest",
    "SttRequest",
    "VideoRequest",
    "VideoAnalysisRequest",
    # Responses
    "ChatChoice",
    "ChatResponse",
    "ChatStreamEvent",
    "EmbeddingData",
    "EmbeddingResponse",
    "ImageAsset",
    "ImageResponse",
    "AudioResponse",
    "TranscriptionSegment",
    "TranscriptionResponse",
    "VideoJobStatus",
    "VideoJob",
    "VideoAsset",
    "VideoResponse",
    "DetectedObject",
    "SceneSegment",
    "DetectedAction",
    "DetectedText",
    "VideoAnalysisResponse",
]
