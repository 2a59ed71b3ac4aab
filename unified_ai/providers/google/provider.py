"""
Google Gemini Provider

Adapter for the Gemini Developer API (generativelanguage.googleapis.com):
chat and streaming chat, embeddings, Imagen and Gemini image generation,
speech synthesis and transcription through generateContent, Veo video
generation through long-running operations, and multimodal video analysis.
"""

import logging
from collections.abc import AsyncIterator

from ...config.schemas import ProviderConfig
from ...errors import ClientError, ErrorCode
from ...models import (
    AudioResponse,
    ChatRequest,
    ChatResponse,
    ChatStreamEvent,
    EmbeddingRequest,
    EmbeddingResponse,
    ImageRequest,
    ImageResponse,
    Operation,
    ProviderCapabilities,
    SttRequest,
    TranscriptionResponse,
    TtsRequest,
    VideoAnalysisRequest,
    VideoAnalysisResponse,
    VideoJob,
    VideoJobStatus,
    VideoRequest,
    VideoResponse,
)
from ...transport import Transport
from ..base import BaseProvider
from ..polling import poll_job
from .mapper import GoogleMapper
from .models import DEFAULT_BASE_URL, DEFAULT_CHAT_MODEL, DEFAULT_OPERATION_MODELS, FALLBACK_MODELS, MODEL_PREFIXES

logger = logging.getLogger(__name__)


class GoogleProvider(BaseProvider):
    """Google Gemini provider implementation."""

    PROVIDER_TYPE = "google"
    DEFAULT_BASE_URL = DEFAULT_BASE_URL
    DEFAULT_MODEL = DEFAULT_CHAT_MODEL
    DEFAULT_OPERATION_MODELS = DEFAULT_OPERATION_MODELS
    AUTH_HEADER = "x-goog-api-key"
    MODELS_PATH = "models?pageSize=1000"
    MODEL_PREFIXES = MODEL_PREFIXES

    def __init__(self, config: ProviderConfig, transport: Transport | None = None) -> None:
        super().__init__(config, transport)
        self.mapper = GoogleMapper(self.id)

    @property
    def name(self) -> str:
        return "Google Gemini"

    def default_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_chat=True,
            supports_streaming=True,
            supports_embedding=True,
            supports_image_generation=True,
            supports_tts=True,
            supports_stt=True,
            supports_video_generation=True,
            supports_video_analysis=True,
            fallback_models=FALLBACK_MODELS,
            dynamic_models=True,
        )

    async def chat(self, request: ChatRequest) -> ChatResponse:
        model, body = self._map(self.mapper.map_chat_request, request, self.default_model)
        data = await self._request_json("POST", self.mapper.model_path(model, "generateContent"), body)
        return self._map(self.mapper.map_chat_response, data, model)

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatStreamEvent]:
        model, body = self._map(self.mapper.map_chat_request, request, self.default_model)
        path = f"{self.mapper.model_path(model, 'streamGenerateContent')}?alt=sse"
        async for event in self._stream_chat(path, body, self.mapper.decode_stream):
            yield event

    async def embed(self, request: EmbeddingRequest) -> EmbeddingResponse:
        model, path, body = self._map(
            self.mapper.map_embedding_request, request, self.default_model_for(Operation.EMBEDDING)
        )
        data = await self._request_json("POST", path, body)
        return self._map(self.mapper.map_embedding_response, data, model)

    async def generate_image(self, request: ImageRequest) -> ImageResponse:
        model, path, body = self._map(self.mapper.map_image_request, request, self.default_model_for(Operation.IMAGE))
        data = await self._request_json("POST", path, body)
        return self._map(self.mapper.map_image_response, data, model, request)

    async def tts(self, request: TtsRequest) -> AudioResponse:
        model, body = self._map(self.mapper.map_tts_request, request, self.default_model_for(Operation.TTS))
        data = await self._request_json("POST", self.mapper.model_path(model, "generateContent"), body)
        return self._map(self.mapper.map_tts_response, data, model)

    async def stt(self, request: SttRequest) -> TranscriptionResponse:
        model, body = self._map(self.mapper.map_stt_request, request, self.default_model_for(Operation.STT))
        data = await self._request_json("POST", self.mapper.model_path(model, "generateContent"), body)
        return self._map(self.mapper.map_stt_response, data, model, request.language)

    async def _get_operation(self, name: str) -> VideoJob:
        data = await self._request_json("GET", name)
        return self._map(self.mapper.map_video_job, data)

    async def generate_video(self, request: VideoRequest) -> VideoResponse:
        """Start a predictLongRunning operation, poll it, then download the video."""
        model, body = self._map(self.mapper.map_video_request, request, self.default_model_for(Operation.VIDEO))
        data = await self._request_json("POST", self.mapper.model_path(model, "predictLongRunning"), body)
        job = self._map(self.mapper.map_video_job, data)
        logger.info(f"Started video operation {job.id}", extra={"provider": self.id, "job_id": job.id, "model": model})

        if not job.is_terminal:
            operation = job.id
            job = await poll_job(lambda: self._get_operation(operation), operation, self.poll_settings(), self.id)
        if job.status is VideoJobStatus.FAILED:
            raise ClientError(
                f"Video operation {job.id} failed: {job.error or 'unknown error'}",
                ErrorCode.JOB_FAILED,
                provider=self.id,
                provider_error=job.metadata or None,
            )

        content = await self._request("GET", job.asset_url or "")
        return self._map(self.mapper.map_video_response, job, content.body, model, request)

    async def analyze_video(self, request: VideoAnalysisRequest) -> VideoAnalysisResponse:
        model, body = self._map(
            self.mapper.map_video_analysis_request, request, self.default_model_for(Operation.VIDEO_ANALYSIS)
        )
        data = await self._request_json("POST", self.mapper.model_path(model, "generateContent"), body)
        return self._map(self.mapper.map_video_analysis_response, data, model, request)
