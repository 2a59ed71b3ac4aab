"""
OpenAI Provider

Adapter for the OpenAI REST API: Chat Completions and Responses (plain and
streaming), embeddings, images, speech synthesis, transcription and the
asynchronous video job lifecycle.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

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
    VideoJob,
    VideoJobStatus,
    VideoRequest,
    VideoResponse,
)
from ...transport import Transport
from ..base import BaseProvider
from ..polling import poll_job
from .mapper import OpenAIMapper
from .models import DEFAULT_BASE_URL, DEFAULT_CHAT_MODEL, DEFAULT_OPERATION_MODELS, FALLBACK_MODELS, MODEL_PREFIXES

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """
    OpenAI provider implementation.

    Chat goes to /chat/completions unless the request asks for the
    Responses API (provider option api="responses", or a
    previous_response_id / instructions option).
    """

    PROVIDER_TYPE = "openai"
    DEFAULT_BASE_URL = DEFAULT_BASE_URL
    DEFAULT_MODEL = DEFAULT_CHAT_MODEL
    DEFAULT_OPERATION_MODELS = DEFAULT_OPERATION_MODELS
    MODELS_PATH = "models"
    MODEL_PREFIXES = MODEL_PREFIXES

    def __init__(self, config: ProviderConfig, transport: Transport | None = None) -> None:
        super().__init__(config, transport)
        self.mapper = self._build_mapper()

    def _build_mapper(self) -> OpenAIMapper:
        return OpenAIMapper(self.id)

    @property
    def name(self) -> str:
        return "OpenAI"

    def default_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            supports_chat=True,
            supports_streaming=True,
            supports_embedding=True,
            supports_image_generation=True,
            supports_tts=True,
            supports_stt=True,
            supports_video_generation=True,
            fallback_models=FALLBACK_MODELS,
            dynamic_models=True,
        )

    async def chat(self, request: ChatRequest) -> ChatResponse:
        if self.mapper.uses_responses_api(request):
            body: Any = self._map(self.mapper.map_responses_request, request, self.default_model)
            data = await self._request_json("POST", "responses", body)
            return self._map(self.mapper.map_responses_response, data, body["model"])

        body = self._map(self.mapper.map_chat_request, request, self.default_model)
        data = await self._request_json("POST", "chat/completions", body)
        return self._map(self.mapper.map_chat_response, data, body["model"])

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatStreamEvent]:
        if self.mapper.uses_responses_api(request):
            body: Any = self._map(self.mapper.map_responses_request, request, self.default_model, stream=True)
            path, decode = "responses", self.mapper.decode_responses_stream
        else:
            body = self._map(self.mapper.map_chat_request, request, self.default_model, stream=True)
            path, decode = "chat/completions", self.mapper.decode_chat_stream

        async for event in self._stream_chat(path, body, decode):
            yield event

    async def embed(self, request: EmbeddingRequest) -> EmbeddingResponse:
        body = self._map(self.mapper.map_embedding_request, request, self.default_model_for(Operation.EMBEDDING))
        data = await self._request_json("POST", "embeddings", body)
        return self._map(self.mapper.map_embedding_response, data, body["model"])

    async def generate_image(self, request: ImageRequest) -> ImageResponse:
        body = self._map(self.mapper.map_image_request, request, self.default_model_for(Operation.IMAGE))
        data = await self._request_json("POST", "images/generations", body)
        return self._map(self.mapper.map_image_response, data, body["model"], request)

    async def tts(self, request: TtsRequest) -> AudioResponse:
        body = self._map(self.mapper.map_tts_request, request, self.default_model_for(Operation.TTS))
        response = await self._request("POST", "audio/speech", body)
        return self.mapper.map_tts_response(response.body, body, response.headers.get("content-type"))

    async def stt(self, request: SttRequest) -> TranscriptionResponse:
        fields, files = self._map(self.mapper.map_stt_request, request, self.default_model_for(Operation.STT))
        response = await self._request_multipart("audio/transcriptions", fields, files)
        if fields["response_format"] in ("json", "verbose_json"):
            data: Any = self._decode(response)
        else:
            data = response.text
        return self._map(self.mapper.map_stt_response, data, fields["model"], request.language)

    async def _get_video_job(self, job_id: str) -> VideoJob:
        data = await self._request_json("GET", f"videos/{job_id}")
        return self._map(self.mapper.map_video_job, data)

    def _job_failed(self, job: VideoJob) -> ClientError:
        return ClientError(
            f"Video job {job.id} failed: {job.error or 'unknown error'}",
            ErrorCode.JOB_FAILED,
            provider=self.id,
            provider_error=job.metadata or None,
        )

    async def generate_video(self, request: VideoRequest) -> VideoResponse:
        """Submit a video job, poll it to completion, then download the content."""
        fields, files = self._map(self.mapper.map_video_request, request, self.default_model_for(Operation.VIDEO))
        response = await self._request_multipart("videos", fields, files)
        job = self._map(self.mapper.map_video_job, self._decode(response))
        logger.info(
            f"Submitted video job {job.id} ({job.status.value})",
            extra={"provider": self.id, "job_id": job.id, "model": fields["model"]},
        )

        if job.status is VideoJobStatus.FAILED:
            raise self._job_failed(job)
        if not job.is_terminal:
            job_id = job.id
            job = await poll_job(lambda: self._get_video_job(job_id), job_id, self.poll_settings(), self.id)
            if job.status is VideoJobStatus.FAILED:
                raise self._job_failed(job)

        content = await self._request("GET", f"videos/{job.id}/content")
        return self._map(self.mapper.map_video_response, job, content.body, fields["model"], request)
