"""
Google Gemini mapper.

Builds Generative Language API payloads (generateContent, embedContent,
predict, predictLongRunning) from unified requests and maps the responses
back. Option keys are accepted in snake_case or camelCase; wire keys are
written in camelCase.
"""

import base64
import json
import logging
from typing import Any

from ...error_mapper import map_stream_error
from ...errors import ClientError, ErrorCode
from ...models import (
    AudioResponse,
    ChatChoice,
    ChatRequest,
    ChatResponse,
    DetectedAction,
    DetectedObject,
    DetectedText,
    EmbeddingData,
    EmbeddingRequest,
    EmbeddingResponse,
    ImageAsset,
    ImageRequest,
    ImageResponse,
    Message,
    Role,
    SceneSegment,
    SttRequest,
    TranscriptionResponse,
    TtsRequest,
    Usage,
    VideoAnalysisRequest,
    VideoAnalysisResponse,
    VideoAsset,
    VideoJob,
    VideoJobStatus,
    VideoRequest,
    VideoResponse,
)
from ..mapper import ProviderMapper, collect_metadata, first_key, option
from ..streaming import StreamState
from .models import (
    ASPECT_RATIOS,
    DEFAULT_TRANSCRIPTION_PROMPT,
    DEFAULT_TTS_VOICE,
    FINISH_REASONS,
    GENERATION_OPTIONS,
    REQUEST_OPTIONS,
    VIDEO_ANALYSIS_PROMPT,
    ContentWire,
    GenerateContentRequestWire,
    PartWire,
)

logger = logging.getLogger(__name__)


def _image_part(image: Any) -> PartWire:
    if isinstance(image, dict):
        url = image.get("url") or image.get("data")
        mime_type = image.get("mime_type") or image.get("mimeType") or "image/jpeg"
    else:
        url, mime_type = image, "image/jpeg"
    if isinstance(url, str) and url.startswith("data:") and ";base64," in url:
        header, _, data = url.partition(";base64,")
        return {"inline_data": {"mime_type": header.removeprefix("data:"), "data": data}}
    return {"file_data": {"mime_type": mime_type, "file_uri": url}}


def _inline(part: dict[str, Any]) -> dict[str, Any] | None:
    return part.get("inlineData") or part.get("inline_data")


def _float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class GoogleMapper(ProviderMapper):
    """Maps unified records to and from the Gemini API."""

    ROLES_TO_WIRE = {Role.USER: "user", Role.ASSISTANT: "model"}
    ROLES_FROM_WIRE = {"user": Role.USER, "model": Role.ASSISTANT}

    @staticmethod
    def model_path(model: str, method: str) -> str:
        name = model if model.startswith("models/") else f"models/{model}"
        return f"{name}:{method}"

    def map_usage(self, metadata: dict[str, Any] | None) -> Usage:
        if not metadata:
            return Usage()
        return Usage(
            prompt_tokens=metadata.get("promptTokenCount") or 0,
            completion_tokens=metadata.get("candidatesTokenCount") or 0,
            total_tokens=metadata.get("totalTokenCount") or 0,
        )

    @staticmethod
    def candidate_text(candidate: dict[str, Any]) -> str:
        parts = (candidate.get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict) and not p.get("thought"))

    def _first_candidate(self, data: dict[str, Any]) -> dict[str, Any]:
        candidates = data.get("candidates") or []
        if not candidates:
            raise ClientError(
                "Gemini response contains no candidates",
                ErrorCode.INVALID_RESPONSE,
                provider=self.provider_id,
                provider_error=data.get("promptFeedback"),
            )
        return candidates[0]

    # Chat

    def _content(self, message: Message) -> ContentWire:
        parts: list[PartWire] = []
        if message.content:
            parts.append({"text": message.content})
        for image in (message.meta or {}).get("images") or []:
            parts.append(_image_part(image))
        return {"role": self.role_to_wire(message.role), "parts": parts}

    def map_chat_request(self, request: ChatRequest, default_model: str | None) -> tuple[str, GenerateContentRequestWire]:
        model = self.resolve_model(request.model, default_model)
        opts = request.options_for(self.provider_id)

        system = [m.content for m in request.messages if m.role is Role.SYSTEM and m.content]
        body: GenerateContentRequestWire = {
            "contents": [self._content(m) for m in request.messages if m.role is not Role.SYSTEM],
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": "\n\n".join(system)}]}

        config: dict[str, Any] = {}
        if request.temperature is not None:
            config["temperature"] = request.temperature
        if request.top_p is not None:
            config["topP"] = request.top_p
        if request.max_tokens is not None:
            config["maxOutputTokens"] = request.max_tokens
        if request.n is not None:
            config["candidateCount"] = request.n
        if request.stop:
            config["stopSequences"] = list(request.stop)
        for snake, camel in GENERATION_OPTIONS:
            value = option(opts, snake, camel)
            if value is not None:
                config[camel] = value
        if config:
            body["generationConfig"] = config

        for snake, camel in REQUEST_OPTIONS:
            value = option(opts, snake, camel)
            if value is not None:
                body[camel] = value  # type: ignore[literal-required]
        return model, body

    def map_chat_response(self, data: Any, model: str) -> ChatResponse:
        data = self.require_dict(data)
        choices = []
        for i, candidate in enumerate(data.get("candidates") or []):
            content = candidate.get("content") or {}
            reason = candidate.get("finishReason")
            choices.append(
                ChatChoice(
                    index=candidate.get("index", i),
                    message=Message(
                        role=self.role_from_wire(content.get("role") or "model"),
                        content=self.candidate_text(candidate),
                    ),
                    finish_reason=FINISH_REASONS.get(reason, reason.lower()) if reason else None,
                )
            )
        return ChatResponse(
            id=data.get("responseId") or "",
            choices=tuple(choices),
            usage=self.map_usage(data.get("usageMetadata")),
            model=data.get("modelVersion") or model,
            provider=self.provider_id,
            metadata=collect_metadata(data, ("responseId", "modelVersion", "promptFeedback")),
        )

    def decode_stream(self, payload: Any, state: StreamState) -> str | None:
        """One streamGenerateContent chunk -> text delta."""
        if not isinstance(payload, dict):
            return None
        error = payload.get("error")
        if isinstance(error, dict):
            raise map_stream_error(error.get("status"), error.get("message"), self.provider_id, error)

        for key, name in (("responseId", "id"), ("modelVersion", "model")):
            if payload.get(key):
                state.metadata[name] = payload[key]
        if payload.get("usageMetadata"):
            state.metadata["usage"] = self.map_usage(payload["usageMetadata"])

        candidates = payload.get("candidates") or []
        if not candidates:
            return None
        candidate = candidates[0]
        reason = candidate.get("finishReason")
        if reason:
            state.metadata["finish_reason"] = FINISH_REASONS.get(reason, reason.lower())
        return self.candidate_text(candidate) or None

    # Embeddings

    def map_embedding_request(
        self, request: EmbeddingRequest, default_model: str | None
    ) -> tuple[str, str, dict[str, Any]]:
        """Returns (model, path, body); one input uses embedContent, more use batchEmbedContents."""
        model = self.resolve_model(request.model, default_model)
        opts = request.options_for(self.provider_id)
        model_name = model if model.startswith("models/") else f"models/{model}"

        def entry(text: str) -> dict[str, Any]:
            item: dict[str, Any] = {"model": model_name, "content": {"parts": [{"text": text}]}}
            task_type = option(opts, "task_type", "taskType")
            if task_type is not None:
                item["taskType"] = task_type
            dimensions = option(opts, "output_dimensionality", "outputDimensionality")
            if dimensions is not None:
                item["outputDimensionality"] = dimensions
            return item

        if len(request.inputs) == 1:
            return model, self.model_path(model, "embedContent"), entry(request.inputs[0])
        return model, self.model_path(model, "batchEmbedContents"), {"requests": [entry(t) for t in request.inputs]}

    def map_embedding_response(self, data: Any, model: str) -> EmbeddingResponse:
        data = self.require_dict(data)
        if "embedding" in data:
            items = [data["embedding"]]
        else:
            items = self.require_field(data, "embeddings")

        embeddings = []
        for i, item in enumerate(items):
            values = item.get("values")
            if not isinstance(values, list):
                raise ClientError(
                    f"Unexpected embedding format: {type(values).__name__}",
                    ErrorCode.INVALID_FORMAT,
                    provider=self.provider_id,
                )
            vector = tuple(float(v) for v in values)
            embeddings.append(EmbeddingData(vector=vector, dimension=len(vector), index=i))
        return EmbeddingResponse(embeddings=tuple(embeddings), model=model, provider=self.provider_id)

    # Images

    @staticmethod
    def is_imagen(model: str) -> bool:
        return model.removeprefix("models/").startswith("imagen")

    def map_image_request(self, request: ImageRequest, default_model: str | None) -> tuple[str, str, dict[str, Any]]:
        model = self.resolve_model(request.model, default_model)
        opts = request.options_for(self.provider_id)

        if self.is_imagen(model):
            parameters: dict[str, Any] = {"sampleCount": request.n or 1}
            aspect_ratio = option(opts, "aspect_ratio", "aspectRatio")
            if aspect_ratio is None and request.size is not None:
                aspect_ratio = ASPECT_RATIOS.get(request.size.value)
            if aspect_ratio is not None:
                parameters["aspectRatio"] = aspect_ratio
            for snake, camel in (("negative_prompt", "negativePrompt"), ("person_generation", "personGeneration")):
                value = option(opts, snake, camel)
                if value is not None:
                    parameters[camel] = value
            body = {"instances": [{"prompt": request.prompt}], "parameters": parameters}
            return model, self.model_path(model, "predict"), body

        config: dict[str, Any] = {"responseModalities": ["TEXT", "IMAGE"]}
        if request.n is not None:
            config["candidateCount"] = request.n
        body = {"contents": [{"role": "user", "parts": [{"text": request.prompt}]}], "generationConfig": config}
        return model, self.model_path(model, "generateContent"), body

    def map_image_response(self, data: Any, model: str, request: ImageRequest) -> ImageResponse:
        data = self.require_dict(data)
        width = request.size.width if request.size else None
        height = request.size.height if request.size else None
        assets = []

        if "predictions" in data:
            for prediction in data["predictions"] or []:
                if prediction.get("bytesBase64Encoded"):
                    assets.append(
                        ImageAsset(
                            base64=prediction["bytesBase64Encoded"],
                            mime_type=prediction.get("mimeType", "image/png"),
                            width=width,
                            height=height,
                        )
                    )
        else:
            for candidate in data.get("candidates") or []:
                for part in (candidate.get("content") or {}).get("parts") or []:
                    inline = _inline(part)
                    if inline and inline.get("data"):
                        assets.append(
                            ImageAsset(
                                base64=inline["data"],
                                mime_type=first_key(inline, "mimeType", "mime_type", default="image/png"),
                                width=width,
                                height=height,
                            )
                        )

        return ImageResponse(
            assets=tuple(assets),
            model=model,
            provider=self.provider_id,
            metadata=collect_metadata(data, ("modelVersion", "responseId")),
        )

    # Audio

    def map_tts_request(self, request: TtsRequest, default_model: str | None) -> tuple[str, dict[str, Any]]:
        model = self.resolve_model(request.model, default_model)
        voice = {"prebuiltVoiceConfig": {"voiceName": request.voice or DEFAULT_TTS_VOICE}}
        body = {
            "contents": [{"role": "user", "parts": [{"text": request.text}]}],
            "generationConfig": {"responseModalities": ["AUDIO"], "speechConfig": {"voiceConfig": voice}},
        }
        return model, body

    def map_tts_response(self, data: Any, model: str) -> AudioResponse:
        data = self.require_dict(data)
        candidate = self._first_candidate(data)
        for part in (candidate.get("content") or {}).get("parts") or []:
            inline = _inline(part)
            if inline and inline.get("data"):
                mime_type = first_key(inline, "mimeType", "mime_type", default="audio/L16")
                audio_format = "pcm" if "l16" in mime_type.lower() or "pcm" in mime_type.lower() else mime_type.split("/")[-1]
                return AudioResponse(
                    data=base64.b64decode(inline["data"]),
                    format=audio_format,
                    model=model,
                    provider=self.provider_id,
                    metadata={"mime_type": mime_type},
                )
        raise ClientError("Gemini response contains no audio", ErrorCode.INVALID_RESPONSE, provider=self.provider_id)

    def map_stt_request(self, request: SttRequest, default_model: str | None) -> tuple[str, dict[str, Any]]:
        model = self.resolve_model(request.model, default_model)
        prompt = request.prompt or DEFAULT_TRANSCRIPTION_PROMPT
        if request.language:
            prompt = f"{prompt} The spoken language is {request.language}."
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": request.mime_type,
                                "data": base64.b64encode(request.audio).decode("ascii"),
                            }
                        },
                    ],
                }
            ]
        }
        return model, body

    def map_stt_response(self, data: Any, model: str, language: str | None = None) -> TranscriptionResponse:
        data = self.require_dict(data)
        candidate = self._first_candidate(data)
        return TranscriptionResponse(
            text=self.candidate_text(candidate).strip(),
            language=language,
            model=model,
            provider=self.provider_id,
            usage=self.map_usage(data.get("usageMetadata")),
        )

    # Video generation

    def map_video_request(self, request: VideoRequest, default_model: str | None) -> tuple[str, dict[str, Any]]:
        model = self.resolve_model(request.model, default_model)
        opts = request.options_for(self.provider_id)
        parameters: dict[str, Any] = {}
        if request.aspect_ratio is not None:
            parameters["aspectRatio"] = request.aspect_ratio
        if request.duration is not None:
            parameters["durationSeconds"] = request.duration
        if request.seed is not None:
            parameters["seed"] = request.seed
        for snake, camel in (
            ("negative_prompt", "negativePrompt"),
            ("person_generation", "personGeneration"),
            ("resolution", "resolution"),
            ("sample_count", "sampleCount"),
        ):
            value = option(opts, snake, camel)
            if value is not None:
                parameters[camel] = value
        body: dict[str, Any] = {"instances": [{"prompt": request.prompt}]}
        if parameters:
            body["parameters"] = parameters
        return model, body

    def map_video_job(self, data: Any) -> VideoJob:
        """Long-running operation resource -> VideoJob."""
        data = self.require_dict(data, "operation")
        name = self.require_field(data, "name")

        if not data.get("done"):
            return VideoJob(id=name, status=VideoJobStatus.PROCESSING, metadata=collect_metadata(data, ("metadata",)))

        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            return VideoJob(id=name, status=VideoJobStatus.FAILED, error=message, metadata={"error": error})

        result = (data.get("response") or {}).get("generateVideoResponse") or {}
        samples = result.get("generatedSamples") or []
        uri = next(
            (s["video"]["uri"] for s in samples if isinstance(s.get("video"), dict) and s["video"].get("uri")),
            None,
        )
        if uri is None:
            reasons = result.get("raiMediaFilteredReasons")
            return VideoJob(
                id=name,
                status=VideoJobStatus.FAILED,
                error="; ".join(reasons) if reasons else "operation finished without a video",
                metadata=collect_metadata(result, ("raiMediaFilteredCount", "raiMediaFilteredReasons")),
            )
        return VideoJob(id=name, status=VideoJobStatus.COMPLETED, progress=100.0, asset_url=uri)

    def map_video_response(self, job: VideoJob, content: bytes, model: str, request: VideoRequest) -> VideoResponse:
        asset = VideoAsset(
            url=job.asset_url,
            base64=base64.b64encode(content).decode("ascii"),
            mime_type="video/mp4",
            duration=float(request.duration) if request.duration is not None else None,
            frame_rate=request.frame_rate,
        )
        return VideoResponse(
            job_id=job.id,
            assets=(asset,),
            model=model,
            provider=self.provider_id,
            metadata={"operation": job.id},
        )

    # Video analysis

    def map_video_analysis_request(
        self, request: VideoAnalysisRequest, default_model: str | None
    ) -> tuple[str, GenerateContentRequestWire]:
        model = self.resolve_model(request.model, default_model)
        if request.video_url is not None:
            video: PartWire = {"file_data": {"mime_type": request.mime_type, "file_uri": request.video_url}}
        else:
            video = {"inline_data": {"mime_type": request.mime_type, "data": request.video_base64 or ""}}

        instructions = f"{VIDEO_ANALYSIS_PROMPT} Only include these features: {', '.join(request.features)}."
        if request.language:
            instructions += f" Write descriptions in {request.language}."
        if request.prompt:
            instructions += f" {request.prompt}"

        body: GenerateContentRequestWire = {
            "contents": [{"role": "user", "parts": [video, {"text": instructions}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        return model, body

    def _keep(self, confidence: float | None, threshold: float | None) -> bool:
        return threshold is None or confidence is None or confidence >= threshold

    def map_video_analysis_response(
        self, data: Any, model: str, request: VideoAnalysisRequest
    ) -> VideoAnalysisResponse:
        data = self.require_dict(data)
        text = self.candidate_text(self._first_candidate(data)).strip()
        usage = self.map_usage(data.get("usageMetadata"))
        threshold = request.confidence_threshold

        try:
            analysis = json.loads(text)
        except ValueError:
            analysis = None
        if not isinstance(analysis, dict):
            logger.debug("Video analysis answer is not JSON, returning it as summary")
            return VideoAnalysisResponse(summary=text or None, model=model, provider=self.provider_id, usage=usage)

        objects = tuple(
            DetectedObject(
                label=str(o.get("label", "")),
                confidence=_float(o.get("confidence")),
                start_time=_float(o.get("start_time")),
                end_time=_float(o.get("end_time")),
            )
            for o in analysis.get("objects") or []
            if isinstance(o, dict) and self._keep(_float(o.get("confidence")), threshold)
        )
        scenes = tuple(
            SceneSegment(
                start_time=_float(s.get("start_time")) or 0.0,
                end_time=_float(s.get("end_time")) or 0.0,
                description=s.get("description"),
                labels=tuple(str(label) for label in s.get("labels") or []),
            )
            for s in analysis.get("scenes") or []
            if isinstance(s, dict)
        )
        actions = tuple(
            DetectedAction(
                action=str(a.get("action", "")),
                confidence=_float(a.get("confidence")),
                start_time=_float(a.get("start_time")),
                end_time=_float(a.get("end_time")),
            )
            for a in analysis.get("actions") or []
            if isinstance(a, dict) and self._keep(_float(a.get("confidence")), threshold)
        )
        detected_text = tuple(
            DetectedText(
                text=str(t.get("text", "")),
                confidence=_float(t.get("confidence")),
                start_time=_float(t.get("start_time")),
                end_time=_float(t.get("end_time")),
            )
            for t in analysis.get("text") or []
            if isinstance(t, dict) and self._keep(_float(t.get("confidence")), threshold)
        )

        return VideoAnalysisResponse(
            objects=objects,
            scenes=scenes,
            actions=actions,
            text=detected_text,
            labels=tuple(str(label) for label in analysis.get("labels") or []),
            summary=analysis.get("summary"),
            model=model,
            provider=self.provider_id,
            usage=usage,
            metadata=collect_metadata(data, ("modelVersion", "responseId")),
        )
