"""
OpenAI mapper.

Pure translation between unified records and the OpenAI wire format, for
both the Chat Completions and the Responses APIs. Reused by every
OpenAI-compatible provider under its own provider id.
"""

import base64
from typing import Any

from ...error_mapper import map_stream_error
from ...errors import ClientError, ErrorCode
from ...models import (
    AudioResponse,
    ChatChoice,
    ChatRequest,
    ChatResponse,
    EmbeddingData,
    EmbeddingRequest,
    EmbeddingResponse,
    ImageAsset,
    ImageRequest,
    ImageResponse,
    Message,
    Role,
    SttRequest,
    TranscriptionResponse,
    TranscriptionSegment,
    TtsRequest,
    Usage,
    VideoAsset,
    VideoJob,
    VideoRequest,
    VideoResponse,
)
from ...transport import MultipartFile
from ..mapper import ProviderMapper, collect_metadata, first_key, from_epoch_seconds, option
from ..policy import OPENAI_CHAT_POLICY, OPENAI_RESPONSES_POLICY, ParameterPolicy
from ..streaming import StreamState
from .models import (
    CHAT_METADATA_KEYS,
    CHAT_OPTIONS,
    DALL_E_3,
    RESPONSES_FINISH_REASONS,
    RESPONSES_METADATA_KEYS,
    RESPONSES_OPTIONS,
    VIDEO_STATUSES,
    ChatCompletionRequestWire,
    ChatMessageWire,
    EmbeddingRequestWire,
    ImageRequestWire,
    ResponsesRequestWire,
    SpeechRequestWire,
)


def _parse_size(size: str | None) -> tuple[int | None, int | None]:
    if not size or "x" not in size:
        return None, None
    width, _, height = size.partition("x")
    try:
        return int(width), int(height)
    except ValueError:
        return None, None


class OpenAIMapper(ProviderMapper):
    """Maps unified requests/responses to and from the OpenAI REST API."""

    ROLES_TO_WIRE = {
        Role.SYSTEM: "system",
        Role.USER: "user",
        Role.ASSISTANT: "assistant",
        Role.FUNCTION: "tool",
    }
    ROLES_FROM_WIRE = {
        "system": Role.SYSTEM,
        "developer": Role.SYSTEM,
        "user": Role.USER,
        "assistant": Role.ASSISTANT,
        "tool": Role.FUNCTION,
        "function": Role.FUNCTION,
    }

    def __init__(
        self,
        provider_id: str = "openai",
        chat_policy: ParameterPolicy = OPENAI_CHAT_POLICY,
        responses_policy: ParameterPolicy = OPENAI_RESPONSES_POLICY,
        include_stream_usage: bool = True,
    ) -> None:
        super().__init__(provider_id)
        self.chat_policy = chat_policy
        self.responses_policy = responses_policy
        self.include_stream_usage = include_stream_usage

    # Shared pieces

    def map_usage(self, usage: dict[str, Any] | None) -> Usage:
        """Usage from either naming scheme (prompt/completion or input/output)."""
        if not usage:
            return Usage()
        return Usage(
            prompt_tokens=first_key(usage, "prompt_tokens", "input_tokens", default=0),
            completion_tokens=first_key(usage, "completion_tokens", "output_tokens", default=0),
            total_tokens=usage.get("total_tokens") or 0,
        )

    def _message_content(self, message: Message) -> str | list[dict[str, Any]]:
        images = (message.meta or {}).get("images")
        if not images:
            return message.content
        parts: list[dict[str, Any]] = []
        if message.content:
            parts.append({"type": "text", "text": message.content})
        for image in images:
            url = image.get("url") if isinstance(image, dict) else image
            parts.append({"type": "image_url", "image_url": {"url": url}})
        return parts

    def map_message(self, message: Message) -> ChatMessageWire:
        wire: ChatMessageWire = {
            "role": self.role_to_wire(message.role),
            "content": self._message_content(message),
        }
        if message.name:
            wire["name"] = message.name
        meta = message.meta or {}
        if message.role is Role.FUNCTION and meta.get("tool_call_id"):
            wire["tool_call_id"] = meta["tool_call_id"]
        if meta.get("tool_calls"):
            wire["tool_calls"] = meta["tool_calls"]
        return wire

    # Chat Completions

    def uses_responses_api(self, request: ChatRequest) -> bool:
        """Responses API is chosen explicitly or by its stateful options."""
        opts = request.options_for(self.provider_id)
        if opts.get("api") == "responses":
            return True
        return bool(
            option(opts, "previous_response_id", "previousResponseId") or option(opts, "instructions")
        )

    def map_chat_request(
        self, request: ChatRequest, default_model: str | None, stream: bool = False
    ) -> ChatCompletionRequestWire:
        model = self.resolve_model(request.model, default_model)
        opts = request.options_for(self.provider_id)

        params: dict[str, Any] = {
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "top_p": request.top_p,
            "n": request.n,
            "stop": list(request.stop) if request.stop else None,
            "user": request.user,
        }
        for snake, camel in CHAT_OPTIONS:
            value = option(opts, snake, camel)
            if value is not None:
                params[snake] = value

        body: ChatCompletionRequestWire = {
            "model": model,
            "messages": [self.map_message(m) for m in request.messages],
        }
        body.update(self.chat_policy.apply(model, params))  # type: ignore[typeddict-item]
        if stream:
            body["stream"] = True
            if self.include_stream_usage:
                body["stream_options"] = {"include_usage": True}
        return body

    def _map_choice(self, choice: dict[str, Any], index: int) -> ChatChoice:
        message = choice.get("message") or {}
        meta: dict[str, Any] = {}
        for key in ("tool_calls", "function_call", "refusal"):
            if message.get(key) is not None:
                meta[key] = message[key]
        return ChatChoice(
            index=choice.get("index", index),
            message=Message(
                role=self.role_from_wire(message.get("role")),
                content=message.get("content") or "",
                meta=meta or None,
            ),
            finish_reason=choice.get("finish_reason"),
        )

    def map_chat_response(self, data: Any, model: str | None = None) -> ChatResponse:
        data = self.require_dict(data)
        choices = data.get("choices") or []
        return ChatResponse(
            id=self.require_field(data, "id"),
            choices=tuple(self._map_choice(c, i) for i, c in enumerate(choices)),
            usage=self.map_usage(data.get("usage")),
            model=data.get("model") or model or "",
            provider=self.provider_id,
            timestamp=from_epoch_seconds(data.get("created")),
            metadata=collect_metadata(data, CHAT_METADATA_KEYS),
        )

    def decode_chat_stream(self, payload: Any, state: StreamState) -> str | None:
        """One Chat Completions chunk -> content delta (None when it carries none)."""
        if not isinstance(payload, dict):
            return None
        error = payload.get("error")
        if isinstance(error, dict):
            raise map_stream_error(
                first_key(error, "type", "code"), error.get("message"), self.provider_id, error
            )

        for key in ("id", "model", "system_fingerprint"):
            if payload.get(key):
                state.metadata[key] = payload[key]
        if payload.get("usage"):
            state.metadata["usage"] = self.map_usage(payload["usage"])

        choices = payload.get("choices") or []
        if not choices:
            return None
        choice = choices[0]
        if choice.get("finish_reason"):
            state.metadata["finish_reason"] = choice["finish_reason"]
        delta = choice.get("delta") or {}
        return delta.get("content")

    # Responses API

    def _responses_input(self, message: Message) -> dict[str, Any]:
        meta = message.meta or {}
        if message.role is Role.FUNCTION:
            call_id = meta.get("tool_call_id") or meta.get("call_id")
            if not call_id:
                raise ClientError(
                    "Function messages need meta['tool_call_id'] for the Responses API",
                    ErrorCode.INVALID_ROLE,
                    provider=self.provider_id,
                )
            return {"type": "function_call_output", "call_id": call_id, "output": message.content}

        role = self.role_to_wire(message.role)
        images = meta.get("images")
        if not images:
            return {"role": role, "content": message.content}
        text_type = "output_text" if message.role is Role.ASSISTANT else "input_text"
        parts: list[dict[str, Any]] = [{"type": text_type, "text": message.content}] if message.content else []
        for image in images:
            url = image.get("url") if isinstance(image, dict) else image
            parts.append({"type": "input_image", "image_url": url})
        return {"role": role, "content": parts}

    def map_responses_request(
        self, request: ChatRequest, default_model: str | None, stream: bool = False
    ) -> ResponsesRequestWire:
        model = self.resolve_model(request.model, default_model)
        opts = request.options_for(self.provider_id)

        system = [m.content for m in request.messages if m.role is Role.SYSTEM and m.content]
        body: ResponsesRequestWire = {
            "model": model,
            "input": [self._responses_input(m) for m in request.messages if m.role is not Role.SYSTEM],
        }
        instructions = option(opts, "instructions") or ("\n\n".join(system) if system else None)
        if instructions:
            body["instructions"] = instructions

        params = {
            "temperature": request.temperature,
            "top_p": request.top_p,
            "max_output_tokens": option(opts, "max_output_tokens", "maxOutputTokens", request.max_tokens),
            "user": request.user,
        }
        body.update(self.responses_policy.apply(model, params))  # type: ignore[typeddict-item]
        for snake, camel in RESPONSES_OPTIONS:
            value = option(opts, snake, camel)
            if value is not None:
                body[snake] = value  # type: ignore[literal-required]
        if stream:
            body["stream"] = True
        return body

    def _responses_choices(self, output: list[Any], finish_reason: str | None) -> list[ChatChoice]:
        choices: list[ChatChoice] = []
        for item in output:
            if not isinstance(item, dict):
                continue
            if "message" in item:
                # Chat Completions shaped entry
                choices.append(self._map_choice(item, len(choices)))
                continue
            if item.get("type") != "message":
                continue
            text = "".join(
                part.get("text", "")
                for part in item.get("content") or []
                if isinstance(part, dict) and part.get("type") in ("output_text", "text")
            )
            choices.append(
                ChatChoice(
                    index=len(choices),
                    message=Message(role=self.role_from_wire(item.get("role")), content=text),
                    finish_reason=finish_reason,
                )
            )
        return choices

    def map_responses_response(self, data: Any, model: str | None = None) -> ChatResponse:
        data = self.require_dict(data)
        response_id = self.require_field(data, "id", "response_id")
        status = data.get("status")
        finish_reason = RESPONSES_FINISH_REASONS.get(status, status) if status else None

        choices = self._responses_choices(first_key(data, "output", "choices", default=[]), finish_reason)
        if not choices and data.get("output_text"):
            choices = [
                ChatChoice(message=Message(role=Role.ASSISTANT, content=data["output_text"]), finish_reason=finish_reason)
            ]

        metadata = collect_metadata(data, RESPONSES_METADATA_KEYS)
        metadata["response_id"] = response_id
        return ChatResponse(
            id=response_id,
            choices=tuple(choices),
            usage=self.map_usage(data.get("usage")),
            model=data.get("model") or model or "",
            provider=self.provider_id,
            timestamp=from_epoch_seconds(first_key(data, "created_at", "created")),
            metadata=metadata,
        )

    def decode_responses_stream(self, payload: Any, state: StreamState) -> str | None:
        """One Responses API stream event -> content delta."""
        if not isinstance(payload, dict):
            return None
        event_type = payload.get("type")

        if event_type == "response.output_text.delta":
            return payload.get("delta")

        if event_type == "response.created":
            response = payload.get("response") or {}
            if response.get("id"):
                state.metadata["response_id"] = response["id"]
            return None

        if event_type in ("response.completed", "response.incomplete"):
            response = payload.get("response") or {}
            if response.get("id"):
                state.metadata["response_id"] = response["id"]
            if response.get("model"):
                state.metadata["model"] = response["model"]
            if response.get("usage"):
                state.metadata["usage"] = self.map_usage(response["usage"])
            status = response.get("status") or event_type.split(".", 1)[1]
            state.metadata["finish_reason"] = RESPONSES_FINISH_REASONS.get(status, status)
            state.finished = True
            return None

        if event_type == "response.failed":
            error = (payload.get("response") or {}).get("error") or {}
            raise map_stream_error(error.get("code"), error.get("message"), self.provider_id, error or None)

        if event_type == "error":
            raise map_stream_error(
                first_key(payload, "code", "type"), payload.get("message"), self.provider_id, payload
            )

        return None

    # Embeddings

    def map_embedding_request(self, request: EmbeddingRequest, default_model: str | None) -> EmbeddingRequestWire:
        opts = request.options_for(self.provider_id)
        body: EmbeddingRequestWire = {
            "model": self.resolve_model(request.model, default_model),
            "input": request.inputs[0] if len(request.inputs) == 1 else list(request.inputs),
        }
        dimensions = option(opts, "dimensions")
        if dimensions is not None:
            body["dimensions"] = dimensions
        encoding_format = option(opts, "encoding_format", "encodingFormat")
        if encoding_format is not None:
            body["encoding_format"] = encoding_format
        user = option(opts, "user")
        if user is not None:
            body["user"] = user
        return body

    def _map_vector(self, embedding: Any) -> tuple[float, ...]:
        if isinstance(embedding, list):
            return tuple(float(v) for v in embedding)
        if isinstance(embedding, str):
            raise ClientError(
                "Base64-encoded embeddings are not supported; request encoding_format='float'",
                ErrorCode.UNSUPPORTED_FORMAT,
                provider=self.provider_id,
            )
        raise ClientError(
            f"Unexpected embedding format: {type(embedding).__name__}",
            ErrorCode.INVALID_FORMAT,
            provider=self.provider_id,
        )

    def map_embedding_response(self, data: Any, model: str | None = None) -> EmbeddingResponse:
        data = self.require_dict(data)
        items = self.require_field(data, "data")
        embeddings = []
        for i, item in enumerate(items):
            vector = self._map_vector(item.get("embedding"))
            embeddings.append(EmbeddingData(vector=vector, dimension=len(vector), index=item.get("index", i)))
        return EmbeddingResponse(
            embeddings=tuple(embeddings),
            model=data.get("model") or model or "",
            provider=self.provider_id,
            usage=self.map_usage(data.get("usage")),
            metadata=collect_metadata(data, ("object",)),
        )

    # Images

    def map_image_request(self, request: ImageRequest, default_model: str | None) -> ImageRequestWire:
        model = self.resolve_model(request.model, default_model)
        if model.lower() == DALL_E_3 and request.n is not None and request.n != 1:
            raise ClientError(
                f"{DALL_E_3} only supports n=1, got n={request.n}",
                ErrorCode.INVALID_N_VALUE,
                provider=self.provider_id,
            )
        opts = request.options_for(self.provider_id)
        body: ImageRequestWire = {"model": model, "prompt": request.prompt}
        if request.n is not None:
            body["n"] = request.n
        if request.size is not None:
            body["size"] = request.size.value
        if request.quality is not None:
            body["quality"] = request.quality
        if request.style is not None:
            body["style"] = request.style
        response_format = option(opts, "response_format", "responseFormat")
        if response_format is not None:
            body["response_format"] = response_format
        user = option(opts, "user")
        if user is not None:
            body["user"] = user
        return body

    def map_image_response(self, data: Any, model: str, request: ImageRequest) -> ImageResponse:
        data = self.require_dict(data)
        width = request.size.width if request.size else None
        height = request.size.height if request.size else None
        assets = []
        for item in self.require_field(data, "data"):
            b64 = item.get("b64_json")
            assets.append(
                ImageAsset(
                    url=item.get("url"),
                    base64=b64,
                    width=width,
                    height=height,
                    revised_prompt=item.get("revised_prompt"),
                    mime_type="image/png" if b64 else None,
                )
            )
        return ImageResponse(
            assets=tuple(assets),
            model=model,
            provider=self.provider_id,
            timestamp=from_epoch_seconds(data.get("created")),
            metadata=collect_metadata(data, ("created", "usage")),
        )

    # Audio

    def map_tts_request(self, request: TtsRequest, default_model: str | None) -> SpeechRequestWire:
        opts = request.options_for(self.provider_id)
        body: SpeechRequestWire = {
            "model": self.resolve_model(request.model, default_model),
            "input": request.text,
            "voice": request.voice or "alloy",
            "response_format": request.response_format or "mp3",
        }
        if request.speed is not None:
            body["speed"] = request.speed
        instructions = option(opts, "instructions")
        if instructions is not None:
            body["instructions"] = instructions
        return body

    def map_tts_response(self, content: bytes, body: SpeechRequestWire, content_type: str | None) -> AudioResponse:
        return AudioResponse(
            data=content,
            format=body["response_format"],
            model=body["model"],
            provider=self.provider_id,
            metadata={"content_type": content_type} if content_type else {},
        )

    def map_stt_request(
        self, request: SttRequest, default_model: str | None
    ) -> tuple[dict[str, str], dict[str, MultipartFile]]:
        opts = request.options_for(self.provider_id)
        fields = {
            "model": self.resolve_model(request.model, default_model),
            "response_format": option(opts, "response_format", "responseFormat", "verbose_json"),
        }
        if request.language:
            fields["language"] = request.language
        if request.prompt:
            fields["prompt"] = request.prompt
        temperature = option(opts, "temperature")
        if temperature is not None:
            fields["temperature"] = str(temperature)
        files = {"file": MultipartFile(request.filename, request.audio, request.mime_type)}
        return fields, files

    def map_stt_response(self, data: Any, model: str, language: str | None = None) -> TranscriptionResponse:
        if isinstance(data, str):
            # text/srt/vtt response formats
            return TranscriptionResponse(text=data, language=language, model=model, provider=self.provider_id)
        data = self.require_dict(data)
        segments = tuple(
            TranscriptionSegment(start=s["start"], end=s["end"], text=s.get("text", ""))
            for s in data.get("segments") or []
        )
        return TranscriptionResponse(
            text=self.require_field(data, "text"),
            language=data.get("language") or language,
            duration=data.get("duration"),
            segments=segments,
            model=model,
            provider=self.provider_id,
            usage=self.map_usage(data.get("usage")),
            metadata=collect_metadata(data, ("task", "words")),
        )

    # Video

    def map_video_request(
        self, request: VideoRequest, default_model: str | None
    ) -> tuple[dict[str, str], dict[str, MultipartFile]]:
        opts = request.options_for(self.provider_id)
        fields = {"model": self.resolve_model(request.model, default_model), "prompt": request.prompt}
        if request.duration is not None:
            fields["seconds"] = str(request.duration)
        if request.size is not None:
            fields["size"] = request.size
        files: dict[str, MultipartFile] = {}
        reference = option(opts, "input_reference", "inputReference")
        if isinstance(reference, (bytes, bytearray)):
            files["input_reference"] = MultipartFile(
                "reference.png", bytes(reference), option(opts, "input_reference_type", "inputReferenceType", "image/png")
            )
        return fields, files

    def map_video_job(self, data: Any) -> VideoJob:
        data = self.require_dict(data, "video job")
        raw_status = self.require_field(data, "status")
        status = VIDEO_STATUSES.get(raw_status)
        if status is None:
            raise ClientError(
                f"Unknown video job status: {raw_status}",
                ErrorCode.INVALID_RESPONSE,
                provider=self.provider_id,
            )
        error = data.get("error")
        if isinstance(error, dict):
            error = error.get("message") or error.get("code")
        return VideoJob(
            id=self.require_field(data, "id"),
            status=status,
            progress=data.get("progress"),
            error=error,
            metadata=collect_metadata(data, ("model", "seconds", "size", "created_at", "completed_at", "expires_at")),
        )

    def map_video_response(self, job: VideoJob, content: bytes, model: str, request: VideoRequest) -> VideoResponse:
        width, height = _parse_size(job.metadata.get("size") or request.size)
        seconds = job.metadata.get("seconds") or request.duration
        asset = VideoAsset(
            base64=base64.b64encode(content).decode("ascii"),
            mime_type="video/mp4",
            width=width,
            height=height,
            duration=float(seconds) if seconds is not None else None,
            frame_rate=request.frame_rate,
        )
        return VideoResponse(
            job_id=job.id,
            assets=(asset,),
            model=job.metadata.get("model") or model,
            provider=self.provider_id,
            timestamp=from_epoch_seconds(job.metadata.get("created_at")),
            metadata=dict(job.metadata),
        )
