"""
Cohere mapper (API v2).

Chat goes through /v2/chat, embeddings through /v2/embed. Usage is read
from usage.tokens when present, otherwise from usage.billed_units.
"""

from typing import Any

from ...error_mapper import map_stream_error
from ...errors import ClientError, ErrorCode
from ...models import (
    ChatChoice,
    ChatRequest,
    ChatResponse,
    EmbeddingData,
    EmbeddingRequest,
    EmbeddingResponse,
    Message,
    Role,
    Usage,
)
from ..mapper import ProviderMapper, collect_metadata, option
from ..streaming import StreamState

FINISH_REASONS = {
    "COMPLETE": "stop",
    "STOP_SEQUENCE": "stop",
    "MAX_TOKENS": "length",
    "TOOL_CALL": "function_call",
    "ERROR": "error",
}

CHAT_OPTIONS: tuple[tuple[str, str], ...] = (
    ("k", "k"),
    ("seed", "seed"),
    ("frequency_penalty", "frequencyPenalty"),
    ("presence_penalty", "presencePenalty"),
    ("tools", "tools"),
    ("tool_choice", "toolChoice"),
    ("response_format", "responseFormat"),
    ("documents", "documents"),
    ("safety_mode", "safetyMode"),
)


class CohereMapper(ProviderMapper):
    """Maps unified records to and from the Cohere v2 API."""

    ROLES_TO_WIRE = {
        Role.SYSTEM: "system",
        Role.USER: "user",
        Role.ASSISTANT: "assistant",
        Role.FUNCTION: "tool",
    }
    ROLES_FROM_WIRE = {
        "system": Role.SYSTEM,
        "user": Role.USER,
        "assistant": Role.ASSISTANT,
        "tool": Role.FUNCTION,
    }

    def map_usage(self, usage: dict[str, Any] | None) -> Usage:
        if not usage:
            return Usage()
        counts = usage.get("tokens") or usage.get("billed_units") or {}
        return Usage(
            prompt_tokens=counts.get("input_tokens") or 0,
            completion_tokens=counts.get("output_tokens") or 0,
        )

    def map_chat_request(self, request: ChatRequest, default_model: str | None, stream: bool = False) -> dict[str, Any]:
        opts = request.options_for(self.provider_id)
        messages = []
        for message in request.messages:
            wire: dict[str, Any] = {"role": self.role_to_wire(message.role), "content": message.content}
            if message.role is Role.FUNCTION and (message.meta or {}).get("tool_call_id"):
                wire["tool_call_id"] = message.meta["tool_call_id"]  # type: ignore[index]
            messages.append(wire)

        body: dict[str, Any] = {"model": self.resolve_model(request.model, default_model), "messages": messages}
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if request.max_tokens is not None:
            body["max_tokens"] = request.max_tokens
        if request.top_p is not None:
            body["p"] = request.top_p
        if request.stop:
            body["stop_sequences"] = list(request.stop)
        for snake, camel in CHAT_OPTIONS:
            value = option(opts, snake, camel)
            if value is not None:
                body[snake] = value
        if stream:
            body["stream"] = True
        return body

    @staticmethod
    def _text(content: Any) -> str:
        if isinstance(content, str):
            return content
        return "".join(
            block.get("text", "") for block in content or [] if isinstance(block, dict) and block.get("type") == "text"
        )

    def map_chat_response(self, data: Any, model: str) -> ChatResponse:
        data = self.require_dict(data)
        message = data.get("message") or {}
        reason = data.get("finish_reason")
        choices: tuple[ChatChoice, ...] = ()
        if message:
            tool_calls = message.get("tool_calls")
            choices = (
                ChatChoice(
                    message=Message(
                        role=self.role_from_wire(message.get("role")),
                        content=self._text(message.get("content")),
                        meta={"tool_calls": tool_calls} if tool_calls else None,
                    ),
                    finish_reason=FINISH_REASONS.get(reason, reason.lower()) if reason else None,
                ),
            )
        return ChatResponse(
            id=self.require_field(data, "id"),
            choices=choices,
            usage=self.map_usage(data.get("usage")),
            model=model,
            provider=self.provider_id,
            metadata=collect_metadata(data, ("finish_reason",)),
        )

    def decode_stream(self, payload: Any, state: StreamState) -> str | None:
        """One v2 chat stream event -> text delta."""
        if not isinstance(payload, dict):
            return None
        event_type = payload.get("type")

        if event_type == "content-delta":
            content = ((payload.get("delta") or {}).get("message") or {}).get("content") or {}
            return content.get("text")

        if event_type == "message-start":
            if payload.get("id"):
                state.metadata["id"] = payload["id"]
            return None

        if event_type == "message-end":
            delta = payload.get("delta") or {}
            reason = delta.get("finish_reason")
            if reason:
                state.metadata["finish_reason"] = FINISH_REASONS.get(reason, reason.lower())
            if delta.get("usage"):
                state.metadata["usage"] = self.map_usage(delta["usage"])
            if reason == "ERROR":
                raise map_stream_error("error", delta.get("error"), self.provider_id, delta)
            state.finished = True
            return None

        return None

    def map_embedding_request(self, request: EmbeddingRequest, default_model: str | None) -> dict[str, Any]:
        opts = request.options_for(self.provider_id)
        body: dict[str, Any] = {
            "model": self.resolve_model(request.model, default_model),
            "texts": list(request.inputs),
            "input_type": option(opts, "input_type", "inputType", "search_document"),
            "embedding_types": ["float"],
        }
        truncate = option(opts, "truncate")
        if truncate is not None:
            body["truncate"] = truncate
        dimension = option(opts, "output_dimension", "outputDimension")
        if dimension is not None:
            body["output_dimension"] = dimension
        return body

    def map_embedding_response(self, data: Any, model: str) -> EmbeddingResponse:
        data = self.require_dict(data)
        raw = self.require_field(data, "embeddings")
        # v2 returns {"float": [...]}, v1 a bare list
        vectors = raw.get("float") if isinstance(raw, dict) else raw
        if not isinstance(vectors, list):
            raise ClientError(
                "Cohere response has no float embeddings",
                ErrorCode.UNSUPPORTED_FORMAT,
                provider=self.provider_id,
            )
        embeddings = []
        for i, values in enumerate(vectors):
            vector = tuple(float(v) for v in values)
            embeddings.append(EmbeddingData(vector=vector, dimension=len(vector), index=i))
        meta = data.get("meta") or {}
        return EmbeddingResponse(
            embeddings=tuple(embeddings),
            model=model,
            provider=self.provider_id,
            usage=self.map_usage(meta),
            metadata=collect_metadata(data, ("id", "response_type")),
        )
