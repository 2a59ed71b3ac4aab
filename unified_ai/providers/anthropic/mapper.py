"""
Anthropic mapper.

Translates unified chat requests into Messages API payloads and back.
System messages move to the top-level "system" field; Anthropic has no
function role, so function messages are rejected.
"""

from typing import Any, TypedDict

from ...error_mapper import map_stream_error
from ...models import ChatChoice, ChatRequest, ChatResponse, Message, Role, Usage
from ..mapper import ProviderMapper, collect_metadata, option
from ..policy import ANTHROPIC_POLICY, ParameterPolicy
from ..streaming import StreamState

DEFAULT_MAX_TOKENS = 1024

STOP_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "tool_use": "function_call",
    "pause_turn": "pause",
    "refusal": "content_filter",
}

# (snake_case, camelCase) provider options copied into Messages bodies
MESSAGE_OPTIONS: tuple[tuple[str, str], ...] = (
    ("top_k", "topK"),
    ("metadata", "metadata"),
    ("tools", "tools"),
    ("tool_choice", "toolChoice"),
    ("thinking", "thinking"),
    ("service_tier", "serviceTier"),
)


class MessagesRequestWire(TypedDict, total=False):
    model: str
    messages: list[dict[str, Any]]
    system: str
    max_tokens: int
    temperature: float
    top_p: float
    top_k: int
    stop_sequences: list[str]
    stream: bool


def _image_block(image: Any) -> dict[str, Any]:
    url = image.get("url") if isinstance(image, dict) else image
    if isinstance(url, str) and url.startswith("data:") and ";base64," in url:
        header, _, data = url.partition(";base64,")
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": header.removeprefix("data:"), "data": data},
        }
    return {"type": "image", "source": {"type": "url", "url": url}}


class AnthropicMapper(ProviderMapper):
    """Maps unified chat records to and from the Anthropic Messages API."""

    ROLES_TO_WIRE = {Role.USER: "user", Role.ASSISTANT: "assistant"}
    ROLES_FROM_WIRE = {"user": Role.USER, "assistant": Role.ASSISTANT}

    def __init__(self, provider_id: str = "anthropic", policy: ParameterPolicy = ANTHROPIC_POLICY) -> None:
        super().__init__(provider_id)
        self.policy = policy

    def map_usage(self, usage: dict[str, Any] | None) -> Usage:
        if not usage:
            return Usage()
        return Usage(
            prompt_tokens=usage.get("input_tokens") or 0,
            completion_tokens=usage.get("output_tokens") or 0,
        )

    def _content(self, message: Message) -> str | list[dict[str, Any]]:
        images = (message.meta or {}).get("images")
        if not images:
            return message.content
        blocks = [_image_block(image) for image in images]
        if message.content:
            blocks.append({"type": "text", "text": message.content})
        return blocks

    def map_chat_request(
        self, request: ChatRequest, default_model: str | None, stream: bool = False
    ) -> MessagesRequestWire:
        model = self.resolve_model(request.model, default_model)
        opts = request.options_for(self.provider_id)

        system = [m.content for m in request.messages if m.role is Role.SYSTEM]
        body: MessagesRequestWire = {
            "model": model,
            "messages": [
                {"role": self.role_to_wire(m.role), "content": self._content(m)}
                for m in request.messages
                if m.role is not Role.SYSTEM
            ],
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if system:
            body["system"] = "\n\n".join(system)

        stop = list(request.stop) if request.stop else option(opts, "stop_sequences", "stopSequences")
        params = {"temperature": request.temperature, "top_p": request.top_p, "stop_sequences": stop}
        body.update(self.policy.apply(model, params))  # type: ignore[typeddict-item]

        for snake, camel in MESSAGE_OPTIONS:
            value = option(opts, snake, camel)
            if value is not None:
                body[snake] = value  # type: ignore[literal-required]
        if stream:
            body["stream"] = True
        return body

    def map_chat_response(self, data: Any, model: str | None = None) -> ChatResponse:
        data = self.require_dict(data)
        blocks = data.get("content") or []
        text = "".join(b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type") == "text")
        tool_calls = [b for b in blocks if isinstance(b, dict) and b.get("type") == "tool_use"]

        stop_reason = data.get("stop_reason")
        choices: tuple[ChatChoice, ...] = ()
        if blocks:
            choices = (
                ChatChoice(
                    index=0,
                    message=Message(
                        role=self.role_from_wire(data.get("role")),
                        content=text,
                        meta={"tool_calls": tool_calls} if tool_calls else None,
                    ),
                    finish_reason=STOP_REASONS.get(stop_reason, stop_reason) if stop_reason else None,
                ),
            )

        return ChatResponse(
            id=self.require_field(data, "id"),
            choices=choices,
            usage=self.map_usage(data.get("usage")),
            model=data.get("model") or model or "",
            provider=self.provider_id,
            metadata=collect_metadata(data, ("type", "stop_reason", "stop_sequence")),
        )

    def decode_stream(self, payload: Any, state: StreamState) -> str | None:
        """One Messages API stream event -> text delta."""
        if not isinstance(payload, dict):
            return None
        event_type = payload.get("type")

        if event_type == "content_block_delta":
            delta = payload.get("delta") or {}
            if delta.get("type") == "text_delta":
                return delta.get("text")
            return None

        if event_type == "message_start":
            message = payload.get("message") or {}
            if message.get("id"):
                state.metadata["id"] = message["id"]
            if message.get("model"):
                state.metadata["model"] = message["model"]
            state.metadata["usage"] = self.map_usage(message.get("usage"))
            return None

        if event_type == "message_delta":
            delta = payload.get("delta") or {}
            stop_reason = delta.get("stop_reason")
            if stop_reason:
                state.metadata["finish_reason"] = STOP_REASONS.get(stop_reason, stop_reason)
            usage = payload.get("usage") or {}
            if usage:
                previous = state.metadata.get("usage") or Usage()
                state.metadata["usage"] = Usage(
                    prompt_tokens=usage.get("input_tokens") or previous.prompt_tokens,
                    completion_tokens=usage.get("output_tokens") or previous.completion_tokens,
                )
            return None

        if event_type == "message_stop":
            state.finished = True
            return None

        if event_type == "error":
            error = payload.get("error") or {}
            raise map_stream_error(error.get("type"), error.get("message"), self.provider_id, error or None)

        return None
