"""
OpenAI wire types and static tables.

Shapes follow the public REST reference for Chat Completions, Responses,
Embeddings, Images, Audio and Videos.
"""

from typing import Any, TypedDict

from ...models import Operation, VideoJobStatus


class ChatMessageWire(TypedDict, total=False):
    role: str
    content: str | list[dict[str, Any]] | None
    name: str
    tool_call_id: str
    tool_calls: list[dict[str, Any]]


class ChatCompletionRequestWire(TypedDict, total=False):
    model: str
    messages: list[ChatMessageWire]
    temperature: float
    max_tokens: int
    max_completion_tokens: int
    top_p: float
    n: int
    stop: list[str]
    user: str
    stream: bool
    stream_options: dict[str, Any]


class ResponsesRequestWire(TypedDict, total=False):
    model: str
    input: list[dict[str, Any]]
    instructions: str
    previous_response_id: str
    temperature: float
    top_p: float
    max_output_tokens: int
    user: str
    stream: bool


class EmbeddingRequestWire(TypedDict, total=False):
    model: str
    input: str | list[str]
    dimensions: int
    encoding_format: str
    user: str


class ImageRequestWire(TypedDict, total=False):
    model: str
    prompt: str
    n: int
    size: str
    quality: str
    style: str
    response_format: str
    user: str


class SpeechRequestWire(TypedDict, total=False):
    model: str
    input: str
    voice: str
    speed: float
    response_format: str
    instructions: str


DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_CHAT_MODEL = "gpt-4o-mini"

DEFAULT_OPERATION_MODELS: dict[Operation, str] = {
    Operation.EMBEDDING: "text-embedding-3-small",
    Operation.IMAGE: "dall-e-3",
    Operation.TTS: "tts-1",
    Operation.STT: "whisper-1",
    Operation.VIDEO: "sora-2",
}

FALLBACK_MODELS = (
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4.1",
    "gpt-4.1-mini",
    "gpt-5",
    "gpt-5-mini",
    "o1",
    "o3",
    "o3-mini",
    "o4-mini",
    "text-embedding-3-small",
    "text-embedding-3-large",
    "dall-e-3",
    "gpt-image-1",
    "tts-1",
    "tts-1-hd",
    "whisper-1",
    "sora-2",
)

MODEL_PREFIXES = ("gpt-", "chatgpt-", "o1", "o3", "o4", "text-embedding", "dall-e", "tts", "whisper", "sora")

# (snake_case, camelCase) provider options copied into Chat Completions bodies
CHAT_OPTIONS: tuple[tuple[str, str], ...] = (
    ("presence_penalty", "presencePenalty"),
    ("frequency_penalty", "frequencyPenalty"),
    ("logit_bias", "logitBias"),
    ("logprobs", "logprobs"),
    ("top_logprobs", "topLogprobs"),
    ("seed", "seed"),
    ("response_format", "responseFormat"),
    ("tools", "tools"),
    ("tool_choice", "toolChoice"),
    ("parallel_tool_calls", "parallelToolCalls"),
    ("reasoning_effort", "reasoningEffort"),
    ("service_tier", "serviceTier"),
    ("max_completion_tokens", "maxCompletionTokens"),
)

# Options copied into Responses API bodies
RESPONSES_OPTIONS: tuple[tuple[str, str], ...] = (
    ("previous_response_id", "previousResponseId"),
    ("store", "store"),
    ("reasoning", "reasoning"),
    ("text", "text"),
    ("tools", "tools"),
    ("tool_choice", "toolChoice"),
    ("metadata", "metadata"),
    ("truncation", "truncation"),
    ("parallel_tool_calls", "parallelToolCalls"),
)

CHAT_METADATA_KEYS = ("object", "created", "system_fingerprint", "service_tier")
RESPONSES_METADATA_KEYS = ("object", "status", "previous_response_id", "incomplete_details")

RESPONSES_FINISH_REASONS = {"completed": "stop", "incomplete": "length", "failed": "error"}

VIDEO_STATUSES: dict[str, VideoJobStatus] = {
    "queued": VideoJobStatus.QUEUED,
    "in_progress": VideoJobStatus.PROCESSING,
    "processing": VideoJobStatus.PROCESSING,
    "completed": VideoJobStatus.COMPLETED,
    "failed": VideoJobStatus.FAILED,
}

DALL_E_3 = "dall-e-3"
