"""
Google Gemini wire types and static tables.

The Generative Language API uses camelCase on output and accepts both
camelCase and snake_case on input.
"""

from typing import Any, TypedDict

from ...models import Operation


class PartWire(TypedDict, total=False):
    text: str
    inline_data: dict[str, str]
    file_data: dict[str, str]


class ContentWire(TypedDict, total=False):
    role: str
    parts: list[PartWire]


class GenerateContentRequestWire(TypedDict, total=False):
    contents: list[ContentWire]
    systemInstruction: ContentWire
    generationConfig: dict[str, Any]
    safetySettings: list[dict[str, Any]]
    tools: list[dict[str, Any]]
    toolConfig: dict[str, Any]


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_CHAT_MODEL = "gemini-2.5-flash"

DEFAULT_OPERATION_MODELS: dict[Operation, str] = {
    Operation.EMBEDDING: "text-embedding-004",
    Operation.IMAGE: "imagen-3.0-generate-002",
    Operation.TTS: "gemini-2.5-flash-preview-tts",
    Operation.STT: "gemini-2.5-flash",
    Operation.VIDEO: "veo-3.0-generate-001",
    Operation.VIDEO_ANALYSIS: "gemini-2.5-flash",
}

FALLBACK_MODELS = (
    "gemini-2.5-pro",
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.0-flash",
    "gemini-2.5-flash-image",
    "gemini-2.5-flash-preview-tts",
    "text-embedding-004",
    "imagen-3.0-generate-002",
    "veo-3.0-generate-001",
)

MODEL_PREFIXES = ("gemini", "imagen", "veo", "text-embedding", "embedding")

FINISH_REASONS = {
    "STOP": "stop",
    "MAX_TOKENS": "length",
    "SAFETY": "content_filter",
    "RECITATION": "recitation",
    "BLOCKLIST": "content_filter",
    "PROHIBITED_CONTENT": "content_filter",
    "SPII": "content_filter",
    "OTHER": "other",
}

# (snake_case, camelCase) options copied into generationConfig
GENERATION_OPTIONS: tuple[tuple[str, str], ...] = (
    ("top_k", "topK"),
    ("max_output_tokens", "maxOutputTokens"),
    ("stop_sequences", "stopSequences"),
    ("candidate_count", "candidateCount"),
    ("response_mime_type", "responseMimeType"),
    ("response_schema", "responseSchema"),
    ("presence_penalty", "presencePenalty"),
    ("frequency_penalty", "frequencyPenalty"),
    ("seed", "seed"),
    ("thinking_config", "thinkingConfig"),
)

# Options copied to the top level of generateContent bodies
REQUEST_OPTIONS: tuple[tuple[str, str], ...] = (
    ("safety_settings", "safetySettings"),
    ("tools", "tools"),
    ("tool_config", "toolConfig"),
    ("cached_content", "cachedContent"),
)

# Image sizes -> Imagen aspect ratios
ASPECT_RATIOS = {
    "256x256": "1:1",
    "512x512": "1:1",
    "1024x1024": "1:1",
    "1024x1792": "9:16",
    "1792x1024": "16:9",
}

DEFAULT_TTS_VOICE = "Kore"
DEFAULT_TRANSCRIPTION_PROMPT = "Generate a verbatim transcript of the speech in this audio."

VIDEO_ANALYSIS_PROMPT = (
    "Analyze this video and answer with a JSON object with the keys "
    '"summary" (string), "labels" (array of strings), '
    '"objects" (array of {"label", "confidence", "start_time", "end_time"}), '
    '"scenes" (array of {"start_time", "end_time", "description", "labels"}), '
    '"actions" (array of {"action", "confidence", "start_time", "end_time"}) and '
    '"text" (array of {"text", "confidence", "start_time", "end_time"}). '
    "Times are in seconds and confidences between 0 and 1."
)
