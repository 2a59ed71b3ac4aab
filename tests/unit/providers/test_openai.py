"""
Unified AI — OpenAI Provider Tests

Exercises the adapter end to end against a scripted transport: wire
payloads, response mapping, streaming, the video job lifecycle and error
classification.
"""

import base64
from unittest.mock import AsyncMock, patch

import pytest

from unified_ai.errors import AuthError, CapabilityError, ClientError, ConfigurationError, QuotaError, TransientError
from unified_ai.models import (
    ChatRequest,
    EmbeddingRequest,
    ImageRequest,
    ImageSize,
    Message,
    Role,
    SttRequest,
    TtsRequest,
    VideoAnalysisRequest,
    VideoRequest,
)
from unified_ai.providers import OpenAIProvider
from tests.conftest import FakeTransport, sse

CHAT_COMPLETION = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "created": 1700000000,
    "model": "gpt-4o-2024-08-06",
    "choices": [{"index": 0, "message": {"role": "assistant", "content": "Hi!"}, "finish_reason": "stop"}],
    "usage": {"prompt_tokens": 9, "completion_tokens": 12, "total_tokens": 21},
}


@pytest.fixture
def provider(make_config, transport: FakeTransport) -> OpenAIProvider:
    return OpenAIProvider(make_config("openai"), transport)


def _hello(model: str | None = "gpt-4o", **kwargs) -> ChatRequest:
    return ChatRequest(messages=[Message(role=Role.USER, content="Hello!")], model=model, **kwargs)


class TestConfiguration:
    """Test construction and static capabilities."""

    def test_requires_api_key(self, make_config) -> None:
        with pytest.raises(ConfigurationError):
            OpenAIProvider(make_config("openai", api_key=None))

    def test_defaults(self, provider: OpenAIProvider) -> None:
        assert provider.name == "OpenAI"
        assert provider.base_url == "https://api.openai.com/v1"
        assert provider.default_model == "gpt-4o-mini"
        assert provider.capabilities.supports("video")
        assert not provider.capabilities.supports("video_analysis")

    async def test_unsupported_operation(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        with pytest.raises(CapabilityError) as exc_info:
            await provider.analyze_video(VideoAnalysisRequest(video_url="https://example.com/a.mp4"))
        assert exc_info.value.code == "VIDEO_ANALYSIS_NOT_SUPPORTED"
        assert transport.calls == []


class TestChat:
    """Test Chat Completions."""

    async def test_chat(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(CHAT_COMPLETION)
        response = await provider.chat(_hello())

        assert response.text == "Hi!"
        assert response.provider == "openai"
        assert response.model == "gpt-4o-2024-08-06"
        assert response.usage.prompt_tokens == 9
        assert response.usage.completion_tokens == 12
        assert response.usage.total_tokens == 21
        assert response.choices[0].finish_reason == "stop"
        assert response.timestamp is not None
        assert response.metadata["object"] == "chat.completion"

        call = transport.calls[0]
        assert call.method == "POST"
        assert call.url == "https://api.openai.com/v1/chat/completions"
        assert call.headers["Authorization"] == "Bearer test-key-123456"
        assert call.json == {"model": "gpt-4o", "messages": [{"role": "user", "content": "Hello!"}]}

    async def test_default_model_used(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(CHAT_COMPLETION)
        await provider.chat(_hello(model=None))
        assert transport.calls[0].json["model"] == "gpt-4o-mini"

    async def test_reasoning_model_parameters(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(CHAT_COMPLETION)
        await provider.chat(_hello(model="o1", temperature=0.7, top_p=0.5, max_tokens=100))
        body = transport.calls[0].json
        assert body["max_completion_tokens"] == 100
        assert "max_tokens" not in body
        assert "temperature" not in body
        assert "top_p" not in body

    async def test_provider_options_and_function_role(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(CHAT_COMPLETION)
        request = ChatRequest(
            messages=[
                Message(role=Role.SYSTEM, content="Be brief."),
                Message(role=Role.FUNCTION, content='{"temp": 21}', meta={"tool_call_id": "call_1"}),
            ],
            provider_options={"openai": {"responseFormat": {"type": "json_object"}, "seed": 42}},
        )
        await provider.chat(request)
        body = transport.calls[0].json
        assert body["messages"][1] == {"role": "tool", "content": '{"temp": 21}', "tool_call_id": "call_1"}
        assert body["response_format"] == {"type": "json_object"}
        assert body["seed"] == 42

    async def test_missing_id_is_invalid_response(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json({"choices": []})
        with pytest.raises(ClientError) as exc_info:
            await provider.chat(_hello())
        assert exc_info.value.code == "INVALID_RESPONSE"

    async def test_rate_limited(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(
            {"error": {"message": "Rate limit reached", "type": "requests", "code": "rate_limit_exceeded"}},
            status=429,
            headers={"Retry-After": "20"},
        )
        with pytest.raises(QuotaError) as exc_info:
            await provider.chat(_hello())
        error = exc_info.value
        assert error.message == "Rate limit reached"
        assert error.provider == "openai"
        assert error.retry_after is not None
        assert error.retryable

    async def test_unauthorized(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json({"error": {"message": "Incorrect API key"}}, status=401)
        with pytest.raises(AuthError):
            await provider.chat(_hello())

    async def test_transport_failure_mapped(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue(ConnectionError("connection reset"))
        with pytest.raises(TransientError) as exc_info:
            await provider.chat(_hello())
        assert exc_info.value.code == "NETWORK_ERROR"


class TestResponsesApi:
    """Test the Responses API path."""

    async def test_selected_by_option(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(
            {
                "id": "resp_1",
                "object": "response",
                "created_at": 1700000000,
                "status": "completed",
                "model": "gpt-4.1",
                "output": [
                    {"type": "reasoning", "summary": []},
                    {"type": "message", "role": "assistant", "content": [{"type": "output_text", "text": "Hi!"}]},
                ],
                "usage": {"input_tokens": 9, "output_tokens": 12, "total_tokens": 21},
            }
        )
        request = ChatRequest(
            messages=[Message(role=Role.SYSTEM, content="Be brief."), Message(role=Role.USER, content="Hello!")],
            model="gpt-4.1",
            provider_options={"openai": {"api": "responses", "store": False}},
        )
        response = await provider.chat(request)

        call = transport.calls[0]
        assert call.url.endswith("/responses")
        assert call.json["instructions"] == "Be brief."
        assert call.json["input"] == [{"role": "user", "content": "Hello!"}]
        assert call.json["store"] is False
        assert "api" not in call.json

        assert response.text == "Hi!"
        assert response.choices[0].finish_reason == "stop"
        assert response.usage.total_tokens == 21
        assert response.metadata["response_id"] == "resp_1"

    async def test_alternate_field_names(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(
            {
                "response_id": "resp_2",
                "choices": [{"message": {"role": "assistant", "content": "Hey"}, "finish_reason": "stop"}],
                "usage": {"prompt_tokens": 2, "completion_tokens": 3},
            }
        )
        response = await provider.chat(_hello(provider_options={"openai": {"previousResponseId": "resp_1"}}))
        assert transport.calls[0].json["previous_response_id"] == "resp_1"
        assert response.id == "resp_2"
        assert response.text == "Hey"
        assert response.usage.total_tokens == 5


class TestStreaming:
    """Test streamed chat."""

    async def test_stream_without_done_marker(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_stream(
            sse(
                {"id": "c1", "model": "gpt-4o", "choices": [{"delta": {"role": "assistant", "content": "Hel"}}]},
                {"id": "c1", "choices": [{"delta": {"content": "lo"}}]},
                {"id": "c1", "choices": [{"delta": {}, "finish_reason": "stop"}]},
            )
        )
        events = [event async for event in provider.chat_stream(_hello())]

        assert [e.delta for e in events[:-1]] == ["Hel", "lo"]
        assert [e.done for e in events] == [False, False, True]
        assert events[-1].metadata["finish_reason"] == "stop"
        assert events[-1].metadata["provider"] == "openai"

        call = transport.calls[0]
        assert call.kind == "stream"
        assert call.headers["Accept"] == "text/event-stream"
        assert call.json["stream"] is True
        assert call.json["stream_options"] == {"include_usage": True}

    async def test_done_marker_and_usage(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_stream(
            sse(
                {"id": "c1", "choices": [{"delta": {"content": "Hi"}}]},
                {"id": "c1", "choices": [], "usage": {"prompt_tokens": 3, "completion_tokens": 1}},
                "[DONE]",
                {"id": "c1", "choices": [{"delta": {"content": "ignored"}}]},
            )
        )
        events = [event async for event in provider.chat_stream(_hello())]
        assert [e.delta for e in events if not e.done] == ["Hi"]
        assert sum(e.done for e in events) == 1
        assert events[-1].metadata["usage"].total_tokens == 4

    async def test_in_stream_error(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_stream(
            sse(
                {"id": "c1", "choices": [{"delta": {"content": "Hi"}}]},
                {"error": {"type": "server_error", "message": "boom"}},
            )
        )
        seen = []
        with pytest.raises(TransientError) as exc_info:
            async for event in provider.chat_stream(_hello()):
                seen.append(event)
        assert [e.delta for e in seen] == ["Hi"]
        assert not any(e.done for e in seen)
        assert exc_info.value.message == "boom"

    async def test_http_error_before_stream(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_stream(['{"error": {"message": "slow down"}}'], status=429)
        with pytest.raises(QuotaError):
            async for _ in provider.chat_stream(_hello()):
                pass

    async def test_responses_stream(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_stream(
            sse(
                {"type": "response.created", "response": {"id": "resp_1"}},
                {"type": "response.output_text.delta", "delta": "Hi"},
                {"type": "response.output_text.delta", "delta": "!"},
                {
                    "type": "response.completed",
                    "response": {"id": "resp_1", "status": "completed", "usage": {"input_tokens": 1, "output_tokens": 2}},
                },
            )
        )
        events = [e async for e in provider.chat_stream(_hello(provider_options={"openai": {"api": "responses"}}))]
        assert "".join(e.delta for e in events if e.delta) == "Hi!"
        assert events[-1].done
        assert events[-1].metadata["response_id"] == "resp_1"
        assert events[-1].metadata["finish_reason"] == "stop"


class TestEmbeddings:
    """Test embeddings."""

    async def test_embed(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(
            {
                "object": "list",
                "data": [
                    {"object": "embedding", "index": 0, "embedding": [0.1, 0.2, 0.3]},
                    {"object": "embedding", "index": 1, "embedding": [0.4, 0.5, 0.6]},
                ],
                "model": "text-embedding-3-small",
                "usage": {"prompt_tokens": 8, "total_tokens": 8},
            }
        )
        response = await provider.embed(EmbeddingRequest(inputs=["a", "b"], provider_options={"openai": {"dimensions": 3}}))
        assert transport.calls[0].json == {"model": "text-embedding-3-small", "input": ["a", "b"], "dimensions": 3}
        assert [e.vector for e in response.embeddings] == [(0.1, 0.2, 0.3), (0.4, 0.5, 0.6)]
        assert response.embeddings[0].dimension == 3
        assert response.usage.total_tokens == 8

    async def test_base64_vectors_rejected(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json({"data": [{"index": 0, "embedding": "AAAAAA=="}], "model": "text-embedding-3-small"})
        with pytest.raises(ClientError) as exc_info:
            await provider.embed(EmbeddingRequest(inputs=["a"]))
        assert exc_info.value.code == "UNSUPPORTED_FORMAT"


class TestImages:
    """Test image generation."""

    async def test_generate_image(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(
            {"created": 1700000000, "data": [{"url": "https://img.example/1.png", "revised_prompt": "A red fox"}]}
        )
        response = await provider.generate_image(ImageRequest(prompt="a fox", size=ImageSize.LANDSCAPE, quality="hd"))
        assert transport.calls[0].json == {"model": "dall-e-3", "prompt": "a fox", "size": "1792x1024", "quality": "hd"}
        asset = response.assets[0]
        assert asset.url == "https://img.example/1.png"
        assert (asset.width, asset.height) == (1792, 1024)
        assert asset.revised_prompt == "A red fox"

    async def test_dall_e_3_single_image_only(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        with pytest.raises(ClientError) as exc_info:
            await provider.generate_image(ImageRequest(prompt="a fox", model="dall-e-3", n=2))
        assert exc_info.value.code == "INVALID_N_VALUE"
        assert transport.calls == []


class TestAudio:
    """Test speech synthesis and transcription."""

    async def test_tts(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_bytes(b"ID3audio", content_type="audio/mpeg")
        response = await provider.tts(TtsRequest(text="Hello", voice="nova", speed=1.25))
        assert transport.calls[0].json == {
            "model": "tts-1",
            "input": "Hello",
            "voice": "nova",
            "response_format": "mp3",
            "speed": 1.25,
        }
        assert response.data == b"ID3audio"
        assert response.format == "mp3"
        assert response.metadata["content_type"] == "audio/mpeg"

    async def test_stt(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(
            {
                "task": "transcribe",
                "language": "english",
                "duration": 2.5,
                "text": "Hello world",
                "segments": [{"id": 0, "start": 0.0, "end": 2.5, "text": "Hello world"}],
            }
        )
        response = await provider.stt(SttRequest(audio=b"RIFF", filename="clip.wav", language="en"))

        call = transport.calls[0]
        assert call.kind == "multipart"
        assert call.url.endswith("/audio/transcriptions")
        assert call.fields == {"model": "whisper-1", "response_format": "verbose_json", "language": "en"}
        assert call.files["file"].filename == "clip.wav"
        assert "Content-Type" not in call.headers
        assert response.text == "Hello world"
        assert response.duration == 2.5
        assert response.segments[0].end == 2.5

    async def test_stt_plain_text(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_bytes(b"Hello world", content_type="text/plain")
        response = await provider.stt(SttRequest(audio=b"RIFF", provider_options={"openai": {"response_format": "text"}}))
        assert response.text == "Hello world"


class TestVideo:
    """Test the asynchronous video job lifecycle."""

    @pytest.fixture
    def provider(self, make_config, transport: FakeTransport) -> OpenAIProvider:
        settings = {"poll_initial_delay": 1.0, "poll_multiplier": 2.0, "poll_max_delay": 10.0}
        return OpenAIProvider(make_config("openai", settings=settings), transport)

    async def test_poll_until_completed(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        job = {"id": "video_1", "model": "sora-2", "seconds": "4", "size": "1280x720", "created_at": 1700000000}
        transport.queue_json({**job, "status": "queued"})
        transport.queue_json({**job, "status": "in_progress", "progress": 30})
        transport.queue_json({**job, "status": "in_progress", "progress": 70})
        transport.queue_json({**job, "status": "completed", "progress": 100})
        transport.queue_bytes(b"MP4DATA", content_type="video/mp4")

        with patch("unified_ai.providers.polling.asyncio.sleep", new=AsyncMock()) as sleep:
            response = await provider.generate_video(VideoRequest(prompt="a cat surfing", duration=4))

        submit, *status_checks, download = transport.calls
        assert submit.kind == "multipart"
        assert submit.fields == {"model": "sora-2", "prompt": "a cat surfing", "seconds": "4"}
        assert [c.url for c in status_checks] == ["https://api.openai.com/v1/videos/video_1"] * 3
        assert download.url == "https://api.openai.com/v1/videos/video_1/content"

        delays = [c.args[0] for c in sleep.await_args_list]
        assert len(delays) == 3
        assert delays == sorted(delays)

        asset = response.assets[0]
        assert response.job_id == "video_1"
        assert asset.base64 == base64.b64encode(b"MP4DATA").decode()
        assert (asset.width, asset.height) == (1280, 720)
        assert asset.duration == 4.0

    async def test_immediate_failure(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json({"id": "video_2", "status": "failed", "error": {"message": "moderation_blocked"}})
        with patch("unified_ai.providers.polling.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(ClientError) as exc_info:
                await provider.generate_video(VideoRequest(prompt="something"))
        assert exc_info.value.code == "JOB_FAILED"
        assert "moderation_blocked" in exc_info.value.message
        assert len(transport.calls) == 1
        sleep.assert_not_awaited()

    async def test_failure_while_polling(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json({"id": "video_3", "status": "queued"})
        transport.queue_json({"id": "video_3", "status": "failed", "error": {"code": "internal_error"}})
        with patch("unified_ai.providers.polling.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(ClientError) as exc_info:
                await provider.generate_video(VideoRequest(prompt="something"))
        assert exc_info.value.code == "JOB_FAILED"
        assert not any(c.url.endswith("/content") for c in transport.calls)


class TestModels:
    """Test model discovery and health checks."""

    async def test_refresh_models(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json(
            {"data": [{"id": "gpt-4o"}, {"id": "whisper-1"}, {"id": "babbage-002"}, {"id": "gpt-4o"}]}
        )
        models = await provider.refresh_models()
        assert models == ["gpt-4o", "whisper-1"]
        assert provider.capabilities.supported_models == ["gpt-4o", "whisper-1"]

    async def test_refresh_failure_keeps_fallback(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json({"error": {"message": "down"}}, status=503)
        models = await provider.refresh_models()
        assert "gpt-4o" in models
        assert not provider.capabilities.has_valid_cache

    async def test_refresh_auth_failure_propagates(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json({"error": {"message": "bad key"}}, status=401)
        with pytest.raises(AuthError):
            await provider.refresh_models()

    async def test_health_check(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        transport.queue_json({"data": []})
        transport.queue_json({}, status=500)
        assert await provider.health_check() is True
        assert await provider.health_check() is False

    async def test_close_keeps_shared_transport(self, provider: OpenAIProvider, transport: FakeTransport) -> None:
        await provider.close()
        assert transport.closed is False
