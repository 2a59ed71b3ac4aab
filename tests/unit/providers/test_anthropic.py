"""
Unified AI — Anthropic Provider Tests
"""

import pytest

from unified_ai.errors import CapabilityError, ClientError, QuotaError, TransientError
from unified_ai.models import ChatRequest, EmbeddingRequest, Message, Role
from unified_ai.providers import AnthropicProvider
from tests.conftest import FakeTransport, sse

MESSAGE = {
    "id": "msg_01",
    "type": "message",
    "role": "assistant",
    "model": "claude-sonnet-4-5-20250929",
    "content": [{"type": "text", "text": "Hi!"}],
    "stop_reason": "end_turn",
    "usage": {"input_tokens": 9, "output_tokens": 12},
}


@pytest.fixture
def provider(make_config, transport: FakeTransport) -> AnthropicProvider:
    return AnthropicProvider(make_config("anthropic"), transport)


def _conversation(**kwargs) -> ChatRequest:
    return ChatRequest(
        messages=[
            Message(role=Role.SYSTEM, content="You are terse."),
            Message(role=Role.USER, content="Hello!"),
        ],
        **kwargs,
    )


class TestAnthropicChat:
    """Test the Messages API mapping."""

    async def test_chat(self, provider: AnthropicProvider, transport: FakeTransport) -> None:
        transport.queue_json(MESSAGE)
        response = await provider.chat(_conversation())

        call = transport.calls[0]
        assert call.url == "https://api.anthropic.com/v1/messages"
        assert call.headers["x-api-key"] == "test-key-123456"
        assert call.headers["anthropic-version"] == "2023-06-01"
        assert "Authorization" not in call.headers
        assert call.json == {
            "model": "claude-sonnet-4-5",
            "system": "You are terse.",
            "messages": [{"role": "user", "content": "Hello!"}],
            "max_tokens": 1024,
        }

        assert response.text == "Hi!"
        assert response.choices[0].finish_reason == "stop"
        assert response.usage.total_tokens == 21
        assert response.provider == "anthropic"

    async def test_temperature_excludes_top_p(self, provider: AnthropicProvider, transport: FakeTransport) -> None:
        transport.queue_json(MESSAGE)
        await provider.chat(_conversation(temperature=0.3, top_p=0.9, max_tokens=50, stop=("END",)))
        body = transport.calls[0].json
        assert body["temperature"] == 0.3
        assert "top_p" not in body
        assert body["max_tokens"] == 50
        assert body["stop_sequences"] == ["END"]

    async def test_function_role_rejected(self, provider: AnthropicProvider, transport: FakeTransport) -> None:
        request = ChatRequest(messages=[Message(role=Role.FUNCTION, content="{}")])
        with pytest.raises(ClientError) as exc_info:
            await provider.chat(request)
        assert exc_info.value.code == "INVALID_ROLE"
        assert transport.calls == []

    async def test_tool_use_response(self, provider: AnthropicProvider, transport: FakeTransport) -> None:
        tool_block = {"type": "tool_use", "id": "toolu_1", "name": "get_weather", "input": {"city": "Paris"}}
        transport.queue_json({**MESSAGE, "content": [tool_block], "stop_reason": "tool_use"})
        response = await provider.chat(_conversation())
        choice = response.choices[0]
        assert choice.finish_reason == "function_call"
        assert choice.message.meta == {"tool_calls": [tool_block]}

    async def test_overloaded(self, provider: AnthropicProvider, transport: FakeTransport) -> None:
        transport.queue_json({"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}, status=529)
        with pytest.raises(TransientError) as exc_info:
            await provider.chat(_conversation())
        assert exc_info.value.message == "Overloaded"

    async def test_embeddings_not_supported(self, provider: AnthropicProvider) -> None:
        with pytest.raises(CapabilityError) as exc_info:
            await provider.embed(EmbeddingRequest(inputs=["a"]))
        assert exc_info.value.code == "EMBEDDING_NOT_SUPPORTED"


class TestAnthropicStreaming:
    """Test Messages API streaming."""

    async def test_stream(self, provider: AnthropicProvider, transport: FakeTransport) -> None:
        transport.queue_stream(
            [
                "event: message_start\n",
                'data: {"type": "message_start", "message": {"id": "msg_01", "model": "claude-sonnet-4-5", '
                '"usage": {"input_tokens": 9, "output_tokens": 1}}}\n\n',
                "event: ping\ndata: {\"type\": \"ping\"}\n\n",
                *sse(
                    {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
                    {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "Hi"}},
                    {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "!"}},
                    {"type": "message_delta", "delta": {"stop_reason": "end_turn"}, "usage": {"output_tokens": 12}},
                    {"type": "message_stop"},
                ),
            ]
        )
        events = [event async for event in provider.chat_stream(_conversation())]

        assert [e.delta for e in events if not e.done] == ["Hi", "!"]
        final = events[-1]
        assert final.done
        assert final.metadata["id"] == "msg_01"
        assert final.metadata["finish_reason"] == "stop"
        assert final.metadata["usage"].total_tokens == 21
        assert transport.calls[0].json["stream"] is True

    async def test_stream_error_event(self, provider: AnthropicProvider, transport: FakeTransport) -> None:
        transport.queue_stream(
            sse({"type": "error", "error": {"type": "rate_limit_error", "message": "Slow down"}})
        )
        with pytest.raises(QuotaError):
            async for _ in provider.chat_stream(_conversation()):
                pass


async def test_refresh_models_filters_prefix(make_config, transport: FakeTransport) -> None:
    provider = AnthropicProvider(make_config("anthropic"), transport)
    transport.queue_json(
        {"data": [{"id": "claude-opus-4-1-20250805", "type": "model"}, {"id": "other-model", "type": "model"}]}
    )
    assert await provider.refresh_models() == ["claude-opus-4-1-20250805"]
    assert transport.calls[0].headers["anthropic-version"] == "2023-06-01"
