"""
Unified AI — Cohere Provider Tests
"""

import pytest

from unified_ai.errors import CapabilityError, ClientError, TransientError
from unified_ai.models import ChatRequest, EmbeddingRequest, ImageRequest, Message, Role
from unified_ai.providers import CohereProvider
from tests.conftest import FakeTransport, sse


@pytest.fixture
def provider(make_config, transport: FakeTransport) -> CohereProvider:
    return CohereProvider(make_config("cohere"), transport)


class TestCohereChat:
    """Test the v2 chat mapping."""

    async def test_chat(self, provider: CohereProvider, transport: FakeTransport) -> None:
        transport.queue_json(
            {
                "id": "c-1",
                "finish_reason": "COMPLETE",
                "message": {"role": "assistant", "content": [{"type": "text", "text": "Hi!"}]},
                "usage": {
                    "billed_units": {"input_tokens": 5, "output_tokens": 12},
                    "tokens": {"input_tokens": 9, "output_tokens": 12},
                },
            }
        )
        request = ChatRequest(
            messages=[
                Message(role=Role.SYSTEM, content="Be brief."),
                Message(role=Role.USER, content="Hello!"),
                Message(role=Role.FUNCTION, content="21C", meta={"tool_call_id": "call_9"}),
            ],
            top_p=0.8,
            provider_options={"cohere": {"safetyMode": "STRICT"}},
        )
        response = await provider.chat(request)

        call = transport.calls[0]
        assert call.url == "https://api.cohere.com/v2/chat"
        assert call.headers["Authorization"] == "Bearer test-key-123456"
        assert call.json == {
            "model": "command-a-03-2025",
            "messages": [
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": "Hello!"},
                {"role": "tool", "content": "21C", "tool_call_id": "call_9"},
            ],
            "p": 0.8,
            "safety_mode": "STRICT",
        }
        assert response.text == "Hi!"
        assert response.choices[0].finish_reason == "stop"
        assert response.usage.prompt_tokens == 9
        assert response.usage.total_tokens == 21

    async def test_billed_units_fallback(self, provider: CohereProvider, transport: FakeTransport) -> None:
        transport.queue_json(
            {
                "id": "c-2",
                "finish_reason": "MAX_TOKENS",
                "message": {"role": "assistant", "content": "Cut"},
                "usage": {"billed_units": {"input_tokens": 4, "output_tokens": 2}},
            }
        )
        response = await provider.chat(ChatRequest(messages=[Message(role="user", content="q")]))
        assert response.text == "Cut"
        assert response.choices[0].finish_reason == "length"
        assert response.usage.total_tokens == 6

    async def test_stream(self, provider: CohereProvider, transport: FakeTransport) -> None:
        transport.queue_stream(
            [
                "event: message-start\n",
                *sse(
                    {"type": "message-start", "id": "c-3"},
                    {"type": "content-delta", "index": 0, "delta": {"message": {"content": {"text": "Hi"}}}},
                    {"type": "content-delta", "index": 0, "delta": {"message": {"content": {"text": " there"}}}},
                    {
                        "type": "message-end",
                        "delta": {
                            "finish_reason": "COMPLETE",
                            "usage": {"tokens": {"input_tokens": 3, "output_tokens": 2}},
                        },
                    },
                ),
            ]
        )
        events = [e async for e in provider.chat_stream(ChatRequest(messages=[Message(role="user", content="q")]))]
        assert [e.delta for e in events if not e.done] == ["Hi", " there"]
        assert events[-1].metadata["id"] == "c-3"
        assert events[-1].metadata["usage"].total_tokens == 5
        assert transport.calls[0].json["stream"] is True

    async def test_stream_error_end(self, provider: CohereProvider, transport: FakeTransport) -> None:
        transport.queue_stream(
            sse({"type": "message-end", "delta": {"finish_reason": "ERROR", "error": "internal failure"}})
        )
        with pytest.raises(ClientError) as exc_info:
            async for _ in provider.chat_stream(ChatRequest(messages=[Message(role="user", content="q")])):
                pass
        assert exc_info.value.message == "internal failure"

    async def test_server_error(self, provider: CohereProvider, transport: FakeTransport) -> None:
        transport.queue_json({"message": "internal server error"}, status=500)
        with pytest.raises(TransientError) as exc_info:
            await provider.chat(ChatRequest(messages=[Message(role="user", content="q")]))
        assert exc_info.value.message == "internal server error"


class TestCohereEmbeddings:
    """Test v2 embed."""

    async def test_embed(self, provider: CohereProvider, transport: FakeTransport) -> None:
        transport.queue_json(
            {
                "id": "e-1",
                "response_type": "embeddings_by_type",
                "embeddings": {"float": [[0.1, 0.2], [0.3, 0.4]]},
                "meta": {"billed_units": {"input_tokens": 4}},
            }
        )
        response = await provider.embed(
            EmbeddingRequest(inputs=["a", "b"], provider_options={"cohere": {"inputType": "search_query"}})
        )
        assert transport.calls[0].json == {
            "model": "embed-english-v3.0",
            "texts": ["a", "b"],
            "input_type": "search_query",
            "embedding_types": ["float"],
        }
        assert [e.vector for e in response.embeddings] == [(0.1, 0.2), (0.3, 0.4)]
        assert response.usage.prompt_tokens == 4

    async def test_missing_float_vectors(self, provider: CohereProvider, transport: FakeTransport) -> None:
        transport.queue_json({"embeddings": {"int8": [[1, 2]]}})
        with pytest.raises(ClientError) as exc_info:
            await provider.embed(EmbeddingRequest(inputs=["a"]))
        assert exc_info.value.code == "UNSUPPORTED_FORMAT"


async def test_image_generation_not_supported(provider: CohereProvider, transport: FakeTransport) -> None:
    with pytest.raises(CapabilityError) as exc_info:
        await provider.generate_image(ImageRequest(prompt="x"))
    assert exc_info.value.code == "IMAGE_GENERATION_NOT_SUPPORTED"
    assert transport.calls == []
