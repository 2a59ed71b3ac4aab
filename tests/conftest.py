"""
Unified AI — Test Configuration and Shared Fixtures

Provides a recording in-memory Transport and provider config fixtures so
adapters can be exercised without network access.
"""

import json
import os
from collections import deque
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import pytest

from unified_ai.config import ProviderConfig, reset_config
from unified_ai.transport import MultipartFile, StreamResponse, Transport, TransportResponse

# Set test environment
os.environ["ENVIRONMENT"] = "test"


@dataclass
class RecordedCall:
    """One request seen by FakeTransport."""

    kind: str
    method: str
    url: str
    headers: dict[str, str]
    body: bytes | str | None = None
    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, MultipartFile] = field(default_factory=dict)

    @property
    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


class FakeTransport(Transport):
    """
    Scripted transport.

    Responses are consumed in FIFO order; a queued exception is raised
    instead of returned. Streams are scripted separately as chunk lists.
    """

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._responses: deque[TransportResponse | BaseException] = deque()
        self._streams: deque[tuple[int, dict[str, str], list[bytes]]] = deque()
        self.closed = False

    def queue(self, response: TransportResponse | BaseException) -> "FakeTransport":
        self._responses.append(response)
        return self

    def queue_json(self, data: Any, status: int = 200, headers: dict[str, str] | None = None) -> "FakeTransport":
        return self.queue(
            TransportResponse(
                status_code=status,
                headers={"content-type": "application/json", **(headers or {})},
                body=json.dumps(data).encode(),
            )
        )

    def queue_bytes(self, body: bytes, status: int = 200, content_type: str = "application/octet-stream") -> "FakeTransport":
        return self.queue(TransportResponse(status_code=status, headers={"content-type": content_type}, body=body))

    def queue_stream(self, chunks: list[bytes | str], status: int = 200, headers: dict[str, str] | None = None) -> "FakeTransport":
        encoded = [c.encode() if isinstance(c, str) else c for c in chunks]
        self._streams.append((status, headers or {"content-type": "text/event-stream"}, encoded))
        return self

    def _next(self) -> TransportResponse:
        if not self._responses:
            raise AssertionError("FakeTransport has no queued response")
        response = self._responses.popleft()
        if isinstance(response, BaseException):
            raise response
        return response

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | str | None = None,
    ) -> TransportResponse:
        self.calls.append(RecordedCall("send", method, url, dict(headers), body))
        return self._next()

    async def send_multipart(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        fields: Mapping[str, str],
        files: Mapping[str, MultipartFile],
    ) -> TransportResponse:
        self.calls.append(RecordedCall("multipart", method, url, dict(headers), None, dict(fields), dict(files)))
        return self._next()

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | str | None = None,
    ) -> AsyncIterator[StreamResponse]:
        self.calls.append(RecordedCall("stream", method, url, dict(headers), body))
        if not self._streams:
            raise AssertionError("FakeTransport has no queued stream")
        status, response_headers, chunks = self._streams.popleft()

        async def body_chunks() -> AsyncIterator[bytes]:
            for chunk in chunks:
                yield chunk

        yield StreamResponse(status, response_headers, body_chunks())

    async def aclose(self) -> None:
        self.closed = True


def sse(*payloads: Any) -> list[str]:
    """Encode payloads as event-stream records (strings are sent verbatim)."""
    return [f"data: {p if isinstance(p, str) else json.dumps(p)}\n\n" for p in payloads]


@pytest.fixture
def transport() -> FakeTransport:
    """Fresh scripted transport for each test."""
    return FakeTransport()


@pytest.fixture
def make_config():
    """Factory for provider configs with rate limiting off (keeps asyncio.sleep unpatched paths quiet)."""

    def _make(provider_id: str, **kwargs: Any) -> ProviderConfig:
        settings = {"rate_limit": False, **kwargs.pop("settings", {})}
        kwargs.setdefault("api_key", "test-key-123456")
        return ProviderConfig(id=provider_id, settings=settings, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def clean_config_cache():
    """Drop the cached configuration around every test."""
    reset_config()
    yield
    reset_config()
