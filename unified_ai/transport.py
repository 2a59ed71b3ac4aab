"""
Unified AI - Transport Collaborator

Byte transport consumed by every provider adapter. The core only ever sees
status, headers and body (or body chunks); connection pooling and TLS stay
inside the transport.

The default implementation wraps httpx.AsyncClient. Tests and embedders can
supply any Transport subclass.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass
class TransportResponse:
    """Status, headers and full body of a completed HTTP exchange."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON (raises ValueError on malformed payloads)."""
        return json.loads(self.body)


@dataclass
class MultipartFile:
    """Binary part of a multipart upload."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class StreamResponse:
    """
    Streaming HTTP response.

    Headers and status are available immediately; the body is consumed
    either chunk by chunk through chunks() or fully through read().
    """

    def __init__(
        self,
        status_code: int,
        headers: Mapping[str, str],
        chunks: AsyncIterator[bytes],
    ) -> None:
        self.status_code = status_code
        self.headers = {k.lower(): v for k, v in headers.items()}
        self._chunks = chunks

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def chunks(self) -> AsyncIterator[bytes]:
        return self._chunks

    async def read(self) -> bytes:
        """Drain the remaining body into memory."""
        buffer = bytearray()
        async for chunk in self._chunks:
            buffer.extend(chunk)
        return bytes(buffer)


class Transport(ABC):
    """Abstract transport contract."""

    @abstractmethod
    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | str | None = None,
    ) -> TransportResponse:
        """Send a request and return the complete response."""

    @abstractmethod
    async def send_multipart(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        fields: Mapping[str, str],
        files: Mapping[str, MultipartFile],
    ) -> TransportResponse:
        """Send a multipart/form-data request."""

    @abstractmethod
    def stream(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | str | None = None,
    ) -> Any:
        """
        Open a streaming request.

        Returns an async context manager yielding a StreamResponse. Leaving the
        context releases the underlying connection.
        """

    async def aclose(self) -> None:
        """Release transport resources. Override if needed."""
        pass


class HttpxTransport(Transport):
    """Transport backed by httpx.AsyncClient."""

    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self.timeout = timeout

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | str | None = None,
    ) -> TransportResponse:
        response = await self._client.request(method, url, headers=dict(headers), content=body)
        return TransportResponse(
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=response.content,
        )

    async def send_multipart(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        fields: Mapping[str, str],
        files: Mapping[str, MultipartFile],
    ) -> TransportResponse:
        # httpx sets its own multipart Content-Type with the boundary
        request_headers = {k: v for k, v in headers.items() if k.lower() != "content-type"}
        # Text fields as (None, value) parts keep the body multipart even without files
        parts: list[tuple[str, tuple[Any, ...]]] = [(name, (None, value)) for name, value in fields.items()]
        parts.extend((name, (f.filename, f.content, f.content_type)) for name, f in files.items())
        response = await self._client.request(method, url, headers=request_headers, files=parts)
        return TransportResponse(
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=response.content,
        )

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | str | None = None,
    ) -> AsyncIterator[StreamResponse]:
        async with self._client.stream(method, url, headers=dict(headers), content=body) as response:
            yield StreamResponse(response.status_code, response.headers, response.aiter_bytes())

    async def aclose(self) -> None:
        """Close the client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(timeout={self.timeout})"
