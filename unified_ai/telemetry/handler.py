"""
Unified AI - Telemetry Contract

Three notification points fired by the orchestrator for every attempt:
request-started, request-finished and request-failed. Handlers are
fire-and-forget: the dispatcher logs and discards anything a handler raises,
so telemetry can never change the outcome of a call.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..errors import AiError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class RequestTelemetry:
    """Emitted when an attempt starts."""

    request_id: str
    provider: str
    operation: str
    timestamp: datetime = field(default_factory=_now)
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "request_id": self.request_id,
            "provider": self.provider,
            "operation": self.operation,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data


@dataclass(frozen=True)
class ResponseTelemetry:
    """Emitted when an attempt succeeds."""

    request_id: str
    latency_ms: float
    tokens_used: int | None = None
    cached: bool = False
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "request_id": self.request_id,
            "latency_ms": round(self.latency_ms, 2),
            "cached": self.cached,
        }
        if self.tokens_used is not None:
            data["tokens_used"] = self.tokens_used
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data


@dataclass(frozen=True)
class ErrorTelemetry:
    """Emitted when an attempt fails."""

    request_id: str
    error: BaseException
    provider: str | None = None
    operation: str | None = None
    timestamp: datetime = field(default_factory=_now)
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "request_id": self.request_id,
            "error": str(self.error),
            "error_type": type(self.error).__name__,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.provider is not None:
            data["provider"] = self.provider
        if self.operation is not None:
            data["operation"] = self.operation
        if isinstance(self.error, AiError):
            data["error_code"] = self.error.code
            data["error_kind"] = self.error.kind.value
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data


class TelemetryHandler(ABC):
    """Receiver of request lifecycle notifications."""

    @abstractmethod
    async def on_request(self, event: RequestTelemetry) -> None:
        pass

    @abstractmethod
    async def on_response(self, event: ResponseTelemetry) -> None:
        pass

    @abstractmethod
    async def on_error(self, event: ErrorTelemetry) -> None:
        pass

    async def close(self) -> None:
        """Release handler resources. Override if needed."""
        pass


class TelemetryDispatcher:
    """Fans events out to every handler; handler failures are logged, never raised."""

    def __init__(self, handlers: Iterable[TelemetryHandler] | None = None) -> None:
        self._handlers: list[TelemetryHandler] = list(handlers or [])

    @property
    def handlers(self) -> list[TelemetryHandler]:
        return list(self._handlers)

    def add(self, handler: TelemetryHandler) -> None:
        self._handlers.append(handler)

    async def _dispatch(self, method: str, event: Any) -> None:
        for handler in self._handlers:
            try:
                await getattr(handler, method)(event)
            except Exception as e:
                logger.warning(
                    f"Telemetry handler {type(handler).__name__}.{method} failed: {e}",
                    extra={"handler": type(handler).__name__, "error": str(e), "request_id": event.request_id},
                )

    async def request_started(self, event: RequestTelemetry) -> None:
        await self._dispatch("on_request", event)

    async def request_finished(self, event: ResponseTelemetry) -> None:
        await self._dispatch("on_response", event)

    async def request_failed(self, event: ErrorTelemetry) -> None:
        await self._dispatch("on_error", event)

    async def close(self) -> None:
        for handler in self._handlers:
            try:
                await handler.close()
            except Exception as e:
                logger.warning(f"Failed to close telemetry handler {type(handler).__name__}: {e}")
