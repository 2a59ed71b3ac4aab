"""
Unified AI — Telemetry Tests

Tests the dispatcher contract, structured logging, in-memory metrics and
the SQLite event store.
"""

import json
import logging
from pathlib import Path

import pytest

from unified_ai.errors import QuotaError
from unified_ai.telemetry import (
    ErrorTelemetry,
    JSONFormatter,
    LoggingTelemetryHandler,
    MetricsCollector,
    RequestTelemetry,
    ResponseTelemetry,
    TelemetryDispatcher,
    TelemetryHandler,
    TelemetryStore,
    get_request_id,
    reset_request_id,
    set_request_id,
)


class RecordingHandler(TelemetryHandler):
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    async def on_request(self, event: RequestTelemetry) -> None:
        self.events.append(("request", event.request_id))

    async def on_response(self, event: ResponseTelemetry) -> None:
        self.events.append(("response", event.request_id))

    async def on_error(self, event: ErrorTelemetry) -> None:
        self.events.append(("error", event.request_id))


class ExplodingHandler(TelemetryHandler):
    async def on_request(self, event: RequestTelemetry) -> None:
        raise RuntimeError("sink down")

    async def on_response(self, event: ResponseTelemetry) -> None:
        raise RuntimeError("sink down")

    async def on_error(self, event: ErrorTelemetry) -> None:
        raise RuntimeError("sink down")

    async def close(self) -> None:
        raise RuntimeError("sink down")


class TestTelemetryDispatcher:
    """Test fan out and failure isolation."""

    async def test_fans_out_in_order(self) -> None:
        first, second = RecordingHandler(), RecordingHandler()
        dispatcher = TelemetryDispatcher([first, second])
        await dispatcher.request_started(RequestTelemetry("r1", "openai", "chat"))
        await dispatcher.request_finished(ResponseTelemetry("r1", latency_ms=12.0))
        assert first.events == [("request", "r1"), ("response", "r1")]
        assert second.events == first.events

    async def test_handler_failures_are_swallowed(self, caplog: pytest.LogCaptureFixture) -> None:
        recorder = RecordingHandler()
        dispatcher = TelemetryDispatcher([ExplodingHandler(), recorder])
        with caplog.at_level(logging.WARNING):
            await dispatcher.request_failed(ErrorTelemetry("r2", QuotaError("slow"), "openai", "chat"))
            await dispatcher.close()
        assert recorder.events == [("error", "r2")]
        assert "sink down" in caplog.text

    def test_error_event_to_dict(self) -> None:
        data = ErrorTelemetry("r3", QuotaError("slow", provider="openai"), "openai", "chat").to_dict()
        assert data["error_code"] == "RATE_LIMIT"
        assert data["error_kind"] == "quota"
        assert data["operation"] == "chat"


class TestStructuredLogging:
    """Test JSON formatting and request id context."""

    def test_request_id_context(self) -> None:
        token = set_request_id("req-123")
        try:
            assert get_request_id() == "req-123"
        finally:
            reset_request_id(token)
        assert get_request_id() is None

    def test_json_formatter(self) -> None:
        record = logging.LogRecord("unified_ai.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
        record.provider = "openai"
        token = set_request_id("req-9")
        try:
            data = json.loads(JSONFormatter().format(record))
        finally:
            reset_request_id(token)
        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["request_id"] == "req-9"
        assert data["provider"] == "openai"

    async def test_logging_handler(self, caplog: pytest.LogCaptureFixture) -> None:
        handler = LoggingTelemetryHandler()
        with caplog.at_level(logging.INFO, logger="unified_ai.telemetry"):
            await handler.on_request(RequestTelemetry("r1", "anthropic", "chat"))
            await handler.on_response(ResponseTelemetry("r1", latency_ms=5.0, tokens_used=10))
        assert "anthropic.chat" in caplog.text
        assert "5.0ms" in caplog.text


class TestMetricsCollector:
    """Test per-provider aggregation."""

    async def test_counts(self) -> None:
        metrics = MetricsCollector()
        await metrics.on_request(RequestTelemetry("r1", "openai", "chat"))
        await metrics.on_response(ResponseTelemetry("r1", latency_ms=100.0, tokens_used=21))
        await metrics.on_request(RequestTelemetry("r2", "openai", "chat"))
        await metrics.on_error(ErrorTelemetry("r2", QuotaError("slow"), "openai", "chat"))
        await metrics.on_request(RequestTelemetry("r3", "openai", "embedding"))
        await metrics.on_response(ResponseTelemetry("r3", latency_ms=300.0, cached=True))

        stats = metrics.get_metrics("openai")
        assert stats.total_requests == 3
        assert stats.successful_requests == 2
        assert stats.error_count == 1
        assert stats.total_tokens == 21
        assert stats.cache_hits == 1
        assert stats.average_latency_ms == pytest.approx(200.0)
        assert stats.min_latency_ms == 100.0
        assert stats.max_latency_ms == 300.0
        assert stats.error_rate == pytest.approx(100 / 3)

    async def test_unknown_provider_is_empty(self) -> None:
        assert MetricsCollector().get_metrics("nobody").total_requests == 0

    async def test_all_metrics_merge(self) -> None:
        metrics = MetricsCollector()
        for request_id, provider in (("a", "openai"), ("b", "google")):
            await metrics.on_request(RequestTelemetry(request_id, provider, "chat"))
            await metrics.on_response(ResponseTelemetry(request_id, latency_ms=10.0))
        combined = metrics.get_all_metrics()
        assert combined.total_requests == 2
        assert sorted(metrics.providers) == ["google", "openai"]


class TestTelemetryStore:
    """Test SQLite persistence."""

    @pytest.fixture
    async def store(self, tmp_path: Path) -> TelemetryStore:
        store = TelemetryStore(str(tmp_path / "telemetry" / "events.db"))
        yield store
        await store.close()

    async def test_persists_lifecycle(self, store: TelemetryStore) -> None:
        await store.on_request(RequestTelemetry("r1", "openai", "chat"))
        await store.on_response(ResponseTelemetry("r1", latency_ms=42.0, tokens_used=21))
        await store.on_request(RequestTelemetry("r2", "cohere", "embedding"))
        await store.on_error(ErrorTelemetry("r2", QuotaError("slow"), "cohere", "embedding"))

        events = await store.get_events()
        assert [e["kind"] for e in events] == ["request", "response", "request", "error"]
        response = events[1]
        assert response["provider"] == "openai"
        assert response["operation"] == "chat"
        assert response["tokens_used"] == 21
        assert events[3]["error_code"] == "RATE_LIMIT"

    async def test_filters_and_clear(self, store: TelemetryStore) -> None:
        await store.on_request(RequestTelemetry("r1", "openai", "chat"))
        await store.on_request(RequestTelemetry("r2", "google", "chat"))
        assert len(await store.get_events(provider="google")) == 1
        assert len(await store.get_events(request_id="r1")) == 1
        await store.clear()
        assert await store.get_events() == []
