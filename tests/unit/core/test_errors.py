"""
Unified AI — Error Taxonomy and Error Mapper Tests

Covers status classification, Retry-After parsing, error envelope parsing
and exception classification.
"""

import json
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime

import httpx
import pytest

from unified_ai.error_mapper import map_exception, map_http_error, map_stream_error, parse_retry_after
from unified_ai.errors import (
    AiError,
    AuthError,
    CapabilityError,
    ClientError,
    ConfigurationError,
    ErrorCode,
    ErrorKind,
    JobTimeoutError,
    QuotaError,
    TransientError,
    is_retryable_error,
)


class TestErrorTypes:
    """Test the error hierarchy."""

    def test_kinds(self) -> None:
        assert TransientError("x").kind is ErrorKind.TRANSIENT
        assert QuotaError("x").kind is ErrorKind.QUOTA
        assert AuthError("x").kind is ErrorKind.AUTH
        assert ClientError("x").kind is ErrorKind.CLIENT
        assert CapabilityError("x").kind is ErrorKind.CAPABILITY

    def test_retryable(self) -> None:
        assert is_retryable_error(TransientError("x"))
        assert is_retryable_error(QuotaError("x"))
        assert is_retryable_error(JobTimeoutError("job-1", 3))
        assert not is_retryable_error(AuthError("x"))
        assert not is_retryable_error(ClientError("x"))
        assert not is_retryable_error(ValueError("x"))

    def test_to_dict(self) -> None:
        retry_at = datetime(2030, 1, 1, tzinfo=UTC)
        error = QuotaError("slow down", provider="openai", request_id="req-1", retry_after=retry_at)
        data = error.to_dict()
        assert data["type"] == "QuotaError"
        assert data["kind"] == "quota"
        assert data["code"] == "RATE_LIMIT"
        assert data["provider"] == "openai"
        assert data["request_id"] == "req-1"
        assert data["retry_after"] == retry_at.isoformat()

    def test_value_equality(self) -> None:
        assert ClientError("bad", ErrorCode.INVALID_ROLE, "openai") == ClientError("bad", ErrorCode.INVALID_ROLE, "openai")
        assert ClientError("bad") != AuthError("bad")

    def test_configuration_error_is_client_error(self) -> None:
        error = ConfigurationError("missing key", details={"provider": "openai"})
        assert isinstance(error, ClientError)
        assert error.code == "INVALID_CONFIG"
        assert error.details == {"provider": "openai"}

    def test_str_includes_code_and_provider(self) -> None:
        text = str(TransientError("boom", ErrorCode.SERVER_ERROR, provider="google"))
        assert "SERVER_ERROR" in text
        assert "provider=google" in text


class TestMapHttpError:
    """Test HTTP status classification."""

    @pytest.mark.parametrize("status", range(400, 600))
    def test_classification_is_total(self, status: int) -> None:
        error = map_http_error(status, b"", {}, "openai")
        assert isinstance(error, AiError)
        if status in (401, 403):
            assert error.kind is ErrorKind.AUTH
        elif status == 429:
            assert error.kind is ErrorKind.QUOTA
        elif status >= 500:
            assert error.kind is ErrorKind.TRANSIENT
        else:
            assert error.kind is ErrorKind.CLIENT
        assert error.provider == "openai"

    def test_auth_codes(self) -> None:
        assert map_http_error(401, "", {}, "x").code == "UNAUTHORIZED"
        assert map_http_error(403, "", {}, "x").code == "FORBIDDEN"

    def test_empty_body_message(self) -> None:
        assert map_http_error(502, None, None, "x").message == "HTTP 502"

    def test_openai_envelope(self) -> None:
        body = json.dumps({"error": {"message": "Invalid model", "type": "invalid_request_error", "code": "model_not_found"}})
        error = map_http_error(400, body, {}, "openai")
        assert isinstance(error, ClientError)
        assert error.message == "Invalid model"
        assert error.provider_error["code"] == "model_not_found"

    def test_string_error_and_request_id(self) -> None:
        body = json.dumps({"error": "quota exceeded", "request_id": "req_42"})
        error = map_http_error(429, body, {}, "cohere")
        assert error.message == "quota exceeded"
        assert error.request_id == "req_42"

    def test_non_json_body_used_as_message(self) -> None:
        error = map_http_error(503, b"upstream unavailable", {}, "x")
        assert error.message == "upstream unavailable"

    def test_quota_carries_retry_after(self) -> None:
        error = map_http_error(429, "", {"Retry-After": "30"}, "openai")
        assert isinstance(error, QuotaError)
        assert error.retry_after is not None


class TestParseRetryAfter:
    """Test Retry-After parsing."""

    def test_relative_seconds(self) -> None:
        parsed = parse_retry_after({"retry-after": "60"})
        assert parsed is not None
        expected = datetime.now(UTC) + timedelta(seconds=60)
        assert abs((parsed - expected).total_seconds()) <= 1

    def test_header_name_case_insensitive(self) -> None:
        now = datetime(2030, 1, 1, tzinfo=UTC)
        assert parse_retry_after({"Retry-After": "5"}, now=now) == now + timedelta(seconds=5)

    def test_future_http_date(self) -> None:
        future = datetime.now(UTC).replace(microsecond=0) + timedelta(minutes=5)
        parsed = parse_retry_after({"retry-after": format_datetime(future, usegmt=True)})
        assert parsed == future

    def test_past_http_date(self) -> None:
        assert parse_retry_after({"retry-after": "Wed, 21 Oct 2015 07:28:00 GMT"}) is None

    @pytest.mark.parametrize("value", ["soon", "", "-5", "1.5"])
    def test_unparseable(self, value: str) -> None:
        assert parse_retry_after({"retry-after": value}) is None

    def test_missing_header(self) -> None:
        assert parse_retry_after({}) is None
        assert parse_retry_after(None) is None


class TestMapException:
    """Test exception classification."""

    def test_ai_error_passes_through(self) -> None:
        error = AuthError("nope")
        assert map_exception(error, "x") is error

    def test_timeouts(self) -> None:
        assert map_exception(httpx.ReadTimeout("read"), "x").code == "TIMEOUT"
        assert map_exception(TimeoutError(), "x").code == "TIMEOUT"
        assert map_exception(RuntimeError("operation timed out"), "x").code == "TIMEOUT"

    def test_network(self) -> None:
        error = map_exception(httpx.ConnectError("refused"), "x")
        assert isinstance(error, TransientError)
        assert error.code == "NETWORK_ERROR"
        assert map_exception(ConnectionResetError("reset"), "x").code == "NETWORK_ERROR"

    def test_parse_errors(self) -> None:
        error = map_exception(KeyError("choices"), "x")
        assert isinstance(error, ClientError)
        assert error.code == "PARSE_ERROR"

    def test_unknown(self) -> None:
        error = map_exception(RuntimeError("weird"), "x")
        assert isinstance(error, ClientError)
        assert error.code == "UNKNOWN_ERROR"


class TestMapStreamError:
    """Test in-stream error classification."""

    def test_kinds(self) -> None:
        assert isinstance(map_stream_error("rate_limit_error", "slow", "x"), QuotaError)
        assert isinstance(map_stream_error("authentication_error", "no", "x"), AuthError)
        assert isinstance(map_stream_error("overloaded_error", "busy", "x"), TransientError)
        assert isinstance(map_stream_error("invalid_request_error", "bad", "x"), ClientError)

    def test_message_fallback(self) -> None:
        assert map_stream_error(None, None, "x").message == "Stream error"
