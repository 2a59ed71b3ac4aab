"""
Unified AI - Error Mapper

Classifies HTTP outcomes and raised exceptions into the unified error taxonomy.

Status classification is total over every integer status code:
- 429 -> QuotaError (with optional retry-after hint)
- 401 -> AuthError(UNAUTHORIZED), 403 -> AuthError(FORBIDDEN)
- 5xx -> TransientError(SERVER_ERROR)
- everything else -> ClientError(CLIENT_ERROR)

Error body parsing is best-effort and never raises.
"""

import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from .errors import (
    AiError,
    AuthError,
    ClientError,
    ErrorCode,
    QuotaError,
    TransientError,
)

logger = logging.getLogger(__name__)

_TIMEOUT_MARKERS = ("timeout", "timed out")
_REQUEST_ID_KEYS = ("request_id", "requestId", "id")


def _header(headers: Mapping[str, str] | None, name: str) -> str | None:
    """Case-insensitive header lookup."""
    if not headers:
        return None
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def parse_retry_after(
    headers: Mapping[str, str] | None,
    now: datetime | None = None,
) -> datetime | None:
    """
    Parse a Retry-After header into an absolute UTC timestamp.

    Accepts relative seconds ("60") or an HTTP-date. Negative seconds,
    dates in the past and unparseable values all yield None.

    Args:
        headers: Response headers
        now: Reference time (defaults to the current UTC time)

    Returns:
        Timestamp after which the request may be retried, or None
    """
    raw = _header(headers, "retry-after")
    if raw is None:
        return None

    value = raw.strip()
    if not value:
        return None

    now = now or datetime.now(UTC)

    if value.isdigit():
        return now + timedelta(seconds=int(value))

    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)

    if parsed <= now:
        return None
    return parsed


def _parse_error_body(body: str) -> dict[str, Any]:
    """
    Extract message, code, provider_error and request_id from an error body.

    Returns only the keys that could be recognised.
    """
    result: dict[str, Any] = {}
    if not body:
        return result

    try:
        data = json.loads(body)
    except (json.JSONDecodeError, ValueError):
        return result

    if not isinstance(data, dict):
        return result

    error = data.get("error")
    if isinstance(error, str):
        result["message"] = error
    elif isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str):
            result["message"] = message
        code = error.get("code")
        if isinstance(code, str):
            result["code"] = code
        result["provider_error"] = error

    top_code = data.get("code")
    if "code" not in result and isinstance(top_code, (str, int)) and not isinstance(top_code, bool):
        result["code"] = str(top_code)

    top_message = data.get("message")
    if "message" not in result and isinstance(top_message, str):
        result["message"] = top_message

    for key in _REQUEST_ID_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value:
            result["request_id"] = value
            break

    return result


def map_http_error(
    status_code: int,
    body: str | bytes | None,
    headers: Mapping[str, str] | None,
    provider: str | None,
) -> AiError:
    """
    Classify a non-success HTTP response.

    Args:
        status_code: HTTP status code
        body: Raw response body
        headers: Response headers
        provider: Provider id that produced the response

    Returns:
        The classified AiError (not raised)
    """
    if isinstance(body, bytes):
        text = body.decode("utf-8", errors="replace")
    else:
        text = body or ""

    parsed = _parse_error_body(text)
    message = parsed.get("message") or text or f"HTTP {status_code}"
    provider_code = parsed.get("code")
    provider_error = parsed.get("provider_error")
    request_id = parsed.get("request_id")

    logger.debug(
        f"Mapping HTTP {status_code} from {provider}",
        extra={"status_code": status_code, "provider": provider, "provider_code": provider_code},
    )

    if status_code == 429:
        return QuotaError(
            message,
            ErrorCode.RATE_LIMIT,
            provider=provider,
            provider_error=provider_error,
            request_id=request_id,
            retry_after=parse_retry_after(headers),
        )
    if status_code == 401:
        return AuthError(message, ErrorCode.UNAUTHORIZED, provider, provider_error, request_id)
    if status_code == 403:
        return AuthError(message, ErrorCode.FORBIDDEN, provider, provider_error, request_id)
    if 500 <= status_code <= 599:
        return TransientError(message, ErrorCode.SERVER_ERROR, provider, provider_error, request_id)
    return ClientError(message, ErrorCode.CLIENT_ERROR, provider, provider_error, request_id)


def map_exception(error: BaseException, provider: str | None) -> AiError:
    """
    Classify a raised exception.

    AiError instances pass through unchanged. Callers must not pass
    asyncio.CancelledError here; cancellation is always propagated as-is.
    """
    if isinstance(error, AiError):
        return error

    message = str(error) or error.__class__.__name__
    lowered = message.lower()

    if isinstance(error, (httpx.TimeoutException, TimeoutError)) or any(m in lowered for m in _TIMEOUT_MARKERS):
        return TransientError(f"Request timed out: {message}", ErrorCode.TIMEOUT, provider)

    if isinstance(error, (httpx.NetworkError, ConnectionError)):
        return TransientError(f"Network error: {message}", ErrorCode.NETWORK_ERROR, provider)

    if isinstance(error, httpx.HTTPError):
        return TransientError(f"HTTP error: {message}", ErrorCode.HTTP_ERROR, provider)

    if isinstance(error, OSError):
        return TransientError(f"Network error: {message}", ErrorCode.NETWORK_ERROR, provider)

    if isinstance(error, (json.JSONDecodeError, ValueError, KeyError, TypeError)):
        return ClientError(f"Failed to parse provider payload: {message}", ErrorCode.PARSE_ERROR, provider)

    return ClientError(f"Unexpected error: {message}", ErrorCode.UNKNOWN_ERROR, provider)


def map_stream_error(
    error_type: str | None,
    message: str | None,
    provider: str | None,
    provider_error: Any = None,
) -> AiError:
    """
    Classify an error event delivered inside an event stream.

    The HTTP status is already 200 at that point, so the provider's error
    type string is the only signal.
    """
    kind = (error_type or "").lower()
    text = message or error_type or "Stream error"

    if "rate_limit" in kind or "quota" in kind or "resource_exhausted" in kind:
        return QuotaError(text, ErrorCode.RATE_LIMIT, provider=provider, provider_error=provider_error)
    if "auth" in kind or "permission" in kind:
        return AuthError(text, ErrorCode.UNAUTHORIZED, provider, provider_error)
    if "overloaded" in kind or "server" in kind or "api_error" in kind or "unavailable" in kind:
        return TransientError(text, ErrorCode.SERVER_ERROR, provider, provider_error)
    return ClientError(text, ErrorCode.CLIENT_ERROR, provider, provider_error)
