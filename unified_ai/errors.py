"""
Unified AI - Core Error Types

Defines the closed error taxonomy surfaced by every provider adapter.
Every failure that leaves the core is one of five kinds:

- TransientError: 5xx responses, network failures, timeouts (retryable)
- QuotaError: 429 rate limiting, optionally carrying a retry-after hint (retryable)
- AuthError: 401/403 and invalid credentials
- ClientError: other 4xx, malformed input, unparseable payloads
- CapabilityError: operation unsupported by the selected provider
"""

from datetime import datetime
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """The five unified error kinds."""

    TRANSIENT = "transient"
    QUOTA = "quota"
    AUTH = "auth"
    CLIENT = "client"
    CAPABILITY = "capability"


class ErrorCode(str, Enum):
    """
    Machine-readable error codes.

    Attached to every AiError so callers can branch without parsing messages.
    """

    # HTTP classification
    RATE_LIMIT = "RATE_LIMIT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    SERVER_ERROR = "SERVER_ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"

    # Transport / exception classification
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    HTTP_ERROR = "HTTP_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    # Mapper validation
    MISSING_MODEL = "MISSING_MODEL"
    INVALID_ROLE = "INVALID_ROLE"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_N_VALUE = "INVALID_N_VALUE"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNSUPPORTED_MODEL = "UNSUPPORTED_MODEL"

    # Orchestration
    NO_PROVIDER_SPECIFIED = "NO_PROVIDER_SPECIFIED"
    PROVIDER_NOT_FOUND = "PROVIDER_NOT_FOUND"
    DUPLICATE_PROVIDER = "DUPLICATE_PROVIDER"
    INVALID_PROVIDER_ID = "INVALID_PROVIDER_ID"
    ALREADY_INITIALIZED = "ALREADY_INITIALIZED"
    NOT_INITIALIZED = "NOT_INITIALIZED"
    INVALID_CONFIG = "INVALID_CONFIG"

    # Conversations
    DUPLICATE_CONVERSATION = "DUPLICATE_CONVERSATION"
    CONVERSATION_NOT_FOUND = "CONVERSATION_NOT_FOUND"

    # Health checks
    HEALTH_CHECK_FAILED = "HEALTH_CHECK_FAILED"
    HEALTH_CHECK_TIMEOUT = "HEALTH_CHECK_TIMEOUT"
    HEALTH_CHECK_ERROR = "HEALTH_CHECK_ERROR"

    # Async jobs
    JOB_FAILED = "JOB_FAILED"
    JOB_TIMEOUT = "JOB_TIMEOUT"

    # Capability gating
    CHAT_NOT_SUPPORTED = "CHAT_NOT_SUPPORTED"
    STREAMING_NOT_SUPPORTED = "STREAMING_NOT_SUPPORTED"
    EMBEDDING_NOT_SUPPORTED = "EMBEDDING_NOT_SUPPORTED"
    IMAGE_GENERATION_NOT_SUPPORTED = "IMAGE_GENERATION_NOT_SUPPORTED"
    TTS_NOT_SUPPORTED = "TTS_NOT_SUPPORTED"
    STT_NOT_SUPPORTED = "STT_NOT_SUPPORTED"
    VIDEO_GENERATION_NOT_SUPPORTED = "VIDEO_GENERATION_NOT_SUPPORTED"
    VIDEO_ANALYSIS_NOT_SUPPORTED = "VIDEO_ANALYSIS_NOT_SUPPORTED"

    # Policy / auth validation
    INVALID_MAX_ATTEMPTS = "INVALID_MAX_ATTEMPTS"
    INVALID_DELAY = "INVALID_DELAY"
    INVALID_MULTIPLIER = "INVALID_MULTIPLIER"
    INVALID_RATE_LIMIT = "INVALID_RATE_LIMIT"
    INVALID_API_KEY = "INVALID_API_KEY"
    INVALID_HEADER_NAME = "INVALID_HEADER_NAME"
    INVALID_HEADERS = "INVALID_HEADERS"


class AiError(Exception):
    """Base exception for all unified AI errors."""

    kind: ErrorKind = ErrorKind.CLIENT
    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: ErrorCode | str = ErrorCode.UNKNOWN_ERROR,
        provider: str | None = None,
        provider_error: Any = None,
        request_id: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.provider = provider
        self.provider_error = provider_error
        self.request_id = request_id

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a JSON-serialisable dictionary."""
        data: dict[str, Any] = {
            "type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "code": self.code,
        }
        if self.provider is not None:
            data["provider"] = self.provider
        if self.provider_error is not None:
            data["provider_error"] = self.provider_error
        if self.request_id is not None:
            data["request_id"] = self.request_id
        return data

    def _identity(self) -> tuple[Any, ...]:
        return (type(self), self.message, self.code, self.provider, self.request_id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AiError):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}({self.code}): {self.message}"]
        if self.provider:
            parts.append(f"[provider={self.provider}]")
        if self.request_id:
            parts.append(f"[request_id={self.request_id}]")
        return " ".join(parts)


class TransientError(AiError):
    """Raised for temporary failures: 5xx, network errors, timeouts."""

    kind = ErrorKind.TRANSIENT
    retryable = True


class QuotaError(AiError):
    """Raised when a provider rate limit or quota is hit (HTTP 429)."""

    kind = ErrorKind.QUOTA
    retryable = True

    def __init__(
        self,
        message: str,
        code: ErrorCode | str = ErrorCode.RATE_LIMIT,
        provider: str | None = None,
        provider_error: Any = None,
        request_id: str | None = None,
        retry_after: datetime | None = None,
    ):
        super().__init__(message, code, provider, provider_error, request_id)
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.retry_after is not None:
            data["retry_after"] = self.retry_after.isoformat()
        return data

    def _identity(self) -> tuple[Any, ...]:
        return (*super()._identity(), self.retry_after)


class AuthError(AiError):
    """Raised when credentials are missing, invalid or lack permission."""

    kind = ErrorKind.AUTH


class ClientError(AiError):
    """Raised for invalid requests, unknown roles and unparseable payloads."""

    kind = ErrorKind.CLIENT


class CapabilityError(AiError):
    """Raised before dispatch when a provider does not support an operation."""

    kind = ErrorKind.CAPABILITY


class ConfigurationError(ClientError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.INVALID_CONFIG, provider_error=details)
        self.details = details or {}


class JobTimeoutError(TransientError):
    """Raised when an async job is still running after the last poll attempt."""

    def __init__(self, job_id: str, attempts: int, provider: str | None = None):
        message = f"Job {job_id} did not finish after {attempts} status checks"
        super().__init__(message, ErrorCode.JOB_TIMEOUT, provider=provider)
        self.job_id = job_id
        self.attempts = attempts


def is_retryable_error(error: BaseException) -> bool:
    """
    Check if an error is transient and should be retried.

    Only TransientError and QuotaError qualify. Everything else, including
    exceptions that never went through the error mapper, is final.
    """
    return isinstance(error, AiError) and error.retryable
