"""
Unified AI - one client for many generative-AI providers.

Normalizes OpenAI, Anthropic, Google Gemini, Cohere and OpenAI-compatible
APIs behind a single request/response model with typed errors, retries,
streaming, async job polling and telemetry hooks.
"""

from .client import UnifiedAI
from .config import ProviderConfig, RetrySettings, TelemetrySettings, UnifiedAIConfig, load_config
from .errors import (
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
)
from .models import (
    AudioResponse,
    ChatRequest,
    ChatResponse,
    ChatStreamEvent,
    EmbeddingRequest,
    EmbeddingResponse,
    ImageRequest,
    ImageResponse,
    Message,
    Operation,
    ProviderCapabilities,
    Role,
    SttRequest,
    TranscriptionResponse,
    TtsRequest,
    Usage,
    VideoAnalysisRequest,
    VideoAnalysisResponse,
    VideoRequest,
    VideoResponse,
)
from .orchestrator import (
    Conversation,
    ConversationManager,
    ProviderHealthChecker,
    ProviderHealthResult,
    ProviderHealthStatus,
)
from .providers import BaseProvider, ProviderFactory, ProviderRegistry
from .resilience import RetryPolicy
from .telemetry import TelemetryHandler
from .transport import HttpxTransport, Transport, TransportResponse

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Client
    "UnifiedAI",
    # Configuration
    "UnifiedAIConfig",
    "ProviderConfig",
    "RetrySettings",
    "TelemetrySettings",
    "load_config",
    # Errors
    "AiError",
    "TransientError",
    "QuotaError",
    "AuthError",
    "ClientError",
    "CapabilityError",
    "ConfigurationError",
    "JobTimeoutError",
    "ErrorKind",
    "ErrorCode",
    # Models
    "Role",
    "Message",
    "Usage",
    "Operation",
    "ProviderCapabilities",
    "ChatRequest",
    "ChatResponse",
    "ChatStreamEvent",
    "EmbeddingRequest",
    "EmbeddingResponse",
    "ImageRequest",
    "ImageResponse",
    "TtsRequest",
    "AudioResponse",
    "SttRequest",
    "TranscriptionResponse",
    "VideoRequest",
    "VideoResponse",
    "VideoAnalysisRequest",
    "VideoAnalysisResponse",
    # Orchestration helpers
    "Conversation",
    "ConversationManager",
    "ProviderHealthChecker",
    "ProviderHealthResult",
    "ProviderHealthStatus",
    # Extension points
    "BaseProvider",
    "ProviderFactory",
    "ProviderRegistry",
    "RetryPolicy",
    "TelemetryHandler",
    "Transport",
    "HttpxTransport",
    "TransportResponse",
]
