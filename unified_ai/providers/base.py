"""
Base Provider Interface

Defines the abstract adapter interface for AI model providers.
All concrete providers (OpenAI, Anthropic, Google, Cohere, ...) implement it.

An adapter owns transport sequencing for one provider: it asks its mapper for
a wire payload, sends it through the Transport collaborator, classifies
non-success statuses with the error mapper and hands successful bodies back
to the mapper. Operations a provider does not support raise CapabilityError.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any, TypeVar

from ..auth import ApiKeyAuth, Authentication, CustomHeaderAuth
from ..config.schemas import ProviderConfig
from ..error_mapper import map_exception, map_http_error
from ..errors import AiError, AuthError, CapabilityError, ClientError, ConfigurationError, ErrorCode
from ..models import (
    AudioResponse,
    ChatRequest,
    ChatResponse,
    ChatStreamEvent,
    EmbeddingRequest,
    EmbeddingResponse,
    ImageRequest,
    ImageResponse,
    Operation,
    ProviderCapabilities,
    SttRequest,
    TranscriptionResponse,
    TtsRequest,
    VideoAnalysisRequest,
    VideoAnalysisResponse,
    VideoRequest,
    VideoResponse,
)
from ..resilience import create_rate_limiter
from ..transport import HttpxTransport, MultipartFile, Transport, TransportResponse
from .mapper import first_key
from .polling import PollSettings
from .streaming import StreamState, iter_sse_events, parse_event_json

logger = logging.getLogger(__name__)

T = TypeVar("T")

StreamDecoder = Callable[[Any, StreamState], str | None]


class BaseProvider(ABC):
    """
    Abstract base class for provider adapters.

    Subclasses set the class-level defaults and override the operations
    their provider supports.
    """

    # Adapter family; keys per-provider defaults such as rate limits
    PROVIDER_TYPE: str | None = None
    DEFAULT_BASE_URL: str | None = None
    DEFAULT_MODEL: str | None = None
    # Per-operation defaults for non-chat operations
    DEFAULT_OPERATION_MODELS: dict[Operation, str] = {}
    AUTH_HEADER: str = "Authorization"
    REQUIRES_API_KEY: bool = True
    MODELS_PATH: str | None = None
    MODEL_PREFIXES: tuple[str, ...] = ()

    def __init__(self, config: ProviderConfig, transport: Transport | None = None) -> None:
        """
        Initialize the provider.

        Args:
            config: Provider configuration
            transport: Shared transport; a private HttpxTransport is created when omitted
        """
        self.config = config
        self._validate_config()

        self._owns_transport = transport is None
        self.transport = transport or HttpxTransport(timeout=config.timeout)
        self.auth: Authentication | None = (
            ApiKeyAuth(config.api_key, self.AUTH_HEADER) if config.api_key else None
        )
        self.custom_headers: Authentication | None = CustomHeaderAuth(config.headers) if config.headers else None
        self.capabilities = self._build_capabilities()
        self.rate_limiter = create_rate_limiter(self.PROVIDER_TYPE or self.id, config.settings)
        self._initialized = False

    def _validate_config(self) -> None:
        """
        Validate provider-specific configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.REQUIRES_API_KEY and not self.config.api_key:
            raise ConfigurationError(
                f"{self.name} provider requires an API key",
                details={"provider": self.config.id},
            )
        if not self.base_url:
            raise ConfigurationError(
                f"{self.name} provider requires a base_url",
                details={"provider": self.config.id},
            )

    @property
    def id(self) -> str:
        """Registry id (from configuration)."""
        return self.config.id

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""
        pass

    @property
    def default_model(self) -> str | None:
        return self.config.default_model or self.DEFAULT_MODEL

    @property
    def base_url(self) -> str:
        return (self.config.base_url or self.DEFAULT_BASE_URL or "").rstrip("/")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def default_model_for(self, operation: Operation) -> str | None:
        """
        Default model for an operation.

        Chat and streaming use default_model; other operations read
        settings["<operation>_model"], then the provider's built-in default.
        """
        if operation in (Operation.CHAT, Operation.STREAMING):
            return self.default_model
        return (
            self.config.settings.get(f"{operation.value}_model")
            or self.DEFAULT_OPERATION_MODELS.get(operation)
            or self.default_model
        )

    @abstractmethod
    def default_capabilities(self) -> ProviderCapabilities:
        """Static capability descriptor for this provider."""
        pass

    def _build_capabilities(self) -> ProviderCapabilities:
        capabilities = self.default_capabilities()
        overrides = self.config.settings.get("capabilities")
        if overrides:
            capabilities = ProviderCapabilities.from_dict({**capabilities.to_dict(), **overrides})
        return capabilities

    # Lifecycle

    async def init(self) -> None:
        """Prepare the provider; fetches the model list when fetch_models_on_init is set."""
        if self._initialized:
            return
        if self.config.settings.get("fetch_models_on_init"):
            await self.refresh_models()
        self._initialized = True
        logger.info(
            f"Initialized {self.name} provider",
            extra={"provider": self.id, "base_url": self.base_url, "default_model": self.default_model},
        )

    async def close(self) -> None:
        """Release resources (the transport, when this provider created it)."""
        if self._owns_transport:
            await self.transport.aclose()
        self._initialized = False
        logger.debug(f"Closed {self.name} provider", extra={"provider": self.id})

    # Capability gating

    def _unsupported(self, operation: Operation) -> CapabilityError:
        return CapabilityError(
            f"{self.name} does not support {operation.value}",
            operation.not_supported_code,
            provider=self.id,
        )

    def validate_capability(self, operation: Operation | str) -> None:
        """
        Raise CapabilityError unless the descriptor declares the operation.

        Unknown operation names are rejected as ClientError.
        """
        try:
            op = Operation(operation)
        except ValueError:
            raise ClientError(f"Unknown operation: {operation}", ErrorCode.INVALID_REQUEST, provider=self.id) from None
        if not self.capabilities.supports(op):
            raise self._unsupported(op)

    # Operations

    async def chat(self, request: ChatRequest) -> ChatResponse:
        raise self._unsupported(Operation.CHAT)

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatStreamEvent]:
        raise self._unsupported(Operation.STREAMING)
        yield  # makes this an async generator like the overrides

    async def embed(self, request: EmbeddingRequest) -> EmbeddingResponse:
        raise self._unsupported(Operation.EMBEDDING)

    async def generate_image(self, request: ImageRequest) -> ImageResponse:
        raise self._unsupported(Operation.IMAGE)

    async def tts(self, request: TtsRequest) -> AudioResponse:
        raise self._unsupported(Operation.TTS)

    async def stt(self, request: SttRequest) -> TranscriptionResponse:
        raise self._unsupported(Operation.STT)

    async def generate_video(self, request: VideoRequest) -> VideoResponse:
        raise self._unsupported(Operation.VIDEO)

    async def analyze_video(self, request: VideoAnalysisRequest) -> VideoAnalysisResponse:
        raise self._unsupported(Operation.VIDEO_ANALYSIS)

    # Models

    async def refresh_models(self) -> list[str]:
        """
        Fetch the provider's model list and atomically replace the cached one.

        On failure the previous list is kept and the fallback list returned;
        authentication failures propagate.
        """
        if not self.capabilities.dynamic_models or self.MODELS_PATH is None:
            return self.capabilities.supported_models

        try:
            data = await self._request_json("GET", self.MODELS_PATH)
            models = self._map(self.parse_model_list, data)
        except AuthError:
            raise
        except AiError as e:
            logger.warning(
                f"Failed to refresh {self.id} models, using fallback list: {e}",
                extra={"provider": self.id, "error_code": e.code},
            )
            return list(self.capabilities.fallback_models)

        if not models:
            logger.warning(f"{self.id} returned an empty model list", extra={"provider": self.id})
            return list(self.capabilities.fallback_models)

        self.capabilities.update_models(models)
        logger.info(f"Refreshed {len(models)} models for {self.id}", extra={"provider": self.id, "count": len(models)})
        return list(models)

    def parse_model_list(self, data: Any) -> list[str]:
        """Extract model ids from a list-models payload ('data' or 'models' array)."""
        if not isinstance(data, dict):
            return []
        entries = first_key(data, "data", "models", default=[])
        ids: list[str] = []
        for entry in entries:
            if isinstance(entry, dict):
                model_id = first_key(entry, "id", "name")
            else:
                model_id = entry
            if isinstance(model_id, str) and model_id:
                ids.append(model_id.removeprefix("models/"))
        if self.MODEL_PREFIXES:
            ids = [m for m in ids if m.startswith(self.MODEL_PREFIXES)]
        return sorted(set(ids))

    async def ping(self) -> None:
        """
        Reachability check that raises the classified error on failure.

        Adapters without a models endpoint defer to health_check(), so an
        override of either method is honoured.
        """
        if self.MODELS_PATH is not None:
            await self._request("GET", self.MODELS_PATH)
        elif not await self.health_check():
            raise ClientError(f"{self.name} reported unhealthy", ErrorCode.HEALTH_CHECK_FAILED, provider=self.id)

    async def health_check(self) -> bool:
        """
        Check if provider is healthy and reachable.

        Returns:
            True if healthy, False otherwise
        """
        if self.MODELS_PATH is None:
            return True
        try:
            await self.ping()
            return True
        except AiError as e:
            logger.warning(f"{self.name} health check failed: {e}", extra={"provider": self.id, "error_code": e.code})
            return False

    # Transport helpers

    def poll_settings(self) -> PollSettings:
        return PollSettings.from_settings(self.config.settings)

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, extra: Mapping[str, str] | None = None, json_body: bool = True) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"} if json_body else {}
        if self.auth is not None:
            headers.update(self.auth.build_headers())
        if self.custom_headers is not None:
            headers.update(self.custom_headers.build_headers())
        if extra:
            headers.update(extra)
        return headers

    async def _acquire(self) -> None:
        if self.rate_limiter is not None:
            await self.rate_limiter.acquire()

    def _check_response(self, response: TransportResponse) -> TransportResponse:
        if not response.ok:
            raise map_http_error(response.status_code, response.body, response.headers, self.id)
        return response

    def _decode(self, response: TransportResponse) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ClientError(
                f"Invalid JSON in {self.id} response: {e}",
                ErrorCode.PARSE_ERROR,
                provider=self.id,
            ) from e

    def _map(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a mapper function, classifying unexpected payload errors."""
        try:
            return func(*args, **kwargs)
        except AiError:
            raise
        except Exception as e:
            raise map_exception(e, self.id) from e

    async def _request(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        """Send one JSON (or body-less) request and check its status."""
        url = self._url(path)
        await self._acquire()
        logger.debug(f"{self.id} {method} {url}", extra={"provider": self.id, "method": method, "url": url})
        try:
            response = await self.transport.send(
                method,
                url,
                self._headers(headers, json_body=body is not None),
                json.dumps(body) if body is not None else None,
            )
        except AiError:
            raise
        except Exception as e:
            raise map_exception(e, self.id) from e
        return self._check_response(response)

    async def _request_json(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return self._decode(await self._request(method, path, body, headers))

    async def _request_multipart(
        self,
        path: str,
        fields: Mapping[str, str],
        files: Mapping[str, MultipartFile],
    ) -> TransportResponse:
        """Send a multipart/form-data POST with the same auth headers."""
        url = self._url(path)
        await self._acquire()
        logger.debug(f"{self.id} POST {url} (multipart)", extra={"provider": self.id, "url": url})
        try:
            response = await self.transport.send_multipart(
                "POST", url, self._headers(json_body=False), fields, files
            )
        except AiError:
            raise
        except Exception as e:
            raise map_exception(e, self.id) from e
        return self._check_response(response)

    async def _stream_chat(
        self,
        path: str,
        body: Any,
        decode: StreamDecoder,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncIterator[ChatStreamEvent]:
        """
        Stream a chat completion as unified events.

        Yields one event per content delta in arrival order, then exactly one
        terminal event, even when the body ends without a terminal marker.
        Errors (HTTP, transport or in-stream) are raised from the iterator
        instead of the terminal event.
        """
        url = self._url(path)
        state = StreamState(metadata={"provider": self.id})
        await self._acquire()
        logger.debug(f"{self.id} POST {url} (stream)", extra={"provider": self.id, "url": url})

        try:
            async with self.transport.stream(
                "POST", url, self._headers({"Accept": "text/event-stream", **(headers or {})}), json.dumps(body)
            ) as response:
                if not response.ok:
                    raw = await response.read()
                    raise map_http_error(response.status_code, raw, response.headers, self.id)

                async for event in iter_sse_events(response.chunks()):
                    if event.is_done_marker:
                        break
                    payload = parse_event_json(event)
                    if payload is None:
                        continue
                    delta = decode(payload, state)
                    if delta:
                        yield ChatStreamEvent(delta=delta)
                    if state.finished:
                        break
        except AiError:
            raise
        except Exception as e:
            raise map_exception(e, self.id) from e

        yield ChatStreamEvent(done=True, metadata=state.metadata)

    def __repr__(self) -> str:
        """String representation of provider."""
        return f"{self.__class__.__name__}(id={self.id}, base_url={self.base_url})"
