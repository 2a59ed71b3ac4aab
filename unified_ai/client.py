"""
Unified AI - Orchestrator

UnifiedAI is the caller-facing entry point. For every call it resolves the
target provider, gates the operation against the provider's capability
descriptor (before any network I/O), then runs the adapter call through the
retry handler. Each attempt gets its own request id and exactly one
request-started plus one request-finished or request-failed telemetry
notification.

Usage:
    >>> config = UnifiedAIConfig(
    ...     default_provider="openai",
    ...     providers={"openai": {"api_key": "sk-..."}},
    ... )
    >>> async with UnifiedAI(config) as ai:
    ...     response = await ai.chat(ChatRequest(messages=[Message(role="user", content="Hello!")]))
"""

import dataclasses
import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from typing import Any, TypeVar

from .config.schemas import LogFormat, UnifiedAIConfig
from .error_mapper import map_exception
from .errors import AiError, ClientError, ErrorCode, JobTimeoutError
from .models import (
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
    Usage,
    VideoAnalysisRequest,
    VideoAnalysisResponse,
    VideoRequest,
    VideoResponse,
)
from .providers.base import BaseProvider
from .providers.factory import ProviderFactory
from .providers.registry import ProviderRegistry
from .orchestrator import ProviderHealthChecker, ProviderHealthResult
from .resilience import RetryHandler, RetryPolicy
from .telemetry import (
    ErrorTelemetry,
    LoggingTelemetryHandler,
    MetricsCollector,
    RequestTelemetry,
    ResponseTelemetry,
    TelemetryDispatcher,
    TelemetryHandler,
    TelemetryStore,
    configure_logging,
    reset_request_id,
    set_request_id,
)
from .transport import Transport

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _tokens_used(result: Any) -> int | None:
    usage = getattr(result, "usage", None)
    return usage.total_tokens if isinstance(usage, Usage) else None


def _was_cached(result: Any) -> bool:
    metadata = getattr(result, "metadata", None)
    return bool(metadata.get("cached")) if isinstance(metadata, dict) else False


def _not_job_timeout(error: Exception) -> bool:
    return not isinstance(error, JobTimeoutError)


class UnifiedAI:
    """
    Provider-agnostic client over every configured provider adapter.

    Args:
        config: Validated configuration
        transport: Shared transport for every adapter (each adapter creates
            its own HttpxTransport when omitted)
        telemetry_handlers: Extra telemetry handlers, called after the built-in ones
        retry_policy: Overrides the policy built from config.retry
        registry: Pre-populated registry (custom adapters)
    """

    def __init__(
        self,
        config: UnifiedAIConfig,
        transport: Transport | None = None,
        telemetry_handlers: Iterable[TelemetryHandler] | None = None,
        retry_policy: RetryPolicy | None = None,
        registry: ProviderRegistry | None = None,
    ) -> None:
        self.config = config
        self.transport = transport
        self.registry = registry if registry is not None else ProviderRegistry()
        self.retry_policy = retry_policy or RetryPolicy.from_settings(config.retry)
        self.retry_handler = RetryHandler(self.retry_policy)
        self.telemetry = TelemetryDispatcher()
        self._extra_handlers = list(telemetry_handlers or [])
        self.metrics: MetricsCollector | None = None
        self.store: TelemetryStore | None = None
        self.health = ProviderHealthChecker()
        self._initialized = False

    # Lifecycle

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _install_telemetry(self) -> None:
        settings = self.config.telemetry
        if settings.log_requests:
            self.telemetry.add(LoggingTelemetryHandler())
        if settings.collect_metrics:
            self.metrics = MetricsCollector()
            self.telemetry.add(self.metrics)
        if settings.store_path:
            self.store = TelemetryStore(settings.store_path)
            self.telemetry.add(self.store)
        for handler in self._extra_handlers:
            self.telemetry.add(handler)

    async def init(self) -> None:
        """
        Create, register and initialize every enabled provider.

        Raises:
            ClientError: ALREADY_INITIALIZED on a second call
            ConfigurationError: If a provider rejects its configuration
        """
        if self._initialized:
            raise ClientError("UnifiedAI is already initialized", ErrorCode.ALREADY_INITIALIZED)

        configure_logging(self.config.log_level.value, self.config.log_format is LogFormat.JSON)

        created: list[BaseProvider] = []
        try:
            for provider_config in self.config.enabled_providers():
                provider = ProviderFactory.create_provider(provider_config, self.transport)
                try:
                    self.registry.register(provider)
                except AiError:
                    await provider.close()
                    raise
                created.append(provider)

            for provider in self.registry.all():
                await provider.init()
        except BaseException:
            await self._discard(created)
            raise

        self._install_telemetry()
        self._initialized = True
        logger.info(
            f"UnifiedAI initialized with {len(self.registry)} provider(s)",
            extra={"providers": self.registry.ids(), "default_provider": self.config.default_provider},
        )

    async def _discard(self, providers: list[BaseProvider]) -> None:
        """Unregister and close adapters created by a failed init(); caller-registered ones stay."""
        for provider in providers:
            try:
                await self.registry.unregister(provider.id)
            except Exception as e:
                logger.error(
                    f"Error closing provider {provider.id} after failed init: {e}",
                    extra={"provider": provider.id, "error": str(e)},
                    exc_info=True,
                )
        logger.warning(f"UnifiedAI init failed; discarded {len(providers)} provider(s)")

    async def register_provider(self, provider: BaseProvider) -> None:
        """Register a custom adapter; it is initialized right away when the client already is."""
        self.registry.register(provider)
        if self._initialized:
            await provider.init()

    async def close(self) -> None:
        """Close every provider and telemetry handler."""
        await self.registry.clear(dispose=True)
        await self.telemetry.close()
        self._initialized = False
        logger.info("UnifiedAI closed")

    async def __aenter__(self) -> "UnifiedAI":
        await self.init()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    # Resolution

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise ClientError("UnifiedAI is not initialized. Call await init() first.", ErrorCode.NOT_INITIALIZED)

    def _resolve(self, provider: str | None) -> BaseProvider:
        """Explicit provider wins, then the configured default; never an arbitrary one."""
        self._require_initialized()
        provider_id = provider or self.config.default_provider
        if not provider_id:
            raise ClientError(
                "No provider specified and no default provider configured",
                ErrorCode.NO_PROVIDER_SPECIFIED,
            )
        return self.registry.get(provider_id)

    def _gate(self, provider: str | None, operation: Operation) -> BaseProvider:
        target = self._resolve(provider)
        target.validate_capability(operation)
        return target

    # Execution

    async def _attempt(self, provider: BaseProvider, operation: Operation, call: Callable[[], Awaitable[T]]) -> T:
        """One adapter invocation with its telemetry and request id."""
        request_id = str(uuid.uuid4())
        token = set_request_id(request_id)
        started = time.perf_counter()
        try:
            await self.telemetry.request_started(RequestTelemetry(request_id, provider.id, operation.value))
            try:
                result = await call()
            except Exception as e:
                error = e if isinstance(e, AiError) else map_exception(e, provider.id)
                if error.request_id is None:
                    error.request_id = request_id
                await self.telemetry.request_failed(ErrorTelemetry(request_id, error, provider.id, operation.value))
                if error is e:
                    raise
                raise error from e

            await self.telemetry.request_finished(
                ResponseTelemetry(
                    request_id,
                    latency_ms=(time.perf_counter() - started) * 1000,
                    tokens_used=_tokens_used(result),
                    cached=_was_cached(result),
                )
            )
            return result
        finally:
            reset_request_id(token)

    async def _execute(
        self,
        operation: Operation,
        provider: str | None,
        method: str,
        request: Any,
        policy: RetryPolicy | None = None,
    ) -> Any:
        target = self._gate(provider, operation)
        call = getattr(target, method)

        async def attempt() -> Any:
            return await self._attempt(target, operation, lambda: call(request))

        attempt.__name__ = f"{target.id}.{method}"
        return await self.retry_handler.execute(attempt, policy=policy)

    # Operations

    async def chat(self, request: ChatRequest, provider: str | None = None) -> ChatResponse:
        return await self._execute(Operation.CHAT, provider, "chat", request)

    async def chat_stream(self, request: ChatRequest, provider: str | None = None) -> AsyncIterator[ChatStreamEvent]:
        """
        Stream a chat completion.

        Not retried: deltas already handed to the caller cannot be replayed.
        The stream ends with exactly one done event or raises exactly one error.
        """
        target = self._gate(provider, Operation.STREAMING)
        request_id = str(uuid.uuid4())
        started = time.perf_counter()
        final: ChatStreamEvent | None = None

        await self.telemetry.request_started(RequestTelemetry(request_id, target.id, Operation.STREAMING.value))
        stream = target.chat_stream(request)
        try:
            while True:
                # Scoped per step so the id never leaks into the consumer between events
                token = set_request_id(request_id)
                try:
                    event = await anext(stream)
                except StopAsyncIteration:
                    break
                finally:
                    reset_request_id(token)
                if event.done:
                    final = event
                yield event
        except GeneratorExit:
            await self._stream_finished(request_id, started, final, {"closed_early": True})
            raise
        except Exception as e:
            error = e if isinstance(e, AiError) else map_exception(e, target.id)
            if error.request_id is None:
                error.request_id = request_id
            await self.telemetry.request_failed(
                ErrorTelemetry(request_id, error, target.id, Operation.STREAMING.value)
            )
            if error is e:
                raise
            raise error from e
        finally:
            await stream.aclose()

        await self._stream_finished(request_id, started, final)

    async def _stream_finished(
        self,
        request_id: str,
        started: float,
        final: ChatStreamEvent | None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        usage = final.metadata.get("usage") if final is not None and final.metadata else None
        await self.telemetry.request_finished(
            ResponseTelemetry(
                request_id,
                latency_ms=(time.perf_counter() - started) * 1000,
                tokens_used=usage.total_tokens if isinstance(usage, Usage) else None,
                metadata=metadata,
            )
        )

    async def embed(self, request: EmbeddingRequest, provider: str | None = None) -> EmbeddingResponse:
        return await self._execute(Operation.EMBEDDING, provider, "embed", request)

    async def generate_image(self, request: ImageRequest, provider: str | None = None) -> ImageResponse:
        return await self._execute(Operation.IMAGE, provider, "generate_image", request)

    async def tts(self, request: TtsRequest, provider: str | None = None) -> AudioResponse:
        return await self._execute(Operation.TTS, provider, "tts", request)

    async def stt(self, request: SttRequest, provider: str | None = None) -> TranscriptionResponse:
        return await self._execute(Operation.STT, provider, "stt", request)

    async def generate_video(self, request: VideoRequest, provider: str | None = None) -> VideoResponse:
        """Generate a video; a poll timeout is not retried (it would submit a second job)."""
        should_retry = self.retry_policy.should_retry
        if should_retry is None:
            predicate = _not_job_timeout
        else:

            def predicate(error: Exception) -> bool:
                return _not_job_timeout(error) and should_retry(error)

        policy = dataclasses.replace(self.retry_policy, should_retry=predicate)
        return await self._execute(Operation.VIDEO, provider, "generate_video", request, policy=policy)

    async def analyze_video(self, request: VideoAnalysisRequest, provider: str | None = None) -> VideoAnalysisResponse:
        return await self._execute(Operation.VIDEO_ANALYSIS, provider, "analyze_video", request)

    # Models and health

    async def refresh_models(self, provider: str | None = None) -> dict[str, list[str]]:
        """
        Refresh model lists for one provider, or for every registered one.

        Authentication failures propagate; other failures leave the cached
        list alone and report the fallback list.
        """
        self._require_initialized()
        targets = [self.registry.get(provider)] if provider else self.registry.all()
        return {target.id: await target.refresh_models() for target in targets}

    async def health_check(self, provider: str | None = None) -> dict[str, bool]:
        self._require_initialized()
        targets = [self.registry.get(provider)] if provider else self.registry.all()
        return {target.id: await target.health_check() for target in targets}

    async def check_health(self, provider: str | None = None) -> dict[str, ProviderHealthResult]:
        """
        Detailed health results (status, error code, latency) per provider.

        Results are cached on self.health for health-aware routing.
        """
        self._require_initialized()
        targets = [self.registry.get(provider)] if provider else self.registry.all()
        return await self.health.check_all(targets)

    def healthy_providers(self, operation: Operation | str | None = None) -> list[str]:
        """Ids whose last health check passed, optionally filtered by operation."""
        candidates = self.providers_for(operation) if operation is not None else self.registry.ids()
        return [pid for pid in candidates if self.health.is_healthy(pid)]

    def providers_for(self, operation: Operation | str) -> list[str]:
        """Ids of registered providers that support an operation."""
        return [p.id for p in self.registry.by_capability(operation)]

    @property
    def available_providers(self) -> list[str]:
        return self.registry.ids()

    def capabilities(self, provider: str | None = None) -> ProviderCapabilities:
        return self._resolve(provider).capabilities

    def __repr__(self) -> str:
        return f"UnifiedAI(providers={sorted(self.registry.ids())}, default={self.config.default_provider})"
