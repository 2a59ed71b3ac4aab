"""
Provider Registry

Maps provider id -> adapter instance. Populated once at startup; duplicate
ids are rejected at registration time.
"""

import logging
from collections.abc import Iterator

from ..errors import ClientError, ErrorCode
from ..models import Operation
from .base import BaseProvider

logger = logging.getLogger(__name__)

# Capability names accepted by by_capability()
_CAPABILITY_NAMES: dict[str, Operation] = {
    "chat": Operation.CHAT,
    "streaming": Operation.STREAMING,
    "stream": Operation.STREAMING,
    "embed": Operation.EMBEDDING,
    "embedding": Operation.EMBEDDING,
    "embeddings": Operation.EMBEDDING,
    "image": Operation.IMAGE,
    "imagegeneration": Operation.IMAGE,
    "image_generation": Operation.IMAGE,
    "tts": Operation.TTS,
    "stt": Operation.STT,
    "video": Operation.VIDEO,
    "videogeneration": Operation.VIDEO,
    "video_generation": Operation.VIDEO,
    "video_analysis": Operation.VIDEO_ANALYSIS,
    "videoanalysis": Operation.VIDEO_ANALYSIS,
}


class ProviderRegistry:
    """Holds the provider adapters known to one orchestrator."""

    def __init__(self) -> None:
        self._providers: dict[str, BaseProvider] = {}

    def register(self, provider: BaseProvider) -> None:
        """
        Register a provider adapter.

        Raises:
            ClientError: INVALID_PROVIDER_ID for an empty id,
                DUPLICATE_PROVIDER when the id is already taken
        """
        provider_id = (provider.id or "").strip()
        if not provider_id:
            raise ClientError("Provider id must be a non-empty string", ErrorCode.INVALID_PROVIDER_ID)
        if provider_id in self._providers:
            raise ClientError(
                f"Provider '{provider_id}' is already registered",
                ErrorCode.DUPLICATE_PROVIDER,
                provider=provider_id,
            )
        self._providers[provider_id] = provider
        logger.debug(f"Registered provider {provider_id}", extra={"provider": provider_id})

    def get(self, provider_id: str) -> BaseProvider:
        try:
            return self._providers[provider_id]
        except KeyError:
            available = ", ".join(sorted(self._providers)) or "none"
            raise ClientError(
                f"Provider '{provider_id}' not found. Available providers: {available}",
                ErrorCode.PROVIDER_NOT_FOUND,
                provider=provider_id,
            ) from None

    def has(self, provider_id: str) -> bool:
        return provider_id in self._providers

    def ids(self) -> list[str]:
        return list(self._providers)

    def all(self) -> list[BaseProvider]:
        return list(self._providers.values())

    def by_capability(self, capability: Operation | str) -> list[BaseProvider]:
        """Providers whose descriptor declares the capability; unknown names match nothing."""
        if isinstance(capability, Operation):
            operation: Operation | None = capability
        else:
            operation = _CAPABILITY_NAMES.get(capability.lower().strip())
        if operation is None:
            return []
        return [p for p in self._providers.values() if p.capabilities.supports(operation)]

    async def unregister(self, provider_id: str, dispose: bool = True) -> bool:
        """Remove a provider; closes it unless dispose=False. Returns False if absent."""
        provider = self._providers.pop(provider_id, None)
        if provider is None:
            return False
        if dispose:
            await provider.close()
        logger.debug(f"Unregistered provider {provider_id}", extra={"provider": provider_id})
        return True

    async def clear(self, dispose: bool = True) -> None:
        """Remove every provider, closing each one unless dispose=False."""
        providers = list(self._providers.values())
        self._providers.clear()
        if not dispose:
            return

        errors = []
        for provider in providers:
            try:
                await provider.close()
            except Exception as e:
                logger.error(
                    f"Error closing provider {provider.id}: {e}",
                    extra={"provider": provider.id, "error": str(e)},
                    exc_info=True,
                )
                errors.append(provider.id)

        if errors:
            logger.warning(f"Closed all providers with {len(errors)} error(s)")

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers

    def __iter__(self) -> Iterator[BaseProvider]:
        return iter(list(self._providers.values()))

    def __repr__(self) -> str:
        return f"ProviderRegistry({sorted(self._providers)})"
