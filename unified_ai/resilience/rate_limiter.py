"""
Unified AI - Client-side Rate Limiting

Token bucket limiter acquired by adapters before each transport call.
"""

import asyncio
import logging
import time
from typing import Any

from ..errors import ClientError, ErrorCode

logger = logging.getLogger(__name__)

# Requests per minute applied when a provider has no explicit limit configured
DEFAULT_REQUESTS_PER_MINUTE: dict[str, int] = {
    "openai": 60,
    "anthropic": 50,
    "google": 60,
    "cohere": 100,
    "xai": 60,
}


class RateLimiter:
    """
    Token bucket rate limiter.

    Holds up to max_requests tokens, refilled continuously over window
    seconds. acquire() waits (cancellably) until a token is available.
    """

    def __init__(self, max_requests: int, window: float) -> None:
        if max_requests <= 0:
            raise ClientError(
                f"max_requests must be greater than 0, got {max_requests}",
                ErrorCode.INVALID_RATE_LIMIT,
            )
        if window <= 0:
            raise ClientError(f"window must be greater than 0, got {window}", ErrorCode.INVALID_RATE_LIMIT)

        self.max_requests = max_requests
        self.window = window
        self._tokens = float(max_requests)
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    @property
    def refill_rate(self) -> float:
        """Tokens added per second."""
        return self.max_requests / self.window

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        if elapsed <= 0:
            return
        self._tokens = min(self._tokens + elapsed * self.refill_rate, float(self.max_requests))
        self._last_refill = now

    async def acquire(self) -> None:
        """
        Take one token, waiting for the bucket to refill if necessary.

        The slot is reserved under the lock (the balance may go negative);
        the wait happens outside it.
        """
        async with self._lock:
            self._refill()
            self._tokens -= 1.0
            wait = -self._tokens / self.refill_rate if self._tokens < 0 else 0.0

        if wait > 0:
            logger.debug(f"Rate limit reached, waiting {wait:.3f}s", extra={"wait_seconds": wait})
            await asyncio.sleep(wait)

    @property
    def available_tokens(self) -> float:
        """Tokens free right now (zero while callers hold reservations)."""
        self._refill()
        return max(self._tokens, 0.0)

    def reset(self) -> None:
        self._tokens = float(self.max_requests)
        self._last_refill = time.monotonic()

    def __repr__(self) -> str:
        return (
            f"RateLimiter(max_requests={self.max_requests}, window={self.window}, "
            f"available_tokens={self.available_tokens:.2f})"
        )


def create_rate_limiter(provider_type: str, settings: dict[str, Any]) -> RateLimiter | None:
    """
    Build the limiter for a provider from its settings bag.

    - settings["rate_limit"] is False -> no limiting
    - rate_limit_max_requests + rate_limit_window (seconds) -> custom limiter
    - otherwise the provider default from DEFAULT_REQUESTS_PER_MINUTE, if any
    """
    if settings.get("rate_limit") is False:
        return None

    max_requests = settings.get("rate_limit_max_requests")
    window = settings.get("rate_limit_window")
    if max_requests is not None and window is not None:
        return RateLimiter(max_requests=int(max_requests), window=float(window))

    rpm = DEFAULT_REQUESTS_PER_MINUTE.get(provider_type.lower())
    if rpm is None:
        return None
    return RateLimiter(max_requests=rpm, window=60.0)
