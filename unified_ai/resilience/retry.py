"""
Unified AI - Retry Logic with Exponential Backoff

Bounded retry loop around one provider-adapter invocation.

- Only TransientError and QuotaError are retried
- QuotaError retry-after hints are honoured (never waits less than the hint)
- Exponential backoff with jitter between attempts
- The last classified error is re-raised unchanged once attempts run out
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

from ..errors import ClientError, ErrorCode, QuotaError, is_retryable_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Configuration for retry behavior.

    Attributes:
        max_attempts: Total attempts including the first call (default: 3)
        initial_delay: Delay before the first retry in seconds (default: 0.1)
        max_delay: Maximum delay in seconds (default: 30.0)
        multiplier: Exponential growth factor (default: 2.0)
        jitter: Add random jitter to prevent thundering herd (default: True)
        jitter_factor: Jitter randomization factor 0-1 (default: 0.1)
        should_retry: Optional extra predicate; an error is retried only if it
            is retryable AND the predicate accepts it
    """

    max_attempts: int = 3
    initial_delay: float = 0.1
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.1
    should_retry: Callable[[Exception], bool] | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_attempts < 1:
            raise ClientError("max_attempts must be at least 1", ErrorCode.INVALID_MAX_ATTEMPTS)
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ClientError("delays must be non-negative", ErrorCode.INVALID_DELAY)
        if self.max_delay < self.initial_delay:
            raise ClientError("max_delay must be >= initial_delay", ErrorCode.INVALID_DELAY)
        if self.multiplier <= 0:
            raise ClientError("multiplier must be positive", ErrorCode.INVALID_MULTIPLIER)
        if not 0 <= self.jitter_factor <= 1:
            raise ClientError("jitter_factor must be between 0 and 1", ErrorCode.INVALID_DELAY)

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryPolicy":
        """Build a policy from a RetrySettings config section."""
        return cls(
            max_attempts=settings.max_attempts,
            initial_delay=settings.initial_delay,
            max_delay=settings.max_delay,
            multiplier=settings.multiplier,
            jitter=settings.jitter,
        )

    def can_retry(self, error: Exception) -> bool:
        if not is_retryable_error(error):
            return False
        if self.should_retry is not None:
            return self.should_retry(error)
        return True

    def get_delay(self, attempt: int) -> float:
        """Backoff delay after the given 0-indexed attempt."""
        return exponential_backoff(
            attempt=attempt,
            base_delay=self.initial_delay,
            exponential_base=self.multiplier,
            max_delay=self.max_delay,
            jitter=self.jitter,
            jitter_factor=self.jitter_factor,
        )


def exponential_backoff(
    attempt: int,
    base_delay: float = 0.1,
    exponential_base: float = 2.0,
    max_delay: float = 30.0,
    jitter: bool = True,
    jitter_factor: float = 0.1,
) -> float:
    """
    Calculate capped exponential backoff delay with optional jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Initial delay in seconds
        exponential_base: Base for exponential calculation
        max_delay: Maximum delay cap
        jitter: Whether to add random jitter
        jitter_factor: Jitter randomization factor (0-1)

    Returns:
        Delay in seconds, never above max_delay

    Example:
        >>> exponential_backoff(0, base_delay=1.0, jitter=False)
        1.0
        >>> exponential_backoff(3, base_delay=1.0, jitter=False)
        8.0
    """
    delay = min(base_delay * (exponential_base**attempt), max_delay)

    if jitter and jitter_factor > 0 and delay > 0:
        delay = min(delay + random.uniform(0, delay * jitter_factor), max_delay)

    return delay


def _hint_seconds(error: Exception) -> float | None:
    """Seconds until a QuotaError's retry-after timestamp, if still in the future."""
    if not isinstance(error, QuotaError) or error.retry_after is None:
        return None
    remaining = (error.retry_after - datetime.now(UTC)).total_seconds()
    return remaining if remaining > 0 else None


class RetryHandler:
    """Runs async callables under a RetryPolicy."""

    def __init__(self, policy: RetryPolicy | None = None) -> None:
        self.policy = policy or RetryPolicy()

    def delay_for(self, attempt: int, error: Exception, policy: RetryPolicy | None = None) -> float:
        """Delay before the next attempt, honouring retry-after hints."""
        backoff = (policy or self.policy).get_delay(attempt)
        hint = _hint_seconds(error)
        if hint is not None:
            return max(hint, backoff)
        return backoff

    async def execute(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        on_retry: Callable[[int, Exception], None] | None = None,
        policy: RetryPolicy | None = None,
        **kwargs: Any,
    ) -> T:
        """
        Execute an async function with retry logic.

        Args:
            func: Async function to execute
            *args: Positional arguments for func
            on_retry: Optional callback called before each retry (attempt, error)
            policy: Per-call policy override
            **kwargs: Keyword arguments for func

        Returns:
            Result of the first successful call

        Raises:
            The last error, unchanged, once attempts are exhausted or the
            error is not retryable
        """
        policy = policy or self.policy
        name = getattr(func, "__name__", repr(func))
        attempt = 0

        while True:
            try:
                result = await func(*args, **kwargs)
                if attempt > 0:
                    logger.info(
                        f"Retry succeeded after {attempt} retries",
                        extra={"attempt": attempt, "function": name},
                    )
                return result

            except Exception as e:
                if not policy.can_retry(e):
                    logger.debug(
                        f"Non-retryable error, not retrying: {e}",
                        extra={"error_type": type(e).__name__, "function": name},
                    )
                    raise

                if attempt + 1 >= policy.max_attempts:
                    logger.error(
                        f"All {policy.max_attempts} attempts exhausted",
                        extra={"function": name, "error": str(e), "error_type": type(e).__name__},
                    )
                    raise

                delay = self.delay_for(attempt, e, policy)

                logger.warning(
                    f"Retry attempt {attempt + 1}/{policy.max_attempts - 1} after {delay:.2f}s",
                    extra={
                        "attempt": attempt + 1,
                        "max_attempts": policy.max_attempts,
                        "delay_seconds": delay,
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "function": name,
                    },
                )

                if on_retry:
                    try:
                        on_retry(attempt + 1, e)
                    except Exception as callback_error:
                        logger.error(f"Retry callback failed: {callback_error}")

                await asyncio.sleep(delay)
                attempt += 1


async def with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    policy: RetryPolicy | None = None,
    on_retry: Callable[[int, Exception], None] | None = None,
    **kwargs: Any,
) -> T:
    """
    Execute an async function with retry logic.

    Example:
        >>> result = await with_retry(
        ...     provider.chat,
        ...     request,
        ...     policy=RetryPolicy(max_attempts=3),
        ... )
    """
    return await RetryHandler(policy).execute(func, *args, on_retry=on_retry, **kwargs)
