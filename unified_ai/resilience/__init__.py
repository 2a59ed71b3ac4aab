"""
Unified AI - Resilience Module

Provides resilience patterns around provider calls:
- Bounded retry with exponential backoff and retry-after hints
- Client-side token bucket rate limiting
"""

from .rate_limiter import DEFAULT_REQUESTS_PER_MINUTE, RateLimiter, create_rate_limiter
from .retry import RetryHandler, RetryPolicy, exponential_backoff, with_retry

__all__ = [
    # Retry logic
    "RetryPolicy",
    "RetryHandler",
    "exponential_backoff",
    "with_retry",
    # Rate limiting
    "RateLimiter",
    "create_rate_limiter",
    "DEFAULT_REQUESTS_PER_MINUTE",
]
