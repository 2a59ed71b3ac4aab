"""
Unified AI — Retry Logic Tests

Tests bounded retries, backoff calculation and retry-after handling.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from unified_ai.errors import AuthError, ClientError, QuotaError, TransientError
from unified_ai.resilience import RetryHandler, RetryPolicy, exponential_backoff, with_retry


class TestRetryPolicy:
    """Test policy validation."""

    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.initial_delay == 0.1
        assert policy.multiplier == 2.0

    @pytest.mark.parametrize(
        "kwargs,code",
        [
            ({"max_attempts": 0}, "INVALID_MAX_ATTEMPTS"),
            ({"initial_delay": -1.0}, "INVALID_DELAY"),
            ({"initial_delay": 5.0, "max_delay": 1.0}, "INVALID_DELAY"),
            ({"multiplier": 0}, "INVALID_MULTIPLIER"),
        ],
    )
    def test_invalid(self, kwargs: dict, code: str) -> None:
        with pytest.raises(ClientError) as exc_info:
            RetryPolicy(**kwargs)
        assert exc_info.value.code == code

    def test_should_retry_narrows(self) -> None:
        policy = RetryPolicy(should_retry=lambda e: "again" in str(e))
        assert policy.can_retry(TransientError("again"))
        assert not policy.can_retry(TransientError("stop"))
        assert not policy.can_retry(AuthError("again"))


class TestExponentialBackoff:
    """Test delay calculation."""

    def test_growth(self) -> None:
        delays = [exponential_backoff(i, base_delay=1.0, jitter=False) for i in range(4)]
        assert delays == [1.0, 2.0, 4.0, 8.0]

    def test_cap(self) -> None:
        assert exponential_backoff(10, base_delay=1.0, max_delay=5.0, jitter=False) == 5.0

    def test_jitter_bounds(self) -> None:
        for _ in range(50):
            delay = exponential_backoff(2, base_delay=1.0, jitter=True, jitter_factor=0.1)
            assert 4.0 <= delay <= 4.4


class TestRetryHandler:
    """Test the retry loop."""

    @pytest.fixture
    def handler(self) -> RetryHandler:
        return RetryHandler(RetryPolicy(max_attempts=3, initial_delay=0.01, jitter=False))

    async def test_success_first_try(self, handler: RetryHandler) -> None:
        func = AsyncMock(return_value="ok")
        assert await handler.execute(func, 1, key="v") == "ok"
        func.assert_awaited_once_with(1, key="v")

    async def test_retries_transient_then_succeeds(self, handler: RetryHandler) -> None:
        func = AsyncMock(side_effect=[TransientError("down"), "ok"])
        with patch("unified_ai.resilience.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await handler.execute(func) == "ok"
        assert func.await_count == 2
        sleep.assert_awaited_once()

    async def test_last_error_reraised_unchanged(self, handler: RetryHandler) -> None:
        errors = [TransientError("one"), TransientError("two"), TransientError("three")]
        func = AsyncMock(side_effect=errors)
        with patch("unified_ai.resilience.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(TransientError) as exc_info:
                await handler.execute(func)
        assert exc_info.value is errors[-1]
        assert func.await_count == 3

    async def test_non_retryable_not_retried(self, handler: RetryHandler) -> None:
        error = AuthError("bad key")
        func = AsyncMock(side_effect=error)
        with pytest.raises(AuthError) as exc_info:
            await handler.execute(func)
        assert exc_info.value is error
        assert func.await_count == 1

    async def test_unclassified_exception_not_retried(self, handler: RetryHandler) -> None:
        func = AsyncMock(side_effect=RuntimeError("bug"))
        with pytest.raises(RuntimeError):
            await handler.execute(func)
        assert func.await_count == 1

    async def test_quota_hint_preferred_over_backoff(self, handler: RetryHandler) -> None:
        retry_at = datetime.now(UTC) + timedelta(seconds=20)
        func = AsyncMock(side_effect=[QuotaError("slow", retry_after=retry_at), "ok"])
        with patch("unified_ai.resilience.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await handler.execute(func) == "ok"
        waited = sleep.await_args.args[0]
        assert 18.0 <= waited <= 20.0

    def test_past_hint_falls_back_to_backoff(self, handler: RetryHandler) -> None:
        error = QuotaError("slow", retry_after=datetime.now(UTC) - timedelta(seconds=5))
        assert handler.delay_for(0, error) == pytest.approx(0.01)

    async def test_on_retry_callback(self, handler: RetryHandler) -> None:
        seen: list[int] = []
        func = AsyncMock(side_effect=[TransientError("a"), TransientError("b"), "ok"])
        with patch("unified_ai.resilience.retry.asyncio.sleep", new=AsyncMock()):
            await handler.execute(func, on_retry=lambda attempt, error: seen.append(attempt))
        assert seen == [1, 2]

    async def test_with_retry_helper(self) -> None:
        func = AsyncMock(side_effect=[QuotaError("slow"), 42])
        with patch("unified_ai.resilience.retry.asyncio.sleep", new=AsyncMock()):
            assert await with_retry(func, policy=RetryPolicy(initial_delay=0.0, max_delay=0.0)) == 42
