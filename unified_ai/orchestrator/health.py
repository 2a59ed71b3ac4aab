"""
Unified AI - Provider Health Checker

Checks providers under a timeout, classifies failures into error codes and
remembers the latest result per provider for health-based routing.
"""

import asyncio
import logging
import time
from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..errors import AiError, AuthError, ClientError, ErrorCode, QuotaError, TransientError
from ..providers import BaseProvider

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_CHECK_TIMEOUT = 5.0


class ProviderHealthStatus(str, Enum):
    """Outcome of the most recent check."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class ProviderHealthResult(BaseModel):
    """Result of one provider health check."""

    model_config = ConfigDict(frozen=True)

    provider_id: str
    status: ProviderHealthStatus
    checked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration_ms: float = Field(default=0.0, ge=0)
    error_message: str | None = None
    error_code: str | None = None

    @property
    def is_healthy(self) -> bool:
        return self.status == ProviderHealthStatus.HEALTHY


class ProviderHealthChecker:
    """
    Runs provider health checks and caches the latest result per provider.

    Failures never raise; they are reported as UNHEALTHY results carrying
    the error code (UNAUTHORIZED, SERVER_ERROR, HEALTH_CHECK_TIMEOUT, ...).
    """

    def __init__(self, timeout: float = DEFAULT_HEALTH_CHECK_TIMEOUT) -> None:
        if timeout <= 0:
            raise ClientError(f"Health check timeout must be positive, got {timeout}", ErrorCode.INVALID_DELAY)
        self.timeout = timeout
        self._results: dict[str, ProviderHealthResult] = {}

    async def check_health(self, provider: BaseProvider) -> ProviderHealthResult:
        started = time.perf_counter()
        error_message: str | None = None
        error_code: str | None = None

        try:
            await asyncio.wait_for(provider.ping(), timeout=self.timeout)
        except TimeoutError:
            error_message, error_code = "Health check timed out", ErrorCode.HEALTH_CHECK_TIMEOUT.value
        except AuthError as e:
            error_message, error_code = f"Authentication failed: {e.message}", e.code
        except (TransientError, QuotaError) as e:
            error_message, error_code = f"Temporary error: {e.message}", e.code
        except AiError as e:
            error_message, error_code = e.message, e.code
        except Exception as e:
            error_message, error_code = str(e) or e.__class__.__name__, ErrorCode.HEALTH_CHECK_ERROR.value

        result = ProviderHealthResult(
            provider_id=provider.id,
            status=ProviderHealthStatus.HEALTHY if error_code is None else ProviderHealthStatus.UNHEALTHY,
            duration_ms=(time.perf_counter() - started) * 1000,
            error_message=error_message,
            error_code=error_code,
        )
        self._results[provider.id] = result

        if result.is_healthy:
            logger.debug(f"{provider.id} healthy ({result.duration_ms:.0f}ms)", extra={"provider": provider.id})
        else:
            logger.warning(
                f"{provider.id} unhealthy: {error_message}",
                extra={"provider": provider.id, "error_code": result.error_code},
            )
        return result

    async def check_all(self, providers: Iterable[BaseProvider]) -> dict[str, ProviderHealthResult]:
        """Check several providers concurrently."""
        targets = list(providers)
        results = await asyncio.gather(*(self.check_health(p) for p in targets))
        return {result.provider_id: result for result in results}

    def is_healthy(self, provider_id: str) -> bool | None:
        """None when the provider has never been checked."""
        result = self._results.get(provider_id)
        return result.is_healthy if result is not None else None

    def get_result(self, provider_id: str) -> ProviderHealthResult | None:
        return self._results.get(provider_id)

    def get_status(self, provider_id: str) -> ProviderHealthStatus:
        result = self._results.get(provider_id)
        return result.status if result is not None else ProviderHealthStatus.UNKNOWN

    def healthy_ids(self) -> list[str]:
        return [pid for pid, result in self._results.items() if result.is_healthy]

    def clear_result(self, provider_id: str) -> bool:
        return self._results.pop(provider_id, None) is not None

    def clear(self) -> None:
        self._results.clear()

    @property
    def checked_ids(self) -> list[str]:
        return list(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __repr__(self) -> str:
        healthy = len(self.healthy_ids())
        return f"ProviderHealthChecker(checked={len(self._results)}, healthy={healthy}, timeout={self.timeout})"
