"""
Unified AI - Async Job Polling

Sequential status polling for long-running provider jobs with capped
exponential backoff between checks.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from ..errors import ClientError, ErrorCode, JobTimeoutError
from ..models import VideoJob
from ..resilience import exponential_backoff

logger = logging.getLogger(__name__)


@dataclass
class PollSettings:
    """
    Polling schedule.

    Attributes:
        initial_delay: Wait before the first status check in seconds
        max_delay: Cap on the wait between checks
        multiplier: Growth factor applied after every check
        max_attempts: Status checks before giving up with JobTimeoutError
    """

    initial_delay: float = 2.0
    max_delay: float = 30.0
    multiplier: float = 1.5
    max_attempts: int = 60

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ClientError("poll max_attempts must be at least 1", ErrorCode.INVALID_MAX_ATTEMPTS)
        if self.initial_delay < 0 or self.max_delay < self.initial_delay:
            raise ClientError("poll delays must satisfy 0 <= initial_delay <= max_delay", ErrorCode.INVALID_DELAY)
        if self.multiplier < 1:
            raise ClientError("poll multiplier must be >= 1", ErrorCode.INVALID_MULTIPLIER)

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> "PollSettings":
        """Read poll_* keys from a provider settings bag."""
        defaults = cls()
        return cls(
            initial_delay=float(settings.get("poll_initial_delay", defaults.initial_delay)),
            max_delay=float(settings.get("poll_max_delay", defaults.max_delay)),
            multiplier=float(settings.get("poll_multiplier", defaults.multiplier)),
            max_attempts=int(settings.get("poll_max_attempts", defaults.max_attempts)),
        )

    def delay(self, attempt: int) -> float:
        """Wait before the given 0-indexed status check."""
        return exponential_backoff(
            attempt,
            base_delay=self.initial_delay,
            exponential_base=self.multiplier,
            max_delay=self.max_delay,
            jitter=False,
        )


async def poll_job(
    fetch_status: Callable[[], Awaitable[VideoJob]],
    job_id: str,
    settings: PollSettings | None = None,
    provider: str | None = None,
) -> VideoJob:
    """
    Poll a job until it reaches a terminal status.

    Args:
        fetch_status: Performs one status check
        job_id: Job identifier (for logs and the timeout error)
        settings: Polling schedule
        provider: Provider id for logs and errors

    Returns:
        The first terminal VideoJob observed (completed or failed)

    Raises:
        JobTimeoutError: If the job is still running after max_attempts checks
    """
    settings = settings or PollSettings()

    for attempt in range(settings.max_attempts):
        delay = settings.delay(attempt)
        await asyncio.sleep(delay)

        job = await fetch_status()
        logger.debug(
            f"Job {job_id} status: {job.status.value} (check {attempt + 1}/{settings.max_attempts})",
            extra={"job_id": job_id, "status": job.status.value, "provider": provider, "progress": job.progress},
        )
        if job.is_terminal:
            return job

    logger.error(
        f"Job {job_id} timed out after {settings.max_attempts} status checks",
        extra={"job_id": job_id, "provider": provider},
    )
    raise JobTimeoutError(job_id, settings.max_attempts, provider)
