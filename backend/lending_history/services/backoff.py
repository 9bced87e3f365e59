"""Retry with jittered exponential backoff on rate-limit signals."""
from typing import Awaitable, Callable, Optional, TypeVar
import asyncio
import logging
import random
import re

import httpx

from lending_history.config import settings
from lending_history.utils.errors import RateLimitedError, RetriesExceededError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RATE_LIMIT_PATTERN = re.compile(r"\b429\b|too many requests|rate limit", re.IGNORECASE)


def is_rate_limited(error: BaseException) -> bool:
    """Check whether an error means the endpoint is rate limiting us."""
    if isinstance(error, RateLimitedError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code == 429
    return _RATE_LIMIT_PATTERN.search(str(error)) is not None


class BackoffScheduler:
    """Runs async operations, retrying only when rate limited."""

    def __init__(
        self,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        jitter: Callable[[], float] = lambda: random.uniform(0, 1.0),
    ):
        self.max_retries = settings.backoff_max_retries if max_retries is None else max_retries
        self.base_delay = settings.backoff_base_delay_seconds if base_delay is None else base_delay
        self._sleep = sleep
        self._jitter = jitter

    def delay_for(self, attempt: int, base_delay: Optional[float] = None) -> float:
        base = self.base_delay if base_delay is None else base_delay
        return base * (2 ** attempt) + self._jitter()

    async def run(
        self,
        op: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
    ) -> T:
        """
        Await ``op()``, retrying on rate limits.

        Args:
            op: Zero-argument coroutine factory, called once per attempt
            max_retries: Rate-limited attempts allowed before giving up (at least 1)
            base_delay: Seconds for the first backoff step

        Returns:
            Whatever ``op`` returns on its first successful attempt

        Raises:
            RetriesExceededError: after ``max_retries`` rate-limited attempts
        """
        # op always runs at least once
        retries = max(1, self.max_retries if max_retries is None else max_retries)
        last_error: Optional[BaseException] = None

        for attempt in range(retries):
            try:
                return await op()
            except Exception as e:
                if not is_rate_limited(e):
                    raise
                last_error = e
                if attempt == retries - 1:
                    break
                delay = self.delay_for(attempt, base_delay)
                logger.warning(
                    "[BACKOFF] Rate limited (attempt %d/%d), retrying in %.2fs",
                    attempt + 1, retries, delay
                )
                await self._sleep(delay)

        logger.error("[BACKOFF] Giving up after %d rate-limited attempts", retries)
        raise RetriesExceededError(retries, last_error) from last_error
