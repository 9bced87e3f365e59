"""Minimum-interval gate per logical query."""
from typing import Callable, Optional
import logging
import time

from lending_history.config import settings

logger = logging.getLogger(__name__)


class RequestThrottle:
    """Drops calls that arrive sooner than ``min_interval`` after the last one.

    This protects against a caller triggering the same query repeatedly,
    independent of whatever limits the remote endpoint enforces.
    """

    def __init__(
        self,
        min_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = settings.throttle_interval_seconds if min_interval is None else min_interval
        self._clock = clock
        self._last_invoked: dict[str, float] = {}

    def try_acquire(self, key: str) -> bool:
        """Record an invocation of ``key`` unless it is too soon."""
        now = self._clock()
        last = self._last_invoked.get(key)
        if last is not None and now < last + self.min_interval:
            logger.debug("[THROTTLE] Dropping %s, %.2fs since last call", key, now - last)
            return False
        self._last_invoked[key] = now
        return True

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._last_invoked.clear()
        else:
            self._last_invoked.pop(key, None)
