"""Serial, cancellable resolution of pending signatures."""
from typing import AsyncIterator, Awaitable, Callable, Generic, Iterable, Optional, Tuple, TypeVar
import asyncio
import logging

from lending_history.config import settings

logger = logging.getLogger(__name__)

R = TypeVar("R")


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and a loop."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class DripFeed(Generic[R]):
    """Async iterator resolving work items one at a time with a fixed pause.

    The token is checked before each item. An item already being resolved
    is allowed to finish; only the following ones are skipped.
    """

    def __init__(
        self,
        items: Iterable[str],
        resolve: Callable[[str], Awaitable[R]],
        delay: Optional[float] = None,
        token: Optional[CancellationToken] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.items = list(items)
        self.resolve = resolve
        self.delay = settings.detail_fetch_delay_seconds if delay is None else delay
        self.token = token or CancellationToken()
        self._sleep = sleep

    async def __aiter__(self) -> AsyncIterator[Tuple[str, Optional[R]]]:
        for index, item in enumerate(self.items):
            if self.token.cancelled:
                logger.info("[DRIP] Cancelled with %d items left", len(self.items) - index)
                return
            if index > 0:
                await self._sleep(self.delay)
                if self.token.cancelled:
                    logger.info("[DRIP] Cancelled with %d items left", len(self.items) - index)
                    return
            try:
                result = await self.resolve(item)
            except Exception as e:
                logger.error("[DRIP] Error resolving %s: %s", item, e)
                result = None
            yield item, result
