# app/services/rate_limiter.py
import asyncio
import time
from typing import Awaitable, Callable

from app.core.logger import logger


class RateLimiter:
    """
    Minimum-interval gate shared by every caller of one upstream provider.

    Each acquire() reserves the next free slot *before* awaiting, so callers
    that arrive together are spaced by `min_interval_s` instead of all
    passing a check against the same stale timestamp.
    """

    def __init__(
        self,
        min_interval_s: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if min_interval_s < 0:
            raise ValueError("min_interval_s must be >= 0")
        self.min_interval_s = min_interval_s
        self._clock = clock
        self._sleep = sleep
        self._next_slot: float = float("-inf")

    async def acquire(self) -> None:
        now = self._clock()
        slot = max(now, self._next_slot)
        self._next_slot = slot + self.min_interval_s

        wait_s = slot - now
        if wait_s > 0:
            logger.debug("Rate gate: waiting {:.0f} ms", wait_s * 1000.0)
            await self._sleep(wait_s)
