"""
Per-host request spacing shared by source adapters.
"""

from collections import defaultdict
from typing import Awaitable, Callable, Optional
import asyncio
import time


class HostThrottle:
    """Enforces a minimum delay between requests to the same host."""

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.min_interval = min_interval
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._next_allowed: dict[str, float] = defaultdict(lambda: float("-inf"))

    async def wait(self, host: str) -> float:
        """
        Reserve the next request slot for ``host`` and sleep until it opens.

        Slots are reserved before sleeping, so concurrent callers queue up
        one interval apart instead of all waking at once.

        Returns:
            Seconds slept
        """
        now = self._clock()
        slot = max(now, self._next_allowed[host])
        self._next_allowed[host] = slot + self.min_interval

        delay = slot - now
        if delay > 0:
            await self._sleep(delay)
        return delay if delay > 0 else 0.0
