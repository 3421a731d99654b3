"""Token bucket limiting outbound provider calls."""

import asyncio
import time
from collections.abc import Awaitable, Callable


class TokenBucket:
    """Holds up to ``capacity`` permits, refilled continuously at ``refill_rate`` per second.

    ``acquire`` waits in a sleep loop until a permit is available; it holds
    no lock while sleeping.
    """

    def __init__(
        self,
        capacity: int,
        refill_rate: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if capacity <= 0 or refill_rate <= 0:
            raise ValueError("capacity and refill_rate must be positive")
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._last_refill = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
            self._last_refill = now

    def try_acquire(self) -> bool:
        self._refill()
        if self._tokens >= 1:
            self._tokens -= 1
            return True
        return False

    async def acquire(self) -> None:
        while not self.try_acquire():
            await self._sleep((1 - self._tokens) / self.refill_rate)

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens
