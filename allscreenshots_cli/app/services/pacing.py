from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

SleepFn = Callable[[float], Awaitable[None]]


class Pacer:
    """Fixed-interval pause shared by the poll and watch loops.

    ``timeout`` is an optional overall deadline measured from ``start()``;
    ``stop_event`` interrupts a pause as soon as it is set.
    """

    def __init__(
        self,
        interval: float,
        *,
        timeout: Optional[float] = None,
        stop_event: Optional[asyncio.Event] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self.interval = interval
        self.timeout = timeout
        self.stop_event = stop_event
        self._sleep = sleep
        self._clock = clock
        self._deadline: Optional[float] = None

    def start(self) -> "Pacer":
        self._deadline = self._clock() + self.timeout if self.timeout else None
        return self

    @property
    def stopped(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()

    def expired(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    def _delay(self) -> float:
        if self._deadline is None:
            return self.interval
        return max(0.0, min(self.interval, self._deadline - self._clock()))

    async def pause(self) -> bool:
        """Sleep one interval, cut short at the deadline. Returns False when a stop was requested."""
        if self.stopped:
            return False
        delay = self._delay()
        if self.stop_event is None:
            await self._sleep(delay)
            return True

        sleeper = asyncio.ensure_future(self._sleep(delay))
        waiter = asyncio.ensure_future(self.stop_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sleeper, waiter, return_exceptions=True)
        return not self.stopped
