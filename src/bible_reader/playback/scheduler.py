from __future__ import annotations

import heapq
import itertools
import time
from typing import Callable, List, Tuple


class SerialScheduler:
    """
    Single-threaded run loop for deferred callbacks.

    Narration completions and pacing pauses are queued here instead of being
    invoked inline, so the call stack never grows with the number of verses.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, Callable[[], None]]] = []

    def call_later(self, delay: float, fn: Callable[[], None]) -> None:
        due = self._clock() + max(0.0, float(delay))
        heapq.heappush(self._queue, (due, next(self._seq), fn))

    def call_soon(self, fn: Callable[[], None]) -> None:
        self.call_later(0.0, fn)

    def pending(self) -> int:
        return len(self._queue)

    def cancel_all(self) -> None:
        self._queue.clear()

    def run_once(self) -> bool:
        if not self._queue:
            return False
        due, _, fn = heapq.heappop(self._queue)
        wait = due - self._clock()
        if wait > 0:
            self._sleep(wait)
        fn()
        return True

    def run(self) -> int:
        """Run callbacks until the queue drains; returns how many ran."""
        n = 0
        while self.run_once():
            n += 1
        return n
