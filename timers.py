"""Frame-driven delayed callbacks (countdown ticks, capture flash)."""

from __future__ import annotations

import heapq
import itertools
from typing import Callable, Dict, List, Tuple


class TimerQueue:
    """Cancellable one-shot timers fired from the frame loop.

    Nothing runs in the background: ``run_due`` is called once per frame and
    fires whatever is due at that time, in deadline order.
    """

    def __init__(self) -> None:
        self._heap: List[Tuple[float, int]] = []
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._ids = itertools.count(1)

    @property
    def pending(self) -> int:
        return len(self._callbacks)

    def call_later(self, delay_ms: float, callback: Callable[[], None], now: float) -> int:
        handle = next(self._ids)
        heapq.heappush(self._heap, (now + max(delay_ms, 0.0), handle))
        self._callbacks[handle] = callback
        return handle

    def cancel(self, handle: int) -> bool:
        return self._callbacks.pop(handle, None) is not None

    def cancel_all(self) -> None:
        self._callbacks.clear()
        self._heap = []

    def run_due(self, now: float) -> int:
        """Fire every timer whose deadline is <= now. Returns how many fired."""
        due: List[Tuple[float, int]] = []
        while self._heap and self._heap[0][0] <= now:
            due.append(heapq.heappop(self._heap))

        fired = 0
        for _, handle in due:
            callback = self._callbacks.pop(handle, None)
            if callback is None:
                continue
            callback()
            fired += 1
        return fired
