"""
Cooperative timer scheduler.

Streamlit reruns the script instead of running an event loop, so timers are
kept as deadlines and fired by whoever calls ``run_due`` (the app polls it
from an auto-refreshing fragment). The clock is injectable for tests.
"""

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(order=True)
class _Timer:
    deadline_ms: float
    handle: int
    callback: Callable[[], None] = field(compare=False)


class Scheduler:
    """Deadline-based schedule/cancel primitive."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._timers: Dict[int, _Timer] = {}
        self._handles = itertools.count(1)

    def now_ms(self) -> float:
        return self._clock() * 1000.0

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> int:
        """Register ``callback`` to run ``delay_ms`` from now and return its handle."""
        handle = next(self._handles)
        self._timers[handle] = _Timer(self.now_ms() + max(0.0, delay_ms), handle, callback)
        return handle

    def cancel(self, handle: Optional[int]) -> bool:
        if handle is None:
            return False
        return self._timers.pop(handle, None) is not None

    def pending(self) -> int:
        return len(self._timers)

    def next_deadline_ms(self) -> Optional[float]:
        if not self._timers:
            return None
        return min(timer.deadline_ms for timer in self._timers.values())

    def run_due(self) -> int:
        """Fire every timer whose deadline has passed, earliest first."""
        now = self.now_ms()
        due = sorted(timer for timer in self._timers.values() if timer.deadline_ms <= now)
        for timer in due:
            # A callback may cancel a later timer
            if self._timers.pop(timer.handle, None) is None:
                continue
            timer.callback()
        if due:
            logger.debug(f"Scheduler fired {len(due)} timer(s)")
        return len(due)
