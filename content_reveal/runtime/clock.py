"""
Clocks - The timer facility that drives playback.

Playback is an explicit state machine advanced by deferred callbacks.
Any single-threaded callback facility can drive it:

    ManualClock   - Virtual time; advanced explicitly (tests, replays)
    AsyncioClock  - Wraps an asyncio event loop's call_later
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class TimerHandle:
    """A scheduled callback.

    Attributes:
        timer_id: Unique (per clock) identifier.
        due: Virtual or loop time (ms) at which the callback fires.
        cancelled: Set once the timer is cancelled.
        fired: Set once the callback has run.
    """
    timer_id: int
    due: float
    callback: Callable[[], None] = field(repr=False)
    cancelled: bool = False
    fired: bool = False
    native: Any = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


@runtime_checkable
class Clock(Protocol):
    """Protocol for timer facilities.

    Implementations must be single-threaded: callbacks run one at a
    time and never preempt each other.
    """

    def now(self) -> float:
        """Current time in milliseconds."""
        ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule ``callback`` after ``delay_ms`` milliseconds."""
        ...

    def cancel(self, handle: TimerHandle) -> bool:
        """Cancel a pending timer. Returns False if it was not pending."""
        ...


class ManualClock:
    """Deterministic virtual-time clock.

    Nothing runs until the clock is advanced. Timers due at the same
    instant fire in scheduling order. An exception escaping a callback
    is logged and does not stop the timers behind it.

    Example:
        clock = ManualClock()
        clock.call_later(50, lambda: print("tick"))
        clock.advance(49)   # nothing
        clock.advance(1)    # tick
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._ids = itertools.count(1)
        self.fired_count = 0

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        timer_id = next(self._ids)
        handle = TimerHandle(
            timer_id=timer_id,
            due=self._now + max(0.0, float(delay_ms)),
            callback=callback,
        )
        heapq.heappush(self._queue, (handle.due, timer_id, handle))
        return handle

    def cancel(self, handle: TimerHandle) -> bool:
        if not handle.active:
            return False
        handle.cancelled = True
        return True

    @property
    def pending(self) -> int:
        """Number of timers that have neither fired nor been cancelled."""
        return sum(1 for _, _, handle in self._queue if handle.active)

    def next_due(self) -> float | None:
        self._drop_cancelled()
        return self._queue[0][0] if self._queue else None

    def _drop_cancelled(self) -> None:
        while self._queue and not self._queue[0][2].active:
            heapq.heappop(self._queue)

    def _fire_next(self) -> None:
        _, _, handle = heapq.heappop(self._queue)
        self._now = max(self._now, handle.due)
        handle.fired = True
        self.fired_count += 1
        try:
            handle.callback()
        except Exception:
            logger.exception("Timer %d callback failed", handle.timer_id)

    def advance(self, delta_ms: float) -> int:
        """Move time forward, firing every timer that falls due.

        Timers scheduled by callbacks during the advance also fire if
        they fall due before the target time.

        Returns:
            Number of callbacks fired.
        """
        if delta_ms < 0:
            raise ValueError("Cannot move a clock backwards")
        target = self._now + delta_ms
        fired = 0
        while True:
            self._drop_cancelled()
            if not self._queue or self._queue[0][0] > target:
                break
            self._fire_next()
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, max_callbacks: int = 1_000_000) -> int:
        """Fire timers in due order until none remain.

        Raises:
            RuntimeError: If ``max_callbacks`` is exceeded (runaway loop).
        """
        fired = 0
        while True:
            self._drop_cancelled()
            if not self._queue:
                return fired
            if fired >= max_callbacks:
                raise RuntimeError(f"Clock still busy after {max_callbacks} callbacks")
            self._fire_next()
            fired += 1


class AsyncioClock:
    """Clock backed by an asyncio event loop.

    Callbacks run on the loop thread via ``loop.call_later``; an
    exception escaping a callback is logged rather than left to the
    loop's default handler.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._ids = itertools.count(1)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        delay = max(0.0, float(delay_ms))
        handle = TimerHandle(
            timer_id=next(self._ids),
            due=self.now() + delay,
            callback=callback,
        )

        def run() -> None:
            if not handle.active:
                return
            handle.fired = True
            try:
                callback()
            except Exception:
                logger.exception("Timer %d callback failed", handle.timer_id)

        handle.native = self.loop.call_later(delay / 1000.0, run)
        return handle

    def cancel(self, handle: TimerHandle) -> bool:
        if not handle.active:
            return False
        handle.cancelled = True
        if handle.native is not None:
            handle.native.cancel()
        return True
