"""
Resource Registry - App-wide bookkeeping of timers, intervals and listeners.

The streaming engine mirrors its resources here so the surrounding
application can run periodic leak checks and tear everything down in
bulk (e.g. when the surface is hidden). The engine stays correct
without a registry; this is bookkeeping, not ownership.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from content_reveal.markup.nodes import Element, Listener
from content_reveal.monitoring.health import ComponentHealth, HealthStatus
from content_reveal.runtime.clock import Clock, TimerHandle

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ListenerRecord:
    """A listener attached to an element."""
    element: Element
    event: str
    handler: Listener
    was_connected: bool = False

    def detach(self) -> bool:
        return self.element.remove_listener(self.event, self.handler)

    @property
    def is_stale(self) -> bool:
        """Element was live when registered and has since been detached."""
        return self.was_connected and not self.element.is_connected


@dataclass(eq=False)
class Interval:
    """A repeating timer that re-arms itself after every tick."""
    clock: Clock
    period_ms: float
    callback: Callable[[], None]
    handle: TimerHandle | None = None
    stopped: bool = False
    ticks: int = 0

    def start(self) -> Interval:
        self._arm()
        return self

    def _arm(self) -> None:
        if not self.stopped:
            self.handle = self.clock.call_later(self.period_ms, self._tick)

    def _tick(self) -> None:
        self.ticks += 1
        try:
            self.callback()
        finally:
            self._arm()

    def stop(self) -> None:
        self.stopped = True
        if self.handle is not None:
            self.clock.cancel(self.handle)
            self.handle = None


@dataclass
class RegistryCounts:
    timers: int = 0
    intervals: int = 0
    listeners: int = 0

    @property
    def total(self) -> int:
        return self.timers + self.intervals + self.listeners

    def to_dict(self) -> dict[str, int]:
        return {
            "timers": self.timers,
            "intervals": self.intervals,
            "listeners": self.listeners,
        }


class ResourceRegistry:
    """Tracks every timer, interval and listener created by the app.

    Example:
        registry = ResourceRegistry(clock)
        handle = clock.call_later(100, tick)
        registry.track_timer(handle)
        ...
        registry.teardown()   # cancels tick, detaches listeners
    """

    def __init__(self, clock: Clock):
        self.clock = clock
        self._timers: dict[int, TimerHandle] = {}
        self._intervals: list[Interval] = []
        self._listeners: list[ListenerRecord] = []
        self._validator: Interval | None = None
        self.release_failures = 0
        self.validation_runs = 0

    # -- timers -----------------------------------------------------------

    def track_timer(self, handle: TimerHandle) -> TimerHandle:
        self._timers[id(handle)] = handle
        return handle

    def untrack_timer(self, handle: TimerHandle) -> None:
        self._timers.pop(id(handle), None)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule a tracked one-shot timer that untracks itself on fire."""
        holder: dict[str, TimerHandle] = {}

        def run() -> None:
            self.untrack_timer(holder["handle"])
            callback()

        holder["handle"] = self.track_timer(self.clock.call_later(delay_ms, run))
        return holder["handle"]

    def clear_timers(self) -> int:
        """Cancel every tracked one-shot timer.

        Returns:
            Number of pending timers cancelled.
        """
        cleared = 0
        for handle in list(self._timers.values()):
            if self.clock.cancel(handle):
                cleared += 1
        self._timers.clear()
        return cleared

    # -- intervals --------------------------------------------------------

    def set_interval(self, period_ms: float, callback: Callable[[], None]) -> Interval:
        interval = Interval(self.clock, period_ms, callback).start()
        self._intervals.append(interval)
        return interval

    def clear_interval(self, interval: Interval) -> None:
        interval.stop()
        if interval in self._intervals:
            self._intervals.remove(interval)

    # -- listeners --------------------------------------------------------

    def track_listener(self, element: Element, event: str, handler: Listener) -> ListenerRecord:
        record = ListenerRecord(element, event, handler, was_connected=element.is_connected)
        self._listeners.append(record)
        return record

    def untrack_listener(self, element: Element, event: str, handler: Listener) -> None:
        self._listeners = [
            r for r in self._listeners
            if not (r.element is element and r.event == event and r.handler == handler)
        ]

    # -- maintenance ------------------------------------------------------

    def counts(self) -> RegistryCounts:
        return RegistryCounts(
            timers=len(self._timers),
            intervals=len(self._intervals),
            listeners=len(self._listeners),
        )

    def cleanup_stale(self) -> int:
        """Forget finished timers and detach listeners on detached elements.

        Returns:
            Number of entries removed.
        """
        removed = 0
        for key, handle in list(self._timers.items()):
            if not handle.active:
                del self._timers[key]
                removed += 1

        kept: list[ListenerRecord] = []
        for record in self._listeners:
            if not record.is_stale:
                kept.append(record)
                continue
            try:
                record.detach()
            except Exception as e:
                self.release_failures += 1
                logger.warning("Failed to detach stale %r listener: %s", record.event, e)
            removed += 1
        self._listeners = kept

        if removed:
            logger.debug("Removed %d stale resources", removed)
        return removed

    def teardown(self) -> RegistryCounts:
        """Release every tracked resource, isolating per-resource failures.

        Returns:
            Counts of what was released.
        """
        released = self.counts()

        for handle in list(self._timers.values()):
            try:
                self.clock.cancel(handle)
            except Exception as e:
                self.release_failures += 1
                logger.warning("Failed to clear timer %s: %s", handle.timer_id, e)
        self._timers.clear()

        for interval in list(self._intervals):
            try:
                interval.stop()
            except Exception as e:
                self.release_failures += 1
                logger.warning("Failed to clear interval: %s", e)
        self._intervals.clear()

        for record in list(self._listeners):
            try:
                record.detach()
            except Exception as e:
                self.release_failures += 1
                logger.warning("Failed to detach %r listener: %s", record.event, e)
        self._listeners.clear()

        if self._validator is not None:
            self._validator.stop()
            self._validator = None

        logger.info("Resource registry torn down (%s)", released.to_dict())
        return released

    # -- validation -------------------------------------------------------

    def validate(self) -> dict[str, Any]:
        """Periodic health pass: drop stale entries and report counts."""
        self.validation_runs += 1
        stale = self.cleanup_stale()
        return {"stale_removed": stale, **self.counts().to_dict()}

    def start_periodic_validation(self, period_ms: float = 30000.0) -> Interval:
        """Run ``validate()`` every ``period_ms`` until teardown."""
        if self._validator is not None:
            return self._validator
        self._validator = Interval(self.clock, period_ms, self.validate).start()
        return self._validator

    def health(self) -> ComponentHealth:
        """Health component for HealthCheck.register_checker()."""
        stale = sum(1 for record in self._listeners if record.is_stale)
        stale += sum(1 for handle in self._timers.values() if not handle.active)
        status = HealthStatus.DEGRADED if stale else HealthStatus.HEALTHY
        return ComponentHealth(
            name="resources",
            status=status,
            message=f"{stale} stale resources" if stale else "",
            metadata={**self.counts().to_dict(), "release_failures": self.release_failures},
        )
