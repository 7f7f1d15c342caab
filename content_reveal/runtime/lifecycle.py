"""
Lifecycle Manager - Owns every resource one playback session creates.

Tracked resources:
    - the pending step timer
    - the pending debounce timer
    - the pointer listener on the render target
    - the cursor marker node

finalize(reason) releases all of them exactly once. Each release is
isolated: a failure is logged and counted, and the remaining releases
still run. Calling finalize again is a silent no-op.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable

from content_reveal.config import StreamingConfig
from content_reveal.markup.nodes import Element, Listener, Node
from content_reveal.runtime.clock import Clock, TimerHandle

if TYPE_CHECKING:
    from content_reveal.monitoring.logging import StructuredLogger
    from content_reveal.surface.resources import ResourceRegistry

logger = logging.getLogger(__name__)


class FinalizeReason(str, Enum):
    """Why a session ended."""
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    SUPERSEDED = "superseded"
    DETACHED = "detached"
    HIDDEN = "hidden"
    ERROR = "error"
    TEARDOWN = "teardown"


FinalizeCallback = Callable[[FinalizeReason], None]


class LifecycleManager:
    """Tracks and releases the resources of one playback session.

    Example:
        lifecycle = LifecycleManager(clock, target)
        lifecycle.set_step_timer(clock.call_later(50, step))
        lifecycle.attach_listener("click", on_click)
        ...
        lifecycle.finalize(FinalizeReason.COMPLETED)   # True
        lifecycle.finalize(FinalizeReason.CANCELLED)   # False, no-op
    """

    def __init__(
        self,
        clock: Clock,
        target: Element,
        config: StreamingConfig | None = None,
        registry: ResourceRegistry | None = None,
        structured_logger: StructuredLogger | None = None,
    ):
        self.clock = clock
        self.target = target
        self.config = config or StreamingConfig()
        self._registry = registry
        self._slog = structured_logger

        self._step_timer: TimerHandle | None = None
        self._debounce_timer: TimerHandle | None = None
        self._listener: tuple[str, Listener] | None = None
        self._cursor: Node | None = None
        self._marked_active = False
        self._callbacks: list[FinalizeCallback] = []

        self.finalized = False
        self.reason: FinalizeReason | None = None
        self.cleanup_failures = 0

    # -- tracking ---------------------------------------------------------

    def set_step_timer(self, handle: TimerHandle) -> None:
        self.clear_step_timer()
        self._step_timer = handle
        if self._registry is not None:
            self._registry.track_timer(handle)

    def clear_step_timer(self) -> None:
        self._step_timer = self._clear_timer(self._step_timer)

    def set_debounce_timer(self, handle: TimerHandle) -> None:
        self.clear_debounce_timer()
        self._debounce_timer = handle
        if self._registry is not None:
            self._registry.track_timer(handle)

    def clear_debounce_timer(self) -> None:
        self._debounce_timer = self._clear_timer(self._debounce_timer)

    def _clear_timer(self, handle: TimerHandle | None) -> None:
        if handle is None:
            return None
        self.clock.cancel(handle)
        if self._registry is not None:
            self._registry.untrack_timer(handle)
        return None

    def attach_listener(self, event: str, handler: Listener) -> None:
        self.detach_listener()
        self.target.add_listener(event, handler)
        self._listener = (event, handler)
        if self._registry is not None:
            self._registry.track_listener(self.target, event, handler)

    def detach_listener(self) -> None:
        if self._listener is None:
            return
        event, handler = self._listener
        self._listener = None
        self.target.remove_listener(event, handler)
        if self._registry is not None:
            self._registry.untrack_listener(self.target, event, handler)

    def set_cursor(self, cursor: Node) -> None:
        self._cursor = cursor

    def remove_cursor(self) -> None:
        cursor, self._cursor = self._cursor, None
        if cursor is not None and cursor.parent is not None:
            cursor.remove()

    def mark_active(self) -> None:
        if self.target.has_class(self.config.active_class):
            return
        self.target.add_class(self.config.active_class)
        self._marked_active = True

    def clear_active(self) -> None:
        """Remove the active marker, unless the target had it before."""
        if not self._marked_active:
            return
        self._marked_active = False
        if self.target.has_class(self.config.active_class):
            self.target.remove_class(self.config.active_class)

    def on_finalize(self, callback: FinalizeCallback) -> None:
        """Run ``callback(reason)`` once, when the session is finalized."""
        self._callbacks.append(callback)

    @property
    def step_timer(self) -> TimerHandle | None:
        return self._step_timer

    @property
    def debounce_timer(self) -> TimerHandle | None:
        return self._debounce_timer

    @property
    def has_listener(self) -> bool:
        return self._listener is not None

    @property
    def cursor(self) -> Node | None:
        return self._cursor

    # -- finalize ---------------------------------------------------------

    def finalize(self, reason: FinalizeReason) -> bool:
        """Release every tracked resource.

        Returns:
            True if this call performed the release, False if the
            session had already been finalized.
        """
        if self.finalized:
            return False
        self.finalized = True
        self.reason = reason

        self._release("step timer", self.clear_step_timer)
        self._release("debounce timer", self.clear_debounce_timer)
        self._release("pointer listener", self.detach_listener)
        self._release("cursor marker", self.remove_cursor)
        self._release("active marker", self.clear_active)

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._release("finalize callback", lambda: callback(reason))

        logger.debug("Finalized session on <%s>: %s", self.target.tag, reason.value)
        return True

    def _release(self, resource: str, release: Callable[[], None]) -> None:
        try:
            release()
        except Exception as e:
            self.cleanup_failures += 1
            logger.warning("Failed to release %s: %s", resource, e)
            if self._slog is not None:
                self._slog.cleanup_failure(resource, e)
