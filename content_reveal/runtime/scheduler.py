"""
Playback Scheduler - Drives an event sequence onto a render target.

Each step applies exactly one event and re-arms a timer for the next
one; the session is an explicit state machine advanced by clock
callbacks, so any single-threaded timer facility can drive it.

    start()  → RUNNING, cursor inserted, listener attached, step at t+0
    step()   → apply sequence[i], i += 1, next step after delay / speed
    instant  → apply every remaining event in order, then COMPLETED
    cancel() → CANCELLED now, or at the end of the step in progress

Partial output is never rolled back: whatever was revealed stays.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable
from uuid import uuid4

from content_reveal.config import StreamingConfig
from content_reveal.markup.nodes import Element, TextNode
from content_reveal.runtime.clock import Clock
from content_reveal.runtime.errors import SessionClosedError, StreamingError
from content_reveal.runtime.events import (
    ElementShell,
    ElementSnapshot,
    EventKind,
    EventSequence,
    StructuralEvent,
)
from content_reveal.runtime.interaction import InteractionController
from content_reveal.runtime.lifecycle import FinalizeReason, LifecycleManager
from content_reveal.runtime.state import PlaybackState, PlaybackStatus
from content_reveal.runtime.timing import DelayModel

if TYPE_CHECKING:
    from content_reveal.monitoring.logging import StructuredLogger
    from content_reveal.monitoring.metrics import StreamingMetrics
    from content_reveal.surface.resources import ResourceRegistry

logger = logging.getLogger(__name__)

FinishCallback = Callable[["PlaybackSession", FinalizeReason], None]


class PlaybackSession:
    """One playback of one event sequence onto one render target.

    Example:
        session = PlaybackSession(linearize(tree), target, clock)
        session.start()
        clock.run_until_idle()
        session.status   # PlaybackStatus.COMPLETED
    """

    def __init__(
        self,
        sequence: EventSequence,
        target: Element,
        clock: Clock,
        config: StreamingConfig | None = None,
        delay_model: DelayModel | None = None,
        registry: ResourceRegistry | None = None,
        metrics: StreamingMetrics | None = None,
        structured_logger: StructuredLogger | None = None,
        instant: bool = False,
        session_id: str | None = None,
    ):
        self.session_id = session_id or uuid4().hex[:12]
        self.sequence = sequence
        self.target = target
        self.clock = clock
        self.config = config or StreamingConfig()
        self.delay_model = delay_model or DelayModel(self.config)
        self._metrics = metrics
        self._slog = structured_logger.bind(session_id=self.session_id) if structured_logger else None

        self.state = PlaybackState(root=target, instant_mode=instant)
        self.lifecycle = LifecycleManager(
            clock,
            target,
            self.config,
            registry=registry,
            structured_logger=self._slog,
        )
        self.interaction = InteractionController(
            self.state,
            self.lifecycle,
            clock,
            self.config,
            registry=registry,
            on_speed_change=self._on_speed_change,
        )
        self.lifecycle.on_finalize(self._on_finalized)

        self.applied = 0
        self.steps = 0
        self._in_step = False
        self._pending_reason: FinalizeReason | None = None
        self._was_connected = False
        self._started_at: float | None = None
        self._finish_callbacks: list[FinishCallback] = []

    # -- public API -------------------------------------------------------

    @property
    def status(self) -> PlaybackStatus:
        return self.state.status

    @property
    def done(self) -> bool:
        return self.lifecycle.finalized

    @property
    def end_reason(self) -> FinalizeReason | None:
        return self.state.end_reason

    def on_finish(self, callback: FinishCallback) -> PlaybackSession:
        """Call ``callback(session, reason)`` once the session finalizes."""
        self._finish_callbacks.append(callback)
        return self

    def start(self) -> None:
        """Begin playback.

        Raises:
            SessionClosedError: If the session was already finalized.
        """
        if self.lifecycle.finalized:
            raise SessionClosedError(self.session_id)
        if self.state.status != PlaybackStatus.IDLE:
            return

        self.state.transition(PlaybackStatus.RUNNING)
        self._was_connected = self.target.is_connected
        self._started_at = self.clock.now()

        cursor = self._make_cursor()
        self.target.append_child(cursor)
        self.lifecycle.set_cursor(cursor)
        self.state.cursor = cursor
        self.lifecycle.mark_active()
        self.interaction.attach()

        if self._metrics is not None:
            self._metrics.session_started()
        if self._slog is not None:
            self._slog.session_start(self.session_id, len(self.sequence))

        if len(self.sequence) == 0:
            self._finish(FinalizeReason.COMPLETED)
            return

        self.lifecycle.set_step_timer(self.clock.call_later(0, self.step))

    def cancel(self, reason: FinalizeReason = FinalizeReason.CANCELLED) -> bool:
        """Stop playback, leaving partial output in place.

        Safe to call any number of times; only the first call has an
        effect. Called from inside a step, it takes effect when that
        step ends.

        Returns:
            True if this call cancelled the session.
        """
        if self.lifecycle.finalized or self._pending_reason is not None:
            return False
        if self._in_step:
            self._pending_reason = reason
            return True
        return self._finish(reason)

    def step(self) -> None:
        """Advance playback by one event (or drain it in instant mode)."""
        if self.lifecycle.finalized:
            return

        self._in_step = True
        self.steps += 1
        try:
            self._advance()
        except Exception:
            logger.exception(
                "Session %s failed at event %d", self.session_id, self.state.current_index
            )
            self._finish(FinalizeReason.ERROR)
        finally:
            self._in_step = False

        if self._pending_reason is not None:
            self._finish(self._pending_reason)

    # -- stepping ---------------------------------------------------------

    def _advance(self) -> None:
        state = self.state
        total = len(self.sequence)

        if not state.is_running or state.current_index >= total:
            self._finish(self._pending_reason or FinalizeReason.COMPLETED)
            return

        if self._was_connected and not self.target.is_connected:
            logger.info("Render target detached; cancelling session %s", self.session_id)
            self._finish(FinalizeReason.DETACHED)
            return

        if state.instant_mode:
            # A cancel arriving mid-drain stops at the next event boundary.
            while state.current_index < total and self._pending_reason is None:
                self.apply(self.sequence[state.current_index])
                state.current_index += 1
            self._finish(self._pending_reason or FinalizeReason.COMPLETED)
            return

        event = self.sequence[state.current_index]
        self.apply(event)
        state.current_index += 1

        if self._pending_reason is None:
            delay = self.delay_model.delay_for(event, state.speed_multiplier)
            self.lifecycle.set_step_timer(self.clock.call_later(delay, self.step))

    def apply(self, event: StructuralEvent) -> None:
        """Apply one event to the top scope and move the cursor after it."""
        state = self.state
        scope = state.current_scope

        if event.kind == EventKind.TEXT_RUN:
            scope.append_child(TextNode(event.payload))

        elif event.kind == EventKind.ELEMENT_START:
            element = self._expect(event, ElementShell).build()
            scope.append_child(element)
            state.push(element)

        elif event.kind == EventKind.ELEMENT_END:
            if state.pop() is None:
                logger.warning(
                    "Unmatched </%s> at event %d ignored", event.payload, state.current_index
                )

        elif event.kind == EventKind.ATOMIC_BLOCK:
            scope.append_child(self._expect(event, ElementSnapshot).materialize())

        cursor = self.lifecycle.cursor
        if cursor is not None:
            state.current_scope.append_child(cursor)
        self.applied += 1

    # -- finishing --------------------------------------------------------

    def _finish(self, reason: FinalizeReason) -> bool:
        if self.lifecycle.finalized:
            return False

        status = (
            PlaybackStatus.COMPLETED
            if reason == FinalizeReason.COMPLETED
            else PlaybackStatus.CANCELLED
        )
        if not self.state.status.is_terminal:
            self.state.transition(status)
        self.state.end_reason = reason
        self._pending_reason = None
        return self.lifecycle.finalize(reason)

    def _on_finalized(self, reason: FinalizeReason) -> None:
        duration_ms = 0.0
        if self._started_at is not None:
            duration_ms = self.clock.now() - self._started_at
            if self._metrics is not None:
                self._metrics.session_finished(
                    self.state.status.value, reason.value, duration_ms, self.applied
                )
                self._metrics.cleanup_failed(self.lifecycle.cleanup_failures)
        if self._slog is not None:
            self._slog.session_end(
                self.session_id,
                status=self.state.status.value,
                reason=reason.value,
                applied=self.state.current_index,
                total=len(self.sequence),
                duration_ms=duration_ms,
            )

        callbacks, self._finish_callbacks = self._finish_callbacks, []
        for callback in callbacks:
            callback(self, reason)

    def _on_speed_change(self, multiplier: float, instant: bool) -> None:
        if self._metrics is not None:
            self._metrics.speedup("instant" if instant else "faster")
        if self._slog is not None:
            self._slog.speed_change(self.session_id, multiplier, instant)

    @staticmethod
    def _expect(event: StructuralEvent, payload_type: type) -> Any:
        if not isinstance(event.payload, payload_type):
            raise StreamingError(
                f"{event.kind.value} event carries {type(event.payload).__name__}, "
                f"expected {payload_type.__name__}",
                {"kind": event.kind.value},
            )
        return event.payload

    def _make_cursor(self) -> Element:
        cursor = Element("span", {"class": self.config.cursor_class})
        cursor.append_child(TextNode(self.config.cursor_glyph))
        return cursor


class CancelHandle:
    """Zero-argument cancel operation returned by StreamingEngine.start().

    Example:
        handle = engine.start(tree, target)
        handle()          # cancel; calling again is a no-op
        handle.status     # PlaybackStatus.CANCELLED
    """

    def __init__(self, session: PlaybackSession):
        self.session = session

    def __call__(self) -> bool:
        return self.session.cancel()

    @property
    def status(self) -> PlaybackStatus:
        return self.session.status

    @property
    def done(self) -> bool:
        return self.session.done

    def __repr__(self) -> str:
        return f"CancelHandle(session={self.session.session_id}, status={self.status.value})"
