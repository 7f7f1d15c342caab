"""
Streaming Engine - Public entry point for starting playback.

The engine owns a SessionRegistry that maps each render target to its
single active session. Starting a new session on a target supersedes
(cancels) the previous one; sessions on different targets run
independently.

Example:
    engine = StreamingEngine(ManualClock())
    handle = engine.start(parse_fragment("<p>Hello world</p>"), target)
    engine.clock.run_until_idle()
    handle.status   # PlaybackStatus.COMPLETED
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator

from content_reveal.config import StreamingConfig
from content_reveal.markup.nodes import Element, Node
from content_reveal.markup.parser import parse_fragment
from content_reveal.monitoring.logging import StructuredLogger
from content_reveal.monitoring.metrics import StreamingMetrics
from content_reveal.runtime.clock import AsyncioClock, Clock
from content_reveal.runtime.events import EventSequence
from content_reveal.runtime.lifecycle import FinalizeReason
from content_reveal.runtime.linearizer import linearize
from content_reveal.runtime.scheduler import CancelHandle, FinishCallback, PlaybackSession
from content_reveal.runtime.timing import DelayModel

if TYPE_CHECKING:
    from content_reveal.surface.resources import ResourceRegistry

logger = logging.getLogger(__name__)

Content = Node | EventSequence | str


class SessionRegistry:
    """Active sessions keyed by render target identity."""

    def __init__(self) -> None:
        self._sessions: dict[int, PlaybackSession] = {}

    def get(self, target: Element) -> PlaybackSession | None:
        return self._sessions.get(id(target))

    def register(self, target: Element, session: PlaybackSession) -> None:
        self._sessions[id(target)] = session

    def release(self, target: Element, session: PlaybackSession) -> bool:
        """Drop ``session`` if it is still the one registered for ``target``."""
        if self._sessions.get(id(target)) is session:
            del self._sessions[id(target)]
            return True
        return False

    def sessions(self) -> list[PlaybackSession]:
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, target: object) -> bool:
        return id(target) in self._sessions

    def __iter__(self) -> Iterator[PlaybackSession]:
        return iter(self.sessions())


class StreamingEngine:
    """Starts, tracks and cancels playback sessions."""

    def __init__(
        self,
        clock: Clock | None = None,
        config: StreamingConfig | None = None,
        registry: ResourceRegistry | None = None,
        metrics: StreamingMetrics | None = None,
        structured_logger: StructuredLogger | None = None,
        delay_model: DelayModel | None = None,
    ):
        self.clock = clock or AsyncioClock()
        self.config = config or StreamingConfig()
        self.registry = registry
        self.metrics = metrics
        self.structured_logger = structured_logger
        # One RNG per engine so a seeded config is reproducible across sessions.
        self.delay_model = delay_model or DelayModel(self.config)
        self.sessions = SessionRegistry()
        self.started = 0

    @property
    def active_count(self) -> int:
        return len(self.sessions)

    def get(self, target: Element) -> PlaybackSession | None:
        return self.sessions.get(target)

    def start(
        self,
        content: Content,
        target: Element,
        instant: bool = False,
        on_finish: FinishCallback | None = None,
    ) -> CancelHandle:
        """Stream ``content`` into ``target``.

        Args:
            content: A markup tree, an already linearized sequence, or HTML.
            target: Render target; any existing session on it is superseded.
            instant: Apply the whole sequence in the first step.
            on_finish: Called with ``(session, reason)`` once it finalizes.

        Returns:
            CancelHandle for the new session.
        """
        previous = self.sessions.get(target)
        if previous is not None:
            logger.debug("Superseding session %s", previous.session_id)
            previous.cancel(FinalizeReason.SUPERSEDED)

        sequence = self._to_sequence(content)
        session = PlaybackSession(
            sequence,
            target,
            self.clock,
            self.config,
            delay_model=self.delay_model,
            registry=self.registry,
            metrics=self.metrics,
            structured_logger=self.structured_logger,
            instant=instant,
        )
        # Registered before start(): an empty sequence finalizes inside it.
        self.sessions.register(target, session)
        session.lifecycle.on_finalize(lambda reason: self.sessions.release(target, session))
        if on_finish is not None:
            session.on_finish(on_finish)

        self.started += 1
        session.start()
        return CancelHandle(session)

    def cancel(self, target: Element, reason: FinalizeReason = FinalizeReason.CANCELLED) -> bool:
        session = self.sessions.get(target)
        if session is None:
            return False
        return session.cancel(reason)

    def cancel_all(self, reason: FinalizeReason = FinalizeReason.CANCELLED) -> int:
        """Cancel every active session.

        Returns:
            Number of sessions cancelled.
        """
        cancelled = sum(1 for session in self.sessions if session.cancel(reason))
        if cancelled:
            logger.info("Cancelled %d sessions (%s)", cancelled, reason.value)
        return cancelled

    @staticmethod
    def _to_sequence(content: Content) -> EventSequence:
        if isinstance(content, EventSequence):
            return content
        if isinstance(content, str):
            content = parse_fragment(content)
        return linearize(content)


# Global default engine
_engine: StreamingEngine | None = None


def get_engine() -> StreamingEngine:
    """Get the global streaming engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = StreamingEngine()
    return _engine


def configure_engine(
    clock: Clock | None = None,
    config: StreamingConfig | None = None,
    **kwargs,
) -> StreamingEngine:
    """Replace the global streaming engine."""
    global _engine
    if _engine is not None:
        _engine.cancel_all(FinalizeReason.TEARDOWN)
    _engine = StreamingEngine(clock, config, **kwargs)
    return _engine


def start_streaming(
    content: Content,
    target: Element,
    clock: Clock | None = None,
    **kwargs,
) -> CancelHandle:
    """Stream ``content`` into ``target`` on the global engine.

    Passing a ``clock`` different from the global engine's reconfigures
    the global engine around it.
    """
    engine = get_engine()
    if clock is not None and clock is not engine.clock:
        engine = configure_engine(clock, engine.config)
    return engine.start(content, target, **kwargs)
