"""
Message Surface - Conversation view that streams assistant replies.

The surface is the application-side glue around the engine:

    add_message(text, "assistant")  → formatted, parsed, streamed
    add_message(text, "user")       → inserted immediately
    set_visibility(hidden=True)     → every active stream cancelled
    cleanup()                       → streams cancelled, registry torn down

Only the most recent assistant reply streams; adding another reply
cancels the one in progress and leaves its partial output in place.
"""

from __future__ import annotations

import html
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol, runtime_checkable

from content_reveal.markup.nodes import Element, TextNode
from content_reveal.markup.parser import parse_fragment
from content_reveal.runtime.lifecycle import FinalizeReason
from content_reveal.runtime.scheduler import CancelHandle, PlaybackSession
from content_reveal.runtime.sessions import StreamingEngine
from content_reveal.surface.resources import Interval, ResourceRegistry

logger = logging.getLogger(__name__)

ROLES = ("user", "assistant", "system")
SENDER_NAMES = {"user": "You", "assistant": "Assistant", "system": "System"}


@runtime_checkable
class ContentFormatter(Protocol):
    """Turns raw reply text into HTML (e.g. a markdown renderer)."""

    def format(self, text: str) -> str:
        ...


class PlainTextFormatter:
    """Fallback formatter: escaped paragraphs, single newlines as <br>."""

    _PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

    def format(self, text: str) -> str:
        paragraphs = [p.strip() for p in self._PARAGRAPH_BREAK.split(text.strip())]
        return "".join(
            "<p>" + "<br>".join(html.escape(line) for line in p.split("\n")) + "</p>"
            for p in paragraphs
            if p
        )


@dataclass
class Message:
    """A message shown on the surface."""
    text: str
    role: str
    timestamp: float = field(default_factory=time.time)


StreamCompleteCallback = Callable[[Element], None]


class MessageSurface:
    """Conversation container whose assistant replies are streamed.

    Example:
        surface = MessageSurface(Surface(), StreamingEngine(clock, registry=registry))
        content = surface.add_message("**Hi** there", role="assistant")
        ...
        surface.cleanup()
    """

    def __init__(
        self,
        container: Element,
        engine: StreamingEngine,
        formatter: ContentFormatter | None = None,
        on_stream_complete: StreamCompleteCallback | None = None,
        max_history: int = 100,
        periodic_validation: bool = True,
    ):
        self.container = container
        self.engine = engine
        self.formatter = formatter or PlainTextFormatter()
        self.on_stream_complete = on_stream_complete
        self.max_history = max_history

        if engine.registry is None:
            engine.registry = ResourceRegistry(engine.clock)
        self.registry = engine.registry

        self.history: list[Message] = []
        self.current: CancelHandle | None = None
        self.hidden = False
        self._validator: Interval | None = None
        if periodic_validation:
            self._validator = self.registry.start_periodic_validation(
                engine.config.health_check_interval_ms
            )

    def add_message(self, text: str, role: str = "assistant", save: bool = True) -> Element:
        """Append a message; assistant replies are streamed.

        Returns:
            The ``message-content`` element the message renders into.

        Raises:
            ValueError: If ``role`` is unknown.
        """
        if role not in ROLES:
            raise ValueError(f"Unknown message role: {role!r}")

        message = Element("div", {"class": f"message {role}", "role": "article"})
        message.append_child(self._make_header(role))
        content = Element("div", {"class": "message-content"})
        message.append_child(content)
        self.container.append_child(message)

        formatted = self.formatter.format(text)
        if role == "assistant":
            if self.current is not None:
                self.current()
            self.current = self.engine.start(
                parse_fragment(formatted), content, on_finish=self._stream_finished
            )
        else:
            for node in list(parse_fragment(formatted).children):
                content.append_child(node)

        if save:
            self.history.append(Message(text, role))
            if len(self.history) > self.max_history:
                del self.history[: len(self.history) - self.max_history]
        return content

    def _stream_finished(self, session: PlaybackSession, reason: FinalizeReason) -> None:
        if self.current is not None and self.current.session is session:
            self.current = None
        if reason == FinalizeReason.COMPLETED and self.on_stream_complete is not None:
            self.on_stream_complete(session.target)

    def set_visibility(self, hidden: bool) -> int:
        """React to the surface being hidden or shown.

        Hiding cancels every active stream (partial output stays) and
        clears pending registry timers. Streams are not resumed when the
        surface is shown again.

        Returns:
            Number of streams cancelled.
        """
        was_hidden, self.hidden = self.hidden, hidden
        if not hidden:
            if was_hidden:
                logger.info("Surface visible again; cancelled streams are not resumed")
            return 0

        cancelled = self.engine.cancel_all(FinalizeReason.HIDDEN)
        self.current = None
        # Indicator fade timers are about to be cleared; drop the indicators now.
        self.remove_indicators()
        timers = self.registry.clear_timers()
        logger.debug("Surface hidden: %d streams cancelled, %d timers cleared", cancelled, timers)
        return cancelled

    def cleanup(self) -> None:
        """Cancel all streams and release every tracked resource."""
        self.engine.cancel_all(FinalizeReason.TEARDOWN)
        self.current = None
        self.remove_indicators()
        self.registry.teardown()
        self._validator = None
        logger.info("Surface cleanup completed")

    def remove_indicators(self) -> int:
        """Remove every speed indicator still shown in the container.

        Returns:
            Number of indicators removed.
        """
        indicator_class = self.engine.config.indicator_class
        indicators = [
            node for node in self.container.iter_descendants()
            if isinstance(node, Element) and node.has_class(indicator_class)
        ]
        for indicator in indicators:
            indicator.remove()
        return len(indicators)

    @staticmethod
    def _make_header(role: str) -> Element:
        header = Element("div", {"class": "message-header"})
        sender = Element("span", {"class": "message-sender"})
        sender.append_child(TextNode(SENDER_NAMES[role]))
        header.append_child(sender)
        return header
