"""
Playback State - The mutable state of one playback session.

Lifecycle:
    IDLE → RUNNING → {COMPLETED, CANCELLED}

Both end states are terminal; a finished session is never restarted.
Replaying content means starting a new session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from content_reveal.markup.nodes import Element, Node
from content_reveal.runtime.errors import InvalidTransitionError
from content_reveal.runtime.lifecycle import FinalizeReason


class PlaybackStatus(Enum):
    """Playback session lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (PlaybackStatus.COMPLETED, PlaybackStatus.CANCELLED)


# Valid state transitions (from -> to)
VALID_TRANSITIONS: dict[PlaybackStatus, set[PlaybackStatus]] = {
    PlaybackStatus.IDLE: {PlaybackStatus.RUNNING, PlaybackStatus.CANCELLED},
    PlaybackStatus.RUNNING: {PlaybackStatus.COMPLETED, PlaybackStatus.CANCELLED},
    PlaybackStatus.COMPLETED: set(),
    PlaybackStatus.CANCELLED: set(),
}


def is_valid_transition(from_state: PlaybackStatus, to_state: PlaybackStatus) -> bool:
    """Check if a state transition is valid."""
    return to_state in VALID_TRANSITIONS.get(from_state, set())


@dataclass
class PlaybackState:
    """
    State of one playback session.

    Invariants:
        - len(context_stack) == 1 + unmatched ELEMENT_START count
        - context_stack[0] is always the render target
        - 1 <= speed_multiplier <= config.max_speed_multiplier
    """
    root: Element
    current_index: int = 0
    status: PlaybackStatus = PlaybackStatus.IDLE
    speed_multiplier: float = 1.0
    instant_mode: bool = False
    context_stack: list[Element] = field(default_factory=list)
    end_reason: FinalizeReason | None = None
    cursor: Node | None = None

    def __post_init__(self) -> None:
        if not self.context_stack:
            self.context_stack = [self.root]

    @property
    def depth(self) -> int:
        return len(self.context_stack)

    @property
    def current_scope(self) -> Element:
        return self.context_stack[-1]

    @property
    def cursor_position(self) -> tuple[Element, int]:
        """(scope, child index) where the next node will be written.

        The cursor marker sits at the end of the scope and is not counted.
        """
        scope = self.current_scope
        index = len(scope.children)
        if self.cursor is not None and self.cursor.parent is scope:
            index -= 1
        return scope, index

    @property
    def is_running(self) -> bool:
        return self.status == PlaybackStatus.RUNNING

    def transition(self, to_state: PlaybackStatus) -> None:
        """Move to ``to_state``.

        Raises:
            InvalidTransitionError: If the move is not allowed.
        """
        if not is_valid_transition(self.status, to_state):
            raise InvalidTransitionError(self.status.value, to_state.value)
        self.status = to_state

    def push(self, scope: Element) -> None:
        self.context_stack.append(scope)

    def pop(self) -> Element | None:
        """Close the innermost scope; the root is never popped."""
        if len(self.context_stack) <= 1:
            return None
        return self.context_stack.pop()
