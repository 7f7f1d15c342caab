"""
Streaming runtime.

Components:
    linearize          - Markup tree → EventSequence
    DelayModel         - Per-event reveal delays
    PlaybackSession    - Step-by-step playback onto one render target
    StreamingEngine    - Starts sessions, one per render target
    ManualClock        - Virtual time for tests and replays
    AsyncioClock       - asyncio-driven timers
"""

from content_reveal.runtime.clock import (
    AsyncioClock,
    Clock,
    ManualClock,
    TimerHandle,
)
from content_reveal.runtime.errors import (
    ContextStackError,
    InvalidTransitionError,
    SessionClosedError,
    StreamingError,
)
from content_reveal.runtime.events import (
    ElementShell,
    ElementSnapshot,
    EventKind,
    EventSequence,
    Priority,
    StructuralEvent,
)
from content_reveal.runtime.interaction import InteractionController
from content_reveal.runtime.lifecycle import FinalizeReason, LifecycleManager
from content_reveal.runtime.linearizer import linearize, split_text_runs
from content_reveal.runtime.scheduler import CancelHandle, PlaybackSession
from content_reveal.runtime.sessions import (
    SessionRegistry,
    StreamingEngine,
    configure_engine,
    get_engine,
    start_streaming,
)
from content_reveal.runtime.state import (
    PlaybackState,
    PlaybackStatus,
    VALID_TRANSITIONS,
    is_valid_transition,
)
from content_reveal.runtime.timing import DelayModel

__all__ = [
    # Clocks
    "Clock",
    "ManualClock",
    "AsyncioClock",
    "TimerHandle",
    # Errors
    "StreamingError",
    "InvalidTransitionError",
    "SessionClosedError",
    "ContextStackError",
    # Events
    "EventKind",
    "Priority",
    "ElementShell",
    "ElementSnapshot",
    "StructuralEvent",
    "EventSequence",
    "linearize",
    "split_text_runs",
    # Playback
    "DelayModel",
    "PlaybackState",
    "PlaybackStatus",
    "VALID_TRANSITIONS",
    "is_valid_transition",
    "LifecycleManager",
    "FinalizeReason",
    "InteractionController",
    "PlaybackSession",
    "CancelHandle",
    "SessionRegistry",
    "StreamingEngine",
    "start_streaming",
    "get_engine",
    "configure_engine",
]
