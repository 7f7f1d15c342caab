"""
Streaming Errors - Domain-specific error types.

Error hierarchy:
    StreamingError (base)
    ├── InvalidTransitionError
    ├── SessionClosedError
    └── ContextStackError

None of these escape a running session: playback failures end the
session and are logged, never raised into the timer facility.
"""

from __future__ import annotations

from typing import Any


class StreamingError(Exception):
    """Base error for all streaming-related errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidTransitionError(StreamingError):
    """
    Raised for invalid playback state transitions.

    Examples:
    - COMPLETED → RUNNING (terminal states are final)
    - IDLE → COMPLETED (a session must run first)
    """

    def __init__(
        self,
        from_state: str,
        to_state: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        msg = message or f"Invalid transition: {from_state} → {to_state}"
        super().__init__(msg, details)
        self.from_state = from_state
        self.to_state = to_state


class SessionClosedError(StreamingError):
    """Raised when a finalized session is asked to start again."""

    def __init__(self, session_id: str, details: dict[str, Any] | None = None):
        super().__init__(f"Session {session_id} is already finalized", details)
        self.session_id = session_id


class ContextStackError(StreamingError):
    """
    Raised when an event sequence does not nest properly.

    Only EventSequence.validate() raises this; playback itself ignores
    an unmatched end rather than popping the root.
    """

    def __init__(
        self,
        index: int,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"[event {index}] {message}", details)
        self.index = index
