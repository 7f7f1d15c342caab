"""
Surface module - application glue around the streaming engine.

Components:
    MessageSurface      - Conversation view; streams assistant replies
    ResourceRegistry    - App-wide timers, intervals and listeners
    ContentFormatter    - Protocol for the external text → HTML formatter
"""

from content_reveal.surface.resources import (
    Interval,
    ListenerRecord,
    RegistryCounts,
    ResourceRegistry,
)
from content_reveal.surface.surface import (
    ContentFormatter,
    Message,
    MessageSurface,
    PlainTextFormatter,
)

__all__ = [
    "Interval",
    "ListenerRecord",
    "RegistryCounts",
    "ResourceRegistry",
    "ContentFormatter",
    "Message",
    "MessageSurface",
    "PlainTextFormatter",
]
