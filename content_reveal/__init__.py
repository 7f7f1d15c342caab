"""
content-reveal - Incremental, structure-preserving reveal of formatted content.

Architecture:
    Markup tree → linearize → EventSequence → PlaybackSession → render target

Public API (stable):
    StreamingEngine   - Starts sessions; one active session per render target
    start_streaming   - One-liner on the global engine
    CancelHandle      - Returned by start(); call it to cancel
    StreamingConfig   - Delays, speed limits, CSS hooks
    parse_fragment    - Formatter HTML → markup tree
    linearize         - Markup tree → EventSequence

Submodules:
    markup        - Node, Element, TextNode, Fragment, Surface, parser
    runtime       - Linearizer, delay model, clocks, session state machine
    surface       - MessageSurface, ResourceRegistry, formatter protocol
    monitoring    - Health checks, metrics, structured logging
    testing       - TreeAssertions, replay_instant, fixtures

Example:
    from content_reveal import StreamingEngine, parse_fragment
    from content_reveal.runtime import ManualClock

    engine = StreamingEngine(ManualClock())
    handle = engine.start(parse_fragment("<p>Hello world</p>"), target)
    engine.clock.run_until_idle()
    print(handle.status)

    # Viewer taps the target: 2x speed; taps twice quickly: instant
    target.dispatch("click")
"""

__version__ = "1.0.0"

from content_reveal.config import StreamingConfig
from content_reveal.markup import (
    Element,
    Fragment,
    Surface,
    TextNode,
    parse_fragment,
)
from content_reveal.runtime import (
    AsyncioClock,
    CancelHandle,
    EventSequence,
    FinalizeReason,
    ManualClock,
    PlaybackStatus,
    StreamingEngine,
    linearize,
    start_streaming,
)
from content_reveal.surface import MessageSurface, ResourceRegistry

__all__ = [
    # Version
    "__version__",
    # Core
    "StreamingEngine",
    "start_streaming",
    "CancelHandle",
    "StreamingConfig",
    "PlaybackStatus",
    "FinalizeReason",
    # Content
    "parse_fragment",
    "linearize",
    "EventSequence",
    "Element",
    "Fragment",
    "Surface",
    "TextNode",
    # Clocks
    "ManualClock",
    "AsyncioClock",
    # Surface
    "MessageSurface",
    "ResourceRegistry",
]
