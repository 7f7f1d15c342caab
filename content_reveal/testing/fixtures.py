"""
Test Fixtures - Common fixtures for testing.

Provides:
    - Sample markup
    - Test tree creation
    - Test engine setup
    - Hypothesis strategies for random markup trees
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from content_reveal.config import StreamingConfig
from content_reveal.markup.nodes import Element, Fragment, Surface, TextNode
from content_reveal.markup.parser import parse_fragment
from content_reveal.monitoring.metrics import StreamingMetrics
from content_reveal.runtime.clock import ManualClock
from content_reveal.runtime.sessions import StreamingEngine
from content_reveal.surface.resources import ResourceRegistry

if TYPE_CHECKING:
    from hypothesis.strategies import SearchStrategy


# Sample formatter output for testing
SAMPLE_MARKUP = {
    "paragraph": "<p>Hello world</p>",
    "heading": "<h2>Title</h2>",
    "inline": "<p>Some <strong>bold</strong> and <em>italic</em> text.</p>",
    "inline_code": "<p>Call <code>linearize(tree)</code> first.</p>",
    "list": "<ul><li>One</li><li>Two <em>three</em></li></ul>",
    "nested_list": "<ol><li>Outer<ul><li>Inner</li></ul></li></ol>",
    "code_block": "<pre><code>def f():\n    return 1\n</code></pre>",
    "table": "<table><tr><th>A</th></tr><tr><td>1</td></tr></table>",
    "line_break": "<p>one<br>two</p>",
    "quote": "<blockquote><p>Quoted <a href=\"#\">link</a></p></blockquote>",
    "mixed": (
        "<h1>Report</h1>"
        "<p>Intro with <strong>emphasis</strong>.</p>"
        "<ul><li>First</li><li>Second</li></ul>"
        "<pre><code>x = 1</code></pre>"
        "<p>Done.</p>"
    ),
}


def create_test_tree(name: str = "mixed") -> Fragment:
    """Parse one of SAMPLE_MARKUP into a tree."""
    return parse_fragment(SAMPLE_MARKUP[name])


def create_test_target(tag: str = "div", connected: bool = True) -> Element:
    """Create an empty render target, optionally attached to a Surface."""
    target = Element(tag, {"class": "message-content"})
    if connected:
        Surface().append_child(target)
    return target


def create_test_engine(
    seed: int | None = 1234,
    with_registry: bool = False,
    with_metrics: bool = False,
    **config: Any,
) -> StreamingEngine:
    """
    Create a StreamingEngine on a ManualClock.

    Args:
        seed: Jitter seed for reproducible delays.
        with_registry: Attach a ResourceRegistry.
        with_metrics: Attach a StreamingMetrics collector.
        **config: StreamingConfig overrides.

    Returns:
        Engine whose ``clock`` is a ManualClock.
    """
    clock = ManualClock()
    return StreamingEngine(
        clock,
        StreamingConfig(seed=seed, **config),
        registry=ResourceRegistry(clock) if with_registry else None,
        metrics=StreamingMetrics() if with_metrics else None,
    )


# =============================================================================
# Hypothesis strategies
# =============================================================================

CONTAINER_TAGS = [
    "p", "div", "blockquote", "section",
    "ul", "ol", "li",
    "strong", "em", "a", "span",
    "code", "td", "tr",
    "h2", "pre", "table",
    "x-note",
]
VOID_TAGS = ["br", "hr", "img"]
ATTRS = [{}, {"class": "note"}, {"id": "n1"}, {"href": "#", "title": "t"}]


def markup_trees(max_leaves: int = 16) -> SearchStrategy[Fragment]:
    """Strategy producing random Fragments of nested elements and text.

    Text is drawn from a small alphabet with plenty of whitespace so
    word/whitespace run splitting is exercised.
    """
    from hypothesis import strategies as st

    text = st.text(alphabet="ab \n\t", max_size=8).map(TextNode)
    voids = st.builds(Element, st.sampled_from(VOID_TAGS), st.sampled_from(ATTRS))

    def containers(children: SearchStrategy) -> SearchStrategy:
        return st.builds(
            lambda tag, attrs, kids: Element(tag, attrs, [k.deep_clone() for k in kids]),
            st.sampled_from(CONTAINER_TAGS),
            st.sampled_from(ATTRS),
            st.lists(children, max_size=4),
        )

    nodes = st.recursive(st.one_of(text, voids), containers, max_leaves=max_leaves)
    return st.lists(nodes, max_size=5).map(
        lambda kids: Fragment([k.deep_clone() for k in kids])
    )
