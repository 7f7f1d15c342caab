"""
Tree Linearizer - Flattens a markup tree into a structural event sequence.

Pure and deterministic: same tree in, same sequence out; no timers, no
mutation of the input.

Per-node rules:
    Text                      → one TEXT_RUN per whitespace-delimited run
    h1-h6, pre, table, voids  → one ATOMIC_BLOCK (deep snapshot, high priority)
    br                        → one ATOMIC_BLOCK (normal priority)
    p, div, blockquote, ...   → ELEMENT_START → children → ELEMENT_END
    ul, ol                    → list start → (item start → children → item end)* → list end
    strong, em, a, span, ...  → inline start → children → inline end
    code (outside pre)        → inline-code start → children → inline-code end
    anything else             → generic start → children → end
"""

from __future__ import annotations

import re

from content_reveal.markup.nodes import VOID_ELEMENTS, Element, Fragment, Node, TextNode
from content_reveal.runtime.events import EventKind, EventSequence, Priority, StructuralEvent


HEADINGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
CODE_BLOCKS = frozenset({"pre"})
TABLES = frozenset({"table"})
BLOCK_CONTAINERS = frozenset({
    "p", "div", "blockquote",
    "section", "article", "header", "footer", "details", "summary",
})
LISTS = frozenset({"ul", "ol"})
LIST_ITEMS = frozenset({"li"})
INLINE_FORMATTING = frozenset({
    "strong", "em", "b", "i", "u", "del", "s", "mark", "sub", "sup", "a", "span",
})
INLINE_CODE = frozenset({"code"})
TABLE_PARTS = frozenset({"thead", "tbody", "tfoot", "tr", "th", "td"})
BLOCK_TABLE_PARTS = frozenset({"thead", "tbody", "tfoot", "tr"})
LINE_BREAK = "br"

_WHITESPACE_SPLIT = re.compile(r"(\s+)")


def split_text_runs(text: str) -> list[str]:
    """Split text into alternating word and whitespace runs.

    Example:
        >>> split_text_runs("Hello  world")
        ['Hello', '  ', 'world']
    """
    return [part for part in _WHITESPACE_SPLIT.split(text) if part]


def linearize(tree: Node) -> EventSequence:
    """Linearize a markup tree into an event sequence.

    A Fragment contributes its children only; any other node is
    linearized as itself.

    Args:
        tree: Root of the tree to reveal.

    Returns:
        Balanced EventSequence; zero-length text runs are filtered out.

    Example:
        >>> seq = linearize(parse_fragment("<p>Hello world</p>"))
        >>> [e.kind.value for e in seq]
        ['element_start', 'text', 'text', 'text', 'element_end']
    """
    events: list[StructuralEvent] = []

    if isinstance(tree, Fragment):
        for child in tree.children:
            _traverse(child, events)
    else:
        _traverse(tree, events)

    return EventSequence(
        event for event in events
        if not (event.kind == EventKind.TEXT_RUN and len(event.payload) == 0)
    )


def _traverse(node: Node, out: list[StructuralEvent]) -> None:
    if isinstance(node, TextNode):
        out.extend(StructuralEvent.text_run(run) for run in split_text_runs(node.text))
        return

    if not isinstance(node, Element):
        return

    tag = node.tag or ""

    if isinstance(node, Fragment):
        for child in node.children:
            _traverse(child, out)

    elif tag in HEADINGS:
        out.append(StructuralEvent.atomic_block(node, is_block=True))

    elif tag in CODE_BLOCKS:
        out.append(StructuralEvent.atomic_block(node, is_block=True, is_code_block=True))

    elif tag in TABLES:
        out.append(StructuralEvent.atomic_block(node, is_block=True, is_table=True))

    elif tag == LINE_BREAK:
        out.append(StructuralEvent.atomic_block(node, priority=Priority.NORMAL))

    elif tag in VOID_ELEMENTS:
        out.append(StructuralEvent.atomic_block(node, is_block=tag == "hr"))

    elif tag in BLOCK_CONTAINERS:
        _wrap(node, out, is_block=True)

    elif tag in LISTS:
        out.append(StructuralEvent.element_start(node, is_block=True))
        for child in node.children:
            if isinstance(child, Element) and child.tag in LIST_ITEMS:
                _wrap(child, out, is_list_item=True)
            else:
                _traverse(child, out)
        out.append(StructuralEvent.element_end(node, is_block=True))

    elif tag in LIST_ITEMS:
        _wrap(node, out, is_list_item=True)

    elif tag in INLINE_FORMATTING:
        _wrap(node, out, is_inline_formatting=True)

    elif tag in INLINE_CODE and node.closest(CODE_BLOCKS) is None:
        _wrap(node, out, is_inline_code=True)

    elif tag in TABLE_PARTS:
        _wrap(node, out, is_block=tag in BLOCK_TABLE_PARTS)

    else:
        # Unrecognized tags fall back to a plain start/end pair
        _wrap(node, out)


def _wrap(node: Element, out: list[StructuralEvent], **flags: bool) -> None:
    out.append(StructuralEvent.element_start(node, **flags))
    for child in node.children:
        _traverse(child, out)
    out.append(StructuralEvent.element_end(node, **flags))
