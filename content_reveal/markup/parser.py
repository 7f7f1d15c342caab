"""
HTML fragment parsing - turns formatter output into a markup tree.
"""

from __future__ import annotations

import html.parser
import logging

from content_reveal.markup.nodes import VOID_ELEMENTS, Element, Fragment, TextNode

logger = logging.getLogger(__name__)


class _TreeBuilder(html.parser.HTMLParser):
    """Builds a Fragment from a stream of parser callbacks."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root = Fragment()
        self._open: list[Element] = [self.root]

    @property
    def _current(self) -> Element:
        return self._open[-1]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = Element(tag, {name: value or "" for name, value in attrs})
        self._current.append_child(element)
        if element.tag not in VOID_ELEMENTS:
            self._open.append(element)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        # <br/>, <span/> ... never take children
        element = Element(tag, {name: value or "" for name, value in attrs})
        self._current.append_child(element)

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag in VOID_ELEMENTS:
            return
        for depth in range(len(self._open) - 1, 0, -1):
            if self._open[depth].tag == tag:
                del self._open[depth:]
                return
        logger.debug("Ignoring stray end tag </%s>", tag)

    def handle_data(self, data: str) -> None:
        if not data:
            return
        last = self._current.last_child
        if isinstance(last, TextNode):
            last.text += data
        else:
            self._current.append_child(TextNode(data))


def parse_fragment(markup: str) -> Fragment:
    """Parse an HTML fragment into a tree.

    Unclosed elements are closed at end of input; stray end tags are
    ignored; entities are decoded.

    Args:
        markup: HTML produced by a content formatter.

    Returns:
        Fragment holding the top-level nodes in document order.

    Example:
        >>> parse_fragment("<p>Hello <b>world</b></p>").to_html()
        '<p>Hello <b>world</b></p>'
    """
    builder = _TreeBuilder()
    builder.feed(markup)
    builder.close()
    return builder.root
