"""
Markup module - tree model shared by input content and render targets.
"""

from content_reveal.markup.nodes import (
    VOID_ELEMENTS,
    Node,
    TextNode,
    Element,
    Fragment,
    Surface,
    UIEvent,
    normalized,
    structurally_equal,
    has_class,
)
from content_reveal.markup.parser import parse_fragment

__all__ = [
    "VOID_ELEMENTS",
    "Node",
    "TextNode",
    "Element",
    "Fragment",
    "Surface",
    "UIEvent",
    "normalized",
    "structurally_equal",
    "has_class",
    "parse_fragment",
]
