"""
Markup tree model - the input tree and the render target share one node type.

Key abstractions:
    - Node: Base for every tree node (parent link, detach)
    - TextNode: Text leaf
    - Element: Tagged node with attributes, ordered children and listeners
    - Fragment: Tagless container returned by the parser
    - Surface: Connected root; nodes below it are "live"

Two clone operations are kept apart on purpose:
    - Element.shell_clone(): tag and attributes only, no children
    - Node.deep_clone(): the full subtree

Neither clone copies event listeners.
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator


VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
})


@dataclass
class UIEvent:
    """An event dispatched to element listeners."""
    type: str
    target: "Element"
    detail: dict[str, Any] = field(default_factory=dict)


Listener = Callable[[UIEvent], None]


class Node:
    """Base class for tree nodes."""

    def __init__(self) -> None:
        self.parent: Element | None = None

    @property
    def root(self) -> Node:
        node: Node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def is_connected(self) -> bool:
        """Whether the node hangs below a Surface."""
        return isinstance(self.root, Surface)

    def remove(self) -> bool:
        """Detach from the parent.

        Returns:
            True if the node had a parent, False otherwise.
        """
        if self.parent is None:
            return False
        self.parent.remove_child(self)
        return True

    def deep_clone(self) -> Node:
        raise NotImplementedError

    @property
    def text_content(self) -> str:
        raise NotImplementedError

    def to_html(self) -> str:
        raise NotImplementedError


class TextNode(Node):
    """Text leaf."""

    def __init__(self, text: str = "") -> None:
        super().__init__()
        self.text = text

    def deep_clone(self) -> TextNode:
        return TextNode(self.text)

    @property
    def text_content(self) -> str:
        return self.text

    def to_html(self) -> str:
        return html.escape(self.text, quote=False)

    def __repr__(self) -> str:
        return f"TextNode({self.text!r})"


class Element(Node):
    """Tagged node with attributes and ordered children.

    Example:
        p = Element("p", {"class": "lead"})
        p.append_child(TextNode("Hello"))
        p.to_html()  # '<p class="lead">Hello</p>'
    """

    def __init__(
        self,
        tag: str | None,
        attrs: dict[str, str] | None = None,
        children: Iterable[Node] | None = None,
    ) -> None:
        super().__init__()
        self.tag = tag.lower() if tag else tag
        self.attrs: dict[str, str] = dict(attrs or {})
        self.children: list[Node] = []
        self._listeners: dict[str, list[Listener]] = {}
        for child in children or ():
            self.append_child(child)

    # -- children ---------------------------------------------------------

    def append_child(self, node: Node) -> Node:
        """Append a node, moving it from its previous parent if needed."""
        if node is self or (isinstance(node, Element) and node.contains(self)):
            raise ValueError("Cannot insert a node into its own subtree")
        if node.parent is not None:
            node.parent.remove_child(node)
        node.parent = self
        self.children.append(node)
        return node

    def insert_child(self, index: int, node: Node) -> Node:
        """Insert a node at ``index`` among the children."""
        if node is self or (isinstance(node, Element) and node.contains(self)):
            raise ValueError("Cannot insert a node into its own subtree")
        if node.parent is not None:
            node.parent.remove_child(node)
        node.parent = self
        self.children.insert(index, node)
        return node

    def remove_child(self, node: Node) -> Node:
        """Remove a direct child.

        Raises:
            ValueError: If ``node`` is not a child of this element.
        """
        for i, child in enumerate(self.children):
            if child is node:
                del self.children[i]
                node.parent = None
                return node
        raise ValueError(f"{node!r} is not a child of <{self.tag}>")

    def index_of(self, node: Node) -> int:
        for i, child in enumerate(self.children):
            if child is node:
                return i
        return -1

    @property
    def last_child(self) -> Node | None:
        return self.children[-1] if self.children else None

    def contains(self, node: Node) -> bool:
        """Whether ``node`` is this element or one of its descendants."""
        current: Node | None = node
        while current is not None:
            if current is self:
                return True
            current = current.parent
        return False

    def iter_descendants(self) -> Iterator[Node]:
        """Depth-first, document-order walk (excluding self)."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, Element):
                stack.extend(reversed(node.children))

    def closest(self, tags: str | Iterable[str]) -> Element | None:
        """Nearest ancestor-or-self whose tag is in ``tags``."""
        wanted = {tags} if isinstance(tags, str) else set(tags)
        node: Element | None = self
        while node is not None:
            if node.tag in wanted:
                return node
            node = node.parent
        return None

    @property
    def text_content(self) -> str:
        return "".join(
            node.text for node in self.iter_descendants()
            if isinstance(node, TextNode)
        )

    # -- classes ----------------------------------------------------------

    @property
    def class_list(self) -> list[str]:
        return self.attrs.get("class", "").split()

    def has_class(self, name: str) -> bool:
        return name in self.class_list

    def add_class(self, *names: str) -> None:
        classes = self.class_list
        for name in names:
            if name not in classes:
                classes.append(name)
        self.attrs["class"] = " ".join(classes)

    def remove_class(self, *names: str) -> None:
        classes = [c for c in self.class_list if c not in names]
        if classes:
            self.attrs["class"] = " ".join(classes)
        else:
            self.attrs.pop("class", None)

    # -- listeners --------------------------------------------------------

    def add_listener(self, event: str, handler: Listener) -> None:
        handlers = self._listeners.setdefault(event, [])
        if handler not in handlers:
            handlers.append(handler)

    def remove_listener(self, event: str, handler: Listener) -> bool:
        """Detach a handler. Removing an unknown handler is a no-op."""
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self._listeners[event]
            return True
        return False

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, []))
        return sum(len(h) for h in self._listeners.values())

    def dispatch(self, event: str, **detail: Any) -> int:
        """Call every handler registered for ``event``.

        Returns:
            Number of handlers invoked.
        """
        handlers = list(self._listeners.get(event, []))
        ui_event = UIEvent(type=event, target=self, detail=detail)
        for handler in handlers:
            handler(ui_event)
        return len(handlers)

    # -- cloning ----------------------------------------------------------

    def shell_clone(self) -> Element:
        """Copy tag and attributes, without children or listeners."""
        return Element(self.tag, self.attrs)

    def deep_clone(self) -> Element:
        clone = self.shell_clone()
        for child in self.children:
            clone.append_child(child.deep_clone())
        return clone

    # -- serialization ----------------------------------------------------

    def _open_tag(self) -> str:
        parts = [self.tag or ""]
        for name, value in self.attrs.items():
            if value == "":
                parts.append(name)
            else:
                parts.append(f'{name}="{html.escape(value, quote=True)}"')
        return "<" + " ".join(parts) + ">"

    def to_html(self) -> str:
        inner = "".join(child.to_html() for child in self.children)
        if self.tag is None:
            return inner
        if self.tag in VOID_ELEMENTS:
            return self._open_tag()
        return f"{self._open_tag()}{inner}</{self.tag}>"

    def __repr__(self) -> str:
        return f"Element({self.tag!r}, children={len(self.children)})"


class Fragment(Element):
    """Tagless container holding parsed top-level nodes."""

    def __init__(self, children: Iterable[Node] | None = None) -> None:
        super().__init__(None, None, children)

    def shell_clone(self) -> Fragment:
        return Fragment()

    def __repr__(self) -> str:
        return f"Fragment(children={len(self.children)})"


class Surface(Element):
    """A connected root container (the live page a target lives on)."""

    def __init__(self, tag: str = "body", attrs: dict[str, str] | None = None) -> None:
        super().__init__(tag, attrs)


# =============================================================================
# Structural comparison
# =============================================================================

def normalized(node: Node, ignore: Callable[[Node], bool] | None = None) -> Node:
    """Deep copy with ignored nodes dropped and adjacent text merged."""
    if isinstance(node, TextNode):
        return TextNode(node.text)

    assert isinstance(node, Element)
    copy = node.shell_clone()
    pending_text: list[str] = []

    def flush() -> None:
        text = "".join(pending_text)
        pending_text.clear()
        if text:
            copy.append_child(TextNode(text))

    for child in node.children:
        if ignore is not None and ignore(child):
            continue
        if isinstance(child, TextNode):
            pending_text.append(child.text)
            continue
        flush()
        copy.append_child(normalized(child, ignore))
    flush()
    return copy


def structurally_equal(
    a: Node,
    b: Node,
    ignore: Callable[[Node], bool] | None = None,
) -> bool:
    """Compare tags, attributes, text and child order after normalization."""
    return _equal(normalized(a, ignore), normalized(b, ignore))


def _equal(a: Node, b: Node) -> bool:
    if isinstance(a, TextNode) or isinstance(b, TextNode):
        return (
            isinstance(a, TextNode)
            and isinstance(b, TextNode)
            and a.text == b.text
        )
    assert isinstance(a, Element) and isinstance(b, Element)
    if a.tag != b.tag or a.attrs != b.attrs:
        return False
    if len(a.children) != len(b.children):
        return False
    return all(_equal(x, y) for x, y in zip(a.children, b.children))


def has_class(*names: str) -> Callable[[Node], bool]:
    """Predicate matching elements that carry any of ``names``."""
    def predicate(node: Node) -> bool:
        return isinstance(node, Element) and any(node.has_class(n) for n in names)
    return predicate
