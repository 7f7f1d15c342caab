"""
Structural Events - The linearized form of a markup tree.

Key abstractions:
    - EventKind: TEXT_RUN, ELEMENT_START, ELEMENT_END, ATOMIC_BLOCK
    - ElementShell: Tag + attributes, rebuilt fresh on every apply
    - ElementSnapshot: Opaque deep clone revealed verbatim
    - StructuralEvent: One immutable linearization unit
    - EventSequence: Ordered, finite, immutable list of events

Invariants enforced:
    1. Events are immutable once produced
    2. A shell never carries children; a snapshot is never descended into
    3. Sequences are balanced: every start has a matching end
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Sequence, Union

from content_reveal.markup.nodes import Element, Node, TextNode
from content_reveal.runtime.errors import ContextStackError


class EventKind(str, Enum):
    """Kind of structural event."""
    TEXT_RUN = "text"
    ELEMENT_START = "element_start"
    ELEMENT_END = "element_end"
    ATOMIC_BLOCK = "element"


class Priority(str, Enum):
    """Reveal priority; high-priority units linger longer."""
    NORMAL = "normal"
    HIGH = "high"


@dataclass(frozen=True)
class ElementShell:
    """Tag identity plus attributes, no children.

    The shell is a description, not a node: every ``build()`` returns a
    fresh element so a sequence can be replayed any number of times.
    """
    tag: str
    attrs: tuple[tuple[str, str], ...] = ()

    @classmethod
    def of(cls, element: Element) -> ElementShell:
        shell = element.shell_clone()
        return cls(tag=shell.tag or "", attrs=tuple(shell.attrs.items()))

    def build(self) -> Element:
        return Element(self.tag, dict(self.attrs))


@dataclass(frozen=True, eq=False)
class ElementSnapshot:
    """Opaque deep clone of a subtree, rendered once and verbatim.

    The captured subtree is private; ``materialize()`` hands out a new
    deep copy each time so the snapshot itself never enters a live tree.
    """
    _node: Node = field(repr=False)

    @classmethod
    def of(cls, node: Node) -> ElementSnapshot:
        return cls(node.deep_clone())

    @property
    def tag(self) -> str | None:
        return self._node.tag if isinstance(self._node, Element) else None

    @property
    def text(self) -> str:
        return self._node.text_content

    def materialize(self) -> Node:
        return self._node.deep_clone()

    def to_html(self) -> str:
        return self._node.to_html()


Payload = Union[str, ElementShell, ElementSnapshot]


@dataclass(frozen=True)
class StructuralEvent:
    """One linearization unit.

    Attributes:
        kind: Event kind.
        payload: Text for TEXT_RUN, ElementShell for ELEMENT_START,
            ElementSnapshot for ATOMIC_BLOCK, tag name for ELEMENT_END.
    """
    kind: EventKind
    payload: Payload

    is_block: bool = False
    is_whitespace: bool = False
    is_code_block: bool = False
    is_table: bool = False
    is_inline_formatting: bool = False
    is_inline_code: bool = False
    is_list_item: bool = False
    priority: Priority = Priority.NORMAL

    @classmethod
    def text_run(cls, text: str) -> StructuralEvent:
        return cls(
            kind=EventKind.TEXT_RUN,
            payload=text,
            is_whitespace=bool(text) and text.isspace(),
        )

    @classmethod
    def element_start(cls, element: Element, **flags: bool) -> StructuralEvent:
        return cls(kind=EventKind.ELEMENT_START, payload=ElementShell.of(element), **flags)

    @classmethod
    def element_end(cls, element: Element, **flags: bool) -> StructuralEvent:
        return cls(kind=EventKind.ELEMENT_END, payload=element.tag or "", **flags)

    @classmethod
    def atomic_block(
        cls,
        node: Node,
        priority: Priority = Priority.HIGH,
        **flags: bool,
    ) -> StructuralEvent:
        return cls(
            kind=EventKind.ATOMIC_BLOCK,
            payload=ElementSnapshot.of(node),
            priority=priority,
            **flags,
        )

    @property
    def is_structural(self) -> bool:
        return self.kind in (EventKind.ELEMENT_START, EventKind.ELEMENT_END)

    @property
    def tag(self) -> str | None:
        if isinstance(self.payload, (ElementShell, ElementSnapshot)):
            return self.payload.tag
        if self.kind == EventKind.ELEMENT_END:
            return self.payload
        return None

    @property
    def text(self) -> str:
        """Text revealed by this event (empty for start/end)."""
        if self.kind == EventKind.TEXT_RUN:
            return self.payload
        if isinstance(self.payload, ElementSnapshot):
            return self.payload.text
        return ""


class EventSequence(Sequence[StructuralEvent]):
    """Ordered, finite, immutable list of structural events.

    Produced once per source tree. A new tree replaces the sequence
    wholesale; it is never edited in place.

    Example:
        seq = linearize(parse_fragment("<p>Hello world</p>"))
        len(seq)       # 5
        seq.max_depth  # 1
    """

    __slots__ = ("_events",)

    def __init__(self, events: Sequence[StructuralEvent] = ()) -> None:
        self._events: tuple[StructuralEvent, ...] = tuple(events)

    def __len__(self) -> int:
        return len(self._events)

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return EventSequence(self._events[index])
        return self._events[index]

    def __iter__(self) -> Iterator[StructuralEvent]:
        return iter(self._events)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EventSequence):
            return self._events == other._events
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._events)

    def __repr__(self) -> str:
        return f"EventSequence({len(self._events)} events)"

    def kinds(self) -> list[EventKind]:
        return [event.kind for event in self._events]

    def depth_profile(self) -> Iterator[int]:
        """Open-scope depth (excluding the root) after each event."""
        depth = 0
        for event in self._events:
            if event.kind == EventKind.ELEMENT_START:
                depth += 1
            elif event.kind == EventKind.ELEMENT_END:
                depth -= 1
            yield depth

    @property
    def max_depth(self) -> int:
        return max(self.depth_profile(), default=0)

    def is_balanced(self) -> bool:
        try:
            self.validate()
        except ContextStackError:
            return False
        return True

    def validate(self) -> None:
        """Check that starts and ends nest properly.

        Raises:
            ContextStackError: On an end without a start, a mismatched
                tag, or starts left open at the end.
        """
        open_tags: list[str] = []
        for index, event in enumerate(self._events):
            if event.kind == EventKind.ELEMENT_START:
                open_tags.append(event.tag or "")
            elif event.kind == EventKind.ELEMENT_END:
                if not open_tags:
                    raise ContextStackError(index, "end without matching start")
                expected = open_tags.pop()
                if event.tag != expected:
                    raise ContextStackError(
                        index,
                        f"end </{event.tag}> closes <{expected}>",
                        details={"expected": expected, "found": event.tag},
                    )
        if open_tags:
            raise ContextStackError(
                len(self._events),
                f"{len(open_tags)} element(s) left open",
                details={"open": list(open_tags)},
            )

    def text(self) -> str:
        """All revealed text in order."""
        return "".join(event.text for event in self._events)
