"""
Tests for the tree linearizer and event sequences.
"""

import pytest

from content_reveal.markup import Element, Fragment, TextNode, parse_fragment
from content_reveal.runtime import (
    ContextStackError,
    ElementShell,
    ElementSnapshot,
    EventKind,
    EventSequence,
    Priority,
    StructuralEvent,
    linearize,
    split_text_runs,
)


def describe(sequence):
    """Compact (kind, tag-or-text) view of a sequence."""
    out = []
    for event in sequence:
        if event.kind == EventKind.TEXT_RUN:
            out.append(("text", event.payload))
        else:
            out.append((event.kind.value, event.tag))
    return out


class TestSplitTextRuns:
    """Tests for word/whitespace run splitting."""

    def test_alternating_runs(self):
        assert split_text_runs("Hello world") == ["Hello", " ", "world"]

    def test_whitespace_runs_kept_whole(self):
        assert split_text_runs("a \n\t b") == ["a", " \n\t ", "b"]

    def test_leading_and_trailing_whitespace(self):
        assert split_text_runs(" a ") == [" ", "a", " "]

    def test_empty(self):
        assert split_text_runs("") == []

    def test_runs_concatenate_to_input(self):
        text = "  one two\n\nthree "
        assert "".join(split_text_runs(text)) == text


class TestScenarios:
    """Reference linearizations."""

    def test_paragraph_hello_world(self):
        """Scenario A: a paragraph of two words."""
        seq = linearize(parse_fragment("<p>Hello world</p>"))
        assert describe(seq) == [
            ("element_start", "p"),
            ("text", "Hello"),
            ("text", " "),
            ("text", "world"),
            ("element_end", "p"),
        ]
        assert seq[2].is_whitespace
        assert not seq[1].is_whitespace
        assert seq[0].is_block

    def test_heading_is_atomic(self):
        """Scenario B: a heading is one high-priority atomic block."""
        seq = linearize(parse_fragment("<h2>Big <em>title</em></h2>"))
        assert len(seq) == 1
        event = seq[0]
        assert event.kind == EventKind.ATOMIC_BLOCK
        assert event.priority == Priority.HIGH
        assert event.is_block
        assert event.payload.to_html() == "<h2>Big <em>title</em></h2>"

    def test_empty_text_node(self):
        """Scenario C: an empty text node yields nothing."""
        assert len(linearize(TextNode(""))) == 0
        assert len(linearize(Fragment([TextNode("")]))) == 0


class TestElementRules:
    """Per-element linearization rules."""

    def test_code_block_is_atomic(self):
        seq = linearize(parse_fragment("<pre><code>x = 1</code></pre>"))
        assert len(seq) == 1
        assert seq[0].is_code_block
        assert seq[0].priority == Priority.HIGH

    def test_table_is_atomic(self):
        seq = linearize(parse_fragment("<table><tr><td>1</td></tr></table>"))
        assert len(seq) == 1
        assert seq[0].is_table

    def test_line_break_is_normal_priority(self):
        seq = linearize(parse_fragment("<p>a<br>b</p>"))
        br = seq[2]
        assert br.kind == EventKind.ATOMIC_BLOCK
        assert br.tag == "br"
        assert br.priority == Priority.NORMAL

    def test_other_voids_are_high_priority(self):
        seq = linearize(parse_fragment('<hr><img src="a.png">'))
        assert [e.priority for e in seq] == [Priority.HIGH, Priority.HIGH]
        assert seq[0].is_block
        assert not seq[1].is_block

    def test_inline_formatting_flags(self):
        seq = linearize(parse_fragment("<p><strong>b</strong></p>"))
        start, text, end = seq[1], seq[2], seq[3]
        assert start.is_inline_formatting and end.is_inline_formatting
        assert not text.is_inline_formatting

    def test_inline_code_flags(self):
        seq = linearize(parse_fragment("<p><code>f()</code></p>"))
        assert seq[1].is_inline_code
        assert seq[1].tag == "code"

    def test_list_items_flagged(self):
        seq = linearize(parse_fragment("<ul><li>a</li><li>b</li></ul>"))
        assert describe(seq) == [
            ("element_start", "ul"),
            ("element_start", "li"),
            ("text", "a"),
            ("element_end", "li"),
            ("element_start", "li"),
            ("text", "b"),
            ("element_end", "li"),
            ("element_end", "ul"),
        ]
        assert seq[1].is_list_item and seq[3].is_list_item
        assert not seq[0].is_list_item

    def test_non_item_list_children_kept_in_place(self):
        seq = linearize(parse_fragment("<ul>\n<li>a</li>\n</ul>"))
        assert describe(seq)[1] == ("text", "\n")
        assert describe(seq)[-2] == ("text", "\n")

    def test_unknown_tag_falls_back_to_generic_wrap(self):
        seq = linearize(Element("x-widget", {"data-id": "7"}, [TextNode("w")]))
        assert describe(seq) == [
            ("element_start", "x-widget"),
            ("text", "w"),
            ("element_end", "x-widget"),
        ]
        start = seq[0]
        assert not (start.is_block or start.is_inline_formatting or start.is_list_item)
        assert start.payload.attrs == (("data-id", "7"),)

    def test_fragment_contributes_children_only(self):
        seq = linearize(parse_fragment("<p>a</p><p>b</p>"))
        assert [e.tag for e in seq if e.is_structural] == ["p", "p", "p", "p"]


class TestPayloads:
    """Shell and snapshot payloads are distinct and replayable."""

    def test_shell_builds_fresh_element(self):
        source = Element("a", {"href": "#"}, [TextNode("x")])
        shell = ElementShell.of(source)
        first, second = shell.build(), shell.build()
        assert first is not second
        assert first.attrs == {"href": "#"}
        assert first.children == []

    def test_snapshot_materializes_fresh_copies(self):
        source = parse_fragment("<h1>T</h1>").children[0]
        snapshot = ElementSnapshot.of(source)
        first, second = snapshot.materialize(), snapshot.materialize()
        assert first is not second
        assert first.to_html() == "<h1>T</h1>"

    def test_snapshot_isolated_from_source(self):
        source = parse_fragment("<h1>T</h1>").children[0]
        snapshot = ElementSnapshot.of(source)
        source.append_child(TextNode("changed"))
        assert snapshot.text == "T"

    def test_linearize_does_not_mutate_input(self):
        tree = parse_fragment("<div><p>a b</p><h2>h</h2></div>")
        before = tree.to_html()
        linearize(tree)
        assert tree.to_html() == before

    def test_linearize_is_deterministic(self):
        tree = parse_fragment("<p>one <em>two</em></p>")
        assert describe(linearize(tree)) == describe(linearize(tree))


class TestEventSequence:
    """Tests for EventSequence helpers."""

    def test_depth_profile(self):
        seq = linearize(parse_fragment("<ul><li>a</li></ul>"))
        assert list(seq.depth_profile()) == [1, 2, 2, 1, 0]
        assert seq.max_depth == 2

    def test_text(self):
        seq = linearize(parse_fragment("<p>Hello <b>you</b></p><h1>T</h1>"))
        assert seq.text() == "Hello youT"

    def test_slicing_returns_sequence(self):
        seq = linearize(parse_fragment("<p>a b</p>"))
        assert isinstance(seq[1:3], EventSequence)
        assert len(seq[1:3]) == 2

    def test_validate_balanced(self):
        seq = linearize(parse_fragment("<div><p>x</p></div>"))
        seq.validate()
        assert seq.is_balanced()

    def test_validate_unmatched_end(self):
        seq = EventSequence([StructuralEvent.element_end(Element("p"))])
        with pytest.raises(ContextStackError) as exc:
            seq.validate()
        assert exc.value.index == 0

    def test_validate_mismatched_tag(self):
        seq = EventSequence([
            StructuralEvent.element_start(Element("p")),
            StructuralEvent.element_end(Element("div")),
        ])
        with pytest.raises(ContextStackError) as exc:
            seq.validate()
        assert exc.value.details == {"expected": "p", "found": "div"}

    def test_validate_left_open(self):
        seq = EventSequence([StructuralEvent.element_start(Element("p"))])
        assert not seq.is_balanced()

    def test_equality(self):
        tree = parse_fragment("<p>a</p>")
        assert linearize(tree) == linearize(tree)
