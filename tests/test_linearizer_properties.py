"""
Property-Based Linearizer Tests - Invariants across random markup trees.

Uses Hypothesis to generate random trees and verify that linearization
and instant replay hold their invariants in all cases.

Invariants tested:
    1. Round trip - instant replay rebuilds the source tree exactly
    2. Depth - stack depth equals unmatched starts at every prefix
    3. Balance - every sequence nests properly and ends at depth 0
    4. Text preservation - revealed text equals the tree's text
    5. Determinism - identical tree → identical sequence
"""

from hypothesis import given, settings

from content_reveal.markup import Fragment
from content_reveal.runtime import (
    EventKind,
    ManualClock,
    PlaybackSession,
    linearize,
)
from content_reveal.testing import TreeAssertions, replay_instant
from content_reveal.testing.fixtures import markup_trees


trees = markup_trees()


class TestRoundTrip:
    """Property: replaying a linearization rebuilds the tree."""

    @given(trees)
    @settings(max_examples=200, deadline=None)
    def test_instant_replay_reconstructs_tree(self, tree):
        target = replay_instant(linearize(tree))
        TreeAssertions(target).assert_reconstructs(tree).assert_clean()

    @given(trees)
    @settings(max_examples=50, deadline=None)
    def test_replay_twice_gives_same_result(self, tree):
        seq = linearize(tree)
        first = replay_instant(seq)
        second = replay_instant(seq)
        assert first.to_html() == second.to_html()

    @given(trees)
    @settings(max_examples=50, deadline=None)
    def test_stepwise_replay_matches_instant(self, tree):
        """Timed playback produces the same tree as instant playback."""
        seq = linearize(tree)
        clock = ManualClock()
        target = Fragment()
        session = PlaybackSession(seq, target, clock)
        session.start()
        clock.run_until_idle()
        TreeAssertions(target).assert_reconstructs(tree).assert_clean()


class TestDepth:
    """Property: context stack depth tracks unmatched starts."""

    @given(trees)
    @settings(max_examples=200, deadline=None)
    def test_depth_matches_unmatched_starts(self, tree):
        seq = linearize(tree)
        session = PlaybackSession(seq, Fragment(), ManualClock())
        state = session.state

        assert state.depth == 1
        for expected_open, event in zip(seq.depth_profile(), seq):
            session.apply(event)
            assert expected_open >= 0
            assert state.depth == 1 + expected_open
        assert state.depth == 1

    @given(trees)
    @settings(max_examples=100)
    def test_sequences_are_balanced(self, tree):
        seq = linearize(tree)
        assert seq.is_balanced()
        assert list(seq.depth_profile())[-1:] in ([], [0])


class TestContent:
    """Property: linearization keeps all content, in order."""

    @given(trees)
    @settings(max_examples=100)
    def test_text_preserved(self, tree):
        assert linearize(tree).text() == tree.text_content

    @given(trees)
    @settings(max_examples=100)
    def test_no_empty_text_runs(self, tree):
        for event in linearize(tree):
            if event.kind == EventKind.TEXT_RUN:
                assert event.payload

    @given(trees)
    @settings(max_examples=50)
    def test_deterministic(self, tree):
        a, b = linearize(tree), linearize(tree)
        assert [(e.kind, e.tag, e.text) for e in a] == [(e.kind, e.tag, e.text) for e in b]
