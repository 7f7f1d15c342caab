"""
Testing utilities for content-reveal.

Components:
    TreeAssertions     - Structural and leak assertions on a render target
    replay_instant     - Play a sequence to completion in one step
    Test fixtures      - Sample markup, targets and engines

Usage:
    from content_reveal.testing import TreeAssertions, replay_instant

    target = replay_instant(linearize(tree))
    TreeAssertions(target).assert_reconstructs(tree).assert_clean()

Hypothesis strategies live in ``content_reveal.testing.fixtures`` and
need the ``test`` extra installed.
"""

from content_reveal.testing.assertions import (
    TreeAssertions,
    replay_instant,
)

from content_reveal.testing.fixtures import (
    SAMPLE_MARKUP,
    create_test_engine,
    create_test_target,
    create_test_tree,
)

__all__ = [
    # Assertions
    "TreeAssertions",
    "replay_instant",
    # Fixtures
    "SAMPLE_MARKUP",
    "create_test_engine",
    "create_test_target",
    "create_test_tree",
]
