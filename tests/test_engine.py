"""
Tests for StreamingEngine and the session registry.
"""

import io
import json

import pytest

from content_reveal import start_streaming
from content_reveal.markup import Element, parse_fragment
from content_reveal.monitoring import StructuredLogger
from content_reveal.runtime import (
    CancelHandle,
    FinalizeReason,
    ManualClock,
    PlaybackStatus,
    StreamingEngine,
    linearize,
)
from content_reveal.runtime import sessions
from content_reveal.testing import TreeAssertions, create_test_engine, create_test_target


class TestStart:
    """Starting sessions through the engine."""

    def test_start_returns_handle(self, engine, target):
        handle = engine.start(parse_fragment("<p>Hello world</p>"), target)
        assert isinstance(handle, CancelHandle)
        assert handle.status == PlaybackStatus.RUNNING
        assert engine.get(target) is handle.session
        assert engine.active_count == 1

        engine.clock.run_until_idle()
        assert handle.status == PlaybackStatus.COMPLETED
        assert engine.active_count == 0
        assert engine.get(target) is None

    def test_accepts_html_and_sequences(self, engine, surface):
        a, b = Element("div"), Element("div")
        surface.append_child(a)
        surface.append_child(b)
        engine.start("<p>x</p>", a)
        engine.start(linearize(parse_fragment("<p>x</p>")), b)
        engine.clock.run_until_idle()
        assert a.to_html() == b.to_html() == "<div><p>x</p></div>"

    def test_empty_content_completes_at_once(self, engine, target):
        handle = engine.start("", target)
        assert handle.done
        assert handle.status == PlaybackStatus.COMPLETED
        assert engine.active_count == 0

    def test_on_finish_callback(self, engine, target):
        finished = []
        engine.start("<p>a</p>", target, on_finish=lambda s, reason: finished.append(reason))
        engine.clock.run_until_idle()
        assert finished == [FinalizeReason.COMPLETED]

    def test_instant_start(self, engine, target):
        handle = engine.start("<p>a b c</p>", target, instant=True)
        engine.clock.advance(0)
        assert handle.status == PlaybackStatus.COMPLETED


class TestExclusivity:
    """One session per target; targets are independent."""

    def test_new_session_supersedes_previous(self, engine, target):
        first = engine.start("<p>one two three</p>", target)
        engine.clock.advance(0)
        second = engine.start("<p>four</p>", target)

        assert first.status == PlaybackStatus.CANCELLED
        assert first.session.end_reason == FinalizeReason.SUPERSEDED
        assert second.status == PlaybackStatus.RUNNING
        assert engine.get(target) is second.session
        assert engine.active_count == 1

        engine.clock.run_until_idle()
        assert target.listener_count() == 0
        assert second.status == PlaybackStatus.COMPLETED

    def test_cancelled_first_does_not_release_second(self, engine, target):
        first = engine.start("<p>a</p>", target)
        second = engine.start("<p>b</p>", target)
        first()
        assert engine.get(target) is second.session

    def test_distinct_targets_run_independently(self, engine, surface):
        a, b = Element("div"), Element("div")
        surface.append_child(a)
        surface.append_child(b)
        ha = engine.start("<p>alpha beta</p>", a)
        hb = engine.start("<p>gamma</p>", b)
        assert engine.active_count == 2

        hb()
        engine.clock.run_until_idle()
        assert ha.status == PlaybackStatus.COMPLETED
        assert hb.status == PlaybackStatus.CANCELLED

    def test_cancel_by_target(self, engine, target):
        engine.start("<p>a</p>", target)
        assert engine.cancel(target) is True
        assert engine.cancel(target) is False

    def test_cancel_all(self, engine, surface):
        targets = [create_test_target() for _ in range(3)]
        handles = [engine.start("<p>x y</p>", t) for t in targets]
        assert engine.cancel_all(FinalizeReason.HIDDEN) == 3
        assert all(h.session.end_reason == FinalizeReason.HIDDEN for h in handles)
        assert engine.active_count == 0
        for t in targets:
            TreeAssertions(t).assert_clean()


class TestResourcesAndReporting:
    """Registry mirroring, metrics and structured logs."""

    def test_registry_empty_after_completion(self, engine, target, registry):
        engine.start("<p>a b</p>", target)
        assert registry.counts().listeners == 1
        assert registry.counts().timers == 1
        engine.clock.run_until_idle()
        assert registry.counts().total == 0

    def test_metrics_by_outcome(self, engine, surface, metrics):
        a, b = create_test_target(), create_test_target()
        engine.start("<p>a</p>", a)
        engine.start("<p>b</p>", b)()
        engine.clock.run_until_idle()
        assert metrics.sessions.get(outcome="completed") == 1
        assert metrics.sessions.get(outcome="cancelled") == 1
        assert metrics.active_sessions.get() == 0

    def test_structured_log(self, clock, target):
        output = io.StringIO()
        engine = StreamingEngine(clock, structured_logger=StructuredLogger(output=output))
        engine.start("<p>hi</p>", target)
        clock.run_until_idle()

        records = [json.loads(line) for line in output.getvalue().splitlines()]
        assert [r["event"] for r in records] == ["session_start", "session_end"]
        end = records[-1]
        assert end["status"] == "completed"
        assert end["applied"] == end["total"] == 3
        assert end["session_id"] == records[0]["session_id"]

    def test_seeded_engines_are_reproducible(self):
        def timeline():
            engine = create_test_engine(seed=99)
            target = create_test_target()
            engine.start("<p>one two three four</p>", target)
            times = []
            while engine.clock.next_due() is not None:
                engine.clock.advance(engine.clock.next_due() - engine.clock.now())
                times.append(engine.clock.now())
            return times

        assert timeline() == timeline()


class TestGlobalEngine:
    """start_streaming() and the global engine."""

    @pytest.fixture(autouse=True)
    def reset_global(self):
        sessions._engine = None
        yield
        sessions._engine = None

    def test_start_streaming_with_clock(self, target):
        clock = ManualClock()
        handle = start_streaming("<p>Hello world</p>", target, clock=clock)
        assert sessions.get_engine().clock is clock
        clock.run_until_idle()
        assert handle.status == PlaybackStatus.COMPLETED
        assert target.children[0].to_html() == "<p>Hello world</p>"

    def test_same_clock_reuses_engine(self, target):
        clock = ManualClock()
        start_streaming("<p>a</p>", target, clock=clock)
        engine = sessions.get_engine()
        start_streaming("<p>b</p>", target, clock=clock)
        assert sessions.get_engine() is engine

    def test_configure_engine_tears_down_previous(self, target):
        clock = ManualClock()
        handle = start_streaming("<p>a</p>", target, clock=clock)
        sessions.configure_engine(ManualClock())
        assert handle.session.end_reason == FinalizeReason.TEARDOWN
