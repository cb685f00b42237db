# tests/test_controller.py
# Test timeline/controller.py — live/paused state machine

import threading
import time

import pytest

from core.config import TimelineSettings
from timeline.controller import FetchRequest, Mode, TemporalController
from timeline.scheduler import ThreadScheduler

HOUR_MS = 3_600_000


@pytest.fixture
def fetches():
    return []


@pytest.fixture
def controller(clock, scheduler, fetches):
    c = TemporalController(on_fetch=fetches.append, scheduler=scheduler, clock=clock,
                           cfg=TimelineSettings())
    c.start()
    yield c
    c.shutdown()


class TestInitialState:
    def test_starts_live_with_one_hour_window(self, controller):
        state = controller.state
        assert state.mode is Mode.LIVE
        assert state.cursor == 1_000
        assert (state.window_start, state.window_end) == (1_000 - HOUR_MS, 1_000)

    def test_timers_running_after_start(self, controller, scheduler):
        assert controller.timers_running
        assert sorted(t.name for t in scheduler.active) == ["timeline-fetch", "timeline-window"]
        assert {t.interval_ms for t in scheduler.active} == {1000, 2000}

    def test_start_twice_does_not_duplicate_timers(self, controller, scheduler):
        controller.start()
        assert len(scheduler.active) == 2

    def test_current_request_is_advisory_while_live(self, controller):
        assert controller.current_request() == FetchRequest(1_000, exact=False)


class TestLiveTicks:
    def test_window_slides_with_now(self, controller, clock, scheduler):
        scheduler.advance(1_000)
        state = controller.state
        assert state.cursor == 2_000
        assert state.window_end == 2_000
        assert state.window_start == 2_000 - HOUR_MS

    def test_fetch_tick_requests_latest(self, controller, scheduler, fetches):
        scheduler.advance(2_000)
        assert fetches == [FetchRequest(3_000, exact=False)]
        scheduler.advance(2_000)
        assert [f.timestamp for f in fetches] == [3_000, 5_000]


class TestPause:
    def test_pause_stops_timers_and_emits_nothing(self, controller, scheduler, fetches):
        controller.set_live(False)
        assert controller.mode is Mode.PAUSED
        assert not controller.timers_running
        assert scheduler.active == []
        scheduler.advance(10_000)
        assert fetches == []

    def test_pause_freezes_window(self, controller, scheduler):
        controller.set_live(False)
        before = controller.state
        scheduler.advance(5_000)
        assert controller.state == before

    def test_pause_twice_is_noop(self, controller, fetches):
        controller.set_live(False)
        controller.set_live(False)
        assert controller.mode is Mode.PAUSED
        assert fetches == []


class TestSetCursor:
    def test_set_cursor_pauses_and_fetches_exactly_once(self, controller, fetches):
        controller.set_cursor(500)
        assert controller.mode is Mode.PAUSED
        assert not controller.timers_running
        assert controller.cursor == 500
        assert fetches == [FetchRequest(500, exact=True)]

    def test_set_cursor_while_paused_still_fetches(self, controller, fetches):
        controller.set_live(False)
        controller.set_cursor(700)
        controller.set_cursor(700)
        assert fetches == [FetchRequest(700, exact=True), FetchRequest(700, exact=True)]

    def test_set_cursor_does_not_move_window(self, controller):
        window = (controller.state.window_start, controller.state.window_end)
        controller.set_cursor(-5_000_000)
        assert (controller.state.window_start, controller.state.window_end) == window


class TestStep:
    def test_pause_then_step_twice(self, controller, fetches):
        """cursor 1000, step +5000 twice: exact fetches for 6000 and 11000"""
        controller.set_live(False)
        controller.step()
        controller.step()
        assert controller.cursor == 11_000
        assert fetches == [FetchRequest(6_000, exact=True), FetchRequest(11_000, exact=True)]

    def test_step_while_live_pauses(self, controller, fetches):
        controller.step(-2_000)
        assert controller.mode is Mode.PAUSED
        assert fetches == [FetchRequest(-1_000, exact=True)]

    def test_step_may_leave_window(self, controller):
        controller.step(10_000)
        state = controller.state
        assert state.cursor > state.window_end


class TestResume:
    def test_resume_recomputes_window_and_fetches(self, controller, clock, scheduler, fetches):
        controller.set_cursor(100)
        clock.now = 50_000
        controller.set_live(True)

        state = controller.state
        assert state.mode is Mode.LIVE
        assert state.cursor == 50_000
        assert (state.window_start, state.window_end) == (50_000 - HOUR_MS, 50_000)
        assert controller.timers_running
        assert fetches[-1] == FetchRequest(50_000, exact=False)

    def test_resume_while_live_is_noop(self, controller, fetches, scheduler):
        controller.set_live(True)
        assert fetches == []
        assert len(scheduler.active) == 2

    def test_resume_restarts_ticks(self, controller, scheduler, fetches):
        controller.set_live(False)
        controller.set_live(True)
        fetches.clear()
        scheduler.advance(2_000)
        assert len(fetches) == 1


class TestShutdown:
    def test_shutdown_cancels_timers_keeps_mode(self, controller, scheduler):
        controller.shutdown()
        assert controller.mode is Mode.LIVE
        assert not controller.timers_running
        assert scheduler.active == []

    def test_custom_window_size(self, clock, scheduler):
        c = TemporalController(scheduler=scheduler, clock=clock,
                               cfg=TimelineSettings(window_size_ms=60_000))
        assert c.state.window_start == 1_000 - 60_000
        # без on_fetch переходы не падают
        c.set_cursor(10)
        assert c.mode is Mode.PAUSED

    def test_resume_after_shutdown_is_ignored(self, controller, scheduler, fetches):
        controller.set_live(False)
        controller.shutdown()
        controller.set_live(True)
        controller.start()
        assert controller.mode is Mode.PAUSED
        assert scheduler.active == []
        assert fetches == []


class TestPauseDuringSlowFetch:
    def test_pause_does_not_wait_for_in_flight_tick(self):
        """The live fetch tick is stuck in a backend call; pausing returns at once."""
        entered, release = threading.Event(), threading.Event()

        def slow_fetch(request):
            if not request.exact:
                entered.set()
                release.wait(timeout=5)

        c = TemporalController(
            on_fetch=slow_fetch,
            scheduler=ThreadScheduler(),
            cfg=TimelineSettings(window_tick_ms=1000, fetch_interval_ms=20),
        )
        c.start()
        try:
            assert entered.wait(timeout=2)
            started = time.monotonic()
            c.set_live(False)
            c.step()
            assert time.monotonic() - started < 1.0
            assert c.mode is Mode.PAUSED
            assert not c.timers_running
        finally:
            release.set()
            c.shutdown()
