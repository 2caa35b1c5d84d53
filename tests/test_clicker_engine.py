"""Tests for clicker_engine - ClickSession side effects."""
import random

import pytest

from clicker_engine import ClickSession, TickResult, next_timer_delay_ms
from conftest import FakeInjector, MemoryCounterStore
from lifetime_counter import CounterStoreError
from models import Cadence, RunConfig, RunPhase


def make_session(injector=None, store=None, flush_every=50, initial_total=None, **overrides):
    params = {"base_delay_ms": 100, "jitter_enabled": False}
    params.update(overrides)
    session = ClickSession(
        RunConfig(**params),
        injector or FakeInjector(),
        store,
        rng=random.Random(3),
        flush_every=flush_every,
        initial_total=initial_total,
    )
    messages = []
    session.register_status_callback(lambda msg, level: messages.append((level, msg)))
    return session, messages


def run_to_end(session, clock, limit=10000):
    session.start(clock())
    for _ in range(limit):
        result = session.tick(clock())
        if result.stopped:
            return result
        clock.sleep(result.delay_sec)
    raise AssertionError("session did not stop")


class TestTick:
    def test_click_limit_scenario(self, clock, injector):
        session, _ = make_session(injector, click_limit=3)
        result = run_to_end(session, clock)

        assert injector.clicks == 3
        assert session.click_count == 3
        assert result.reason == "Click limit reached (3)"
        assert session.phase == RunPhase.STOPPED

    def test_last_click_reports_stop_in_same_tick(self, clock, injector):
        session, _ = make_session(injector, click_limit=1)
        session.start(0.0)
        result = session.tick(0.0)
        assert result.clicked and result.stopped

    def test_delay_comes_from_scheduler(self, clock):
        session, _ = make_session(base_delay_ms=250)
        session.start(0.0)
        result = session.tick(0.0)
        assert result.clicked
        assert result.delay_sec == pytest.approx(0.25)
        assert result.delay_ms == 250

    def test_live_cadence_overrides_delay(self):
        session, _ = make_session(base_delay_ms=250)
        session.start(0.0)
        result = session.tick(0.0, cadence=Cadence(base_delay_ms=20, jitter_enabled=False))
        assert result.delay_ms == 20

    def test_countdown_then_first_click_without_extra_delay(self, injector):
        session, messages = make_session(injector, start_delay_sec=2)
        session.start(0.0)

        waiting = session.tick(0.5)
        assert not waiting.clicked and waiting.delay_sec == pytest.approx(1.5)

        first = session.tick(2.0)
        assert first.clicked
        assert injector.clicks == 1
        assert any("Countdown finished" in msg for _, msg in messages)

    def test_duration_limit(self, clock, injector):
        session, _ = make_session(injector, base_delay_ms=250, duration_limit_sec=1)
        result = run_to_end(session, clock)
        assert result.reason == "Duration limit reached (1s)"
        assert injector.clicks == 4

    def test_idle_timeout_with_interaction(self, clock, injector):
        session, _ = make_session(injector, idle_timeout_sec=1)
        session.start(0.0)
        session.tick(0.0)
        session.record_interaction(1.0)
        assert not session.tick(1.5).stopped
        assert session.tick(2.0).reason == "Idle timeout reached (1s)"

    def test_early_tick_waits_for_the_click_slot(self, injector):
        session, _ = make_session(injector, base_delay_ms=500)
        session.start(0.0)
        session.tick(0.0)

        early = session.tick(0.2)
        assert not early.clicked and not early.stopped
        assert early.delay_sec == pytest.approx(0.3)
        assert session.tick(0.5).clicked
        assert injector.clicks == 2

    def test_wait_is_cut_short_by_duration_limit(self, injector):
        session, _ = make_session(injector, base_delay_ms=10000, duration_limit_sec=1)
        session.start(0.0)
        first = session.tick(0.0)

        assert first.delay_sec == pytest.approx(1.0)
        assert session.tick(1.0).reason == "Duration limit reached (1s)"
        assert injector.clicks == 1

    def test_wait_follows_moving_idle_deadline(self, injector):
        session, _ = make_session(injector, base_delay_ms=10000, idle_timeout_sec=2)
        session.start(0.0)
        assert session.tick(0.0).delay_sec == pytest.approx(2.0)

        session.record_interaction(1.5)
        woke = session.tick(2.0)
        assert not woke.stopped and not woke.clicked
        assert woke.delay_sec == pytest.approx(1.5)
        assert session.tick(3.5).reason == "Idle timeout reached (2s)"


class TestStop:
    def test_user_stop(self, injector):
        session, messages = make_session(injector)
        session.start(0.0)
        session.tick(0.0)
        result = session.stop()

        assert result.reason == "Stopped by user"
        assert not session.is_running()
        assert messages[-1] == ("INFO", "Stopped by user. Total clicks: 1")

    def test_cancel_during_countdown(self, injector):
        session, _ = make_session(injector, start_delay_sec=5)
        session.start(0.0)
        session.tick(1.0)
        result = session.cancel()

        assert result.reason == "Canceled before start"
        assert injector.clicks == 0
        assert session.scheduler.state.run_started_at is None

    def test_finish_is_reported_once(self, injector):
        session, messages = make_session(injector, click_limit=1)
        session.start(0.0)
        session.tick(0.0)
        session.tick(0.1)
        session.stop()
        assert sum(1 for _, msg in messages if "Total clicks" in msg) == 1


class TestClickFailure:
    def test_failure_ends_run(self):
        injector = FakeInjector(fail_after=2)
        store = MemoryCounterStore(value=10)
        session, messages = make_session(injector, store)
        session.start(0.0)

        session.tick(0.0)
        session.tick(0.1)
        result = session.tick(0.2)

        assert result.stopped
        assert result.reason == "Click failed: SendInput delivered 1 of 2 events"
        assert session.failed
        assert session.click_count == 2
        assert store.value == 12
        assert messages[-1][0] == "ERROR"


class TestLifetimeCounter:
    def test_loaded_on_start(self):
        session, _ = make_session(store=MemoryCounterStore(value=500))
        session.start(0.0)
        assert session.lifetime_total == 500

    def test_flushed_in_batches_and_at_stop(self, clock):
        store = MemoryCounterStore(value=0)
        session, _ = make_session(store=store, flush_every=50, click_limit=120)
        run_to_end(session, clock)

        assert store.saves == [50, 100, 120]
        assert session.lifetime_total == 120

    def test_no_save_without_new_clicks(self):
        store = MemoryCounterStore(value=7)
        session, _ = make_session(store=store, start_delay_sec=3)
        session.start(0.0)
        session.cancel()
        assert store.saves == []

    def test_save_failure_is_a_warning(self, clock):
        store = MemoryCounterStore(value=0, fail_saves=True)
        session, messages = make_session(store=store, flush_every=2, click_limit=3)
        result = run_to_end(session, clock)

        assert result.reason == "Click limit reached (3)"
        assert session.lifetime_total == 3
        warnings = [msg for level, msg in messages if level == "WARNING"]
        assert len(warnings) == 2
        assert "disk full" in warnings[0]

    def test_malformed_store_fails_start(self):
        class BrokenStore(MemoryCounterStore):
            def load(self):
                raise CounterStoreError("not a number")

        session, _ = make_session(store=BrokenStore())
        with pytest.raises(CounterStoreError):
            session.start(0.0)

    def test_initial_total_skips_store_load(self):
        class UnreadableStore(MemoryCounterStore):
            def load(self):
                raise AssertionError("store must not be read")

        session, _ = make_session(store=UnreadableStore(), initial_total=42)
        session.start(0.0)
        assert session.lifetime_total == 42

    def test_unsaved_total_carries_into_next_session(self, clock):
        store = MemoryCounterStore(value=0, fail_saves=True)
        first, _ = make_session(store=store, click_limit=3)
        run_to_end(first, clock)
        assert first.lifetime_total == 3

        second, _ = make_session(store=store, click_limit=2, initial_total=first.lifetime_total)
        run_to_end(second, clock)
        assert second.lifetime_total == 5
        assert store.value == 0


class TestNextTimerDelay:
    def test_stopped_result_ends_timer(self):
        result = TickResult(delay_sec=0.0, stopped=True, reason="Stopped by user")
        assert next_timer_delay_ms(result, RunPhase.STOPPED, 250) is None

    def test_countdown_is_capped(self):
        result = TickResult(delay_sec=4.0)
        assert next_timer_delay_ms(result, RunPhase.COUNTDOWN, 250) == 250
        assert next_timer_delay_ms(TickResult(delay_sec=0.1), RunPhase.COUNTDOWN, 250) == 100

    def test_running_uses_full_delay(self):
        result = TickResult(delay_sec=4.0, clicked=True)
        assert next_timer_delay_ms(result, RunPhase.RUNNING, 250) == 4000

    def test_zero_delay_still_yields_to_event_loop(self):
        assert next_timer_delay_ms(TickResult(delay_sec=0.0), RunPhase.RUNNING, 250) == 1
