"""
Click Session - the core business logic of one run.

SRP: This class has one responsibility - turning scheduler decisions into
clicks and keeping the lifetime counter in sync.
It doesn't know about consoles, windows or hotkeys (Dependency Inversion Principle).
"""

import random
from dataclasses import dataclass
from typing import Optional, Callable, Protocol

from click_injector import ClickInjectionError
from click_scheduler import ClickScheduler
from lifetime_counter import CounterStoreError, LifetimeCounterStore
from models import Cadence, Decision, DecisionKind, RunConfig, RunPhase, StopReason


DEFAULT_FLUSH_EVERY = 50
# Waits never drop below one millisecond, the resolution of every delay.
MIN_WAIT_SEC = 0.001
# A click is due once the clock is within half a millisecond of its slot.
CLICK_DUE_TOLERANCE_SEC = 0.0005

StatusCallback = Callable[[str, str], None]


class ClickInjector(Protocol):
    def send_click(self) -> None: ...


@dataclass(frozen=True)
class TickResult:
    """Outcome of one tick, as seen by the host."""
    delay_sec: float
    clicked: bool = False
    stopped: bool = False
    reason: Optional[str] = None

    @property
    def delay_ms(self) -> int:
        return max(1, int(round(self.delay_sec * 1000)))


def next_timer_delay_ms(result: TickResult, phase: RunPhase, countdown_cap_ms: int) -> Optional[int]:
    """
    Milliseconds until a timer-driven host should tick again, or None once the run stopped.

    Countdown ticks are capped so a remaining-time display stays fresh.
    """
    if result.stopped:
        return None
    if phase == RunPhase.COUNTDOWN:
        return min(result.delay_ms, countdown_cap_ms)
    return result.delay_ms


class ClickSession:
    """
    One clicking run from Start to Stop.

    Clean Code principles applied:
    - The scheduler decides, the session acts
    - Small, focused methods with single responsibilities
    - Side effects (click, counter flush) live in exactly one place
    """

    def __init__(
        self,
        config: RunConfig,
        injector: ClickInjector,
        counter_store: Optional[LifetimeCounterStore] = None,
        rng: Optional[random.Random] = None,
        flush_every: int = DEFAULT_FLUSH_EVERY,
        initial_total: Optional[int] = None,
    ):
        """
        Initialize the session.

        DIP: Depends on an injector abstraction, not on pyautogui directly.

        Args:
            initial_total: lifetime total already held by the host; when
                omitted it is read from ``counter_store`` on start
        """
        self._config = config
        self._scheduler = ClickScheduler(config, rng)
        self._injector = injector
        self._counter_store = counter_store
        self._flush_every = max(1, flush_every)
        self._initial_total = initial_total
        self._lifetime_total = initial_total or 0
        self._next_click_at: Optional[float] = None
        self._unflushed = 0
        self._finished = False
        self._failed = False
        self._status_callback: Optional[StatusCallback] = None

    def register_status_callback(self, callback: StatusCallback) -> None:
        """
        Register a callback for status updates.

        OCP: Open for extension (can add callbacks) without modifying core logic.
        """
        self._status_callback = callback

    @property
    def config(self) -> RunConfig:
        return self._config

    @property
    def phase(self) -> RunPhase:
        return self._scheduler.phase

    @property
    def click_count(self) -> int:
        return self._scheduler.click_count

    @property
    def lifetime_total(self) -> int:
        return self._lifetime_total

    @property
    def stop_reason(self) -> Optional[str]:
        return self._scheduler.stop_reason

    @property
    def scheduler(self) -> ClickScheduler:
        return self._scheduler

    @property
    def failed(self) -> bool:
        """True when the run ended because a click could not be delivered."""
        return self._failed

    def is_running(self) -> bool:
        """True from Start until the run has stopped."""
        return not self._scheduler.is_stopped()

    def start(self, now: float) -> None:
        """
        Load the lifetime total unless the host supplied it, then leave Pending.

        Raises:
            CounterStoreError: if the stored counter is malformed
        """
        if self._initial_total is None and self._counter_store is not None:
            self._lifetime_total = self._counter_store.load()
        self._scheduler.start(now)

        if self.phase == RunPhase.COUNTDOWN:
            self._notify_status(f"Starting in {self._config.start_delay_sec}s ({self._config.describe()})")
        else:
            self._notify_status(f"Clicking started ({self._config.describe()})")

    def tick(self, now: float, cadence: Optional[Cadence] = None) -> TickResult:
        """
        Run one scheduling step and perform whatever it asks for.

        Args:
            now: current monotonic time in seconds
            cadence: live delay settings; the run's own config when omitted
        """
        decision = self._scheduler.evaluate(now)

        if decision.kind == DecisionKind.WAIT:
            return TickResult(delay_sec=decision.wait_sec)

        if decision.kind == DecisionKind.BEGIN_RUN:
            self._scheduler.advance(decision)
            self._notify_status("Countdown finished, clicking started")
            decision = self._scheduler.evaluate(now)

        if decision.kind == DecisionKind.STOP:
            self._scheduler.advance(decision)
            return self._finish()

        if self._next_click_at is not None and now + CLICK_DUE_TOLERANCE_SEC < self._next_click_at:
            return TickResult(delay_sec=self._wait_until(self._next_click_at, now))

        return self._click(now, cadence)

    def record_interaction(self, now: float) -> None:
        self._scheduler.record_interaction(now)

    def stop(self, reason: Optional[str] = None) -> TickResult:
        """Stop on user request (key, button or hotkey)."""
        self._scheduler.cancel(reason)
        return self._finish()

    def cancel(self) -> TickResult:
        """Alias for ``stop`` used by hosts reacting to ESC."""
        return self.stop()

    def _click(self, now: float, cadence: Optional[Cadence]) -> TickResult:
        try:
            self._injector.send_click()
        except ClickInjectionError as exc:
            self._scheduler.advance(Decision.stop(StopReason.click_failed(exc)))
            self._failed = True
            return self._finish(level="ERROR")

        self._scheduler.advance(Decision.click())
        self._lifetime_total += 1
        self._unflushed += 1

        if self._unflushed >= self._flush_every:
            self._flush()

        if self._scheduler.is_stopped():
            result = self._finish()
            return TickResult(delay_sec=0.0, clicked=True, stopped=True, reason=result.reason)

        self._next_click_at = now + self._scheduler.next_delay_ms(cadence) / 1000.0
        return TickResult(delay_sec=self._wait_until(self._next_click_at, now), clicked=True)

    def _wait_until(self, click_at: float, now: float) -> float:
        """Seconds to the next click, cut short by a pending duration or idle deadline."""
        deadline = self._scheduler.next_deadline()
        wake_at = click_at if deadline is None else min(click_at, deadline)
        return max(MIN_WAIT_SEC, wake_at - now)

    def _finish(self, level: str = "INFO") -> TickResult:
        reason = self._scheduler.stop_reason
        if not self._finished:
            self._finished = True
            self._flush()
            self._notify_status(f"{reason}. Total clicks: {self.click_count}", level)
        return TickResult(delay_sec=0.0, stopped=True, reason=reason)

    def _flush(self) -> None:
        if self._counter_store is None or self._unflushed == 0:
            return
        self._unflushed = 0
        try:
            self._counter_store.save(self._lifetime_total)
        except CounterStoreError as exc:
            self._notify_status(f"Lifetime counter not saved: {exc}", "WARNING")

    def _notify_status(self, message: str, level: str = "INFO") -> None:
        """
        Notify registered callbacks about status changes.

        DRY: Centralized status notification logic.
        """
        if self._status_callback:
            self._status_callback(message, level)
