"""
Console front end: runs a ClickSession in a blocking loop on the calling thread.

ESC cancels the run, any other key counts as user activity for the idle
timeout. Keys are observed through a pynput listener thread which only sets
flags; the session itself is touched by the loop alone.
"""

from __future__ import annotations

import sys
import threading
import time
from typing import Callable, Optional, TextIO

from clicker_engine import ClickSession, TickResult
from logger import LogEntry
from models import ConfigurationError, RunPhase

try:
    from pynput import keyboard  # type: ignore
except Exception:  # pragma: no cover - environment dependent
    keyboard = None  # type: ignore


SLEEP_SLICE_SEC = 0.05
COUNTDOWN_REFRESH_SEC = 0.25
STATUS_WIDTH = 72


def prompt_delay_ms(
    input_fn: Callable[[str], str] = input,
    out: TextIO = sys.stdout,
) -> int:
    """Ask for the click delay until a positive whole number is entered."""
    while True:
        try:
            raw = input_fn("Delay between clicks in ms: ")
        except EOFError as exc:
            raise ConfigurationError("No click delay given") from exc

        raw = raw.strip()
        if raw.isdigit() and int(raw) >= 1:
            return int(raw)
        out.write("Please enter a whole number of milliseconds (1 or more).\n")


class KeyWatcher:
    """Global keyboard listener feeding the console loop."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._listener: Optional[object] = None
        self.cancel_event = threading.Event()
        self.last_key_at: Optional[float] = None

    def start(self) -> bool:
        """Begin listening. Returns False when no keyboard backend is available."""
        if keyboard is None:
            return False
        self._listener = keyboard.Listener(on_press=self._on_press)
        self._listener.start()
        return True

    def stop(self) -> None:
        listener = self._listener
        self._listener = None
        if listener is not None:
            listener.stop()  # type: ignore[attr-defined]

    def _on_press(self, key) -> None:
        self.last_key_at = self._clock()
        if keyboard is not None and key == keyboard.Key.esc:
            self.cancel_event.set()


class ConsoleClicker:
    """Drives one session until it stops, redrawing a single status line."""

    def __init__(
        self,
        session: ClickSession,
        clock: Callable[[], float] = time.monotonic,
        sleep_fn: Callable[[float], None] = time.sleep,
        key_watcher: Optional[KeyWatcher] = None,
        out: TextIO = sys.stdout,
    ) -> None:
        self._session = session
        self._clock = clock
        self._sleep = sleep_fn
        self._keys = key_watcher or KeyWatcher(clock)
        self._out = out
        self._fed_key_at: Optional[float] = None

    @property
    def cancel_event(self) -> threading.Event:
        return self._keys.cancel_event

    def print_log_entry(self, entry: LogEntry) -> None:
        """StatusLogger listener: print entries above the status line."""
        self._out.write("\r" + " " * STATUS_WIDTH + "\r")
        self._out.write(f"{entry}\n")
        self._out.flush()

    def run(self) -> TickResult:
        """Run to completion and return the final tick."""
        self._session.start(self._clock())
        try:
            result = self._loop()
        except KeyboardInterrupt:
            result = self._session.stop()
        self._out.write("\n")
        self._out.flush()
        return result

    def _loop(self) -> TickResult:
        while True:
            self._feed_interaction()
            if self.cancel_event.is_set():
                return self._session.cancel()

            result = self._session.tick(self._clock())
            self._render_status()
            if result.stopped:
                return result

            delay = result.delay_sec
            if self._session.phase == RunPhase.COUNTDOWN:
                delay = min(delay, COUNTDOWN_REFRESH_SEC)
            self._sleep_interruptibly(delay)

    def _feed_interaction(self) -> None:
        key_at = self._keys.last_key_at
        if key_at is not None and key_at != self._fed_key_at:
            self._fed_key_at = key_at
            self._session.record_interaction(key_at)

    def _sleep_interruptibly(self, seconds: float) -> None:
        deadline = self._clock() + seconds
        while not self.cancel_event.is_set():
            remaining = deadline - self._clock()
            if remaining <= 0:
                return
            self._sleep(min(SLEEP_SLICE_SEC, remaining))

    def _render_status(self) -> None:
        session = self._session
        scheduler = session.scheduler
        now = self._clock()

        if session.phase == RunPhase.COUNTDOWN:
            remaining = max(0.0, scheduler.state.countdown_deadline - now)
            line = f"Starting in {remaining:4.1f}s  (ESC to cancel)"
        else:
            started = scheduler.state.run_started_at
            elapsed = now - started if started is not None else 0.0
            line = (
                f"Clicks: {session.click_count}  Elapsed: {elapsed:6.1f}s  "
                f"Lifetime: {session.lifetime_total}  (ESC to stop)"
            )

        self._out.write("\r" + line.ljust(STATUS_WIDTH))
        self._out.flush()

    def start_key_watcher(self) -> bool:
        return self._keys.start()

    def stop_key_watcher(self) -> None:
        self._keys.stop()
