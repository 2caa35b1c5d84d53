"""
Click Scheduler - the decision logic behind every run.

SRP: This module decides when to click, how long to wait and when to stop.
It never touches the mouse, the clock or the disk; hosts pass in ``now``
and carry out the side effects themselves.
"""

import math
import random
from dataclasses import dataclass
from typing import Optional

from models import Cadence, Decision, DecisionKind, RunConfig, RunPhase, StopReason


JITTER_FRACTION = 0.1


def compute_delay(base_delay_ms: int, jitter_enabled: bool, rng: random.Random) -> int:
    """
    Return the effective delay in milliseconds before the next click.

    With jitter enabled the delay is perturbed by a whole number of
    milliseconds drawn uniformly from the closed range [-m, m], where
    m is 10% of the base delay rounded down.
    """
    if not jitter_enabled:
        return max(1, base_delay_ms)

    max_jitter = math.floor(base_delay_ms * JITTER_FRACTION)
    if max_jitter <= 0:
        return max(1, base_delay_ms)

    # randint includes both endpoints: 2 * max_jitter + 1 outcomes.
    jitter = rng.randint(-max_jitter, max_jitter)
    return max(1, base_delay_ms + jitter)


@dataclass
class RunState:
    """Mutable bookkeeping for one run."""
    click_count: int = 0
    phase: RunPhase = RunPhase.PENDING
    countdown_deadline: Optional[float] = None
    run_started_at: Optional[float] = None
    last_interaction_at: Optional[float] = None
    stop_reason: Optional[str] = None


class ClickScheduler:
    """
    State machine for a single run: Pending -> Countdown -> Running -> Stopped.

    Clean Code principles applied:
    - ``evaluate`` only reads state; ``advance`` is the single place
      where state changes in response to a decision
    - Timestamps are plain floats in seconds supplied by the caller
    """

    def __init__(self, config: RunConfig, rng: Optional[random.Random] = None):
        self._config = config
        self._rng = rng if rng is not None else random.Random()
        self._state = RunState()

    @property
    def config(self) -> RunConfig:
        return self._config

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def phase(self) -> RunPhase:
        return self._state.phase

    @property
    def click_count(self) -> int:
        return self._state.click_count

    @property
    def stop_reason(self) -> Optional[str]:
        return self._state.stop_reason

    def is_stopped(self) -> bool:
        return self._state.phase == RunPhase.STOPPED

    def start(self, now: float) -> None:
        """Leave the Pending phase, either into the countdown or straight into the run."""
        if self._state.phase != RunPhase.PENDING:
            return

        if self._config.start_delay_sec == 0:
            self._enter_running(now)
        else:
            self._state.phase = RunPhase.COUNTDOWN
            self._state.countdown_deadline = now + self._config.start_delay_sec

    def evaluate(self, now: float) -> Decision:
        """
        Decide what happens next at time ``now``.

        The checks run in a fixed order: limits are tested before a click
        is ever returned, so a click that would break a limit is never issued.
        """
        state = self._state
        config = self._config

        if state.phase == RunPhase.STOPPED:
            return Decision.stop(state.stop_reason or StopReason.USER_STOP)

        if state.phase == RunPhase.PENDING:
            return Decision.wait(0.0)

        if state.phase == RunPhase.COUNTDOWN:
            if now >= state.countdown_deadline:
                return Decision.begin_run(now)
            return Decision.wait(state.countdown_deadline - now)

        if config.duration_limit_sec is not None and \
           now - state.run_started_at >= config.duration_limit_sec:
            return Decision.stop(StopReason.duration_limit(config.duration_limit_sec))

        if config.click_limit is not None and state.click_count >= config.click_limit:
            return Decision.stop(StopReason.click_limit(config.click_limit))

        if config.idle_timeout_sec > 0 and \
           now - state.last_interaction_at >= config.idle_timeout_sec:
            return Decision.stop(StopReason.idle_timeout(config.idle_timeout_sec))

        return Decision.click()

    def advance(self, decision: Decision) -> None:
        """Apply the state transition implied by ``decision``."""
        state = self._state
        if state.phase == RunPhase.STOPPED:
            return

        if decision.kind == DecisionKind.BEGIN_RUN:
            if state.phase == RunPhase.COUNTDOWN:
                self._enter_running(decision.at)
        elif decision.kind == DecisionKind.CLICK:
            self._apply_click()
        elif decision.kind == DecisionKind.STOP:
            self._stop(decision.reason or StopReason.USER_STOP)

    def record_interaction(self, now: float) -> None:
        """Note user activity; resets the idle window."""
        self._state.last_interaction_at = now

    def next_deadline(self) -> Optional[float]:
        """Earliest time a duration or idle stop can fire; None when neither applies."""
        state = self._state
        if state.phase != RunPhase.RUNNING:
            return None

        deadlines = []
        if self._config.duration_limit_sec is not None:
            deadlines.append(state.run_started_at + self._config.duration_limit_sec)
        if self._config.idle_timeout_sec > 0:
            deadlines.append(state.last_interaction_at + self._config.idle_timeout_sec)
        return min(deadlines) if deadlines else None

    def cancel(self, reason: Optional[str] = None) -> None:
        """Stop on behalf of the user (ESC, stop button, hotkey)."""
        if self._state.phase == RunPhase.STOPPED:
            return
        if self._state.phase in (RunPhase.PENDING, RunPhase.COUNTDOWN):
            self._stop(StopReason.CANCELED_BEFORE_START)
        else:
            self._stop(reason or StopReason.USER_STOP)

    def next_delay_ms(self, cadence: Optional[Cadence] = None) -> int:
        """Delay before the next tick, using the run's cadence unless a live one is given."""
        cadence = cadence or self._config.cadence
        return compute_delay(cadence.base_delay_ms, cadence.jitter_enabled, self._rng)

    # Internal helpers -------------------------------------------------

    def _enter_running(self, now: float) -> None:
        state = self._state
        state.phase = RunPhase.RUNNING
        state.run_started_at = now
        if state.last_interaction_at is None or state.last_interaction_at < now:
            state.last_interaction_at = now

    def _apply_click(self) -> None:
        state = self._state
        if state.phase != RunPhase.RUNNING:
            return

        limit = self._config.click_limit
        if limit is not None and state.click_count >= limit:
            self._stop(StopReason.click_limit(limit))
            return

        state.click_count += 1

        if limit is not None and state.click_count >= limit:
            self._stop(StopReason.click_limit(limit))

    def _stop(self, reason: str) -> None:
        self._state.phase = RunPhase.STOPPED
        self._state.stop_reason = reason
