"""
Domain models for the Repeat Clicker application.
Each class follows the Single Responsibility Principle (SRP).
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional, Dict, Any


MAX_DELAY_SECONDS = 86400


class ConfigurationError(ValueError):
    """Raised when a run configuration violates its constraints."""


def parse_form_int(raw: str, field: str, *, minimum: int = 0) -> int:
    """Parse one numeric form field; blank means 0."""
    text = raw.strip()
    if not text:
        return 0
    try:
        value = int(text)
    except ValueError as exc:
        raise ConfigurationError(f"{field} must be a whole number") from exc
    if value < minimum:
        raise ConfigurationError(f"{field} must be at least {minimum}")
    return value


class RunPhase(Enum):
    """Lifecycle phases of a single run."""
    PENDING = "pending"
    COUNTDOWN = "countdown"
    RUNNING = "running"
    STOPPED = "stopped"


class DecisionKind(Enum):
    """What the scheduler wants the host to do next."""
    WAIT = "wait"
    BEGIN_RUN = "begin_run"
    CLICK = "click"
    STOP = "stop"


class StopReason:
    """User-facing termination messages."""
    CANCELED_BEFORE_START = "Canceled before start"
    USER_STOP = "Stopped by user"

    @staticmethod
    def duration_limit(seconds: int) -> str:
        return f"Duration limit reached ({seconds}s)"

    @staticmethod
    def click_limit(clicks: int) -> str:
        return f"Click limit reached ({clicks})"

    @staticmethod
    def idle_timeout(seconds: int) -> str:
        return f"Idle timeout reached ({seconds}s)"

    @staticmethod
    def click_failed(error: object) -> str:
        return f"Click failed: {error}"


@dataclass(frozen=True)
class Decision:
    """
    A single scheduling decision.

    Clean Code: factory methods keep call sites readable
    (``Decision.stop("...")`` instead of keyword soup).
    """
    kind: DecisionKind
    wait_sec: float = 0.0
    at: Optional[float] = None
    reason: Optional[str] = None

    @staticmethod
    def wait(seconds: float) -> "Decision":
        return Decision(DecisionKind.WAIT, wait_sec=max(0.0, seconds))

    @staticmethod
    def begin_run(at: float) -> "Decision":
        return Decision(DecisionKind.BEGIN_RUN, at=at)

    @staticmethod
    def click() -> "Decision":
        return Decision(DecisionKind.CLICK)

    @staticmethod
    def stop(reason: str) -> "Decision":
        return Decision(DecisionKind.STOP, reason=reason)


@dataclass(frozen=True)
class Cadence:
    """Delay settings that may be re-read from live controls on every tick."""
    base_delay_ms: int
    jitter_enabled: bool

    @staticmethod
    def from_form(raw_delay: str, jitter_enabled: bool) -> Optional["Cadence"]:
        """Live cadence from the delay field, or None while it holds no valid delay."""
        try:
            delay = parse_form_int(raw_delay, "Delay", minimum=1)
        except ConfigurationError:
            return None
        if delay == 0:
            return None
        return Cadence(base_delay_ms=delay, jitter_enabled=jitter_enabled)


@dataclass(frozen=True)
class RunConfig:
    """
    Configuration for one clicking run.

    SRP: This class encapsulates all configuration-related validation.
    A RunConfig never changes once a run has started.
    """
    base_delay_ms: int
    jitter_enabled: bool = True
    start_delay_sec: int = 0
    duration_limit_sec: Optional[int] = None
    click_limit: Optional[int] = None
    idle_timeout_sec: int = 0

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.base_delay_ms < 1:
            raise ConfigurationError("Delay must be at least 1 ms")

        if not 0 <= self.start_delay_sec <= MAX_DELAY_SECONDS:
            raise ConfigurationError(f"Start delay must be between 0 and {MAX_DELAY_SECONDS} seconds")

        if self.duration_limit_sec is not None and self.duration_limit_sec < 1:
            raise ConfigurationError("Duration limit must be a positive number of seconds")

        if self.click_limit is not None and self.click_limit < 1:
            raise ConfigurationError("Click limit must be a positive number of clicks")

        if not 0 <= self.idle_timeout_sec <= MAX_DELAY_SECONDS:
            raise ConfigurationError(f"Idle timeout must be between 0 and {MAX_DELAY_SECONDS} seconds")

    @property
    def cadence(self) -> Cadence:
        """The delay settings this run was started with."""
        return Cadence(self.base_delay_ms, self.jitter_enabled)

    def describe(self) -> str:
        """Short human readable summary for status lines."""
        parts = [f"{self.base_delay_ms} ms"]
        if self.jitter_enabled:
            parts.append("±10% jitter")
        if self.start_delay_sec:
            parts.append(f"start in {self.start_delay_sec}s")
        if self.duration_limit_sec:
            parts.append(f"for {self.duration_limit_sec}s")
        if self.click_limit:
            parts.append(f"max {self.click_limit} clicks")
        if self.idle_timeout_sec:
            parts.append(f"idle stop after {self.idle_timeout_sec}s")
        return ", ".join(parts)


@dataclass
class ApplicationSettings:
    """Persisted application preferences."""

    base_delay_ms: int = 100
    jitter_enabled: bool = True
    start_delay_sec: int = 0
    duration_limit_sec: int = 0
    click_limit: int = 0
    idle_timeout_sec: int = 0
    start_hotkey: str = "F6"
    stop_hotkey: str = "F7"

    def to_run_config(self) -> RunConfig:
        """Build a RunConfig; zero limits mean "no limit"."""
        return RunConfig(
            base_delay_ms=self.base_delay_ms,
            jitter_enabled=self.jitter_enabled,
            start_delay_sec=self.start_delay_sec,
            duration_limit_sec=self.duration_limit_sec or None,
            click_limit=self.click_limit or None,
            idle_timeout_sec=self.idle_timeout_sec,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize settings to primitive types for JSON storage."""
        return {
            "base_delay_ms": self.base_delay_ms,
            "jitter_enabled": self.jitter_enabled,
            "start_delay_sec": self.start_delay_sec,
            "duration_limit_sec": self.duration_limit_sec,
            "click_limit": self.click_limit,
            "idle_timeout_sec": self.idle_timeout_sec,
            "start_hotkey": self.start_hotkey,
            "stop_hotkey": self.stop_hotkey,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ApplicationSettings":
        """Create settings instance from JSON dictionary."""
        return ApplicationSettings(
            base_delay_ms=int(data.get("base_delay_ms", 100) or 100),
            jitter_enabled=bool(data.get("jitter_enabled", True)),
            start_delay_sec=int(data.get("start_delay_sec", 0) or 0),
            duration_limit_sec=int(data.get("duration_limit_sec", 0) or 0),
            click_limit=int(data.get("click_limit", 0) or 0),
            idle_timeout_sec=int(data.get("idle_timeout_sec", 0) or 0),
            start_hotkey=str(data.get("start_hotkey", "F6")),
            stop_hotkey=str(data.get("stop_hotkey", "F7")),
        )
