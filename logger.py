"""
Status Logger - the run history shown by the console and the GUI.

SRP: collects timestamped status lines. Rendering them is left to the
listener installed by whichever front end is running.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, List, Optional


LEVELS = ("INFO", "WARNING", "ERROR")


@dataclass
class LogEntry:
    message: str
    level: str = "INFO"
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.timestamp:%H:%M:%S}] {self.level}: {self.message}"


LogListener = Callable[[LogEntry], None]


class StatusLogger:
    """
    Bounded in-memory history with a single optional listener.

    Every level helper funnels into ``log``, which is also the signature
    ClickSession expects for its status callback.
    """

    def __init__(self, max_entries: int = 100, listener: Optional[LogListener] = None):
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries)
        self._listener = listener

    def set_listener(self, listener: Optional[LogListener]) -> None:
        self._listener = listener

    def log(self, message: str, level: str = "INFO") -> None:
        level = level.upper()
        entry = LogEntry(message, level if level in LEVELS else "INFO")
        self._entries.append(entry)
        if self._listener is not None:
            self._listener(entry)

    def log_info(self, message: str) -> None:
        self.log(message, "INFO")

    def log_warning(self, message: str) -> None:
        self.log(message, "WARNING")

    def log_error(self, message: str) -> None:
        self.log(message, "ERROR")

    def get_all_logs(self) -> List[LogEntry]:
        """Oldest first."""
        return list(self._entries)

    def clear_logs(self) -> None:
        self._entries.clear()
        self.log_info("Log history cleared")

    def export_logs_to_file(self, filepath: str) -> bool:
        """Write the history as plain text. Returns False if the file cannot be written."""
        lines = [
            "Repeat Clicker - Log Export",
            f"Generated: {datetime.now():%Y-%m-%d %H:%M:%S}",
            "=" * 50,
            "",
        ]
        lines.extend(
            f"[{entry.timestamp:%Y-%m-%d %H:%M:%S}] {entry.level}: {entry.message}"
            for entry in self._entries
        )
        try:
            with open(filepath, "w", encoding="utf-8") as handle:
                handle.write("\n".join(lines) + "\n")
        except OSError:
            return False
        return True
