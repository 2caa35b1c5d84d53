"""Persistence for the cross-run lifetime click total."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from settings_manager import write_text_atomically


DEFAULT_COUNTER_PATH = Path.home() / ".repeat_clicker" / "lifetime_clicks.txt"


class CounterStoreError(Exception):
    """The counter file could not be read, parsed or written."""


class LifetimeCounterStore:
    """Loads and saves a single non-negative integer as plain text."""

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = Path(storage_path) if storage_path else DEFAULT_COUNTER_PATH

    @property
    def storage_path(self) -> Path:
        """Absolute path to the counter file."""
        return self._storage_path

    def load(self) -> int:
        """Return the stored total, 0 if the file is missing or empty."""
        path = self.storage_path
        if not path.exists():
            return 0

        try:
            content = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise CounterStoreError(f"Cannot read click counter {path}: {exc}") from exc

        if not content:
            return 0

        try:
            value = int(content)
        except ValueError as exc:
            raise CounterStoreError(f"Click counter {path} is not a number: {content!r}") from exc

        if value < 0:
            raise CounterStoreError(f"Click counter {path} is negative: {value}")
        return value

    def save(self, value: int) -> None:
        """Persist the total atomically, creating parent directories as needed."""
        if value < 0:
            raise CounterStoreError(f"Refusing to store negative click count {value}")

        path = self.storage_path
        try:
            write_text_atomically(path, f"{value}\n")
        except OSError as exc:
            raise CounterStoreError(f"Cannot write click counter {path}: {exc}") from exc
