"""JSON persistence of the GUI form and hotkeys, plus the shared atomic writer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from models import ApplicationSettings


def write_text_atomically(path: Path, text: str) -> None:
    """Write through a ``.tmp`` sibling so readers never see a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    staging = path.with_suffix(".tmp")
    staging.write_text(text, encoding="utf-8")
    staging.replace(path)


class SettingsManager:
    """Keeps ApplicationSettings in ``settings.json`` beside the program."""

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = Path(storage_path) if storage_path else (
            Path(__file__).resolve().parent / "settings.json"
        )

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def load(self) -> ApplicationSettings:
        """Missing file: defaults. Unreadable file: renamed to ``.bak``, then defaults."""
        if not self._storage_path.exists():
            return ApplicationSettings()

        try:
            data = json.loads(self._storage_path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            return ApplicationSettings.from_dict(data)
        except (OSError, ValueError, TypeError):
            self._quarantine()
            return ApplicationSettings()

    def save(self, settings: ApplicationSettings) -> None:
        write_text_atomically(self._storage_path, json.dumps(settings.to_dict(), indent=2))

    def _quarantine(self) -> None:
        try:
            self._storage_path.replace(self._storage_path.with_suffix(".bak"))
        except OSError:
            # The defaults are still usable without a backup copy.
            pass
