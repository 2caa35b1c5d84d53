"""Global start/stop hotkeys for the windowed mode, built on pynput."""

from __future__ import annotations

from typing import Callable, Dict, Optional

try:
    from pynput import keyboard  # type: ignore
except Exception:  # pragma: no cover - environment dependent
    keyboard = None  # type: ignore


Callback = Callable[[], None]

# User-facing modifier names mapped to pynput's bracketed key names.
MODIFIERS: Dict[str, str] = {
    "ctrl": "<ctrl>",
    "control": "<ctrl>",
    "alt": "<alt>",
    "option": "<alt>",
    "shift": "<shift>",
    "win": "<cmd>",
    "cmd": "<cmd>",
    "command": "<cmd>",
    "super": "<cmd>",
    "esc": "<esc>",
    "escape": "<esc>",
}


def _translate_token(token: str) -> str:
    if token in MODIFIERS:
        return MODIFIERS[token]
    if len(token) > 1 and token[0] == "f" and token[1:].isdigit():
        return f"<{token}>"
    return token


class HotkeyManager:
    """
    Owns one pynput ``GlobalHotKeys`` listener for the start and stop keys.

    Callbacks fire on the listener thread; callers marshal them onto their
    own thread. ``last_error`` explains the most recent failed enable or update.
    """

    def __init__(self, start_hotkey: str = "F6", stop_hotkey: str = "F7") -> None:
        self._bindings: Dict[str, str] = {"start": start_hotkey, "stop": stop_hotkey}
        self._callbacks: Dict[str, Callback] = {}
        self._listener = None
        self.last_error: Optional[str] = None

    @property
    def start_hotkey(self) -> str:
        return self._bindings["start"]

    @property
    def stop_hotkey(self) -> str:
        return self._bindings["stop"]

    def is_enabled(self) -> bool:
        return self._listener is not None

    def register_start_callback(self, callback: Callback) -> None:
        self._callbacks["start"] = callback

    def register_stop_callback(self, callback: Callback) -> None:
        self._callbacks["stop"] = callback

    def build_hotkey_map(self) -> Dict[str, Callback]:
        return {
            self.to_pynput_hotkey(self._bindings[action]): callback
            for action, callback in self._callbacks.items()
        }

    def enable_hotkeys(self) -> bool:
        if self._listener is not None:
            return True
        if keyboard is None:
            self.last_error = "pynput keyboard backend not available"
            return False

        try:
            hotkey_map = self.build_hotkey_map()
        except ValueError as exc:
            self.last_error = f"Invalid hotkey: {exc}"
            return False
        if not hotkey_map:
            self.last_error = "No hotkey callbacks registered"
            return False

        try:
            listener = keyboard.GlobalHotKeys(hotkey_map)
            listener.start()
        except Exception as exc:  # pragma: no cover - system specific
            self.last_error = f"Could not register hotkeys: {exc}"
            return False

        self._listener = listener
        self.last_error = None
        return True

    def disable_hotkeys(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None

    def update_hotkeys(self, start_hotkey: str, stop_hotkey: str) -> bool:
        """Rebind both keys. Invalid definitions leave the current binding untouched."""
        try:
            self.to_pynput_hotkey(start_hotkey)
            self.to_pynput_hotkey(stop_hotkey)
        except ValueError as exc:
            self.last_error = f"Invalid hotkey: {exc}"
            return False

        restart = self.is_enabled()
        self.disable_hotkeys()
        self._bindings = {"start": start_hotkey, "stop": stop_hotkey}
        return self.enable_hotkeys() if restart else True

    @staticmethod
    def to_pynput_hotkey(hotkey: str) -> str:
        """``"Ctrl + F6"`` -> ``"<ctrl>+<f6>"``."""
        tokens = hotkey.lower().replace("+", " ").split()
        if not tokens:
            raise ValueError("Empty hotkey string")
        return "+".join(_translate_token(token) for token in tokens)
