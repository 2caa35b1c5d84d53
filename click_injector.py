"""Native left-click injection built on top of pyautogui."""


class ClickInjectionError(Exception):
    """The operating system did not accept the synthetic click."""


class PyAutoGuiClickInjector:
    """Sends one left-button press/release pair at the current cursor position."""

    def __init__(self) -> None:
        # pyautogui talks to the display on import; keep that out of module import.
        import pyautogui  # type: ignore

        self._pyautogui = pyautogui
        pyautogui.FAILSAFE = True  # Move mouse to corner to stop
        pyautogui.PAUSE = 0.0  # Cadence is owned by the scheduler, not pyautogui

    def send_click(self) -> None:
        try:
            self._pyautogui.click(button="left")
        except Exception as exc:
            raise ClickInjectionError(str(exc) or exc.__class__.__name__) from exc
