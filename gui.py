"""
Graphical user interface for the Repeat Clicker application.

Key capabilities
----------------
- Form for delay, jitter, start delay and the three auto-stop limits
- Start/Stop buttons, ESC and global hotkeys
- Self-rescheduling Tk timer: every tick sets the next fire time to the
  delay it just computed, so jitter and live delay edits apply at once
- Mouse movement and key presses over the window count as activity for
  the idle timeout
- Persist form values and hotkeys between sessions
"""

from __future__ import annotations

import threading
import time
import tkinter as tk
from tkinter import ttk, messagebox, scrolledtext
from typing import Callable, Optional

from clicker_engine import ClickInjector, ClickSession, TickResult, next_timer_delay_ms
from hotkey_manager import HotkeyManager
from lifetime_counter import LifetimeCounterStore
from logger import LogEntry, StatusLogger
from models import ApplicationSettings, Cadence, ConfigurationError, RunPhase, parse_form_int
from settings_manager import SettingsManager


class GuiEnvironmentError(RuntimeError):
    """The windowed mode cannot run in this process."""


def create_root() -> tk.Tk:
    """Create the Tk root, refusing to do so off the main thread or without a display."""
    if threading.current_thread() is not threading.main_thread():
        raise GuiEnvironmentError("The windowed mode must be started from the main thread")
    try:
        return tk.Tk()
    except tk.TclError as exc:
        raise GuiEnvironmentError(f"Cannot open a window: {exc}") from exc


class AutoClickerGUI:
    """Tkinter based GUI that hosts one ClickSession at a time."""

    COUNTDOWN_TICK_MS = 250
    DEFAULT_WINDOW_SIZE = (460, 560)

    def __init__(
        self,
        root: tk.Tk,
        injector: ClickInjector,
        counter_store: LifetimeCounterStore,
        settings_manager: Optional[SettingsManager] = None,
        clock: Callable[[], float] = time.monotonic,
        lifetime_total: Optional[int] = None,
    ):
        self.root = root
        self.root.title("Repeat Clicker")
        width, height = self.DEFAULT_WINDOW_SIZE
        self.root.geometry(f"{width}x{height}")
        self.root.minsize(width, height)

        self.settings_manager = settings_manager or SettingsManager()
        self.settings: ApplicationSettings = self.settings_manager.load()

        # Runtime state --------------------------------------------------
        self._injector = injector
        self._counter_store = counter_store
        self._clock = clock
        # Survives failed saves; every new session continues from it.
        self._lifetime_total = counter_store.load() if lifetime_total is None else lifetime_total
        self.session: Optional[ClickSession] = None
        self.tick_job: Optional[str] = None
        self.logger = StatusLogger(listener=self._append_log_entry)
        self.hotkey_manager = HotkeyManager(
            start_hotkey=self.settings.start_hotkey, stop_hotkey=self.settings.stop_hotkey
        )

        # Tk variables ---------------------------------------------------
        self.delay_var = tk.StringVar(value=str(self.settings.base_delay_ms))
        self.jitter_var = tk.BooleanVar(value=self.settings.jitter_enabled)
        self.start_delay_var = tk.StringVar(value=str(self.settings.start_delay_sec))
        self.duration_var = tk.StringVar(value=str(self.settings.duration_limit_sec))
        self.click_limit_var = tk.StringVar(value=str(self.settings.click_limit))
        self.idle_var = tk.StringVar(value=str(self.settings.idle_timeout_sec))
        self.start_hotkey_var = tk.StringVar(value=self.settings.start_hotkey)
        self.stop_hotkey_var = tk.StringVar(value=self.settings.stop_hotkey)
        self.status_var = tk.StringVar(value="Status: Ready")
        self.click_count_var = tk.StringVar(value="Clicks this run: 0")
        self.lifetime_var = tk.StringVar(value=f"Lifetime clicks: {self._lifetime_total}")

        self._build_ui()
        self._bind_events()
        self._setup_hotkeys()
        self.root.protocol("WM_DELETE_WINDOW", self._on_closing)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        container = ttk.Frame(self.root, padding=12)
        container.grid(row=0, column=0, sticky="nsew")
        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)
        container.columnconfigure(0, weight=1)
        container.rowconfigure(3, weight=1)

        self._build_configuration_section(container)
        self._build_controls_section(container)
        self._build_hotkey_section(container)
        self._build_status_section(container)

    def _build_configuration_section(self, parent: ttk.Frame) -> None:
        frame = ttk.LabelFrame(parent, text="Clicking", padding=10)
        frame.grid(row=0, column=0, sticky="ew")
        frame.columnconfigure(1, weight=1)

        rows = [
            ("Delay between clicks (ms)", self.delay_var),
            ("Start delay (s)", self.start_delay_var),
            ("Stop after (s, 0 = never)", self.duration_var),
            ("Stop after clicks (0 = never)", self.click_limit_var),
            ("Idle timeout (s, 0 = off)", self.idle_var),
        ]
        for row, (label, var) in enumerate(rows):
            ttk.Label(frame, text=label).grid(row=row, column=0, sticky="w", pady=2)
            ttk.Entry(frame, textvariable=var, width=10).grid(row=row, column=1, sticky="w", padx=(8, 0))

        ttk.Checkbutton(
            frame, text="Randomize delay by ±10%", variable=self.jitter_var
        ).grid(row=len(rows), column=0, columnspan=2, sticky="w", pady=(6, 0))

    def _build_controls_section(self, parent: ttk.Frame) -> None:
        frame = ttk.Frame(parent, padding=(0, 10))
        frame.grid(row=1, column=0, sticky="ew")
        frame.columnconfigure((0, 1), weight=1)

        self.start_button = ttk.Button(frame, text="Start", command=self._start_clicking)
        self.start_button.grid(row=0, column=0, sticky="ew", padx=(0, 4))
        self.stop_button = ttk.Button(frame, text="Stop (ESC)", command=self._stop_clicking, state=tk.DISABLED)
        self.stop_button.grid(row=0, column=1, sticky="ew", padx=(4, 0))

        ttk.Label(frame, textvariable=self.click_count_var).grid(row=1, column=0, sticky="w", pady=(8, 0))
        ttk.Label(frame, textvariable=self.lifetime_var).grid(row=1, column=1, sticky="e", pady=(8, 0))

    def _build_hotkey_section(self, parent: ttk.Frame) -> None:
        frame = ttk.LabelFrame(parent, text="Global hotkeys", padding=10)
        frame.grid(row=2, column=0, sticky="ew")

        ttk.Label(frame, text="Start").grid(row=0, column=0, sticky="w")
        ttk.Entry(frame, textvariable=self.start_hotkey_var, width=10).grid(row=0, column=1, padx=(6, 12))
        ttk.Label(frame, text="Stop").grid(row=0, column=2, sticky="w")
        ttk.Entry(frame, textvariable=self.stop_hotkey_var, width=10).grid(row=0, column=3, padx=(6, 12))
        ttk.Button(frame, text="Apply", command=self._apply_hotkeys).grid(row=0, column=4)

    def _build_status_section(self, parent: ttk.Frame) -> None:
        frame = ttk.LabelFrame(parent, text="Status & Log", padding=10)
        frame.grid(row=3, column=0, sticky="nsew", pady=(10, 0))
        frame.columnconfigure(0, weight=1)
        frame.rowconfigure(1, weight=1)

        ttk.Label(frame, textvariable=self.status_var).grid(row=0, column=0, sticky="w")

        self.log_text = scrolledtext.ScrolledText(frame, height=8, state=tk.DISABLED, wrap=tk.WORD)
        self.log_text.grid(row=1, column=0, sticky="nsew", pady=(8, 0))

        button_bar = ttk.Frame(frame)
        button_bar.grid(row=2, column=0, sticky="e", pady=(8, 0))
        ttk.Button(button_bar, text="Clear log", command=self._clear_log_output).grid(row=0, column=0, padx=(0, 6))
        ttk.Button(button_bar, text="Export log", command=self._export_logs).grid(row=0, column=1)

    def _bind_events(self) -> None:
        self.root.bind_all("<Motion>", self._on_interaction, add="+")
        self.root.bind_all("<Key>", self._on_interaction, add="+")
        self.root.bind("<Escape>", lambda _event: self._stop_clicking())

    # ------------------------------------------------------------------
    # Form handling
    # ------------------------------------------------------------------
    def _read_form(self) -> ApplicationSettings:
        """Snapshot every control at once so one run never mixes old and new values."""
        return ApplicationSettings(
            base_delay_ms=parse_form_int(self.delay_var.get(), "Delay", minimum=1),
            jitter_enabled=bool(self.jitter_var.get()),
            start_delay_sec=parse_form_int(self.start_delay_var.get(), "Start delay"),
            duration_limit_sec=parse_form_int(self.duration_var.get(), "Duration limit"),
            click_limit=parse_form_int(self.click_limit_var.get(), "Click limit"),
            idle_timeout_sec=parse_form_int(self.idle_var.get(), "Idle timeout"),
            start_hotkey=self.start_hotkey_var.get().strip() or "F6",
            stop_hotkey=self.stop_hotkey_var.get().strip() or "F7",
        )

    def _read_cadence(self) -> Optional[Cadence]:
        """Live delay settings, or None to keep the run's own while the field is being edited."""
        return Cadence.from_form(self.delay_var.get(), bool(self.jitter_var.get()))

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------
    def _start_clicking(self) -> None:
        if self.session and self.session.is_running():
            self._log_message("Clicker is already running.")
            return

        try:
            config = self._read_form().to_run_config()
        except ConfigurationError as exc:
            messagebox.showerror("Invalid configuration", str(exc))
            return

        session = ClickSession(
            config, self._injector, self._counter_store, initial_total=self._lifetime_total
        )
        session.register_status_callback(self._log_message)
        self.session = session
        session.start(self._clock())
        self.start_button.configure(state=tk.DISABLED)
        self.stop_button.configure(state=tk.NORMAL)
        self.click_count_var.set("Clicks this run: 0")
        self._schedule_tick(0)

    def _stop_clicking(self) -> None:
        if not self.session or not self.session.is_running():
            return
        self._cancel_tick()
        self._on_run_finished(self.session.stop())

    def _schedule_tick(self, delay_ms: int) -> None:
        self.tick_job = self.root.after(delay_ms, self._on_tick)

    def _cancel_tick(self) -> None:
        if self.tick_job:
            self.root.after_cancel(self.tick_job)
            self.tick_job = None

    def _on_tick(self) -> None:
        self.tick_job = None
        session = self.session
        if session is None:
            return

        result = session.tick(self._clock(), cadence=self._read_cadence())
        self._refresh_counters()

        delay_ms = next_timer_delay_ms(result, session.phase, self.COUNTDOWN_TICK_MS)
        if delay_ms is None:
            self._on_run_finished(result)
            return

        if session.phase == RunPhase.COUNTDOWN:
            self.status_var.set(f"Status: Starting in {result.delay_sec:.1f}s")
        self._schedule_tick(delay_ms)

    def _on_run_finished(self, result: TickResult) -> None:
        self._refresh_counters()
        self.start_button.configure(state=tk.NORMAL)
        self.stop_button.configure(state=tk.DISABLED)
        self.status_var.set(f"Status: {result.reason}")
        if self.session and self.session.failed:
            messagebox.showerror("Click failed", result.reason or "Click failed")

    def _refresh_counters(self) -> None:
        if not self.session:
            return
        self._lifetime_total = self.session.lifetime_total
        self.click_count_var.set(f"Clicks this run: {self.session.click_count}")
        self.lifetime_var.set(f"Lifetime clicks: {self._lifetime_total}")

    def _on_interaction(self, _event=None) -> None:
        if self.session:
            self.session.record_interaction(self._clock())

    # ------------------------------------------------------------------
    # Hotkeys & logging
    # ------------------------------------------------------------------
    def _setup_hotkeys(self) -> None:
        self.hotkey_manager.register_start_callback(self._handle_hotkey_start)
        self.hotkey_manager.register_stop_callback(self._handle_hotkey_stop)
        if not self.hotkey_manager.enable_hotkeys():
            self._log_message(
                f"Global hotkeys unavailable: {self.hotkey_manager.last_error}", level="WARNING"
            )

    def _apply_hotkeys(self) -> None:
        start = self.start_hotkey_var.get().strip() or "F6"
        stop = self.stop_hotkey_var.get().strip() or "F7"
        if self.hotkey_manager.update_hotkeys(start, stop):
            self._log_message(f"Hotkeys updated: Start={start}, Stop={stop}")
            self._persist_settings()
        else:
            messagebox.showwarning("Hotkeys", self.hotkey_manager.last_error or "Hotkeys could not be updated.")

    def _handle_hotkey_start(self) -> None:
        # Called from the pynput thread; hand over to Tk.
        self.root.after(0, self._start_clicking)

    def _handle_hotkey_stop(self) -> None:
        self.root.after(0, self._stop_clicking)

    def _log_message(self, message: str, level: str = "INFO") -> None:
        self.logger.log(message, level)
        self.status_var.set(f"Status: {message}")

    def _append_log_entry(self, entry: LogEntry) -> None:
        self.log_text.configure(state=tk.NORMAL)
        self.log_text.insert(tk.END, f"{entry}\n")
        self.log_text.see(tk.END)
        self.log_text.configure(state=tk.DISABLED)

    def _clear_log_output(self) -> None:
        self.log_text.configure(state=tk.NORMAL)
        self.log_text.delete("1.0", tk.END)
        self.log_text.configure(state=tk.DISABLED)
        self.logger.clear_logs()

    def _export_logs(self) -> None:
        from tkinter import filedialog

        path = filedialog.asksaveasfilename(
            defaultextension=".txt",
            filetypes=[("Text files", "*.txt"), ("All files", "*.*")],
        )
        if not path:
            return
        if self.logger.export_logs_to_file(path):
            messagebox.showinfo("Export", "Log exported.")
        else:
            messagebox.showerror("Export", "Log could not be exported.")

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------
    def _persist_settings(self) -> None:
        try:
            self.settings = self._read_form()
        except ConfigurationError:
            # Keep the last valid values rather than storing a half-typed form.
            return
        try:
            self.settings_manager.save(self.settings)
        except OSError as exc:
            self._log_message(f"Settings not saved: {exc}", level="WARNING")

    def _on_closing(self) -> None:
        self._stop_clicking()
        self.hotkey_manager.disable_hotkeys()
        self._persist_settings()
        self.root.destroy()
