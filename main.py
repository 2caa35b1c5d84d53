"""
Main entry point for the Repeat Clicker application.

Resolves the run configuration from the command line and starts either the
console loop or the windowed mode. Exit codes: 0 normal stop, 1 click
failure, 2 invalid configuration (via argparse), 3 environment or counter
file problem.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from lifetime_counter import CounterStoreError, LifetimeCounterStore
from models import MAX_DELAY_SECONDS, ApplicationSettings, ConfigurationError, RunConfig


EXIT_OK = 0
EXIT_CLICK_FAILED = 1
EXIT_ENVIRONMENT_ERROR = 3


def _enable_high_dpi_awareness() -> None:
    if not sys.platform.startswith("win"):
        return

    import ctypes

    try:
        ctypes.windll.shcore.SetProcessDpiAwareness(2)
    except (AttributeError, OSError):
        try:
            ctypes.windll.user32.SetProcessDPIAware()
        except (AttributeError, OSError):
            pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repeat-clicker",
        description="Repeat left mouse clicks at a fixed cadence. Press ESC to stop.",
    )
    parser.add_argument("--mode", choices=("console", "gui"), default="console",
                        help="console loop (default) or windowed mode")
    parser.add_argument("--delay", type=int, metavar="MS",
                        help="delay between clicks in milliseconds (asked for in console mode if omitted)")
    parser.add_argument("--no-jitter", dest="jitter", action="store_false",
                        help="disable the ±10%% random variation of the delay")
    parser.add_argument("--start-delay", type=int, metavar="SEC",
                        help=f"countdown before the first click, 0-{MAX_DELAY_SECONDS}")
    parser.add_argument("--duration", type=int, metavar="SEC",
                        help="stop after this many seconds of clicking")
    parser.add_argument("--clicks", type=int, metavar="N",
                        help="stop after this many clicks")
    parser.add_argument("--idle-timeout", type=int, metavar="SEC",
                        help=f"stop when no key was pressed for this long, 0 disables (max {MAX_DELAY_SECONDS})")
    parser.add_argument("--counter-file", type=Path, metavar="PATH",
                        help="where the lifetime click total is stored")
    return parser


def resolve_config(args: argparse.Namespace, delay_ms: int) -> RunConfig:
    """
    Build the RunConfig for one run.

    Raises:
        ConfigurationError: if any value is out of range
    """
    return RunConfig(
        base_delay_ms=delay_ms,
        jitter_enabled=args.jitter,
        start_delay_sec=args.start_delay or 0,
        duration_limit_sec=args.duration,
        click_limit=args.clicks,
        idle_timeout_sec=args.idle_timeout or 0,
    )


def run_console(args: argparse.Namespace, parser: argparse.ArgumentParser,
                counter_store: LifetimeCounterStore, lifetime_total: int) -> int:
    from click_injector import PyAutoGuiClickInjector
    from clicker_engine import ClickSession
    from console_app import ConsoleClicker, prompt_delay_ms
    from logger import StatusLogger

    try:
        delay_ms = args.delay if args.delay is not None else prompt_delay_ms()
        config = resolve_config(args, delay_ms)
    except ConfigurationError as exc:
        parser.error(str(exc))

    try:
        injector = PyAutoGuiClickInjector()
    except Exception as exc:  # pragma: no cover - display/backend dependent
        print(f"Mouse control unavailable: {exc}", file=sys.stderr)
        return EXIT_ENVIRONMENT_ERROR

    session = ClickSession(config, injector, counter_store, initial_total=lifetime_total)
    clicker = ConsoleClicker(session)
    logger = StatusLogger(listener=clicker.print_log_entry)
    session.register_status_callback(logger.log)

    if not clicker.start_key_watcher():
        logger.log_warning("Keyboard listener unavailable; use Ctrl+C to stop")
    try:
        clicker.run()
    finally:
        clicker.stop_key_watcher()

    return EXIT_CLICK_FAILED if session.failed else EXIT_OK


def prefill_form(app, args: argparse.Namespace) -> None:
    """Let explicit command line values override the saved form values."""
    overrides = [
        (app.delay_var, args.delay),
        (app.start_delay_var, args.start_delay),
        (app.duration_var, args.duration),
        (app.click_limit_var, args.clicks),
        (app.idle_var, args.idle_timeout),
    ]
    for var, value in overrides:
        if value is not None:
            var.set(str(value))
    if not args.jitter:
        app.jitter_var.set(False)


def run_gui(args: argparse.Namespace, parser: argparse.ArgumentParser,
            counter_store: LifetimeCounterStore, lifetime_total: int) -> int:
    from click_injector import PyAutoGuiClickInjector
    from gui import AutoClickerGUI, GuiEnvironmentError, create_root

    delay_ms = args.delay if args.delay is not None else ApplicationSettings().base_delay_ms
    try:
        resolve_config(args, delay_ms)
    except ConfigurationError as exc:
        parser.error(str(exc))

    _enable_high_dpi_awareness()
    try:
        root = create_root()
        injector = PyAutoGuiClickInjector()
    except GuiEnvironmentError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_ENVIRONMENT_ERROR
    except Exception as exc:  # pragma: no cover - display/backend dependent
        print(f"Mouse control unavailable: {exc}", file=sys.stderr)
        return EXIT_ENVIRONMENT_ERROR

    app = AutoClickerGUI(root, injector, counter_store, lifetime_total=lifetime_total)
    prefill_form(app, args)
    root.mainloop()
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    counter_store = LifetimeCounterStore(args.counter_file)
    try:
        lifetime_total = counter_store.load()
    except CounterStoreError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_ENVIRONMENT_ERROR

    if args.mode == "gui":
        return run_gui(args, parser, counter_store, lifetime_total)
    return run_console(args, parser, counter_store, lifetime_total)


if __name__ == "__main__":
    raise SystemExit(main())
