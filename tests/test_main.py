"""Tests for main - command line resolution and hotkey parsing."""
import pytest

import main
from hotkey_manager import HotkeyManager
from models import ConfigurationError


class TestResolveConfig:
    def parse(self, *argv):
        return main.build_parser().parse_args(list(argv))

    def test_defaults(self):
        args = self.parse()
        assert args.mode == "console"
        assert args.delay is None
        config = main.resolve_config(args, 100)
        assert config.jitter_enabled is True
        assert config.start_delay_sec == 0
        assert config.idle_timeout_sec == 0
        assert config.click_limit is None
        assert config.duration_limit_sec is None

    def test_all_flags(self):
        args = self.parse("--mode", "gui", "--delay", "40", "--no-jitter", "--start-delay", "3",
                          "--duration", "60", "--clicks", "500", "--idle-timeout", "30")
        config = main.resolve_config(args, args.delay)
        assert args.mode == "gui"
        assert config.base_delay_ms == 40
        assert config.jitter_enabled is False
        assert config.start_delay_sec == 3
        assert config.duration_limit_sec == 60
        assert config.click_limit == 500
        assert config.idle_timeout_sec == 30

    def test_invalid_limit(self):
        args = self.parse("--clicks", "0")
        with pytest.raises(ConfigurationError):
            main.resolve_config(args, 10)

    def test_invalid_delay_exits_with_usage_error(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main.main(["--delay", "0", "--counter-file", str(tmp_path / "c.txt")])
        assert excinfo.value.code == 2
        assert "Delay must be at least 1 ms" in capsys.readouterr().err

    def test_malformed_counter_is_fatal(self, tmp_path, capsys):
        counter = tmp_path / "c.txt"
        counter.write_text("garbage", encoding="utf-8")
        assert main.main(["--delay", "10", "--counter-file", str(counter)]) == main.EXIT_ENVIRONMENT_ERROR
        assert "not a number" in capsys.readouterr().err


class TestHotkeyParsing:
    @pytest.mark.parametrize("raw, expected", [
        ("F6", "<f6>"),
        ("ctrl+F7", "<ctrl>+<f7>"),
        ("Control + Shift + a", "<ctrl>+<shift>+a"),
        ("win+esc", "<cmd>+<esc>"),
    ])
    def test_to_pynput_hotkey(self, raw, expected):
        assert HotkeyManager.to_pynput_hotkey(raw) == expected

    def test_empty_hotkey_rejected(self):
        with pytest.raises(ValueError):
            HotkeyManager.to_pynput_hotkey("  ")

    def test_hotkey_map_uses_registered_callbacks(self):
        manager = HotkeyManager("F8", "F9")
        start, stop = object(), object()
        manager.register_start_callback(start)
        manager.register_stop_callback(stop)
        assert manager.build_hotkey_map() == {"<f8>": start, "<f9>": stop}

    def test_invalid_update_keeps_old_binding(self):
        manager = HotkeyManager("F6", "F7")
        assert not manager.update_hotkeys("F8", "")
        assert (manager.start_hotkey, manager.stop_hotkey) == ("F6", "F7")
        assert "Invalid hotkey" in manager.last_error
