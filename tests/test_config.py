"""Tests for settings conversion, config precedence and CLI parsing"""
import json
from pathlib import Path

import pytest

import config
from settings import Setting, SettingsManager
import sync_cava
from sync_cava import parse_args


# === Setting ===

@pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("On", True), ("no", False), ("", False)])
def test_bool_setting_from_string(raw, expected):
    assert Setting("Flag", bool, False).validate_and_convert(raw) is expected


def test_setting_clamps_to_range():
    setting = Setting("Colors", int, 3, min_val=1, max_val=256)
    assert setting.validate_and_convert("0") == 1
    assert setting.validate_and_convert(1000) == 256
    assert setting.validate_and_convert("16") == 16


def test_setting_rejects_unknown_option():
    setting = Setting("Signal", str, "USR2", options=["USR1", "USR2"])
    assert setting.validate_and_convert("HUP") == "USR2"
    assert setting.validate_and_convert("USR1") == "USR1"


def test_setting_bad_value_falls_back_to_default():
    assert Setting("Interval", float, 1.0).validate_and_convert("soon") == 1.0
    assert Setting("Interval", float, 1.0).validate_and_convert(None) == 1.0


# === SettingsManager ===

def test_settings_defaults_without_file(tmp_path):
    manager = SettingsManager(tmp_path / "settings.json")
    assert manager.get("sync.num_colors") == 3
    assert manager.get("cava.reload_signal") == "USR2"
    assert manager.get("no.such.key", "fallback") == "fallback"
    assert not (tmp_path / "settings.json").exists()


def test_settings_file_overrides_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({
        "sync.poll_interval": "0.5",
        "sync.num_colors": 500,
        "unknown.key": 1,
    }), encoding="utf-8")

    manager = SettingsManager(path)

    assert manager.get("sync.poll_interval") == 0.5
    assert manager.get("sync.num_colors") == 256
    assert manager.get("unknown.key") is None


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_broken_settings_file_uses_defaults(tmp_path, content):
    path = tmp_path / "settings.json"
    path.write_text(content, encoding="utf-8")
    assert SettingsManager(path).get("sync.source") == "playerctl"


# === conf() ===

def test_env_beats_settings(monkeypatch):
    monkeypatch.setenv("SYNC_POLL_INTERVAL", "2.5")
    assert config.conf("sync.poll_interval") == 2.5


def test_env_values_are_converted(monkeypatch):
    monkeypatch.setenv("DEBUG_LOG_TO_CONSOLE", "false")
    assert config.conf("debug.log_to_console") is False


def test_conf_default_for_unknown_key(monkeypatch):
    monkeypatch.delenv("SOME_UNKNOWN_KEY", raising=False)
    assert config.conf("some.unknown_key", 42) == 42


def test_default_cava_path_honours_xdg(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert config.default_cava_config_path() == tmp_path / "cava" / "config"


def test_default_cava_path_without_xdg(monkeypatch):
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    assert config.default_cava_config_path() == Path.home() / ".config" / "cava" / "config"


# === CLI ===

def test_parse_args_defaults():
    args = parse_args([])
    assert args.source in ("playerctl", "spotify")
    assert args.once is False
    assert isinstance(args.config, Path)


def test_parse_args_overrides(tmp_path):
    args = parse_args(["--source", "spotify", "--config", str(tmp_path / "config"),
                       "--colors", "8", "--interval", "0.25", "--once"])
    assert args.source == "spotify"
    assert args.config == tmp_path / "config"
    assert (args.colors, args.interval, args.once) == (8, 0.25, True)


@pytest.mark.parametrize("argv", [
    ["--colors", "0"],
    ["--colors", "257"],
    ["--interval", "-1"],
    ["--source", "winamp"],
])
def test_parse_args_rejects_bad_values(argv):
    with pytest.raises(SystemExit):
        parse_args(argv)


def test_startup_os_error_exits_with_status_2(monkeypatch, cava_config):
    def unwritable_cache(args):
        raise PermissionError(13, "Permission denied", "/root/.cache/spotipy")

    monkeypatch.setattr(sync_cava, "setup_logging", lambda **kwargs: None)
    monkeypatch.setattr(sync_cava, "build_loop", unwritable_cache)

    assert sync_cava.cli(["--once", "--config", str(cava_config)]) == 2
