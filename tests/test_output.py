"""Tests for rendering of command results and status lines."""

from __future__ import annotations

import json

import pytest

from agricache import output as output_module
from agricache.models import CacheStats, EntryInfo
from agricache.output import (
    OutputFormat,
    OutputManager,
    flatten_config,
    format_duration,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("agricache.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("agricache.output._is_tty", lambda: True)


@pytest.fixture()
def color_env(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm-256color")


def _manager(fmt: OutputFormat, **kwargs) -> OutputManager:
    return OutputManager(format=fmt, no_color=True, **kwargs)


ENTRIES = [
    EntryInfo(key="weather_Pune", size=120, expires_in_ms=1_799_000),
    EntryInfo(key="posts_{}", size=80, expires_in_ms=-5),
    EntryInfo(key="broken", size=30, expires_in_ms=None),
]

STATS = CacheStats(
    prefix="agri_compass_cache_", entries=2, size=50, max_size=100, default_ttl_ms=300_000
)


class TestFormatDuration:
    @pytest.mark.parametrize(
        "ms, expected",
        [
            (None, "corrupt"),
            (-1, "expired"),
            (0, "<1s"),
            (999, "<1s"),
            (1_000, "1s"),
            (299_000, "4m 59s"),
            (1_800_000, "30m"),
            (7_200_000, "2h"),
            (90_061_000, "1d 1h 1m 1s"),
        ],
    )
    def test_rendering(self, ms, expected) -> None:
        assert format_duration(ms) == expected


class TestFlattenConfig:
    def test_nested_sections_become_dotted_keys(self) -> None:
        data = {"cache": {"prefix": "p_", "max_size": 10}, "network": {"probe_url": None}}
        assert flatten_config(data) == [
            ("cache.prefix", "p_"),
            ("cache.max_size", 10),
            ("network.probe_url", None),
        ]


class TestFormatResolution:
    def test_auto_is_plain_when_piped(self, non_tty, color_env) -> None:
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_is_rich_on_colour_terminal(self, tty, color_env) -> None:
        assert OutputManager().format == OutputFormat.RICH

    @pytest.mark.parametrize("env, value", [("NO_COLOR", ""), ("TERM", "dumb")])
    def test_auto_is_plain_when_colour_disabled(self, tty, color_env, monkeypatch, env, value) -> None:
        monkeypatch.setenv(env, value)
        assert OutputManager().format == OutputFormat.PLAIN

    def test_no_color_flag(self, tty, color_env) -> None:
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_format_kept(self, tty) -> None:
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestShowValue:
    def test_json_envelope(self, capfd, non_tty) -> None:
        _manager(OutputFormat.JSON).show_value("weather_Pune", {"temp": 31}, 60_000)
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {
            "key": "weather_Pune",
            "data": {"temp": 31},
            "expires_in_ms": 60_000,
        }
        assert captured.err == ""

    def test_plain_string_with_expiry_on_stderr(self, capfd, non_tty) -> None:
        _manager(OutputFormat.PLAIN).show_value("note", "hello", 1_800_000)
        captured = capfd.readouterr()
        assert captured.out == "hello\n"
        assert "note expires in 30m" in captured.err

    def test_plain_structured_value_is_json(self, capfd, non_tty) -> None:
        _manager(OutputFormat.PLAIN).show_value("k", {"crop": "ज्वार"}, 0)
        assert json.loads(capfd.readouterr().out) == {"crop": "ज्वार"}

    def test_quiet_hides_expiry_only(self, capfd, non_tty) -> None:
        _manager(OutputFormat.PLAIN, quiet=True).show_value("k", [1, 2], 5_000)
        captured = capfd.readouterr()
        assert json.loads(captured.out) == [1, 2]
        assert captured.err == ""

    def test_rich_panel(self, capfd, non_tty) -> None:
        _manager(OutputFormat.RICH).show_value("weather_Pune", {"temp": 31}, 299_000)
        out = capfd.readouterr().out
        assert "weather_Pune" in out
        assert "temp" in out
        assert "expires in 4m 59s" in out


class TestShowEntries:
    def test_json(self, capfd, non_tty) -> None:
        _manager(OutputFormat.JSON).show_entries(ENTRIES)
        data = json.loads(capfd.readouterr().out)
        assert data[0] == {"key": "weather_Pune", "size": 120, "expires_in_ms": 1_799_000}
        assert data[2]["expires_in_ms"] is None

    def test_plain(self, capfd, non_tty) -> None:
        _manager(OutputFormat.PLAIN).show_entries(ENTRIES)
        assert capfd.readouterr().out.splitlines() == [
            "key\tsize\texpires_in",
            "weather_Pune\t120\t29m 59s",
            "posts_{}\t80\texpired",
            "broken\t30\tcorrupt",
        ]

    def test_rich(self, capfd, non_tty) -> None:
        _manager(OutputFormat.RICH).show_entries(ENTRIES)
        out = capfd.readouterr().out
        assert "Cached entries" in out
        for text in ("weather_Pune", "29m 59s", "expired", "corrupt"):
            assert text in out

    def test_empty_listing(self, capfd, non_tty) -> None:
        _manager(OutputFormat.JSON).show_entries([])
        assert json.loads(capfd.readouterr().out) == []


class TestShowStats:
    def test_json_includes_usage(self, capfd, non_tty) -> None:
        _manager(OutputFormat.JSON).show_stats(STATS)
        data = json.loads(capfd.readouterr().out)
        assert data["entries"] == 2
        assert data["usage"] == 0.5

    def test_plain(self, capfd, non_tty) -> None:
        _manager(OutputFormat.PLAIN).show_stats(STATS)
        lines = capfd.readouterr().out.splitlines()
        assert "prefix\tagri_compass_cache_" in lines
        assert "usage\t50.00%" in lines
        assert "default_ttl\t5m" in lines

    def test_rich(self, capfd, non_tty) -> None:
        _manager(OutputFormat.RICH).show_stats(STATS)
        out = capfd.readouterr().out
        assert "agri_compass_cache_" in out
        assert "50.00%" in out


class TestShowConfig:
    CONFIG = {"cache": {"max_size": 100}, "network": {"probe_url": None}}

    def test_json_keeps_nesting(self, capfd, non_tty) -> None:
        _manager(OutputFormat.JSON).show_config(self.CONFIG)
        assert json.loads(capfd.readouterr().out) == self.CONFIG

    def test_plain_dotted(self, capfd, non_tty) -> None:
        _manager(OutputFormat.PLAIN).show_config(self.CONFIG)
        assert capfd.readouterr().out.splitlines() == [
            "cache.max_size\t100",
            "network.probe_url\t",
        ]

    def test_rich(self, capfd, non_tty) -> None:
        _manager(OutputFormat.RICH).show_config(self.CONFIG)
        assert "cache.max_size" in capfd.readouterr().out


class TestStatusLines:
    @pytest.mark.parametrize("method", ["info", "success", "warning", "error"])
    def test_go_to_stderr(self, capfd, non_tty, method) -> None:
        getattr(_manager(OutputFormat.PLAIN), method)("swept 3 entries")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "swept 3 entries" in captured.err

    def test_labels(self, capfd, non_tty) -> None:
        mgr = _manager(OutputFormat.PLAIN)
        mgr.error("store closed")
        mgr.warning("store rejected 'k'")
        err = capfd.readouterr().err
        assert "Error: store closed" in err
        assert "Warning: store rejected 'k'" in err

    def test_quiet_keeps_warnings_and_errors(self, capfd, non_tty) -> None:
        mgr = _manager(OutputFormat.PLAIN, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden")
        mgr.warning("shown")
        mgr.error("shown too")
        err = capfd.readouterr().err
        assert "hidden" not in err
        assert "shown" in err
        assert "shown too" in err

    def test_brackets_in_keys_are_not_markup(self, capfd, non_tty, color_env) -> None:
        OutputManager(format=OutputFormat.PLAIN).success("Cached 'posts_[bold]'")
        assert "Cached 'posts_[bold]'" in capfd.readouterr().err


class TestGlobalInstance:
    def test_default_created_lazily(self, non_tty) -> None:
        reset_output()
        assert get_output() is get_output()

    def test_module_helpers_use_installed_manager(self, capfd, non_tty) -> None:
        set_output(_manager(OutputFormat.PLAIN))
        output_module.error("boom")
        assert "Error: boom" in capfd.readouterr().err

    def test_reset(self, non_tty) -> None:
        mgr = _manager(OutputFormat.JSON)
        set_output(mgr)
        reset_output()
        assert get_output() is not mgr
