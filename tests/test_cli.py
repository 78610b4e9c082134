"""Tests for the timekeeper CLI via typer's CliRunner."""

from __future__ import annotations

import json
import logging

import pytest
import structlog
from typer.testing import CliRunner

from timekeeper import __version__
from timekeeper.cli import app
from timekeeper.logging import configure_logging

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Route logs to stderr at WARNING so stdout carries only command output."""
    root = logging.getLogger()
    level, handlers = root.level, root.handlers[:]
    configure_logging(level="WARNING", json_format=True)
    monkeypatch.setattr("timekeeper.cli.configure_logging", lambda **_: None)
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


# ─── now ─────────────────────────────────────────────────────────────────


class TestNow:
    def test_default_pattern(self):
        result = runner.invoke(app, ["now", "--timezone", "UTC"])
        assert result.exit_code == 0
        assert "UTC" in result.stdout

    def test_short_pattern(self):
        result = runner.invoke(app, ["now", "-z", "Asia/Seoul", "-f", "HH:mm"])
        assert result.exit_code == 0
        hh, mm = result.stdout.split()[0].split(":")
        assert 0 <= int(hh) < 24 and 0 <= int(mm) < 60

    def test_json(self):
        result = runner.invoke(app, ["now", "-z", "UTC", "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["timezone"] == "UTC"
        assert payload["iso"].endswith("+00:00")

    def test_unknown_timezone(self):
        result = runner.invoke(app, ["now", "-z", "Mars/Olympus"])
        assert result.exit_code == 1

    def test_unknown_pattern(self):
        result = runner.invoke(app, ["now", "-f", "hh"])
        assert result.exit_code != 0


# ─── watch ───────────────────────────────────────────────────────────────


class TestWatch:
    def test_stops_after_count(self):
        result = runner.invoke(
            app, ["watch", "-z", "UTC", "--align", "second", "-n", "1", "--no-visibility"]
        )
        assert result.exit_code == 0
        assert "second" in result.stdout
        assert "stopped after 1 tick(s)" in result.stdout

    def test_json_ticks(self):
        result = runner.invoke(
            app, ["watch", "-z", "UTC", "-a", "second", "-n", "1", "--no-visibility", "--json"]
        )
        assert result.exit_code == 0
        tick = json.loads(result.stdout)
        assert tick["kind"] == "second"
        assert tick["zoned_instant"].endswith("+00:00")

    def test_invalid_timezone(self):
        result = runner.invoke(app, ["watch", "-z", "Mars/Olympus", "-n", "1"])
        assert result.exit_code == 1

    def test_negative_threshold_rejected(self):
        result = runner.invoke(app, ["watch", "--drift-threshold-ms", "-1", "-n", "1"])
        assert result.exit_code != 0


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout
