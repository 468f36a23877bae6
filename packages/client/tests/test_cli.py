"""CLI tests — run through click's CliRunner, no network."""

from click.testing import CliRunner

from casesync.cli import main as cli
from casesync.config import Settings


def test_version():
    result = CliRunner().invoke(cli.main, ["--version"])
    assert result.exit_code == 0
    assert "casesync" in result.output


def test_schedule_prints_backoff_table(monkeypatch):
    monkeypatch.setattr(cli, "settings", Settings(ws_url=""))
    result = CliRunner().invoke(cli.main, ["schedule"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[2].split() == ["1", "1s"]
    assert lines[5].split() == ["4", "8s"]
    assert "gives up" in lines[6]


def test_schedule_attempts_override(monkeypatch):
    monkeypatch.setattr(cli, "settings", Settings(ws_url=""))
    result = CliRunner().invoke(cli.main, ["schedule", "--attempts", "2"])
    assert result.exit_code == 0
    assert "gives up" in result.output.splitlines()[3]


def test_events_lists_routes():
    result = CliRunner().invoke(cli.main, ["events"])
    assert result.exit_code == 0
    assert "case-updated" in result.output
    assert "document-summary-ready" in result.output


def test_watch_requires_url(monkeypatch):
    monkeypatch.setattr(cli, "settings", Settings(ws_url=""))
    result = CliRunner().invoke(cli.main, ["watch", "--token", "abc"])
    assert result.exit_code == 1
    assert "--url required" in result.output


def test_watch_requires_token(monkeypatch):
    monkeypatch.delenv("CASESYNC_TOKEN", raising=False)
    result = CliRunner().invoke(cli.main, ["watch", "--url", "wss://api.test"])
    assert result.exit_code == 1
    assert "--token required" in result.output
