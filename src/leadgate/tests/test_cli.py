"""Tests for the command-line entry point."""

from __future__ import annotations

import orjson
from typer.testing import CliRunner

from leadgate import __version__
from leadgate.cli import app

runner = CliRunner()


def test_tools_needs_no_credential(registry) -> None:
    result = runner.invoke(app, ["tools"])
    assert result.exit_code == 0
    catalog = orjson.loads(result.stdout)
    assert [t["name"] for t in catalog] == list(registry.names())
    assert all("inputSchema" in t for t in catalog)


def test_tool_names() -> None:
    result = runner.invoke(app, ["tools", "--names"])
    assert result.exit_code == 0
    assert result.stdout.split()[0] == "campaign_list"


def test_serve_without_api_key_exits_1(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["serve"])
    assert result.exit_code == 1


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.stdout.strip() == __version__
