"""Tests for the typer command-line interface."""
from __future__ import annotations

from typing import List

import pytest
from typer.testing import CliRunner

from irled_service import cli
from irled_service.config import ServiceSettings

runner = CliRunner()


def test_codes_lists_table() -> None:
    result = runner.invoke(cli.app, ["codes"])
    assert result.exit_code == 0
    assert "0x04    4  Brightness-Down" in result.output
    assert "0x1B   27  Smooth" in result.output


def test_docs_for_category() -> None:
    result = runner.invoke(cli.app, ["docs", "color"])
    assert result.exit_code == 0
    assert "   - dark-orchid" in result.output


def test_docs_without_category_lists_routes() -> None:
    result = runner.invoke(cli.app, ["docs"])
    assert result.exit_code == 0
    assert "/cached-state" in result.output


def test_docs_rejects_unknown_category() -> None:
    result = runner.invoke(cli.app, ["docs", "volume"])
    assert result.exit_code != 0


def test_send_uses_configured_sink(monkeypatch: pytest.MonkeyPatch, sink) -> None:
    requested: List[str] = []

    def _create_sink(kind: str, **_: object):
        requested.append(kind)
        return sink

    monkeypatch.setattr(cli, "create_sink", _create_sink)
    result = runner.invoke(cli.app, ["send", "color", "red", "--sink", "serial"])

    assert result.exit_code == 0
    assert "sent 0x09" in result.output
    assert requested == ["serial"]
    assert sink.sent == [0x09]
    assert sink.closed


def test_send_rejects_invalid_value(monkeypatch: pytest.MonkeyPatch, sink) -> None:
    monkeypatch.setattr(cli, "create_sink", lambda *_, **__: sink)
    result = runner.invoke(cli.app, ["send", "raw", "300"])

    assert result.exit_code == 2
    assert sink.sent == []


def test_serve_applies_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: List[ServiceSettings] = []
    monkeypatch.setattr(cli, "run_server", captured.append)
    monkeypatch.setattr(cli.logging, "basicConfig", lambda **_: None)

    result = runner.invoke(cli.app, ["serve", "--port", "8080", "--sink", "ws", "--ws-endpoint", "ws://b/ir"])

    assert result.exit_code == 0
    assert captured[0].http_port == 8080
    assert captured[0].sink == "ws"
    assert captured[0].ws_endpoint == "ws://b/ir"


def test_main_returns_exit_code(monkeypatch: pytest.MonkeyPatch, sink) -> None:
    monkeypatch.setattr(cli, "create_sink", lambda *_, **__: sink)
    assert cli.main(["send", "power", "on"]) == 0
    assert cli.main(["send", "power", "sideways"]) == 2
