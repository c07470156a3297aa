"""Tests for the IR command sinks."""
from __future__ import annotations

import logging
import threading
import types
from typing import List

import pytest

from irled_service import ir_link
from irled_service.ir_link import (
    LoggingCommandSink,
    SerialCommandSink,
    SinkError,
    ThreadedCommandSink,
    WebSocketCommandSink,
    create_sink,
)


class _FakeSocket:
    def __init__(self) -> None:
        self.sent: List[str] = []
        self.closed = False

    def send(self, data: str) -> None:
        self.sent.append(data)

    def close(self) -> None:
        self.closed = True


class _WebSocketException(Exception):
    pass


@pytest.fixture()
def fake_websocket(monkeypatch: pytest.MonkeyPatch):
    sockets: List[_FakeSocket] = []
    calls: List[tuple[str, float | None]] = []

    def _create_connection(url: str, timeout: float | None = None) -> _FakeSocket:
        calls.append((url, timeout))
        socket = _FakeSocket()
        sockets.append(socket)
        return socket

    stub = types.SimpleNamespace(
        create_connection=_create_connection,
        WebSocketException=_WebSocketException,
    )
    monkeypatch.setattr(ir_link, "websocket", stub)
    return calls, sockets


def test_websocket_sink_sends_one_message(fake_websocket) -> None:
    calls, sockets = fake_websocket
    sink = WebSocketCommandSink("ws://blaster.local/ir", timeout=1.5)

    sink.send(0x0B)

    assert calls == [("ws://blaster.local/ir", 1.5)]
    assert sockets[0].sent == ["IR 11"]
    assert sockets[0].closed


def test_websocket_sink_wraps_connect_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def _refuse(url: str, timeout: float | None = None):
        raise OSError("connection refused")

    stub = types.SimpleNamespace(create_connection=_refuse, WebSocketException=_WebSocketException)
    monkeypatch.setattr(ir_link, "websocket", stub)

    with pytest.raises(SinkError):
        WebSocketCommandSink("ws://blaster.local/ir").send(0x07)


def test_websocket_sink_requires_endpoint() -> None:
    with pytest.raises(SinkError):
        WebSocketCommandSink("  ")


def test_serial_sink_writes_single_byte() -> None:
    sink = SerialCommandSink(port="loop://")
    try:
        sink.send(0x1B)
        assert sink.active_port == "loop://"
        assert sink._serial.read(1) == b"\x1b"
    finally:
        sink.close()
    assert sink.active_port is None


def test_serial_sink_reports_missing_port(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ir_link.list_ports, "comports", lambda: [])
    with pytest.raises(SinkError):
        SerialCommandSink().send(0x07)


def test_discover_serial_port_prefers_usb(monkeypatch: pytest.MonkeyPatch) -> None:
    ports = [
        types.SimpleNamespace(device="/dev/ttyS0", description="ttyS0"),
        types.SimpleNamespace(device="/dev/ttyUSB0", description="CP2102 USB to UART"),
    ]
    monkeypatch.setattr(ir_link.list_ports, "comports", lambda: ports)
    assert ir_link.discover_serial_port() == "/dev/ttyUSB0"
    assert ir_link.discover_serial_port("/dev/ttyAMA0") == "/dev/ttyAMA0"


def test_codes_outside_byte_range_are_refused() -> None:
    sink = LoggingCommandSink()
    with pytest.raises(ValueError):
        sink.send(256)
    sink.send(4)
    assert list(sink.sent) == [4]


def test_create_sink_by_name() -> None:
    assert isinstance(create_sink("log"), LoggingCommandSink)
    assert isinstance(create_sink("serial", serial_port="loop://"), SerialCommandSink)
    assert isinstance(create_sink("ws", ws_endpoint="ws://host/ir"), WebSocketCommandSink)
    with pytest.raises(SinkError):
        create_sink("carrier-pigeon")


def test_dry_run_log_names_known_codes(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="irled_service.ir_link")
    sink = LoggingCommandSink()
    sink.send(0x12)
    sink.send(0xFE)

    messages = [record.getMessage() for record in caplog.records]
    assert "IR code 0x12 color=magenta (dry run)" in messages
    assert "IR code 0xFE (dry run)" in messages


class _GatedSink:
    """Blocks every send until released."""

    def __init__(self) -> None:
        self.sent: List[int] = []
        self.gate = threading.Event()
        self.closed = False

    def send(self, code: int) -> None:
        self.gate.wait(timeout=5.0)
        if code == 0x66:
            raise SinkError("transmitter unplugged")
        self.sent.append(code)

    def close(self) -> None:
        self.closed = True


def test_threaded_sink_returns_before_transmit_and_keeps_order() -> None:
    gated = _GatedSink()
    sink = ThreadedCommandSink(gated)

    for code in (0x07, 0x09, 0x06):
        sink.send(code)
    assert gated.sent == []

    gated.gate.set()
    sink.close()

    assert gated.sent == [0x07, 0x09, 0x06]
    assert gated.closed is False


def test_threaded_sink_logs_failures_and_keeps_going(caplog: pytest.LogCaptureFixture) -> None:
    gated = _GatedSink()
    gated.gate.set()
    sink = ThreadedCommandSink(gated)

    sink.send(0x66)
    sink.send(0x08)
    sink.close()

    assert gated.sent == [0x08]
    assert any("transmitter unplugged" in record.getMessage() for record in caplog.records)


def test_threaded_sink_validates_and_restarts_after_close() -> None:
    gated = _GatedSink()
    gated.gate.set()
    sink = ThreadedCommandSink(gated)

    with pytest.raises(ValueError):
        sink.send(300)
    sink.close()

    sink.send(0x0B)
    sink.close()
    assert gated.sent == [0x0B]
