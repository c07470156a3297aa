"""Transports that hand single command codes to the IR transmitter.

Every sink is fire-and-forget: ``send`` writes one byte-sized code and returns
without waiting for any acknowledgement, since the strip cannot report back.
Available sinks:
* ``SerialCommandSink`` writes the code as one byte to a serial-attached IR
  transmitter (port auto-discovery when none is configured)
* ``WebSocketCommandSink`` forwards ``IR <code>`` to a networked IR blaster
* ``LoggingCommandSink`` only logs, for dry runs

``ThreadedCommandSink`` wraps any of them so that ``send`` only enqueues and a
single worker thread talks to the transmitter.
"""
from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from typing import Any, Deque, Optional, Protocol, Tuple

import serial  # type: ignore
import websocket  # type: ignore
from serial.tools import list_ports  # type: ignore

from .commands import RAW_MAX, RAW_MIN, describe_code

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 9600
DEFAULT_WS_TIMEOUT = 2.0
# One byte takes about 1 ms at 9600 baud; never wait longer than this.
DEFAULT_WRITE_TIMEOUT = 0.5
DEFAULT_DRAIN_TIMEOUT = 5.0
SINK_SERIAL = "serial"
SINK_WEBSOCKET = "ws"
SINK_LOG = "log"


class SinkError(RuntimeError):
    """Raised when a command code cannot be handed to the transmitter."""


class CommandSink(Protocol):
    def send(self, code: int) -> None:
        ...

    def close(self) -> None:
        ...


def _check_code(code: int) -> int:
    if not isinstance(code, int) or code < RAW_MIN or code > RAW_MAX:
        raise ValueError(f"command code must be an integer in [{RAW_MIN}, {RAW_MAX}], got {code!r}")
    return code


def discover_serial_port(preferred: Optional[str] = None) -> str:
    """Locate the serial port of the IR transmitter.

    Args:
        preferred: explicit port name requested by the operator.

    Returns:
        The port path as understood by pyserial (e.g. "/dev/ttyUSB0").

    Raises:
        SinkError: if no suitable port can be found.
    """

    if preferred:
        return preferred

    ports = list(list_ports.comports())
    if not ports:
        raise SinkError("No serial devices detected. Set IRLED_SERIAL_PORT explicitly.")

    # Prefer USB bridges commonly used by IR transmitter boards.
    for candidate in ports:
        description = (candidate.description or "").lower()
        if any(keyword in description for keyword in ("usb", "cp210", "ch34", "ftdi", "arduino")):
            return candidate.device

    return ports[0].device


class SerialCommandSink:
    """Writes each command code as a single byte to a serial port."""

    def __init__(self, port: Optional[str] = None, baudrate: int = DEFAULT_BAUDRATE) -> None:
        self._requested_port = port
        self._baudrate = baudrate
        self._serial: Optional[Any] = None
        self._active_port: Optional[str] = None
        self._lock = threading.RLock()

    def open(self) -> None:
        """Open the serial port if it is not already open."""

        with self._lock:
            if self._serial is not None and self._serial.is_open:
                return

            port_path = discover_serial_port(self._requested_port)
            try:
                open_serial = getattr(serial, "serial_for_url", serial.Serial)
                self._serial = open_serial(
                    port_path,
                    baudrate=self._baudrate,
                    write_timeout=DEFAULT_WRITE_TIMEOUT,
                )
            except (serial.SerialException, OSError) as exc:
                self._serial = None
                self._active_port = None
                raise SinkError(f"could not open port {port_path}: {exc}") from exc
            self._active_port = port_path
            logger.info("IR transmitter attached on %s at %d baud", port_path, self._baudrate)

    def close(self) -> None:
        with self._lock:
            if self._serial is not None and self._serial.is_open:
                self._serial.close()
            self._serial = None
            self._active_port = None

    @property
    def active_port(self) -> Optional[str]:
        return self._active_port

    def send(self, code: int) -> None:
        payload = bytes([_check_code(code)])
        with self._lock:
            self.open()
            try:
                self._serial.write(payload)
            except (serial.SerialException, OSError) as exc:
                port = self._active_port
                self.close()
                raise SinkError(f"write to {port} failed: {exc}") from exc
        logger.debug("Sent code 0x%02X over serial", code)


class WebSocketCommandSink:
    """Forwards command codes to a networked IR blaster over WebSocket."""

    def __init__(self, url: str, timeout: float = DEFAULT_WS_TIMEOUT) -> None:
        if not url or not url.strip():
            raise SinkError("WebSocket endpoint is not configured; set IRLED_WS_ENDPOINT.")
        self._url = url.strip()
        self._timeout = timeout

    @property
    def url(self) -> str:
        return self._url

    def send(self, code: int) -> None:
        message = f"IR {_check_code(code)}"
        try:
            ws = websocket.create_connection(self._url, timeout=self._timeout)
        except (websocket.WebSocketException, OSError) as exc:
            raise SinkError(f"WebSocket connect to {self._url} failed: {exc}") from exc

        try:
            ws.send(message)
        except (websocket.WebSocketException, OSError) as exc:
            raise SinkError(f"WebSocket send to {self._url} failed: {exc}") from exc
        finally:
            try:
                ws.close()
            except (websocket.WebSocketException, OSError):  # pragma: no cover - best effort cleanup
                logger.debug("WebSocket close failed", exc_info=True)
        logger.debug("Sent code 0x%02X to %s", code, self._url)

    def close(self) -> None:
        """Connections are per command; nothing to release."""


class LoggingCommandSink:
    """Dry-run sink that only records the codes it was given."""

    def __init__(self, history: int = 64) -> None:
        self.sent: Deque[int] = deque(maxlen=history)

    def send(self, code: int) -> None:
        self.sent.append(_check_code(code))
        known = describe_code(code)
        if known is None:
            logger.info("IR code 0x%02X (dry run)", code)
        else:
            category, token = known
            logger.info("IR code 0x%02X %s=%s (dry run)", code, category.value, token)

    def close(self) -> None:
        self.sent.clear()


class ThreadedCommandSink:
    """Forwards codes to a wrapped sink from one background worker thread.

    ``send`` validates and enqueues, then returns at once; the worker hands
    codes to the wrapped sink in submission order. Transmit failures are logged
    by the worker. ``close`` drains what is queued and stops the worker but
    leaves the wrapped sink open, since its owner closes it.
    """

    def __init__(self, sink: CommandSink, *, drain_timeout: Optional[float] = DEFAULT_DRAIN_TIMEOUT) -> None:
        self._sink = sink
        self._drain_timeout = drain_timeout
        self._lock = threading.Lock()
        self._queue: Optional["queue.Queue[Optional[int]]"] = None
        self._thread: Optional[threading.Thread] = None

    def send(self, code: int) -> None:
        _check_code(code)
        with self._lock:
            if self._queue is None:
                # Each worker gets its own queue so a restart never shares a sentinel.
                self._queue = queue.Queue()
                self._thread = threading.Thread(
                    target=self._work,
                    args=(self._queue,),
                    name="irled-sink",
                    daemon=True,
                )
                self._thread.start()
            self._queue.put(code)

    def _work(self, pending: "queue.Queue[Optional[int]]") -> None:
        while True:
            code = pending.get()
            if code is None:
                return
            try:
                self._sink.send(code)
            except SinkError as exc:
                logger.warning("IR transmit of 0x%02X failed: %s", code, exc)
            except Exception:
                logger.exception("Unexpected IR sink failure for code 0x%02X", code)

    def close(self) -> None:
        with self._lock:
            pending, thread = self._queue, self._thread
            self._queue = None
            self._thread = None
        if pending is None or thread is None:
            return
        pending.put(None)
        thread.join(self._drain_timeout)
        if thread.is_alive():
            logger.warning("IR sink worker still busy after %.1fs; leaving it behind", self._drain_timeout)


def create_sink(
    kind: str,
    *,
    serial_port: Optional[str] = None,
    baudrate: int = DEFAULT_BAUDRATE,
    ws_endpoint: Optional[str] = None,
) -> CommandSink:
    mode = (kind or SINK_LOG).strip().lower()
    if mode == SINK_SERIAL:
        return SerialCommandSink(port=serial_port, baudrate=baudrate)
    if mode == SINK_WEBSOCKET:
        return WebSocketCommandSink(ws_endpoint or "")
    if mode == SINK_LOG:
        return LoggingCommandSink()
    raise SinkError(f"Unsupported sink '{kind}'; expected serial, ws or log")


SINK_KINDS: Tuple[str, ...] = (SINK_SERIAL, SINK_WEBSOCKET, SINK_LOG)


__all__ = [
    "CommandSink",
    "LoggingCommandSink",
    "SINK_KINDS",
    "SINK_LOG",
    "SINK_SERIAL",
    "SINK_WEBSOCKET",
    "SerialCommandSink",
    "SinkError",
    "ThreadedCommandSink",
    "WebSocketCommandSink",
    "create_sink",
    "discover_serial_port",
]
