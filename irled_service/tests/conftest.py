"""Pytest fixtures shared across IR LED service tests."""
from __future__ import annotations

import asyncio
from typing import List

import pytest


@pytest.fixture(autouse=True)
def irled_env_sandbox(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "IRLED_HTTP_HOST",
        "IRLED_HTTP_PORT",
        "IRLED_AP_SSID",
        "IRLED_AP_PASSWORD",
        "IRLED_SINK",
        "IRLED_SERIAL_PORT",
        "IRLED_SERIAL_BAUDRATE",
        "IRLED_WS_ENDPOINT",
        "IRLED_CONNECTIVITY",
        "IRLED_WIFI_INTERFACE",
        "IRLED_TICK_INTERVAL",
        "IRLED_REQUEST_TIMEOUT",
        "IRLED_RECONNECT_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


class RecordingSink:
    """Sink stub capturing every transmitted code."""

    def __init__(self) -> None:
        self.sent: List[int] = []
        self.closed = False

    def send(self, code: int) -> None:
        self.sent.append(code)

    def close(self) -> None:
        self.closed = True

    async def wait_for(self, expected: List[int], timeout: float = 2.0) -> None:
        """Wait until codes handed off to a worker thread have arrived."""

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self.sent != expected:
            if loop.time() > deadline:
                raise AssertionError(f"sink received {self.sent}, expected {expected}")
            await asyncio.sleep(0.005)


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()
