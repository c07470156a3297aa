"""Tests for the nmcli connectivity backend using a scripted subprocess."""
from __future__ import annotations

import subprocess
from typing import Callable, Dict, List, Sequence

import pytest

from irled_service.services import connectivity
from irled_service.services.connectivity import (
    HOTSPOT_CONNECTION_NAME,
    ConnectivityError,
    NmcliConnectivityManager,
    StaticConnectivityManager,
    create_connectivity_manager,
)


class ScriptedNmcli:
    """Fake ``subprocess.run`` answering nmcli invocations from a small model."""

    def __init__(self, *, state: str = "disconnected", profiles: Sequence[str] = ()) -> None:
        self.state = state
        self.profiles: List[str] = list(profiles)
        self.working: Dict[str, bool] = {}
        self.calls: List[List[str]] = []
        self.on_poll: Callable[["ScriptedNmcli"], None] = lambda _: None
        self.hotspot_up = False

    def __call__(self, args: List[str], **_: object) -> subprocess.CompletedProcess:
        self.calls.append(args)
        command = args[1:]
        if command[:4] == ["-t", "-f", "STATE", "general"]:
            return self._done(f"{self.state}\n")
        if command[:4] == ["-t", "-f", "NAME,TYPE", "connection"]:
            self.on_poll(self)
            lines = [f"{name}:802-11-wireless" for name in self.profiles]
            lines.append("Wired connection 1:802-3-ethernet")
            if self.hotspot_up:
                lines.append(f"{HOTSPOT_CONNECTION_NAME}:802-11-wireless")
            return self._done("\n".join(lines) + "\n")
        if command[:3] == ["connection", "up", "id"]:
            name = command[3]
            if self.working.get(name):
                self.state = "connected"
                return self._done("")
            return self._done("", returncode=4, stderr="no network")
        if command[:3] == ["device", "wifi", "hotspot"]:
            self.hotspot_up = True
            return self._done("")
        if command[:3] == ["connection", "down", "id"]:
            self.hotspot_up = False
            return self._done("")
        raise AssertionError(f"unexpected nmcli call: {args}")

    @staticmethod
    def _done(stdout: str, returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
        return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture()
def nmcli(monkeypatch: pytest.MonkeyPatch) -> ScriptedNmcli:
    fake = ScriptedNmcli()
    monkeypatch.setattr(connectivity.subprocess, "run", fake)
    return fake


def test_is_connected_reads_general_state(nmcli: ScriptedNmcli) -> None:
    manager = NmcliConnectivityManager()
    assert manager.is_connected() is False
    nmcli.state = "connected (site only)"
    assert manager.is_connected() is True
    nmcli.state = "connecting"
    assert manager.is_connected() is False


def test_is_connected_without_nmcli(monkeypatch: pytest.MonkeyPatch) -> None:
    def _missing(*_: object, **__: object):
        raise FileNotFoundError("nmcli")

    monkeypatch.setattr(connectivity.subprocess, "run", _missing)
    assert NmcliConnectivityManager().is_connected() is False


def test_known_profiles_exclude_hotspot_and_ethernet(nmcli: ScriptedNmcli) -> None:
    nmcli.profiles = ["home", "office"]
    nmcli.hotspot_up = True
    assert NmcliConnectivityManager().known_wifi_connections() == ["home", "office"]


def test_connect_uses_known_profile(nmcli: ScriptedNmcli) -> None:
    nmcli.profiles = ["broken", "home"]
    nmcli.working["home"] = True

    assert NmcliConnectivityManager().connect("Wifi_Plant_Node_AP", "password") is True
    assert not any(call[1:4] == ["device", "wifi", "hotspot"] for call in nmcli.calls)


def test_connect_provisions_through_hotspot(nmcli: ScriptedNmcli) -> None:
    def _operator_adds_profile(fake: ScriptedNmcli) -> None:
        if fake.hotspot_up and "new-network" not in fake.profiles:
            fake.profiles.append("new-network")
            fake.working["new-network"] = True

    nmcli.on_poll = _operator_adds_profile
    manager = NmcliConnectivityManager(poll_interval=0.1)

    assert manager.connect("Wifi_Plant_Node_AP", "password") is True
    hotspot = next(call for call in nmcli.calls if call[1:4] == ["device", "wifi", "hotspot"])
    assert hotspot[-4:] == ["ssid", "Wifi_Plant_Node_AP", "password", "password"]
    assert nmcli.hotspot_up is False


def test_abort_ends_provisioning(nmcli: ScriptedNmcli) -> None:
    manager = NmcliConnectivityManager(poll_interval=0.1)

    def _abort_on_poll(fake: ScriptedNmcli) -> None:
        if fake.hotspot_up:
            manager.abort()

    nmcli.on_poll = _abort_on_poll
    assert manager.connect("Wifi_Plant_Node_AP", "password") is False
    assert nmcli.hotspot_up is False


def test_hotspot_failure_raises(nmcli: ScriptedNmcli, monkeypatch: pytest.MonkeyPatch) -> None:
    def _run(args: List[str], **kwargs: object) -> subprocess.CompletedProcess:
        if args[1:4] == ["device", "wifi", "hotspot"]:
            return subprocess.CompletedProcess(args=args, returncode=10, stdout="", stderr="no wifi device")
        return nmcli(args, **kwargs)

    monkeypatch.setattr(connectivity.subprocess, "run", _run)
    with pytest.raises(ConnectivityError):
        NmcliConnectivityManager().connect("Wifi_Plant_Node_AP", "password")


def test_static_manager_tracks_link() -> None:
    manager = StaticConnectivityManager()
    assert manager.is_connected()
    manager.set_connected(False)
    assert not manager.is_connected()
    assert manager.connect("ap", "password") is True
    assert manager.is_connected()


def test_create_connectivity_manager() -> None:
    assert isinstance(create_connectivity_manager("static"), StaticConnectivityManager)
    assert isinstance(create_connectivity_manager("nmcli", interface="wlan0"), NmcliConnectivityManager)
    with pytest.raises(ConnectivityError):
        create_connectivity_manager("carrier-pigeon")
