"""Network link status and (re)provisioning backends."""
from __future__ import annotations

import logging
import subprocess
import threading
from typing import List, Optional, Protocol, Sequence, Set

logger = logging.getLogger(__name__)

CONNECTIVITY_STATIC = "static"
CONNECTIVITY_NMCLI = "nmcli"
HOTSPOT_CONNECTION_NAME = "irled-provisioning"
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_COMMAND_TIMEOUT = 15.0
_WIFI_CONNECTION_TYPE = "802-11-wireless"


class ConnectivityError(RuntimeError):
    """Raised when a provisioning step fails."""


class ConnectivityManager(Protocol):
    def is_connected(self) -> bool:
        ...

    def connect(self, ssid: str, password: str) -> bool:
        """Block until the link is up, provisioning through an access point if needed."""
        ...

    def abort(self) -> None:
        ...


class StaticConnectivityManager:
    """Link that is up unless told otherwise (wired hosts, development)."""

    def __init__(self, connected: bool = True) -> None:
        self._connected = connected

    def is_connected(self) -> bool:
        return self._connected

    def connect(self, ssid: str, password: str) -> bool:
        self._connected = True
        return True

    def abort(self) -> None:
        return None

    def set_connected(self, connected: bool) -> None:
        self._connected = connected


class NmcliConnectivityManager:
    """Drives NetworkManager through ``nmcli``.

    ``connect`` first re-activates a known Wi-Fi connection. When none comes
    up, it raises a provisioning hotspot with the given SSID and password and
    waits until a new Wi-Fi connection profile appears (added by the operator
    over the hotspot), then switches to it. ``abort`` ends the wait and tears
    the hotspot down.
    """

    def __init__(
        self,
        interface: Optional[str] = None,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self._interface = interface
        self._poll_interval = max(0.1, poll_interval)
        self._command_timeout = command_timeout
        self._abort = threading.Event()
        self._lock = threading.Lock()

    def _run(self, args: Sequence[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                ["nmcli", *args],
                capture_output=True,
                text=True,
                check=False,
                timeout=self._command_timeout,
            )
        except FileNotFoundError as exc:
            raise ConnectivityError("nmcli is not installed") from exc
        except subprocess.TimeoutExpired as exc:
            raise ConnectivityError(f"nmcli {' '.join(args)} timed out") from exc

    def is_connected(self) -> bool:
        try:
            outcome = self._run(["-t", "-f", "STATE", "general"])
        except ConnectivityError as exc:
            logger.debug("Link status unavailable: %s", exc)
            return False
        if outcome.returncode != 0:
            return False
        # "connected", "connected (site only)" and "connected (local only)" all mean the link is up.
        return (outcome.stdout or "").strip().startswith("connected")

    def known_wifi_connections(self) -> List[str]:
        outcome = self._run(["-t", "-f", "NAME,TYPE", "connection", "show"])
        if outcome.returncode != 0:
            raise ConnectivityError((outcome.stderr or "").strip() or "nmcli connection show failed")
        names: List[str] = []
        for line in (outcome.stdout or "").splitlines():
            name, _, kind = line.rpartition(":")
            name = name.replace("\\:", ":")
            if kind != _WIFI_CONNECTION_TYPE or not name or name == HOTSPOT_CONNECTION_NAME:
                continue
            names.append(name)
        return names

    def _activate(self, name: str) -> bool:
        args = ["connection", "up", "id", name]
        if self._interface:
            args.extend(["ifname", self._interface])
        outcome = self._run(args)
        if outcome.returncode != 0:
            logger.info("Could not activate '%s': %s", name, (outcome.stderr or "").strip())
            return False
        return self.is_connected()

    def _activate_any(self, names: Sequence[str]) -> bool:
        for name in names:
            if self._abort.is_set():
                return False
            if self._activate(name):
                logger.info("Connected using Wi-Fi profile '%s'", name)
                return True
        return False

    def _start_hotspot(self, ssid: str, password: str) -> None:
        args = ["device", "wifi", "hotspot", "con-name", HOTSPOT_CONNECTION_NAME, "ssid", ssid, "password", password]
        if self._interface:
            args.extend(["ifname", self._interface])
        outcome = self._run(args)
        if outcome.returncode != 0:
            raise ConnectivityError(
                (outcome.stderr or "").strip() or f"could not start provisioning hotspot '{ssid}'"
            )
        logger.warning("No known network reachable; provisioning hotspot '%s' is up", ssid)

    def _stop_hotspot(self) -> None:
        try:
            self._run(["connection", "down", "id", HOTSPOT_CONNECTION_NAME])
        except ConnectivityError:
            logger.debug("Failed to stop provisioning hotspot", exc_info=True)

    def connect(self, ssid: str, password: str) -> bool:
        with self._lock:
            self._abort.clear()
            if self.is_connected():
                return True

            known = self.known_wifi_connections()
            if self._activate_any(known):
                return True
            if self._abort.is_set():
                return False

            self._start_hotspot(ssid, password)
            seen: Set[str] = set(known)
            try:
                while not self._abort.wait(self._poll_interval):
                    current = self.known_wifi_connections()
                    fresh = [name for name in current if name not in seen]
                    if not fresh:
                        continue
                    seen.update(fresh)
                    self._stop_hotspot()
                    if self._activate_any(fresh):
                        return True
                    self._start_hotspot(ssid, password)
                return False
            finally:
                if not self.is_connected():
                    self._stop_hotspot()

    def abort(self) -> None:
        self._abort.set()


def create_connectivity_manager(kind: str, *, interface: Optional[str] = None) -> ConnectivityManager:
    mode = (kind or CONNECTIVITY_STATIC).strip().lower()
    if mode == CONNECTIVITY_STATIC:
        return StaticConnectivityManager()
    if mode == CONNECTIVITY_NMCLI:
        return NmcliConnectivityManager(interface)
    raise ConnectivityError(f"Unsupported connectivity backend '{kind}'; expected static or nmcli")


__all__ = [
    "CONNECTIVITY_NMCLI",
    "CONNECTIVITY_STATIC",
    "ConnectivityError",
    "ConnectivityManager",
    "HOTSPOT_CONNECTION_NAME",
    "NmcliConnectivityManager",
    "StaticConnectivityManager",
    "create_connectivity_manager",
]
