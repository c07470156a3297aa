"""Environment-driven settings for the IR LED service."""
from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

from pydantic import BaseModel

from .ir_link import DEFAULT_BAUDRATE, SINK_KINDS, SINK_LOG
from .services.connectivity import CONNECTIVITY_NMCLI, CONNECTIVITY_STATIC
from .services.lifecycle import DEFAULT_REQUEST_TIMEOUT, DEFAULT_TICK_INTERVAL

logger = logging.getLogger(__name__)

ENV_PREFIX = "IRLED_"
DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 80
DEFAULT_AP_SSID = "Wifi_Plant_Node_AP"
DEFAULT_AP_PASSWORD = "password"


class ServiceSettings(BaseModel):
    http_host: str = DEFAULT_HTTP_HOST
    http_port: int = DEFAULT_HTTP_PORT
    ap_ssid: str = DEFAULT_AP_SSID
    ap_password: str = DEFAULT_AP_PASSWORD
    sink: str = SINK_LOG
    serial_port: Optional[str] = None
    serial_baudrate: int = DEFAULT_BAUDRATE
    ws_endpoint: Optional[str] = None
    connectivity: str = CONNECTIVITY_STATIC
    wifi_interface: Optional[str] = None
    tick_interval: float = DEFAULT_TICK_INTERVAL
    request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT
    reconnect_timeout: Optional[float] = None


def _env(name: str) -> Optional[str]:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_int(name: str, default: int, *, minimum: int = 0, maximum: Optional[int] = None) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid %s%s=%s; using %s", ENV_PREFIX, name, raw, default)
        return default
    if value < minimum or (maximum is not None and value > maximum):
        logger.warning("Out of range %s%s=%s; using %s", ENV_PREFIX, name, raw, default)
        return default
    return value


def _env_seconds(name: str, default: Optional[float]) -> Optional[float]:
    """Parse a duration; ``none``/``0`` disables the limit for timeouts."""

    raw = _env(name)
    if raw is None:
        return default
    if raw.lower() in {"none", "off"}:
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid %s%s=%s; using %s", ENV_PREFIX, name, raw, default)
        return default
    if value < 0:
        logger.warning("Negative %s%s=%s; using %s", ENV_PREFIX, name, raw, default)
        return default
    return value


def _env_choice(name: str, default: str, choices: Iterable[str]) -> str:
    raw = _env(name)
    if raw is None:
        return default
    candidate = raw.lower()
    allowed = tuple(choices)
    if candidate not in allowed:
        logger.warning(
            "Unsupported %s%s=%s; expected one of %s, using %s",
            ENV_PREFIX,
            name,
            raw,
            ", ".join(allowed),
            default,
        )
        return default
    return candidate


def load_settings() -> ServiceSettings:
    """Build settings from ``IRLED_*`` environment variables."""

    tick_interval = _env_seconds("TICK_INTERVAL", DEFAULT_TICK_INTERVAL)
    request_timeout = _env_seconds("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)
    reconnect_timeout = _env_seconds("RECONNECT_TIMEOUT", None)

    return ServiceSettings(
        http_host=_env("HTTP_HOST") or DEFAULT_HTTP_HOST,
        http_port=_env_int("HTTP_PORT", DEFAULT_HTTP_PORT, minimum=1, maximum=65535),
        ap_ssid=_env("AP_SSID") or DEFAULT_AP_SSID,
        ap_password=_env("AP_PASSWORD") or DEFAULT_AP_PASSWORD,
        sink=_env_choice("SINK", SINK_LOG, SINK_KINDS),
        serial_port=_env("SERIAL_PORT"),
        serial_baudrate=_env_int("SERIAL_BAUDRATE", DEFAULT_BAUDRATE, minimum=1),
        ws_endpoint=_env("WS_ENDPOINT"),
        connectivity=_env_choice(
            "CONNECTIVITY",
            CONNECTIVITY_STATIC,
            (CONNECTIVITY_STATIC, CONNECTIVITY_NMCLI),
        ),
        wifi_interface=_env("WIFI_INTERFACE"),
        tick_interval=tick_interval if tick_interval is not None else DEFAULT_TICK_INTERVAL,
        request_timeout=request_timeout or None,
        reconnect_timeout=reconnect_timeout or None,
    )


__all__ = [
    "DEFAULT_AP_PASSWORD",
    "DEFAULT_AP_SSID",
    "DEFAULT_HTTP_HOST",
    "DEFAULT_HTTP_PORT",
    "ENV_PREFIX",
    "ServiceSettings",
    "load_settings",
]
