"""Dependency helpers for wiring the lifecycle controller into FastAPI."""
from __future__ import annotations

from fastapi import Request

from ..config import ServiceSettings
from ..ir_link import create_sink
from .connectivity import create_connectivity_manager
from .lifecycle import LifecycleController


def build_controller(settings: ServiceSettings) -> LifecycleController:
    sink = create_sink(
        settings.sink,
        serial_port=settings.serial_port,
        baudrate=settings.serial_baudrate,
        ws_endpoint=settings.ws_endpoint,
    )
    connectivity = create_connectivity_manager(
        settings.connectivity,
        interface=settings.wifi_interface,
    )
    return LifecycleController(
        connectivity,
        sink,
        ap_ssid=settings.ap_ssid,
        ap_password=settings.ap_password,
        tick_interval=settings.tick_interval,
        request_timeout=settings.request_timeout,
        reconnect_timeout=settings.reconnect_timeout,
    )


def get_controller(request: Request) -> LifecycleController:
    return request.app.state.controller


__all__ = [
    "build_controller",
    "get_controller",
]
