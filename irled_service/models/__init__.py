"""Data models shared across the IR LED service."""

from .api import ControllerInfo, DispatchReply, DispatchRequest, TEXT_PLAIN
from .state import UNKNOWN, RequestedState

__all__ = [
	"ControllerInfo",
	"DispatchReply",
	"DispatchRequest",
	"RequestedState",
	"TEXT_PLAIN",
	"UNKNOWN",
]
