"""Service layer for the IR LED web service."""

from .connectivity import (
	ConnectivityError,
	NmcliConnectivityManager,
	StaticConnectivityManager,
)
from .dispatcher import DispatcherStoppedError, PendingRequest, RequestDispatcher
from .lifecycle import LifecycleController, LinkState, ServiceUnavailableError, TickOutcome

__all__ = [
	"ConnectivityError",
	"DispatcherStoppedError",
	"LifecycleController",
	"LinkState",
	"NmcliConnectivityManager",
	"PendingRequest",
	"RequestDispatcher",
	"ServiceUnavailableError",
	"StaticConnectivityManager",
	"TickOutcome",
]
