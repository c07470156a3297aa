"""Connectivity-driven lifecycle of the request dispatcher."""
from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from enum import Enum
from typing import Callable, Optional

from ..ir_link import CommandSink, ThreadedCommandSink
from ..models.api import ControllerInfo, DispatchReply, DispatchRequest
from ..models.state import RequestedState
from .connectivity import ConnectivityError, ConnectivityManager
from .dispatcher import PendingRequest, RequestDispatcher

logger = logging.getLogger("irled.controller")

DEFAULT_TICK_INTERVAL = 0.05
DEFAULT_REQUEST_TIMEOUT = 30.0


class LinkState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class TickOutcome(str, Enum):
    RECONNECTING = "reconnecting"
    CONNECTED = "connected"
    LINK_LOST = "link_lost"
    SERVED = "served"
    IDLE = "idle"


class ServiceUnavailableError(RuntimeError):
    """Raised when a request cannot be answered (link down or shutting down)."""


class LifecycleController:
    """State machine that keeps the dispatcher running while the link is up.

    ``tick`` performs exactly one step: while disconnected it drives the
    reconnect procedure (run in a worker thread so the tick never blocks);
    while connected it polls link status and pumps one queued request.
    Command codes leave through a worker-thread sink, so a slow transmitter
    never stalls the event loop.
    """

    def __init__(
        self,
        connectivity: ConnectivityManager,
        sink: CommandSink,
        *,
        ap_ssid: str,
        ap_password: str,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT,
        reconnect_timeout: Optional[float] = None,
        dispatcher_factory: Callable[[CommandSink], RequestDispatcher] = RequestDispatcher,
    ) -> None:
        self._connectivity = connectivity
        self._sink = sink
        self._outbox = ThreadedCommandSink(sink)
        self._ap_ssid = ap_ssid
        self._ap_password = ap_password
        self._tick_interval = max(0.0, tick_interval)
        self._request_timeout = request_timeout
        self._reconnect_timeout = reconnect_timeout
        self._dispatcher_factory = dispatcher_factory

        self._link_state = LinkState.DISCONNECTED
        self._dispatcher: Optional[RequestDispatcher] = None
        self._queue: "asyncio.Queue[PendingRequest]" = asyncio.Queue()
        self._reconnect_task: Optional["asyncio.Task[bool]"] = None
        self._reconnect_started: Optional[float] = None
        self._reconnect_aborted = False
        self._reconnect_count = 0
        self._run_task: Optional["asyncio.Task[None]"] = None
        self._stop_event = asyncio.Event()
        self._wake = asyncio.Event()
        self._closed = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def link_state(self) -> LinkState:
        return self._link_state

    @property
    def dispatcher(self) -> Optional[RequestDispatcher]:
        return self._dispatcher

    @property
    def requested_state(self) -> Optional[RequestedState]:
        return self._dispatcher.state if self._dispatcher is not None else None

    @property
    def sink(self) -> CommandSink:
        return self._sink

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None

    def describe(self) -> ControllerInfo:
        return ControllerInfo(
            link_state=self._link_state.value,
            dispatcher_running=self._dispatcher is not None and self._dispatcher.running,
            reconnect_pending=self.reconnect_pending,
            pending_requests=self._queue.qsize(),
            reconnect_count=self._reconnect_count,
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------
    async def tick(self) -> TickOutcome:
        if self._link_state is LinkState.CONNECTED:
            linked = await asyncio.to_thread(self._connectivity.is_connected)
            if linked:
                dispatcher = self._dispatcher
                if dispatcher is not None and dispatcher.pump(self._queue):
                    return TickOutcome.SERVED
                return TickOutcome.IDLE

            logger.warning("Network link lost; stopping dispatcher")
            self._stop_dispatcher()
            self._link_state = LinkState.DISCONNECTED
            self._begin_reconnect()
            logger.info("Controller status: %s", self.describe())
            return TickOutcome.LINK_LOST

        return self._reconnect_step()

    def _reconnect_step(self) -> TickOutcome:
        task = self._reconnect_task
        if task is None:
            self._begin_reconnect()
            return TickOutcome.RECONNECTING

        if not task.done():
            if self._reconnect_expired() and not self._reconnect_aborted:
                logger.warning(
                    "Reconnect attempt exceeded %.1fs; aborting provisioning",
                    self._reconnect_timeout,
                )
                self._reconnect_aborted = True
                self._connectivity.abort()
            return TickOutcome.RECONNECTING

        self._reconnect_task = None
        self._reconnect_started = None
        connected = False
        try:
            connected = task.result()
        except asyncio.CancelledError:
            logger.info("Reconnect attempt cancelled")
        except ConnectivityError as exc:
            logger.warning("Reconnect attempt failed: %s", exc)
        except Exception:
            logger.exception("Reconnect attempt raised unexpectedly")

        if not connected:
            return TickOutcome.RECONNECTING

        self._link_state = LinkState.CONNECTED
        self._start_dispatcher()
        logger.info("Controller status: %s", self.describe())
        return TickOutcome.CONNECTED

    def _begin_reconnect(self) -> None:
        if self._reconnect_task is not None:
            return
        self._reconnect_count += 1
        self._reconnect_started = time.monotonic()
        self._reconnect_aborted = False
        logger.info(
            "Connecting to network (attempt %d); provisioning access point '%s' if required",
            self._reconnect_count,
            self._ap_ssid,
        )
        self._reconnect_task = asyncio.create_task(
            asyncio.to_thread(self._connectivity.connect, self._ap_ssid, self._ap_password)
        )

    def _reconnect_expired(self) -> bool:
        if self._reconnect_timeout is None or self._reconnect_started is None:
            return False
        return time.monotonic() - self._reconnect_started >= self._reconnect_timeout

    def _start_dispatcher(self) -> None:
        if self._dispatcher is not None and self._dispatcher.running:
            return
        dispatcher = self._dispatcher_factory(self._outbox)
        dispatcher.start()
        self._dispatcher = dispatcher
        logger.info("Network link up; dispatcher serving requests")

    def _stop_dispatcher(self) -> None:
        dispatcher = self._dispatcher
        if dispatcher is None:
            return
        self._dispatcher = None
        dispatcher.stop()

    # ------------------------------------------------------------------
    # Request intake
    # ------------------------------------------------------------------
    async def submit(self, request: DispatchRequest) -> DispatchReply:
        """Queue ``request`` for the dispatcher and wait for its reply."""

        if self._closed:
            raise ServiceUnavailableError("service is shutting down")

        loop = asyncio.get_running_loop()
        pending = PendingRequest(request=request, reply=loop.create_future())
        self._queue.put_nowait(pending)
        self._wake.set()

        if self._request_timeout is None:
            return await pending.reply
        try:
            return await asyncio.wait_for(pending.reply, timeout=self._request_timeout)
        except asyncio.TimeoutError as exc:
            raise ServiceUnavailableError(
                f"no reply within {self._request_timeout:.1f}s (link {self._link_state.value})"
            ) from exc

    def _fail_pending(self, reason: str) -> None:
        while True:
            try:
                pending = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            if not pending.reply.done():
                pending.reply.set_exception(ServiceUnavailableError(reason))

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------
    async def start(self) -> None:
        if self._run_task and not self._run_task.done():
            return
        self._closed = False
        self._stop_event.clear()
        self._run_task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        self._closed = True
        self._stop_event.set()
        self._wake.set()
        if self._run_task:
            await self._run_task
            self._run_task = None

        self._stop_dispatcher()
        self._link_state = LinkState.DISCONNECTED

        task = self._reconnect_task
        if task is not None:
            self._connectivity.abort()
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            self._reconnect_task = None
            self._reconnect_started = None

        self._fail_pending("service stopped")
        await asyncio.to_thread(self._outbox.close)

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            self._wake.clear()
            try:
                outcome = await self.tick()
            except Exception:  # pragma: no cover - safeguard
                logger.exception("Lifecycle tick failed")
                outcome = TickOutcome.IDLE

            if outcome is TickOutcome.SERVED:
                # More requests may be queued; yield and tick again.
                await asyncio.sleep(0)
                continue

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._tick_interval)
            except asyncio.TimeoutError:
                continue


__all__ = [
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_TICK_INTERVAL",
    "LifecycleController",
    "LinkState",
    "ServiceUnavailableError",
    "TickOutcome",
]
