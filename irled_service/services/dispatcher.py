"""Request routing, validation and state caching for the LED strip protocol."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from ..commands import Category, parse_raw, table_for
from ..documentation import SERVICE_TITLE, describe_service, documentation_for
from ..ir_link import CommandSink, SinkError
from ..models.api import DispatchReply, DispatchRequest
from ..models.state import RequestedState

logger = logging.getLogger("irled.dispatcher")

SUCCESS = "success"
ERROR_ARGUMENT_EXPECTED = "error: argument expected"
ERROR_ARGUMENT_MISMATCH = "error: argument does not match expected"
ERROR_INVALID_TYPE = "error: invalid argument type"

DOCUMENTATION_ARGUMENT = "documentation"

CONTROL_CATEGORIES = (
    Category.BRIGHTNESS,
    Category.POWER,
    Category.FUNCTION,
    Category.COLOR,
)


class DispatchError(Exception):
    """Request failure rendered as a plain-text reply."""

    status_code = 200

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingArgumentError(DispatchError):
    def __init__(self, message: str = ERROR_ARGUMENT_EXPECTED) -> None:
        super().__init__(message)


class InvalidArgumentValueError(DispatchError):
    pass


class RouteNotFoundError(DispatchError):
    status_code = 404


class DispatcherStoppedError(RuntimeError):
    """Raised when a stopped dispatcher is asked to handle a request."""


@dataclass
class PendingRequest:
    """A request waiting in the transport queue together with its reply slot."""

    request: DispatchRequest
    reply: "asyncio.Future[DispatchReply]"


class _Outcome(NamedTuple):
    body: str
    code: Optional[int] = None


Handler = Callable[[DispatchRequest], _Outcome]


class RequestDispatcher:
    """Serves the text protocol for one connected session.

    A dispatcher owns its :class:`RequestedState`; ``start`` allocates a fresh
    cache and binds the routes, ``stop`` unbinds them and drops the cache.
    """

    def __init__(self, sink: CommandSink) -> None:
        self._sink = sink
        self._state: Optional[RequestedState] = None
        self._routes: Dict[Tuple[str, str], Handler] = {}

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self.running:
            return
        self._state = RequestedState()
        self._routes = self._bind_routes()
        logger.info("Dispatcher started with %d routes", len(self._routes))

    def stop(self) -> None:
        if not self.running:
            return
        self._routes = {}
        self._state = None
        logger.info("Dispatcher stopped; requested state discarded")

    @property
    def running(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> Optional[RequestedState]:
        return self._state

    def _bind_routes(self) -> Dict[Tuple[str, str], Handler]:
        routes: Dict[Tuple[str, str], Handler] = {
            ("GET", "/"): self._handle_root,
            ("GET", "/routes"): self._handle_root,
            ("GET", "/cached-state"): self._handle_cached_state,
            ("GET", "/raw"): partial(self._handle_report, Category.RAW),
            ("POST", "/raw"): self._handle_raw,
        }
        for category in CONTROL_CATEGORIES:
            path = f"/{category.value}"
            routes[("GET", path)] = partial(self._handle_report, category)
            routes[("POST", path)] = partial(self._handle_control, category)
        return routes

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------
    def dispatch(self, request: DispatchRequest) -> DispatchReply:
        """Handle one request and return its reply.

        Validation failures become 200 replies carrying an error message and
        unknown routes become 404 echoes. The command code, if any, is sent
        after the cache has been updated.
        """

        state = self._state
        if state is None:
            raise DispatcherStoppedError("dispatcher is not running")

        try:
            handler = self._routes.get((request.method.upper(), request.path))
            if handler is None:
                raise RouteNotFoundError(_not_found_body(request))
            outcome = handler(request)
        except RouteNotFoundError as exc:
            # Unknown routes leave the last visited uri untouched.
            logger.debug("No route for %s %s", request.method, request.path)
            return DispatchReply(status_code=exc.status_code, body=exc.message)
        except DispatchError as exc:
            logger.debug("Rejected %s %s: %s", request.method, request.path, exc.message)
            state.uri = request.path
            return DispatchReply(status_code=exc.status_code, body=exc.message)

        state.uri = request.path
        if outcome.code is not None:
            self._transmit(outcome.code)
        return DispatchReply(body=outcome.body)

    def pump(self, queue: "asyncio.Queue[PendingRequest]") -> bool:
        """Service at most one pending request; return whether one was handled."""

        if not self.running:
            raise DispatcherStoppedError("dispatcher is not running")

        while True:
            try:
                pending = queue.get_nowait()
            except asyncio.QueueEmpty:
                return False
            if pending.reply.done():
                # Client gave up while the request was queued.
                logger.debug("Dropping abandoned %s %s", pending.request.method, pending.request.path)
                continue
            break

        reply = self.dispatch(pending.request)
        pending.reply.set_result(reply)
        return True

    def _transmit(self, code: int) -> None:
        try:
            self._sink.send(code)
        except SinkError as exc:
            logger.warning("IR transmit of 0x%02X failed: %s", code, exc)
        except Exception:  # pragma: no cover - safeguard
            logger.exception("Unexpected IR sink failure for code 0x%02X", code)

    # ------------------------------------------------------------------
    # Route handlers
    # ------------------------------------------------------------------
    def _handle_root(self, request: DispatchRequest) -> _Outcome:
        return _Outcome(describe_service())

    def _handle_cached_state(self, request: DispatchRequest) -> _Outcome:
        state = self._require_state()
        lines = [SERVICE_TITLE, "", "Cached State:"]
        for category in Category:
            lines.append(f"\t{category.value}: {state.render(category)}")
        lines.append(f"\turi: {state.render_uri()}")
        return _Outcome("\n".join(lines) + "\n")

    def _handle_report(self, category: Category, request: DispatchRequest) -> _Outcome:
        if request.argument(DOCUMENTATION_ARGUMENT) == "true":
            return _Outcome(documentation_for(category))
        return _Outcome(f"{category.value}: {self._require_state().render(category)}")

    def _handle_raw(self, request: DispatchRequest) -> _Outcome:
        value = request.argument(Category.RAW.value)
        if not value:
            raise MissingArgumentError()
        code = parse_raw(value)
        if code is None:
            raise InvalidArgumentValueError(ERROR_INVALID_TYPE)
        self._require_state().raw = code
        return _Outcome(SUCCESS, code)

    def _handle_control(self, category: Category, request: DispatchRequest) -> _Outcome:
        value = request.argument(category.value)
        if not value:
            raise MissingArgumentError()
        table = table_for(category)
        member = table.member(value)
        if member is None:
            raise InvalidArgumentValueError(ERROR_ARGUMENT_MISMATCH)
        code = table.code(member)
        state = self._require_state()
        setattr(state, category.value, member)
        # Every category command is a raw code underneath.
        state.raw = code
        return _Outcome(SUCCESS, code)

    def _require_state(self) -> RequestedState:
        if self._state is None:
            raise DispatcherStoppedError("dispatcher is not running")
        return self._state


def _not_found_body(request: DispatchRequest) -> str:
    lines = [
        "404: Not Found",
        "",
        f"URI: {request.path}",
        f"Method: {request.method.upper()}",
        f"Arguments: {len(request.arguments)}",
    ]
    for name, value in request.arguments:
        lines.append(f" {name}: {value}")
    return "\n".join(lines) + "\n"


__all__ = [
    "CONTROL_CATEGORIES",
    "DispatchError",
    "DispatcherStoppedError",
    "ERROR_ARGUMENT_EXPECTED",
    "ERROR_ARGUMENT_MISMATCH",
    "ERROR_INVALID_TYPE",
    "InvalidArgumentValueError",
    "MissingArgumentError",
    "PendingRequest",
    "RequestDispatcher",
    "RouteNotFoundError",
    "SUCCESS",
]
