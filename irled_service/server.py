"""ASGI entrypoint wiring the IR LED service components together."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import router
from .config import ServiceSettings, load_settings
from .services.dependencies import build_controller
from .services.lifecycle import LifecycleController

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[ServiceSettings] = None,
    controller: Optional[LifecycleController] = None,
) -> FastAPI:
    """Build the application around one explicitly constructed controller."""

    resolved = settings or load_settings()
    owned = controller or build_controller(resolved)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        await owned.start()
        try:
            yield
        finally:
            await owned.stop()
            await asyncio.to_thread(owned.sink.close)

    app = FastAPI(
        title="IR LED Strip Web Service",
        version="0.1.0",
        lifespan=_lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.state.controller = owned
    app.state.settings = resolved
    app.include_router(router)
    return app


def run(settings: Optional[ServiceSettings] = None) -> None:  # pragma: no cover - manual execution helper
    """Serve the app with uvicorn."""

    import uvicorn  # type: ignore

    resolved = settings or load_settings()
    logger.info("Serving on %s:%d", resolved.http_host, resolved.http_port)
    uvicorn.run(create_app(resolved), host=resolved.http_host, port=resolved.http_port)


__all__ = [
    "create_app",
    "run",
]


if __name__ == "__main__":  # pragma: no cover - manual execution path
    run()
