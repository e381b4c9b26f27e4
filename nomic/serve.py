"""Nomic HTTP service: app factory, lifespan and entry point.

The store and broadcaster are built from Settings unless injected, which is
how tests swap in a MemoryStateStore and a fake broadcaster.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from nomic import __version__
from nomic.channels.protocol import Broadcaster
from nomic.channels.slack import ResponseUrlChannel
from nomic.commands.dispatcher import CommandDispatcher
from nomic.config import Settings, get_settings
from nomic.errors import MethodError, NomicError, StoreError
from nomic.state.store import StateStore, build_store
from nomic.webhooks.handlers import register_slack_routes

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT, force=True)


async def _nomic_error_handler(request: Request, exc: NomicError) -> JSONResponse:
    if isinstance(exc, StoreError):
        # Backend detail stays in the logs.
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse({"error": "Storage unavailable"}, status_code=exc.status_code)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def _http_error_handler(request: Request, exc: StarletteHTTPException):
    """Render router 405s (any verb other than GET/POST) as MethodError."""
    if exc.status_code == 405:
        return await _nomic_error_handler(request, MethodError(request.method))
    return await http_exception_handler(request, exc)


def create_app(
    settings: Settings | None = None,
    store: StateStore | None = None,
    broadcaster: Broadcaster | None = None,
) -> FastAPI:
    """Build the FastAPI app with its store, broadcaster and routes."""
    settings = settings or get_settings()
    store = store or build_store(
        settings.store_backend, settings.redis_url, settings.state_key_prefix
    )
    broadcaster = broadcaster or ResponseUrlChannel(
        timeout=settings.broadcast_timeout_seconds,
        max_retries=settings.broadcast_max_retries,
    )

    if not settings.slack_signing_secret:
        logger.warning("SLACK_SIGNING_SECRET not set -- all commands will be rejected")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.connect()
        logger.info("Nomic %s started (store=%s)", __version__, type(store).__name__)
        try:
            yield
        finally:
            await broadcaster.aclose()
            await store.close()
            logger.info("Nomic stopped")

    app = FastAPI(title="Nomic", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.dispatcher = CommandDispatcher(store, broadcaster)
    app.add_exception_handler(NomicError, _nomic_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    register_slack_routes(app)
    return app


def main() -> None:
    """Run the service under uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
