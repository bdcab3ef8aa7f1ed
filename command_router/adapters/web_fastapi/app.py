"""FastAPI adapter — thin translation layer, no business logic."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from command_router import create_router
from command_router.engine.models import DispatchResult, RouteContext, RouteMetrics, RouteResult
from command_router.engine.router import SmartRouter

logger = logging.getLogger(__name__)


class RouteRequest(BaseModel):
    text: str
    context: RouteContext = RouteContext()


class DispatchRequest(BaseModel):
    command: str
    context: RouteContext = RouteContext()


def create_app(router: SmartRouter | None = None) -> FastAPI:
    router = router or create_router()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await router.start()
        try:
            yield
        finally:
            await router.stop()

    app = FastAPI(title="CommandRouter API", version="0.1.0", lifespan=lifespan)

    @app.post("/route")
    async def route(body: RouteRequest) -> RouteResult:
        return await router.route_detailed(body.text, body.context)

    @app.post("/dispatch")
    async def dispatch(body: DispatchRequest) -> DispatchResult:
        return await router.dispatch(body.command, body.context)

    @app.get("/metrics")
    async def metrics() -> RouteMetrics:
        return router.get_metrics()

    @app.post("/metrics/reset")
    async def reset_metrics() -> JSONResponse:
        router.reset_metrics()
        return JSONResponse({"status": "ok"})

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok", "cache": router.cache_stats()})

    return app


# Module-level instance for ``uvicorn command_router.adapters.web_fastapi.app:app``
app = create_app()


def serve() -> None:
    """Entry-point for ``command-router-web`` console script."""
    import uvicorn

    uvicorn.run(
        "command_router.adapters.web_fastapi.app:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
    )
