"""
Registry indexer HTTP API.

`create_app()` opens the runtime in the lifespan, starts the scheduler in the
configured mode as a background task, and stops it on shutdown. Passing a
ready `query` service skips all of that (used by tests and embedders that run
their own sync loop).
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from registry_indexer import __version__
from registry_indexer.api.routes import router
from registry_indexer.config import IndexerMode, Settings, get_settings
from registry_indexer.errors import QueryError
from registry_indexer.query import QueryService
from registry_indexer.runtime import open_runtime
from registry_indexer.scheduler import Scheduler
from registry_indexer.utils.logging import get_logger

log = get_logger(__name__)


async def run_scheduler(scheduler: Scheduler, mode: IndexerMode) -> None:
    """Background sync task for the API process."""
    if mode == "follow":
        await scheduler.follow()
        return
    try:
        reports = await scheduler.catch_up()
    except Exception:
        log.exception("Catch-up sync failed", extra={"cursor": scheduler.cursor})
        return
    log.info("Catch-up sync finished", extra={"ranges": len(reports), "cursor": scheduler.cursor})


def create_app(settings: Optional[Settings] = None, query: Optional[QueryService] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if query is not None:
            app.state.query = query
            yield
            return

        async with open_runtime(settings) as runtime:
            app.state.query = runtime.query
            task = asyncio.create_task(run_scheduler(runtime.scheduler, settings.mode), name="registry-sync")
            log.info("API started", extra={"mode": settings.mode, "port": settings.api_port})
            try:
                yield
            finally:
                runtime.scheduler.stop()
                if settings.mode == "sync" and not task.done():
                    task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                log.info("API stopped")

    app = FastAPI(
        title="Registry Indexer",
        description="Read-only API over the agent identity, reputation, validation and job registries",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(QueryError)
    async def query_error_handler(request: Request, exc: QueryError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    app.include_router(router)
    return app


__all__ = ["create_app", "run_scheduler"]
